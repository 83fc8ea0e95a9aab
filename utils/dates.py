"""Calendar helpers shared by validation, templates and SIMLOK numbering."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from config import settings

SATURDAY = 5
SUNDAY = 6

_MONTHS_ID = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]


def has_weekend_in_range(start: date | None, end: date | None) -> bool:
    """True if any day in [start, end] is a Saturday or Sunday. Empty or inverted ranges have none."""
    if start is None or end is None or end < start:
        return False
    if (end - start).days >= 6:
        return True
    day = start
    while day <= end:
        if day.weekday() in (SATURDAY, SUNDAY):
            return True
        day += timedelta(days=1)
    return False


def local_today() -> date:
    return datetime.now(ZoneInfo(settings.simlok_timezone)).date()


def format_long_date(value: date) -> str:
    return f"{value.day} {_MONTHS_ID[value.month - 1]} {value.year}"


def implementation_template(start: date, end: date) -> str:
    """Default permit period text the reviewer starts from once both dates are set."""
    return (
        f"Terhitung mulai tanggal {format_long_date(start)} sampai {format_long_date(end)}. "
        "Termasuk hari Sabtu, Minggu dan hari libur lainnya."
    )
