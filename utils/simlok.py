"""SIMLOK permit number format: {number}/S00330/{year}-S0."""
from __future__ import annotations

import re
from typing import Optional

SIMLOK_PREFIX = "S00330"
SIMLOK_SUFFIX = "S0"

_PATTERN = re.compile(rf"^(\d+)/{SIMLOK_PREFIX}/(\d{{4}})-{SIMLOK_SUFFIX}$")


def format_simlok_number(number: int, year: int) -> str:
    return f"{number}/{SIMLOK_PREFIX}/{year}-{SIMLOK_SUFFIX}"


def parse_simlok_number(value: str) -> Optional[tuple[int, int]]:
    """(number, year) for a well-formed SIMLOK number, else None."""
    match = _PATTERN.match((value or "").strip())
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def fallback_simlok_number(year: int) -> str:
    """Placeholder offered when the numbering service cannot be reached."""
    return format_simlok_number(1, year)
