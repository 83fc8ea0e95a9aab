"""
Per-year SIMLOK sequence. Allocation happens inside the approval transaction so two approvers
never receive the same number; preview only reads.
"""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import SimlokSequence
from utils.simlok import format_simlok_number, parse_simlok_number

logger = logging.getLogger(__name__)


async def _sequence(session: AsyncSession, year: int, for_update: bool = False) -> SimlokSequence | None:
    stmt = select(SimlokSequence).where(SimlokSequence.year == year)
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def preview_next_simlok_number(session: AsyncSession, year: int) -> str:
    seq = await _sequence(session, year)
    return format_simlok_number((seq.last_number if seq else 0) + 1, year)


async def allocate_simlok_number(session: AsyncSession, year: int) -> str:
    seq = await _sequence(session, year, for_update=True)
    if seq is None:
        seq = SimlokSequence(year=year, last_number=0)
        session.add(seq)
    seq.last_number += 1
    await session.flush()
    number = format_simlok_number(seq.last_number, year)
    logger.info("Allocated SIMLOK number %s", number)
    return number


async def register_simlok_number(session: AsyncSession, simlok_number: str) -> None:
    """
    Keep the sequence ahead of a number the approver typed in (usually the previewed one),
    so the next preview does not offer it again. Free-form numbers are left alone.
    """
    parsed = parse_simlok_number(simlok_number)
    if parsed is None:
        return
    number, year = parsed
    seq = await _sequence(session, year, for_update=True)
    if seq is None:
        seq = SimlokSequence(year=year, last_number=0)
        session.add(seq)
    if number > seq.last_number:
        seq.last_number = number
    await session.flush()
