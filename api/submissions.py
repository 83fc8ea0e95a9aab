from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from schemas.submission import ApprovalDecision, ReviewDecision, SubmissionCreate, SubmissionUpdate
from services.events import broker, format_sse, matches
from services.lifecycle import IllegalTransition
from services.simlok_numbering import preview_next_simlok_number
from services.submission_store import (
    DuplicateSimlokNumber,
    StaleVersion,
    SubmissionLocked,
    SubmissionNotFoundError,
    SubmissionValidationError,
    create_submission,
    decide_approval,
    delete_submission,
    delete_worker,
    get_submission,
    resubmit_submission,
    review_submission,
    scan_history,
    submission_to_response,
    update_submission,
    worker_to_response,
)
from utils.dates import local_today

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/submissions", tags=["submissions"])

KEEPALIVE_SECONDS = 15.0


def _raise_for(e: Exception, not_found: str = "Submission not found"):
    if isinstance(e, SubmissionNotFoundError):
        raise HTTPException(status_code=404, detail=not_found)
    if isinstance(e, (StaleVersion, SubmissionLocked, IllegalTransition, DuplicateSimlokNumber)):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, SubmissionValidationError):
        raise HTTPException(
            status_code=400,
            detail={"message": str(e), "errors": [err.model_dump() for err in e.result.errors]},
        )
    raise e


async def _commit_and_publish(db: AsyncSession, submission_id: str, event: str) -> None:
    # listeners refetch as soon as they hear about it, so the write must be visible first
    await db.commit()
    broker.publish(submission_id, event)


@router.get("/simlok/next-number")
async def next_simlok_number(year: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    return {"next_simlok_number": await preview_next_simlok_number(db, year or local_today().year)}


@router.get("/events")
async def submission_events(request: Request, submission_id: Optional[str] = Query(None)):
    """Server-sent events; each message names the submission that changed."""

    async def stream():
        with broker.listen() as queue:
            yield ": connected\n\n"
            while True:
                if await request.is_disconnected():
                    break
                try:
                    message = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                if matches(message, submission_id):
                    yield format_sse(message)

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("", status_code=201)
async def create(body: SubmissionCreate, db: AsyncSession = Depends(get_db)):
    try:
        sub = await create_submission(db, body)
    except SubmissionValidationError as e:
        _raise_for(e)
    await _commit_and_publish(db, sub.id, "created")
    return {"submission": submission_to_response(sub)}


@router.get("/{submission_id}")
async def get_one(submission_id: str, db: AsyncSession = Depends(get_db)):
    try:
        sub = await get_submission(db, submission_id)
    except SubmissionNotFoundError as e:
        _raise_for(e)
    return {"submission": submission_to_response(sub)}


@router.patch("/{submission_id}")
async def update(submission_id: str, body: SubmissionUpdate, db: AsyncSession = Depends(get_db)):
    try:
        sub = await update_submission(db, submission_id, body)
    except (SubmissionNotFoundError, StaleVersion, SubmissionLocked, SubmissionValidationError) as e:
        _raise_for(e)
    await _commit_and_publish(db, sub.id, "updated")
    return {"submission": submission_to_response(sub)}


@router.patch("/{submission_id}/review")
async def review(submission_id: str, body: ReviewDecision, db: AsyncSession = Depends(get_db)):
    try:
        sub = await review_submission(db, submission_id, body)
    except (SubmissionNotFoundError, StaleVersion, IllegalTransition, SubmissionValidationError) as e:
        _raise_for(e)
    await _commit_and_publish(db, sub.id, "reviewed")
    return {"submission": submission_to_response(sub)}


@router.patch("/{submission_id}/approve")
async def approve(submission_id: str, body: ApprovalDecision, db: AsyncSession = Depends(get_db)):
    try:
        sub = await decide_approval(db, submission_id, body)
    except (SubmissionNotFoundError, StaleVersion, IllegalTransition, DuplicateSimlokNumber) as e:
        _raise_for(e)
    await _commit_and_publish(db, sub.id, body.approval_status.lower())
    return {"submission": submission_to_response(sub)}


@router.patch("/{submission_id}/resubmit")
async def resubmit(submission_id: str, db: AsyncSession = Depends(get_db)):
    try:
        sub = await resubmit_submission(db, submission_id)
    except (SubmissionNotFoundError, IllegalTransition) as e:
        _raise_for(e)
    await _commit_and_publish(db, sub.id, "resubmitted")
    return {"submission": submission_to_response(sub)}


@router.delete("/{submission_id}", status_code=204)
async def delete(submission_id: str, db: AsyncSession = Depends(get_db)):
    try:
        await delete_submission(db, submission_id)
    except SubmissionNotFoundError as e:
        _raise_for(e)
    await _commit_and_publish(db, submission_id, "deleted")


@router.get("/{submission_id}/workers")
async def list_workers(submission_id: str, db: AsyncSession = Depends(get_db)):
    try:
        sub = await get_submission(db, submission_id)
    except SubmissionNotFoundError as e:
        _raise_for(e)
    return {"workers": [worker_to_response(w) for w in sub.worker_list]}


@router.delete("/{submission_id}/workers/{worker_id}", status_code=204)
async def remove_worker(submission_id: str, worker_id: str, db: AsyncSession = Depends(get_db)):
    try:
        await delete_worker(db, submission_id, worker_id)
    except SubmissionNotFoundError as e:
        _raise_for(e, not_found="Worker not found")
    except SubmissionLocked as e:
        _raise_for(e)
    await _commit_and_publish(db, submission_id, "worker_deleted")


@router.get("/{submission_id}/scans")
async def scans(submission_id: str, db: AsyncSession = Depends(get_db)):
    try:
        return await scan_history(db, submission_id)
    except SubmissionNotFoundError as e:
        _raise_for(e)
