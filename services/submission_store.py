"""
Server-side submission store operations behind /api/submissions.
Lifecycle rules come from services.lifecycle; every write bumps Submission.version and rejects
writers that based their change on an older version.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models import QrScan, Submission, SupportDocument, WorkerEntry
from schemas.submission import (
    ApprovalDecision,
    ApprovalStatus,
    ReviewDecision,
    ReviewStatus,
    SubmissionCreate,
    SubmissionSchema,
    SubmissionUpdate,
    WorkerEntrySchema,
)
from schemas.validation import ValidationResult
from services.lifecycle import LifecycleEvent, LifecycleState, next_state
from services.simlok_numbering import allocate_simlok_number, register_simlok_number
from services.validation_rules import validate_submission_create
from utils.dates import has_weekend_in_range, local_today

logger = logging.getLogger(__name__)


class SubmissionNotFoundError(LookupError):
    pass


class StaleVersion(Exception):
    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Submission was modified by someone else (your version {expected}, current version {actual}). "
            "Reload it and try again."
        )


class SubmissionLocked(Exception):
    """Writes to a submission whose approval decision is final."""


class DuplicateSimlokNumber(Exception):
    def __init__(self, simlok_number: str):
        self.simlok_number = simlok_number
        super().__init__(f"SIMLOK number {simlok_number} is already issued to another submission.")


class SubmissionValidationError(ValueError):
    def __init__(self, result: ValidationResult):
        self.result = result
        first = result.first
        super().__init__(first.message if first else "Invalid submission")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def submission_to_response(sub: Submission) -> dict[str, Any]:
    return SubmissionSchema.model_validate(sub, from_attributes=True).model_dump(mode="json")


def worker_to_response(worker: WorkerEntry) -> dict[str, Any]:
    return WorkerEntrySchema.model_validate(worker, from_attributes=True).model_dump(mode="json")


async def get_submission(session: AsyncSession, submission_id: str) -> Submission:
    result = await session.execute(
        select(Submission)
        .options(selectinload(Submission.worker_list), selectinload(Submission.support_documents))
        .where(Submission.id == submission_id)
    )
    sub = result.scalar_one_or_none()
    if sub is None:
        raise SubmissionNotFoundError(submission_id)
    return sub


def _check_version(sub: Submission, version: Optional[int]) -> None:
    if version is not None and version != sub.version:
        raise StaleVersion(version, sub.version)


def _check_writable(sub: Submission) -> None:
    if LifecycleState(ReviewStatus(sub.review_status), ApprovalStatus(sub.approval_status)).is_final:
        raise SubmissionLocked(f"Submission {sub.id} is already {sub.approval_status.lower()} and can no longer change")


def _touch(sub: Submission) -> None:
    sub.version = (sub.version or 0) + 1


def _check_schedule(sub: Submission) -> None:
    start, end = sub.implementation_start_date, sub.implementation_end_date
    if start and end and end < start:
        raise SubmissionValidationError(
            ValidationResult.failure(
                "implementation_end_date",
                "Implementation end date must not be earlier than the start date.",
            )
        )
    if not has_weekend_in_range(start, end):
        sub.holiday_working_hours = None


def _worker_row(submission_id: str, position: int, w: WorkerEntrySchema) -> WorkerEntry:
    return WorkerEntry(
        id=_new_id("wrk") if w.is_temporary else w.id,
        submission_id=submission_id,
        position=position,
        worker_name=w.worker_name.strip(),
        worker_photo=w.worker_photo,
        hsse_pass_number=w.hsse_pass_number.strip(),
        hsse_pass_valid_thru=w.hsse_pass_valid_thru,
        hsse_pass_document_upload=w.hsse_pass_document_upload,
    )


async def create_submission(session: AsyncSession, body: SubmissionCreate) -> Submission:
    result = validate_submission_create(body)
    if not result.ok:
        raise SubmissionValidationError(result)

    sub = Submission(
        id=_new_id("sub"),
        vendor_name=body.vendor_name.strip(),
        officer_name=body.officer_name.strip(),
        job_description=body.job_description,
        work_location=body.work_location,
        work_facilities=body.work_facilities,
        review_status=ReviewStatus.PENDING_REVIEW.value,
        approval_status=ApprovalStatus.PENDING_APPROVAL.value,
        implementation_start_date=body.implementation_start_date,
        implementation_end_date=body.implementation_end_date,
        working_hours=body.working_hours,
        holiday_working_hours=body.holiday_working_hours or None,
        worker_count=body.worker_count,
        version=1,
        created_at=_now(),
        worker_list=[],
        support_documents=[],
    )
    _check_schedule(sub)
    for i, w in enumerate(body.workers):
        sub.worker_list.append(_worker_row(sub.id, i, w))
    for i, d in enumerate(doc for doc in body.support_documents if doc.has_any_data()):
        sub.support_documents.append(
            SupportDocument(
                id=_new_id("doc"),
                submission_id=sub.id,
                position=i,
                document_type=d.document_type.value,
                document_subtype=d.document_subtype,
                document_number=d.document_number.strip(),
                document_date=d.document_date,
                document_upload=d.document_upload,
            )
        )
    session.add(sub)
    await session.flush()
    logger.info("Created submission %s for vendor %s", sub.id, sub.vendor_name)
    return sub


def _merge_workers(sub: Submission, workers: list[WorkerEntrySchema]) -> None:
    """Update known entries, add temporary ones. Removal only happens through delete_worker."""
    existing = {w.id: w for w in sub.worker_list}
    for position, w in enumerate(workers):
        row = existing.get(w.id)
        if row is None:
            sub.worker_list.append(_worker_row(sub.id, position, w))
            continue
        row.position = position
        row.worker_name = w.worker_name.strip()
        row.worker_photo = w.worker_photo
        row.hsse_pass_number = w.hsse_pass_number.strip()
        row.hsse_pass_valid_thru = w.hsse_pass_valid_thru
        row.hsse_pass_document_upload = w.hsse_pass_document_upload


async def update_submission(session: AsyncSession, submission_id: str, body: SubmissionUpdate) -> Submission:
    sub = await get_submission(session, submission_id)
    _check_writable(sub)
    _check_version(sub, body.version)

    changes = body.model_dump(exclude_unset=True, exclude={"version", "worker_list"})
    for field, value in changes.items():
        setattr(sub, field, value)
    if body.worker_list is not None:
        _merge_workers(sub, body.worker_list)
    _check_schedule(sub)
    _touch(sub)
    await session.flush()
    return sub


async def review_submission(session: AsyncSession, submission_id: str, body: ReviewDecision) -> Submission:
    sub = await get_submission(session, submission_id)
    outcome = ReviewStatus(body.review_status)
    state = LifecycleState(ReviewStatus(sub.review_status), ApprovalStatus(sub.approval_status))
    target = next_state(state, LifecycleEvent.SUBMIT_REVIEW, outcome)
    _check_version(sub, body.version)

    for field in (
        "implementation_start_date",
        "implementation_end_date",
        "working_hours",
        "holiday_working_hours",
        "implementation",
        "content",
    ):
        value = getattr(body, field)
        if value is not None:
            setattr(sub, field, value)
    _check_schedule(sub)

    # exactly one of the two notes survives a verdict
    if outcome == ReviewStatus.MEETS_REQUIREMENTS:
        sub.note_for_approver = (body.note_for_approver or "").strip() or None
        sub.note_for_vendor = None
    else:
        sub.note_for_vendor = (body.note_for_vendor or "").strip() or None
        sub.note_for_approver = None

    sub.review_status = target.review_status.value
    sub.approval_status = target.approval_status.value
    sub.reviewed_at = _now()
    _touch(sub)
    await session.flush()
    logger.info("Submission %s reviewed: %s", sub.id, sub.review_status)
    return sub


async def _check_simlok_number_free(session: AsyncSession, submission_id: str, simlok_number: str) -> None:
    result = await session.execute(
        select(Submission.id).where(Submission.simlok_number == simlok_number, Submission.id != submission_id)
    )
    if result.first() is not None:
        raise DuplicateSimlokNumber(simlok_number)


async def decide_approval(session: AsyncSession, submission_id: str, body: ApprovalDecision) -> Submission:
    sub = await get_submission(session, submission_id)
    event = LifecycleEvent.APPROVE if body.approval_status == "APPROVED" else LifecycleEvent.REJECT
    state = LifecycleState(ReviewStatus(sub.review_status), ApprovalStatus(sub.approval_status))
    target = next_state(state, event)
    _check_version(sub, body.version)

    if event == LifecycleEvent.APPROVE:
        simlok_number = (body.simlok_number or "").strip()
        if simlok_number:
            # a previewed number is not reserved; another approver may have issued it meanwhile
            await _check_simlok_number_free(session, sub.id, simlok_number)
            await register_simlok_number(session, simlok_number)
        else:
            simlok_number = await allocate_simlok_number(session, local_today().year)
        sub.simlok_number = simlok_number
        sub.simlok_date = body.simlok_date or local_today()
    else:
        sub.simlok_number = None
        sub.simlok_date = None

    sub.note_for_vendor = (body.note_for_vendor or "").strip() or sub.note_for_vendor
    sub.approval_status = target.approval_status.value
    sub.approved_at = _now()
    _touch(sub)
    try:
        await session.flush()
    except IntegrityError as e:
        raise DuplicateSimlokNumber(sub.simlok_number) from e
    logger.info("Submission %s %s", sub.id, sub.approval_status.lower())
    return sub


async def resubmit_submission(session: AsyncSession, submission_id: str) -> Submission:
    sub = await get_submission(session, submission_id)
    state = LifecycleState(ReviewStatus(sub.review_status), ApprovalStatus(sub.approval_status))
    target = next_state(state, LifecycleEvent.RESUBMIT)
    sub.review_status = target.review_status.value
    sub.approval_status = target.approval_status.value
    sub.reviewed_at = None
    sub.note_for_approver = None
    sub.note_for_vendor = None
    _touch(sub)
    await session.flush()
    return sub


async def delete_worker(session: AsyncSession, submission_id: str, worker_id: str) -> None:
    sub = await get_submission(session, submission_id)
    _check_writable(sub)
    worker = next((w for w in sub.worker_list if w.id == worker_id), None)
    if worker is None:
        raise SubmissionNotFoundError(worker_id)
    sub.worker_list.remove(worker)
    _touch(sub)
    await session.flush()


async def delete_submission(session: AsyncSession, submission_id: str) -> None:
    sub = await get_submission(session, submission_id)
    await session.delete(sub)
    await session.flush()


async def scan_history(session: AsyncSession, submission_id: str) -> dict[str, Any]:
    await get_submission(session, submission_id)
    result = await session.execute(
        select(QrScan).where(QrScan.submission_id == submission_id).order_by(QrScan.scanned_at.desc())
    )
    scans = [
        {
            "id": s.id,
            "scanned_by": s.scanned_by,
            "scan_location": s.scan_location,
            "scanned_at": s.scanned_at.isoformat() if s.scanned_at else None,
        }
        for s in result.scalars().all()
    ]
    total = await session.scalar(select(func.count()).select_from(QrScan).where(QrScan.submission_id == submission_id))
    return {
        "scans": scans,
        "total_scans": total or 0,
        "last_scan": scans[0] if scans else None,
        "has_been_scanned": bool(scans),
    }
