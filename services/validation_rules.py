"""
Field-completeness and cross-field checks that gate each submission transition.
Every function is pure and returns a ValidationResult; callers surface result.first
and never attempt a partial transition. Field identifiers match the wire field names,
with list positions for roster and document entries (e.g. sika_documents[0].document_subtype).
"""
from __future__ import annotations

from typing import Iterable, Optional, Sequence

from schemas.forms import ApprovalForm, ReviewForm
from schemas.submission import (
    ApprovalStatus,
    DocumentType,
    OPTIONAL_DOCUMENT_TYPES,
    ReviewStatus,
    SubmissionCreate,
    SupportDocumentSchema,
    WorkerEntrySchema,
)
from schemas.validation import ValidationResult
from utils.dates import has_weekend_in_range

REVIEW_OUTCOMES = (ReviewStatus.MEETS_REQUIREMENTS, ReviewStatus.NOT_MEETS_REQUIREMENTS)
APPROVAL_DECISIONS = (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED)

DOCUMENT_GROUP_FIELDS = {
    DocumentType.SIMJA: "simja_documents",
    DocumentType.SIKA: "sika_documents",
    DocumentType.WORK_ORDER: "work_order_documents",
    DocumentType.KONTRAK_KERJA: "kontrak_kerja_documents",
    DocumentType.JSA: "jsa_documents",
}

DOCUMENT_LABELS = {
    DocumentType.SIMJA: "SIMJA",
    DocumentType.SIKA: "SIKA",
    DocumentType.WORK_ORDER: "Work order",
    DocumentType.KONTRAK_KERJA: "Labor contract",
    DocumentType.JSA: "Job safety analysis",
}


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def validate_schedule(
    start,
    end,
    working_hours: Optional[str],
    holiday_working_hours: Optional[str],
) -> ValidationResult:
    result = ValidationResult()
    if start is None:
        result.add("implementation_start_date", "Implementation start date is required.")
    if end is None:
        result.add("implementation_end_date", "Implementation end date is required.")
    if start is not None and end is not None and end < start:
        result.add(
            "implementation_end_date",
            "Implementation end date must not be earlier than the start date.",
        )
    if _blank(working_hours):
        result.add("working_hours", "Working hours are required.")
    if has_weekend_in_range(start, end) and _blank(holiday_working_hours):
        result.add(
            "holiday_working_hours",
            "Holiday working hours are required because the implementation period "
            "includes a Saturday or Sunday.",
        )
    return result


def validate_review_submission(review: ReviewForm) -> ValidationResult:
    """Checks a reviewer's verdict before the two-phase review save."""
    result = ValidationResult()
    if review.review_status not in REVIEW_OUTCOMES:
        result.add("review_status", "Select a review outcome before submitting the review.")
        return result

    if review.review_status == ReviewStatus.MEETS_REQUIREMENTS and _blank(review.note_for_approver):
        result.add(
            "note_for_approver",
            "A note for the approver is required when the submission meets the requirements.",
        )
    if review.review_status == ReviewStatus.NOT_MEETS_REQUIREMENTS and _blank(review.note_for_vendor):
        result.add(
            "note_for_vendor",
            "A note for the vendor is required when the submission does not meet the requirements.",
        )

    result.extend(
        validate_schedule(
            review.implementation_start_date,
            review.implementation_end_date,
            review.working_hours,
            review.holiday_working_hours,
        )
    )
    return result


def validate_approval_decision(decision: ApprovalForm) -> ValidationResult:
    result = ValidationResult()
    if decision.approval_status not in APPROVAL_DECISIONS:
        result.add("approval_status", "Select an approval decision before submitting.")
        return result
    if decision.approval_status == ApprovalStatus.APPROVED:
        if _blank(decision.simlok_number):
            result.add("simlok_number", "SIMLOK number is required to approve the submission.")
        if decision.simlok_date is None:
            result.add("simlok_date", "SIMLOK date is required to approve the submission.")
    return result


def _missing_document_fields(doc: SupportDocumentSchema, with_subtype: bool) -> list[str]:
    missing = []
    if with_subtype and _blank(doc.document_subtype):
        missing.append("document_subtype")
    if _blank(doc.document_number):
        missing.append("document_number")
    if doc.document_date is None:
        missing.append("document_date")
    if _blank(doc.document_upload):
        missing.append("document_upload")
    return missing


def _has_group_data(doc: SupportDocumentSchema, with_subtype: bool) -> bool:
    if with_subtype:
        return doc.has_any_data()
    return bool(not _blank(doc.document_number) or doc.document_date or not _blank(doc.document_upload))


def validate_document_group(
    docs: Sequence[SupportDocumentSchema],
    document_type: DocumentType = DocumentType.WORK_ORDER,
) -> ValidationResult:
    """
    All-or-nothing check: a document with any of number/date/upload filled must have all three.
    Entries with none filled are treated as absent. SIKA entries also count their subtype.
    """
    result = ValidationResult()
    with_subtype = document_type == DocumentType.SIKA
    group = DOCUMENT_GROUP_FIELDS[document_type]
    label = DOCUMENT_LABELS[document_type]
    for i, doc in enumerate(docs):
        if not _has_group_data(doc, with_subtype):
            continue
        for name in _missing_document_fields(doc, with_subtype):
            result.add(
                f"{group}[{i}].{name}",
                f"{label} #{i + 1}: {name.replace('_', ' ')} is required once any field of the document is filled.",
            )
    return result


def _complete(doc: SupportDocumentSchema, with_subtype: bool) -> bool:
    return not _missing_document_fields(doc, with_subtype)


def _by_type(documents: Iterable[SupportDocumentSchema], document_type: DocumentType) -> list[SupportDocumentSchema]:
    return [d for d in documents if d.document_type == document_type]


def validate_core_documents(documents: Iterable[SupportDocumentSchema]) -> ValidationResult:
    """At least one complete SIMJA and one complete SIKA (with subtype); no partial entries."""
    documents = list(documents)
    result = ValidationResult()
    for document_type in (DocumentType.SIMJA, DocumentType.SIKA):
        docs = _by_type(documents, document_type)
        with_subtype = document_type == DocumentType.SIKA
        group_errors = validate_document_group(docs, document_type)
        if not any(_complete(d, with_subtype) for d in docs) and group_errors.ok:
            label = DOCUMENT_LABELS[document_type]
            result.add(
                DOCUMENT_GROUP_FIELDS[document_type],
                f"At least one complete {label} document is required.",
            )
        result.extend(group_errors)
    return result


def validate_optional_documents(documents: Iterable[SupportDocumentSchema]) -> ValidationResult:
    documents = list(documents)
    result = ValidationResult()
    for document_type in OPTIONAL_DOCUMENT_TYPES:
        result.extend(validate_document_group(_by_type(documents, document_type), document_type))
    return result


def validate_worker_entry(worker: WorkerEntrySchema, index: int = 0) -> ValidationResult:
    result = ValidationResult()
    prefix = f"worker_list[{index}]"
    who = f"Worker {index + 1} ({worker.worker_name.strip() or 'unnamed'})"
    if _blank(worker.worker_name):
        result.add(f"{prefix}.worker_name", f"{who}: worker name is required.")
    if _blank(worker.worker_photo):
        result.add(f"{prefix}.worker_photo", f"{who}: worker photo is required.")
    if _blank(worker.hsse_pass_number):
        result.add(f"{prefix}.hsse_pass_number", f"{who}: HSSE pass number is required.")
    if worker.hsse_pass_valid_thru is None:
        result.add(f"{prefix}.hsse_pass_valid_thru", f"{who}: HSSE pass valid-through date is required.")
    if _blank(worker.hsse_pass_document_upload):
        result.add(f"{prefix}.hsse_pass_document_upload", f"{who}: HSSE pass document is required.")
    return result


def validate_worker_roster(workers: Sequence[WorkerEntrySchema], declared_count: Optional[int]) -> ValidationResult:
    """Create-path roster rule: declared count and roster rows must agree exactly."""
    result = ValidationResult()
    if not workers:
        result.add("worker_list", "At least one worker is required.")
        return result
    if declared_count is None:
        result.add("worker_count", "Worker count is required.")
    elif declared_count != len(workers):
        result.add(
            "worker_count",
            f"Worker count ({declared_count}) does not match the number of worker entries ({len(workers)}).",
        )
    for i, worker in enumerate(workers):
        result.extend(validate_worker_entry(worker, i))
    return result


def validate_submission_create(form: SubmissionCreate) -> ValidationResult:
    result = ValidationResult()
    required_text = (
        ("vendor_name", "Vendor name"),
        ("officer_name", "Officer name"),
        ("job_description", "Job description"),
        ("work_location", "Work location"),
        ("work_facilities", "Work facilities"),
    )
    for field, label in required_text:
        if _blank(getattr(form, field)):
            result.add(field, f"{label} is required.")
    result.extend(
        validate_schedule(
            form.implementation_start_date,
            form.implementation_end_date,
            form.working_hours,
            form.holiday_working_hours,
        )
    )
    result.extend(validate_core_documents(form.support_documents))
    result.extend(validate_optional_documents(form.support_documents))
    result.extend(validate_worker_roster(form.workers, form.worker_count))
    return result
