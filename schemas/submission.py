from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

TEMP_ID_PREFIX = "temp_"


class ReviewStatus(str, enum.Enum):
    PENDING_REVIEW = "PENDING_REVIEW"
    MEETS_REQUIREMENTS = "MEETS_REQUIREMENTS"
    NOT_MEETS_REQUIREMENTS = "NOT_MEETS_REQUIREMENTS"


class ApprovalStatus(str, enum.Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DocumentType(str, enum.Enum):
    SIMJA = "SIMJA"
    SIKA = "SIKA"
    WORK_ORDER = "WORK_ORDER"
    KONTRAK_KERJA = "KONTRAK_KERJA"
    JSA = "JSA"


OPTIONAL_DOCUMENT_TYPES = (DocumentType.WORK_ORDER, DocumentType.KONTRAK_KERJA, DocumentType.JSA)


def new_temp_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex[:12]}"


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _none_to_blank(value):
    return "" if value is None else value


class SupportDocumentSchema(BaseModel):
    id: Optional[str] = None
    document_type: DocumentType
    document_subtype: Optional[str] = None
    document_number: str = ""
    document_date: Optional[date] = None
    document_upload: str = ""

    model_config = {"from_attributes": True}

    blank_date_to_none = field_validator("document_date", mode="before")(_blank_to_none)
    none_to_blank = field_validator("document_number", "document_upload", mode="before")(_none_to_blank)

    def has_any_data(self) -> bool:
        return bool(
            (self.document_subtype or "").strip()
            or self.document_number.strip()
            or self.document_date
            or self.document_upload.strip()
        )


class WorkerEntrySchema(BaseModel):
    id: str = Field(default_factory=new_temp_id)
    worker_name: str = ""
    worker_photo: str = ""
    hsse_pass_number: str = ""
    hsse_pass_valid_thru: Optional[date] = None
    hsse_pass_document_upload: str = ""

    model_config = {"from_attributes": True}

    blank_date_to_none = field_validator("hsse_pass_valid_thru", mode="before")(_blank_to_none)
    none_to_blank = field_validator(
        "worker_name", "worker_photo", "hsse_pass_number", "hsse_pass_document_upload", mode="before"
    )(_none_to_blank)

    @property
    def is_temporary(self) -> bool:
        """Entries created locally that the store has never seen."""
        return self.id.startswith(TEMP_ID_PREFIX)


class SubmissionSchema(BaseModel):
    """Full submission as returned by GET /api/submissions/{id}."""

    id: str
    vendor_name: str = ""
    officer_name: str = ""
    job_description: Optional[str] = None
    work_location: Optional[str] = None
    work_facilities: Optional[str] = None
    created_at: datetime

    review_status: ReviewStatus = ReviewStatus.PENDING_REVIEW
    approval_status: ApprovalStatus = ApprovalStatus.PENDING_APPROVAL

    implementation_start_date: Optional[date] = None
    implementation_end_date: Optional[date] = None
    working_hours: Optional[str] = None
    holiday_working_hours: Optional[str] = None
    implementation: Optional[str] = None
    content: Optional[str] = None

    note_for_approver: Optional[str] = None
    note_for_vendor: Optional[str] = None

    simlok_number: Optional[str] = None
    simlok_date: Optional[date] = None

    worker_count: int = 0
    worker_list: list[WorkerEntrySchema] = Field(default_factory=list)
    support_documents: list[SupportDocumentSchema] = Field(default_factory=list)

    version: int = 1

    model_config = {"from_attributes": True}

    def documents_of(self, document_type: DocumentType) -> list[SupportDocumentSchema]:
        return [d for d in self.support_documents if d.document_type == document_type]


class SubmissionCreate(BaseModel):
    vendor_name: str = ""
    officer_name: str = ""
    job_description: str = ""
    work_location: str = ""
    work_facilities: str = ""
    implementation_start_date: Optional[date] = None
    implementation_end_date: Optional[date] = None
    working_hours: str = ""
    holiday_working_hours: Optional[str] = None
    worker_count: int = 0
    workers: list[WorkerEntrySchema] = Field(default_factory=list)
    support_documents: list[SupportDocumentSchema] = Field(default_factory=list)

    blank_dates_to_none = field_validator(
        "implementation_start_date", "implementation_end_date", mode="before"
    )(_blank_to_none)


class SubmissionUpdate(BaseModel):
    """General field update (PATCH /api/submissions/{id}). Omitted fields are left untouched."""

    job_description: Optional[str] = None
    work_location: Optional[str] = None
    work_facilities: Optional[str] = None
    implementation_start_date: Optional[date] = None
    implementation_end_date: Optional[date] = None
    working_hours: Optional[str] = None
    holiday_working_hours: Optional[str] = None
    implementation: Optional[str] = None
    content: Optional[str] = None
    worker_count: Optional[int] = Field(None, ge=0, le=9999)
    worker_list: Optional[list[WorkerEntrySchema]] = None
    version: Optional[int] = None


class ReviewDecision(BaseModel):
    review_status: Literal["MEETS_REQUIREMENTS", "NOT_MEETS_REQUIREMENTS"]
    note_for_approver: Optional[str] = None
    note_for_vendor: Optional[str] = None
    implementation_start_date: Optional[date] = None
    implementation_end_date: Optional[date] = None
    working_hours: Optional[str] = None
    holiday_working_hours: Optional[str] = None
    implementation: Optional[str] = None
    content: Optional[str] = None
    version: Optional[int] = None


class ApprovalDecision(BaseModel):
    approval_status: Literal["APPROVED", "REJECTED"]
    simlok_number: Optional[str] = None
    simlok_date: Optional[date] = None
    note_for_vendor: Optional[str] = None
    version: Optional[int] = None
