"""Create-form state as saved in a local draft."""
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from schemas.submission import (
    DocumentType,
    OPTIONAL_DOCUMENT_TYPES,
    SubmissionCreate,
    SupportDocumentSchema,
    WorkerEntrySchema,
)

DRAFT_VERSION = 1


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _doc(document_type: DocumentType) -> SupportDocumentSchema:
    return SupportDocumentSchema(document_type=document_type)


class SubmissionFormFields(BaseModel):
    vendor_name: str = ""
    officer_name: str = ""
    job_description: str = ""
    work_location: str = ""
    work_facilities: str = ""
    implementation_start_date: Optional[date] = None
    implementation_end_date: Optional[date] = None
    working_hours: str = ""
    holiday_working_hours: str = ""

    blank_dates_to_none = field_validator(
        "implementation_start_date", "implementation_end_date", mode="before"
    )(_blank_to_none)


class SubmissionFormState(BaseModel):
    form: SubmissionFormFields = Field(default_factory=SubmissionFormFields)
    workers: list[WorkerEntrySchema] = Field(default_factory=lambda: [WorkerEntrySchema()])
    desired_count: int = 1
    worker_count_input: str = "1"
    show_bulk: bool = False
    bulk_names: str = ""
    simja_documents: list[SupportDocumentSchema] = Field(default_factory=lambda: [_doc(DocumentType.SIMJA)])
    sika_documents: list[SupportDocumentSchema] = Field(default_factory=lambda: [_doc(DocumentType.SIKA)])
    work_order_documents: list[SupportDocumentSchema] = Field(default_factory=list)
    kontrak_kerja_documents: list[SupportDocumentSchema] = Field(default_factory=list)
    jsa_documents: list[SupportDocumentSchema] = Field(default_factory=list)
    visible_optional_docs: list[DocumentType] = Field(default_factory=list)

    def documents(self, document_type: DocumentType) -> list[SupportDocumentSchema]:
        return {
            DocumentType.SIMJA: self.simja_documents,
            DocumentType.SIKA: self.sika_documents,
            DocumentType.WORK_ORDER: self.work_order_documents,
            DocumentType.KONTRAK_KERJA: self.kontrak_kerja_documents,
            DocumentType.JSA: self.jsa_documents,
        }[document_type]

    def effective_count(self) -> int:
        """Declared worker count; an empty count input means "as many as the roster has"."""
        if not self.worker_count_input.strip():
            return len(self.workers)
        return self.desired_count

    def to_create(self) -> SubmissionCreate:
        """Create payload. Hidden optional groups are left out, as are documents with nothing filled in."""
        documents: list[SupportDocumentSchema] = []
        for document_type in DocumentType:
            if document_type in OPTIONAL_DOCUMENT_TYPES and document_type not in self.visible_optional_docs:
                continue
            for doc in self.documents(document_type):
                if doc.has_any_data():
                    documents.append(doc.model_copy(update={"document_type": document_type}))
        return SubmissionCreate(
            **self.form.model_dump(),
            worker_count=self.effective_count(),
            workers=self.workers,
            support_documents=documents,
        )


class SubmissionDraft(SubmissionFormState):
    """What is written to storage: the form state tagged with its format version."""

    v: int = DRAFT_VERSION
