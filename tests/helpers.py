"""Builders for complete, valid test data. Tests break exactly the field they care about."""
from datetime import date

from schemas.submission import DocumentType, SupportDocumentSchema, WorkerEntrySchema

# 2025-01-06 is a Monday
MONDAY = date(2025, 1, 6)
FRIDAY = date(2025, 1, 10)
SATURDAY = date(2025, 1, 11)


def worker(n: int = 1, **overrides) -> WorkerEntrySchema:
    data = {
        "worker_name": f"Worker {n}",
        "worker_photo": f"/uploads/photos/worker-{n}.jpg",
        "hsse_pass_number": f"HSSE-{n:04d}",
        "hsse_pass_valid_thru": date(2026, 12, 31),
        "hsse_pass_document_upload": f"/uploads/hsse/worker-{n}.pdf",
    }
    data.update(overrides)
    return WorkerEntrySchema(**data)


def document(document_type: DocumentType, n: int = 1, **overrides) -> SupportDocumentSchema:
    data = {
        "document_type": document_type,
        "document_subtype": "Pekerjaan Panas" if document_type == DocumentType.SIKA else None,
        "document_number": f"{document_type.value}-{n:03d}",
        "document_date": date(2025, 1, 2),
        "document_upload": f"/uploads/docs/{document_type.value.lower()}-{n}.pdf",
    }
    data.update(overrides)
    return SupportDocumentSchema(**data)


def create_payload(workers: int = 2, **overrides) -> dict:
    """JSON body for POST /api/submissions."""
    data = {
        "vendor_name": "PT Sumber Energi",
        "officer_name": "Budi Santoso",
        "job_description": "Pipe maintenance",
        "work_location": "Tank farm 3",
        "work_facilities": "Scaffolding, welding set",
        "implementation_start_date": MONDAY.isoformat(),
        "implementation_end_date": FRIDAY.isoformat(),
        "working_hours": "08:00 - 17:00",
        "worker_count": workers,
        "workers": [worker(i + 1).model_dump(mode="json", exclude={"id"}) for i in range(workers)],
        "support_documents": [
            document(DocumentType.SIMJA).model_dump(mode="json", exclude={"id"}),
            document(DocumentType.SIKA).model_dump(mode="json", exclude={"id"}),
        ],
    }
    data.update(overrides)
    return data
