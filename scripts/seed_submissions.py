"""
Seed a handful of SIMLOK submissions in different lifecycle states, for local development.
Run: python -m scripts.seed_submissions (from the repository root). Pass --reset to drop existing rows first.
"""
import asyncio
import os
import sys
from datetime import date

# Add parent so we can import from the project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import SessionLocal, init_db, reset_db
from models import QrScan
from schemas.submission import (
    ApprovalDecision,
    DocumentType,
    ReviewDecision,
    SubmissionCreate,
    SupportDocumentSchema,
    WorkerEntrySchema,
)
from services.submission_store import create_submission, decide_approval, review_submission


def _workers(prefix: str, count: int) -> list[WorkerEntrySchema]:
    return [
        WorkerEntrySchema(
            worker_name=f"{prefix} {i + 1}",
            worker_photo=f"/uploads/photos/{prefix.lower()}-{i + 1}.jpg",
            hsse_pass_number=f"HSSE-{prefix[:3].upper()}-{i + 1:03d}",
            hsse_pass_valid_thru=date(2026, 12, 31),
            hsse_pass_document_upload=f"/uploads/hsse/{prefix.lower()}-{i + 1}.pdf",
        )
        for i in range(count)
    ]


def _documents(number: str) -> list[SupportDocumentSchema]:
    return [
        SupportDocumentSchema(
            document_type=DocumentType.SIMJA,
            document_number=f"SIMJA/{number}",
            document_date=date(2025, 1, 2),
            document_upload=f"/uploads/docs/simja-{number}.pdf",
        ),
        SupportDocumentSchema(
            document_type=DocumentType.SIKA,
            document_subtype="Pekerjaan Panas",
            document_number=f"SIKA/{number}",
            document_date=date(2025, 1, 2),
            document_upload=f"/uploads/docs/sika-{number}.pdf",
        ),
    ]


SUBMISSIONS_DATA = [
    {
        "vendor_name": "PT Sumber Energi",
        "officer_name": "Budi Santoso",
        "job_description": "Pipe maintenance",
        "work_location": "Tank farm 3",
        "work_facilities": "Scaffolding, welding set",
        "implementation_start_date": date(2025, 1, 6),
        "implementation_end_date": date(2025, 1, 10),
        "working_hours": "08:00 - 17:00",
        "worker_count": 3,
        "workers": _workers("Welder", 3),
        "support_documents": _documents("001"),
        "stage": "pending",
    },
    {
        "vendor_name": "CV Teknik Mandiri",
        "officer_name": "Siti Rahma",
        "job_description": "Electrical panel inspection",
        "work_location": "Substation B",
        "work_facilities": "Insulated tools",
        "implementation_start_date": date(2025, 1, 9),
        "implementation_end_date": date(2025, 1, 12),
        "working_hours": "08:00 - 16:00",
        "holiday_working_hours": "09:00 - 13:00",
        "worker_count": 2,
        "workers": _workers("Electrician", 2),
        "support_documents": _documents("002"),
        "stage": "reviewed",
    },
    {
        "vendor_name": "PT Bangun Persada",
        "officer_name": "Andi Wijaya",
        "job_description": "Roof repair",
        "work_location": "Warehouse 1",
        "work_facilities": "Ladder, harness",
        "implementation_start_date": date(2025, 1, 13),
        "implementation_end_date": date(2025, 1, 15),
        "working_hours": "07:00 - 15:00",
        "worker_count": 2,
        "workers": _workers("Roofer", 2),
        "support_documents": _documents("003"),
        "stage": "approved",
    },
]


async def seed(reset: bool = False):
    if reset:
        await reset_db()
    else:
        await init_db()
    async with SessionLocal() as session:
        for data in SUBMISSIONS_DATA:
            fields = {k: v for k, v in data.items() if k != "stage"}
            sub = await create_submission(session, SubmissionCreate(**fields))
            if data["stage"] in ("reviewed", "approved"):
                await review_submission(
                    session,
                    sub.id,
                    ReviewDecision(review_status="MEETS_REQUIREMENTS", note_for_approver="Documents complete"),
                )
            if data["stage"] == "approved":
                await decide_approval(session, sub.id, ApprovalDecision(approval_status="APPROVED"))
                session.add(QrScan(id=f"scan-{sub.id}", submission_id=sub.id, scanned_by="Gate 2 security"))
            print(f"Seeded submission {sub.id} ({data['vendor_name']}, {data['stage']})")
        await session.commit()
    print("Seed complete.")


if __name__ == "__main__":
    asyncio.run(seed(reset="--reset" in sys.argv[1:]))
