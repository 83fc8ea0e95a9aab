"""
Reviewer and approver form input, as held by the detail view before a transition is attempted.
Every field is optional here; completeness is decided by services.validation_rules.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, field_validator

from schemas.submission import ApprovalStatus, ReviewStatus, SubmissionSchema
from utils.dates import implementation_template


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ReviewForm(BaseModel):
    review_status: Optional[ReviewStatus] = None
    note_for_approver: str = ""
    note_for_vendor: str = ""
    implementation_start_date: Optional[date] = None
    implementation_end_date: Optional[date] = None
    working_hours: str = ""
    holiday_working_hours: str = ""
    implementation: str = ""
    content: str = ""

    blank_to_none = field_validator(
        "review_status", "implementation_start_date", "implementation_end_date", mode="before"
    )(_blank_to_none)

    @classmethod
    def from_submission(cls, submission: SubmissionSchema) -> "ReviewForm":
        """
        Pre-fill the form from the last synced state (re-review starts from the previous verdict).
        An empty implementation period gets the default template once both dates are known.
        """
        status = submission.review_status
        start, end = submission.implementation_start_date, submission.implementation_end_date
        implementation = submission.implementation or ""
        if not implementation.strip() and start is not None and end is not None:
            implementation = implementation_template(start, end)
        return cls(
            review_status=None if status == ReviewStatus.PENDING_REVIEW else status,
            note_for_approver=submission.note_for_approver or "",
            note_for_vendor=submission.note_for_vendor or "",
            implementation_start_date=start,
            implementation_end_date=end,
            working_hours=submission.working_hours or "",
            holiday_working_hours=submission.holiday_working_hours or "",
            implementation=implementation,
            content=submission.content or "",
        )


class ApprovalForm(BaseModel):
    approval_status: Optional[ApprovalStatus] = None
    simlok_number: str = ""
    simlok_date: Optional[date] = None
    note_for_vendor: str = ""

    blank_to_none = field_validator("approval_status", "simlok_date", mode="before")(_blank_to_none)
