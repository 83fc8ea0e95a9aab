"""Failures surfaced by the submission store client and the workflow actions built on it."""
from __future__ import annotations

from typing import Optional


class StoreError(Exception):
    """Transport or HTTP failure talking to the submission store. Retrying may help."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SubmissionNotFound(StoreError):
    def __init__(self, submission_id: str, message: str = "Submission not found"):
        self.submission_id = submission_id
        super().__init__(message, status_code=404)


class SubmissionConflict(StoreError):
    """The store refused a write based on stale data, or a record that is already final."""

    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class DecodeError(StoreError):
    """A payload from the store did not have the expected shape."""


class ReviewPhaseError(StoreError):
    """
    One phase of the two-phase review save failed. When phase is "review_decision" the schedule
    and templates from the first phase are already saved; retry with the submission that phase
    returned.
    """

    def __init__(self, phase: str, cause: StoreError):
        self.phase = phase
        self.cause = cause
        super().__init__(f"Review save failed while saving the {phase.replace('_', ' ')}: {cause}", cause.status_code)
