"""
Submission lifecycle: the legal moves over (review_status, approval_status).

    review (MEETS | NOT_MEETS)   reviewer, any number of times while approval is pending
    approve | reject             approver, once the submission has been reviewed
    resubmit                     vendor, after a NOT_MEETS_REQUIREMENTS verdict

APPROVED and REJECTED are final; nothing here moves a submission out of them.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from schemas.submission import ApprovalStatus, ReviewStatus, SubmissionSchema

FINAL_APPROVAL_STATUSES = frozenset({ApprovalStatus.APPROVED, ApprovalStatus.REJECTED})
REVIEWED_STATUSES = frozenset({ReviewStatus.MEETS_REQUIREMENTS, ReviewStatus.NOT_MEETS_REQUIREMENTS})


class LifecycleEvent(str, enum.Enum):
    SUBMIT_REVIEW = "SUBMIT_REVIEW"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    RESUBMIT = "RESUBMIT"


class IllegalTransition(Exception):
    def __init__(self, state: "LifecycleState", event: LifecycleEvent, reason: str):
        self.state = state
        self.event = event
        self.reason = reason
        super().__init__(
            f"Cannot {event.value.lower().replace('_', ' ')} a submission in state "
            f"{state.review_status.value}/{state.approval_status.value}: {reason}"
        )


@dataclass(frozen=True)
class LifecycleState:
    review_status: ReviewStatus
    approval_status: ApprovalStatus

    @classmethod
    def of(cls, submission: SubmissionSchema) -> "LifecycleState":
        return cls(submission.review_status, submission.approval_status)

    @property
    def is_final(self) -> bool:
        return self.approval_status in FINAL_APPROVAL_STATUSES

    @property
    def is_reviewed(self) -> bool:
        return self.review_status in REVIEWED_STATUSES


REVIEW_FIELDS = ("implementation_start_date", "implementation_end_date", "working_hours")

_REQUIRED_FIELDS = {
    (LifecycleEvent.SUBMIT_REVIEW, ReviewStatus.MEETS_REQUIREMENTS): ("note_for_approver",) + REVIEW_FIELDS,
    (LifecycleEvent.SUBMIT_REVIEW, ReviewStatus.NOT_MEETS_REQUIREMENTS): ("note_for_vendor",) + REVIEW_FIELDS,
    (LifecycleEvent.APPROVE, None): ("simlok_number", "simlok_date"),
    (LifecycleEvent.REJECT, None): (),
    (LifecycleEvent.RESUBMIT, None): (),
}


def required_fields(event: LifecycleEvent, outcome: Optional[ReviewStatus] = None) -> tuple[str, ...]:
    """Side-payload a transition must carry. Holiday hours are conditional and checked by validation."""
    key = (event, outcome if event == LifecycleEvent.SUBMIT_REVIEW else None)
    if key not in _REQUIRED_FIELDS:
        raise ValueError(f"Unknown transition {event.value} with outcome {outcome}")
    return _REQUIRED_FIELDS[key]


def _check(state: LifecycleState, event: LifecycleEvent, outcome: Optional[ReviewStatus]) -> Optional[str]:
    """Reason the event is illegal in this state, or None."""
    if state.is_final:
        return "the approval decision is final"
    if state.approval_status != ApprovalStatus.PENDING_APPROVAL:
        return "the submission is not awaiting approval"
    if event == LifecycleEvent.SUBMIT_REVIEW:
        if outcome not in REVIEWED_STATUSES:
            return "a review must conclude MEETS_REQUIREMENTS or NOT_MEETS_REQUIREMENTS"
        return None
    if event in (LifecycleEvent.APPROVE, LifecycleEvent.REJECT):
        if not state.is_reviewed:
            return "the submission has not been reviewed yet"
        return None
    if event == LifecycleEvent.RESUBMIT:
        if state.review_status != ReviewStatus.NOT_MEETS_REQUIREMENTS:
            return "only submissions that did not meet the requirements can be resubmitted"
        return None
    return "unknown event"


def can_apply(state: LifecycleState, event: LifecycleEvent, outcome: Optional[ReviewStatus] = None) -> bool:
    if event == LifecycleEvent.SUBMIT_REVIEW and outcome is None:
        # "can the reviewer act at all" - either verdict will do
        return any(_check(state, event, o) is None for o in REVIEWED_STATUSES)
    return _check(state, event, outcome) is None


def next_state(
    state: LifecycleState,
    event: LifecycleEvent,
    outcome: Optional[ReviewStatus] = None,
) -> LifecycleState:
    reason = _check(state, event, outcome)
    if reason is not None:
        raise IllegalTransition(state, event, reason)
    if event == LifecycleEvent.SUBMIT_REVIEW:
        return LifecycleState(outcome, ApprovalStatus.PENDING_APPROVAL)
    if event == LifecycleEvent.APPROVE:
        return LifecycleState(state.review_status, ApprovalStatus.APPROVED)
    if event == LifecycleEvent.REJECT:
        return LifecycleState(state.review_status, ApprovalStatus.REJECTED)
    return LifecycleState(ReviewStatus.PENDING_REVIEW, ApprovalStatus.PENDING_APPROVAL)


def available_events(state: LifecycleState) -> list[LifecycleEvent]:
    """Events a UI should enable for this state, in table order."""
    return [e for e in LifecycleEvent if can_apply(state, e)]


def is_final(state: LifecycleState) -> bool:
    return state.is_final


def is_vendor_editable(state: LifecycleState) -> bool:
    """Vendors may edit until a reviewer accepts it, and again after a NOT_MEETS verdict."""
    return state.approval_status == ApprovalStatus.PENDING_APPROVAL and state.review_status in (
        ReviewStatus.PENDING_REVIEW,
        ReviewStatus.NOT_MEETS_REQUIREMENTS,
    )
