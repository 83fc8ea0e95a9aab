"""
Reviewer, approver and vendor actions. Each validates locally first (an invalid form never reaches
the store), performs the write, tells the user how it went and returns an ActionOutcome.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Optional

from client.drafts import DraftPersistence
from client.errors import ReviewPhaseError, StoreError, SubmissionConflict, SubmissionNotFound
from client.ports import Notifier
from client.store_client import SubmissionStoreClient
from client.sync import SyncController
from schemas.draft import SubmissionFormState
from schemas.forms import ApprovalForm, ReviewForm
from schemas.submission import (
    ApprovalDecision,
    ApprovalStatus,
    ReviewDecision,
    ReviewStatus,
    SubmissionSchema,
    SubmissionUpdate,
)
from schemas.validation import ValidationResult
from services.lifecycle import LifecycleEvent, LifecycleState, can_apply
from services.roster import RosterConfirmationRequired, WorkerRosterReconciler
from services.validation_rules import (
    validate_approval_decision,
    validate_review_submission,
    validate_submission_create,
)
from utils.dates import has_weekend_in_range, local_today

logger = logging.getLogger(__name__)

PHASE_SCHEDULE = "schedule_update"
PHASE_DECISION = "review_decision"


class OutcomeStatus(str, enum.Enum):
    OK = "ok"
    INVALID = "invalid"
    NEEDS_CONFIRMATION = "needs_confirmation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FAILED = "failed"


@dataclass
class ActionOutcome:
    status: OutcomeStatus
    submission: Optional[SubmissionSchema] = None
    message: str = ""
    errors: ValidationResult = field(default_factory=ValidationResult)
    failed_deletions: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK


class SubmissionWorkflow:
    def __init__(
        self,
        store: SubmissionStoreClient,
        notifier: Notifier,
        sync: Optional[SyncController] = None,
        drafts: Optional[DraftPersistence] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.sync = sync
        self.drafts = drafts

    def _invalid(self, title: str, result: ValidationResult) -> ActionOutcome:
        message = result.first.message
        self.notifier.error(title, message)
        return ActionOutcome(OutcomeStatus.INVALID, message=message, errors=result)

    def _store_failure(self, title: str, error: StoreError) -> ActionOutcome:
        cause = error.cause if isinstance(error, ReviewPhaseError) else error
        if isinstance(cause, SubmissionNotFound):
            if self.sync is not None and self.sync.is_open:
                self.sync.handle_not_found()
            else:
                self.notifier.error("Submission not found", "This submission no longer exists.")
            return ActionOutcome(OutcomeStatus.NOT_FOUND, message=str(error))
        if isinstance(cause, SubmissionConflict):
            self.notifier.error(title, f"{error}. Reload the submission to see the latest changes.")
            return ActionOutcome(OutcomeStatus.CONFLICT, message=str(error))
        logger.warning("%s: %s", title, error)
        self.notifier.error(title, f"{error}. Please try again.")
        return ActionOutcome(OutcomeStatus.FAILED, message=str(error))

    def _show(self, submission: SubmissionSchema) -> None:
        if self.sync is not None:
            self.sync.apply(submission)

    async def submit_review(self, submission: SubmissionSchema, form: ReviewForm) -> ActionOutcome:
        """
        Save the schedule and templates, then the verdict. The verdict is never sent if the first
        write failed. If the verdict fails the schedule stays saved and the outcome carries the
        submission as the first write left it; retry with that copy, the old one is now stale.
        """
        result = validate_review_submission(form)
        if not result.ok:
            return self._invalid("Review incomplete", result)

        weekend = has_weekend_in_range(form.implementation_start_date, form.implementation_end_date)
        try:
            updated = await self.store.update_submission(
                submission.id,
                SubmissionUpdate(
                    implementation_start_date=form.implementation_start_date,
                    implementation_end_date=form.implementation_end_date,
                    working_hours=form.working_hours.strip(),
                    holiday_working_hours=form.holiday_working_hours.strip() if weekend else None,
                    implementation=form.implementation or None,
                    content=form.content or None,
                    version=submission.version,
                ),
            )
        except StoreError as e:
            return self._store_failure("Review not saved", ReviewPhaseError(PHASE_SCHEDULE, e))
        self._show(updated)

        meets = form.review_status == ReviewStatus.MEETS_REQUIREMENTS
        try:
            reviewed = await self.store.submit_review(
                submission.id,
                ReviewDecision(
                    review_status=form.review_status.value,
                    note_for_approver=form.note_for_approver.strip() if meets else None,
                    note_for_vendor=None if meets else form.note_for_vendor.strip(),
                    version=updated.version,
                ),
            )
        except StoreError as e:
            outcome = self._store_failure("Review not saved", ReviewPhaseError(PHASE_DECISION, e))
            if outcome.status != OutcomeStatus.NOT_FOUND:
                outcome.submission = updated
            return outcome

        self._show(reviewed)
        self.notifier.success("Review saved", "The review was saved and the approver can now decide.")
        return ActionOutcome(OutcomeStatus.OK, submission=reviewed)

    async def prepare_approval_form(self, form: Optional[ApprovalForm] = None) -> ApprovalForm:
        """Fill in the previewed SIMLOK number and today's date where the approver left them empty."""
        form = form or ApprovalForm()
        updates = {}
        if not form.simlok_number.strip():
            updates["simlok_number"] = await self.store.next_simlok_number(local_today().year)
        if form.simlok_date is None:
            updates["simlok_date"] = local_today()
        return form.model_copy(update=updates)

    async def submit_approval(self, submission: SubmissionSchema, form: ApprovalForm) -> ActionOutcome:
        result = validate_approval_decision(form)
        if not result.ok:
            return self._invalid("Approval incomplete", result)

        approved = form.approval_status == ApprovalStatus.APPROVED
        body = ApprovalDecision(
            approval_status=form.approval_status.value,
            simlok_number=form.simlok_number.strip() if approved else None,
            simlok_date=form.simlok_date if approved else None,
            note_for_vendor=form.note_for_vendor.strip() or None,
            version=submission.version,
        )
        try:
            decided = await self.store.submit_approval(submission.id, body)
        except StoreError as e:
            return self._store_failure("Approval not saved", e)

        self._show(decided)
        if approved:
            self.notifier.success("Submission approved", f"SIMLOK {decided.simlok_number} was issued.")
        else:
            self.notifier.success("Submission rejected", "The vendor will see the rejection.")
        return ActionOutcome(OutcomeStatus.OK, submission=decided)

    async def save_roster(
        self,
        submission: SubmissionSchema,
        roster: WorkerRosterReconciler,
        confirmed: bool = False,
    ) -> ActionOutcome:
        """
        Persist an edited roster. Deletions go out first, one by one; then the remaining entries and
        the declared count are saved. A count that differs from the roster length needs confirmed=True.
        """
        result = roster.validate()
        if not result.ok:
            return self._invalid("Worker list incomplete", result)

        async def delete_worker(worker_id: str) -> None:
            await self.store.delete_worker(submission.id, worker_id)

        try:
            plan = await roster.reconcile_for_save(delete_worker, confirmed=confirmed)
        except RosterConfirmationRequired as e:
            self.notifier.warning("Confirm worker count", str(e))
            return ActionOutcome(OutcomeStatus.NEEDS_CONFIRMATION, message=str(e))

        try:
            # deletes above already moved the version on, so this save does not pin one
            updated = await self.store.update_submission(
                submission.id,
                SubmissionUpdate(worker_list=plan.final_roster, worker_count=plan.final_count),
            )
        except StoreError as e:
            return self._store_failure("Worker list not saved", e)

        roster.reset(updated.worker_list, updated.worker_count, pending_deletion=plan.failed_deletions)
        self._show(updated)
        if plan.failed_deletions:
            message = f"{len(plan.failed_deletions)} worker(s) could not be removed; they will be retried on the next save."
            self.notifier.warning("Some workers were not removed", message)
        else:
            message = ""
            self.notifier.success("Worker list saved", f"{plan.final_count} worker(s) recorded.")
        return ActionOutcome(
            OutcomeStatus.OK,
            submission=updated,
            message=message,
            failed_deletions=list(plan.failed_deletions),
        )

    async def create_submission(self, state: SubmissionFormState) -> ActionOutcome:
        body = state.to_create()
        result = validate_submission_create(body)
        if not result.ok:
            return self._invalid("Submission incomplete", result)
        try:
            created = await self.store.create_submission(body)
        except StoreError as e:
            return self._store_failure("Submission not sent", e)

        if self.drafts is not None:
            self.drafts.clear()
        self.notifier.success("Submission sent", "Your submission is waiting for review.")
        return ActionOutcome(OutcomeStatus.OK, submission=created)

    async def resubmit(self, submission: SubmissionSchema) -> ActionOutcome:
        if not can_apply(LifecycleState.of(submission), LifecycleEvent.RESUBMIT):
            result = ValidationResult.failure(
                "review_status", "Only submissions that did not meet the requirements can be resubmitted."
            )
            return self._invalid("Cannot resubmit", result)
        try:
            resubmitted = await self.store.resubmit(submission.id)
        except StoreError as e:
            return self._store_failure("Resubmission failed", e)
        self._show(resubmitted)
        self.notifier.success("Submission resubmitted", "The submission is back in the review queue.")
        return ActionOutcome(OutcomeStatus.OK, submission=resubmitted)
