"""
Tests for the submission state machine in services.lifecycle.
Run from the repository root: python -m pytest tests/test_lifecycle.py -v
"""
import unittest

from schemas.submission import ApprovalStatus, ReviewStatus
from services.lifecycle import (
    IllegalTransition,
    LifecycleEvent,
    LifecycleState,
    available_events,
    can_apply,
    is_final,
    is_vendor_editable,
    next_state,
    required_fields,
)

NEW = LifecycleState(ReviewStatus.PENDING_REVIEW, ApprovalStatus.PENDING_APPROVAL)
MEETS = LifecycleState(ReviewStatus.MEETS_REQUIREMENTS, ApprovalStatus.PENDING_APPROVAL)
NOT_MEETS = LifecycleState(ReviewStatus.NOT_MEETS_REQUIREMENTS, ApprovalStatus.PENDING_APPROVAL)
APPROVED = LifecycleState(ReviewStatus.MEETS_REQUIREMENTS, ApprovalStatus.APPROVED)
REJECTED = LifecycleState(ReviewStatus.NOT_MEETS_REQUIREMENTS, ApprovalStatus.REJECTED)


class TestTransitions(unittest.TestCase):
    def test_review_outcomes(self):
        self.assertEqual(next_state(NEW, LifecycleEvent.SUBMIT_REVIEW, ReviewStatus.MEETS_REQUIREMENTS), MEETS)
        self.assertEqual(
            next_state(NEW, LifecycleEvent.SUBMIT_REVIEW, ReviewStatus.NOT_MEETS_REQUIREMENTS), NOT_MEETS
        )

    def test_re_review_overwrites_outcome(self):
        self.assertEqual(
            next_state(MEETS, LifecycleEvent.SUBMIT_REVIEW, ReviewStatus.NOT_MEETS_REQUIREMENTS), NOT_MEETS
        )

    def test_review_needs_a_verdict(self):
        with self.assertRaises(IllegalTransition):
            next_state(NEW, LifecycleEvent.SUBMIT_REVIEW, ReviewStatus.PENDING_REVIEW)

    def test_approve_and_reject_keep_review_status(self):
        self.assertEqual(next_state(MEETS, LifecycleEvent.APPROVE), APPROVED)
        self.assertEqual(next_state(NOT_MEETS, LifecycleEvent.REJECT), REJECTED)

    def test_approval_requires_review(self):
        with self.assertRaises(IllegalTransition) as ctx:
            next_state(NEW, LifecycleEvent.APPROVE)
        self.assertIn("not been reviewed", str(ctx.exception))

    def test_resubmit_returns_to_review_queue(self):
        self.assertEqual(next_state(NOT_MEETS, LifecycleEvent.RESUBMIT), NEW)
        self.assertFalse(can_apply(MEETS, LifecycleEvent.RESUBMIT))

    def test_final_states_accept_nothing(self):
        for state in (APPROVED, REJECTED):
            self.assertTrue(is_final(state))
            self.assertEqual(available_events(state), [])
            for event in LifecycleEvent:
                with self.assertRaises(IllegalTransition):
                    next_state(state, event, ReviewStatus.MEETS_REQUIREMENTS)

    def test_pending_review_approval_status_is_stuck_but_not_final(self):
        state = LifecycleState(ReviewStatus.PENDING_REVIEW, ApprovalStatus.PENDING_REVIEW)
        self.assertFalse(is_final(state))
        self.assertEqual(available_events(state), [])


class TestAvailableEvents(unittest.TestCase):
    def test_new_submission(self):
        self.assertEqual(available_events(NEW), [LifecycleEvent.SUBMIT_REVIEW])

    def test_reviewed_not_meets(self):
        self.assertEqual(
            available_events(NOT_MEETS),
            [LifecycleEvent.SUBMIT_REVIEW, LifecycleEvent.APPROVE, LifecycleEvent.REJECT, LifecycleEvent.RESUBMIT],
        )

    def test_vendor_editable(self):
        self.assertTrue(is_vendor_editable(NEW))
        self.assertTrue(is_vendor_editable(NOT_MEETS))
        self.assertFalse(is_vendor_editable(MEETS))
        self.assertFalse(is_vendor_editable(APPROVED))


class TestRequiredFields(unittest.TestCase):
    def test_review_notes_are_exclusive(self):
        meets = required_fields(LifecycleEvent.SUBMIT_REVIEW, ReviewStatus.MEETS_REQUIREMENTS)
        not_meets = required_fields(LifecycleEvent.SUBMIT_REVIEW, ReviewStatus.NOT_MEETS_REQUIREMENTS)
        self.assertIn("note_for_approver", meets)
        self.assertNotIn("note_for_vendor", meets)
        self.assertIn("note_for_vendor", not_meets)
        self.assertNotIn("note_for_approver", not_meets)

    def test_approve_needs_simlok_identity(self):
        self.assertEqual(required_fields(LifecycleEvent.APPROVE), ("simlok_number", "simlok_date"))
        self.assertEqual(required_fields(LifecycleEvent.REJECT), ())


if __name__ == "__main__":
    unittest.main()
