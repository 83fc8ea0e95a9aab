"""
API tests for /api/submissions against an in-memory SQLite database, plus the store client that
talks to it. Run from the repository root: python -m pytest tests/test_api_submissions.py -v
"""
import unittest

import httpx

from client.errors import StoreError, SubmissionConflict, SubmissionNotFound
from client.store_client import SubmissionStoreClient
from client.workflow import OutcomeStatus, SubmissionWorkflow
from database import engine, reset_db
from main import app
from schemas.forms import ReviewForm
from schemas.submission import ReviewStatus, SubmissionUpdate
from tests.fakes import RecordingNotifier
from tests.helpers import FRIDAY, MONDAY, SATURDAY, create_payload
from utils.dates import local_today


class ApiTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        await reset_db()
        self.http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

    async def asyncTearDown(self):
        await self.http.aclose()
        # each test runs on its own event loop; do not carry the pooled connection over
        await engine.dispose()

    async def _create(self, **overrides) -> dict:
        resp = await self.http.post("/api/submissions", json=create_payload(**overrides))
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["submission"]

    async def _review(self, sub: dict, outcome: str = "MEETS_REQUIREMENTS", **extra) -> httpx.Response:
        body = {"review_status": outcome, **extra}
        if outcome == "MEETS_REQUIREMENTS":
            body.setdefault("note_for_approver", "Looks good")
        else:
            body.setdefault("note_for_vendor", "Please fix the SIKA")
        return await self.http.patch(f"/api/submissions/{sub['id']}/review", json=body)


class TestCreateAndRead(ApiTestCase):
    async def test_create_assigns_ids_and_initial_state(self):
        sub = await self._create()
        self.assertTrue(sub["id"].startswith("sub-"))
        self.assertEqual(sub["review_status"], "PENDING_REVIEW")
        self.assertEqual(sub["approval_status"], "PENDING_APPROVAL")
        self.assertEqual(sub["version"], 1)
        self.assertEqual(sub["worker_count"], 2)
        self.assertEqual(len(sub["worker_list"]), 2)
        self.assertFalse(any(w["id"].startswith("temp_") for w in sub["worker_list"]))

        resp = await self.http.get(f"/api/submissions/{sub['id']}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["submission"]["vendor_name"], "PT Sumber Energi")

    async def test_create_rejects_incomplete_submission(self):
        resp = await self.http.post("/api/submissions", json=create_payload(worker_count=3))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"]["errors"][0]["field"], "worker_count")

    async def test_missing_submission(self):
        resp = await self.http.get("/api/submissions/sub-missing")
        self.assertEqual(resp.status_code, 404)

    async def test_delete_submission(self):
        sub = await self._create()
        resp = await self.http.delete(f"/api/submissions/{sub['id']}")
        self.assertEqual(resp.status_code, 204)
        resp = await self.http.get(f"/api/submissions/{sub['id']}")
        self.assertEqual(resp.status_code, 404)


class TestUpdates(ApiTestCase):
    async def test_holiday_hours_dropped_without_weekend(self):
        sub = await self._create()
        resp = await self.http.patch(
            f"/api/submissions/{sub['id']}",
            json={"holiday_working_hours": "08:00 - 12:00", "version": 1},
        )
        self.assertEqual(resp.status_code, 200)
        updated = resp.json()["submission"]
        self.assertIsNone(updated["holiday_working_hours"])
        self.assertEqual(updated["version"], 2)

    async def test_holiday_hours_kept_over_weekend(self):
        sub = await self._create()
        resp = await self.http.patch(
            f"/api/submissions/{sub['id']}",
            json={"implementation_end_date": SATURDAY.isoformat(), "holiday_working_hours": "08:00 - 12:00"},
        )
        self.assertEqual(resp.json()["submission"]["holiday_working_hours"], "08:00 - 12:00")

    async def test_stale_version_conflicts(self):
        sub = await self._create()
        first = await self.http.patch(f"/api/submissions/{sub['id']}", json={"working_hours": "07:00", "version": 1})
        self.assertEqual(first.status_code, 200)
        second = await self.http.patch(f"/api/submissions/{sub['id']}", json={"working_hours": "09:00", "version": 1})
        self.assertEqual(second.status_code, 409)

    async def test_inverted_dates_rejected(self):
        sub = await self._create()
        resp = await self.http.patch(
            f"/api/submissions/{sub['id']}",
            json={"implementation_start_date": FRIDAY.isoformat(), "implementation_end_date": MONDAY.isoformat()},
        )
        self.assertEqual(resp.status_code, 400)

    async def test_worker_count_bounds(self):
        sub = await self._create()
        resp = await self.http.patch(f"/api/submissions/{sub['id']}", json={"worker_count": 10000})
        self.assertEqual(resp.status_code, 422)

    async def test_workers_list_and_delete(self):
        sub = await self._create(workers=3)
        worker_id = sub["worker_list"][1]["id"]
        resp = await self.http.delete(f"/api/submissions/{sub['id']}/workers/{worker_id}")
        self.assertEqual(resp.status_code, 204)

        resp = await self.http.get(f"/api/submissions/{sub['id']}/workers")
        self.assertEqual(len(resp.json()["workers"]), 2)
        resp = await self.http.delete(f"/api/submissions/{sub['id']}/workers/{worker_id}")
        self.assertEqual(resp.status_code, 404)

    async def test_scan_history(self):
        sub = await self._create()
        resp = await self.http.get(f"/api/submissions/{sub['id']}/scans")
        self.assertEqual(resp.json(), {"scans": [], "total_scans": 0, "last_scan": None, "has_been_scanned": False})
        resp = await self.http.get("/api/submissions/sub-missing/scans")
        self.assertEqual(resp.status_code, 404)


class TestLifecycleEndpoints(ApiTestCase):
    async def test_review_notes_are_exclusive(self):
        sub = await self._create()
        resp = await self._review(sub, "NOT_MEETS_REQUIREMENTS")
        self.assertEqual(resp.json()["submission"]["note_for_vendor"], "Please fix the SIKA")

        resp = await self._review(sub, "MEETS_REQUIREMENTS")
        reviewed = resp.json()["submission"]
        self.assertEqual(reviewed["review_status"], "MEETS_REQUIREMENTS")
        self.assertEqual(reviewed["note_for_approver"], "Looks good")
        self.assertIsNone(reviewed["note_for_vendor"])

    async def test_approval_requires_review(self):
        sub = await self._create()
        resp = await self.http.patch(f"/api/submissions/{sub['id']}/approve", json={"approval_status": "APPROVED"})
        self.assertEqual(resp.status_code, 409)

    async def test_approve_allocates_simlok_number(self):
        year = local_today().year
        sub = await self._create()
        await self._review(sub)
        resp = await self.http.patch(f"/api/submissions/{sub['id']}/approve", json={"approval_status": "APPROVED"})
        approved = resp.json()["submission"]
        self.assertEqual(approved["approval_status"], "APPROVED")
        self.assertEqual(approved["simlok_number"], f"1/S00330/{year}-S0")
        self.assertIsNotNone(approved["simlok_date"])

        resp = await self.http.get("/api/submissions/simlok/next-number", params={"year": year})
        self.assertEqual(resp.json(), {"next_simlok_number": f"2/S00330/{year}-S0"})

    async def test_typed_number_advances_sequence(self):
        sub = await self._create()
        await self._review(sub)
        await self.http.patch(
            f"/api/submissions/{sub['id']}/approve",
            json={"approval_status": "APPROVED", "simlok_number": "5/S00330/2024-S0", "simlok_date": "2024-12-30"},
        )
        resp = await self.http.get("/api/submissions/simlok/next-number", params={"year": 2024})
        self.assertEqual(resp.json()["next_simlok_number"], "6/S00330/2024-S0")

    async def test_simlok_number_issued_once(self):
        first, second = await self._create(), await self._create()
        await self._review(first)
        await self._review(second)
        body = {"approval_status": "APPROVED", "simlok_number": "1/S00330/2025-S0", "simlok_date": "2025-01-10"}

        resp = await self.http.patch(f"/api/submissions/{first['id']}/approve", json=body)
        self.assertEqual(resp.status_code, 200)
        resp = await self.http.patch(f"/api/submissions/{second['id']}/approve", json=body)
        self.assertEqual(resp.status_code, 409)
        self.assertIn("1/S00330/2025-S0", resp.json()["detail"])

        resp = await self.http.get(f"/api/submissions/{second['id']}")
        self.assertEqual(resp.json()["submission"]["approval_status"], "PENDING_APPROVAL")
        self.assertIsNone(resp.json()["submission"]["simlok_number"])

    async def test_final_submission_is_frozen(self):
        sub = await self._create()
        await self._review(sub, "NOT_MEETS_REQUIREMENTS")
        resp = await self.http.patch(f"/api/submissions/{sub['id']}/approve", json={"approval_status": "REJECTED"})
        self.assertEqual(resp.json()["submission"]["approval_status"], "REJECTED")
        self.assertIsNone(resp.json()["submission"]["simlok_number"])

        resp = await self.http.patch(f"/api/submissions/{sub['id']}", json={"working_hours": "07:00"})
        self.assertEqual(resp.status_code, 409)
        resp = await self._review(sub)
        self.assertEqual(resp.status_code, 409)

    async def test_resubmit_after_not_meets(self):
        sub = await self._create()
        resp = await self.http.patch(f"/api/submissions/{sub['id']}/resubmit")
        self.assertEqual(resp.status_code, 409)

        await self._review(sub, "NOT_MEETS_REQUIREMENTS")
        resp = await self.http.patch(f"/api/submissions/{sub['id']}/resubmit")
        resubmitted = resp.json()["submission"]
        self.assertEqual(resubmitted["review_status"], "PENDING_REVIEW")
        self.assertIsNone(resubmitted["note_for_vendor"])


class TestStoreClient(ApiTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.client = SubmissionStoreClient(self.http)

    async def test_typed_submission(self):
        sub = await self._create()
        loaded = await self.client.get_submission(sub["id"])
        self.assertEqual(loaded.id, sub["id"])
        self.assertEqual(loaded.review_status, ReviewStatus.PENDING_REVIEW)
        self.assertEqual(loaded.implementation_start_date, MONDAY)

    async def test_error_mapping(self):
        with self.assertRaises(SubmissionNotFound):
            await self.client.get_submission("sub-missing")
        sub = await self._create()
        await self.client.update_submission(sub["id"], SubmissionUpdate(working_hours="07:00", version=1))
        with self.assertRaises(SubmissionConflict):
            await self.client.update_submission(sub["id"], SubmissionUpdate(working_hours="09:00", version=1))

    async def test_scan_history_tolerates_404(self):
        self.assertIsNone(await self.client.get_scan_history("sub-missing"))

    async def test_next_simlok_number_falls_back(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://test") as http:
            offline = SubmissionStoreClient(http)
            with self.assertLogs("client.store_client", level="WARNING"):
                number = await offline.next_simlok_number(2025)
            self.assertEqual(number, "1/S00330/2025-S0")
            with self.assertRaises(StoreError):
                await offline.get_submission("sub-1")

    async def test_review_workflow_end_to_end(self):
        sub = await self._create()
        notifier = RecordingNotifier()
        workflow = SubmissionWorkflow(self.client, notifier)
        current = await self.client.get_submission(sub["id"])

        form = ReviewForm.from_submission(current).model_copy(
            update={"review_status": ReviewStatus.MEETS_REQUIREMENTS, "note_for_approver": "OK to approve"}
        )
        outcome = await workflow.submit_review(current, form)
        self.assertEqual(outcome.status, OutcomeStatus.OK, outcome.message)
        self.assertEqual(outcome.submission.review_status, ReviewStatus.MEETS_REQUIREMENTS)
        self.assertEqual(outcome.submission.version, 3)

        # the same stale copy cannot be reviewed again
        outcome = await workflow.submit_review(current, form)
        self.assertEqual(outcome.status, OutcomeStatus.CONFLICT)

    async def test_review_retry_after_decision_failure(self):
        sub = await self._create()
        client = _DecisionFailsOnce(self.http)
        workflow = SubmissionWorkflow(client, RecordingNotifier())
        current = await client.get_submission(sub["id"])
        form = ReviewForm.from_submission(current).model_copy(
            update={"review_status": ReviewStatus.MEETS_REQUIREMENTS, "note_for_approver": "OK to approve"}
        )

        failed = await workflow.submit_review(current, form)
        self.assertEqual(failed.status, OutcomeStatus.FAILED)
        self.assertEqual(failed.submission.version, 2)

        outcome = await workflow.submit_review(failed.submission, form)
        self.assertEqual(outcome.status, OutcomeStatus.OK, outcome.message)
        self.assertEqual(outcome.submission.review_status, ReviewStatus.MEETS_REQUIREMENTS)
        self.assertEqual(outcome.submission.version, 4)


class _DecisionFailsOnce(SubmissionStoreClient):
    def __init__(self, http):
        super().__init__(http)
        self.failed = False

    async def submit_review(self, submission_id, body):
        if not self.failed:
            self.failed = True
            raise StoreError("internal error", 500)
        return await super().submit_review(submission_id, body)


if __name__ == "__main__":
    unittest.main()
