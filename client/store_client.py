"""
Async HTTP client for /api/submissions. Wraps an injected httpx.AsyncClient so tests can point it
at the ASGI app (httpx.ASGITransport) and the sync controller can cancel calls by cancelling the
awaiting task.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from client.errors import DecodeError, StoreError, SubmissionConflict, SubmissionNotFound
from config import settings
from schemas.scan import ScanHistory
from schemas.submission import (
    ApprovalDecision,
    ReviewDecision,
    SubmissionCreate,
    SubmissionSchema,
    SubmissionUpdate,
    WorkerEntrySchema,
)
from utils.dates import local_today
from utils.simlok import fallback_simlok_number

logger = logging.getLogger(__name__)

BASE_PATH = "/api/submissions"


def _detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or resp.reason_phrase
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, dict):
        return str(detail.get("message") or detail)
    return str(detail or body)


def decode_submission(payload: Any) -> SubmissionSchema:
    """Typed submission from a store response ({"submission": {...}} or the bare object)."""
    if isinstance(payload, dict) and isinstance(payload.get("submission"), dict):
        payload = payload["submission"]
    try:
        return SubmissionSchema.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(f"Submission payload could not be decoded: {e.error_count()} invalid field(s)") from e


class SubmissionStoreClient:
    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    @classmethod
    def from_settings(cls) -> "SubmissionStoreClient":
        return cls(httpx.AsyncClient(base_url=settings.api_base_url, timeout=settings.request_timeout_seconds))

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _request(self, method: str, path: str, submission_id: str = "", **kwargs) -> httpx.Response:
        try:
            resp = await self.http.request(method, f"{BASE_PATH}{path}", **kwargs)
        except httpx.HTTPError as e:
            raise StoreError(f"Could not reach the submission store: {e}") from e
        if resp.status_code == 404:
            raise SubmissionNotFound(submission_id, _detail(resp))
        if resp.status_code == 409:
            raise SubmissionConflict(_detail(resp))
        if resp.status_code >= 400:
            raise StoreError(f"Submission store returned {resp.status_code}: {_detail(resp)}", resp.status_code)
        return resp

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise DecodeError("Submission store returned a non-JSON body") from e

    async def get_submission(self, submission_id: str) -> SubmissionSchema:
        resp = await self._request("GET", f"/{submission_id}", submission_id)
        return decode_submission(self._json(resp))

    async def create_submission(self, body: SubmissionCreate) -> SubmissionSchema:
        resp = await self._request("POST", "", json=body.model_dump(mode="json"))
        return decode_submission(self._json(resp))

    async def update_submission(self, submission_id: str, body: SubmissionUpdate) -> SubmissionSchema:
        resp = await self._request(
            "PATCH", f"/{submission_id}", submission_id, json=body.model_dump(mode="json", exclude_unset=True)
        )
        return decode_submission(self._json(resp))

    async def submit_review(self, submission_id: str, body: ReviewDecision) -> SubmissionSchema:
        resp = await self._request(
            "PATCH", f"/{submission_id}/review", submission_id, json=body.model_dump(mode="json", exclude_none=True)
        )
        return decode_submission(self._json(resp))

    async def submit_approval(self, submission_id: str, body: ApprovalDecision) -> SubmissionSchema:
        resp = await self._request(
            "PATCH", f"/{submission_id}/approve", submission_id, json=body.model_dump(mode="json", exclude_none=True)
        )
        return decode_submission(self._json(resp))

    async def resubmit(self, submission_id: str) -> SubmissionSchema:
        resp = await self._request("PATCH", f"/{submission_id}/resubmit", submission_id)
        return decode_submission(self._json(resp))

    async def delete_submission(self, submission_id: str) -> None:
        await self._request("DELETE", f"/{submission_id}", submission_id)

    async def list_workers(self, submission_id: str) -> list[WorkerEntrySchema]:
        resp = await self._request("GET", f"/{submission_id}/workers", submission_id)
        try:
            return [WorkerEntrySchema.model_validate(w) for w in self._json(resp).get("workers", [])]
        except (ValidationError, AttributeError) as e:
            raise DecodeError("Worker list could not be decoded") from e

    async def delete_worker(self, submission_id: str, worker_id: str) -> None:
        await self._request("DELETE", f"/{submission_id}/workers/{worker_id}", submission_id)

    async def get_scan_history(self, submission_id: str) -> Optional[ScanHistory]:
        """Scan history, or None when the store has none for this submission."""
        try:
            resp = await self._request("GET", f"/{submission_id}/scans", submission_id)
        except SubmissionNotFound:
            return None
        try:
            return ScanHistory.model_validate(self._json(resp))
        except ValidationError as e:
            raise DecodeError("Scan history could not be decoded") from e

    async def next_simlok_number(self, year: Optional[int] = None) -> str:
        """Previewed next SIMLOK number; falls back to a placeholder when the store is unavailable."""
        year = year or local_today().year
        try:
            resp = await self._request("GET", "/simlok/next-number", params={"year": year})
            number = self._json(resp).get("next_simlok_number")
        except (StoreError, AttributeError) as e:
            logger.warning("Could not fetch next SIMLOK number: %s", e)
            number = None
        return number or fallback_simlok_number(year)
