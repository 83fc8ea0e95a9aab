"""
Local draft of the create-submission form.

Saves are debounced and best-effort: a storage failure is logged and the form keeps working.
Entries that fail to parse or carry another format version are ignored.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError

from client.ports import Notifier
from client.timers import Debouncer
from config import settings
from schemas.draft import DRAFT_VERSION, SubmissionDraft, SubmissionFormState
from schemas.submission import WorkerEntrySchema

logger = logging.getLogger(__name__)

STORAGE_KEY = "simlok:submissionFormDraft.v1"


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self) -> None:
        self.items: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove(self, key: str) -> None:
        self.items.pop(key, None)


class JsonFileStorage:
    """All keys in one JSON object on disk, rewritten on every change."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or settings.draft_storage_path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            logger.warning("Draft storage %s is corrupt; starting empty", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, str]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)


def has_substantial_content(state: SubmissionFormState) -> bool:
    """Whether a draft holds more than a blank form: uploads, optional groups or extra workers."""
    if any(w.worker_photo.strip() for w in state.workers):
        return True
    if any(w.hsse_pass_document_upload.strip() for w in state.workers):
        return True
    groups = (
        state.simja_documents,
        state.sika_documents,
        state.work_order_documents,
        state.kontrak_kerja_documents,
        state.jsa_documents,
    )
    if any(d.document_upload.strip() for docs in groups for d in docs):
        return True
    return bool(state.visible_optional_docs) or len(state.workers) > 1


class DraftPersistence:
    def __init__(
        self,
        storage: KeyValueStorage,
        notifier: Notifier,
        debounce_seconds: Optional[float] = None,
        key: str = STORAGE_KEY,
    ):
        self.storage = storage
        self.notifier = notifier
        self.key = key
        self.has_draft = False
        self._notified = False
        self._pending: Optional[SubmissionFormState] = None
        delay = settings.draft_debounce_seconds if debounce_seconds is None else debounce_seconds
        self._debouncer = Debouncer(delay, self._write_pending)

    def restore(self) -> Optional[SubmissionFormState]:
        """The saved form state, or None. The user is told about a restored draft only once."""
        try:
            raw = self.storage.get(self.key)
        except OSError as e:
            logger.warning("Could not read draft: %s", e)
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
            if not isinstance(data, dict) or data.get("v") != DRAFT_VERSION:
                return None
            draft = SubmissionDraft.model_validate(data)
        except (ValueError, ValidationError) as e:
            logger.warning("Ignoring unreadable draft: %s", e)
            return None

        state = SubmissionFormState.model_validate(draft.model_dump(exclude={"v"}))
        if not state.workers:
            state.workers = [WorkerEntrySchema()]
        self.has_draft = True
        if not self._notified:
            self._notified = True
            self.notifier.success("Draft restored", "Your unsaved submission was restored from local storage.")
        return state

    def schedule_save(self, state: SubmissionFormState) -> None:
        """Save state once no further change arrives within the debounce delay."""
        self._pending = state.model_copy(deep=True)
        self._debouncer.trigger()

    @property
    def save_pending(self) -> bool:
        return self._debouncer.pending

    def flush(self) -> None:
        self._debouncer.flush()

    def _write_pending(self) -> None:
        state, self._pending = self._pending, None
        if state is None:
            return
        draft = SubmissionDraft(v=DRAFT_VERSION, **state.model_dump())
        try:
            self.storage.set(self.key, draft.model_dump_json())
        except OSError as e:
            logger.warning("Could not save draft: %s", e)
            return
        self.has_draft = True

    def can_delete(self, state: SubmissionFormState) -> bool:
        return self.has_draft and has_substantial_content(state)

    def delete(self, confirm: bool) -> Optional[SubmissionFormState]:
        """Drop the draft after the user confirmed. Returns the blank form to show, or None if not confirmed."""
        if not confirm:
            return None
        self.clear()
        self.notifier.success("Draft deleted", "The saved draft was deleted and the form was reset.")
        return SubmissionFormState()

    def clear(self) -> None:
        self._debouncer.cancel()
        self._pending = None
        try:
            self.storage.remove(self.key)
        except OSError as e:
            logger.warning("Could not remove draft: %s", e)
        self.has_draft = False

    def close(self) -> None:
        """Stop a pending save; the last written draft stays."""
        self._debouncer.cancel()
        self._pending = None
