"""
Working copy of a submission's worker roster while it is being edited.

The reconciler tracks three things: the declared worker count, the visible roster, and the ids of
persisted entries removed from the roster whose deletion has not reached the store yet. Nothing is
sent anywhere until reconcile_for_save() runs.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Optional

from schemas.submission import WorkerEntrySchema
from schemas.validation import ValidationResult
from services.validation_rules import validate_worker_entry

logger = logging.getLogger(__name__)

MIN_DECLARED_COUNT = 0
MAX_DECLARED_COUNT = 9999

DeleteWorker = Callable[[str], Awaitable[None]]


class RosterConfirmationRequired(Exception):
    """Raised before any side effect when the declared count and roster length disagree."""

    def __init__(self, declared_count: int, roster_length: int):
        self.declared_count = declared_count
        self.roster_length = roster_length
        super().__init__(
            f"Declared worker count is {declared_count} but the roster has {roster_length} "
            f"entries. Confirm to save {declared_count} as the worker count."
        )


@dataclass
class RosterSavePlan:
    to_delete: list[str]
    final_roster: list[WorkerEntrySchema]
    final_count: int
    failed_deletions: list[str] = field(default_factory=list)

    @property
    def count_mismatch(self) -> bool:
        return self.final_count != len(self.final_roster)

    @property
    def deleted(self) -> list[str]:
        return [i for i in self.to_delete if i not in self.failed_deletions]


class WorkerRosterReconciler:
    def __init__(self, roster: Iterable[WorkerEntrySchema], declared_count: Optional[int] = None):
        self._roster: list[WorkerEntrySchema] = []
        self._declared_count = 0
        self._pending_deletion: list[str] = []
        self.reset(roster, declared_count)

    @property
    def roster(self) -> list[WorkerEntrySchema]:
        return list(self._roster)

    @property
    def declared_count(self) -> int:
        return self._declared_count

    @property
    def pending_deletion(self) -> frozenset[str]:
        return frozenset(self._pending_deletion)

    @property
    def has_count_mismatch(self) -> bool:
        return self._declared_count != len(self._roster)

    @property
    def is_dirty(self) -> bool:
        return bool(self._pending_deletion) or any(w.is_temporary for w in self._roster)

    def reset(
        self,
        roster: Iterable[WorkerEntrySchema],
        declared_count: Optional[int] = None,
        pending_deletion: Iterable[str] = (),
    ) -> None:
        """
        Discard local edits and start again from a synced roster. Ids in pending_deletion (deletes
        that failed last time) stay hidden and are tried again on the next save.
        """
        pending = list(dict.fromkeys(pending_deletion))
        self._roster = [w.model_copy() for w in roster if w.id not in pending]
        self._pending_deletion = pending
        # a stored count of 0 means "never declared"; fall back to the roster length
        self._declared_count = self._clamp(declared_count or len(self._roster))

    @staticmethod
    def _clamp(n: int) -> int:
        return max(MIN_DECLARED_COUNT, min(MAX_DECLARED_COUNT, int(n)))

    def set_declared_count(self, n: int) -> int:
        self._declared_count = self._clamp(n)
        return self._declared_count

    def add_entry(self, entry: Optional[WorkerEntrySchema] = None) -> WorkerEntrySchema:
        entry = entry or WorkerEntrySchema()
        self._roster.append(entry)
        return entry

    def update_entry(self, worker_id: str, **changes) -> WorkerEntrySchema:
        for i, worker in enumerate(self._roster):
            if worker.id == worker_id:
                self._roster[i] = worker.model_copy(update=changes)
                return self._roster[i]
        raise KeyError(worker_id)

    def remove_entry(self, worker_id: str) -> ValidationResult:
        if len(self._roster) <= 1:
            return ValidationResult.failure(
                "worker_list",
                "At least one worker must remain; the last worker entry cannot be removed.",
            )
        entry = next((w for w in self._roster if w.id == worker_id), None)
        if entry is None:
            return ValidationResult.failure("worker_list", f"Worker {worker_id} is not in the roster.")
        self._roster = [w for w in self._roster if w.id != worker_id]
        if not entry.is_temporary and worker_id not in self._pending_deletion:
            self._pending_deletion.append(worker_id)
        return ValidationResult.success()

    def validate(self) -> ValidationResult:
        result = ValidationResult()
        if self._declared_count < 1:
            result.add("worker_count", "Enter a valid worker count (at least 1 worker).")
        for i, worker in enumerate(self._roster):
            result.extend(validate_worker_entry(worker, i))
        return result

    def confirmation_message(self) -> Optional[str]:
        if not self.has_count_mismatch:
            return None
        return str(RosterConfirmationRequired(self._declared_count, len(self._roster)))

    async def reconcile_for_save(self, delete_worker: DeleteWorker, confirmed: bool = False) -> RosterSavePlan:
        """
        Issue pending deletions one at a time, then hand back what must be persisted.

        A failing delete is logged and reported in failed_deletions; the rest of the batch still runs
        and the id stays pending so the next explicit save tries it again. Ids are only dropped from
        the pending set once the store accepted their deletion.
        """
        if self.has_count_mismatch and not confirmed:
            raise RosterConfirmationRequired(self._declared_count, len(self._roster))

        to_delete = list(self._pending_deletion)
        failed: list[str] = []
        for worker_id in to_delete:
            try:
                await delete_worker(worker_id)
            except Exception as e:
                logger.warning("Failed to delete worker %s: %s", worker_id, e)
                failed.append(worker_id)
        self._pending_deletion = [i for i in self._pending_deletion if i in failed]

        return RosterSavePlan(
            to_delete=to_delete,
            final_roster=self.roster,
            final_count=self._declared_count,
            failed_deletions=failed,
        )
