"""
Keeps the submission shown in a detail view in step with the store.

Change notifications come from an injected push channel; while it is disconnected the controller
polls instead, never both at once. Only one detail fetch is ever outstanding: starting another
cancels the previous one and results from superseded fetches are dropped.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Iterator, Optional

from client.errors import StoreError, SubmissionNotFound
from client.ports import Notifier, ViewHost
from client.push_channel import PushChannel, Unsubscribe
from client.store_client import SubmissionStoreClient
from client.timers import CancellableTimer
from config import settings
from schemas.events import SubmissionChanged
from schemas.scan import ScanHistory
from schemas.submission import SubmissionSchema

logger = logging.getLogger(__name__)


class SyncController:
    def __init__(
        self,
        store: SubmissionStoreClient,
        push: PushChannel,
        notifier: Notifier,
        view: ViewHost,
        poll_interval: Optional[float] = None,
        reload_delay: Optional[float] = None,
        close_grace: Optional[float] = None,
    ):
        self.store = store
        self.push = push
        self.notifier = notifier
        self.view = view
        self.poll_interval = settings.poll_interval_seconds if poll_interval is None else poll_interval
        self.reload_delay = settings.not_found_reload_delay_seconds if reload_delay is None else reload_delay
        self.close_grace = settings.close_grace_seconds if close_grace is None else close_grace

        self.submission_id: Optional[str] = None
        self.submission: Optional[SubmissionSchema] = None
        self.scan_history: Optional[ScanHistory] = None

        self._generation = 0
        self._fetch_task: Optional[asyncio.Task] = None
        self._tasks: set[asyncio.Task] = set()
        self._unsubscribers: list[Unsubscribe] = []
        self._poll_timer: Optional[CancellableTimer] = None
        self._clear_timer: Optional[CancellableTimer] = None
        self._reload_timer: Optional[CancellableTimer] = None
        self._editing = False
        self._refresh_deferred = False

    @property
    def is_open(self) -> bool:
        return self.submission_id is not None

    @property
    def is_polling(self) -> bool:
        return self._poll_timer is not None and self._poll_timer.active

    @property
    def editing(self) -> bool:
        return self._editing

    async def open(self, submission_id: str) -> Optional[SubmissionSchema]:
        """
        Start watching a submission and return what is displayed once the first load settles.
        None if that load failed, or if a newer fetch superseded it and is still in flight; the
        newer result is shown when it lands.
        """
        if self.is_open:
            self.close()
        if self._clear_timer is not None:
            self._clear_timer.cancel()
            self._clear_timer = None

        self.submission_id = str(submission_id)
        self.submission = None
        self.scan_history = None
        self._unsubscribers = [
            self.push.subscribe(self.submission_id, self._on_push),
            self.push.subscribe_connection(self._on_connection_change),
        ]
        if not self.push.connected:
            self._start_polling()

        self._spawn(self._load_scan_history(self.submission_id))
        await self.refresh(foreground=True)
        # a push, poll or apply() may have replaced the first fetch
        return self.submission if self.submission_id == str(submission_id) else None

    async def refresh(self, foreground: bool = True) -> Optional[SubmissionSchema]:
        """
        Refetch the displayed submission. Foreground refreshes (user-initiated) notify on failure;
        background ones (push, polling) only log. A 404 is always treated as the submission
        having been deleted.
        """
        if not self.is_open:
            return None
        self._cancel_fetch()
        self._generation += 1
        generation = self._generation
        submission_id = self.submission_id
        task = asyncio.ensure_future(self.store.get_submission(submission_id))
        self._fetch_task = task
        try:
            submission = await task
        except asyncio.CancelledError:
            if asyncio.current_task().cancelling():
                raise
            return None
        except SubmissionNotFound:
            if generation == self._generation:
                self.handle_not_found()
            return None
        except StoreError as e:
            if generation != self._generation:
                return None
            if foreground:
                self.notifier.error("Failed to load submission", f"{e}. Please try again.")
            else:
                logger.warning("Background refresh of submission %s failed: %s", submission_id, e)
            return None
        finally:
            if self._fetch_task is task:
                self._fetch_task = None

        if generation != self._generation:
            return None
        self.submission = submission
        return submission

    def apply(self, submission: SubmissionSchema) -> None:
        """Show a submission returned by a write; any fetch still in flight is older and gets dropped."""
        if not self.is_open or submission.id != self.submission_id:
            return
        self._cancel_fetch()
        self._generation += 1
        self.submission = submission

    def handle_not_found(self) -> None:
        submission_id = self.submission_id
        logger.info("Submission %s no longer exists; closing view", submission_id)
        self.notifier.error("Submission not found", "This submission no longer exists. It may have been deleted.")
        self.close()
        self.view.close()
        if self._reload_timer is not None:
            self._reload_timer.cancel()
        self._reload_timer = CancellableTimer(self.reload_delay, self.view.reload).start()

    def begin_edit(self) -> None:
        self._editing = True

    def end_edit(self) -> None:
        self._editing = False
        if self._refresh_deferred:
            self._refresh_deferred = False
            self._trigger_refresh()

    @contextmanager
    def edit_session(self) -> Iterator["SyncController"]:
        """Hold back push and poll refreshes while a local edit is in progress."""
        self.begin_edit()
        try:
            yield self
        finally:
            self.end_edit()

    def close(self) -> None:
        """Stop watching. Displayed state is cleared after a short grace period."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._stop_polling()
        self._cancel_fetch()
        self._generation += 1
        for task in list(self._tasks):
            task.cancel()
        self._editing = False
        self._refresh_deferred = False
        if self.submission_id is None:
            return
        self.submission_id = None
        self._clear_timer = CancellableTimer(self.close_grace, self._clear).start()

    def dispose(self) -> None:
        """close() plus cancelling a pending not-found reload."""
        self.close()
        if self._reload_timer is not None:
            self._reload_timer.cancel()
            self._reload_timer = None

    @asynccontextmanager
    async def watch(self, submission_id: str) -> AsyncIterator["SyncController"]:
        await self.open(submission_id)
        try:
            yield self
        finally:
            self.close()

    def _clear(self) -> None:
        self._clear_timer = None
        if not self.is_open:
            self.submission = None
            self.scan_history = None

    def _cancel_fetch(self) -> None:
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()
        self._fetch_task = None

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _load_scan_history(self, submission_id: str) -> None:
        try:
            history = await self.store.get_scan_history(submission_id)
        except StoreError as e:
            logger.warning("Could not load scan history for %s: %s", submission_id, e)
            return
        if self.submission_id == submission_id:
            self.scan_history = history

    def _trigger_refresh(self) -> None:
        if not self.is_open:
            return
        if self._editing:
            self._refresh_deferred = True
            return
        self._spawn(self.refresh(foreground=False))

    def _on_push(self, message: SubmissionChanged) -> None:
        if message.submission_id == self.submission_id:
            self._trigger_refresh()

    def _on_connection_change(self, connected: bool) -> None:
        if connected:
            self._stop_polling()
        elif self.is_open:
            self._start_polling()

    def _start_polling(self) -> None:
        if self.is_polling:
            return
        self._poll_timer = CancellableTimer(self.poll_interval, self._trigger_refresh, repeat=True).start()

    def _stop_polling(self) -> None:
        if self._poll_timer is not None:
            self._poll_timer.cancel()
            self._poll_timer = None
