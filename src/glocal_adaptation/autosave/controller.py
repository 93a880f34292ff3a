"""Debounced autosave with change detection and bounded retries.

The controller is an explicit state machine:

    IDLE --change--> PENDING --timer--> SAVING --done--> IDLE

A change while PENDING restarts the timer. A save whose snapshot equals the
last committed one is skipped. The primary write is retried with
exponential backoff; memory promotion runs only after it commits.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Set

from ..audit.audit_logger import AuditLogger
from ..config.models import AutosaveSettings
from ..exceptions import PersistenceFailure, PromotionFailure
from ..interfaces.notifier import INotifier, LoggingNotifier, Notification
from ..interfaces.store import IRecordStore
from .promotion import PromotionQueue
from .snapshot import WORKFLOWS_TABLE, WorkflowSnapshot


logger = logging.getLogger(__name__)


class AutosaveState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"


@dataclass
class AutosaveStatus:
    """Ephemeral save status shown next to the editor."""
    is_saving: bool = False
    last_saved: Optional[datetime] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "is_saving": self.is_saving,
            "last_saved": self.last_saved.isoformat() if self.last_saved else None,
            "error": self.error,
        }


@dataclass
class SaveOutcome:
    """Result of one save attempt sequence."""
    saved: bool
    reason: str  # "saved", "no-changes", "closed" or "failed"
    attempts: int = 0
    error: Optional[PersistenceFailure] = None
    promotion_failures: List[PromotionFailure] = field(default_factory=list)


class AutosaveController:
    """
    Persists the workflow snapshot of one project.

    ``snapshot_provider`` is called at save time, so a save always writes
    the latest in-memory data.
    """

    def __init__(
        self,
        project_id: str,
        snapshot_provider: Callable[[], WorkflowSnapshot],
        store: IRecordStore,
        promotion_queue: Optional[PromotionQueue] = None,
        settings: Optional[AutosaveSettings] = None,
        notifier: Optional[INotifier] = None,
        audit_logger: Optional[AuditLogger] = None,
        on_status: Optional[Callable[[AutosaveStatus], Any]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.project_id = project_id
        self._snapshot_provider = snapshot_provider
        self._store = store
        self._promotion_queue = promotion_queue or PromotionQueue(store)
        self._settings = settings or AutosaveSettings()
        self._notifier = notifier or LoggingNotifier()
        self._audit = audit_logger
        self._on_status = on_status
        self._sleep = sleep

        self._status = AutosaveStatus()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._in_flight = 0
        self._last_serialized: Optional[str] = None
        self._closed = False

    @property
    def state(self) -> AutosaveState:
        if self._in_flight:
            return AutosaveState.SAVING
        if self._timer is not None:
            return AutosaveState.PENDING
        return AutosaveState.IDLE

    @property
    def status(self) -> AutosaveStatus:
        return replace(self._status)

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_persisted(self, snapshot: WorkflowSnapshot) -> None:
        """Treat ``snapshot`` as already saved (used after loading from the store)."""
        self._last_serialized = snapshot.serialize()

    def notify_change(self) -> None:
        """
        Restart the debounce timer.

        Must be called from within the running event loop.
        """
        if self._closed:
            return
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self._settings.debounce_seconds, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        if self._closed:
            return
        task = asyncio.get_running_loop().create_task(self.save())
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Project {self.project_id}: debounced save crashed: {error!r}")

    async def force_save(self) -> SaveOutcome:
        """Save now, ignoring the debounce timer and change detection."""
        self._cancel_timer()
        return await self.save(force=True)

    async def save(self, force: bool = False) -> SaveOutcome:
        if self._closed:
            return SaveOutcome(saved=False, reason="closed")

        snapshot = self._snapshot_provider()
        serialized = snapshot.serialize()
        if not force and serialized == self._last_serialized:
            logger.debug(f"Project {self.project_id}: no changes to save")
            return SaveOutcome(saved=False, reason="no-changes")

        self._in_flight += 1
        self._update_status(is_saving=True)
        try:
            return await self._write(snapshot, serialized)
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._update_status(is_saving=False)

    async def _write(self, snapshot: WorkflowSnapshot, serialized: str) -> SaveOutcome:
        record = snapshot.to_record()
        max_attempts = self._settings.max_attempts
        last_error: Optional[Exception] = None

        for attempt in range(1, max_attempts + 1):
            try:
                await asyncio.to_thread(
                    self._store.upsert, WORKFLOWS_TABLE, record, ["project_id"]
                )
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Project {self.project_id}: save attempt {attempt}/{max_attempts} failed: {e}"
                )
                if attempt < max_attempts:
                    await self._sleep(2 ** attempt * self._settings.backoff_unit_seconds)
                continue

            self._last_serialized = serialized
            self._update_status(last_saved=datetime.utcnow(), error=None)
            logger.info(f"Project {self.project_id}: saved after {attempt} attempt(s)")
            failures = await asyncio.to_thread(self._promotion_queue.drain, snapshot)
            return SaveOutcome(
                saved=True,
                reason="saved",
                attempts=attempt,
                promotion_failures=failures,
            )

        failure = PersistenceFailure(
            message=f"Save failed after {max_attempts} attempts: {last_error}",
            details={"project_id": self.project_id},
            attempts=max_attempts,
        )
        logger.error(f"Project {self.project_id}: {failure.message}")
        self._update_status(error=failure.user_message)
        await self._report_failure(failure)
        return SaveOutcome(saved=False, reason="failed", attempts=max_attempts, error=failure)

    async def _report_failure(self, failure: PersistenceFailure) -> None:
        if not self._closed:
            self._notifier.notify(Notification(
                kind="error",
                title="Autosave failed",
                message=failure.user_message,
                dismissible=True,
                action_label="Save now",
                action=self.force_save,
            ))
        if self._audit is not None:
            try:
                await asyncio.to_thread(
                    self._audit.log_save_failed, self.project_id, failure.attempts, failure.message
                )
            except Exception as e:
                logger.warning(f"Audit of failed save failed: {e}")

    def _update_status(self, **changes: Any) -> None:
        if self._closed:
            return
        self._status = replace(self._status, **changes)
        if self._on_status is not None:
            self._on_status(replace(self._status))

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def close(self) -> None:
        """Cancel the pending timer and stop status updates; in-flight saves finish."""
        self._cancel_timer()
        self._closed = True

    async def wait_idle(self) -> None:
        """Wait for saves started by the debounce timer."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
