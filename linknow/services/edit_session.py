"""Edit session coordinator - debounce free-text edits and commit them one at a time per field."""

import os
import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from linknow.utils.errors import LinknowError
from linknow.utils.logging import get_structured_logger, get_correlation_id

logger = get_structured_logger(__name__)

# Default debounce window (seconds)
DEFAULT_DEBOUNCE_WINDOW = float(os.environ.get("EDIT_DEBOUNCE_SECONDS", "0.5"))

CommitFn = Callable[[str, dict], Awaitable[dict]]
ConfirmedFn = Callable[[str, dict], None]
FailureFn = Callable[[str, str, LinknowError], None]


class FieldState(str, Enum):
    """Sync state of one edited field."""
    CLEAN = "clean"
    DIRTY = "dirty"
    PENDING_COMMIT = "pending_commit"


class DebounceTimer:
    """Cancel-and-reschedule timer owned by one field.

    Every ``schedule`` bumps ``token``; a callback only runs if its token is
    still current when the window elapses.
    """

    def __init__(self, window_seconds: float):
        self.window_seconds = window_seconds
        self.token = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, callback: Callable[[], None]) -> int:
        self.cancel()
        self.token += 1
        self._task = asyncio.create_task(self._fire(self.token, callback))
        return self.token

    def cancel(self) -> bool:
        if self.pending:
            self._task.cancel()
            self._task = None
            return True
        return False

    async def wait(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _fire(self, token: int, callback: Callable[[], None]) -> None:
        await asyncio.sleep(self.window_seconds)
        if token == self.token:
            callback()


class FieldEdit:
    """Local vs. confirmed value of one field of one entity."""

    def __init__(self, entity_key: str, field: str, window_seconds: float, confirmed_value: Any = None):
        self.entity_key = entity_key
        self.field = field
        self.confirmed_value = confirmed_value
        self.local_value = confirmed_value
        self.inflight_value: Any = None
        self.state = FieldState.CLEAN
        self.timer = DebounceTimer(window_seconds)
        self.lock = asyncio.Lock()
        self.last_error: Optional[LinknowError] = None

    @property
    def has_unsent_edit(self) -> bool:
        return self.local_value != self.confirmed_value


class EditSessionCoordinator:
    """Debounce per-field edits and reconcile them with server-confirmed records.

    ``commit(entity_key, {field: value})`` persists one field and returns the
    server record; the record goes to ``on_confirmed``. Failures go to
    ``on_failure`` and leave the field DIRTY with its local value intact.
    """

    def __init__(
        self,
        commit: CommitFn,
        window_seconds: float = DEFAULT_DEBOUNCE_WINDOW,
        on_confirmed: Optional[ConfirmedFn] = None,
        on_failure: Optional[FailureFn] = None,
    ):
        self.window_seconds = window_seconds
        self._commit_fn = commit
        self._on_confirmed = on_confirmed
        self._on_failure = on_failure
        self.fields: dict[tuple[str, str], FieldEdit] = {}
        self._commits: set[asyncio.Task] = set()
        logger.debug(
            "EditSessionCoordinator initialized",
            debounce_window_seconds=window_seconds
        )

    def _field(self, entity_key: str, field: str) -> FieldEdit:
        key = (entity_key, field)
        if key not in self.fields:
            self.fields[key] = FieldEdit(entity_key, field, self.window_seconds)
        return self.fields[key]

    def seed(self, entity_key: str, values: dict) -> None:
        """Record server-confirmed values; fields with local edits keep them."""
        for field, value in values.items():
            edit = self._field(entity_key, field)
            edit.confirmed_value = value
            if edit.state == FieldState.CLEAN:
                edit.local_value = value

    def edit(self, entity_key: str, field: str, value: Any) -> FieldState:
        """Record a keystroke-level edit and (re)start the field's debounce timer."""
        edit = self._field(entity_key, field)
        edit.local_value = value

        if not edit.has_unsent_edit and not edit.lock.locked():
            if edit.timer.cancel():
                logger.debug(
                    "Edit reverted to confirmed value, timer cancelled",
                    entity_key=entity_key,
                    field=field
                )
            edit.state = FieldState.CLEAN
            return edit.state

        if edit.state != FieldState.PENDING_COMMIT:
            edit.state = FieldState.DIRTY
        edit.timer.schedule(lambda: self._spawn_commit(edit))
        return edit.state

    def cancel(self, entity_key: str, field: str) -> bool:
        """Drop an unsent edit without sending it (e.g. the value became invalid).

        A commit already in flight still lands; the field then settles on its value.
        """
        edit = self.fields.get((entity_key, field))
        if edit is None:
            return False
        cancelled = edit.timer.cancel()
        if edit.lock.locked():
            edit.local_value = edit.inflight_value
        else:
            edit.local_value = edit.confirmed_value
            edit.state = FieldState.CLEAN
        return cancelled

    def state(self, entity_key: str, field: str) -> FieldState:
        edit = self.fields.get((entity_key, field))
        return edit.state if edit else FieldState.CLEAN

    def local_value(self, entity_key: str, field: str) -> Any:
        edit = self.fields.get((entity_key, field))
        return edit.local_value if edit else None

    def pending_values(self, entity_key: str) -> dict:
        """Local values not yet confirmed by the server for one entity."""
        return {
            edit.field: edit.local_value
            for edit in self.fields.values()
            if edit.entity_key == entity_key and edit.state != FieldState.CLEAN
        }

    def _spawn_commit(self, edit: FieldEdit) -> None:
        task = asyncio.create_task(self._commit(edit))
        self._commits.add(task)
        task.add_done_callback(self._commits.discard)

    async def _commit(self, edit: FieldEdit) -> None:
        """Send the latest local value; the lock keeps one commit per field in flight."""
        correlation_id = get_correlation_id()

        async with edit.lock:
            value = edit.local_value
            if not edit.has_unsent_edit:
                if not edit.timer.pending:
                    edit.state = FieldState.CLEAN
                return

            edit.state = FieldState.PENDING_COMMIT
            edit.inflight_value = value
            logger.info(
                "Committing field edit",
                correlation_id=correlation_id,
                entity_key=edit.entity_key,
                field=edit.field
            )

            try:
                record = await self._commit_fn(edit.entity_key, {edit.field: value})
            except LinknowError as e:
                edit.state = FieldState.DIRTY
                edit.last_error = e
                logger.warning(
                    "Field commit failed, local edit kept",
                    correlation_id=correlation_id,
                    entity_key=edit.entity_key,
                    field=edit.field,
                    error_type=type(e).__name__,
                    error=str(e)
                )
                if self._on_failure:
                    self._on_failure(edit.entity_key, edit.field, e)
                return
            except Exception as e:
                edit.state = FieldState.DIRTY
                logger.error(
                    "Unexpected error committing field, local edit kept",
                    correlation_id=correlation_id,
                    entity_key=edit.entity_key,
                    field=edit.field,
                    error_type=type(e).__name__,
                    error=str(e)
                )
                raise

            edit.confirmed_value = value
            edit.last_error = None
            if edit.local_value == value and not edit.timer.pending:
                edit.state = FieldState.CLEAN
            else:
                # A newer edit arrived mid-flight; its timer sends it next
                edit.state = FieldState.DIRTY

            logger.debug(
                "Field edit confirmed",
                correlation_id=correlation_id,
                entity_key=edit.entity_key,
                field=edit.field,
                field_state=edit.state.value
            )

        if self._on_confirmed and record is not None:
            self._on_confirmed(edit.entity_key, record)

    async def flush(self, entity_key: Optional[str] = None) -> None:
        """Commit every dirty field now instead of waiting for its timer."""
        edits = [
            edit for edit in list(self.fields.values())
            if (entity_key is None or edit.entity_key == entity_key) and edit.state != FieldState.CLEAN
        ]
        for edit in edits:
            edit.timer.cancel()
        await asyncio.gather(*(self._commit(edit) for edit in edits))

    def discard(self, entity_key: str) -> int:
        """Drop an entity's fields; pending (unsent) edits are forfeited."""
        forfeited = 0
        for key in [key for key in self.fields if key[0] == entity_key]:
            edit = self.fields.pop(key)
            if edit.timer.cancel():
                forfeited += 1
        if forfeited:
            logger.warning(
                "Pending edits forfeited",
                entity_key=entity_key,
                forfeited_count=forfeited
            )
        return forfeited

    async def wait_idle(self) -> None:
        """Wait until no timer is running and no commit is in flight."""
        while True:
            timers = [edit.timer for edit in self.fields.values() if edit.timer.pending]
            commits = list(self._commits)
            if not timers and not commits:
                return
            await asyncio.gather(*(timer.wait() for timer in timers), *commits, return_exceptions=True)

    async def close(self, flush: bool = False) -> int:
        """End the session. Without ``flush`` pending edits are forfeited."""
        if flush:
            await self.flush()
            forfeited = 0
        else:
            forfeited = sum(1 for edit in self.fields.values() if edit.timer.cancel())
            if forfeited:
                logger.warning("Pending edits forfeited on close", forfeited_count=forfeited)
        if self._commits:
            await asyncio.gather(*list(self._commits), return_exceptions=True)
        return forfeited
