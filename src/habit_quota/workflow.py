"""Entry admission workflow.

Admission runs resolve -> count -> decide -> persist for one habit at a
time. Every decision for a habit executes while holding that habit's
admission lock, so count-and-insert is atomic with respect to other
admissions of the same habit; different habits never contend.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import TypeVar

import structlog

from .config import AdmissionSection, QuotaEngineConfig, load
from .enforcer import check_admission
from .exceptions import (
    ConcurrencyConflictError,
    HabitQuotaError,
    NotFoundError,
    QuotaExceededError,
    StoreFailureError,
)
from .lock import AdmissionLock, InMemoryAdmissionLock, LockError, LockGuard
from .logger import admission_context, configure_logging
from .models import AdmissionResult, Entry, Habit, WindowUsage
from .period import resolve_window
from .store import HabitEntryStore
from .validation import align_instant, parse_instant, validate_id

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class EntryAdmissionWorkflow:
    """Admission API for habit entries."""

    def __init__(
        self,
        store: HabitEntryStore,
        lock: AdmissionLock | None = None,
        config: QuotaEngineConfig | None = None,
    ) -> None:
        self._store = store
        self._lock = lock or InMemoryAdmissionLock()
        self._settings: AdmissionSection = (config or QuotaEngineConfig()).admission
        self._tz = self._settings.tzinfo

    @classmethod
    def from_config(
        cls,
        store: HabitEntryStore,
        base_path: Path,
        env_path: Path | None = None,
        lock: AdmissionLock | None = None,
    ) -> EntryAdmissionWorkflow:
        """Build a workflow from YAML config and set up logging from its `log` section.

        Raises:
            ConfigError: the config cannot be read or is invalid
        """
        config = load(base_path, env_path)
        configure_logging(config.log)
        return cls(store, lock=lock, config=config)

    async def admit_entry(
        self,
        habit_id: str,
        user_id: str,
        occurred_at: datetime | str,
    ) -> AdmissionResult:
        """Admit a new entry if the habit's current window has room."""
        try:
            validate_id(habit_id, "habit_id")
            validate_id(user_id, "user_id")
            instant = self._instant(occurred_at)
        except HabitQuotaError as e:
            return AdmissionResult.failure(e)
        with admission_context("admit", habit_id=habit_id, user_id=user_id):
            return await self._run(lambda: self._admit(habit_id, user_id, instant))

    async def update_entry(
        self,
        entry_id: str,
        *,
        habit_id: str | None = None,
        occurred_at: datetime | str | None = None,
        user_id: str | None = None,
    ) -> AdmissionResult:
        """Move an entry to another habit and/or instant.

        The entry is re-admitted against the window of its new position,
        not counting itself. When it stays in the same habit and window no
        quota check is made.
        """
        try:
            validate_id(entry_id, "entry_id")
            if habit_id is not None:
                validate_id(habit_id, "habit_id")
            if user_id is not None:
                validate_id(user_id, "user_id")
            instant = self._instant(occurred_at) if occurred_at is not None else None
        except HabitQuotaError as e:
            return AdmissionResult.failure(e)
        with admission_context("update", entry_id=entry_id, habit_id=habit_id, user_id=user_id):
            return await self._run(lambda: self._update(entry_id, habit_id, instant, user_id))

    async def delete_entry(
        self,
        entry_id: str,
        *,
        user_id: str | None = None,
    ) -> AdmissionResult:
        """Remove an entry, freeing its slot. Removal is never quota-checked."""
        try:
            validate_id(entry_id, "entry_id")
            if user_id is not None:
                validate_id(user_id, "user_id")
        except HabitQuotaError as e:
            return AdmissionResult.failure(e)
        with admission_context("delete", entry_id=entry_id, user_id=user_id):
            return await self._run(lambda: self._delete(entry_id, user_id))

    async def get_usage(
        self,
        habit_id: str,
        user_id: str,
        at: datetime | str,
    ) -> WindowUsage:
        """Report how many entries the window containing `at` holds.

        Raises:
            HabitQuotaError: on invalid input, unknown habit or store failure
        """
        validate_id(habit_id, "habit_id")
        validate_id(user_id, "user_id")
        instant = self._instant(at)
        habit = await self._require_habit(habit_id, user_id)
        window = resolve_window(habit.period, instant)
        used = await self._call(
            "count_entries",
            self._store.count_entries(habit.id, user_id, window.start, window.end),
        )
        return WindowUsage(
            habit_id=habit.id,
            window=window,
            used=used,
            frequency=habit.frequency,
        )

    def _instant(self, value: datetime | str) -> datetime:
        return align_instant(parse_instant(value), self._tz)

    async def _run(self, operation: Callable[[], Awaitable[Entry]]) -> AdmissionResult:
        """Run an operation, retrying lock conflicts, and wrap the outcome."""
        attempt = 0
        while True:
            attempt += 1
            try:
                entry = await operation()
            except ConcurrencyConflictError as e:
                logger.warning("admission conflict", habit_id=e.habit_id, attempt=attempt)
                if attempt > self._settings.conflict_retries:
                    return AdmissionResult.failure(e)
            except HabitQuotaError as e:
                return AdmissionResult.failure(e)
            else:
                return AdmissionResult.success(entry)

    async def _admit(self, habit_id: str, user_id: str, instant: datetime) -> Entry:
        async with self._hold([habit_id]):
            habit = await self._require_habit(habit_id, user_id)
            await self._enforce(habit, instant)
            entry = await self._commit(
                self._call(
                    "insert_entry",
                    self._store.insert_entry(habit.id, user_id, instant),
                )
            )
        logger.info(
            "entry admitted",
            entry_id=entry.id,
            habit_id=habit.id,
            occurred_at=instant,
        )
        return entry

    async def _update(
        self,
        entry_id: str,
        habit_id: str | None,
        instant: datetime | None,
        user_id: str | None,
    ) -> Entry:
        seen = await self._require_entry(entry_id, user_id)
        target_habit_id = habit_id or seen.habit_id

        async with self._hold([seen.habit_id, target_habit_id]):
            current = await self._require_entry(entry_id, user_id)
            if current.habit_id != seen.habit_id:
                # Moved by a concurrent update after we chose which locks to take.
                raise ConcurrencyConflictError(seen.habit_id)

            habit = await self._require_habit(target_habit_id, current.user_id)
            new_instant = instant if instant is not None else current.occurred_at
            window = resolve_window(habit.period, new_instant)
            if habit.id != current.habit_id or not window.contains(current.occurred_at):
                await self._enforce(habit, new_instant, exclude_entry_id=current.id)

            entry = await self._commit(self._replace(current, habit.id, new_instant))
        logger.info(
            "entry updated",
            entry_id=entry.id,
            habit_id=entry.habit_id,
            occurred_at=entry.occurred_at,
        )
        return entry

    async def _delete(self, entry_id: str, user_id: str | None) -> Entry:
        seen = await self._require_entry(entry_id, user_id)
        async with self._hold([seen.habit_id]):
            deleted = await self._commit(
                self._call("delete_entry", self._store.delete_entry(entry_id))
            )
            if deleted is None:
                raise NotFoundError("entry", entry_id)
        logger.info("entry deleted", entry_id=entry_id, habit_id=deleted.habit_id)
        return deleted

    async def _enforce(
        self,
        habit: Habit,
        instant: datetime,
        exclude_entry_id: str | None = None,
    ) -> None:
        window = resolve_window(habit.period, instant)
        count = await self._call(
            "count_entries",
            self._store.count_entries(
                habit.id,
                habit.user_id,
                window.start,
                window.end,
                exclude_entry_id=exclude_entry_id,
            ),
        )
        decision = check_admission(habit, instant, count)
        logger.debug(
            "admission decision",
            habit_id=habit.id,
            period=habit.period,
            window=decision.window,
            count=count,
            frequency=habit.frequency,
            allowed=decision.allowed,
        )
        if not decision.allowed:
            logger.warning(
                "quota exceeded",
                habit_id=habit.id,
                period=habit.period,
                frequency=habit.frequency,
                window=decision.window,
            )
            raise QuotaExceededError(habit.period, habit.frequency, decision.window)

    async def _replace(self, current: Entry, habit_id: str, instant: datetime) -> Entry:
        """Delete then re-insert under the same id, restoring the old entry on failure.

        If the restore fails too the entry is lost; only a transactional store
        can close that gap. The insert failure is surfaced with the restore
        failure as its context.
        """
        await self._call("delete_entry", self._store.delete_entry(current.id))
        try:
            return await self._call(
                "insert_entry",
                self._store.insert_entry(habit_id, current.user_id, instant, entry_id=current.id),
            )
        except StoreFailureError as failure:
            try:
                await self._call(
                    "insert_entry",
                    self._store.insert_entry(
                        current.habit_id,
                        current.user_id,
                        current.occurred_at,
                        entry_id=current.id,
                    ),
                )
            except StoreFailureError as restore_failure:
                logger.error(
                    "entry restore failed",
                    entry_id=current.id,
                    habit_id=current.habit_id,
                    occurred_at=current.occurred_at,
                    error=str(restore_failure),
                )
                failure.__context__ = restore_failure
                raise failure
            raise

    async def _require_habit(self, habit_id: str, user_id: str) -> Habit:
        habit = await self._call("get_habit", self._store.get_habit(habit_id, user_id))
        if habit is None:
            raise NotFoundError("habit", habit_id)
        return habit

    async def _require_entry(self, entry_id: str, user_id: str | None) -> Entry:
        entry = await self._call("get_entry", self._store.get_entry(entry_id))
        if entry is None or (user_id is not None and entry.user_id != user_id):
            raise NotFoundError("entry", entry_id)
        return entry

    @asynccontextmanager
    async def _hold(self, habit_ids: Iterable[str]) -> AsyncIterator[None]:
        """Hold the admission locks of the given habits, in sorted order."""
        guards: list[LockGuard] = []
        try:
            for habit_id in sorted(set(habit_ids)):
                try:
                    guards.append(await self._lock.acquire(habit_id, self._settings.lock_timeout))
                except LockError as e:
                    raise ConcurrencyConflictError(habit_id, cause=e) from e
            yield
        finally:
            for guard in reversed(guards):
                await self._lock.release(guard)

    async def _commit(self, write: Awaitable[T]) -> T:
        """Run a write to completion even if the caller is cancelled meanwhile.

        The caller still observes the cancellation, but only after the write
        has landed, so the lock is never released under a half-applied write.
        """
        task = asyncio.ensure_future(write)
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            await asyncio.wait([task])
            raise

    async def _call(self, action: str, call: Awaitable[T]) -> T:
        """Await a store call, mapping unexpected failures to StoreFailureError."""
        try:
            return await call
        except HabitQuotaError:
            raise
        except Exception as e:
            logger.error("store call failed", action=action, error=str(e))
            raise StoreFailureError(f"{action} failed: {e}", cause=e) from e
