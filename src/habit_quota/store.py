"""Storage collaborator contracts consumed by the admission workflow."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from .models import Entry, Habit


class HabitLookup(ABC):
    """Read access to habits."""

    @abstractmethod
    async def get_habit(self, habit_id: str, user_id: str) -> Habit | None:
        """Return the habit if it exists and is owned by `user_id`."""
        ...


class EntryCounter(ABC):
    """Counting query over entries."""

    @abstractmethod
    async def count_entries(
        self,
        habit_id: str,
        user_id: str,
        window_start: datetime,
        window_end: datetime,
        exclude_entry_id: str | None = None,
    ) -> int:
        """Count entries with `window_start <= occurred_at <= window_end`."""
        ...


class EntryStore(ABC):
    """Entry persistence."""

    @abstractmethod
    async def insert_entry(
        self,
        habit_id: str,
        user_id: str,
        occurred_at: datetime,
        entry_id: str | None = None,
    ) -> Entry:
        """Persist a new entry. A fresh id is assigned when `entry_id` is None."""
        ...

    @abstractmethod
    async def get_entry(self, entry_id: str) -> Entry | None:
        """Return the entry or None."""
        ...

    @abstractmethod
    async def delete_entry(self, entry_id: str) -> Entry | None:
        """Remove the entry and return it, or None if it does not exist."""
        ...


class HabitEntryStore(HabitLookup, EntryCounter, EntryStore, ABC):
    """A store that provides all collaborators the workflow needs."""
