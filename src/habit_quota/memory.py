"""In-memory habit and entry store."""

from __future__ import annotations

import uuid
from datetime import datetime

from .exceptions import StoreFailureError
from .models import Entry, Habit
from .store import HabitEntryStore
from .validation import validate_frequency


class InMemoryHabitStore(HabitEntryStore):
    """In-memory store for testing."""

    def __init__(self) -> None:
        self._habits: dict[str, Habit] = {}
        self._entries: dict[str, Entry] = {}

    def add_habit(self, habit: Habit) -> None:
        """Register a habit."""
        validate_frequency(habit.frequency)
        self._habits[habit.id] = habit

    async def get_habit(self, habit_id: str, user_id: str) -> Habit | None:
        habit = self._habits.get(habit_id)
        if habit is None or habit.user_id != user_id:
            return None
        return habit

    async def count_entries(
        self,
        habit_id: str,
        user_id: str,
        window_start: datetime,
        window_end: datetime,
        exclude_entry_id: str | None = None,
    ) -> int:
        return sum(
            1
            for e in self._entries.values()
            if e.habit_id == habit_id
            and e.user_id == user_id
            and e.id != exclude_entry_id
            and window_start <= e.occurred_at <= window_end
        )

    async def insert_entry(
        self,
        habit_id: str,
        user_id: str,
        occurred_at: datetime,
        entry_id: str | None = None,
    ) -> Entry:
        entry_id = entry_id or str(uuid.uuid4())
        if entry_id in self._entries:
            raise StoreFailureError(f"Entry already exists: {entry_id}")
        entry = Entry(
            id=entry_id,
            habit_id=habit_id,
            user_id=user_id,
            occurred_at=occurred_at,
        )
        self._entries[entry_id] = entry
        return entry

    async def get_entry(self, entry_id: str) -> Entry | None:
        return self._entries.get(entry_id)

    async def delete_entry(self, entry_id: str) -> Entry | None:
        return self._entries.pop(entry_id, None)

    def list_entries(self, user_id: str, habit_id: str | None = None) -> list[Entry]:
        """Entries of a user, newest first. For testing."""
        entries = [
            e
            for e in self._entries.values()
            if e.user_id == user_id and (habit_id is None or e.habit_id == habit_id)
        ]
        return sorted(entries, key=lambda e: e.occurred_at, reverse=True)
