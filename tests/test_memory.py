"""In-memory store tests."""

from datetime import datetime

import pytest
from habit_quota import (
    Habit,
    InMemoryHabitStore,
    PeriodKind,
    StoreFailureError,
    ValidationFailureError,
)


def make_store() -> InMemoryHabitStore:
    store = InMemoryHabitStore()
    store.add_habit(Habit(id="h1", user_id="u1", period=PeriodKind.DAY, frequency=2))
    return store


async def test_get_habit_checks_owner() -> None:
    store = make_store()
    assert await store.get_habit("h1", "u1") is not None
    assert await store.get_habit("h1", "u2") is None
    assert await store.get_habit("missing", "u1") is None


def test_add_habit_rejects_zero_frequency() -> None:
    store = InMemoryHabitStore()
    with pytest.raises(ValidationFailureError):
        store.add_habit(Habit(id="h1", user_id="u1", period=PeriodKind.DAY, frequency=0))


async def test_count_is_inclusive_of_bounds() -> None:
    store = make_store()
    start, end = datetime(2025, 3, 15), datetime(2025, 3, 15, 23, 59, 59, 999999)
    await store.insert_entry("h1", "u1", start)
    await store.insert_entry("h1", "u1", end)
    await store.insert_entry("h1", "u1", datetime(2025, 3, 16))
    assert await store.count_entries("h1", "u1", start, end) == 2


async def test_count_excludes_entry() -> None:
    store = make_store()
    entry = await store.insert_entry("h1", "u1", datetime(2025, 3, 15, 9))
    start, end = datetime(2025, 3, 15), datetime(2025, 3, 15, 23, 59)
    assert await store.count_entries("h1", "u1", start, end, exclude_entry_id=entry.id) == 0


async def test_insert_with_explicit_id() -> None:
    store = make_store()
    entry = await store.insert_entry("h1", "u1", datetime(2025, 3, 15, 9), entry_id="e1")
    assert entry.id == "e1"
    with pytest.raises(StoreFailureError):
        await store.insert_entry("h1", "u1", datetime(2025, 3, 15, 10), entry_id="e1")


async def test_delete_entry() -> None:
    store = make_store()
    entry = await store.insert_entry("h1", "u1", datetime(2025, 3, 15, 9))
    assert await store.delete_entry(entry.id) == entry
    assert await store.delete_entry(entry.id) is None
    assert await store.get_entry(entry.id) is None


async def test_list_entries_newest_first() -> None:
    store = make_store()
    await store.insert_entry("h1", "u1", datetime(2025, 3, 14, 9))
    await store.insert_entry("h1", "u1", datetime(2025, 3, 16, 9))
    await store.insert_entry("h1", "u2", datetime(2025, 3, 17, 9))
    entries = store.list_entries("u1")
    assert [e.occurred_at.day for e in entries] == [16, 14]
