"""habit_quota data models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import cast

from .exceptions import HabitQuotaError
from .period import PeriodKind, PeriodWindow


@dataclass(frozen=True)
class Habit:
    """A recurring habit as seen by the quota engine."""

    id: str
    user_id: str
    period: PeriodKind
    frequency: int


@dataclass(frozen=True)
class Entry:
    """A completion event logged against a habit."""

    habit_id: str
    user_id: str
    occurred_at: datetime
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class DenyReason(str, Enum):
    """Why an admission was denied."""

    QUOTA_EXCEEDED = "quota_exceeded"


@dataclass(frozen=True)
class AdmissionDecision:
    """Quota check result."""

    allowed: bool
    window: PeriodWindow
    current_count: int
    frequency: int
    reason: DenyReason | None = None

    @property
    def remaining(self) -> int:
        return max(self.frequency - self.current_count, 0)


@dataclass(frozen=True)
class WindowUsage:
    """Entries used in the current window of a habit."""

    habit_id: str
    window: PeriodWindow
    used: int
    frequency: int

    @property
    def remaining(self) -> int:
        return max(self.frequency - self.used, 0)


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of an admission API call: an entry or a typed failure."""

    entry: Entry | None = None
    error: HabitQuotaError | None = None

    @classmethod
    def success(cls, entry: Entry) -> AdmissionResult:
        return cls(entry=entry)

    @classmethod
    def failure(cls, error: HabitQuotaError) -> AdmissionResult:
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def __post_init__(self) -> None:
        if (self.entry is None) == (self.error is None):
            raise ValueError("AdmissionResult needs exactly one of entry or error")

    def unwrap(self) -> Entry:
        """Return the entry, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return cast(Entry, self.entry)
