"""Recurring-habit quota engine."""

from .config import AdmissionSection, LogSection, QuotaEngineConfig, load
from .enforcer import check_admission
from .exceptions import (
    ConcurrencyConflictError,
    ConfigError,
    ConfigErrorCodes,
    HabitQuotaError,
    HabitQuotaErrorCodes,
    NotFoundError,
    QuotaExceededError,
    StoreFailureError,
    ValidationFailureError,
)
from .lock import AdmissionLock, InMemoryAdmissionLock, LockError, LockGuard
from .logger import admission_context, configure_logging
from .memory import InMemoryHabitStore
from .models import (
    AdmissionDecision,
    AdmissionResult,
    DenyReason,
    Entry,
    Habit,
    WindowUsage,
)
from .period import TICK, PeriodKind, PeriodWindow, resolve_window
from .store import EntryCounter, EntryStore, HabitEntryStore, HabitLookup
from .validation import align_instant, parse_instant, validate_frequency, validate_id
from .workflow import EntryAdmissionWorkflow

__all__ = [
    "AdmissionDecision",
    "AdmissionLock",
    "AdmissionResult",
    "AdmissionSection",
    "ConcurrencyConflictError",
    "ConfigError",
    "ConfigErrorCodes",
    "DenyReason",
    "Entry",
    "EntryAdmissionWorkflow",
    "EntryCounter",
    "EntryStore",
    "Habit",
    "HabitEntryStore",
    "HabitLookup",
    "HabitQuotaError",
    "HabitQuotaErrorCodes",
    "InMemoryAdmissionLock",
    "InMemoryHabitStore",
    "LockError",
    "LockGuard",
    "LogSection",
    "NotFoundError",
    "PeriodKind",
    "PeriodWindow",
    "QuotaEngineConfig",
    "QuotaExceededError",
    "StoreFailureError",
    "TICK",
    "ValidationFailureError",
    "WindowUsage",
    "admission_context",
    "align_instant",
    "check_admission",
    "configure_logging",
    "load",
    "parse_instant",
    "resolve_window",
    "validate_frequency",
    "validate_id",
]
