"""habit_quota exception types."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .period import PeriodKind, PeriodWindow


class HabitQuotaErrorCodes:
    """Error codes carried by HabitQuotaError."""

    VALIDATION_FAILURE: str = "VALIDATION_FAILURE"
    NOT_FOUND: str = "NOT_FOUND"
    QUOTA_EXCEEDED: str = "QUOTA_EXCEEDED"
    CONCURRENCY_CONFLICT: str = "CONCURRENCY_CONFLICT"
    STORE_FAILURE: str = "STORE_FAILURE"


class HabitQuotaError(Exception):
    """Base error for the quota engine."""

    retryable: bool = False

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class ValidationFailureError(HabitQuotaError):
    """Malformed or missing input."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(HabitQuotaErrorCodes.VALIDATION_FAILURE, message)


class NotFoundError(HabitQuotaError):
    """Habit or entry is absent or not owned by the requesting user."""

    def __init__(self, resource: str, resource_id: str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            HabitQuotaErrorCodes.NOT_FOUND,
            f"{resource} not found: {resource_id}",
        )


class QuotaExceededError(HabitQuotaError):
    """The window for the habit already holds `frequency` entries."""

    def __init__(
        self,
        period: PeriodKind,
        frequency: int,
        window: PeriodWindow,
    ) -> None:
        self.period = period
        self.frequency = frequency
        self.window = window
        super().__init__(
            HabitQuotaErrorCodes.QUOTA_EXCEEDED,
            f"already logged {frequency} entries for this {period.value} "
            f"({window.start.isoformat()} .. {window.end.isoformat()})",
        )


class ConcurrencyConflictError(HabitQuotaError):
    """An admission lost a race for the habit and may be retried."""

    retryable = True

    def __init__(self, habit_id: str, cause: Exception | None = None) -> None:
        self.habit_id = habit_id
        super().__init__(
            HabitQuotaErrorCodes.CONCURRENCY_CONFLICT,
            f"concurrent admission in progress for habit: {habit_id}",
            cause=cause,
        )


class StoreFailureError(HabitQuotaError):
    """A storage collaborator failed."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(HabitQuotaErrorCodes.STORE_FAILURE, message, cause=cause)


class ConfigError(Exception):
    """Configuration loading error."""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class ConfigErrorCodes:
    """ConfigError codes."""

    READ_FILE: str = "READ_FILE_ERROR"
    PARSE_YAML: str = "PARSE_YAML_ERROR"
    VALIDATION: str = "VALIDATION_ERROR"
