"""Boundary validation for admission inputs."""

from __future__ import annotations

from datetime import datetime, tzinfo

from .exceptions import ValidationFailureError


def parse_instant(value: datetime | str, tz: tzinfo | None = None) -> datetime:
    """Parse an entry timestamp.

    Accepts a datetime or an ISO-8601 string (a trailing "Z" means UTC).
    Naive results get `tz` attached when one is given.
    """
    if isinstance(value, datetime):
        instant = value
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            instant = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationFailureError(
                "occurred_at", f"Invalid timestamp: {value}"
            ) from None
    else:
        raise ValidationFailureError(
            "occurred_at", f"Timestamp must be a datetime or string, got {type(value).__name__}"
        )

    if instant.tzinfo is None and tz is not None:
        instant = instant.replace(tzinfo=tz)
    return instant


def align_instant(instant: datetime, tz: tzinfo | None) -> datetime:
    """Bring an instant into the engine's single time convention.

    With a zone configured every instant becomes aware in that zone: naive
    values are read as wall time there and aware values are converted.
    Without one the engine works in naive wall time and aware values are
    rejected, since they cannot be ordered against naive ones.
    """
    if tz is not None:
        if instant.tzinfo is None:
            return instant.replace(tzinfo=tz)
        return instant.astimezone(tz)
    if instant.tzinfo is not None:
        raise ValidationFailureError(
            "occurred_at",
            f"Timestamp {instant.isoformat()} has an offset but admission.timezone is not set",
        )
    return instant


def validate_id(value: object, field: str) -> str:
    """Require a non-empty string identifier."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailureError(field, f"Missing {field}.")
    return value


def validate_frequency(value: object) -> int:
    """Require an integer frequency of at least 1."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationFailureError(
            "frequency", f"frequency must be an integer >= 1, got {value!r}"
        )
    return value
