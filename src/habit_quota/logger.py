"""structlog setup for the quota engine."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from enum import Enum

import structlog
from structlog.types import EventDict, WrappedLogger

from .config import LogSection
from .period import PeriodWindow


def render_admission_values(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Render instants, period kinds and windows as plain strings."""
    for key, value in event_dict.items():
        if isinstance(value, PeriodWindow):
            event_dict[key] = f"{value.start.isoformat()}/{value.end.isoformat()}"
        elif isinstance(value, datetime):
            event_dict[key] = value.isoformat()
        elif isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def configure_logging(section: LogSection | None = None) -> structlog.stdlib.BoundLogger:
    """Configure structlog from the `log` config section and return the engine logger."""
    section = section or LogSection()
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, section.level),
    )

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        render_admission_values,
    ]
    if section.format == "json":
        processors += [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return structlog.stdlib.get_logger("habit_quota")


@contextmanager
def admission_context(operation: str, **fields: object) -> Iterator[None]:
    """Bind the operation and its ids to every log line emitted inside the block.

    Fields that are None are left out.
    """
    bound = {key: value for key, value in fields.items() if value is not None}
    with structlog.contextvars.bound_contextvars(operation=operation, **bound):
        yield
