"""Quota enforcement for a single admission."""

from __future__ import annotations

from datetime import datetime

from .models import AdmissionDecision, DenyReason, Habit
from .period import resolve_window


def check_admission(
    habit: Habit,
    candidate: datetime,
    current_count: int,
) -> AdmissionDecision:
    """Decide whether one more entry at `candidate` fits the habit's window.

    `current_count` is the number of entries already in the window that
    contains `candidate`. The caller owns counting; this function does no I/O.
    Assumes `habit.frequency >= 1`.
    """
    window = resolve_window(habit.period, candidate)
    if current_count >= habit.frequency:
        return AdmissionDecision(
            allowed=False,
            window=window,
            current_count=current_count,
            frequency=habit.frequency,
            reason=DenyReason.QUOTA_EXCEEDED,
        )
    return AdmissionDecision(
        allowed=True,
        window=window,
        current_count=current_count,
        frequency=habit.frequency,
    )
