"""Streak and success-rate calculations over a habit's completion ledger.

Everything here is pure: inputs are a :class:`Schedule` and any iterable of
objects exposing ``day_key`` and ``completed`` (ORM rows or plain tuples).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, FrozenSet, Iterable, NamedTuple, Optional

from habitflow.core.dates import iter_days, weekday_code
from habitflow.core.utils.rates import percent


class Mark(NamedTuple):
    """Minimal ledger fact, handy for tests and in-memory callers."""

    day_key: date
    completed: bool


@dataclass(frozen=True)
class Schedule:
    frequency: str = "daily"
    required_days: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def for_habit(cls, habit) -> "Schedule":
        return cls(
            frequency=habit.frequency or "daily",
            required_days=frozenset(habit.required_days or ()),
        )

    def is_required(self, day: date) -> bool:
        if self.frequency == "daily":
            return True
        # Weekly/custom habits with no selected days fall back to every day.
        if not self.required_days:
            return True
        return weekday_code(day) in self.required_days


@dataclass(frozen=True)
class StreakSummary:
    current_streak: int
    longest_streak: int
    total_completed: int
    total_entries: int
    success_rate: int


def _status_by_day(entries: Iterable) -> Dict[date, bool]:
    return {entry.day_key: bool(entry.completed) for entry in entries}


def current_streak(schedule: Schedule, entries: Iterable, today: date) -> int:
    """Count completed required days walking back from ``today``.

    The first required day that is missing or incomplete ends the walk; days the
    schedule does not require are passed over.
    """
    status = _status_by_day(entries)
    if not status:
        return 0
    earliest = min(status)
    streak = 0
    day = today
    while day >= earliest:
        if schedule.is_required(day):
            if status.get(day) is not True:
                break
            streak += 1
        day -= timedelta(days=1)
    return streak


def longest_streak(schedule: Schedule, entries: Iterable, today: Optional[date] = None) -> int:
    status = _status_by_day(entries)
    if not status:
        return 0
    end = max(status)
    if today is not None:
        end = min(end, today)
    best = 0
    run = 0
    for day in iter_days(min(status), end):
        if not schedule.is_required(day):
            continue
        if status.get(day) is True:
            run += 1
            best = max(best, run)
        else:
            run = 0
    return best


def success_rate(entries: Iterable) -> int:
    entries = list(entries)
    return percent(sum(1 for entry in entries if entry.completed), len(entries))


def summarize(schedule: Schedule, entries: Iterable, today: date) -> StreakSummary:
    entries = list(entries)
    completed = sum(1 for entry in entries if entry.completed)
    return StreakSummary(
        current_streak=current_streak(schedule, entries, today),
        longest_streak=longest_streak(schedule, entries, today),
        total_completed=completed,
        total_entries=len(entries),
        success_rate=percent(completed, len(entries)),
    )
