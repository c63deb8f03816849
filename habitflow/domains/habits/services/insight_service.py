"""Cross-habit insights computed over a user's whole ledger."""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from habitflow.core.dates import WEEKDAY_CODES, today as current_day, weekday_code
from habitflow.core.utils.rates import percent
from habitflow.domains.habits.models.habit_models import Habit, HabitCompletion
from habitflow.domains.habits.services.streaks import Schedule, current_streak

WEEKDAY_LABELS = {
    "mon": "Monday",
    "tue": "Tuesday",
    "wed": "Wednesday",
    "thu": "Thursday",
    "fri": "Friday",
    "sat": "Saturday",
    "sun": "Sunday",
}
SKIP_REASON_LABELS = {
    "no-time": "no time",
    "tired": "tiredness",
    "forgot": "forgetting",
    "no-motivation": "lack of motivation",
    "other": "other reasons",
}


def _top(counts: Sequence[tuple]) -> Optional[tuple]:
    """Highest count wins; ``sorted`` is stable so the first-seen key takes ties."""
    if not counts:
        return None
    return sorted(counts, key=lambda item: item[1], reverse=True)[0]


def best_weekday(entries: Iterable) -> Optional[dict]:
    counts = Counter(weekday_code(entry.day_key) for entry in entries if entry.completed)
    top = _top([(code, counts.get(code, 0)) for code in WEEKDAY_CODES])
    if top is None or top[1] <= 0:
        return None
    code, value = top
    return {
        "type": "best_day",
        "text": f"You complete habits most often on {WEEKDAY_LABELS[code]}",
        "value": value,
        "detail": {"weekday": code},
    }


def dominant_skip_reason(entries: Iterable) -> Optional[dict]:
    incomplete = [entry for entry in entries if not entry.completed]
    if not incomplete:
        return None
    counts: Dict[str, int] = {}
    for entry in incomplete:
        if entry.skip_reason:
            counts[entry.skip_reason] = counts.get(entry.skip_reason, 0) + 1
    top = _top(list(counts.items()))
    if top is None:
        return None
    reason, value = top
    share = percent(value, len(incomplete))
    return {
        "type": "skip_reason",
        "text": f"Your most common reason for skipping is {SKIP_REASON_LABELS.get(reason, reason)} ({share}%)",
        "value": value,
        "detail": {"reason": reason, "percentage": share},
    }


def best_habit(habits: Sequence[Habit], entries_by_habit: Dict[int, List]) -> Optional[dict]:
    rates = [
        (habit, percent(
            sum(1 for entry in entries_by_habit.get(habit.id, []) if entry.completed),
            len(entries_by_habit.get(habit.id, [])),
        ))
        for habit in habits
    ]
    top = _top(rates)
    if top is None or top[1] <= 0:
        return None
    habit, rate = top
    return {
        "type": "best_habit",
        "text": f'"{habit.name}" is your most consistent habit at {rate}%',
        "value": rate,
        "detail": {"habit_id": habit.id},
    }


def best_active_streak(
    habits: Sequence[Habit], entries_by_habit: Dict[int, List], today: date
) -> Optional[dict]:
    streaks = [
        (habit, current_streak(Schedule.for_habit(habit), entries_by_habit.get(habit.id, []), today))
        for habit in habits
    ]
    top = _top(streaks)
    if top is None or top[1] <= 0:
        return None
    habit, streak = top
    return {
        "type": "best_streak",
        "text": f'Your best active streak: {streak} days in "{habit.name}"',
        "value": streak,
        "detail": {"habit_id": habit.id},
    }


def overall_rate(entries: Sequence) -> dict:
    completed = sum(1 for entry in entries if entry.completed)
    rate = percent(completed, len(entries))
    return {
        "type": "overall_rate",
        "text": f"Your overall completion rate: {rate}%",
        "value": rate,
        "detail": {"completed": completed, "total": len(entries)},
    }


def generate_insights(habits: Sequence[Habit], entries: Sequence, today: date) -> List[dict]:
    entries_by_habit: Dict[int, List] = defaultdict(list)
    for entry in entries:
        entries_by_habit[entry.habit_id].append(entry)

    insights: List[dict] = []
    for candidate in (
        best_weekday(entries),
        dominant_skip_reason(entries),
        best_habit(habits, entries_by_habit),
        best_active_streak(habits, entries_by_habit, today),
    ):
        if candidate is not None:
            insights.append(candidate)
    insights.append(overall_rate(entries))
    return insights


def get_insights(user_id: int, today: Optional[date] = None) -> List[dict]:
    habits = Habit.query.filter_by(user_id=user_id).order_by(Habit.id.asc()).all()
    entries = (
        HabitCompletion.query.filter_by(user_id=user_id)
        .filter(HabitCompletion.habit_id.in_([habit.id for habit in habits] or [0]))
        .order_by(HabitCompletion.day_key.asc(), HabitCompletion.id.asc())
        .all()
    )
    return generate_insights(habits, entries, today or current_day())
