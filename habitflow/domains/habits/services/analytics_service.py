"""Calendar heatmaps and weekly/monthly trend buckets over the ledger."""

from __future__ import annotations

from collections import OrderedDict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from habitflow.core.dates import (
    format_day_key,
    iter_days,
    month_bounds,
    shift_month,
    today as current_day,
    week_start,
)
from habitflow.core.errors import field_error
from habitflow.core.utils.rates import percent
from habitflow.domains.habits.models.habit_models import HabitCompletion
from habitflow.domains.habits.services.habit_service import get_owned_habit

IMPROVING_THRESHOLD = 5
PERIODS = ("week", "month")


def build_heatmap(entries: Iterable, month_start: date) -> dict:
    """One cell per calendar day of the month; ``completed`` is None where no entry exists."""
    first, last = month_bounds(month_start)
    by_day = {entry.day_key: entry for entry in entries if first <= entry.day_key <= last}

    cells: Dict[str, dict] = OrderedDict()
    for day in iter_days(first, last):
        entry = by_day.get(day)
        cells[format_day_key(day)] = {
            "completed": entry.completed if entry else None,
            "quality": entry.quality if entry else None,
            "skip_reason": entry.skip_reason if entry else None,
            "notes": entry.notes if entry else None,
        }

    return {
        "month": format_day_key(first),
        "days": cells,
        "stats": {
            "total_days": len(cells),
            "completed": sum(1 for cell in cells.values() if cell["completed"] is True),
            "skipped": sum(1 for cell in cells.values() if cell["completed"] is False),
        },
    }


def _bucket_key(day: date, period: str) -> date:
    if period == "month":
        return day.replace(day=1)
    return week_start(day)


def build_trend(entries: Iterable, period: str = "week") -> dict:
    """Bucket entries, rate each bucket, and compare the last bucket with the first."""
    if period not in PERIODS:
        raise field_error("period", f"must be one of: {', '.join(PERIODS)}")

    buckets: Dict[date, Dict[str, int]] = {}
    for entry in entries:
        bucket = buckets.setdefault(_bucket_key(entry.day_key, period), {"completed": 0, "total": 0})
        bucket["total"] += 1
        if entry.completed:
            bucket["completed"] += 1

    series: List[dict] = [
        {
            period: format_day_key(key),
            "success_rate": percent(data["completed"], data["total"]),
            "completed": data["completed"],
            "total": data["total"],
        }
        for key, data in sorted(buckets.items())
    ]

    trend = series[-1]["success_rate"] - series[0]["success_rate"] if len(series) > 1 else 0
    if trend > IMPROVING_THRESHOLD:
        direction = "improving"
    elif trend < -IMPROVING_THRESHOLD:
        direction = "declining"
    else:
        direction = "stable"

    return {
        "period": period,
        "trend_data": series,
        "trend": trend,
        "trend_direction": direction,
        "trend_percentage": abs(trend),
    }


def _window_query(user_id: int, days: int, today: date):
    if days < 1:
        raise field_error("days", "days must be positive")
    since = today - timedelta(days=days)
    return (
        HabitCompletion.query.filter_by(user_id=user_id)
        .filter(HabitCompletion.day_key >= since, HabitCompletion.day_key <= today)
        .order_by(HabitCompletion.day_key.asc())
    )


def get_heatmap(
    user_id: int, habit_id: int, month_offset: int = 0, today: Optional[date] = None
) -> dict:
    habit = get_owned_habit(user_id, habit_id)
    month_start = shift_month((today or current_day()).replace(day=1), month_offset)
    first, last = month_bounds(month_start)
    entries = (
        HabitCompletion.query.filter_by(user_id=user_id, habit_id=habit.id)
        .filter(HabitCompletion.day_key >= first, HabitCompletion.day_key <= last)
        .all()
    )
    payload = build_heatmap(entries, month_start)
    payload["habit_id"] = habit.id
    payload["habit_name"] = habit.name
    return payload


def get_habit_trend(
    user_id: int,
    habit_id: int,
    days: int = 30,
    period: str = "week",
    today: Optional[date] = None,
) -> dict:
    habit = get_owned_habit(user_id, habit_id)
    entries = _window_query(user_id, days, today or current_day()).filter(
        HabitCompletion.habit_id == habit.id
    )
    payload = build_trend(entries.all(), period)
    payload["habit_id"] = habit.id
    payload["habit_name"] = habit.name
    return payload


def get_overall_trend(
    user_id: int, days: int = 30, period: str = "week", today: Optional[date] = None
) -> dict:
    """Trend across every habit the user owns."""
    return build_trend(_window_query(user_id, days, today or current_day()).all(), period)
