"""Keep day aggregates in step with the completion ledger.

Day sub-entries are a projection of ledger facts. Nothing here commits; callers
run these inside their own transaction.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

from habitflow.domains.days.models.day_models import Day, DayHabit
from habitflow.core.utils.rates import percent
from habitflow.extensions import db

logger = logging.getLogger(__name__)


def recompute_day_counts(day: Day) -> Day:
    """Re-derive ``total_habits``/``completed_habits``/``success_rate`` from the habit list."""
    day.total_habits = len(day.habits)
    day.completed_habits = sum(1 for item in day.habits if item.completed)
    day.success_rate = percent(day.completed_habits, day.total_habits)
    return day


def apply_completion(item: DayHabit, completion) -> DayHabit:
    """Copy a ledger entry's state onto a day sub-entry; ``None`` means no entry."""
    if completion is None:
        item.completed = False
        item.quality = None
        item.checked_at = None
        return item
    was_completed = item.completed
    item.completed = bool(completion.completed)
    item.quality = completion.quality if completion.completed else None
    if completion.notes is not None:
        item.notes = completion.notes
    if item.completed and not was_completed:
        item.checked_at = datetime.utcnow()
    elif not item.completed:
        item.checked_at = None
    return item


def mirror_completion(user_id: int, habit_id: int, day_key: date, completion) -> Optional[Day]:
    """Project a ledger change onto the user's day for ``day_key``, if it lists the habit."""
    item = (
        DayHabit.query.join(Day, DayHabit.day_id == Day.id)
        .filter(Day.user_id == user_id, Day.date == day_key, DayHabit.habit_id == habit_id)
        .first()
    )
    if item is None:
        return None
    apply_completion(item, completion)
    recompute_day_counts(item.day)
    logger.debug(
        "Mirrored habit %s on %s into day %s (completed=%s)",
        habit_id,
        day_key,
        item.day_id,
        item.completed,
    )
    return item.day


def detach_habit(user_id: int, habit_id: int) -> List[Day]:
    """Drop a habit from every day that lists it and fix up their counts."""
    items = (
        DayHabit.query.join(Day, DayHabit.day_id == Day.id)
        .filter(Day.user_id == user_id, DayHabit.habit_id == habit_id)
        .all()
    )
    touched: List[Day] = []
    for item in items:
        day = item.day
        day.habits.remove(item)
        recompute_day_counts(day)
        touched.append(day)
    if touched:
        db.session.flush()
    return touched
