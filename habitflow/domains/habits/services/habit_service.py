"""Habit registry: CRUD, schedule normalization, and derived summary fields."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from habitflow.core.dates import WEEKDAY_CODES, format_day_key, optional_day_key, today as current_day
from habitflow.core.errors import ConflictError, NotFoundError, field_error
from habitflow.domains.days.projection import detach_habit
from habitflow.domains.habits.events import (
    HABITS_HABIT_CREATED,
    HABITS_HABIT_DELETED,
    HABITS_HABIT_UPDATED,
)
from habitflow.domains.habits.models.habit_models import (
    CATEGORIES,
    FREQUENCIES,
    Habit,
    HabitCompletion,
)
from habitflow.domains.habits.services.progress_service import recompute_progress
from habitflow.domains.habits.services.streaks import Schedule, StreakSummary, summarize
from habitflow.extensions import db
from habitflow.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

_SCHEDULE_FIELDS = ("frequency", "required_days")
_UPDATABLE = (
    "name",
    "description",
    "category",
    "color_code",
    "icon",
    "frequency",
    "required_days",
    "target_value",
    "unit",
    "start_date",
    "end_date",
    "is_active",
)
_NOT_NULL = ("name", "category", "color_code", "frequency", "start_date", "is_active")


def normalize_required_days(days: Optional[Iterable[str]]) -> List[str]:
    """Lowercase, dedupe, and order weekday codes Monday first."""
    if not days:
        return []
    codes = set()
    for raw in days:
        code = str(raw).strip().lower()[:3]
        if code not in WEEKDAY_CODES:
            raise field_error("required_days", f"unknown weekday: {raw}")
        codes.add(code)
    return [code for code in WEEKDAY_CODES if code in codes]


def _check_choice(field: str, value: Optional[str], choices: Iterable[str]) -> None:
    if value is not None and value not in choices:
        raise field_error(field, f"must be one of: {', '.join(choices)}")


def get_owned_habit(user_id: int, habit_id: int) -> Habit:
    habit = Habit.query.filter_by(id=habit_id, user_id=user_id).first()
    if not habit:
        raise NotFoundError()
    return habit


def create_habit(
    user_id: int,
    *,
    name: str,
    description: str | None = None,
    category: str | None = None,
    color_code: str | None = None,
    icon: str | None = None,
    frequency: str | None = None,
    required_days: Iterable[str] | None = None,
    target_value: float | None = None,
    unit: str | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
) -> Habit:
    name_norm = (name or "").strip()
    if not name_norm:
        raise field_error("name", "name is required")
    _check_choice("category", category, CATEGORIES)
    _check_choice("frequency", frequency, FREQUENCIES)
    existing = Habit.query.filter_by(user_id=user_id, name=name_norm).first()
    if existing:
        raise ConflictError("habit name already exists")

    habit = Habit(
        user_id=user_id,
        name=name_norm,
        description=(description or "").strip() or None,
        category=category or "other",
        color_code=(color_code or "").strip() or "#4CAF50",
        icon=(icon or "").strip() or None,
        frequency=frequency or "daily",
        required_days=normalize_required_days(required_days),
        target_value=target_value,
        unit=(unit or "").strip() or None,
        start_date=optional_day_key(start_date, "start_date") or current_day(),
        end_date=optional_day_key(end_date, "end_date"),
    )
    db.session.add(habit)
    db.session.flush()
    enqueue_outbox(
        HABITS_HABIT_CREATED,
        {
            "habit_id": habit.id,
            "user_id": user_id,
            "name": habit.name,
            "category": habit.category,
            "frequency": habit.frequency,
            "required_days": list(habit.required_days),
            "created_at": habit.created_at.isoformat(),
        },
        user_id=user_id,
    )
    db.session.commit()
    return habit


def update_habit(user_id: int, habit_id: int, **fields) -> Habit:
    habit = get_owned_habit(user_id, habit_id)

    updates: Dict[str, object] = {}
    for key in _UPDATABLE:
        if key not in fields:
            continue
        val = fields[key]
        if isinstance(val, str):
            val = val.strip()
        if val is None and key in _NOT_NULL:
            raise field_error(key, f"{key} cannot be null")
        if key == "name" and not val:
            raise field_error("name", "name is required")
        if key == "category":
            _check_choice("category", val, CATEGORIES)
        if key == "frequency":
            _check_choice("frequency", val, FREQUENCIES)
        if key == "required_days":
            val = normalize_required_days(val)
        if key in ("start_date", "end_date"):
            val = optional_day_key(val, key)
        updates[key] = val

    if "name" in updates:
        clash = (
            Habit.query.filter_by(user_id=user_id, name=updates["name"])
            .filter(Habit.id != habit.id)
            .first()
        )
        if clash:
            raise ConflictError("habit name already exists")

    changed: Dict[str, object] = {}
    for key, val in updates.items():
        setattr(habit, key, val)
        changed[key] = val.isoformat() if isinstance(val, date) else val

    if any(key in changed for key in _SCHEDULE_FIELDS):
        # The required-day predicate changed, so every derived field may move.
        recompute_summary(habit)

    enqueue_outbox(
        HABITS_HABIT_UPDATED,
        {
            "habit_id": habit.id,
            "user_id": user_id,
            "fields": changed,
            "updated_at": datetime.utcnow().isoformat(),
        },
        user_id=user_id,
    )
    db.session.commit()
    return habit


def delete_habit(user_id: int, habit_id: int) -> None:
    """Delete a habit, its ledger history, and its sub-entries in any day."""
    habit = get_owned_habit(user_id, habit_id)
    detach_habit(user_id, habit_id)
    db.session.delete(habit)
    db.session.flush()
    recompute_progress(user_id)
    enqueue_outbox(
        HABITS_HABIT_DELETED,
        {
            "habit_id": habit_id,
            "user_id": user_id,
            "deleted_at": datetime.utcnow().isoformat(),
        },
        user_id=user_id,
    )
    db.session.commit()


def list_habits(user_id: int, on_day: Optional[date] = None) -> List[dict]:
    on_day = on_day or current_day()
    habits = (
        Habit.query.filter_by(user_id=user_id)
        .order_by(Habit.created_at.desc(), Habit.id.desc())
        .all()
    )
    done_today = {
        row.habit_id
        for row in HabitCompletion.query.filter_by(
            user_id=user_id, day_key=on_day, completed=True
        ).all()
    }
    return [
        {
            "habit": habit,
            "completed_today": habit.id in done_today,
            "required_today": Schedule.for_habit(habit).is_required(on_day),
        }
        for habit in habits
    ]


def habit_entries(habit: Habit) -> List[HabitCompletion]:
    """Full ledger history for a habit, oldest first."""
    return (
        HabitCompletion.query.filter_by(habit_id=habit.id, user_id=habit.user_id)
        .order_by(HabitCompletion.day_key.asc())
        .all()
    )


def recompute_summary(habit: Habit, today: Optional[date] = None) -> StreakSummary:
    """Rewrite the habit's derived fields from its full ledger history.

    Does not commit; callers recompute inside the transaction that changed the
    ledger so both land together.
    """
    summary = summarize(Schedule.for_habit(habit), habit_entries(habit), today or current_day())
    habit.current_streak = summary.current_streak
    habit.longest_streak = summary.longest_streak
    habit.total_completed = summary.total_completed
    habit.success_rate = summary.success_rate
    logger.debug(
        "Recomputed habit %s: current=%s longest=%s completed=%s rate=%s",
        habit.id,
        summary.current_streak,
        summary.longest_streak,
        summary.total_completed,
        summary.success_rate,
    )
    return summary


def refresh_summaries(user_id: int, today: Optional[date] = None) -> List[Habit]:
    """Recompute every habit of a user, e.g. at the start of a new day."""
    habits = Habit.query.filter_by(user_id=user_id).all()
    for habit in habits:
        recompute_summary(habit, today)
    db.session.commit()
    return habits


def compute_habit_stats(user_id: int, habit_id: int, today: Optional[date] = None) -> dict:
    habit = get_owned_habit(user_id, habit_id)
    today = today or current_day()
    entries = habit_entries(habit)
    summary = summarize(Schedule.for_habit(habit), entries, today)
    newest_first = list(reversed(entries))

    by_day = {entry.day_key: entry for entry in entries}
    last_30_days = {}
    for offset in range(30):
        day = today - timedelta(days=offset)
        entry = by_day.get(day)
        last_30_days[format_day_key(day)] = {
            "completed": entry.completed if entry else None,
            "notes": entry.notes if entry else None,
        }

    return {
        "habit": habit,
        "total_entries": summary.total_entries,
        "completed_entries": summary.total_completed,
        "success_rate": summary.success_rate,
        "current_streak": summary.current_streak,
        "longest_streak": summary.longest_streak,
        "last_entry_date": newest_first[0].day_key if newest_first else habit.start_date,
        "last_30_days": last_30_days,
        "recent_entries": newest_first[:10],
    }


def get_streak_detail(user_id: int, habit_id: int, today: Optional[date] = None) -> dict:
    habit = get_owned_habit(user_id, habit_id)
    today = today or current_day()
    entries = habit_entries(habit)
    summary = summarize(Schedule.for_habit(habit), entries, today)
    newest_first = list(reversed(entries))
    return {
        "habit": habit,
        "current_streak": summary.current_streak,
        "longest_streak": summary.longest_streak,
        "last_broken_date": habit.last_broken_date,
        "last_broken_reason": habit.last_broken_reason,
        "started_today": summary.current_streak > 0
        and bool(newest_first)
        and newest_first[0].day_key == today,
        "recent_history": newest_first[:7],
    }


__all__ = [
    "compute_habit_stats",
    "create_habit",
    "delete_habit",
    "get_owned_habit",
    "get_streak_detail",
    "habit_entries",
    "list_habits",
    "normalize_required_days",
    "recompute_summary",
    "refresh_summaries",
    "update_habit",
]
