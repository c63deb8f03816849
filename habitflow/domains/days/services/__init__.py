"""Day aggregate services: day CRUD, habit membership, and write-through checks.

A day's per-habit flags are a projection of the completion ledger. Checking a
habit inside a day is a ledger write; the ledger service projects it back into
the day within the same transaction.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError

from habitflow.core.dates import (
    format_day_key,
    iter_days,
    month_bounds,
    optional_day_key,
    parse_day_key,
    weekday_code,
)
from habitflow.core.errors import ConflictError, NotFoundError, field_error
from habitflow.domains.days.events import (
    DAYS_DAY_CREATED,
    DAYS_DAY_DELETED,
    DAYS_DAY_UPDATED,
    DAYS_HABIT_ADDED,
    DAYS_HABIT_CHECKED,
    DAYS_HABIT_REMOVED,
)
from habitflow.domains.days.models.day_models import DAY_STATUSES, Day, DayHabit
from habitflow.domains.days.projection import apply_completion, recompute_day_counts
from habitflow.domains.habits.models.habit_models import Habit, HabitCompletion
from habitflow.domains.habits.services.ledger_service import set_completion, toggle_completion
from habitflow.extensions import db
from habitflow.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

_DAY_FIELDS = ("day_notes", "mood", "energy", "tags", "status")


def _validate_scale(field: str, value) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise field_error(field, f"{field} must be between 1 and 5")


def _validate_day_fields(fields: dict) -> None:
    _validate_scale("mood", fields.get("mood"))
    _validate_scale("energy", fields.get("energy"))
    if "status" in fields and fields["status"] is None:
        raise field_error("status", "status cannot be null")
    status = fields.get("status")
    if status is not None and status not in DAY_STATUSES:
        raise field_error("status", f"must be one of: {', '.join(DAY_STATUSES)}")
    notes = fields.get("day_notes")
    if notes is not None and len(notes) > 1000:
        raise field_error("day_notes", "day notes must be at most 1000 characters")


def _owned_habits(user_id: int, habit_ids: Iterable[int]) -> List[Habit]:
    wanted = list(dict.fromkeys(habit_ids))
    if not wanted:
        return []
    habits = Habit.query.filter(Habit.user_id == user_id, Habit.id.in_(wanted)).all()
    if len(habits) != len(wanted):
        raise field_error("habits", "some habits do not exist")
    by_id = {habit.id: habit for habit in habits}
    return [by_id[habit_id] for habit_id in wanted]


def _new_day_habit(user_id: int, habit_id: int, day_key: date) -> DayHabit:
    """Sub-entry seeded from the ledger so both views agree from the start."""
    item = DayHabit(habit_id=habit_id, completed=False)
    existing = HabitCompletion.query.filter_by(
        user_id=user_id, habit_id=habit_id, day_key=day_key
    ).first()
    if existing is not None:
        apply_completion(item, existing)
    return item


def get_day(user_id: int, day_id: int) -> Day:
    day = Day.query.filter_by(id=day_id, user_id=user_id).first()
    if not day:
        raise NotFoundError()
    return day


def get_day_for_date(user_id: int, day_key) -> Optional[Day]:
    return Day.query.filter_by(user_id=user_id, date=parse_day_key(day_key)).first()


def create_day(
    user_id: int,
    *,
    date,
    habits: Iterable[int] | None = None,
    day_notes: str | None = None,
    mood: int | None = None,
    energy: int | None = None,
    tags: Iterable[str] | None = None,
) -> Day:
    day_key = parse_day_key(date)
    _validate_day_fields({"mood": mood, "energy": energy, "day_notes": day_notes})
    if get_day_for_date(user_id, day_key) is not None:
        raise ConflictError("a day already exists for this date")

    members = _owned_habits(user_id, habits or [])
    day = Day(
        user_id=user_id,
        date=day_key,
        day_notes=(day_notes or "").strip() or None,
        mood=mood,
        energy=energy,
        tags=list(tags or []),
        status="planned",
    )
    for habit in members:
        day.habits.append(_new_day_habit(user_id, habit.id, day_key))
    recompute_day_counts(day)
    db.session.add(day)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("a day already exists for this date")

    enqueue_outbox(
        DAYS_DAY_CREATED,
        {
            "day_id": day.id,
            "user_id": user_id,
            "date": format_day_key(day_key),
            "habit_ids": [habit.id for habit in members],
        },
        user_id=user_id,
    )
    db.session.commit()
    return day


def upsert_day(
    user_id: int,
    *,
    date,
    habits: Iterable[int] | None = None,
    **fields,
) -> tuple[Day, bool]:
    """Create the day for ``date`` or merge fields and new habits into it.

    Returns ``(day, created)``.
    """
    existing = get_day_for_date(user_id, date)
    if existing is None:
        day_fields = {key: fields.get(key) for key in ("day_notes", "mood", "energy", "tags")}
        return create_day(user_id, date=date, habits=habits, **day_fields), True

    _apply_day_fields(existing, user_id, fields)
    present = {item.habit_id for item in existing.habits}
    for habit in _owned_habits(user_id, habits or []):
        if habit.id not in present:
            existing.habits.append(_new_day_habit(user_id, habit.id, existing.date))
    recompute_day_counts(existing)
    db.session.commit()
    return existing, False


def _apply_day_fields(day: Day, user_id: int, fields: dict) -> None:
    _validate_day_fields(fields)
    changed = {}
    for key in _DAY_FIELDS:
        if key in fields:
            val = fields[key]
            if key == "day_notes" and isinstance(val, str):
                val = val.strip() or None
            if key == "tags":
                val = list(val or [])
            setattr(day, key, val)
            changed[key] = val
    enqueue_outbox(
        DAYS_DAY_UPDATED,
        {"day_id": day.id, "user_id": user_id, "fields": changed},
        user_id=user_id,
    )


def update_day(user_id: int, day_id: int, **fields) -> Day:
    day = get_day(user_id, day_id)
    _apply_day_fields(day, user_id, fields)
    db.session.commit()
    return day


def delete_day(user_id: int, day_id: int) -> None:
    """Delete the day view only; ledger history stays."""
    day = get_day(user_id, day_id)
    payload = {"day_id": day.id, "user_id": user_id, "date": format_day_key(day.date)}
    db.session.delete(day)
    enqueue_outbox(DAYS_DAY_DELETED, payload, user_id=user_id)
    db.session.commit()


def list_days(
    user_id: int,
    start=None,
    end=None,
    status: str | None = None,
) -> List[Day]:
    query = Day.query.filter_by(user_id=user_id)
    start_key = optional_day_key(start, "start")
    end_key = optional_day_key(end, "end")
    if start_key:
        query = query.filter(Day.date >= start_key)
    if end_key:
        query = query.filter(Day.date <= end_key)
    if status:
        if status not in DAY_STATUSES:
            raise field_error("status", f"must be one of: {', '.join(DAY_STATUSES)}")
        query = query.filter(Day.status == status)
    return query.order_by(Day.date.desc()).all()


def _find_item(day: Day, habit_id: int) -> Optional[DayHabit]:
    return next((item for item in day.habits if item.habit_id == habit_id), None)


def add_habit_to_day(user_id: int, day_id: int, habit_id: int) -> Day:
    """Attach a habit as an unchecked sub-entry; no ledger entry is written."""
    day = get_day(user_id, day_id)
    habit = Habit.query.filter_by(id=habit_id, user_id=user_id).first()
    if not habit:
        raise NotFoundError()
    if _find_item(day, habit_id) is not None:
        raise ConflictError("habit already added to this day")

    day.habits.append(_new_day_habit(user_id, habit_id, day.date))
    recompute_day_counts(day)
    enqueue_outbox(
        DAYS_HABIT_ADDED,
        {"day_id": day.id, "habit_id": habit_id, "user_id": user_id, "total_habits": day.total_habits},
        user_id=user_id,
    )
    db.session.commit()
    return day


def remove_habit_from_day(user_id: int, day_id: int, habit_id: int) -> Day:
    """Detach a habit from the day; the ledger entry for that date is kept."""
    day = get_day(user_id, day_id)
    item = _find_item(day, habit_id)
    if item is None:
        raise NotFoundError()
    day.habits.remove(item)
    recompute_day_counts(day)
    enqueue_outbox(
        DAYS_HABIT_REMOVED,
        {"day_id": day.id, "habit_id": habit_id, "user_id": user_id, "total_habits": day.total_habits},
        user_id=user_id,
    )
    db.session.commit()
    return day


def _stage_checked_event(day: Day, habit_id: int, user_id: int) -> None:
    item = _find_item(day, habit_id)
    enqueue_outbox(
        DAYS_HABIT_CHECKED,
        {
            "day_id": day.id,
            "habit_id": habit_id,
            "user_id": user_id,
            "completed": bool(item.completed) if item else False,
            "completed_habits": day.completed_habits,
            "success_rate": day.success_rate,
        },
        user_id=user_id,
    )
    db.session.commit()


def toggle_habit_in_day(
    user_id: int, day_id: int, habit_id: int, *, today: Optional[date] = None
) -> Day:
    """Flip the habit's ledger entry for the day's date and return the refreshed day."""
    day = get_day(user_id, day_id)
    if _find_item(day, habit_id) is None:
        raise NotFoundError()
    toggle_completion(user_id, habit_id, day.date, today=today, commit=False)
    day = get_day(user_id, day_id)
    _stage_checked_event(day, habit_id, user_id)
    return day


def check_habit_in_day(
    user_id: int,
    day_id: int,
    habit_id: int,
    *,
    completed: bool,
    quality: int | None = None,
    notes: str | None = None,
    today: Optional[date] = None,
) -> Day:
    """Set the habit's completion for the day's date through the ledger."""
    day = get_day(user_id, day_id)
    if _find_item(day, habit_id) is None:
        raise NotFoundError()
    set_completion(
        user_id,
        habit_id,
        day.date,
        completed,
        quality=quality,
        notes=notes,
        today=today,
        commit=False,
    )
    day = get_day(user_id, day_id)
    _stage_checked_event(day, habit_id, user_id)
    return day


def monthly_calendar(user_id: int, year: int, month: int) -> dict:
    """One cell per day of the month carrying the day (or None) and its weekday code."""
    try:
        month_start = date(int(year), int(month), 1)
    except (TypeError, ValueError):
        raise field_error("month", "year and month are required")
    first, last = month_bounds(month_start)
    days = (
        Day.query.filter_by(user_id=user_id)
        .filter(Day.date >= first, Day.date <= last)
        .order_by(Day.date.asc())
        .all()
    )
    by_date = {day.date: day for day in days}
    return {
        "year": month_start.year,
        "month": month_start.month,
        "days": [
            {
                "date": format_day_key(day_key),
                "day": by_date.get(day_key),
                "day_of_week": weekday_code(day_key),
            }
            for day_key in iter_days(first, last)
        ],
    }


__all__ = [
    "add_habit_to_day",
    "check_habit_in_day",
    "create_day",
    "delete_day",
    "get_day",
    "get_day_for_date",
    "list_days",
    "monthly_calendar",
    "remove_habit_from_day",
    "toggle_habit_in_day",
    "update_day",
    "upsert_day",
]
