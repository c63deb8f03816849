"""Completion ledger: one fact per (user, habit, day) and its write paths.

Every mutation here runs as one transaction: the ledger row, the projection
into any day aggregate listing the habit, the habit's derived summary, and the
outbox event are committed together or not at all.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from habitflow.core.dates import format_day_key, month_bounds, parse_day_key, parse_month
from habitflow.core.errors import ConflictError, NotFoundError, field_error
from habitflow.domains.days.projection import mirror_completion
from habitflow.domains.habits.events import (
    HABITS_COMPLETION_DELETED,
    HABITS_COMPLETION_RECORDED,
    HABITS_COMPLETION_TOGGLED,
    HABITS_COMPLETION_UPDATED,
)
from habitflow.domains.habits.models.habit_models import SKIP_REASONS, Habit, HabitCompletion
from habitflow.domains.habits.services.habit_service import get_owned_habit, recompute_summary
from habitflow.domains.habits.services.progress_service import entry_xp, recompute_progress
from habitflow.extensions import db
from habitflow.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

_ENTRY_FIELDS = ("completed", "quality", "skip_reason", "skip_reason_text", "notes")


def _lookup_entry(
    user_id: int, habit_id: int, day_key: date, lock: bool = False
) -> Optional[HabitCompletion]:
    query = HabitCompletion.query.filter_by(user_id=user_id, habit_id=habit_id, day_key=day_key)
    if lock:
        query = query.with_for_update()
    return query.first()


def _validate_quality(quality) -> None:
    if quality is None:
        return
    if isinstance(quality, bool) or not isinstance(quality, int) or not 1 <= quality <= 5:
        raise field_error("quality", "quality must be between 1 and 5")


def _validate_skip_reason(skip_reason) -> None:
    if skip_reason is not None and skip_reason not in SKIP_REASONS:
        raise field_error("skip_reason", f"must be one of: {', '.join(SKIP_REASONS)}")


def _validate_notes(notes) -> None:
    if notes is not None and len(notes) > 500:
        raise field_error("notes", "notes must be at most 500 characters")


def _enforce_exclusivity(entry: HabitCompletion) -> None:
    """Quality belongs to completed entries, skip reasons to incomplete ones."""
    if entry.completed:
        entry.skip_reason = None
        entry.skip_reason_text = None
    else:
        entry.quality = None
        if entry.skip_reason != "other":
            entry.skip_reason_text = None


def _note_streak_break(
    habit: Habit, entry: HabitCompletion, previously_completed: Optional[bool]
) -> None:
    """Remember the break when a live streak meets a newly incomplete day.

    ``previously_completed`` is None for a new entry. Edits that leave an entry
    incomplete, and misses older than the latest completion, are not breaks.
    """
    if entry.completed or previously_completed is False:
        return
    if (habit.current_streak or 0) <= 0:
        return
    latest_completed = (
        db.session.query(func.max(HabitCompletion.day_key))
        .filter(
            HabitCompletion.habit_id == habit.id,
            HabitCompletion.completed.is_(True),
            HabitCompletion.id != entry.id,
        )
        .scalar()
    )
    if latest_completed is not None and entry.day_key < latest_completed:
        return
    habit.last_broken_date = entry.day_key
    habit.last_broken_reason = entry.skip_reason


def _finish_write(
    habit: Habit,
    entry: HabitCompletion,
    event_name: str,
    today: Optional[date],
    *,
    removed: bool = False,
    commit: bool = True,
) -> None:
    """Project the change, recompute the habit summary and owner progress, stage the event, commit."""
    mirror_completion(habit.user_id, habit.id, entry.day_key, None if removed else entry)
    summary = recompute_summary(habit, today)
    progress = recompute_progress(habit.user_id)
    enqueue_outbox(
        event_name,
        {
            "completion_id": entry.id,
            "habit_id": habit.id,
            "user_id": habit.user_id,
            "day_key": format_day_key(entry.day_key),
            "completed": False if removed else bool(entry.completed),
            "current_streak": summary.current_streak,
            "longest_streak": summary.longest_streak,
            "success_rate": summary.success_rate,
            "xp_earned": 0 if removed else entry_xp(entry),
            "total_xp": progress.total_xp,
            "level": progress.level,
        },
        user_id=habit.user_id,
    )
    if commit:
        db.session.commit()
    else:
        db.session.flush()


def toggle_completion(
    user_id: int,
    habit_id: int,
    day_key,
    *,
    today: Optional[date] = None,
    commit: bool = True,
) -> HabitCompletion:
    """Create a completed entry for the day, or flip the existing one.

    Two concurrent toggles on an empty day both try to insert; the store's
    unique constraint rejects the loser, which then returns the winner's row.
    """
    habit = get_owned_habit(user_id, habit_id)
    day_key = parse_day_key(day_key)

    entry = _lookup_entry(user_id, habit_id, day_key, lock=True)
    if entry is None:
        entry = HabitCompletion(
            user_id=user_id,
            habit_id=habit_id,
            day_key=day_key,
            completed=True,
        )
        db.session.add(entry)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            existing = _lookup_entry(user_id, habit_id, day_key)
            if existing is None:
                raise
            logger.info(
                "Concurrent toggle for habit %s on %s lost the insert; returning entry %s",
                habit_id,
                day_key,
                existing.id,
            )
            return existing
    else:
        entry.completed = not entry.completed
        _enforce_exclusivity(entry)

    _finish_write(habit, entry, HABITS_COMPLETION_TOGGLED, today, commit=commit)
    return entry


def set_completion(
    user_id: int,
    habit_id: int,
    day_key,
    completed: bool,
    *,
    quality: int | None = None,
    notes: str | None = None,
    today: Optional[date] = None,
    commit: bool = True,
) -> HabitCompletion:
    """Force the day's entry to ``completed``, creating it if needed."""
    habit = get_owned_habit(user_id, habit_id)
    day_key = parse_day_key(day_key)
    _validate_quality(quality)
    _validate_notes(notes)

    entry = _lookup_entry(user_id, habit_id, day_key, lock=True)
    previously_completed = entry.completed if entry is not None else None
    if entry is None:
        entry = HabitCompletion(
            user_id=user_id, habit_id=habit_id, day_key=day_key, completed=bool(completed)
        )
        db.session.add(entry)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            entry = _lookup_entry(user_id, habit_id, day_key, lock=True)
            if entry is None:
                raise
            logger.info("Concurrent write for habit %s on %s; applying as update", habit_id, day_key)
            previously_completed = entry.completed

    entry.completed = bool(completed)
    if quality is not None:
        entry.quality = quality
    if notes is not None:
        entry.notes = notes.strip() or None
    _enforce_exclusivity(entry)
    _note_streak_break(habit, entry, previously_completed)
    db.session.flush()

    _finish_write(habit, entry, HABITS_COMPLETION_UPDATED, today, commit=commit)
    return entry


def record_completion(
    user_id: int,
    habit_id: int,
    day_key,
    *,
    completed: bool = True,
    quality: int | None = None,
    skip_reason: str | None = None,
    skip_reason_text: str | None = None,
    notes: str | None = None,
    today: Optional[date] = None,
) -> HabitCompletion:
    """Explicitly create the day's entry; an existing entry is a conflict."""
    habit = get_owned_habit(user_id, habit_id)
    day_key = parse_day_key(day_key)
    _validate_quality(quality)
    _validate_skip_reason(skip_reason)
    _validate_notes(notes)

    if _lookup_entry(user_id, habit_id, day_key) is not None:
        raise ConflictError("completion for this date already exists")

    entry = HabitCompletion(
        user_id=user_id,
        habit_id=habit_id,
        day_key=day_key,
        completed=bool(completed),
        quality=quality,
        skip_reason=skip_reason,
        skip_reason_text=(skip_reason_text or "").strip() or None,
        notes=(notes or "").strip() or None,
    )
    _enforce_exclusivity(entry)
    db.session.add(entry)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("completion for this date already exists")

    _note_streak_break(habit, entry, None)
    _finish_write(habit, entry, HABITS_COMPLETION_RECORDED, today)
    return entry


def get_owned_entry(user_id: int, entry_id: int) -> HabitCompletion:
    entry = HabitCompletion.query.filter_by(id=entry_id, user_id=user_id).first()
    if not entry:
        raise NotFoundError()
    return entry


def update_completion(
    user_id: int, entry_id: int, *, today: Optional[date] = None, **fields
) -> HabitCompletion:
    entry = get_owned_entry(user_id, entry_id)
    previously_completed = entry.completed
    if "completed" in fields and fields["completed"] is None:
        raise field_error("completed", "completed cannot be null")
    if "quality" in fields:
        _validate_quality(fields["quality"])
    if "skip_reason" in fields:
        _validate_skip_reason(fields["skip_reason"])
    if "notes" in fields:
        _validate_notes(fields["notes"])

    for key in _ENTRY_FIELDS:
        if key in fields:
            val = fields[key]
            if isinstance(val, str):
                val = val.strip() or None
            if key == "completed":
                val = bool(val)
            setattr(entry, key, val)
    _enforce_exclusivity(entry)

    habit = entry.habit
    _note_streak_break(habit, entry, previously_completed)
    _finish_write(habit, entry, HABITS_COMPLETION_UPDATED, today)
    return entry


def delete_completion(user_id: int, entry_id: int, *, today: Optional[date] = None) -> None:
    entry = get_owned_entry(user_id, entry_id)
    habit = entry.habit
    db.session.delete(entry)
    db.session.flush()
    _finish_write(habit, entry, HABITS_COMPLETION_DELETED, today, removed=True)


def list_by_range(
    user_id: int,
    habit_id: int,
    start=None,
    end=None,
) -> List[HabitCompletion]:
    """Entries for one habit, newest first; either bound may be open."""
    get_owned_habit(user_id, habit_id)
    query = HabitCompletion.query.filter_by(user_id=user_id, habit_id=habit_id)
    if start not in (None, ""):
        query = query.filter(HabitCompletion.day_key >= parse_day_key(start, "start"))
    if end not in (None, ""):
        query = query.filter(HabitCompletion.day_key <= parse_day_key(end, "end"))
    return query.order_by(HabitCompletion.day_key.desc()).all()


def list_by_month(user_id: int, month) -> Dict[str, List[HabitCompletion]]:
    """All of a user's entries in a calendar month keyed by ``YYYY-MM-DD``, oldest day first."""
    first, last = month_bounds(parse_month(month))
    entries = (
        HabitCompletion.query.filter_by(user_id=user_id)
        .filter(HabitCompletion.day_key >= first, HabitCompletion.day_key <= last)
        .order_by(HabitCompletion.day_key.asc(), HabitCompletion.habit_id.asc())
        .all()
    )
    by_day: Dict[str, List[HabitCompletion]] = OrderedDict()
    for entry in entries:
        by_day.setdefault(format_day_key(entry.day_key), []).append(entry)
    return by_day
