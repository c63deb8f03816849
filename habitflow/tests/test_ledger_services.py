"""Completion ledger services: toggles, explicit records, queries, recompute."""

from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

pytestmark = pytest.mark.integration

from habitflow.core.dates import parse_day_key
from habitflow.core.errors import ConflictError, NotFoundError, ValidationFailed
from habitflow.domains.habits.models import Habit, HabitCompletion
from habitflow.domains.habits.services import (
    create_habit,
    delete_completion,
    delete_habit,
    list_by_month,
    list_by_range,
    recompute_summary,
    record_completion,
    set_completion,
    toggle_completion,
    update_completion,
)
from habitflow.domains.habits.services import ledger_service
from habitflow.extensions import db
from habitflow.platform.outbox.models import OutboxMessage

TODAY = date(2024, 3, 10)


@pytest.fixture
def habit(app, user):
    return create_habit(user.id, name="Meditate", category="mindfulness")


class TestToggle:
    """Toggle creates or flips the day's entry."""

    def test_first_toggle_creates_completed_entry(self, app, user, habit):
        entry = toggle_completion(user.id, habit.id, TODAY, today=TODAY)

        assert entry.completed is True
        assert entry.day_key == TODAY
        assert habit.current_streak == 1
        assert habit.total_completed == 1
        assert habit.success_rate == 100

    def test_double_toggle_restores_state(self, app, user, habit):
        toggle_completion(user.id, habit.id, TODAY, today=TODAY)
        entry = toggle_completion(user.id, habit.id, TODAY, today=TODAY)

        assert entry.completed is False
        assert HabitCompletion.query.filter_by(habit_id=habit.id).count() == 1
        assert habit.current_streak == 0
        assert habit.total_completed == 0

    def test_toggle_accepts_iso_string_and_timestamp(self, app, user, habit):
        toggle_completion(user.id, habit.id, "2024-03-09", today=TODAY)
        entry = toggle_completion(user.id, habit.id, "2024-03-09T23:15:00", today=TODAY)

        assert entry.day_key == date(2024, 3, 9)
        assert entry.completed is False

    def test_toggle_rejects_bad_date(self, app, user, habit):
        with pytest.raises(ValidationFailed):
            toggle_completion(user.id, habit.id, "not-a-date", today=TODAY)

    @pytest.mark.parametrize(
        "raw", ["2024-03-10garbage", "2024-03-10Tnope", "20240310", "2024-3-10", "2024-03-10 x"]
    )
    def test_malformed_day_keys_are_rejected(self, app, user, habit, raw):
        with pytest.raises(ValidationFailed):
            parse_day_key(raw)
        with pytest.raises(ValidationFailed):
            record_completion(user.id, habit.id, raw, today=TODAY)
        assert HabitCompletion.query.count() == 0

    def test_toggle_foreign_habit_is_not_found(self, app, habit, other_user):
        with pytest.raises(NotFoundError):
            toggle_completion(other_user.id, habit.id, TODAY, today=TODAY)

    def test_concurrent_toggle_settles_on_one_completed_entry(self, app, user, habit):
        toggle_completion(user.id, habit.id, TODAY, today=TODAY)
        original = ledger_service._lookup_entry
        calls = {"count": 0}

        def stale_lookup(*args, **kwargs):
            # First read misses, as if a concurrent toggle inserted after our check.
            calls["count"] += 1
            if calls["count"] == 1:
                return None
            return original(*args, **kwargs)

        with patch.object(ledger_service, "_lookup_entry", side_effect=stale_lookup):
            entry = toggle_completion(user.id, habit.id, TODAY, today=TODAY)

        rows = HabitCompletion.query.filter_by(user_id=user.id, habit_id=habit.id, day_key=TODAY).all()
        assert len(rows) == 1
        assert rows[0].completed is True
        assert entry.id == rows[0].id

    def test_toggle_stages_outbox_event(self, app, user, habit):
        toggle_completion(user.id, habit.id, TODAY, today=TODAY)
        events = OutboxMessage.query.filter_by(event_type="habits.completion.toggled").all()

        assert len(events) == 1
        assert events[0].payload["day_key"] == "2024-03-10"
        assert events[0].payload["current_streak"] == 1


class TestRecord:
    """Explicit creation of an entry."""

    def test_record_skip_with_reason(self, app, user, habit):
        entry = record_completion(
            user.id,
            habit.id,
            TODAY,
            completed=False,
            quality=4,
            skip_reason="tired",
            notes="  long day  ",
            today=TODAY,
        )

        assert entry.completed is False
        assert entry.quality is None
        assert entry.skip_reason == "tired"
        assert entry.notes == "long day"

    def test_record_completed_drops_skip_reason(self, app, user, habit):
        entry = record_completion(user.id, habit.id, TODAY, quality=5, skip_reason="forgot", today=TODAY)

        assert entry.quality == 5
        assert entry.skip_reason is None

    def test_skip_reason_text_only_for_other(self, app, user, habit):
        entry = record_completion(
            user.id,
            habit.id,
            TODAY,
            completed=False,
            skip_reason="no-time",
            skip_reason_text="meetings",
            today=TODAY,
        )
        assert entry.skip_reason_text is None

    def test_record_existing_day_conflicts(self, app, user, habit):
        record_completion(user.id, habit.id, TODAY, today=TODAY)
        with pytest.raises(ConflictError):
            record_completion(user.id, habit.id, TODAY, today=TODAY)

    def test_record_rejects_quality_out_of_range(self, app, user, habit):
        with pytest.raises(ValidationFailed) as exc:
            record_completion(user.id, habit.id, TODAY, quality=6, today=TODAY)
        assert exc.value.details[0]["loc"] == ["quality"]

    def test_record_rejects_unknown_skip_reason(self, app, user, habit):
        with pytest.raises(ValidationFailed):
            record_completion(user.id, habit.id, TODAY, completed=False, skip_reason="lazy", today=TODAY)

    def test_skip_while_on_streak_marks_break(self, app, user, habit):
        record_completion(user.id, habit.id, date(2024, 3, 9), today=date(2024, 3, 9))
        record_completion(user.id, habit.id, TODAY, completed=False, skip_reason="forgot", today=TODAY)

        assert habit.last_broken_date == TODAY
        assert habit.last_broken_reason == "forgot"
        assert habit.current_streak == 0


class TestUpdateDelete:
    """Owner-scoped edits re-derive the summary."""

    def test_update_to_incomplete_clears_quality(self, app, user, habit):
        entry = record_completion(user.id, habit.id, TODAY, quality=3, today=TODAY)
        updated = update_completion(user.id, entry.id, completed=False, skip_reason="tired", today=TODAY)

        assert updated.completed is False
        assert updated.quality is None
        assert updated.skip_reason == "tired"
        assert habit.success_rate == 0

    def test_update_foreign_entry_is_not_found(self, app, user, habit, other_user):
        entry = record_completion(user.id, habit.id, TODAY, today=TODAY)
        with pytest.raises(NotFoundError):
            update_completion(other_user.id, entry.id, completed=False)

    def test_delete_foreign_entry_is_not_found(self, app, user, habit, other_user):
        entry = record_completion(user.id, habit.id, TODAY, today=TODAY)
        with pytest.raises(NotFoundError):
            delete_completion(other_user.id, entry.id)

    def test_delete_recomputes_summary(self, app, user, habit):
        entry = record_completion(user.id, habit.id, TODAY, today=TODAY)
        assert habit.total_completed == 1

        delete_completion(user.id, entry.id, today=TODAY)

        assert HabitCompletion.query.count() == 0
        assert habit.total_completed == 0
        assert habit.current_streak == 0

    def test_set_completion_creates_then_overwrites(self, app, user, habit):
        first = set_completion(user.id, habit.id, TODAY, True, quality=4, today=TODAY)
        second = set_completion(user.id, habit.id, TODAY, True, notes="again", today=TODAY)

        assert first.id == second.id
        assert second.quality == 4
        assert second.notes == "again"

    def test_set_completion_lost_insert_applies_as_update(self, app, user, habit):
        record_completion(user.id, habit.id, TODAY, today=TODAY)
        original = ledger_service._lookup_entry
        calls = {"count": 0}

        def stale_lookup(*args, **kwargs):
            calls["count"] += 1
            if calls["count"] == 1:
                return None
            return original(*args, **kwargs)

        with patch.object(ledger_service, "_lookup_entry", side_effect=stale_lookup):
            entry = set_completion(user.id, habit.id, TODAY, False, today=TODAY)

        rows = HabitCompletion.query.filter_by(habit_id=habit.id, day_key=TODAY).all()
        assert [row.id for row in rows] == [entry.id]
        assert rows[0].completed is False
        assert habit.last_broken_date == TODAY

    def test_set_completion_gives_up_when_row_never_appears(self, app, user, habit):
        record_completion(user.id, habit.id, TODAY, today=TODAY)

        with patch.object(ledger_service, "_lookup_entry", return_value=None):
            with pytest.raises(IntegrityError):
                set_completion(user.id, habit.id, TODAY, False, today=TODAY)

        assert HabitCompletion.query.filter_by(habit_id=habit.id).count() == 1


class TestStreakBreak:
    """Only a live streak meeting a newly incomplete day counts as a break."""

    def _streak_through_today(self, user, habit):
        for day in (8, 9, 10):
            toggle_completion(user.id, habit.id, date(2024, 3, day), today=TODAY)
        assert habit.current_streak == 3

    def test_editing_an_old_skip_keeps_break_unset(self, app, user, habit):
        old = record_completion(
            user.id, habit.id, date(2024, 2, 1), completed=False, skip_reason="tired", today=TODAY
        )
        self._streak_through_today(user, habit)

        update_completion(user.id, old.id, notes="was sick", today=TODAY)

        assert habit.last_broken_date is None
        assert habit.last_broken_reason is None

    def test_backfilled_miss_before_latest_completion_is_not_a_break(self, app, user, habit):
        self._streak_through_today(user, habit)

        record_completion(
            user.id, habit.id, date(2024, 3, 1), completed=False, skip_reason="forgot", today=TODAY
        )

        assert habit.last_broken_date is None

    def test_flipping_latest_completion_to_skip_is_a_break(self, app, user, habit):
        self._streak_through_today(user, habit)
        entry = HabitCompletion.query.filter_by(habit_id=habit.id, day_key=TODAY).one()

        update_completion(user.id, entry.id, completed=False, skip_reason="no-time", today=TODAY)

        assert habit.last_broken_date == TODAY
        assert habit.last_broken_reason == "no-time"

    def test_rewriting_existing_skip_does_not_move_break(self, app, user, habit):
        self._streak_through_today(user, habit)
        record_completion(
            user.id, habit.id, date(2024, 3, 11), completed=False, skip_reason="tired", today=date(2024, 3, 11)
        )
        assert habit.last_broken_date == date(2024, 3, 11)

        set_completion(user.id, habit.id, date(2024, 3, 11), False, notes="still tired", today=date(2024, 3, 11))

        assert habit.last_broken_date == date(2024, 3, 11)
        assert habit.last_broken_reason == "tired"


class TestQueries:
    """Range and month listings."""

    def test_list_by_range_is_newest_first_with_open_bounds(self, app, user, habit):
        for day in (1, 5, 3):
            record_completion(user.id, habit.id, date(2024, 3, day), today=TODAY)

        everything = list_by_range(user.id, habit.id)
        bounded = list_by_range(user.id, habit.id, start="2024-03-02")

        assert [e.day_key.day for e in everything] == [5, 3, 1]
        assert [e.day_key.day for e in bounded] == [5, 3]

    def test_list_by_month_groups_all_habits_by_day(self, app, user, habit):
        other = create_habit(user.id, name="Read")
        record_completion(user.id, habit.id, date(2024, 3, 2), today=TODAY)
        record_completion(user.id, other.id, date(2024, 3, 2), today=TODAY)
        record_completion(user.id, habit.id, date(2024, 3, 1), today=TODAY)
        record_completion(user.id, habit.id, date(2024, 4, 1), today=TODAY)

        by_day = list_by_month(user.id, "2024-03")

        assert list(by_day) == ["2024-03-01", "2024-03-02"]
        assert len(by_day["2024-03-02"]) == 2


class TestSummary:
    """Derived fields follow the ledger."""

    def test_recompute_is_idempotent(self, app, user, habit):
        for day in (7, 8, 9, 10):
            record_completion(user.id, habit.id, date(2024, 3, day), today=TODAY)

        first = recompute_summary(habit, TODAY)
        second = recompute_summary(habit, TODAY)

        assert first == second
        assert habit.current_streak == 4
        assert habit.longest_streak == 4

    def test_schedule_change_recomputes(self, app, user, habit):
        from habitflow.domains.habits.services import update_habit

        # Fri 8th and Sun 10th completed; Sat 9th missing.
        record_completion(user.id, habit.id, date(2024, 3, 8), today=TODAY)
        record_completion(user.id, habit.id, TODAY, today=TODAY)
        assert habit.longest_streak == 1

        with patch("habitflow.domains.habits.services.habit_service.current_day", return_value=TODAY):
            update_habit(user.id, habit.id, frequency="custom", required_days=["fri", "sun"])

        assert habit.current_streak == 2
        assert habit.longest_streak == 2

    def test_deleting_habit_cascades_ledger(self, app, user, habit):
        record_completion(user.id, habit.id, TODAY, today=TODAY)
        delete_habit(user.id, habit.id)

        assert db.session.get(Habit, habit.id) is None
        assert HabitCompletion.query.count() == 0
