"""Day aggregate services and their write-through to the completion ledger."""

from datetime import date

import pytest

pytestmark = pytest.mark.integration

from habitflow.core.errors import ConflictError, NotFoundError, ValidationFailed
from habitflow.domains.days.models import Day, DayHabit
from habitflow.domains.days.services import (
    add_habit_to_day,
    check_habit_in_day,
    create_day,
    delete_day,
    get_day,
    list_days,
    monthly_calendar,
    remove_habit_from_day,
    toggle_habit_in_day,
    update_day,
    upsert_day,
)
from habitflow.domains.habits.models import HabitCompletion
from habitflow.domains.habits.services import create_habit, delete_habit, toggle_completion
from habitflow.platform.outbox.models import OutboxMessage

DAY = date(2024, 3, 10)


@pytest.fixture
def habits(app, user):
    return [create_habit(user.id, name=name) for name in ("Run", "Read", "Stretch")]


def _item(day: Day, habit_id: int) -> DayHabit:
    return next(item for item in day.habits if item.habit_id == habit_id)


class TestCreateDay:
    """Creation, validation and duplicates."""

    def test_create_day_with_habits(self, app, user, habits):
        day = create_day(user.id, date=DAY, habits=[h.id for h in habits], mood=4, tags=["work"])

        assert day.total_habits == 3
        assert day.completed_habits == 0
        assert day.success_rate == 0
        assert day.status == "planned"
        assert day.tags == ["work"]

    def test_duplicate_date_conflicts(self, app, user, habits):
        create_day(user.id, date=DAY)
        with pytest.raises(ConflictError):
            create_day(user.id, date="2024-03-10")

    def test_unknown_habit_is_validation_error(self, app, user, habits, other_user):
        foreign = create_habit(other_user.id, name="Foreign")
        with pytest.raises(ValidationFailed):
            create_day(user.id, date=DAY, habits=[habits[0].id, foreign.id])

    @pytest.mark.parametrize("field", ["mood", "energy"])
    def test_scale_out_of_range(self, app, user, field):
        with pytest.raises(ValidationFailed):
            create_day(user.id, date=DAY, **{field: 6})

    def test_new_sub_entry_is_seeded_from_ledger(self, app, user, habits):
        toggle_completion(user.id, habits[0].id, DAY, today=DAY)
        day = create_day(user.id, date=DAY, habits=[habits[0].id, habits[1].id])

        assert _item(day, habits[0].id).completed is True
        assert day.completed_habits == 1
        assert day.success_rate == 50


class TestMembership:
    """Adding and removing habits."""

    def test_add_does_not_write_ledger(self, app, user, habits):
        day = create_day(user.id, date=DAY)
        day = add_habit_to_day(user.id, day.id, habits[0].id)

        assert day.total_habits == 1
        assert _item(day, habits[0].id).completed is False
        assert HabitCompletion.query.count() == 0

    def test_add_twice_conflicts(self, app, user, habits):
        day = create_day(user.id, date=DAY, habits=[habits[0].id])
        with pytest.raises(ConflictError):
            add_habit_to_day(user.id, day.id, habits[0].id)

    def test_add_unknown_habit_not_found(self, app, user):
        day = create_day(user.id, date=DAY)
        with pytest.raises(NotFoundError):
            add_habit_to_day(user.id, day.id, 999)

    def test_remove_keeps_ledger_history(self, app, user, habits):
        day = create_day(user.id, date=DAY, habits=[h.id for h in habits])
        toggle_habit_in_day(user.id, day.id, habits[0].id, today=DAY)

        day = remove_habit_from_day(user.id, day.id, habits[0].id)

        assert day.total_habits == 2
        assert day.completed_habits == 0
        assert HabitCompletion.query.filter_by(habit_id=habits[0].id).count() == 1

    def test_remove_missing_habit_not_found(self, app, user, habits):
        day = create_day(user.id, date=DAY)
        with pytest.raises(NotFoundError):
            remove_habit_from_day(user.id, day.id, habits[0].id)


class TestWriteThrough:
    """Checks inside a day go through the ledger."""

    def test_two_of_three_toggled(self, app, user, habits):
        day = create_day(user.id, date=DAY, habits=[h.id for h in habits])
        toggle_habit_in_day(user.id, day.id, habits[0].id, today=DAY)
        day = toggle_habit_in_day(user.id, day.id, habits[1].id, today=DAY)

        assert day.completed_habits == 2
        assert day.success_rate == 67
        assert _item(day, habits[0].id).checked_at is not None

    def test_toggle_in_day_writes_ledger_and_summary(self, app, user, habits):
        day = create_day(user.id, date=DAY, habits=[habits[0].id])
        toggle_habit_in_day(user.id, day.id, habits[0].id, today=DAY)

        entry = HabitCompletion.query.filter_by(habit_id=habits[0].id, day_key=DAY).one()
        assert entry.completed is True
        assert habits[0].current_streak == 1

    def test_ledger_toggle_mirrors_into_day(self, app, user, habits):
        day = create_day(user.id, date=DAY, habits=[habits[0].id])
        toggle_completion(user.id, habits[0].id, DAY, today=DAY)

        day = get_day(user.id, day.id)
        assert _item(day, habits[0].id).completed is True
        assert day.completed_habits == 1

    def test_check_sets_quality_and_notes(self, app, user, habits):
        day = create_day(user.id, date=DAY, habits=[habits[0].id])
        day = check_habit_in_day(user.id, day.id, habits[0].id, completed=True, quality=5, notes="easy")

        item = _item(day, habits[0].id)
        assert item.completed is True
        assert item.quality == 5
        assert item.notes == "easy"

        day = check_habit_in_day(user.id, day.id, habits[0].id, completed=False)
        assert _item(day, habits[0].id).quality is None
        assert day.completed_habits == 0

    def test_toggle_habit_not_in_day(self, app, user, habits):
        day = create_day(user.id, date=DAY)
        with pytest.raises(NotFoundError):
            toggle_habit_in_day(user.id, day.id, habits[0].id, today=DAY)

    def test_checked_event_staged(self, app, user, habits):
        day = create_day(user.id, date=DAY, habits=[habits[0].id])
        toggle_habit_in_day(user.id, day.id, habits[0].id, today=DAY)

        event = OutboxMessage.query.filter_by(event_type="days.habit.checked").one()
        assert event.payload["completed"] is True
        assert event.payload["success_rate"] == 100

    def test_deleting_habit_fixes_day_counts(self, app, user, habits):
        day = create_day(user.id, date=DAY, habits=[habits[0].id, habits[1].id])
        toggle_habit_in_day(user.id, day.id, habits[0].id, today=DAY)

        delete_habit(user.id, habits[0].id)

        day = get_day(user.id, day.id)
        assert day.total_habits == 1
        assert day.completed_habits == 0
        assert DayHabit.query.count() == 1


class TestDayLifecycle:
    """Update, upsert, listing, deletion and the calendar."""

    def test_update_fields(self, app, user):
        day = create_day(user.id, date=DAY)
        day = update_day(user.id, day.id, status="completed", day_notes="  good  ", energy=2)

        assert day.status == "completed"
        assert day.day_notes == "good"
        assert day.energy == 2

    def test_update_rejects_unknown_status(self, app, user):
        day = create_day(user.id, date=DAY)
        with pytest.raises(ValidationFailed):
            update_day(user.id, day.id, status="archived")

    def test_upsert_creates_then_merges(self, app, user, habits):
        day, created = upsert_day(user.id, date=DAY, habits=[habits[0].id], mood=3)
        assert created is True

        merged, created = upsert_day(user.id, date=DAY, habits=[habits[0].id, habits[1].id], mood=5)
        assert created is False
        assert merged.id == day.id
        assert merged.mood == 5
        assert merged.total_habits == 2

    def test_delete_day_keeps_ledger(self, app, user, habits):
        day = create_day(user.id, date=DAY, habits=[habits[0].id])
        toggle_habit_in_day(user.id, day.id, habits[0].id, today=DAY)

        delete_day(user.id, day.id)

        assert Day.query.count() == 0
        assert HabitCompletion.query.count() == 1

    def test_foreign_day_not_found(self, app, user, other_user):
        day = create_day(user.id, date=DAY)
        with pytest.raises(NotFoundError):
            get_day(other_user.id, day.id)

    def test_list_days_newest_first_with_filters(self, app, user):
        for d in (1, 3, 2):
            create_day(user.id, date=date(2024, 3, d))
        update_day(user.id, list_days(user.id)[0].id, status="skipped")

        assert [d.date.day for d in list_days(user.id)] == [3, 2, 1]
        assert [d.date.day for d in list_days(user.id, start="2024-03-02")] == [3, 2]
        assert [d.date.day for d in list_days(user.id, status="skipped")] == [3]

    def test_monthly_calendar(self, app, user):
        create_day(user.id, date=date(2024, 2, 29))

        calendar = monthly_calendar(user.id, 2024, 2)

        assert len(calendar["days"]) == 29
        assert calendar["days"][0] == {"date": "2024-02-01", "day": None, "day_of_week": "thu"}
        assert calendar["days"][-1]["day"] is not None
