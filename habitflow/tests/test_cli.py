"""Maintenance CLI commands."""

from datetime import date

import pytest

pytestmark = pytest.mark.integration

from habitflow.domains.habits.models import Habit
from habitflow.domains.habits.services import create_habit, record_completion
from habitflow.extensions import db
from habitflow.platform.outbox.models import OutboxMessage


def test_refresh_summaries_recomputes_against_given_day(app, user):
    habit = create_habit(user.id, name="Stretch")
    record_completion(user.id, habit.id, date(2024, 3, 9), today=date(2024, 3, 9))
    # A day later with nothing logged the streak has lapsed.
    habit.current_streak = 99
    db.session.commit()

    result = app.test_cli_runner().invoke(args=["refresh-summaries", "--today", "2024-03-10"])

    assert result.exit_code == 0, result.output
    assert "Refreshed 1 habits for 1 users" in result.output
    assert db.session.get(Habit, habit.id).current_streak == 0


def test_dispatch_outbox_marks_messages_sent(app, user):
    create_habit(user.id, name="Stretch")

    result = app.test_cli_runner().invoke(args=["dispatch-outbox", "--limit", "10"])

    assert result.exit_code == 0, result.output
    assert "Dispatched 1 messages" in result.output
    db.session.expire_all()
    assert OutboxMessage.query.filter_by(status="sent").count() == 1
