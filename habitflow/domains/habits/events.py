"""Habits domain event catalog."""

from __future__ import annotations

HABITS_HABIT_CREATED = "habits.habit.created"
HABITS_HABIT_UPDATED = "habits.habit.updated"
HABITS_HABIT_DELETED = "habits.habit.deleted"
HABITS_COMPLETION_TOGGLED = "habits.completion.toggled"
HABITS_COMPLETION_RECORDED = "habits.completion.recorded"
HABITS_COMPLETION_UPDATED = "habits.completion.updated"
HABITS_COMPLETION_DELETED = "habits.completion.deleted"

_COMPLETION_PAYLOAD = {
    "completion_id": "int",
    "habit_id": "int",
    "user_id": "int",
    "day_key": "date",
    "completed": "bool",
    "current_streak": "int",
    "longest_streak": "int",
    "success_rate": "int",
}

EVENT_CATALOG = {
    HABITS_HABIT_CREATED: {
        "version": "v1",
        "payload": {
            "habit_id": "int",
            "user_id": "int",
            "name": "str",
            "category": "str",
            "frequency": "str",
            "required_days": "list[str]",
            "created_at": "datetime",
        },
    },
    HABITS_HABIT_UPDATED: {
        "version": "v1",
        "payload": {
            "habit_id": "int",
            "user_id": "int",
            "fields": "dict",
            "updated_at": "datetime",
        },
    },
    HABITS_HABIT_DELETED: {
        "version": "v1",
        "payload": {
            "habit_id": "int",
            "user_id": "int",
            "deleted_at": "datetime",
        },
    },
    HABITS_COMPLETION_TOGGLED: {"version": "v1", "payload": _COMPLETION_PAYLOAD},
    HABITS_COMPLETION_RECORDED: {"version": "v1", "payload": _COMPLETION_PAYLOAD},
    HABITS_COMPLETION_UPDATED: {"version": "v1", "payload": _COMPLETION_PAYLOAD},
    HABITS_COMPLETION_DELETED: {"version": "v1", "payload": _COMPLETION_PAYLOAD},
}

__all__ = [
    "EVENT_CATALOG",
    "HABITS_HABIT_CREATED",
    "HABITS_HABIT_UPDATED",
    "HABITS_HABIT_DELETED",
    "HABITS_COMPLETION_TOGGLED",
    "HABITS_COMPLETION_RECORDED",
    "HABITS_COMPLETION_UPDATED",
    "HABITS_COMPLETION_DELETED",
]
