"""Days domain event catalog."""

from __future__ import annotations

DAYS_DAY_CREATED = "days.day.created"
DAYS_DAY_UPDATED = "days.day.updated"
DAYS_DAY_DELETED = "days.day.deleted"
DAYS_HABIT_ADDED = "days.habit.added"
DAYS_HABIT_REMOVED = "days.habit.removed"
DAYS_HABIT_CHECKED = "days.habit.checked"

EVENT_CATALOG = {
    DAYS_DAY_CREATED: {
        "version": "v1",
        "payload": {"day_id": "int", "user_id": "int", "date": "date", "habit_ids": "list[int]"},
    },
    DAYS_DAY_UPDATED: {
        "version": "v1",
        "payload": {"day_id": "int", "user_id": "int", "fields": "dict"},
    },
    DAYS_DAY_DELETED: {
        "version": "v1",
        "payload": {"day_id": "int", "user_id": "int", "date": "date"},
    },
    DAYS_HABIT_ADDED: {
        "version": "v1",
        "payload": {"day_id": "int", "habit_id": "int", "user_id": "int", "total_habits": "int"},
    },
    DAYS_HABIT_REMOVED: {
        "version": "v1",
        "payload": {"day_id": "int", "habit_id": "int", "user_id": "int", "total_habits": "int"},
    },
    DAYS_HABIT_CHECKED: {
        "version": "v1",
        "payload": {
            "day_id": "int",
            "habit_id": "int",
            "user_id": "int",
            "completed": "bool",
            "completed_habits": "int",
            "success_rate": "int",
        },
    },
}

__all__ = [
    "EVENT_CATALOG",
    "DAYS_DAY_CREATED",
    "DAYS_DAY_UPDATED",
    "DAYS_DAY_DELETED",
    "DAYS_HABIT_ADDED",
    "DAYS_HABIT_REMOVED",
    "DAYS_HABIT_CHECKED",
]
