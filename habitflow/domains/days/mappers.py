"""DTO mappers for days and their habit sub-entries."""

from __future__ import annotations

from habitflow.domains.days.models.day_models import Day, DayHabit


def map_day_habit(item: DayHabit) -> dict:
    return {
        "habit_id": item.habit_id,
        "habit_name": item.habit.name if item.habit else None,
        "completed": item.completed,
        "quality": item.quality,
        "notes": item.notes,
        "checked_at": item.checked_at.isoformat() if item.checked_at else None,
    }


def map_day(day: Day) -> dict:
    return {
        "id": day.id,
        "date": day.date.isoformat(),
        "day_notes": day.day_notes,
        "mood": day.mood,
        "energy": day.energy,
        "tags": list(day.tags or []),
        "status": day.status,
        "total_habits": day.total_habits,
        "completed_habits": day.completed_habits,
        "success_rate": day.success_rate,
        "habits": [map_day_habit(item) for item in day.habits],
        "created_at": day.created_at.isoformat() if day.created_at else None,
        "updated_at": day.updated_at.isoformat() if day.updated_at else None,
    }


def map_calendar(calendar: dict) -> dict:
    return {
        "year": calendar["year"],
        "month": calendar["month"],
        "days": [
            {
                "date": cell["date"],
                "day_of_week": cell["day_of_week"],
                "day": map_day(cell["day"]) if cell["day"] is not None else None,
            }
            for cell in calendar["days"]
        ],
    }
