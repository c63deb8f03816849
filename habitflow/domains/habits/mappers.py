"""DTO mappers for habits and completion entries."""

from __future__ import annotations

from typing import Dict, List

from habitflow.domains.habits.models.habit_models import Habit, HabitCompletion


def _iso(value):
    return value.isoformat() if value else None


def map_habit(habit: Habit) -> dict:
    return {
        "id": habit.id,
        "name": habit.name,
        "description": habit.description,
        "category": habit.category,
        "color_code": habit.color_code,
        "icon": habit.icon,
        "frequency": habit.frequency,
        "required_days": list(habit.required_days or []),
        "target_value": float(habit.target_value) if habit.target_value is not None else None,
        "unit": habit.unit,
        "start_date": _iso(habit.start_date),
        "end_date": _iso(habit.end_date),
        "is_active": habit.is_active,
        "current_streak": habit.current_streak,
        "longest_streak": habit.longest_streak,
        "total_completed": habit.total_completed,
        "success_rate": habit.success_rate,
        "last_broken_date": _iso(habit.last_broken_date),
        "last_broken_reason": habit.last_broken_reason,
        "created_at": _iso(habit.created_at),
        "updated_at": _iso(habit.updated_at),
    }


def map_habit_summary(item: dict) -> dict:
    data = map_habit(item["habit"])
    data["completed_today"] = item["completed_today"]
    data["required_today"] = item["required_today"]
    return data


def map_completion(entry: HabitCompletion) -> dict:
    return {
        "id": entry.id,
        "habit_id": entry.habit_id,
        "date": _iso(entry.day_key),
        "completed": entry.completed,
        "quality": entry.quality,
        "skip_reason": entry.skip_reason,
        "skip_reason_text": entry.skip_reason_text,
        "notes": entry.notes,
        "created_at": _iso(entry.created_at),
        "updated_at": _iso(entry.updated_at),
    }


def map_month(by_day: Dict[str, List[HabitCompletion]]) -> Dict[str, List[dict]]:
    return {day: [map_completion(entry) for entry in entries] for day, entries in by_day.items()}


def map_stats(stats: dict) -> dict:
    return {
        "habit": map_habit(stats["habit"]),
        "total_entries": stats["total_entries"],
        "completed_entries": stats["completed_entries"],
        "success_rate": stats["success_rate"],
        "current_streak": stats["current_streak"],
        "longest_streak": stats["longest_streak"],
        "last_entry_date": _iso(stats["last_entry_date"]),
        "last_30_days": stats["last_30_days"],
        "recent_entries": [map_completion(entry) for entry in stats["recent_entries"]],
    }


def map_streak(detail: dict) -> dict:
    habit = detail["habit"]
    return {
        "habit_id": habit.id,
        "habit_name": habit.name,
        "current_streak": detail["current_streak"],
        "longest_streak": detail["longest_streak"],
        "last_broken_date": _iso(detail["last_broken_date"]),
        "last_broken_reason": detail["last_broken_reason"],
        "started_today": detail["started_today"],
        "recent_history": [map_completion(entry) for entry in detail["recent_history"]],
    }


def map_progress(progress) -> dict:
    return {
        "total_xp": progress.total_xp,
        "level": progress.level,
        "next_level_xp": progress.next_level_xp,
        "xp_to_next_level": progress.xp_to_next_level,
    }
