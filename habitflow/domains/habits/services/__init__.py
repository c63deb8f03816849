"""Habit services: registry, completion ledger, streaks, analytics, insights."""

from habitflow.domains.habits.services.analytics_service import (
    build_heatmap,
    build_trend,
    get_habit_trend,
    get_heatmap,
    get_overall_trend,
)
from habitflow.domains.habits.services.habit_service import (
    compute_habit_stats,
    create_habit,
    delete_habit,
    get_owned_habit,
    get_streak_detail,
    habit_entries,
    list_habits,
    recompute_summary,
    refresh_summaries,
    update_habit,
)
from habitflow.domains.habits.services.insight_service import generate_insights, get_insights
from habitflow.domains.habits.services.ledger_service import (
    delete_completion,
    get_owned_entry,
    list_by_month,
    list_by_range,
    record_completion,
    set_completion,
    toggle_completion,
    update_completion,
)
from habitflow.domains.habits.services.progress_service import (
    Progress,
    entry_xp,
    get_progress,
    level_for,
    recompute_progress,
)
from habitflow.domains.habits.services.streaks import (
    Mark,
    Schedule,
    current_streak,
    longest_streak,
    success_rate,
    summarize,
)

__all__ = [
    "Mark",
    "Progress",
    "Schedule",
    "build_heatmap",
    "build_trend",
    "compute_habit_stats",
    "create_habit",
    "current_streak",
    "delete_completion",
    "delete_habit",
    "entry_xp",
    "generate_insights",
    "get_habit_trend",
    "get_heatmap",
    "get_insights",
    "get_overall_trend",
    "get_owned_entry",
    "get_owned_habit",
    "get_progress",
    "get_streak_detail",
    "habit_entries",
    "level_for",
    "list_by_month",
    "list_by_range",
    "list_habits",
    "longest_streak",
    "recompute_progress",
    "recompute_summary",
    "record_completion",
    "refresh_summaries",
    "set_completion",
    "success_rate",
    "summarize",
    "toggle_completion",
    "update_completion",
    "update_habit",
]
