"""Experience points and levels earned from completed ledger entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func

from habitflow.core.users.models import User
from habitflow.domains.habits.models.habit_models import HabitCompletion
from habitflow.extensions import db

logger = logging.getLogger(__name__)

XP_PER_QUALITY_POINT = 10
XP_PER_LEVEL = 100


@dataclass(frozen=True)
class Progress:
    total_xp: int
    level: int
    next_level_xp: int

    @property
    def xp_to_next_level(self) -> int:
        return self.next_level_xp - self.total_xp


def entry_xp(entry) -> int:
    """A completed entry earns ten points per quality point, unrated counting as 1."""
    if not entry.completed:
        return 0
    return (entry.quality or 1) * XP_PER_QUALITY_POINT


def level_for(total_xp: int) -> Progress:
    level = total_xp // XP_PER_LEVEL + 1
    return Progress(total_xp=total_xp, level=level, next_level_xp=level * XP_PER_LEVEL)


def recompute_progress(user_id: int) -> Progress:
    """Rewrite the user's XP and level from the ledger. Does not commit."""
    quality_points = (
        db.session.query(func.coalesce(func.sum(func.coalesce(HabitCompletion.quality, 1)), 0))
        .filter(HabitCompletion.user_id == user_id, HabitCompletion.completed.is_(True))
        .scalar()
    )
    progress = level_for(int(quality_points) * XP_PER_QUALITY_POINT)
    user = db.session.get(User, user_id)
    if user is not None:
        user.total_xp = progress.total_xp
        user.level = progress.level
        user.next_level_xp = progress.next_level_xp
    logger.debug("Recomputed progress for user %s: xp=%s level=%s", user_id, progress.total_xp, progress.level)
    return progress


def get_progress(user_id: int) -> Progress:
    user = db.session.get(User, user_id)
    if user is None:
        return level_for(0)
    return Progress(
        total_xp=user.total_xp or 0,
        level=user.level or 1,
        next_level_xp=user.next_level_xp or XP_PER_LEVEL,
    )


__all__ = [
    "Progress",
    "XP_PER_LEVEL",
    "XP_PER_QUALITY_POINT",
    "entry_xp",
    "get_progress",
    "level_for",
    "recompute_progress",
]
