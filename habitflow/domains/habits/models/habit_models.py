"""Habit registry and completion ledger models with prefixed tables."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy.orm import Mapped, mapped_column, relationship

from habitflow.extensions import db

CATEGORIES = ("health", "productivity", "learning", "mindfulness", "social", "other")
FREQUENCIES = ("daily", "weekly", "custom")
SKIP_REASONS = ("no-time", "tired", "forgot", "no-motivation", "other")


class Habit(db.Model):
    __tablename__ = "habits_habit"
    __table_args__ = (
        db.Index("ux_habits_habit_user_name", "user_id", "name", unique=True),
        db.Index("ix_habits_habit_user_category", "user_id", "category"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(db.ForeignKey("user.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(db.Text)
    category: Mapped[str] = mapped_column(db.String(32), nullable=False, default="other")
    color_code: Mapped[str] = mapped_column(db.String(16), nullable=False, default="#4CAF50")
    icon: Mapped[str | None] = mapped_column(db.String(64))
    frequency: Mapped[str] = mapped_column(db.String(16), nullable=False, default="daily")
    # Weekday codes ("mon".."sun"); empty means every day for weekly/custom.
    required_days: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    target_value: Mapped[float | None] = mapped_column(db.Numeric(10, 2))
    unit: Mapped[str | None] = mapped_column(db.String(32))
    start_date: Mapped[date] = mapped_column(default=date.today, nullable=False)
    end_date: Mapped[date | None] = mapped_column()
    is_active: Mapped[bool] = mapped_column(default=True)

    # Derived from the ledger on every write; see services.habit_service.recompute_summary.
    current_streak: Mapped[int] = mapped_column(default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(default=0, nullable=False)
    total_completed: Mapped[int] = mapped_column(default=0, nullable=False)
    success_rate: Mapped[int] = mapped_column(default=0, nullable=False)
    last_broken_date: Mapped[date | None] = mapped_column()
    last_broken_reason: Mapped[str | None] = mapped_column(db.String(32))

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    completions: Mapped[list["HabitCompletion"]] = relationship(
        "HabitCompletion",
        back_populates="habit",
        cascade="all, delete-orphan",
    )


class HabitCompletion(db.Model):
    """One completion fact per (user, habit, day)."""

    __tablename__ = "habits_completion"
    __table_args__ = (
        db.UniqueConstraint("user_id", "habit_id", "day_key", name="ux_habits_completion_user_habit_day"),
        db.Index("ix_habits_completion_user_day", "user_id", "day_key"),
        db.Index("ix_habits_completion_habit_day", "habit_id", "day_key"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(db.ForeignKey("user.id"), index=True, nullable=False)
    habit_id: Mapped[int] = mapped_column(
        db.ForeignKey("habits_habit.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    day_key: Mapped[date] = mapped_column(nullable=False)
    completed: Mapped[bool] = mapped_column(default=True, nullable=False)
    quality: Mapped[int | None] = mapped_column()
    skip_reason: Mapped[str | None] = mapped_column(db.String(32))
    skip_reason_text: Mapped[str | None] = mapped_column(db.String(200))
    notes: Mapped[str | None] = mapped_column(db.String(500))
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    habit: Mapped[Habit] = relationship("Habit", back_populates="completions")
