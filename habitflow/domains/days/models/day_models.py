"""Day aggregate models: one row per (user, date) plus its habit sub-entries."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy.orm import Mapped, mapped_column, relationship

from habitflow.extensions import db

DAY_STATUSES = ("planned", "in-progress", "completed", "skipped")


class Day(db.Model):
    __tablename__ = "days_day"
    __table_args__ = (
        db.UniqueConstraint("user_id", "date", name="ux_days_day_user_date"),
        db.Index("ix_days_day_user_status", "user_id", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(db.ForeignKey("user.id"), index=True, nullable=False)
    date: Mapped[date] = mapped_column(nullable=False, index=True)
    day_notes: Mapped[str | None] = mapped_column(db.String(1000))
    mood: Mapped[int | None] = mapped_column()
    energy: Mapped[int | None] = mapped_column()
    tags: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(db.String(16), nullable=False, default="planned")

    # Projection of the habit list below; recomputed on every change to it.
    total_habits: Mapped[int] = mapped_column(default=0, nullable=False)
    completed_habits: Mapped[int] = mapped_column(default=0, nullable=False)
    success_rate: Mapped[int] = mapped_column(default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    habits: Mapped[list["DayHabit"]] = relationship(
        "DayHabit",
        back_populates="day",
        cascade="all, delete-orphan",
        order_by="DayHabit.id",
    )


class DayHabit(db.Model):
    __tablename__ = "days_day_habit"
    __table_args__ = (
        db.UniqueConstraint("day_id", "habit_id", name="ux_days_day_habit_day_habit"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    day_id: Mapped[int] = mapped_column(
        db.ForeignKey("days_day.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    habit_id: Mapped[int] = mapped_column(
        db.ForeignKey("habits_habit.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    completed: Mapped[bool] = mapped_column(default=False, nullable=False)
    quality: Mapped[int | None] = mapped_column()
    notes: Mapped[str | None] = mapped_column(db.String(500))
    checked_at: Mapped[datetime | None] = mapped_column()

    day: Mapped[Day] = relationship("Day", back_populates="habits")
    habit = relationship("Habit", lazy="joined")
