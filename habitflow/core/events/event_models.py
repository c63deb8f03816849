"""Log of events published from the outbox."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from habitflow.extensions import db


class EventRecord(db.Model):
    """One published domain event, kept as the user's activity history.

    ``outbox_id`` ties the record to the message it was published from, so a
    message is logged at most once.
    """

    __tablename__ = "habitflow_event_log"
    __table_args__ = (
        db.UniqueConstraint("outbox_id", name="uq_habitflow_event_log_outbox"),
        db.Index("ix_habitflow_event_log_user_published", "user_id", "published_at"),
        db.Index("ix_habitflow_event_log_user_habit", "user_id", "habit_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    outbox_id: Mapped[int | None] = mapped_column()
    event_type: Mapped[str] = mapped_column(db.String(128), index=True, nullable=False)
    payload: Mapped[dict] = mapped_column(db.JSON, nullable=False, default=dict)
    user_id: Mapped[int | None] = mapped_column(db.ForeignKey("user.id"), index=True)
    habit_id: Mapped[int | None] = mapped_column()
    occurred_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    published_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)


def recent_events(user_id: int, habit_id: int | None = None, limit: int = 50) -> list[EventRecord]:
    """Newest published events for a user, optionally for one habit."""
    query = EventRecord.query.filter_by(user_id=user_id)
    if habit_id is not None:
        query = query.filter_by(habit_id=habit_id)
    return query.order_by(EventRecord.published_at.desc(), EventRecord.id.desc()).limit(limit).all()
