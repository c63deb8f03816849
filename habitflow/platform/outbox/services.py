"""Outbox staging and dispatch onto the in-process event bus."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from habitflow.core.events.event_bus import event_bus
from habitflow.core.events.event_models import EventRecord
from habitflow.extensions import db
from habitflow.platform.outbox.models import OutboxMessage

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_SENDING = "sending"
STATUS_SENT = "sent"
STATUS_RETRY = "retry"
STATUS_DEAD = "dead"

MAX_DISPATCH_ATTEMPTS = 5
DEFAULT_RETRY_IN = timedelta(minutes=5)


class EventBusAdapter:
    """Publish outbox messages to the in-process bus and log them.

    The log row is added only after every subscriber has run, so a failed
    publish leaves no record and the message is retried.
    """

    def __init__(self, bus=None) -> None:
        self.bus = bus or event_bus

    def dispatch(self, message: OutboxMessage) -> EventRecord:
        payload = dict(message.payload or {})
        payload.setdefault("external_id", f"{message.event_type}:{message.id}")
        payload.setdefault("event_id", message.id)

        event = EventRecord(
            outbox_id=message.id,
            event_type=message.event_type,
            payload=payload,
            user_id=message.user_id,
            habit_id=payload.get("habit_id"),
            occurred_at=message.created_at or datetime.utcnow(),
            published_at=datetime.utcnow(),
        )
        self.bus.publish(event)
        db.session.add(event)
        return event


def enqueue(
    event_name: str,
    payload: dict,
    user_id: Optional[int],
    available_at: Optional[datetime] = None,
) -> OutboxMessage:
    """
    Stage an event in the outbox. Caller commits alongside domain changes.
    """
    message = OutboxMessage(
        event_type=event_name,
        payload=payload or {},
        user_id=user_id,
        available_at=available_at or datetime.utcnow(),
        status=STATUS_PENDING,
        attempts=0,
    )
    db.session.add(message)
    return message


def _claim_batch(limit: int) -> List[OutboxMessage]:
    now = datetime.utcnow()
    ready = (
        OutboxMessage.query.filter(
            OutboxMessage.available_at <= now,
            OutboxMessage.status.in_((STATUS_PENDING, STATUS_RETRY)),
        )
        .order_by(OutboxMessage.available_at, OutboxMessage.id)
        .with_for_update(skip_locked=True)
        .limit(limit)
        .all()
    )
    for message in ready:
        message.status = STATUS_SENDING
        message.attempts = (message.attempts or 0) + 1
    db.session.commit()
    return ready


def _mark_sent(ids: Sequence[int]) -> int:
    if not ids:
        return 0
    updated = OutboxMessage.query.filter(
        OutboxMessage.id.in_(list(ids)),
        OutboxMessage.status == STATUS_SENDING,
    ).update(
        {"status": STATUS_SENT, "last_error": None, "dispatched_at": datetime.utcnow()},
        synchronize_session=False,
    )
    db.session.commit()
    return updated


def mark_failed(
    message: OutboxMessage,
    err: Exception | str,
    retry_in: timedelta = DEFAULT_RETRY_IN,
) -> OutboxMessage:
    message.last_error = str(err)
    next_available = datetime.utcnow() + retry_in
    message.available_at = max(message.available_at or next_available, next_available)
    if message.attempts >= MAX_DISPATCH_ATTEMPTS:
        message.status = STATUS_DEAD
    else:
        message.status = STATUS_RETRY
    db.session.commit()
    return message


def dispatch_ready(
    limit: int = 50,
    retry_in: timedelta = DEFAULT_RETRY_IN,
    bus_adapter: Optional[EventBusAdapter] = None,
) -> List[int]:
    """Publish ready messages; failed ones are rescheduled with ``retry_in``."""
    adapter = bus_adapter or EventBusAdapter()
    sent_ids: List[int] = []

    for message in _claim_batch(limit):
        try:
            adapter.dispatch(message)
            sent_ids.append(message.id)
        except Exception as err:
            logger.warning("Outbox dispatch failed for %s: %s", message.id, err)
            mark_failed(message, err, retry_in=retry_in)

    _mark_sent(sent_ids)
    return sent_ids
