"""Transactional outbox models and helpers."""

from habitflow.platform.outbox.models import OutboxMessage
from habitflow.platform.outbox.services import (
    EventBusAdapter,
    dispatch_ready,
    enqueue,
    mark_failed,
)

__all__ = [
    "OutboxMessage",
    "enqueue",
    "dispatch_ready",
    "mark_failed",
    "EventBusAdapter",
]
