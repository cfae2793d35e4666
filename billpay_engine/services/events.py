"""In-process invalidation messages published by the ledger write path"""

import itertools
from collections import deque
import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class Topic:
    ENTRY_CREATED = "entry_created"
    ENTRY_DELETED = "entry_deleted"
    SCHEDULES_CHANGED = "schedules_changed"
    BILLING_CYCLE_SYNCED = "billing_cycle_synced"


@dataclass
class Invalidation:
    """Tells subscribers which derived values to re-read"""

    id: int
    topic: str
    account_ids: List[uuid.UUID] = field(default_factory=list)
    schedule_ids: List[uuid.UUID] = field(default_factory=list)
    obligation_ids: List[uuid.UUID] = field(default_factory=list)


Subscriber = Callable[[Invalidation], None]


class InvalidationBus:
    """
    Synchronous publish/subscribe channel.

    Subscribers registered for a topic (or for every topic with topic=None)
    are called in registration order during `publish`. A subscriber that
    raises propagates to the publisher.
    """

    def __init__(self, history_size: int = 256):
        self._seq = itertools.count(1)
        self._subscribers: Dict[Optional[str], List[Subscriber]] = {}
        self._history = deque(maxlen=history_size)

    def subscribe(self, callback: Subscriber, topic: Optional[str] = None) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it"""
        self._subscribers.setdefault(topic, []).append(callback)

        def unsubscribe() -> None:
            self._subscribers.get(topic, []).remove(callback)

        return unsubscribe

    def publish(
        self,
        topic: str,
        *,
        account_ids=(),
        schedule_ids=(),
        obligation_ids=(),
    ) -> Invalidation:
        message = Invalidation(
            id=next(self._seq),
            topic=topic,
            account_ids=[i for i in account_ids if i is not None],
            schedule_ids=[i for i in schedule_ids if i is not None],
            obligation_ids=[i for i in obligation_ids if i is not None],
        )
        self._history.append(message)
        logger.debug("Publishing invalidation", extra={"topic": topic, "message_id": message.id})

        for callback in list(self._subscribers.get(topic, [])) + list(self._subscribers.get(None, [])):
            callback(message)
        return message

    @property
    def history(self) -> List[Invalidation]:
        return list(self._history)


class PendingInvalidations:
    """
    Messages raised by writes in one session, held until it commits.

    Delivered to the bus in order once the session commits and dropped if
    it rolls back, so subscribers never re-read state that is not durable.
    """

    def __init__(self, bus: InvalidationBus):
        self.bus = bus
        self._pending: List[Tuple[str, dict]] = []

    def add(self, topic: str, **ids) -> None:
        self._pending.append((topic, ids))

    def deliver(self, session: Session) -> None:
        pending, self._pending = self._pending, []
        for topic, ids in pending:
            self.bus.publish(topic, **ids)

    def discard(self, session: Session) -> None:
        if self._pending:
            logger.debug("Dropping invalidations of rolled back work", extra={"count": len(self._pending)})
        self._pending = []


def pending_for(session: Session, bus: InvalidationBus) -> PendingInvalidations:
    """The queue bound to `session` for `bus`, created on first use"""
    key = ("pending_invalidations", id(bus))
    pending = session.info.get(key)
    if pending is None:
        pending = session.info[key] = PendingInvalidations(bus)
        event.listen(session, "after_commit", pending.deliver)
        event.listen(session, "after_rollback", pending.discard)
    return pending
