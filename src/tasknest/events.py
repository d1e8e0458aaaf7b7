"""In-process change feed: per-user fan-out of mutation notifications."""

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, field

import structlog

from tasknest.config import get_settings

logger = structlog.get_logger()


@dataclass(frozen=True)
class ChangeEvent:
    """Something changed in one of a user's collections."""

    resource: str  # "todos" or "categories"
    action: str  # "created", "updated", "deleted"
    ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


class ChangeBroker:
    """Fan change events out to every live subscriber of the same user."""

    def __init__(self, queue_size: int | None = None):
        self._queue_size = queue_size or get_settings().event_queue_size
        self._queues: dict[str, set[asyncio.Queue[ChangeEvent]]] = defaultdict(set)

    @asynccontextmanager
    async def subscribe(self, user_id: str) -> AsyncIterator[asyncio.Queue[ChangeEvent]]:
        """Register a queue for the user's events until the context exits."""
        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=self._queue_size)
        self._queues[user_id].add(queue)
        logger.debug("change_feed_subscribed", user_id=user_id)
        try:
            yield queue
        finally:
            subscribers = self._queues.get(user_id)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._queues[user_id]
            logger.debug("change_feed_unsubscribed", user_id=user_id)

    def publish(self, user_id: str, event: ChangeEvent) -> int:
        """Deliver an event to the user's subscribers; returns how many got it."""
        delivered = 0
        for queue in list(self._queues.get(user_id, ())):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    "change_event_dropped",
                    user_id=user_id,
                    resource=event.resource,
                    action=event.action,
                )
        return delivered

    def subscriber_count(self, user_id: str) -> int:
        return len(self._queues.get(user_id, ()))


_broker: ChangeBroker | None = None


def get_broker() -> ChangeBroker:
    """Get or create the process-wide broker."""
    global _broker
    if _broker is None:
        _broker = ChangeBroker()
    return _broker
