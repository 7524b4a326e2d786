# spabook/modules/realtime/hub.py
"""
In-process publish/subscribe for appointment changes.

Three named topics:
- appointments-changes       row-change events (INSERT / UPDATE)
- appointment-notifications  appointment_status_changed
- appointments-refetch       refresh_appointments (empty payload)

Delivery is fire-and-forget: only subscriptions open at publish time get
the event, nothing is persisted, and a subscriber whose queue is full
misses it.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from spabook.core.config import settings
from spabook.core.exceptions import RealtimeError

logger = logging.getLogger(__name__)

TOPIC_CHANGES = "appointments-changes"
TOPIC_NOTIFICATIONS = "appointment-notifications"
TOPIC_REFETCH = "appointments-refetch"
TOPICS = frozenset({TOPIC_CHANGES, TOPIC_NOTIFICATIONS, TOPIC_REFETCH})

EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"
EVENT_STATUS_CHANGED = "appointment_status_changed"
EVENT_REFRESH = "refresh_appointments"


@dataclass(frozen=True)
class RealtimeEvent:
    topic: str
    event: str
    payload: dict[str, Any] = field(default_factory=dict)

    def as_message(self) -> dict[str, Any]:
        return {"topic": self.topic, "event": self.event, "payload": self.payload}


class Subscription:
    """
    Handle returned by RealtimeHub.subscribe().

        async with hub.subscribe(TOPIC_REFETCH) as sub:
            async for event in sub:
                ...

    Leaving the block (or calling close()) detaches it from the hub.
    """

    def __init__(self, hub: "RealtimeHub", topics: frozenset[str], queue_size: int):
        self.topics = topics
        self._hub = hub
        self._queue: asyncio.Queue[Optional[RealtimeEvent]] = asyncio.Queue(maxsize=queue_size)
        self.closed = False
        self.dropped = 0

    def _offer(self, event: RealtimeEvent) -> bool:
        if self.closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning("Realtime subscriber queue full, dropped %s on %s", event.event, event.topic)
            return False
        return True

    async def get(self) -> RealtimeEvent:
        """Next event; raises RealtimeError once the subscription is closed and drained."""
        if self.closed and self._queue.empty():
            raise RealtimeError("subscription_closed")
        item = await self._queue.get()
        if item is None:
            raise RealtimeError("subscription_closed")
        return item

    def get_nowait(self) -> Optional[RealtimeEvent]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._hub._detach(self)
        try:
            # wake a consumer blocked in get()
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> RealtimeEvent:
        try:
            return await self.get()
        except RealtimeError:
            raise StopAsyncIteration


class RealtimeHub:
    def __init__(self, queue_size: int | None = None):
        self.queue_size = queue_size or settings.REALTIME_QUEUE_SIZE
        self._subs: dict[str, set[Subscription]] = {t: set() for t in TOPICS}
        self.closed = False

    def subscribe(self, *topics: str) -> Subscription:
        if self.closed:
            raise RealtimeError("hub_closed")
        wanted = frozenset(topics) or TOPICS
        unknown = wanted - TOPICS
        if unknown:
            raise RealtimeError("unknown_topic", message=f"unknown topic(s): {sorted(unknown)}")
        sub = Subscription(self, wanted, self.queue_size)
        for topic in wanted:
            self._subs[topic].add(sub)
        return sub

    def publish(self, topic: str, event: str, payload: dict[str, Any] | None = None) -> int:
        """Deliver to the open subscriptions of `topic`; returns how many got it."""
        if topic not in TOPICS:
            raise RealtimeError("unknown_topic", message=f"unknown topic: {topic}")
        if self.closed:
            raise RealtimeError("hub_closed")
        msg = RealtimeEvent(topic, event, dict(payload or {}))
        delivered = sum(1 for sub in list(self._subs[topic]) if sub._offer(msg))
        logger.debug("Published %s on %s to %d subscriber(s)", event, topic, delivered)
        return delivered

    def subscriber_count(self, topic: str | None = None) -> int:
        if topic is not None:
            return len(self._subs.get(topic, ()))
        return len({s for subs in self._subs.values() for s in subs})

    def _detach(self, sub: Subscription) -> None:
        for topic in sub.topics:
            self._subs[topic].discard(sub)

    def close(self) -> None:
        self.closed = True
        for sub in {s for subs in self._subs.values() for s in subs}:
            sub.close()


_hub = RealtimeHub()


def get_hub() -> RealtimeHub:
    """FastAPI dependency; tests override it with a fresh hub."""
    return _hub
