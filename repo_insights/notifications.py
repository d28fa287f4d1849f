"""
Publish/subscribe channel for insights updates.

Each subscriber gets its own queue of InsightsEvent objects: one event whenever
the working flag changes and one whenever a new snapshot is published.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .insights import RepositoryInsights

logger = logging.getLogger(__name__)

WORKING_CHANGED = "working_changed"
SNAPSHOT_PUBLISHED = "snapshot_published"


@dataclass(frozen=True)
class InsightsEvent:
    """A single change notification."""
    kind: str
    is_working: bool
    snapshot: Optional[RepositoryInsights] = None


class Subscription:
    """Handle returned by InsightsChannel.subscribe; iterate it to receive events."""

    def __init__(self, channel: 'InsightsChannel', subscriber_id: int, queue: asyncio.Queue):
        self._channel = channel
        self.subscriber_id = subscriber_id
        self.queue = queue

    async def get(self) -> InsightsEvent:
        return await self.queue.get()

    def get_nowait(self) -> InsightsEvent:
        return self.queue.get_nowait()

    def close(self) -> None:
        self._channel.unsubscribe(self.subscriber_id)

    def __aiter__(self):
        return self

    async def __anext__(self) -> InsightsEvent:
        return await self.queue.get()


class InsightsChannel:
    """Fan-out of insights events to any number of subscribers."""

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: Dict[int, asyncio.Queue] = {}
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        subscriber_id = next(self._ids)
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers[subscriber_id] = queue
        logger.debug(f"[Insights] Subscriber {subscriber_id} connected")
        return Subscription(self, subscriber_id, queue)

    def unsubscribe(self, subscriber_id: int) -> None:
        if self._subscribers.pop(subscriber_id, None) is not None:
            logger.debug(f"[Insights] Subscriber {subscriber_id} disconnected")

    def publish(self, event: InsightsEvent) -> None:
        """Deliver an event to every subscriber without blocking."""
        stalled = []
        for subscriber_id, queue in self._subscribers.items():
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"[Insights] Queue full for subscriber {subscriber_id}, dropping it")
                stalled.append(subscriber_id)

        for subscriber_id in stalled:
            self.unsubscribe(subscriber_id)

    def publish_working(self, is_working: bool) -> None:
        self.publish(InsightsEvent(WORKING_CHANGED, is_working))

    def publish_snapshot(self, snapshot: RepositoryInsights) -> None:
        self.publish(InsightsEvent(SNAPSHOT_PUBLISHED, snapshot.is_working, snapshot))
