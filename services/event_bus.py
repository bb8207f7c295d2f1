"""
Async Pub/Sub Event Bus

Topic-based publish/subscribe on top of asyncio queues. The market feed
publishes after every fetch; each open dashboard WebSocket holds its own
subscription and redraws when an event arrives.
"""

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, DefaultDict, Dict, Set

from core.logging import get_logger


class EventBus:
    """
    Async event bus with topic-based pub/sub.

    - Each subscriber gets its own bounded asyncio.Queue; publishers never block.
    - Events for a full queue are dropped for that subscriber only.
    """

    def __init__(self, max_queue_size: int = 100) -> None:
        self._topics: DefaultDict[str, Set[asyncio.Queue]] = defaultdict(set)
        self._max_queue_size = max_queue_size
        self._logger = get_logger(__name__)

    def subscribe(self, topic: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._topics[topic].add(queue)
        self._logger.debug(f"Subscriber added to topic '{topic}'. total={len(self._topics[topic])}")
        return queue

    def unsubscribe(self, topic: str, queue: asyncio.Queue) -> None:
        self._topics[topic].discard(queue)
        if not self._topics[topic]:
            del self._topics[topic]
        self._logger.debug(f"Subscriber removed from topic '{topic}'. total={self.subscriber_count(topic)}")

    @asynccontextmanager
    async def subscription(self, topic: str) -> AsyncIterator[asyncio.Queue]:
        """Subscribe for the duration of an ``async with`` block"""
        queue = self.subscribe(topic)
        try:
            yield queue
        finally:
            self.unsubscribe(topic, queue)

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    async def publish(self, topic: str, event: Dict[str, Any]) -> int:
        """
        Publish an event to a topic.

        Returns:
            Number of subscribers the event was delivered to
        """
        delivered = 0
        for q in list(self._topics.get(topic, ())):
            try:
                q.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                self._logger.warning(f"Dropping event for topic '{topic}' due to full queue")
        return delivered


# Singleton event bus for the application
bus = EventBus()
