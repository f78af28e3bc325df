"""In-process event bus used to fan events out to secondary consumers."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from .events import SystemEvent


logger = logging.getLogger(__name__)


class Subscription:
    """Bounded per-consumer queue. Iterate it with ``async for``."""

    def __init__(self, server: "LocalServer", capacity: int):
        self._server = server
        self._queue: "asyncio.Queue[SystemEvent]" = asyncio.Queue(maxsize=capacity)
        self.dropped = 0
        self.closed = False

    def offer(self, event: SystemEvent) -> None:
        """Enqueue without waiting; a full queue loses its oldest event."""
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(event)

    async def get(self) -> SystemEvent:
        return await self._queue.get()

    def get_nowait(self) -> Optional[SystemEvent]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._server.unsubscribe(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> SystemEvent:
        if self.closed:
            raise StopAsyncIteration
        return await self._queue.get()


class RealtimeServer(ABC):
    """Publishes system events to whoever is listening."""

    @abstractmethod
    async def run(self) -> None:
        ...

    @abstractmethod
    async def publish(self, event: SystemEvent) -> None:
        """Deliver to current subscribers without waiting on any of them."""

    @abstractmethod
    def subscribe(self) -> Subscription:
        ...


class LocalServer(RealtimeServer):
    """Broadcast bus backed by one bounded queue per subscriber."""

    def __init__(self, capacity: int = 64):
        self.capacity = capacity
        self._subscribers: List[Subscription] = []
        self.running = False

    async def run(self) -> None:
        logger.info("Starting local realtime server (capacity %d)", self.capacity)
        self.running = True

    async def publish(self, event: SystemEvent) -> None:
        if not self._subscribers:
            logger.debug("No subscribers for %s event", event.kind.value)
            return
        for subscription in list(self._subscribers):
            subscription.offer(event)

    def subscribe(self) -> Subscription:
        subscription = Subscription(self, self.capacity)
        self._subscribers.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
