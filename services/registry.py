"""Live subscriber tracking and fan-out for the real-time stream."""

from __future__ import annotations

import asyncio
import logging
import time
from functools import lru_cache
from typing import Dict, Optional, Protocol

from settings import get_settings

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None: ...


class SubscriberRegistry:
    """Connection map shared by the WebSocket handler and ingest.

    ``register``, ``deregister`` and ``broadcast`` all run under one lock, so
    a broadcast sees a stable set of subscribers. Each send is bounded by
    ``send_timeout``; a stalled subscriber still holds the lock until then.
    Dropped connections are closed outside the lock.
    """

    def __init__(self, send_timeout: float = 5.0) -> None:
        self.send_timeout = send_timeout
        self._subscribers: Dict[Subscriber, float] = {}
        self._lock = asyncio.Lock()

    @property
    def count(self) -> int:
        return len(self._subscribers)

    def __contains__(self, subscriber: object) -> bool:
        return subscriber in self._subscribers

    async def register(self, subscriber: Subscriber) -> None:
        async with self._lock:
            self._subscribers[subscriber] = time.monotonic()
            count = len(self._subscribers)
        logger.info("Subscriber registered", extra={"subscriber_count": count})

    async def deregister(self, subscriber: Subscriber) -> None:
        async with self._lock:
            removed = self._subscribers.pop(subscriber, None) is not None
            count = len(self._subscribers)
        if removed:
            logger.info("Subscriber deregistered", extra={"subscriber_count": count})

    async def broadcast(self, payload: str) -> int:
        """Send ``payload`` to every subscriber; returns how many accepted it.

        Subscribers whose send fails or times out are dropped under the lock
        and closed after it is released.
        """
        delivered = 0
        dropped = []
        async with self._lock:
            for subscriber in list(self._subscribers):
                try:
                    await asyncio.wait_for(subscriber.send_text(payload), self.send_timeout)
                except Exception as exc:  # noqa: BLE001 - any send failure drops the subscriber
                    del self._subscribers[subscriber]
                    dropped.append(subscriber)
                    logger.warning(
                        "Dropping subscriber after failed send: %r",
                        exc,
                        extra={"subscriber_count": len(self._subscribers)},
                    )
                else:
                    delivered += 1
        for subscriber in dropped:
            await self._close_quietly(subscriber)
        return delivered

    async def close_all(self) -> None:
        async with self._lock:
            subscribers = list(self._subscribers)
            self._subscribers.clear()
        for subscriber in subscribers:
            await self._close_quietly(subscriber)

    async def _close_quietly(self, subscriber: Subscriber) -> None:
        try:
            await asyncio.wait_for(subscriber.close(), self.send_timeout)
        except Exception as exc:  # noqa: BLE001 - connection is already gone
            logger.debug("Closing subscriber failed: %r", exc)


@lru_cache
def build_default_registry() -> SubscriberRegistry:
    settings = get_settings()
    return SubscriberRegistry(send_timeout=settings.subscriber_send_timeout)
