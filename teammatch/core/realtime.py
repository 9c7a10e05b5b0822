"""
In-process publish/subscribe for newly inserted messages.

Subscribers register per conversation id and receive every message published
for it. Publishing is thread-safe: services run in worker threads and hand
messages to each subscriber's event loop with call_soon_threadsafe.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Set

from teammatch.core.config import get_settings

logger = logging.getLogger(__name__)


class SubscriptionError(Exception):
    """The subscription can no longer be trusted (e.g. it fell behind)."""


class SubscriptionOverflow(SubscriptionError):
    pass


_CLOSED = object()


class Subscription:
    def __init__(self, conversation_id: uuid.UUID, loop: asyncio.AbstractEventLoop, maxsize: int):
        self.conversation_id = conversation_id
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._error: Optional[SubscriptionError] = None
        self.closed = False

    def _offer(self, payload: Any) -> None:
        # runs on the subscriber's loop
        if self.closed or self._error is not None:
            return
        try:
            self._queue.put_nowait(payload)
        except asyncio.QueueFull:
            self._error = SubscriptionOverflow(f"subscriber for {self.conversation_id} fell behind")
            # make room so the waiting reader wakes up and sees the error
            self._queue.get_nowait()
            self._queue.put_nowait(_CLOSED)

    def deliver(self, payload: Any) -> None:
        self._loop.call_soon_threadsafe(self._offer, payload)

    async def get(self) -> Any:
        item = await self._queue.get()
        if self._error is not None:
            raise self._error
        if item is _CLOSED:
            raise SubscriptionError("subscription closed")
        return item

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Any:
        return await self.get()


class MessageFeed:
    """Conversation id → live subscriptions."""

    def __init__(self, queue_size: int = 256):
        self.queue_size = queue_size
        self._subs: Dict[uuid.UUID, Set[Subscription]] = {}
        self._lock = threading.Lock()

    def _add(self, sub: Subscription) -> None:
        with self._lock:
            self._subs.setdefault(sub.conversation_id, set()).add(sub)

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subs.get(sub.conversation_id)
            if subs is not None:
                subs.discard(sub)
                if not subs:
                    del self._subs[sub.conversation_id]
        sub.closed = True

    def subscriber_count(self, conversation_id: uuid.UUID) -> int:
        with self._lock:
            return len(self._subs.get(conversation_id, ()))

    def publish(self, conversation_id: uuid.UUID, payload: Any) -> int:
        with self._lock:
            subs = list(self._subs.get(conversation_id, ()))
        for sub in subs:
            try:
                sub.deliver(payload)
            except RuntimeError:
                # subscriber's loop is gone
                logger.warning("dropping subscriber with closed loop", extra={"conversation_id": str(conversation_id)})
                self._remove(sub)
        return len(subs)

    @asynccontextmanager
    async def subscribe(self, conversation_id: uuid.UUID) -> AsyncIterator[Subscription]:
        """
        async with feed.subscribe(cid) as sub:
            async for message in sub: ...

        The subscription is removed on every exit path.
        """
        sub = Subscription(conversation_id, asyncio.get_running_loop(), self.queue_size)
        self._add(sub)
        try:
            yield sub
        finally:
            self._remove(sub)


# Singleton instance
feed = MessageFeed(queue_size=get_settings().realtime_queue_size)
