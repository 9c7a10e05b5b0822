# teammatch/services/conversation_view.py
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional

import anyio

from teammatch.core.realtime import MessageFeed, SubscriptionError

logger = logging.getLogger(__name__)

Loader = Callable[[], List[Dict[str, Any]]]
Sink = Callable[[Dict[str, Any]], Awaitable[None]]


class ConversationView:
    """
    The open conversation's message list.

    Messages come from two places, the initial fetch and the live feed, so
    they are merged by id. If the subscription breaks, the view subscribes
    again and refetches; the merge makes the overlap harmless.
    """

    def __init__(
        self,
        conversation_id: uuid.UUID,
        feed: MessageFeed,
        loader: Loader,
        *,
        on_message: Optional[Sink] = None,
        max_resubscribes: int = 5,
        retry_delay: float = 0.05,
    ):
        self.conversation_id = conversation_id
        self.feed = feed
        self.loader = loader
        self.on_message = on_message
        self.max_resubscribes = max_resubscribes
        self.retry_delay = retry_delay
        self.messages: List[Dict[str, Any]] = []
        self._ids: set = set()
        self.resubscribes = 0
        self.ready = asyncio.Event()

    def merge(self, message: Dict[str, Any]) -> bool:
        """Add a message unless one with the same id is already shown."""
        mid = str(message["id"])
        if mid in self._ids:
            return False
        self._ids.add(mid)
        self.messages.append(message)
        if len(self.messages) > 1 and str(message["created_at"]) < str(self.messages[-2]["created_at"]):
            self.messages.sort(key=lambda m: (str(m["created_at"]), str(m["id"])))
        return True

    def reload(self) -> List[Dict[str, Any]]:
        """Fetch the full list and merge; returns what was new."""
        return [m for m in self.loader() if self.merge(m)]

    async def _emit(self, message: Dict[str, Any]) -> None:
        if self.on_message is not None:
            await self.on_message(message)

    async def run(self) -> None:
        """
        Follow the conversation until cancelled.

        Subscribes before fetching so nothing published in between is lost.
        """
        while True:
            try:
                async with self.feed.subscribe(self.conversation_id) as sub:
                    for message in await anyio.to_thread.run_sync(self.reload):
                        await self._emit(message)
                    self.ready.set()
                    async for payload in sub:
                        if self.merge(payload):
                            await self._emit(payload)
            except SubscriptionError as e:
                self.resubscribes += 1
                if self.resubscribes > self.max_resubscribes:
                    logger.error(
                        "giving up on conversation feed",
                        extra={"conversation_id": str(self.conversation_id), "resubscribes": self.resubscribes},
                    )
                    raise
                logger.warning(
                    "conversation feed broke, resubscribing",
                    extra={"conversation_id": str(self.conversation_id), "error": str(e)},
                )
                await asyncio.sleep(self.retry_delay)
