from __future__ import annotations

import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class _Slot(Generic[T]):
    value: T
    last_ts: float


class UserStateStore(Generic[T]):
    """
    In-memory per-user state (swipe ledgers, unread maps).

    Entries idle for longer than `idle_seconds` are dropped on the next
    access, and at most `max_users` entries are kept (least recently used
    goes first). A dropped user simply starts fresh on their next call.
    """

    def __init__(
        self,
        factory: Callable[[], T],
        *,
        idle_seconds: Optional[float] = None,
        max_users: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factory = factory
        self.idle_seconds = idle_seconds
        self.max_users = max_users
        self._clock = clock
        self._slots: "OrderedDict[uuid.UUID, _Slot[T]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._slots

    def _evict(self, now: float) -> None:
        # oldest access first, so stop at the first fresh one
        if self.idle_seconds is not None:
            while self._slots:
                user_id, slot = next(iter(self._slots.items()))
                if now - slot.last_ts <= self.idle_seconds:
                    break
                del self._slots[user_id]
        if self.max_users is not None:
            while len(self._slots) > self.max_users:
                self._slots.popitem(last=False)

    def get(self, user_id: uuid.UUID) -> T:
        now = self._clock()
        with self._lock:
            self._evict(now)
            slot = self._slots.get(user_id)
            if slot is None:
                slot = _Slot(value=self._factory(), last_ts=now)
                self._slots[user_id] = slot
            else:
                slot.last_ts = now
                self._slots.move_to_end(user_id)
            self._evict(now)
            return slot.value

    def drop(self, user_id: uuid.UUID) -> bool:
        with self._lock:
            return self._slots.pop(user_id, None) is not None
