from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Callable, Optional, TypeVar

import anyio

from teammatch.core.errors import OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_abandoned(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("abandoned operation finished with an error", extra={"error": repr(exc)})


async def run_abandonable(fn: Callable[..., T], *args: Any, timeout: Optional[float] = None, **kwargs: Any) -> T:
    """
    Run a blocking engine call in a worker thread so the caller can stop
    waiting for it.

    - Cancelling the awaiting task (or hitting `timeout`) abandons the wait
      only; a write already handed to the database runs to completion.
    - On timeout raises OperationTimeoutError, so callers reconcile on their
      next read instead of assuming the write did or did not happen.
    """
    call = functools.partial(fn, *args, **kwargs)
    task = asyncio.ensure_future(anyio.to_thread.run_sync(call))

    try:
        if timeout is None:
            return await asyncio.shield(task)
        return await asyncio.wait_for(asyncio.shield(task), timeout)
    except asyncio.TimeoutError as e:
        task.add_done_callback(_log_abandoned)
        raise OperationTimeoutError(
            f"Gave up waiting after {timeout}s; the operation may still complete."
        ) from e
    except asyncio.CancelledError:
        task.add_done_callback(_log_abandoned)
        raise
