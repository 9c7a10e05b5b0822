# teammatch/core/deps.py
from __future__ import annotations

from typing import Any, Callable

from fastapi import HTTPException
from sqlalchemy.orm import sessionmaker

from teammatch.core.async_utils import run_abandonable
from teammatch.core.config import get_settings
from teammatch.core.errors import EngineError
from teammatch.core.results import OperationResult

ERROR_STATUS = {
    "no_team": 400,
    "invalid_input": 422,
    "not_authorized": 403,
    "target_not_found": 404,
    "invalid_state": 409,
    "partial_write": 502,
    "collaborator_unavailable": 503,
    "timeout": 504,
}


def http_error(error: EngineError) -> HTTPException:
    detail = {"code": error.code, "message": error.message}
    step = getattr(error, "step", None)
    if step is not None:
        detail["step"] = step
        detail["cleaned_up"] = error.cleaned_up
    return HTTPException(status_code=ERROR_STATUS.get(error.code, 500), detail=detail)


def unwrap(result: OperationResult) -> Any:
    if not result.ok:
        raise http_error(result.error)
    return result.value


def _in_own_session(
    sessions: sessionmaker, fn: Callable[..., OperationResult], *args: Any, **kwargs: Any
) -> OperationResult:
    # returned rows are read after close, so they must not expire on commit
    db = sessions(expire_on_commit=False)
    try:
        return fn(db, *args, **kwargs)
    finally:
        db.close()


async def call_engine(
    sessions: sessionmaker, fn: Callable[..., OperationResult], *args: Any, **kwargs: Any
) -> OperationResult:
    """
    Run `fn(db, *args, **kwargs)` off the event loop in a session of its own.

    If the client goes away or the configured timeout passes, the wait is
    abandoned but the write is not: the worker keeps its session until it
    finishes, independent of the request's `get_db` teardown.
    """
    try:
        return await run_abandonable(
            _in_own_session, sessions, fn, *args, timeout=get_settings().operation_timeout_seconds, **kwargs
        )
    except EngineError as e:
        return OperationResult.failure(e)
