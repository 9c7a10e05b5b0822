import logging
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from teammatch.core.logging import request_id_var

logger = logging.getLogger("teammatch.request")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Gives every request a request-id (incoming header wins), echoes it in
    the response and binds it to the logging context for the request's
    lifetime. Logs one line per request with status and latency.
    """

    def __init__(self, app, header_name: str = "X-Request-Id"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get(self.header_name) or str(uuid.uuid4())
        request.state.request_id = rid
        token = request_id_var.set(rid)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers[self.header_name] = rid
            actor = getattr(request.state, "actor", None)
            logger.info(
                "request handled",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "user_id": str(actor.user_id) if actor else None,
                },
            )
            return response
        finally:
            request_id_var.reset(token)
