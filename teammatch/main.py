import logging

from fastapi import FastAPI

from teammatch.api.v1.router import v1_router
from teammatch.core.config import get_settings
from teammatch.core.logging import configure_logging
from teammatch.core.middleware import RequestIdMiddleware

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
    )
    app.state.settings = settings

    # Middleware: Request ID
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)

    # API v1
    app.include_router(v1_router, prefix=settings.api_prefix)

    logger.info("app created", extra={"environment": settings.environment, "api_prefix": settings.api_prefix})
    return app


app = create_app()
