"""Domain exception -> HTTP status mapping shared by every router."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ouroboros.exceptions import (
    BatchAborted, ConfigurationError, OuroborosError, PresetNotFound, WidgetNotFound,
)

logger = logging.getLogger(__name__)

_STATUS = (
    (WidgetNotFound, 404),
    (PresetNotFound, 404),
    (ConfigurationError, 412),
    (BatchAborted, 500),
)


def status_for(exc: OuroborosError) -> int:
    for exc_type, status in _STATUS:
        if isinstance(exc, exc_type):
            return status
    return 500


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(OuroborosError)
    async def _ouroboros_error(request: Request, exc: OuroborosError):
        status = status_for(exc)
        if status >= 500:
            logger.error(f"[api] {request.method} {request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=status,
            content={"detail": str(exc), "error": type(exc).__name__, "details": exc.details},
        )
