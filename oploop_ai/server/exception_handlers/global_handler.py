"""
Global Exception Handlers for the FastAPI Application.

Service-level chat errors map to HTTP status codes; anything else is logged
with request context and answered with a 500 carrying an error ID.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from oploop_ai.agent_core.service import ChatBusyError, ChatNotFoundError, MessageNotFoundError
from oploop_ai.core.logging_config import get_logger
from oploop_ai.core.monitoring import log_error

logger = get_logger(__name__)


async def chat_not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def chat_busy_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Log an unhandled exception and return a JSON 500 response.

    The response carries an error ID that clients can use to reference the
    error when reporting issues.
    """
    error_id = id(exc)

    logger.error(
        f"Unhandled exception [{error_id}] in {request.method} {request.url.path}: {exc}",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "method": request.method,
            "path": request.url.path,
            "client": request.client.host if request.client else "unknown",
            "error_type": type(exc).__name__,
        },
    )
    log_error(type(exc).__name__, str(exc), {"path": request.url.path, "error_id": error_id})

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "error_type": type(exc).__name__,
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with the FastAPI application."""
    app.add_exception_handler(ChatNotFoundError, chat_not_found_handler)
    app.add_exception_handler(MessageNotFoundError, chat_not_found_handler)
    app.add_exception_handler(ChatBusyError, chat_busy_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered successfully")
