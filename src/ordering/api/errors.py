"""Map domain exceptions onto HTTP responses with an ``{"error": ...}`` body."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

logger = structlog.get_logger(__name__)


def error_message(exc: ValidationError) -> str:
    """First human-readable message of a ``{field: [message]}`` payload."""
    messages = exc.messages
    if isinstance(messages, dict):
        messages = next((value for value in messages.values() if value), "")
    if isinstance(messages, (list, tuple)):
        messages = messages[0] if messages else ""
    return str(messages) or "Invalid request"


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.info("Request rejected", path=request.url.path, errors=exc.messages)
    return JSONResponse(status_code=400, content={"error": error_message(exc)})


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    message = exc.args[0] if exc.args else "Not found"
    return JSONResponse(status_code=404, content={"error": str(message)})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
