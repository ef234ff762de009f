"""
backend/obsada/errors.py

Purpose:
    App-level exception handlers. Services raise HTTPException for expected
    failures; everything registered here is a fallback that logs the real
    cause and returns a short, safe detail.

Dependencies:
    - pymongo.errors
    - obsada.providers.sms_gateway
"""

import logging

from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    OperationFailure,
    ServerSelectionTimeoutError,
)

from obsada.providers.sms_gateway import InvalidMessageIdError

logger = logging.getLogger("obsada.errors")


def _detail(status_code: int, detail: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, **extra})


async def invalid_object_id_handler(request: Request, exc: InvalidId):
    return _detail(400, "Invalid ID.")


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Flatten pydantic errors to field/message pairs without the body/query prefix."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        field = ".".join(loc[1:]) if len(loc) > 1 else (loc[0] if loc else "unknown")
        errors.append({"field": field, "message": err.get("msg", "Invalid value.")})
    logger.info("Validation error on %s %s: %s", request.method, request.url.path, errors)
    return _detail(422, "Validation error.", errors=errors)


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return _detail(409, "Duplicate entry.")


async def database_unavailable_handler(request: Request, exc: Exception):
    logger.error("Database unavailable (%s): %s %s", type(exc).__name__, request.method, request.url.path)
    return _detail(503, "Service temporarily unavailable.")


async def database_operation_handler(request: Request, exc: OperationFailure):
    logger.error("Database operation error on %s %s: %s", request.method, request.url.path, exc)
    return _detail(500, "An internal error occurred.")


async def invalid_message_id_handler(request: Request, exc: InvalidMessageIdError):
    # The stored observer_sms_id is corrupt; the match needs manual attention.
    logger.error("Cannot cancel scheduled SMS on %s %s: %s", request.method, request.url.path, exc)
    return _detail(500, "Scheduled SMS could not be cancelled.")


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _detail(500, "An internal error occurred.")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidId, invalid_object_id_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    for exc_class in (ServerSelectionTimeoutError, ConnectionFailure):
        app.add_exception_handler(exc_class, database_unavailable_handler)
    app.add_exception_handler(OperationFailure, database_operation_handler)
    app.add_exception_handler(InvalidMessageIdError, invalid_message_id_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
