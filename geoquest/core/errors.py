"""Domain errors and their HTTP rendering."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class GeoQuestError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(GeoQuestError):
    """A required field is missing or malformed."""

    status_code = 400


class NotFound(GeoQuestError):
    status_code = 404


class InvalidTransition(GeoQuestError):
    """The entity is in a state that does not allow the operation."""

    status_code = 400


class UpstreamError(GeoQuestError):
    """Data store or AI provider failure."""

    status_code = 500


def error_body(message: str) -> dict:
    return {"success": False, "error": message}


async def _handle_domain_error(request: Request, exc: GeoQuestError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(error_body(exc.message), status_code=exc.status_code)


async def _handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(error_body(message), status_code=400)


async def _handle_store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Data store failure on %s %s", request.method, request.url.path)
    return JSONResponse(error_body(str(exc)), status_code=500)


def register_error_handlers(app: FastAPI) -> None:
    """Render every error as {success: false, error: <message>}."""

    app.add_exception_handler(GeoQuestError, _handle_domain_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(SQLAlchemyError, _handle_store_error)


__all__ = [
    "GeoQuestError",
    "InvalidTransition",
    "NotFound",
    "UpstreamError",
    "ValidationError",
    "error_body",
    "register_error_handlers",
]
