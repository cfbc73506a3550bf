"""
Exception handlers - JSON error envelope.

Every failure leaves the API as ``{"error": "<message>"}`` with the
matching status code.
"""

import logging

import psycopg
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    if first.get("type") == "missing":
        return f"Missing field: {field}" if field else "Missing fields"
    return f"{field}: {message}" if field else message


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error(exc.status_code, detail)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, _describe_validation_error(exc))


async def storage_exception_handler(request: Request, exc: psycopg.Error) -> JSONResponse:
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Storage unavailable")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(psycopg.Error, storage_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
