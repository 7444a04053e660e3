"""Error taxonomy and the handlers that render it as ``{error, message}``."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

# purpose: map HTTP statuses onto the error kinds clients switch on
# status: active
STATUS_KINDS: dict[int, str] = {
    400: "invalid_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "invalid_request",
    429: "rate_limited",
    500: "internal_error",
}


class APIError(HTTPException):
    """HTTPException carrying an explicit error kind."""

    def __init__(self, status_code: int, error: str, message: str, headers: dict | None = None):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.error = error


class InvalidToken(Exception):
    """Raised when a session token or identity assertion fails verification."""

    error = "invalid_token"


def error_body(error: str, message: str) -> dict[str, str]:
    return {"error": error, "message": message}


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    kind = getattr(exc, "error", None) or STATUS_KINDS.get(exc.status_code, "internal_error")
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(kind, message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content=error_body("invalid_request", "; ".join(parts)))


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("database failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content=error_body("internal_error", "Storage backend unavailable"))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("internal_error", "Internal server error"))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
