"""
Exception handlers.

Maps engine errors onto HTTP status codes: 400 validation, 404 not found,
500 store and unexpected failures.
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import structlog

from promo_catalog.exceptions import PromoCatalogError

logger = structlog.get_logger(__name__)


def error_response(status_code: int, code: str, message: str, details: Optional[dict] = None) -> JSONResponse:
    """Build the ``{"ok": false, "error": ...}`` body."""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({
            "ok": False,
            "error": {"code": code, "message": message, "details": details or {}},
        }),
    )


async def promo_catalog_exception_handler(request: Request, exc: PromoCatalogError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Request failed",
        path=request.url.path,
        error=exc.message,
        error_type=type(exc).__name__,
        error_code=exc.code,
        status_code=exc.status_code,
    )
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    logger.warning("Request validation failed", path=request.url.path, errors=errors)
    return error_response(400, "VALIDATION_ERROR", "Request validation failed", {"errors": errors})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path, error_type=type(exc).__name__)
    return error_response(500, "INTERNAL_ERROR", "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Register all handlers on ``app``."""
    app.add_exception_handler(PromoCatalogError, promo_catalog_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
