"""
Exception handlers for the Site Ledger API.

Every error leaves the service in the same envelope, ``{"data": null,
"error": ...}``. Validation errors are reported as 400, uniqueness and
foreign key violations as 409, and anything unexpected is logged with a
traceback and reported as 500 with an error id.
"""

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class BusinessRuleError(Exception):
    """Raised by services when a request breaks a business rule"""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def error_response(status_code: int, error, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"data": None, "error": error},
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, exc.detail, getattr(exc, "headers", None))


async def business_rule_handler(request: Request, exc: BusinessRuleError) -> JSONResponse:
    return error_response(exc.status_code, exc.message)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for err in exc.errors():
        location = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(location), "message": err.get("msg", "Invalid value")})
    return error_response(400, errors)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    message = str(exc.orig) if exc.orig is not None else str(exc)
    logger.warning(f"Integrity error in {request.method} {request.url.path}: {message}")
    if "FOREIGN KEY" in message.upper():
        return error_response(409, "Record is referenced by other data")
    return error_response(409, "Record already exists")


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unhandled exceptions with an error id the client can report"""
    error_id = uuid.uuid4().hex[:12]
    logger.error(
        f"Unhandled exception [{error_id}] in {request.method} {request.url.path}: {exc}",
        exc_info=True,
        extra={
            "error_id": error_id,
            "method": request.method,
            "path": request.url.path,
            "error_type": type(exc).__name__,
        },
    )
    return JSONResponse(
        status_code=500,
        content={"data": None, "error": "Internal server error", "errorId": error_id},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with the FastAPI application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(BusinessRuleError, business_rule_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered")
