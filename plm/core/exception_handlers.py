"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Maps domain and framework
exceptions to HTTP responses.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from plm.core.config import get_settings
from plm.domain.exceptions import PlmException
from plm.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)

# Map domain error_code to HTTP status
ERROR_CODE_STATUS: dict[str, int] = {
    "GUARD_VIOLATION": 409,
    "INVALID_TRANSITION": 409,
    "DEPENDENCY_NOT_SATISFIED": 409,
    "APPROVER_RESOLUTION_FAILED": 422,
    "RESOURCE_NOT_FOUND": 404,
    "VALIDATION_ERROR": 400,
    "CONCURRENCY_CONFLICT": 409,
    "SERVICE_UNAVAILABLE": 503,
}


def _plm_exception_handler(request: Request, exc: PlmException) -> JSONResponse:
    """Return JSON from PlmException.to_dict() with the mapped status code."""
    status = ERROR_CODE_STATUS.get(exc.error_code, 400)
    if status >= 500:
        logger.error("%s: %s", exc.error_code, exc.message)
    else:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.error_code, exc.message)
    return JSONResponse(status_code=status, content=exc.to_dict())


def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 422 with validation error details."""
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": jsonable_errors(exc),
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Pydantic errors with non-JSON ctx values stringified."""
    errors = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        errors.append(err)
    return errors


def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Return JSON for Starlette HTTP exceptions (status + detail)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP_ERROR", "message": exc.detail},
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception (request %s): %s", get_request_id(), exc)
    settings = get_settings()
    detail: Any = str(exc) if settings.debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Handlers: PlmException (and subclasses), RequestValidationError,
    StarletteHTTPException, generic Exception.
    """
    app.add_exception_handler(PlmException, _plm_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
