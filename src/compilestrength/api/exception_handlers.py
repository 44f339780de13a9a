"""
Exception handlers for the FastAPI application.

This module registers exception handlers that convert application
exceptions to appropriate HTTP responses with consistent formatting.
"""

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from ..exceptions import CompileStrengthError, ErrorCode


logger = logging.getLogger(__name__)

# Routes that answer validation failures with the flat
# {success, error, details} body instead of the error envelope.
FLAT_VALIDATION_PATHS = ("/api/v1/save-routine",)


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    details: Dict[str, Any] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    content: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
        }
    }
    if details:
        content["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _field_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    errors = []
    for error in exc.errors():
        # Drop the "body" prefix FastAPI puts on request-body locations
        loc = [str(x) for x in error["loc"]]
        if loc and loc[0] == "body":
            loc = loc[1:]
        errors.append({
            "field": ".".join(loc),
            "message": error["msg"],
            "code": error["type"],
        })
    return errors


async def compilestrength_error_handler(
    request: Request,
    exc: CompileStrengthError,
) -> JSONResponse:
    """Handle all CompileStrengthError exceptions."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    response = create_error_response(
        status_code=exc.status_code,
        code=exc.code.value,
        message=exc.message,
        details=exc.details if exc.details else None,
    )
    if headers:
        response.headers.update(headers)
    return response


async def request_validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle request body/query validation errors as HTTP 400."""
    errors = _field_errors(exc)

    if request.url.path in FLAT_VALIDATION_PATHS:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "Validation failed",
                "details": errors,
            },
        )

    return create_error_response(
        status_code=400,
        code=ErrorCode.VALIDATION_ERROR.value,
        message="Request validation failed",
        details={"errors": errors},
    )


async def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    """Handle rate limit exceeded exceptions."""
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": f"Rate limit exceeded: {exc.detail}",
            "retry_after": getattr(exc, "retry_after", None),
        },
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=exc)

    return create_error_response(
        status_code=500,
        code=ErrorCode.INTERNAL_ERROR.value,
        message="An unexpected error occurred",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(CompileStrengthError, compilestrength_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Catch-all for unexpected exceptions; must be registered last
    app.add_exception_handler(Exception, generic_exception_handler)
