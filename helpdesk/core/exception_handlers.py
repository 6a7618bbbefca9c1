"""
FastAPI exception handlers for custom exceptions.

WHY: Exception handlers convert our custom exceptions into properly
formatted JSON responses with correct HTTP status codes, ensuring
every error body has the same `{code, message, details}` shape.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from helpdesk.core.exceptions import AppException, DuplicateResourceError


logger = logging.getLogger(__name__)


# Starlette raises these before routing; keep their codes in our vocabulary.
_HTTP_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle custom AppException and its subclasses.

    Args:
        request: The FastAPI request object
        exc: The custom exception instance

    Returns:
        JSONResponse with error details
    """
    logger.info(
        "%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    WHY: Malformed bodies and query strings are BadRequest in our taxonomy,
    so they use 400 rather than FastAPI's default 422.
    """
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
        )

    return JSONResponse(
        status_code=400,
        content={
            "code": "BAD_REQUEST",
            "message": "Request validation failed",
            "details": {"errors": errors},
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Handle Starlette HTTP exceptions.

    WHY: Some HTTP exceptions (404, 405, missing bearer token) are raised by
    Starlette/FastAPI before reaching our routes. This handler ensures they
    match our error format.
    """
    status_code = exc.status_code
    # HTTPBearer rejects a missing Authorization header with 403; an absent
    # identity is Unauthorized.
    if status_code == 403 and exc.detail == "Not authenticated":
        status_code = 401

    return JSONResponse(
        status_code=status_code,
        content={
            "code": _HTTP_STATUS_CODES.get(status_code, "HTTP_ERROR"),
            "message": exc.detail,
            "details": None,
        },
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unexpected exceptions.

    WHY: Log the full traceback but return a generic error to avoid leaking
    implementation details.
    """
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=500,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "details": None,
        },
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """
    Handle database constraint violations.

    WHY: Services pre-check unique names, but two concurrent requests can
    both pass the check. The loser hits a unique constraint; get_db has
    already rolled back, so report it as a BadRequest duplicate.
    """
    logger.warning("Integrity error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=400,
        content=DuplicateResourceError(message="Resource conflicts with existing data").to_dict(),
    )
