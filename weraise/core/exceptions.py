"""Uniform {error, message, details} error envelope."""

import logging
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

_STATUS_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    415: "Unsupported Media Type",
    500: "Internal Server Error",
}


class ApiError(Exception):
    """Base for errors rendered as {error, message, details}."""

    status: int = 500
    error: str = "Internal Server Error"

    def __init__(
        self,
        message: str,
        details: Any = None,
        error: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        if error is not None:
            self.error = error


class ValidationFailedError(ApiError):
    status = 400
    error = "Validation Error"


class NotFoundError(ApiError):
    status = 404
    error = "Not Found"


class ForbiddenError(ApiError):
    status = 403
    error = "Forbidden"


class ConflictError(ApiError):
    """A business rule rejected the request (duplicate, sold out, already processed)."""

    status = 400
    error = "Bad Request"


class UpstreamFailureError(ApiError):
    """The payment provider call failed; its message is surfaced to the caller."""

    status = 400
    error = "Payment Provider Error"


class InternalError(ApiError):
    status = 500
    error = "Internal Server Error"


def _envelope(error: str, message: str, details: Any = None) -> dict:
    body: dict[str, Any] = {"error": error, "message": message}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return body


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status,
        content=_envelope(exc.error, exc.message, exc.details),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    details = None if isinstance(exc.detail, str) else exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(_STATUS_TITLES.get(exc.status_code, "Error"), message, details),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=_envelope("Validation Error", "Invalid input data", exc.errors()),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=_envelope("Internal Server Error", "An unexpected error occurred"),
    )
