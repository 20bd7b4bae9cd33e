"""Engine error kinds and the FastAPI handlers that render them.

Every error leaves the API as ``{"error": <code>, "detail": <message>}``.
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("limitguard.errors")


class LimitGuardError(Exception):
    error_code = "engine_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UnsupportedCurrencyError(LimitGuardError):
    """Currency outside the allow-list; input-driven, never retried."""

    error_code = "unsupported_currency"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, currency: str):
        super().__init__(f"Unsupported currency: {currency}")
        self.currency = currency


class RateProviderError(LimitGuardError):
    """The rate source signalled an error or returned unusable data.

    Retryable by the caller; the engine itself does not retry.
    """

    error_code = "rate_provider_error"
    status_code = status.HTTP_502_BAD_GATEWAY


class NoUsableRateError(LimitGuardError):
    error_code = "no_usable_rate"
    status_code = 422  # HTTP_422_UNPROCESSABLE_ENTITY is deprecated in newer Starlette


class DuplicateLimitVersionError(LimitGuardError):
    error_code = "duplicate_limit_version"
    status_code = status.HTTP_409_CONFLICT


def _error_body(code: str, detail) -> dict:
    return {"error": code, "detail": detail}


def domain_error_handler(request: Request, exc: LimitGuardError):  # type: ignore
    logger.warning(
        "request failed",
        extra={"error": exc.error_code, "path": request.url.path, "detail": str(exc)},
    )
    return JSONResponse(
        status_code=exc.status_code, content=_error_body(exc.error_code, str(exc))
    )


def http_error_handler(request: Request, exc: StarletteHTTPException):  # type: ignore
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        detail = f"No route for {request.method} {request.url.path}"
    else:
        detail = exc.detail
    code = "not_found" if exc.status_code == status.HTTP_404_NOT_FOUND else "http_error"
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(code, detail),
        headers=getattr(exc, "headers", None),
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=422,
        content=_error_body("validation_error", _jsonable_errors(exc)),
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("internal_error", "An unexpected error occurred."),
    )


def _jsonable_errors(exc: RequestValidationError) -> list:
    # pydantic v2 puts the raised exception object under ctx["error"]
    errors = []
    for err in exc.errors():
        err = dict(err)
        ctx = err.get("ctx")
        if ctx:
            err["ctx"] = {k: str(v) for k, v in ctx.items()}
        err.pop("input", None)
        errors.append(err)
    return errors
