"""
API error contract.

Every failure leaves the service as ``{"error": {"code", "message", "details"?}}``.
Services raise ``ApplicationError`` (or one of its subclasses) with a code from
``ErrorCode``; the handlers registered by ``register_exception_handlers``
render framework errors (validation, routing, unexpected exceptions) into the
same shape so the Mini App has a single format to handle.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from enum import StrEnum
from http import HTTPStatus
from typing import Any, Awaitable, Callable, Mapping, MutableMapping, Sequence, cast

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

ExceptionHandlerCallable = Callable[[Request, Exception], Awaitable[Response]]

logger = logging.getLogger("claude_chat.errors")

INTERNAL_ERROR_MESSAGE = "Внутренняя ошибка сервера"
VALIDATION_ERROR_MESSAGE = "Ошибка валидации"


class ErrorCode(StrEnum):
    """Codes the Mini App can branch on."""

    # initData admission
    INVALID_INIT_DATA = "INVALID_INIT_DATA"
    AUTH_FAILED = "AUTH_FAILED"
    INIT_DATA_EXPIRED = "INIT_DATA_EXPIRED"
    FORBIDDEN = "FORBIDDEN"

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FIELD_VALUE = "INVALID_FIELD_VALUE"

    USER_NOT_FOUND = "USER_NOT_FOUND"
    CHAT_NOT_FOUND = "CHAT_NOT_FOUND"
    PLAN_NOT_FOUND = "PLAN_NOT_FOUND"
    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    NOT_FOUND = "NOT_FOUND"

    # Subscriptions and the payment webhook
    SUBSCRIPTION_REQUIRED = "SUBSCRIPTION_REQUIRED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    INVALID_PAYMENT_METADATA = "INVALID_PAYMENT_METADATA"

    # Upstream providers
    LLM_SERVICE_ERROR = "LLM_SERVICE_ERROR"
    PAYMENT_SERVICE_ERROR = "PAYMENT_SERVICE_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    CONFLICT = "CONFLICT"


_CODE_BY_STATUS: dict[int, ErrorCode] = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.VALIDATION_ERROR,
    status.HTTP_401_UNAUTHORIZED: ErrorCode.AUTH_FAILED,
    status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.METHOD_NOT_ALLOWED,
    status.HTTP_409_CONFLICT: ErrorCode.CONFLICT,
    status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: ErrorCode.PAYLOAD_TOO_LARGE,
    status.HTTP_502_BAD_GATEWAY: ErrorCode.SERVICE_UNAVAILABLE,
    status.HTTP_503_SERVICE_UNAVAILABLE: ErrorCode.SERVICE_UNAVAILABLE,
}

# Location prefixes FastAPI adds to validation errors; the client only needs the field path.
_LOCATION_PREFIXES = frozenset({"body", "query", "path", "form"})


class ApplicationError(Exception):
    """Error raised by services and rendered as-is to the client."""

    default_status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        *,
        status_code: int | None = None,
        details: object | None = None,
    ) -> None:
        super().__init__(message)
        self.code = str(code)
        self.message = message
        self.status_code = self.default_status_code if status_code is None else status_code
        self.details = details


class NotFoundError(ApplicationError):
    """The resource is missing or belongs to another user."""

    default_status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, code: ErrorCode | str, message: str, *, details: object | None = None) -> None:
        super().__init__(code, message, details=details)


class ExternalServiceError(ApplicationError):
    """A completion or payment provider failed; only 502 and 503 are meaningful here."""

    default_status_code = status.HTTP_502_BAD_GATEWAY
    allowed_status_codes = frozenset({status.HTTP_502_BAD_GATEWAY, status.HTTP_503_SERVICE_UNAVAILABLE})

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        *,
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        details: object | None = None,
    ) -> None:
        if status_code not in self.allowed_status_codes:
            raise ValueError(f"ExternalServiceError cannot use status {status_code}")
        super().__init__(code, message, status_code=status_code, details=details)


def build_error_payload(
    *,
    code: ErrorCode | str,
    message: str,
    details: object | None = None,
) -> dict[str, dict[str, object]]:
    error: dict[str, object] = {"code": str(code), "message": message}
    if details is not None:
        error["details"] = details
    return {"error": error}


def error_response(
    *,
    status_code: int,
    code: ErrorCode | str,
    message: str,
    details: object | None = None,
) -> JSONResponse:
    payload = build_error_payload(code=code, message=message, details=details)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


async def application_error_handler(request: Request, exc: ApplicationError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.warning(
            "Request failed upstream",
            extra={"error_code": exc.code, "status_code": exc.status_code, "http_path": request.url.path},
        )
    return error_response(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


async def request_validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    details = validation_details(exc.errors())
    return error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code=ErrorCode.VALIDATION_ERROR,
        message=VALIDATION_ERROR_MESSAGE,
        details=details or None,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render ``HTTPException`` raised by routing or by ``detail={code, message, details}``."""

    phrase = HTTPStatus(exc.status_code).phrase
    detail: Any = exc.detail
    if isinstance(detail, Mapping):
        response = error_response(
            status_code=exc.status_code,
            code=detail.get("code") or ErrorCode.INTERNAL_ERROR,
            message=str(detail.get("message") or phrase),
            details=detail.get("details"),
        )
    else:
        response = error_response(
            status_code=exc.status_code,
            code=_CODE_BY_STATUS.get(exc.status_code, ErrorCode.INTERNAL_ERROR),
            message=str(detail or phrase),
        )

    if isinstance(exc.headers, MutableMapping):
        response.headers.update(exc.headers)
    return response


async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={"http_method": request.method, "http_path": request.url.path},
    )
    return error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code=ErrorCode.INTERNAL_ERROR,
        message=INTERNAL_ERROR_MESSAGE,
    )


def validation_details(errors: Sequence[Mapping[str, Any]]) -> dict[str, str]:
    """Group pydantic error messages by dotted field path."""

    grouped: defaultdict[str, list[str]] = defaultdict(list)
    for error in errors:
        grouped[_field_path(error.get("loc") or ())].append(str(error.get("msg", "Invalid value")))
    return {field: "; ".join(messages) for field, messages in grouped.items()}


def _field_path(location: Sequence[object]) -> str:
    parts = [str(part) for part in location]
    trimmed = parts[1:] if parts and parts[0] in _LOCATION_PREFIXES else parts
    return ".".join(trimmed or parts) or "_schema"


_HANDLERS: tuple[tuple[type[Exception], Callable[..., Awaitable[Response]]], ...] = (
    (ApplicationError, application_error_handler),
    (RequestValidationError, request_validation_exception_handler),
    (StarletteHTTPException, http_exception_handler),
    (Exception, unexpected_exception_handler),
)


def register_exception_handlers(app: FastAPI) -> None:
    for exc_class, handler in _HANDLERS:
        app.add_exception_handler(exc_class, cast(ExceptionHandlerCallable, handler))


__all__ = [
    "ApplicationError",
    "ErrorCode",
    "ExternalServiceError",
    "INTERNAL_ERROR_MESSAGE",
    "NotFoundError",
    "build_error_payload",
    "error_response",
    "register_exception_handlers",
    "validation_details",
]
