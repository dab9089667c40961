"""HTTP middlewares: request correlation, access logs, response hardening, body limits."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterable
from uuid import uuid4

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from claude_chat.core.config import TELEGRAM_WEB_ORIGINS
from claude_chat.core.errors import ErrorCode, error_response
from claude_chat.core.logging import bind_request_id, reset_request_id

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_HSTS_VALUE = "max-age=31536000; includeSubDomains"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the duration of the request and echo it back.

    Client supplied ids are reused when they look like ids; anything else is
    replaced with a fresh uuid4 hex.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        supplied = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = supplied if _REQUEST_ID_PATTERN.match(supplied) else uuid4().hex
        request.state.request_id = request_id

        context_token = bind_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            reset_request_id(context_token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One ``access`` record per request, without the query string (it carries initData)."""

    def __init__(
        self,
        app: ASGIApp,
        logger_name: str = "claude_chat.access",
        skip_paths: Iterable[str] = ("/metrics",),
    ) -> None:
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)
        self.skip_paths = frozenset(skip_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.skip_paths:
            return await call_next(request)

        started = time.perf_counter()
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            self._emit(request, status_code, elapsed=time.perf_counter() - started)

    def _emit(self, request: Request, status_code: int, *, elapsed: float) -> None:
        self.logger.log(
            logging.WARNING if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logging.INFO,
            "access",
            extra={
                "event": "access",
                "http_method": request.method,
                "http_path": request.url.path,
                "status_code": status_code,
                "duration_ms": round(elapsed * 1000, 2),
                "client_ip": getattr(request.client, "host", None),
                "user_agent": request.headers.get("user-agent"),
            },
        )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Hardening headers for a backend embedded in Telegram's iframe.

    Framing is limited with CSP ``frame-ancestors`` to the Telegram web
    origins; ``X-Frame-Options`` is not sent. HSTS is opt-in.
    """

    def __init__(
        self,
        app: ASGIApp,
        enable_hsts: bool = False,
        frame_ancestors: Iterable[str] = TELEGRAM_WEB_ORIGINS,
    ) -> None:
        super().__init__(app)
        self.headers: dict[str, str] = {
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "same-origin",
            "Content-Security-Policy": " ".join(["frame-ancestors 'self'", *frame_ancestors]),
        }
        if enable_hsts:
            self.headers["Strict-Transport-Security"] = _HSTS_VALUE

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Answer 413 when the declared or actual body is larger than ``max_request_bytes``."""

    def __init__(self, app: ASGIApp, max_request_bytes: int) -> None:
        if max_request_bytes < 1:
            raise ValueError("max_request_bytes must be a positive number of bytes.")
        super().__init__(app)
        self.max_request_bytes = max_request_bytes

    def _too_large(self, size: int) -> bool:
        return size > self.max_request_bytes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and self._too_large(int(declared)):
            return self._reject()

        # Chunked uploads have no Content-Length; measure what was received.
        if request.method in _BODY_METHODS and self._too_large(len(await request.body())):
            return self._reject()

        return await call_next(request)

    def _reject(self) -> Response:
        return error_response(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            code=ErrorCode.PAYLOAD_TOO_LARGE,
            message="Размер запроса превышает допустимый предел",
            details={"maxBytes": self.max_request_bytes},
        )


__all__ = [
    "AccessLogMiddleware",
    "REQUEST_ID_HEADER",
    "RequestIDMiddleware",
    "RequestSizeLimitMiddleware",
    "SecurityHeadersMiddleware",
]
