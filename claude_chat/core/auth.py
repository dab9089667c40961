"""
Admission gate for Telegram Mini App requests.

Every privileged endpoint carries the raw ``initData`` string. The gate pulls
it out of whichever transport the client used (query string, JSON body or a
form body), runs it through the verifier held on ``app.state`` and either
yields the authenticated Telegram identity or raises an ``ApplicationError``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from claude_chat.core.db import get_session
from claude_chat.core.errors import ApplicationError, ErrorCode, NotFoundError
from claude_chat.core.telegram import AdmissionRejection, InitDataVerifier, TelegramInitUser
from claude_chat.models.user import User
from claude_chat.repositories.user import UserRepository

logger = logging.getLogger(__name__)

INIT_DATA_FIELD = "initData"

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

_REJECTION_ERRORS: dict[AdmissionRejection, tuple[int, ErrorCode, str]] = {
    AdmissionRejection.MALFORMED: (
        status.HTTP_400_BAD_REQUEST,
        ErrorCode.INVALID_INIT_DATA,
        "Не удалось получить данные пользователя из initData",
    ),
    AdmissionRejection.INVALID_SIGNATURE: (
        status.HTTP_401_UNAUTHORIZED,
        ErrorCode.AUTH_FAILED,
        "Невалидные данные инициализации Telegram",
    ),
    AdmissionRejection.EXPIRED: (
        status.HTTP_401_UNAUTHORIZED,
        ErrorCode.INIT_DATA_EXPIRED,
        "Истекший срок авторизации, пожалуйста, авторизуйтесь заново",
    ),
}


def get_init_data_verifier(request: Request) -> InitDataVerifier:
    return request.app.state.init_data_verifier


async def extract_init_data(request: Request) -> str | None:
    """Return the ``initData`` string from the query, a JSON body or a form body."""

    value = request.query_params.get(INIT_DATA_FIELD)
    if value:
        return value

    if request.method in {"GET", "HEAD", "OPTIONS"}:
        return None

    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith("application/json"):
        try:
            payload: Any = await request.json()
        except (ValueError, UnicodeDecodeError):
            return None
        if isinstance(payload, dict):
            return _as_text(payload.get(INIT_DATA_FIELD))
        return None

    if content_type.startswith(_FORM_CONTENT_TYPES):
        try:
            form = await request.form()
        except (MultiPartException, StarletteHTTPException):
            return None
        return _as_text(form.get(INIT_DATA_FIELD))

    return None


def _as_text(value: object) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


async def require_telegram_user(
    request: Request,
    init_data: str | None = Depends(extract_init_data),  # noqa: B008
    verifier: InitDataVerifier = Depends(get_init_data_verifier),  # noqa: B008
) -> TelegramInitUser:
    """FastAPI dependency running the admission state machine for the current request."""

    result = verifier.admit(init_data)
    if result.user is not None:
        return result.user

    rejection = result.rejection or AdmissionRejection.MALFORMED
    status_code, code, message = _REJECTION_ERRORS[rejection]
    if not init_data:
        message = "Отсутствуют данные инициализации Telegram"

    app_metrics = getattr(request.app.state, "metrics", None)
    if app_metrics is not None:
        app_metrics.auth_rejections.labels(rejection.value).inc()
    logger.warning(
        "initData admission rejected",
        extra={
            "event": "auth.rejected",
            "reason": rejection.value,
            "http_path": request.url.path,
        },
    )
    raise ApplicationError(code, message, status_code=status_code)


async def get_current_user(
    telegram_user: TelegramInitUser = Depends(require_telegram_user),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> User:
    """Resolve the registered user behind an admitted Telegram identity."""

    user = await UserRepository(session).get_by_telegram_id(telegram_user.id)
    if user is None:
        raise NotFoundError(ErrorCode.USER_NOT_FOUND, "Пользователь не найден")
    return user


__all__ = [
    "INIT_DATA_FIELD",
    "extract_init_data",
    "get_current_user",
    "get_init_data_verifier",
    "require_telegram_user",
]
