"""Telegram-specific helpers (WebApp initData verification).

The functions in this module never raise on malformed input: a payload that
cannot be parsed simply fails verification (``False``) or yields no identity
(``None``). Callers translate those sentinels into HTTP errors.
"""

from __future__ import annotations

import enum
import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

WEB_APP_DATA_KEY = b"WebAppData"
DEFAULT_MAX_AGE_SECONDS = 86400


class TelegramInitUser(BaseModel):
    """Identity extracted from the ``user`` field of initData.

    Only ``id`` is validated. The optional profile fields are passed through
    as JSON decoded them; a value of an unexpected type is dropped to ``None``
    rather than coerced or rejected.
    """

    id: int = Field(strict=True)
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    photo_url: str | None = None
    language_code: str | None = None
    is_premium: bool | None = Field(default=None, strict=True)
    auth_date: str = ""
    hash: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("first_name", "last_name", "username", "photo_url", "language_code", mode="before")
    @classmethod
    def _text_or_none(cls, value: Any) -> str | None:
        return value if isinstance(value, str) else None

    @field_validator("is_premium", mode="before")
    @classmethod
    def _flag_or_none(cls, value: Any) -> bool | None:
        return value if isinstance(value, bool) else None


class AdmissionRejection(str, enum.Enum):
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of the admission state machine: exactly one field is set."""

    user: TelegramInitUser | None = None
    rejection: AdmissionRejection | None = None

    @property
    def authenticated(self) -> bool:
        return self.user is not None

    @classmethod
    def accept(cls, user: TelegramInitUser) -> "AdmissionResult":
        return cls(user=user)

    @classmethod
    def reject(cls, reason: AdmissionRejection) -> "AdmissionResult":
        return cls(rejection=reason)


def verify_init_data(init_data: str, bot_token: str) -> bool:
    """Return True when the initData signature matches the bot token."""

    if not init_data or not bot_token:
        return False

    try:
        pairs = parse_qsl(init_data, keep_blank_values=True, strict_parsing=False)
        received_hash = None
        fields: list[tuple[str, str]] = []
        for key, value in pairs:
            if key == "hash":
                received_hash = value
            else:
                fields.append((key, value))

        if not received_hash:
            return False

        data_check_string = "\n".join(f"{k}={v}" for k, v in sorted(fields))
        expected_hash = _calculate_hash(data_check_string, bot_token)
        return hmac.compare_digest(expected_hash, received_hash)
    except (ValueError, TypeError, UnicodeError):
        logger.debug("initData could not be parsed for verification")
        return False


def parse_init_data(init_data: str) -> TelegramInitUser | None:
    """Extract the Telegram user from initData without checking the signature."""

    if not init_data:
        return None

    try:
        params = dict(parse_qsl(init_data, keep_blank_values=True))
        user_payload = params.get("user")
        if not user_payload:
            return None

        user_data = json.loads(user_payload)
        if not isinstance(user_data, dict):
            return None

        return TelegramInitUser.model_validate(
            {
                **user_data,
                "auth_date": params.get("auth_date", ""),
                "hash": params.get("hash", ""),
            }
        )
    except (ValueError, TypeError, UnicodeError, ValidationError):
        # json.JSONDecodeError is a ValueError subclass
        logger.debug("initData user payload could not be decoded")
        return None


def is_init_data_expired(
    auth_date: str | None,
    *,
    now: int | None = None,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
) -> bool:
    """Return True when auth_date is older than the freshness window or unparseable."""

    candidate = str(auth_date).strip() if auth_date is not None else ""
    if not candidate.isascii() or not candidate.isdigit():
        return True
    auth_timestamp = int(candidate, 10)

    current = int(time.time()) if now is None else now
    return current - auth_timestamp > max_age_seconds


def _calculate_hash(data_check_string: str, bot_token: str) -> str:
    secret_key = hmac.new(
        key=WEB_APP_DATA_KEY,
        msg=bot_token.encode(),
        digestmod=hashlib.sha256,
    ).digest()

    return hmac.new(
        key=secret_key,
        msg=data_check_string.encode(),
        digestmod=hashlib.sha256,
    ).hexdigest()


class InitDataVerifier:
    """Stateless verifier bound to the process-wide bot token."""

    __slots__ = ("_bot_token", "_max_age_seconds")

    def __init__(self, bot_token: str, *, max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS) -> None:
        self._bot_token = bot_token
        self._max_age_seconds = max_age_seconds

    def __repr__(self) -> str:
        return f"InitDataVerifier(max_age_seconds={self._max_age_seconds})"

    @property
    def max_age_seconds(self) -> int:
        return self._max_age_seconds

    def verify(self, init_data: str) -> bool:
        return verify_init_data(init_data, self._bot_token)

    def parse(self, init_data: str) -> TelegramInitUser | None:
        return parse_init_data(init_data)

    def is_expired(self, auth_date: str | None, *, now: int | None = None) -> bool:
        return is_init_data_expired(auth_date, now=now, max_age_seconds=self._max_age_seconds)

    def admit(self, init_data: str | None, *, now: int | None = None) -> AdmissionResult:
        """Run signature, identity and freshness checks in order."""

        if not init_data:
            return AdmissionResult.reject(AdmissionRejection.MALFORMED)

        if not self.verify(init_data):
            return AdmissionResult.reject(AdmissionRejection.INVALID_SIGNATURE)

        user = self.parse(init_data)
        if user is None:
            return AdmissionResult.reject(AdmissionRejection.MALFORMED)

        if self.is_expired(user.auth_date, now=now):
            return AdmissionResult.reject(AdmissionRejection.EXPIRED)

        return AdmissionResult.accept(user)


__all__ = [
    "AdmissionRejection",
    "AdmissionResult",
    "DEFAULT_MAX_AGE_SECONDS",
    "InitDataVerifier",
    "TelegramInitUser",
    "is_init_data_expired",
    "parse_init_data",
    "verify_init_data",
]
