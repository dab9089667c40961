"""
Runtime configuration of the chat backend.

``Settings`` is read from the environment (and an optional ``.env``) once at
startup, frozen, and handed to ``create_app``. Secrets are ``SecretStr`` so
they never show up in reprs or logs.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import AnyHttpUrl, Field, SecretStr, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "Ты — Claude, полезный, безопасный и честный ИИ-ассистент, созданный Anthropic. "
    "Всегда вежливо отвечай на запросы на том же языке, на котором задан вопрос."
)

TELEGRAM_WEB_ORIGINS: tuple[str, ...] = ("https://web.telegram.org", "https://webapp.telegram.org")


def _env_name(info: ValidationInfo) -> str:
    return (info.field_name or "value").upper()


def split_origins(raw: str | None) -> list[str]:
    """Accept ``a, b`` or a JSON array; trailing slashes are dropped."""

    text = (raw or "").strip()
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = None
        items: list[object] = decoded if isinstance(decoded, list) else []
    else:
        items = list(text.split(","))
    cleaned = (str(item).strip().rstrip("/") for item in items)
    return [origin for origin in cleaned if origin]


class Settings(BaseSettings):
    """Environment-driven settings; field aliases are the variable names."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    project_name: str = Field(default="Telegram Claude Chat", alias="PROJECT_NAME")
    environment: Literal["local", "test", "staging", "production"] = Field(
        default="local",
        alias="APP_ENV",
    )
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(alias="DATABASE_URL")
    sql_echo: bool = Field(default=False, alias="SQL_ECHO")

    telegram_bot_token: SecretStr = Field(alias="TELEGRAM_BOT_TOKEN")
    init_data_max_age_seconds: int = Field(
        default=86400,
        alias="INIT_DATA_MAX_AGE_SECONDS",
        description="Maximum age of a signed initData payload (24 hours by default).",
    )

    ai_provider: Literal["anthropic", "openai"] = Field(default="anthropic", alias="AI_PROVIDER")
    ai_api_key: SecretStr = Field(alias="AI_API_KEY")
    ai_api_base_url: str | None = Field(default=None, alias="AI_API_BASE_URL")
    ai_default_model: str = Field(default="claude-3-7-sonnet-latest", alias="AI_DEFAULT_MODEL")
    ai_default_temperature: float = Field(default=0.7, alias="AI_DEFAULT_TEMPERATURE")
    ai_default_max_tokens: int = Field(default=1000, alias="AI_DEFAULT_MAX_TOKENS")
    ai_default_system_prompt: str = Field(
        default=DEFAULT_SYSTEM_PROMPT,
        alias="AI_DEFAULT_SYSTEM_PROMPT",
    )
    ai_request_timeout_seconds: float = Field(default=60.0, alias="AI_REQUEST_TIMEOUT_SECONDS")

    yookassa_shop_id: str | None = Field(default=None, alias="YOOKASSA_SHOP_ID")
    yookassa_secret_key: SecretStr | None = Field(default=None, alias="YOOKASSA_SECRET_KEY")
    yookassa_api_url: str = Field(default="https://api.yookassa.ru/v3", alias="YOOKASSA_API_URL")
    payment_webhook_signature_header: str = Field(
        default="Idempotence-Key",
        alias="PAYMENT_WEBHOOK_SIGNATURE_HEADER",
        description="Header carrying the HMAC-SHA1 signature of payment webhooks.",
    )

    public_base_url: str | None = Field(
        default=None,
        alias="PUBLIC_BASE_URL",
        description="Public Mini App URL used to build payment return links.",
    )
    uploads_dir: Path = Field(default=Path("public/uploads"), alias="UPLOADS_DIR")
    max_upload_files: int = Field(default=10, alias="MAX_UPLOAD_FILES")
    max_request_bytes: int = Field(default=20 * 1_048_576, alias="MAX_REQUEST_BYTES")

    production_app_origin: AnyHttpUrl | None = Field(default=None, alias="PRODUCTION_APP_ORIGIN")
    raw_backend_cors_origins: str | None = Field(
        default=None,
        alias="BACKEND_CORS_ORIGINS",
        description="Extra http://localhost origins for local development, comma separated or JSON.",
    )

    _DEV_ENVIRONMENTS: ClassVar[frozenset[str]] = frozenset({"local", "test"})

    @field_validator("database_url", "ai_default_model", mode="before")
    @classmethod
    def _require_text(cls, value: object, info: ValidationInfo) -> str:
        text = "" if value is None else str(value).strip()
        if not text:
            raise ValueError(f"{_env_name(info)} must not be empty.")
        return text

    @field_validator("telegram_bot_token", "ai_api_key")
    @classmethod
    def _require_secret(cls, secret: SecretStr, info: ValidationInfo) -> SecretStr:
        if not secret.get_secret_value().strip():
            raise ValueError(f"{_env_name(info)} must not be empty.")
        return secret

    @field_validator("ai_default_temperature")
    @classmethod
    def _temperature_in_unit_range(cls, value: float) -> float:
        if not 0 <= value <= 1:
            raise ValueError("AI_DEFAULT_TEMPERATURE must be within [0, 1].")
        return value

    @field_validator(
        "init_data_max_age_seconds",
        "ai_default_max_tokens",
        "max_upload_files",
        "max_request_bytes",
        "ai_request_timeout_seconds",
    )
    @classmethod
    def _require_positive(cls, value: float, info: ValidationInfo) -> float:
        if value <= 0:
            raise ValueError(f"{_env_name(info)} must be positive.")
        return value

    @field_validator("public_base_url", "ai_api_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: object) -> str | None:
        if value is None:
            return None
        return str(value).strip().rstrip("/") or None

    @property
    def local_cors_origins(self) -> list[str]:
        """BACKEND_CORS_ORIGINS, honored only in local and test environments."""

        if self.environment not in self._DEV_ENVIRONMENTS:
            return []
        origins = split_origins(self.raw_backend_cors_origins)
        rejected = [origin for origin in origins if not origin.startswith("http://localhost")]
        if rejected:
            raise ValueError(
                f"BACKEND_CORS_ORIGINS accepts only http://localhost origins, got {rejected}; "
                "use PRODUCTION_APP_ORIGIN for deployed domains."
            )
        return origins

    @property
    def cors_origins(self) -> list[str]:
        """Telegram WebApp origins, the production Mini App origin and local origins."""

        origins = set(TELEGRAM_WEB_ORIGINS) | set(self.local_cors_origins)
        if self.production_app_origin:
            origins.add(str(self.production_app_origin).rstrip("/"))
        return sorted(origins)

    @property
    def payments_enabled(self) -> bool:
        return bool(
            self.yookassa_shop_id
            and self.yookassa_secret_key
            and self.yookassa_secret_key.get_secret_value()
        )


@lru_cache
def get_settings() -> Settings:
    """Settings are evaluated once per process."""
    return Settings()  # type: ignore[call-arg]


__all__ = ["DEFAULT_SYSTEM_PROMPT", "Settings", "TELEGRAM_WEB_ORIGINS", "get_settings", "split_origins"]
