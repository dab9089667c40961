"""User preferences and per-user AI settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from claude_chat.core.config import Settings
from claude_chat.models.ai_settings import AISettings
from claude_chat.models.user import User
from claude_chat.repositories.ai_settings import AISettingsRepository
from claude_chat.repositories.user import UserRepository

logger = logging.getLogger("claude_chat.services.settings")

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000


def default_user_settings(app_settings: Settings) -> dict[str, Any]:
    return {
        "themeDark": False,
        "notifications": True,
        "defaultSystemPrompt": app_settings.ai_default_system_prompt,
    }


def normalize_user_settings(raw: dict[str, Any], app_settings: Settings) -> dict[str, Any]:
    """Keep known keys with the right types; anything else falls back to defaults."""

    return {
        "themeDark": _bool_or(raw.get("themeDark"), False),
        "notifications": _bool_or(raw.get("notifications"), True),
        "defaultSystemPrompt": _str_or(raw.get("defaultSystemPrompt"), app_settings.ai_default_system_prompt),
        "temperature": _number_or(raw.get("temperature"), DEFAULT_TEMPERATURE),
        "maxTokens": _number_or(raw.get("maxTokens"), DEFAULT_MAX_TOKENS),
    }


def _bool_or(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _str_or(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


def _number_or(value: Any, default: float) -> float:
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


async def get_or_create_ai_settings(
    session: AsyncSession,
    user_id: int,
    app_settings: Settings,
) -> AISettings:
    repo = AISettingsRepository(session)
    ai_settings = await repo.get_for_user(user_id)
    if ai_settings is None:
        ai_settings = await repo.create_default(
            user_id,
            temperature=app_settings.ai_default_temperature,
            max_tokens=app_settings.ai_default_max_tokens,
            model=app_settings.ai_default_model,
            system_prompt=app_settings.ai_default_system_prompt,
        )
        logger.info("Default AI settings created", extra={"user_id": user_id})
    return ai_settings


@dataclass(frozen=True)
class SettingsSnapshot:
    user_settings: dict[str, Any]
    ai_settings: AISettings | None


@dataclass(frozen=True)
class SettingsUpdateResult:
    user_settings_updated: bool
    ai_settings_updated: bool

    @property
    def success(self) -> bool:
        return self.user_settings_updated or self.ai_settings_updated


class SettingsService:
    def __init__(self, session: AsyncSession, app_settings: Settings) -> None:
        self.session = session
        self.app_settings = app_settings
        self.users = UserRepository(session)
        self.ai_settings = AISettingsRepository(session)

    def user_settings_for(self, user: User) -> dict[str, Any]:
        if isinstance(user.settings, dict) and user.settings:
            return dict(user.settings)
        return default_user_settings(self.app_settings)

    async def get(self, user: User) -> SettingsSnapshot:
        return SettingsSnapshot(
            user_settings=self.user_settings_for(user),
            ai_settings=await self.ai_settings.get_for_user(user.id),
        )

    async def update(
        self,
        user: User,
        *,
        user_settings: dict[str, Any] | None = None,
        ai_settings: dict[str, Any] | None = None,
    ) -> SettingsUpdateResult:
        user_settings_updated = False
        if user_settings is not None:
            normalized = normalize_user_settings(user_settings, self.app_settings)
            user_settings_updated = await self.users.update_settings(user.id, normalized)

        ai_settings_updated = False
        if ai_settings:
            ai_settings_updated = await self.ai_settings.update(user.id, **ai_settings)

        await self.session.commit()
        logger.info(
            "Settings updated",
            extra={
                "user_id": user.id,
                "user_settings_updated": user_settings_updated,
                "ai_settings_updated": ai_settings_updated,
            },
        )
        return SettingsUpdateResult(user_settings_updated, ai_settings_updated)


__all__ = [
    "SettingsService",
    "SettingsSnapshot",
    "SettingsUpdateResult",
    "default_user_settings",
    "get_or_create_ai_settings",
    "normalize_user_settings",
]
