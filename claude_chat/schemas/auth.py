"""
Pydantic schemas for the login endpoint.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from claude_chat.schemas.settings import AISettingsResponse

if TYPE_CHECKING:
    from claude_chat.models.ai_settings import AISettings
    from claude_chat.models.user import User


class UserResponse(BaseModel):
    """Registered user as returned to the Mini App."""

    id: int
    telegram_id: int
    username: str | None
    first_name: str
    last_name: str | None
    photo_url: str | None
    is_premium: bool
    settings: dict[str, Any]
    ai_settings: AISettingsResponse | None = Field(default=None, alias="aiSettings")
    last_active: datetime | None = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def build(
        cls,
        user: "User",
        *,
        settings: dict[str, Any],
        ai_settings: "AISettings | None",
    ) -> "UserResponse":
        return cls(
            id=user.id,
            telegram_id=user.telegram_id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            photo_url=user.photo_url,
            is_premium=user.is_premium,
            settings=settings,
            ai_settings=AISettingsResponse.model_validate(ai_settings) if ai_settings else None,
            last_active=user.last_active,
        )


class AuthResponse(BaseModel):
    """Response schema for POST /api/auth."""

    user: UserResponse
    success: bool = True

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "user": {
                    "id": 1,
                    "telegram_id": 123456789,
                    "username": "johndoe",
                    "first_name": "John",
                    "last_name": None,
                    "photo_url": None,
                    "is_premium": False,
                    "settings": {"themeDark": False, "notifications": True},
                    "aiSettings": {
                        "id": 1,
                        "user_id": 1,
                        "temperature": 0.7,
                        "max_tokens": 1000,
                        "model": "claude-3-7-sonnet-latest",
                        "system_prompt": "...",
                    },
                },
                "success": True,
            }
        }
    )
