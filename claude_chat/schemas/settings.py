"""
Schemas for user preferences and AI completion settings.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from claude_chat.schemas.common import InitDataBody


class AISettingsResponse(BaseModel):
    id: int
    user_id: int
    temperature: float
    max_tokens: int
    model: str
    system_prompt: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AISettingsUpdate(BaseModel):
    """Partial update; omitted fields keep their stored values."""

    temperature: float | None = Field(default=None, ge=0.0, le=1.0)
    max_tokens: int | None = Field(default=None, gt=0)
    model: str | None = Field(default=None, min_length=1, max_length=100)
    system_prompt: str | None = None


class SettingsResponse(BaseModel):
    """Response body for GET /api/settings."""

    user_settings: dict[str, Any] = Field(alias="userSettings")
    ai_settings: AISettingsResponse | None = Field(alias="aiSettings")
    success: bool = True

    model_config = ConfigDict(populate_by_name=True)


class SettingsUpdateRequest(InitDataBody):
    """Request payload for PUT /api/settings.

    ``userSettings`` is kept as a free-form object: unknown or mistyped values
    are replaced with defaults rather than rejected.
    """

    user_settings: dict[str, Any] | None = Field(default=None, alias="userSettings")
    ai_settings: AISettingsUpdate | None = Field(default=None, alias="aiSettings")


class SettingsUpdateResponse(BaseModel):
    user_settings_updated: bool = Field(alias="userSettingsUpdated")
    ai_settings_updated: bool = Field(alias="aiSettingsUpdated")
    success: bool

    model_config = ConfigDict(populate_by_name=True)
