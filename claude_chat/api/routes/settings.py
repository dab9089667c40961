"""User preference and AI settings endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from claude_chat.api.dependencies import get_settings_service
from claude_chat.core.auth import get_current_user
from claude_chat.models.user import User
from claude_chat.schemas.settings import (
    AISettingsResponse,
    SettingsResponse,
    SettingsUpdateRequest,
    SettingsUpdateResponse,
)
from claude_chat.services.settings import SettingsService

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=SettingsResponse, summary="Read user and AI settings")
async def get_settings(
    user: Annotated[User, Depends(get_current_user)],
    settings_service: Annotated[SettingsService, Depends(get_settings_service)],
) -> SettingsResponse:
    snapshot = await settings_service.get(user)
    return SettingsResponse(
        user_settings=snapshot.user_settings,
        ai_settings=(
            AISettingsResponse.model_validate(snapshot.ai_settings) if snapshot.ai_settings else None
        ),
    )


@router.put("", response_model=SettingsUpdateResponse, summary="Update user and AI settings")
async def update_settings(
    payload: SettingsUpdateRequest,
    user: Annotated[User, Depends(get_current_user)],
    settings_service: Annotated[SettingsService, Depends(get_settings_service)],
) -> SettingsUpdateResponse:
    result = await settings_service.update(
        user,
        user_settings=payload.user_settings,
        ai_settings=payload.ai_settings.model_dump(exclude_none=True) if payload.ai_settings else None,
    )
    return SettingsUpdateResponse(
        user_settings_updated=result.user_settings_updated,
        ai_settings_updated=result.ai_settings_updated,
        success=result.success,
    )
