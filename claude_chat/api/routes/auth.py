"""Login endpoint for the Telegram Mini App."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from claude_chat.api.dependencies import get_user_service
from claude_chat.core.auth import require_telegram_user
from claude_chat.core.telegram import TelegramInitUser
from claude_chat.schemas.auth import AuthResponse, UserResponse
from claude_chat.services.user import UserService

router = APIRouter(tags=["auth"])

DEFAULT_LOGIN_SETTINGS = {"themeDark": False, "notifications": True}


@router.post(
    "/auth",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="Log in with Telegram initData",
    responses={
        400: {"description": "initData is missing or carries no user"},
        401: {"description": "Signature mismatch or expired initData"},
    },
)
async def login(
    telegram_user: Annotated[TelegramInitUser, Depends(require_telegram_user)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> AuthResponse:
    """
    Register the Telegram user on first visit or refresh the stored profile.

    ``initData`` may be sent in the JSON body, as a form field or in the query
    string.
    """

    result = await user_service.login(telegram_user)
    return AuthResponse(
        user=UserResponse.build(
            result.user,
            settings=result.user.settings or dict(DEFAULT_LOGIN_SETTINGS),
            ai_settings=result.ai_settings,
        )
    )
