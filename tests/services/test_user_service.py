from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from claude_chat.core.config import Settings
from claude_chat.core.telegram import TelegramInitUser
from claude_chat.services.user import UserService


@pytest.mark.asyncio
async def test_first_login_registers_user_with_ai_settings(
    db_session: AsyncSession, app_settings: Settings
) -> None:
    identity = TelegramInitUser(
        id=777,
        first_name="Anna",
        username="anna",
        language_code="ru",
        auth_date="1700000000",
    )

    result = await UserService(db_session, app_settings).login(identity)

    assert result.created is True
    assert result.user.telegram_id == 777
    assert result.user.first_name == "Anna"
    assert result.user.auth_date == 1_700_000_000
    assert result.ai_settings.user_id == result.user.id


@pytest.mark.asyncio
async def test_repeat_login_refreshes_profile(db_session: AsyncSession, app_settings: Settings) -> None:
    service = UserService(db_session, app_settings)
    first = await service.login(TelegramInitUser(id=777, first_name="Anna", username="anna"))

    second = await service.login(TelegramInitUser(id=777, first_name="Anna", username="anna_k"))

    assert second.created is False
    assert second.user.id == first.user.id
    assert second.ai_settings.id == first.ai_settings.id
    await db_session.refresh(second.user)
    assert second.user.username == "anna_k"


@pytest.mark.asyncio
async def test_login_without_first_name_stores_empty_string(
    db_session: AsyncSession, app_settings: Settings
) -> None:
    result = await UserService(db_session, app_settings).login(TelegramInitUser(id=1))

    assert result.user.first_name == ""
