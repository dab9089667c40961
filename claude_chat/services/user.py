"""Login and registration of Telegram users."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from claude_chat.core.config import Settings
from claude_chat.core.telegram import TelegramInitUser
from claude_chat.models.ai_settings import AISettings
from claude_chat.models.user import User
from claude_chat.repositories.user import UserRepository
from claude_chat.services.settings import get_or_create_ai_settings

logger = logging.getLogger("claude_chat.services.user")


@dataclass(frozen=True)
class LoginResult:
    user: User
    ai_settings: AISettings
    created: bool


class UserService:
    """Turns an admitted Telegram identity into a durable user record."""

    def __init__(self, session: AsyncSession, app_settings: Settings) -> None:
        self.session = session
        self.app_settings = app_settings
        self.users = UserRepository(session)

    async def login(self, telegram_user: TelegramInitUser) -> LoginResult:
        """Create the user on first login, otherwise refresh the stored profile."""

        auth_date = int(telegram_user.auth_date) if telegram_user.auth_date.isdigit() else None
        user = await self.users.get_by_telegram_id(telegram_user.id)
        created = user is None

        if user is None:
            user = await self.users.create(
                telegram_id=telegram_user.id,
                first_name=telegram_user.first_name or "",
                last_name=telegram_user.last_name,
                username=telegram_user.username,
                photo_url=telegram_user.photo_url,
                language_code=telegram_user.language_code,
                auth_date=auth_date,
            )
        else:
            await self.users.update(
                user.id,
                username=telegram_user.username,
                first_name=telegram_user.first_name,
                last_name=telegram_user.last_name,
                photo_url=telegram_user.photo_url,
                language_code=telegram_user.language_code,
                auth_date=auth_date,
            )

        ai_settings = await get_or_create_ai_settings(self.session, user.id, self.app_settings)
        await self.session.commit()

        logger.info(
            "User logged in",
            extra={"user_id": user.id, "telegram_id": user.telegram_id, "created": created},
        )
        return LoginResult(user=user, ai_settings=ai_settings, created=created)


__all__ = ["LoginResult", "UserService"]
