"""User repository keyed by the Telegram identity."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select, update

from claude_chat.models.base import utcnow
from claude_chat.models.user import User
from claude_chat.repositories.base import BaseRepository

UPDATABLE_FIELDS = frozenset(
    {"username", "first_name", "last_name", "photo_url", "language_code", "auth_date", "is_premium"}
)


class UserRepository(BaseRepository[User]):
    """Encapsulates persistence logic for User entities."""

    async def create(
        self,
        *,
        telegram_id: int,
        first_name: str,
        last_name: str | None = None,
        username: str | None = None,
        photo_url: str | None = None,
        language_code: str | None = None,
        auth_date: int | None = None,
        is_premium: bool = False,
    ) -> User:
        user = User(
            telegram_id=telegram_id,
            first_name=first_name,
            last_name=last_name,
            username=username,
            photo_url=photo_url,
            language_code=language_code,
            auth_date=auth_date,
            is_premium=is_premium,
            last_active=utcnow(),
        )
        await self.add(user)
        return user

    async def get(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def get_by_telegram_id(self, telegram_id: int) -> User | None:
        stmt = select(User).where(User.telegram_id == telegram_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update(self, user_id: int, **fields: Any) -> bool:
        """Overwrite provided non-None profile fields and touch last_active."""

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported user fields: {', '.join(sorted(unknown))}")

        values: dict[str, Any] = {key: value for key, value in fields.items() if value is not None}
        values["last_active"] = utcnow()
        values["updated_at"] = utcnow()

        stmt = update(User).where(User.id == user_id).values(**values)
        return await self._changed(stmt)

    async def update_settings(self, user_id: int, settings: dict[str, Any]) -> bool:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(settings=settings, updated_at=utcnow())
        )
        return await self._changed(stmt)


__all__ = ["UserRepository"]
