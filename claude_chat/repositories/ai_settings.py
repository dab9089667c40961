"""Repository for per-user completion parameters."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select, update

from claude_chat.models.ai_settings import AISettings
from claude_chat.models.base import utcnow
from claude_chat.repositories.base import BaseRepository

UPDATABLE_FIELDS = frozenset({"temperature", "max_tokens", "model", "system_prompt"})


class AISettingsRepository(BaseRepository[AISettings]):
    async def get_for_user(self, user_id: int) -> AISettings | None:
        stmt = select(AISettings).where(AISettings.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_default(
        self,
        user_id: int,
        *,
        temperature: float,
        max_tokens: int,
        model: str,
        system_prompt: str,
    ) -> AISettings:
        settings = AISettings(
            user_id=user_id,
            temperature=temperature,
            max_tokens=max_tokens,
            model=model,
            system_prompt=system_prompt,
        )
        await self.add(settings)
        return settings

    async def update(self, user_id: int, **fields: Any) -> bool:
        """Apply a partial update; fields set to None are left untouched."""

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported AI settings fields: {', '.join(sorted(unknown))}")

        values = {key: value for key, value in fields.items() if value is not None}
        if not values:
            return False
        values["updated_at"] = utcnow()

        stmt = update(AISettings).where(AISettings.user_id == user_id).values(**values)
        return await self._changed(stmt)


__all__ = ["AISettingsRepository"]
