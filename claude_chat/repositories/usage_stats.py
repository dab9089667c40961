"""Usage counters repository."""

from __future__ import annotations

from sqlalchemy import select

from claude_chat.models.base import utcnow
from claude_chat.models.usage_stats import UsageStats
from claude_chat.repositories.base import BaseRepository


class UsageStatsRepository(BaseRepository[UsageStats]):
    async def get_for_user(self, user_id: int) -> UsageStats | None:
        stmt = select(UsageStats).where(UsageStats.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def record(self, user_id: int, *, messages: int, tokens: int, files: int) -> UsageStats:
        """Add counters to the user's row, creating it on first use. Each call is one session."""

        now = utcnow()
        stats = await self.get_for_user(user_id)
        if stats is None:
            stats = UsageStats(
                user_id=user_id,
                total_messages=messages,
                total_tokens=tokens,
                total_files=files,
                total_sessions=1,
                last_session_date=now,
            )
            await self.add(stats)
            return stats

        stats.total_messages += messages
        stats.total_tokens += tokens
        stats.total_files += files
        stats.total_sessions += 1
        stats.last_session_date = now
        await self.session.flush()
        return stats


__all__ = ["UsageStatsRepository"]
