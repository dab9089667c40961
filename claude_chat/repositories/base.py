"""Shared plumbing for the repositories."""

from __future__ import annotations

from typing import Generic, TypeVar

from sqlalchemy import Executable
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    """Repositories flush but never commit; the request scope owns the transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, instance: ModelT) -> ModelT:
        """Stage ``instance`` and flush so database defaults and ids are populated."""
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def _changed(self, statement: Executable) -> bool:
        """Run an UPDATE/DELETE and report whether it matched any row."""
        result = await self.session.execute(statement)
        return bool(getattr(result, "rowcount", 0))


__all__ = ["BaseRepository"]
