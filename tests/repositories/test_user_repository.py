from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from claude_chat.repositories.user import UserRepository


@pytest.mark.asyncio
async def test_user_repository_create_and_fetch(db_session: AsyncSession) -> None:
    repo = UserRepository(db_session)

    created = await repo.create(telegram_id=123456, first_name="Alice", auth_date=1_700_000_000)
    fetched = await repo.get_by_telegram_id(123456)

    assert fetched is not None
    assert fetched.id == created.id
    assert fetched.first_name == "Alice"
    assert fetched.auth_date == 1_700_000_000
    assert fetched.is_premium is False
    assert fetched.last_active is not None
    assert await repo.get(created.id) is fetched


@pytest.mark.asyncio
async def test_user_repository_returns_none_for_unknown_telegram_id(db_session: AsyncSession) -> None:
    assert await UserRepository(db_session).get_by_telegram_id(999) is None


@pytest.mark.asyncio
async def test_user_repository_update_skips_none_values(db_session: AsyncSession) -> None:
    repo = UserRepository(db_session)
    user = await repo.create(telegram_id=1, first_name="Old", username="old_name", last_name="Keep")

    updated = await repo.update(user.id, first_name="New", username=None, last_name=None)

    assert updated is True
    await db_session.refresh(user)
    assert user.first_name == "New"
    assert user.username == "old_name"
    assert user.last_name == "Keep"


@pytest.mark.asyncio
async def test_user_repository_update_reports_missing_rows(db_session: AsyncSession) -> None:
    assert await UserRepository(db_session).update(404, first_name="Ghost") is False


@pytest.mark.asyncio
async def test_user_repository_update_rejects_unknown_fields(db_session: AsyncSession) -> None:
    repo = UserRepository(db_session)
    user = await repo.create(telegram_id=1, first_name="A")

    with pytest.raises(ValueError):
        await repo.update(user.id, telegram_id=2)


@pytest.mark.asyncio
async def test_user_repository_stores_settings(db_session: AsyncSession) -> None:
    repo = UserRepository(db_session)
    user = await repo.create(telegram_id=1, first_name="A")

    assert await repo.update_settings(user.id, {"themeDark": True}) is True

    await db_session.refresh(user)
    assert user.settings == {"themeDark": True}
