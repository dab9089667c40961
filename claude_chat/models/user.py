"""User ORM model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Integer, String, false, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from claude_chat.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from claude_chat.models.ai_settings import AISettings
    from claude_chat.models.chat import Chat


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    telegram_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True, index=True)

    username: Mapped[str | None] = mapped_column(String(255))
    first_name: Mapped[str] = mapped_column(String(255), nullable=False, server_default=text("''"))
    last_name: Mapped[str | None] = mapped_column(String(255))
    photo_url: Mapped[str | None] = mapped_column(String(1024))
    language_code: Mapped[str | None] = mapped_column(String(16))

    auth_date: Mapped[int | None] = mapped_column(BigInteger)
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    settings: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    last_active: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    chats: Mapped[list["Chat"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    ai_settings: Mapped["AISettings"] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
    )


__all__ = ["User"]
