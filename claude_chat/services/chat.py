"""Chat management for a single user."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from claude_chat.core.errors import ApplicationError, ErrorCode, NotFoundError
from claude_chat.models.chat import Chat, Message
from claude_chat.models.user import User
from claude_chat.repositories.chat import ChatRepository, MessageRepository

logger = logging.getLogger("claude_chat.services.chat")

CHAT_NOT_FOUND_MESSAGE = "Чат не найден"


def chat_not_found(chat_id: int) -> NotFoundError:
    return NotFoundError(ErrorCode.CHAT_NOT_FOUND, CHAT_NOT_FOUND_MESSAGE, details={"chatId": chat_id})


class ChatService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.chats = ChatRepository(session)
        self.messages = MessageRepository(session)

    async def list_chats(self, user: User) -> list[Chat]:
        return await self.chats.list_for_user(user.id)

    async def get_chat(self, user: User, chat_id: int) -> Chat:
        chat = await self.chats.get_for_user(chat_id, user.id)
        if chat is None:
            raise chat_not_found(chat_id)
        return chat

    async def create_chat(self, user: User, title: str | None = None) -> Chat:
        chat = await self.chats.create(user_id=user.id, title=(title or "").strip() or None)
        await self.session.commit()
        logger.info("Chat created", extra={"user_id": user.id, "chat_id": chat.id})
        return chat

    async def rename_chat(self, user: User, chat_id: int, title: str) -> bool:
        title = title.strip()
        if not title:
            raise ApplicationError(ErrorCode.INVALID_FIELD_VALUE, "Название чата не может быть пустым")
        if not await self.chats.update_title(chat_id, user.id, title):
            raise chat_not_found(chat_id)
        await self.session.commit()
        return True

    async def delete_chat(self, user: User, chat_id: int) -> bool:
        if not await self.chats.delete(chat_id, user.id):
            raise chat_not_found(chat_id)
        await self.session.commit()
        logger.info("Chat deleted", extra={"user_id": user.id, "chat_id": chat_id})
        return True

    async def list_messages(self, user: User, chat_id: int) -> list[Message]:
        await self.get_chat(user, chat_id)
        return await self.messages.list_for_chat(chat_id, user.id)


__all__ = ["CHAT_NOT_FOUND_MESSAGE", "ChatService", "chat_not_found"]
