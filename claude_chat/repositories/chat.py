"""Chat and message persistence."""

from __future__ import annotations

from sqlalchemy import delete, select, update

from claude_chat.models.base import utcnow
from claude_chat.models.chat import DEFAULT_CHAT_TITLE, Chat, Message, MessageFile
from claude_chat.repositories.base import BaseRepository


class ChatRepository(BaseRepository[Chat]):
    """Chats are always addressed together with their owner."""

    async def list_for_user(self, user_id: int) -> list[Chat]:
        stmt = (
            select(Chat)
            .where(Chat.user_id == user_id)
            .order_by(Chat.updated_at.desc(), Chat.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def get_for_user(self, chat_id: int, user_id: int) -> Chat | None:
        stmt = select(Chat).where(Chat.id == chat_id, Chat.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, *, user_id: int, title: str | None = None) -> Chat:
        chat = Chat(user_id=user_id, title=title or DEFAULT_CHAT_TITLE)
        await self.add(chat)
        return chat

    async def update_title(self, chat_id: int, user_id: int, title: str) -> bool:
        stmt = (
            update(Chat)
            .where(Chat.id == chat_id, Chat.user_id == user_id)
            .values(title=title, updated_at=utcnow())
        )
        return await self._changed(stmt)

    async def delete(self, chat_id: int, user_id: int) -> bool:
        chat = await self.get_for_user(chat_id, user_id)
        if chat is None:
            return False
        # SQLite only honours ON DELETE CASCADE with the foreign_keys pragma on
        message_ids = select(Message.id).where(Message.chat_id == chat_id)
        await self.session.execute(delete(MessageFile).where(MessageFile.message_id.in_(message_ids)))
        await self.session.execute(delete(Message).where(Message.chat_id == chat_id))
        await self.session.delete(chat)
        await self.session.flush()
        return True


class MessageRepository(BaseRepository[Message]):
    """Messages and their file attachments."""

    async def list_for_chat(self, chat_id: int, user_id: int) -> list[Message]:
        stmt = (
            select(Message)
            .where(Message.chat_id == chat_id, Message.user_id == user_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def create(
        self,
        *,
        chat_id: int,
        user_id: int,
        content: str,
        is_user: bool,
    ) -> Message:
        message = Message(
            chat_id=chat_id,
            user_id=user_id,
            content=content,
            is_user=is_user,
            created_at=utcnow(),
            attachments=[],
        )
        await self.add(message)
        await self.session.execute(
            update(Chat).where(Chat.id == chat_id).values(updated_at=utcnow())
        )
        return message

    async def add_attachment(
        self,
        message: Message,
        *,
        file_name: str,
        file_path: str,
        file_type: str,
        file_size: int,
    ) -> MessageFile:
        attachment = MessageFile(
            file_name=file_name,
            file_path=file_path,
            file_type=file_type,
            file_size=file_size,
        )
        message.attachments.append(attachment)
        await self.session.flush()
        return attachment


__all__ = ["ChatRepository", "MessageRepository"]
