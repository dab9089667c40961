"""Dialog service: one user turn in a chat, answered by the completion model."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from claude_chat.core.config import Settings
from claude_chat.core.errors import ApplicationError, ErrorCode, ExternalServiceError
from claude_chat.core.metrics import AppMetrics
from claude_chat.models.chat import Message
from claude_chat.models.user import User
from claude_chat.repositories.chat import ChatRepository, MessageRepository
from claude_chat.repositories.subscription import SubscriptionRepository
from claude_chat.repositories.usage_stats import UsageStatsRepository
from claude_chat.services.chat import chat_not_found
from claude_chat.services.llm import (
    AICompletionClient,
    ChatTurn,
    CompletionError,
    CompletionSettings,
    estimate_tokens,
)
from claude_chat.services.settings import get_or_create_ai_settings
from claude_chat.services.storage import AttachmentStorage, IncomingFile

logger = logging.getLogger("claude_chat.services.dialog")

APOLOGY_MESSAGE = "Извините, я сейчас не могу ответить. Пожалуйста, попробуйте позже."


@dataclass(frozen=True)
class DialogReply:
    messages: list[Message]
    user_message_id: int
    ai_message_id: int


def build_history(messages: Sequence[Message]) -> list[ChatTurn]:
    """
    Convert stored messages into provider turns, oldest first.

    A message with no text but with attachments is represented by the list of
    its file names; messages that would still be empty are skipped because
    providers reject empty turns.
    """

    turns: list[ChatTurn] = []
    for message in messages:
        content = message.content
        if not content.strip() and message.attachments:
            names = ", ".join(attachment.file_name for attachment in message.attachments)
            content = f"[Вложения: {names}]"
        if not content.strip():
            continue
        turns.append({"role": "user" if message.is_user else "assistant", "content": content})
    return turns


class DialogService:
    """High-level service for exchanging messages with the completion model."""

    def __init__(
        self,
        session: AsyncSession,
        completion_client: AICompletionClient,
        storage: AttachmentStorage,
        app_settings: Settings,
        metrics: AppMetrics | None = None,
    ) -> None:
        self.session = session
        self.completion_client = completion_client
        self.storage = storage
        self.app_settings = app_settings
        self.metrics = metrics
        self.chats = ChatRepository(session)
        self.messages = MessageRepository(session)
        self.subscriptions = SubscriptionRepository(session)
        self.usage = UsageStatsRepository(session)

    async def send_message(
        self,
        user: User,
        chat_id: int,
        content: str | None,
        files: Sequence[IncomingFile] = (),
    ) -> DialogReply:
        """
        Persist the user's message, ask the model and persist its reply.

        When the model call fails an apology is stored as the assistant
        message, the transaction is committed and ``LLM_SERVICE_ERROR`` is
        raised with both message ids in the error details.
        """

        if await self.chats.get_for_user(chat_id, user.id) is None:
            raise chat_not_found(chat_id)

        text = content or ""
        self._validate_input(text, files)
        if files and await self.subscriptions.get_active_for_user(user.id) is None:
            raise ApplicationError(
                ErrorCode.SUBSCRIPTION_REQUIRED,
                "Для отправки файлов требуется активная подписка",
                status_code=status.HTTP_403_FORBIDDEN,
            )

        user_message = await self.messages.create(
            chat_id=chat_id,
            user_id=user.id,
            content=text,
            is_user=True,
        )
        for upload in files:
            stored = await self.storage.save(user.id, chat_id, upload)
            await self.messages.add_attachment(
                user_message,
                file_name=stored.file_name,
                file_path=stored.file_path,
                file_type=stored.file_type,
                file_size=stored.file_size,
            )

        ai_settings = await get_or_create_ai_settings(self.session, user.id, self.app_settings)
        history = build_history(await self.messages.list_for_chat(chat_id, user.id))
        user_tokens = estimate_tokens(text)

        try:
            completion = await self.completion_client.complete(
                history,
                CompletionSettings.from_ai_settings(ai_settings),
            )
        except CompletionError as error:
            error_message_id = await self._record_completion_failure(
                user, chat_id, user_tokens, len(files), error
            )
            raise ExternalServiceError(
                ErrorCode.LLM_SERVICE_ERROR,
                "Ошибка при получении ответа от AI API",
                details={"userMessageId": user_message.id, "errorMessageId": error_message_id},
            ) from error

        ai_message = await self.messages.create(
            chat_id=chat_id,
            user_id=user.id,
            content=completion.text,
            is_user=False,
        )
        await self.usage.record(
            user.id,
            messages=2,
            tokens=user_tokens + completion.total_tokens,
            files=len(files),
        )
        await self.session.commit()

        if self.metrics is not None:
            self.metrics.completion_tokens.labels(self.completion_client.provider.value).inc(
                completion.total_tokens
            )
        logger.info(
            "Message answered",
            extra={
                "user_id": user.id,
                "chat_id": chat_id,
                "files": len(files),
                "total_tokens": completion.total_tokens,
            },
        )

        return DialogReply(
            messages=await self.messages.list_for_chat(chat_id, user.id),
            user_message_id=user_message.id,
            ai_message_id=ai_message.id,
        )

    def _validate_input(self, text: str, files: Sequence[IncomingFile]) -> None:
        if not text.strip() and not files:
            raise ApplicationError(
                ErrorCode.INVALID_FIELD_VALUE,
                "Сообщение не может быть пустым",
            )
        if len(files) > self.app_settings.max_upload_files:
            raise ApplicationError(
                ErrorCode.INVALID_FIELD_VALUE,
                "Слишком много файлов в одном сообщении",
                details={"maxFiles": self.app_settings.max_upload_files},
            )

    async def _record_completion_failure(
        self,
        user: User,
        chat_id: int,
        user_tokens: int,
        files_count: int,
        error: CompletionError,
    ) -> int:
        error_message = await self.messages.create(
            chat_id=chat_id,
            user_id=user.id,
            content=APOLOGY_MESSAGE,
            is_user=False,
        )
        await self.usage.record(user.id, messages=2, tokens=user_tokens, files=files_count)
        await self.session.commit()

        if self.metrics is not None:
            self.metrics.completion_failures.labels(self.completion_client.provider.value).inc()
        logger.error(
            "Completion failed",
            extra={
                "user_id": user.id,
                "chat_id": chat_id,
                "error": str(error),
                "status_code": error.status_code,
            },
        )
        return error_message.id


__all__ = ["APOLOGY_MESSAGE", "DialogReply", "DialogService", "build_history"]
