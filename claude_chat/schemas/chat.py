"""
Schemas for chat and message endpoints exposed to the Mini App.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from claude_chat.schemas.common import InitDataBody


class ChatResponse(BaseModel):
    id: int
    user_id: int
    title: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChatListResponse(BaseModel):
    chats: list[ChatResponse]
    success: bool = True


class ChatCreateRequest(InitDataBody):
    """Request payload for POST /api/chat."""

    title: str | None = Field(default=None, max_length=255)


class ChatCreateResponse(BaseModel):
    chat: ChatResponse
    success: bool = True


class ChatUpdateRequest(InitDataBody):
    """Request payload for PUT /api/chat."""

    chat_id: int = Field(alias="chatId")
    title: str = Field(min_length=1, max_length=255)


class AttachmentResponse(BaseModel):
    id: int
    message_id: int
    file_name: str
    file_path: str
    file_type: str
    file_size: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MessageResponse(BaseModel):
    """Single message within the chat history."""

    id: int
    chat_id: int
    user_id: int
    content: str
    is_user: bool
    created_at: datetime
    attachments: list[AttachmentResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class MessageListResponse(BaseModel):
    messages: list[MessageResponse]
    success: bool = True


class SendMessageResponse(BaseModel):
    """Response body for POST /api/chat/{id}/messages."""

    messages: list[MessageResponse]
    user_message_id: int = Field(alias="userMessageId")
    ai_message_id: int = Field(alias="aiMessageId")
    success: bool = True

    model_config = ConfigDict(populate_by_name=True)
