"""Chat list management endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from claude_chat.api.dependencies import get_chat_service
from claude_chat.core.auth import get_current_user
from claude_chat.models.user import User
from claude_chat.schemas.chat import (
    ChatCreateRequest,
    ChatCreateResponse,
    ChatListResponse,
    ChatResponse,
    ChatUpdateRequest,
)
from claude_chat.schemas.common import SuccessResponse
from claude_chat.services.chat import ChatService

router = APIRouter(prefix="/chat", tags=["chats"])

CurrentUser = Annotated[User, Depends(get_current_user)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]


@router.get("", response_model=ChatListResponse, summary="List chats, most recent first")
async def list_chats(user: CurrentUser, chat_service: ChatServiceDep) -> ChatListResponse:
    chats = await chat_service.list_chats(user)
    return ChatListResponse(chats=[ChatResponse.model_validate(chat) for chat in chats])


@router.post(
    "",
    response_model=ChatCreateResponse,
    status_code=status.HTTP_200_OK,
    summary="Create a chat",
)
async def create_chat(
    payload: ChatCreateRequest,
    user: CurrentUser,
    chat_service: ChatServiceDep,
) -> ChatCreateResponse:
    chat = await chat_service.create_chat(user, payload.title)
    return ChatCreateResponse(chat=ChatResponse.model_validate(chat))


@router.put("", response_model=SuccessResponse, summary="Rename a chat")
async def rename_chat(
    payload: ChatUpdateRequest,
    user: CurrentUser,
    chat_service: ChatServiceDep,
) -> SuccessResponse:
    success = await chat_service.rename_chat(user, payload.chat_id, payload.title)
    return SuccessResponse(success=success)


@router.delete("", response_model=SuccessResponse, summary="Delete a chat with its messages")
async def delete_chat(
    chat_id: Annotated[int, Query(alias="chatId", gt=0)],
    user: CurrentUser,
    chat_service: ChatServiceDep,
) -> SuccessResponse:
    success = await chat_service.delete_chat(user, chat_id)
    return SuccessResponse(success=success)
