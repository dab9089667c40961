"""Chat history and message sending."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile

from claude_chat.api.dependencies import get_chat_service, get_dialog_service
from claude_chat.core.auth import get_current_user
from claude_chat.models.user import User
from claude_chat.schemas.chat import MessageListResponse, MessageResponse, SendMessageResponse
from claude_chat.services.chat import ChatService
from claude_chat.services.dialog import DialogService
from claude_chat.services.storage import IncomingFile

router = APIRouter(prefix="/chat/{chat_id}/messages", tags=["messages"])

ChatIdPath = Annotated[int, Path(gt=0)]


@router.get("", response_model=MessageListResponse, summary="Chat history, oldest first")
async def list_messages(
    chat_id: ChatIdPath,
    user: Annotated[User, Depends(get_current_user)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
) -> MessageListResponse:
    messages = await chat_service.list_messages(user, chat_id)
    return MessageListResponse(messages=[MessageResponse.model_validate(m) for m in messages])


@router.post(
    "",
    response_model=SendMessageResponse,
    summary="Send a message and receive the assistant reply",
    responses={
        403: {"description": "Attachments require an active subscription"},
        502: {"description": "The completion provider failed; an apology was stored"},
    },
)
async def send_message(
    chat_id: ChatIdPath,
    user: Annotated[User, Depends(get_current_user)],
    dialog_service: Annotated[DialogService, Depends(get_dialog_service)],
    content: Annotated[str | None, Form()] = None,
    files: Annotated[list[UploadFile] | None, File()] = None,
) -> SendMessageResponse:
    """Multipart form with ``content`` and any number of ``files``.

    ``initData`` travels in the same form and is consumed by the admission gate.
    """

    uploads = [
        IncomingFile(
            filename=upload.filename or "file",
            content_type=upload.content_type or "application/octet-stream",
            data=await upload.read(),
        )
        for upload in files or []
    ]
    reply = await dialog_service.send_message(user, chat_id, content, uploads)
    return SendMessageResponse(
        messages=[MessageResponse.model_validate(m) for m in reply.messages],
        user_message_id=reply.user_message_id,
        ai_message_id=reply.ai_message_id,
    )
