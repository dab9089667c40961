"""Shared FastAPI dependency builders.

Long-lived collaborators are created once in ``create_app`` and kept on
``app.state``; these helpers hand them to the routes and build the
request-scoped services around the request's database session.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from claude_chat.core.config import Settings
from claude_chat.core.db import get_session
from claude_chat.services.chat import ChatService
from claude_chat.services.dialog import DialogService
from claude_chat.services.llm import AICompletionClient
from claude_chat.services.payments import YooKassaClient
from claude_chat.services.settings import SettingsService
from claude_chat.services.storage import AttachmentStorage
from claude_chat.services.subscription import SubscriptionService
from claude_chat.services.user import UserService

SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_completion_client(request: Request) -> AICompletionClient:
    return request.app.state.ai_client


def get_payment_gateway(request: Request) -> YooKassaClient | None:
    return request.app.state.payment_gateway


def get_attachment_storage(request: Request) -> AttachmentStorage:
    return request.app.state.attachment_storage


SettingsDep = Annotated[Settings, Depends(get_app_settings)]


def get_user_service(session: SessionDep, app_settings: SettingsDep) -> UserService:
    return UserService(session, app_settings)


def get_chat_service(session: SessionDep) -> ChatService:
    return ChatService(session)


def get_settings_service(session: SessionDep, app_settings: SettingsDep) -> SettingsService:
    return SettingsService(session, app_settings)


def get_dialog_service(
    request: Request,
    session: SessionDep,
    app_settings: SettingsDep,
    completion_client: Annotated[AICompletionClient, Depends(get_completion_client)],
    storage: Annotated[AttachmentStorage, Depends(get_attachment_storage)],
) -> DialogService:
    return DialogService(
        session,
        completion_client,
        storage,
        app_settings,
        metrics=getattr(request.app.state, "metrics", None),
    )


def get_subscription_service(
    session: SessionDep,
    app_settings: SettingsDep,
    payment_gateway: Annotated[YooKassaClient | None, Depends(get_payment_gateway)],
) -> SubscriptionService:
    return SubscriptionService(session, app_settings, payment_gateway)


__all__ = [
    "SessionDep",
    "SettingsDep",
    "get_app_settings",
    "get_attachment_storage",
    "get_chat_service",
    "get_completion_client",
    "get_dialog_service",
    "get_payment_gateway",
    "get_settings_service",
    "get_subscription_service",
    "get_user_service",
]
