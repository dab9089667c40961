"""Router aggregations for public API endpoints."""

from fastapi import APIRouter

from claude_chat.api.routes import auth, chats, health, messages, settings, subscription, webhook

# Health router (no prefix)
root_router = APIRouter()
root_router.include_router(health.router)

# API routers with /api prefix
api_router = APIRouter(prefix="/api")
api_router.include_router(auth.router)
api_router.include_router(chats.router)
api_router.include_router(messages.router)
api_router.include_router(settings.router)
api_router.include_router(subscription.router)
api_router.include_router(webhook.router)

__all__ = ["api_router", "root_router"]
