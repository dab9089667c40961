"""FastAPI application factory and entrypoint."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from claude_chat.api.routers import api_router, root_router
from claude_chat.core.config import Settings, get_settings
from claude_chat.core.db import Database
from claude_chat.core.errors import register_exception_handlers
from claude_chat.core.logging import configure_logging
from claude_chat.core.metrics import setup_metrics
from claude_chat.core.middleware import (
    AccessLogMiddleware,
    RequestIDMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from claude_chat.core.telegram import InitDataVerifier
from claude_chat.core.version import APP_VERSION
from claude_chat.services.llm import AICompletionClient
from claude_chat.services.payments import YooKassaClient
from claude_chat.services.storage import AttachmentStorage

ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
ALLOWED_HEADERS = ["Content-Type", "Accept", "X-Requested-With", "X-Request-ID"]

logger = logging.getLogger("claude_chat.main")


def build_payment_gateway(settings: Settings) -> YooKassaClient | None:
    if not settings.payments_enabled or settings.yookassa_secret_key is None:
        return None
    return YooKassaClient(
        shop_id=settings.yookassa_shop_id or "",
        secret_key=settings.yookassa_secret_key.get_secret_value(),
        api_url=settings.yookassa_api_url,
    )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    settings: Settings = application.state.settings
    state = application.state
    logger.info(
        "Application started",
        extra={
            "environment": settings.environment,
            "ai_provider": settings.ai_provider,
            "payments_enabled": state.payment_gateway is not None,
            "version": APP_VERSION,
        },
    )
    try:
        yield
    finally:
        await state.ai_client.aclose()
        if state.payment_gateway is not None:
            await state.payment_gateway.aclose()
        await state.database.dispose()
        logger.info("Application stopped")


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    *,
    completion_client: AICompletionClient | None = None,
    payment_gateway: YooKassaClient | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Every collaborator is created here once and stored on ``app.state``;
    tests pass their own database and clients instead.
    """

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    show_docs = settings.debug
    application = FastAPI(
        title=settings.project_name,
        version=APP_VERSION,
        debug=settings.debug,
        lifespan=_lifespan,
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
    )

    state = application.state
    state.settings = settings
    state.database = database or Database(settings.database_url, echo=settings.sql_echo)
    state.init_data_verifier = InitDataVerifier(
        settings.telegram_bot_token.get_secret_value(),
        max_age_seconds=settings.init_data_max_age_seconds,
    )
    state.ai_client = completion_client or AICompletionClient(
        settings.ai_api_key.get_secret_value(),
        settings.ai_provider,
        base_url=settings.ai_api_base_url,
        timeout=settings.ai_request_timeout_seconds,
    )
    state.payment_gateway = payment_gateway or build_payment_gateway(settings)
    state.attachment_storage = AttachmentStorage(settings.uploads_dir)

    register_exception_handlers(application)
    setup_metrics(application)

    # Starlette runs the last added middleware first: request id, size limit,
    # access log, security headers, CORS.
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
        max_age=86400,
    )
    application.add_middleware(
        SecurityHeadersMiddleware,
        enable_hsts=settings.environment in {"staging", "production"},
    )
    application.add_middleware(AccessLogMiddleware)
    application.add_middleware(RequestSizeLimitMiddleware, max_request_bytes=settings.max_request_bytes)
    application.add_middleware(RequestIDMiddleware)

    for router in (root_router, api_router):
        application.include_router(router)

    return application


app = create_app()

__all__ = ["app", "build_payment_gateway", "create_app"]
