from __future__ import annotations

import dataclasses
import os
import tempfile
from collections.abc import AsyncIterator, Sequence
from decimal import Decimal
from typing import Any, Final

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from tests.helpers import TEST_AI_API_KEY, TEST_BOT_TOKEN, TEST_YOOKASSA_SECRET

_TEST_ENV_VARS: Final[dict[str, str]] = {
    "APP_ENV": "test",
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "TELEGRAM_BOT_TOKEN": TEST_BOT_TOKEN,
    "AI_API_KEY": TEST_AI_API_KEY,
    "UPLOADS_DIR": os.path.join(tempfile.gettempdir(), "claude-chat-test-uploads"),
}

for key, value in _TEST_ENV_VARS.items():
    os.environ.setdefault(key, value)

from claude_chat.core.config import Settings  # noqa: E402
from claude_chat.core.db import Database  # noqa: E402
from claude_chat.main import create_app  # noqa: E402
from claude_chat.models.base import Base  # noqa: E402
from claude_chat.services.llm import (  # noqa: E402
    ChatTurn,
    CompletionError,
    CompletionResult,
    CompletionSettings,
    LLMProvider,
)
from claude_chat.services.payments import PaymentGatewayError, PaymentInfo  # noqa: E402


class FakeCompletionClient:
    """Stands in for AICompletionClient; records every call."""

    provider = LLMProvider.ANTHROPIC

    def __init__(self) -> None:
        self.calls: list[tuple[list[ChatTurn], CompletionSettings]] = []
        self.reply = "Привет! Чем могу помочь?"
        self.total_tokens = 42
        self.error: CompletionError | None = None

    async def complete(self, messages: Sequence[ChatTurn], settings: CompletionSettings) -> CompletionResult:
        self.calls.append((list(messages), settings))
        if self.error is not None:
            raise self.error
        return CompletionResult(text=self.reply, total_tokens=self.total_tokens)

    async def aclose(self) -> None:
        return None


class FakePaymentGateway:
    """In-memory YooKassa double. Metadata comes back as strings, like the real API."""

    def __init__(self) -> None:
        self.created: list[dict[str, Any]] = []
        self.payments: dict[str, PaymentInfo] = {}
        self.fail_create = False
        self.fail_get = False

    async def create_payment(
        self,
        *,
        amount: Decimal,
        currency: str,
        description: str,
        return_url: str,
        metadata: dict[str, Any],
    ) -> PaymentInfo:
        if self.fail_create:
            raise PaymentGatewayError("Payment gateway error: 500", status_code=500)
        payment_id = f"pay-{len(self.created) + 1}"
        self.created.append(
            {
                "amount": amount,
                "currency": currency,
                "description": description,
                "return_url": return_url,
                "metadata": metadata,
            }
        )
        payment = PaymentInfo(
            id=payment_id,
            status="pending",
            confirmation_url=f"https://yookassa.test/confirm/{payment_id}",
            metadata={key: str(value) for key, value in metadata.items()},
        )
        self.payments[payment_id] = payment
        return payment

    async def get_payment(self, payment_id: str) -> PaymentInfo | None:
        if self.fail_get:
            raise PaymentGatewayError("Payment gateway unreachable")
        return self.payments.get(payment_id)

    def mark_succeeded(self, payment_id: str, method: str | None = "bank_card") -> None:
        self.payments[payment_id] = dataclasses.replace(
            self.payments[payment_id],
            status="succeeded",
            payment_method_type=method,
        )

    async def aclose(self) -> None:
        return None


@pytest.fixture()
def app_settings(tmp_path) -> Settings:
    return Settings(
        APP_ENV="test",
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        TELEGRAM_BOT_TOKEN=TEST_BOT_TOKEN,
        AI_API_KEY=TEST_AI_API_KEY,
        YOOKASSA_SHOP_ID="test-shop",
        YOOKASSA_SECRET_KEY=TEST_YOOKASSA_SECRET,
        PUBLIC_BASE_URL="https://mini.example.com/",
        UPLOADS_DIR=str(tmp_path / "uploads"),
        _env_file=None,
    )


@pytest_asyncio.fixture()
async def database() -> AsyncIterator[Database]:
    db = Database(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield db

    await db.dispose()


@pytest_asyncio.fixture()
async def db_session(database: Database) -> AsyncIterator[AsyncSession]:
    async with database.session_factory() as session:
        yield session


@pytest.fixture()
def completion_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture()
def payment_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture()
def app(
    app_settings: Settings,
    database: Database,
    completion_client: FakeCompletionClient,
    payment_gateway: FakePaymentGateway,
) -> FastAPI:
    return create_app(
        app_settings,
        database,
        completion_client=completion_client,  # type: ignore[arg-type]
        payment_gateway=payment_gateway,  # type: ignore[arg-type]
    )


@pytest_asyncio.fixture()
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as http_client:
        yield http_client
