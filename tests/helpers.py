"""Shared helpers for tests."""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from typing import Any
from urllib.parse import urlencode

from httpx import AsyncClient

TEST_BOT_TOKEN = "999999:TEST_TOKEN"
TEST_AI_API_KEY = "test-ai-key"
TEST_YOOKASSA_SECRET = "test-yookassa-secret"

DEFAULT_TEST_USER: dict[str, Any] = {
    "id": 123456,
    "first_name": "John",
    "last_name": "Doe",
    "username": "john_doe",
}


def sign_payload(payload: dict[str, str], bot_token: str = TEST_BOT_TOKEN) -> str:
    """Return the Telegram hash for ``payload`` (which must not contain ``hash``)."""

    data_check_string = "\n".join(f"{k}={v}" for k, v in sorted(payload.items()))
    secret_key = hmac.new(
        key="WebAppData".encode(),
        msg=bot_token.encode(),
        digestmod=hashlib.sha256,
    ).digest()
    return hmac.new(
        key=secret_key,
        msg=data_check_string.encode(),
        digestmod=hashlib.sha256,
    ).hexdigest()


def generate_init_data(
    bot_token: str = TEST_BOT_TOKEN,
    *,
    user: dict[str, Any] | None = None,
    auth_date: int | str | None = None,
    overrides: dict[str, str] | None = None,
) -> str:
    """Create signed initData payload resembling Telegram WebApp data."""

    payload = {
        "query_id": "test-query",
        "user": json.dumps(user or DEFAULT_TEST_USER, separators=(",", ":")),
        "auth_date": str(int(time.time()) if auth_date is None else auth_date),
    }
    if overrides:
        payload.update(overrides)

    payload["hash"] = sign_payload(payload, bot_token)
    return urlencode(payload)


async def login(client: AsyncClient, **user_fields: Any) -> tuple[str, dict[str, Any]]:
    """Register a user through POST /api/auth and return its initData and body."""

    init_data = generate_init_data(user={**DEFAULT_TEST_USER, **user_fields})
    response = await client.post("/api/auth", json={"initData": init_data})
    assert response.status_code == 200, response.text
    return init_data, response.json()["user"]
