from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient

from claude_chat.core.db import Database
from claude_chat.models.base import utcnow
from claude_chat.repositories.subscription import SubscriptionRepository
from claude_chat.services.dialog import APOLOGY_MESSAGE
from claude_chat.services.llm import CompletionError
from tests.helpers import login


async def _new_chat(client: AsyncClient, init_data: str) -> int:
    response = await client.post("/api/chat", json={"initData": init_data, "title": "Диалог"})
    assert response.status_code == 200, response.text
    return response.json()["chat"]["id"]


async def _grant_subscription(database: Database, user_id: int) -> None:
    async with database.session_factory() as session:
        repo = SubscriptionRepository(session)
        plan = await repo.create_plan(name="Месяц", duration_days=30, price=Decimal("299.00"))
        now = utcnow()
        await repo.create_subscription(
            user_id=user_id,
            plan_id=plan.id,
            start_date=now,
            end_date=now + timedelta(days=30),
        )
        await session.commit()


@pytest.mark.asyncio
async def test_send_message_returns_full_history(
    client: AsyncClient, completion_client
) -> None:
    init_data, user = await login(client)
    chat_id = await _new_chat(client, init_data)

    response = await client.post(
        f"/api/chat/{chat_id}/messages",
        data={"initData": init_data, "content": "Привет"},
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    messages = body["messages"]
    assert [(m["is_user"], m["content"]) for m in messages] == [
        (True, "Привет"),
        (False, "Привет! Чем могу помочь?"),
    ]
    assert body["userMessageId"] == messages[0]["id"]
    assert body["aiMessageId"] == messages[1]["id"]
    assert all(m["user_id"] == user["id"] for m in messages)

    sent_history, sent_settings = completion_client.calls[0]
    assert sent_history == [{"role": "user", "content": "Привет"}]
    assert sent_settings.max_tokens == 1000


@pytest.mark.asyncio
async def test_history_endpoint_lists_messages_oldest_first(client: AsyncClient) -> None:
    init_data, _ = await login(client)
    chat_id = await _new_chat(client, init_data)
    await client.post(f"/api/chat/{chat_id}/messages", data={"initData": init_data, "content": "Первый"})
    await client.post(f"/api/chat/{chat_id}/messages", data={"initData": init_data, "content": "Второй"})

    response = await client.get(f"/api/chat/{chat_id}/messages", params={"initData": init_data})

    assert response.status_code == 200
    contents = [m["content"] for m in response.json()["messages"]]
    assert contents == ["Первый", "Привет! Чем могу помочь?", "Второй", "Привет! Чем могу помочь?"]


@pytest.mark.asyncio
async def test_completion_failure_stores_apology_and_returns_bad_gateway(
    client: AsyncClient, completion_client
) -> None:
    init_data, _ = await login(client)
    chat_id = await _new_chat(client, init_data)
    completion_client.error = CompletionError("Anthropic API error: 529", status_code=529)

    response = await client.post(
        f"/api/chat/{chat_id}/messages",
        data={"initData": init_data, "content": "Ответь"},
    )

    assert response.status_code == 502
    error = response.json()["error"]
    assert error["code"] == "LLM_SERVICE_ERROR"
    assert set(error["details"]) == {"userMessageId", "errorMessageId"}

    history = await client.get(f"/api/chat/{chat_id}/messages", params={"initData": init_data})
    messages = history.json()["messages"]
    assert [m["content"] for m in messages] == ["Ответь", APOLOGY_MESSAGE]
    assert messages[1]["id"] == error["details"]["errorMessageId"]


@pytest.mark.asyncio
async def test_empty_message_is_rejected(client: AsyncClient) -> None:
    init_data, _ = await login(client)
    chat_id = await _new_chat(client, init_data)

    response = await client.post(
        f"/api/chat/{chat_id}/messages",
        data={"initData": init_data, "content": "   "},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_FIELD_VALUE"


@pytest.mark.asyncio
async def test_files_require_active_subscription(client: AsyncClient) -> None:
    init_data, _ = await login(client)
    chat_id = await _new_chat(client, init_data)

    response = await client.post(
        f"/api/chat/{chat_id}/messages",
        data={"initData": init_data, "content": "Посмотри файл"},
        files=[("files", ("notes.txt", b"hello", "text/plain"))],
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "SUBSCRIPTION_REQUIRED"


@pytest.mark.asyncio
async def test_subscriber_can_attach_files(
    client: AsyncClient,
    database: Database,
    completion_client,
    app_settings,
) -> None:
    init_data, user = await login(client)
    chat_id = await _new_chat(client, init_data)
    await _grant_subscription(database, user["id"])

    response = await client.post(
        f"/api/chat/{chat_id}/messages",
        data={"initData": init_data},
        files=[
            ("files", ("report.pdf", b"%PDF-1.4", "application/pdf")),
            ("files", ("photo.png", b"\x89PNG", "image/png")),
        ],
    )

    assert response.status_code == 200, response.text
    user_message = response.json()["messages"][0]
    attachments = user_message["attachments"]
    assert [(a["file_name"], a["file_type"], a["file_size"]) for a in attachments] == [
        ("report.pdf", "application/pdf", 8),
        ("photo.png", "image/png", 4),
    ]
    for attachment in attachments:
        assert attachment["file_path"].startswith(f"/uploads/{user['id']}/{chat_id}/")
        stored_name = attachment["file_path"].rsplit("/", 1)[1]
        assert (app_settings.uploads_dir / str(user["id"]) / str(chat_id) / stored_name).exists()

    sent_history, _ = completion_client.calls[0]
    assert sent_history == [{"role": "user", "content": "[Вложения: report.pdf, photo.png]"}]


@pytest.mark.asyncio
async def test_send_to_unknown_chat_is_not_found(client: AsyncClient) -> None:
    init_data, _ = await login(client)

    response = await client.post(
        "/api/chat/9999/messages",
        data={"initData": init_data, "content": "Есть кто?"},
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "CHAT_NOT_FOUND"
