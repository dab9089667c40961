"""Tests for checkout and payment confirmation."""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from claude_chat.core.config import Settings
from claude_chat.core.errors import ApplicationError, ExternalServiceError, NotFoundError
from claude_chat.core.telegram import TelegramInitUser
from claude_chat.models.subscription import SubscriptionPlan, SubscriptionStatus, TransactionStatus
from claude_chat.models.user import User
from claude_chat.repositories.subscription import SubscriptionRepository
from claude_chat.services.subscription import SubscriptionService
from claude_chat.services.user import UserService


async def _setup(session: AsyncSession, app_settings: Settings) -> tuple[User, SubscriptionPlan]:
    login = await UserService(session, app_settings).login(TelegramInitUser(id=10, first_name="Payer"))
    plan = await SubscriptionRepository(session).create_plan(
        name="Месяц", duration_days=30, price=Decimal("299.00")
    )
    await session.commit()
    return login.user, plan


@pytest.mark.asyncio
async def test_overview_lists_plans_without_subscription(
    db_session: AsyncSession, app_settings: Settings, payment_gateway
) -> None:
    user, plan = await _setup(db_session, app_settings)

    overview = await SubscriptionService(db_session, app_settings, payment_gateway).overview(user)

    assert overview.subscription is None
    assert [p.id for p in overview.plans] == [plan.id]


@pytest.mark.asyncio
async def test_checkout_creates_pending_transaction_and_payment(
    db_session: AsyncSession, app_settings: Settings, payment_gateway
) -> None:
    user, plan = await _setup(db_session, app_settings)

    result = await SubscriptionService(db_session, app_settings, payment_gateway).checkout(user, plan.id)

    assert result.payment_id == "pay-1"
    assert result.payment_url == "https://yookassa.test/confirm/pay-1"

    request = payment_gateway.created[0]
    assert request["amount"] == Decimal("299.00")
    assert request["currency"] == "RUB"
    assert request["metadata"] == {"transaction_id": result.transaction_id, "user_id": user.id, "plan_id": plan.id}
    assert request["return_url"] == (
        f"https://mini.example.com/payment-success?transaction_id={result.transaction_id}"
    )
    assert "Месяц" in request["description"]

    transaction = await SubscriptionRepository(db_session).get_transaction(result.transaction_id)
    assert transaction is not None
    assert transaction.status is TransactionStatus.PENDING
    assert transaction.payment_id == "pay-1"


@pytest.mark.asyncio
async def test_checkout_unknown_plan(db_session: AsyncSession, app_settings: Settings, payment_gateway) -> None:
    user, _ = await _setup(db_session, app_settings)

    with pytest.raises(NotFoundError) as exc_info:
        await SubscriptionService(db_session, app_settings, payment_gateway).checkout(user, 999)

    assert exc_info.value.code == "PLAN_NOT_FOUND"
    assert payment_gateway.created == []


@pytest.mark.asyncio
async def test_checkout_gateway_failure_marks_transaction_failed(
    db_session: AsyncSession, app_settings: Settings, payment_gateway
) -> None:
    user, plan = await _setup(db_session, app_settings)
    payment_gateway.fail_create = True

    with pytest.raises(ExternalServiceError) as exc_info:
        await SubscriptionService(db_session, app_settings, payment_gateway).checkout(user, plan.id)

    assert exc_info.value.code == "PAYMENT_SERVICE_ERROR"
    transaction = await SubscriptionRepository(db_session).get_transaction(1)
    assert transaction is not None
    await db_session.refresh(transaction)
    assert transaction.status is TransactionStatus.FAILED


@pytest.mark.asyncio
async def test_payments_unavailable_without_gateway(db_session: AsyncSession, app_settings: Settings) -> None:
    user, plan = await _setup(db_session, app_settings)

    with pytest.raises(ApplicationError) as exc_info:
        await SubscriptionService(db_session, app_settings, None).checkout(user, plan.id)

    assert exc_info.value.code == "SERVICE_UNAVAILABLE"
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_succeeded_payment_activates_subscription_once(
    db_session: AsyncSession, app_settings: Settings, payment_gateway
) -> None:
    user, plan = await _setup(db_session, app_settings)
    service = SubscriptionService(db_session, app_settings, payment_gateway)
    checkout = await service.checkout(user, plan.id)
    payment_gateway.mark_succeeded(checkout.payment_id)

    outcome = await service.handle_payment_event("payment.succeeded", checkout.payment_id)
    repeated = await service.handle_payment_event("payment.succeeded", checkout.payment_id)

    assert outcome.processed is True
    assert outcome.subscription_id is not None
    assert repeated.subscription_id == outcome.subscription_id

    overview = await service.overview(user)
    assert overview.subscription is not None
    assert overview.subscription.id == outcome.subscription_id
    assert overview.subscription.status is SubscriptionStatus.ACTIVE
    assert (overview.subscription.end_date - overview.subscription.start_date).days == 30

    transaction = await SubscriptionRepository(db_session).get_transaction(checkout.transaction_id)
    assert transaction is not None
    await db_session.refresh(transaction)
    assert transaction.status is TransactionStatus.COMPLETED
    assert transaction.payment_method == "bank_card"
    assert transaction.subscription_id == outcome.subscription_id


@pytest.mark.asyncio
async def test_missing_payment_method_is_recorded_as_unknown(
    db_session: AsyncSession, app_settings: Settings, payment_gateway
) -> None:
    user, plan = await _setup(db_session, app_settings)
    service = SubscriptionService(db_session, app_settings, payment_gateway)
    checkout = await service.checkout(user, plan.id)
    payment_gateway.mark_succeeded(checkout.payment_id, method=None)

    await service.handle_payment_event("payment.succeeded", checkout.payment_id)

    transaction = await SubscriptionRepository(db_session).get_transaction(checkout.transaction_id)
    assert transaction is not None
    await db_session.refresh(transaction)
    assert transaction.payment_method == "unknown"


@pytest.mark.asyncio
async def test_other_events_are_acknowledged_without_changes(
    db_session: AsyncSession, app_settings: Settings, payment_gateway
) -> None:
    service = SubscriptionService(db_session, app_settings, payment_gateway)

    outcome = await service.handle_payment_event("payment.canceled", "pay-1")

    assert outcome.processed is False


@pytest.mark.asyncio
async def test_unknown_payment_is_not_found(db_session: AsyncSession, app_settings: Settings, payment_gateway) -> None:
    service = SubscriptionService(db_session, app_settings, payment_gateway)

    with pytest.raises(NotFoundError) as exc_info:
        await service.handle_payment_event("payment.succeeded", "missing")

    assert exc_info.value.code == "PAYMENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_bad_metadata_is_rejected(db_session: AsyncSession, app_settings: Settings, payment_gateway) -> None:
    user, plan = await _setup(db_session, app_settings)
    service = SubscriptionService(db_session, app_settings, payment_gateway)
    checkout = await service.checkout(user, plan.id)
    payment = payment_gateway.payments[checkout.payment_id]
    payment.metadata["transaction_id"] = "abc"

    with pytest.raises(ApplicationError) as exc_info:
        await service.handle_payment_event("payment.succeeded", checkout.payment_id)

    assert exc_info.value.code == "INVALID_PAYMENT_METADATA"


@pytest.mark.asyncio
async def test_metadata_for_another_user_is_rejected(
    db_session: AsyncSession, app_settings: Settings, payment_gateway
) -> None:
    user, plan = await _setup(db_session, app_settings)
    service = SubscriptionService(db_session, app_settings, payment_gateway)
    checkout = await service.checkout(user, plan.id)
    payment_gateway.payments[checkout.payment_id].metadata["user_id"] = str(user.id + 100)

    with pytest.raises(NotFoundError):
        await service.handle_payment_event("payment.succeeded", checkout.payment_id)


@pytest.mark.asyncio
async def test_gateway_lookup_failure_is_bad_gateway(
    db_session: AsyncSession, app_settings: Settings, payment_gateway
) -> None:
    payment_gateway.fail_get = True

    with pytest.raises(ExternalServiceError):
        await SubscriptionService(db_session, app_settings, payment_gateway).handle_payment_event(
            "payment.succeeded", "pay-1"
        )
