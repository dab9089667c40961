"""Subscription checkout and payment confirmation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any
from uuid import uuid4

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from claude_chat.core.config import Settings
from claude_chat.core.errors import ApplicationError, ErrorCode, ExternalServiceError, NotFoundError
from claude_chat.models.base import utcnow
from claude_chat.models.subscription import Subscription, SubscriptionPlan, TransactionStatus
from claude_chat.models.user import User
from claude_chat.repositories.subscription import SubscriptionRepository
from claude_chat.services.payments import PaymentGatewayError, YooKassaClient

logger = logging.getLogger("claude_chat.services.subscription")

PAYMENT_SUCCEEDED_EVENT = "payment.succeeded"


@dataclass(frozen=True)
class SubscriptionOverview:
    subscription: Subscription | None
    plans: list[SubscriptionPlan]


@dataclass(frozen=True)
class CheckoutResult:
    payment_url: str | None
    payment_id: str
    transaction_id: int


@dataclass(frozen=True)
class WebhookOutcome:
    processed: bool
    subscription_id: int | None = None


def _metadata_int(metadata: dict[str, Any], key: str) -> int | None:
    value = metadata.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


class SubscriptionService:
    """Plans, checkout through the payment gateway and webhook confirmation."""

    def __init__(
        self,
        session: AsyncSession,
        app_settings: Settings,
        payment_gateway: YooKassaClient | None,
    ) -> None:
        self.session = session
        self.app_settings = app_settings
        self.payment_gateway = payment_gateway
        self.repo = SubscriptionRepository(session)

    async def overview(self, user: User) -> SubscriptionOverview:
        return SubscriptionOverview(
            subscription=await self.repo.get_active_for_user(user.id),
            plans=await self.repo.list_active_plans(),
        )

    async def checkout(self, user: User, plan_id: int) -> CheckoutResult:
        """Create a pending transaction and a provider payment for the plan."""

        gateway = self._require_gateway()
        plan = await self.repo.get_plan(plan_id)
        if plan is None:
            raise NotFoundError(
                ErrorCode.PLAN_NOT_FOUND,
                "План подписки не найден или не активен",
                details={"planId": plan_id},
            )

        transaction = await self.repo.create_transaction(
            user_id=user.id,
            plan_id=plan.id,
            amount=plan.price,
            currency=plan.currency,
            payment_id=str(uuid4()),
        )
        await self.session.commit()

        base_url = (self.app_settings.public_base_url or "").rstrip("/")
        try:
            payment = await gateway.create_payment(
                amount=plan.price,
                currency=plan.currency,
                description=f'Подписка на "{plan.name}" для пользователя {user.telegram_id}',
                return_url=f"{base_url}/payment-success?transaction_id={transaction.id}",
                metadata={
                    "transaction_id": transaction.id,
                    "user_id": user.id,
                    "plan_id": plan.id,
                },
            )
        except PaymentGatewayError as error:
            await self.repo.update_transaction(transaction.id, status=TransactionStatus.FAILED)
            await self.session.commit()
            raise ExternalServiceError(
                ErrorCode.PAYMENT_SERVICE_ERROR,
                "Не удалось создать платеж",
            ) from error

        await self.repo.update_transaction(transaction.id, payment_id=payment.id)
        await self.session.commit()

        logger.info(
            "Checkout started",
            extra={
                "user_id": user.id,
                "plan_id": plan.id,
                "transaction_id": transaction.id,
                "payment_id": payment.id,
            },
        )
        return CheckoutResult(
            payment_url=payment.confirmation_url,
            payment_id=payment.id,
            transaction_id=transaction.id,
        )

    async def handle_payment_event(self, event: str, payment_id: str) -> WebhookOutcome:
        """Activate the subscription paid for by ``payment_id``.

        Only ``payment.succeeded`` is acted upon. The payment is re-read from
        the provider instead of trusting the notification body. A transaction
        that is already completed is acknowledged without a second
        subscription.
        """

        if event != PAYMENT_SUCCEEDED_EVENT:
            logger.info("Payment event ignored", extra={"payment_event": event})
            return WebhookOutcome(processed=False)

        gateway = self._require_gateway()
        try:
            payment = await gateway.get_payment(payment_id)
        except PaymentGatewayError as error:
            raise ExternalServiceError(
                ErrorCode.PAYMENT_SERVICE_ERROR,
                "Не удалось получить данные платежа",
            ) from error

        if payment is None or not payment.metadata:
            raise NotFoundError(ErrorCode.PAYMENT_NOT_FOUND, "Payment data not found")

        transaction_id = _metadata_int(payment.metadata, "transaction_id")
        user_id = _metadata_int(payment.metadata, "user_id")
        plan_id = _metadata_int(payment.metadata, "plan_id")
        if transaction_id is None or user_id is None or plan_id is None:
            raise ApplicationError(ErrorCode.INVALID_PAYMENT_METADATA, "Invalid metadata")

        transaction = await self.repo.get_transaction(transaction_id)
        if transaction is None or transaction.user_id != user_id:
            raise NotFoundError(ErrorCode.PAYMENT_NOT_FOUND, "Transaction not found")
        if transaction.status is TransactionStatus.COMPLETED:
            logger.info(
                "Payment already processed",
                extra={"transaction_id": transaction_id, "payment_id": payment.id},
            )
            return WebhookOutcome(processed=True, subscription_id=transaction.subscription_id)

        plan = await self.repo.get_plan(plan_id, active_only=False)
        if plan is None:
            raise NotFoundError(ErrorCode.PLAN_NOT_FOUND, "Plan not found")

        start = utcnow()
        subscription = await self.repo.create_subscription(
            user_id=user_id,
            plan_id=plan.id,
            start_date=start,
            end_date=start + timedelta(days=plan.duration_days),
        )
        await self.repo.update_transaction(
            transaction_id,
            status=TransactionStatus.COMPLETED,
            payment_method=payment.payment_method_type or "unknown",
            subscription_id=subscription.id,
        )
        await self.session.commit()

        logger.info(
            "Subscription activated",
            extra={
                "user_id": user_id,
                "plan_id": plan.id,
                "transaction_id": transaction_id,
                "subscription_id": subscription.id,
            },
        )
        return WebhookOutcome(processed=True, subscription_id=subscription.id)

    def _require_gateway(self) -> YooKassaClient:
        if self.payment_gateway is None:
            raise ApplicationError(
                ErrorCode.SERVICE_UNAVAILABLE,
                "Платежи временно недоступны",
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return self.payment_gateway


__all__ = [
    "CheckoutResult",
    "PAYMENT_SUCCEEDED_EVENT",
    "SubscriptionOverview",
    "SubscriptionService",
    "WebhookOutcome",
]
