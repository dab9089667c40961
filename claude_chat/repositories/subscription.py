"""Subscription plans, subscriptions and payment transactions."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from claude_chat.models.base import utcnow
from claude_chat.models.subscription import (
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    Transaction,
    TransactionStatus,
)
from claude_chat.repositories.base import BaseRepository


class SubscriptionRepository(BaseRepository[Subscription]):
    """Plans, subscriptions and transactions share one repository since checkout touches all three."""

    async def get_active_for_user(
        self, user_id: int, *, now: datetime | None = None
    ) -> Subscription | None:
        moment = now or utcnow()
        stmt = (
            select(Subscription)
            .options(selectinload(Subscription.plan))
            .where(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.end_date > moment,
            )
            .order_by(Subscription.end_date.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_active_plans(self) -> list[SubscriptionPlan]:
        stmt = (
            select(SubscriptionPlan)
            .where(SubscriptionPlan.is_active.is_(True))
            .order_by(SubscriptionPlan.price.asc(), SubscriptionPlan.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def get_plan(self, plan_id: int, *, active_only: bool = True) -> SubscriptionPlan | None:
        stmt = select(SubscriptionPlan).where(SubscriptionPlan.id == plan_id)
        if active_only:
            stmt = stmt.where(SubscriptionPlan.is_active.is_(True))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_plan(
        self,
        *,
        name: str,
        duration_days: int,
        price: Decimal,
        currency: str = "RUB",
        description: str = "",
        features: dict | None = None,
        is_active: bool = True,
    ) -> SubscriptionPlan:
        plan = SubscriptionPlan(
            name=name,
            description=description,
            duration_days=duration_days,
            price=price,
            currency=currency,
            features=features or {},
            is_active=is_active,
        )
        await self.add(plan)
        return plan

    async def create_subscription(
        self,
        *,
        user_id: int,
        plan_id: int,
        start_date: datetime,
        end_date: datetime,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        auto_renew: bool = False,
    ) -> Subscription:
        subscription = Subscription(
            user_id=user_id,
            plan_id=plan_id,
            status=status,
            start_date=start_date,
            end_date=end_date,
            auto_renew=auto_renew,
        )
        await self.add(subscription)
        return subscription

    async def create_transaction(
        self,
        *,
        user_id: int,
        plan_id: int,
        amount: Decimal,
        currency: str,
        payment_id: str,
    ) -> Transaction:
        transaction = Transaction(
            user_id=user_id,
            plan_id=plan_id,
            amount=amount,
            currency=currency,
            payment_id=payment_id,
            status=TransactionStatus.PENDING,
        )
        await self.add(transaction)
        return transaction

    async def get_transaction(self, transaction_id: int) -> Transaction | None:
        return await self.session.get(Transaction, transaction_id)

    async def update_transaction(
        self,
        transaction_id: int,
        *,
        status: TransactionStatus | None = None,
        payment_id: str | None = None,
        payment_method: str | None = None,
        subscription_id: int | None = None,
    ) -> bool:
        values: dict[str, object] = {}
        if status is not None:
            values["status"] = status
        if payment_id is not None:
            values["payment_id"] = payment_id
        if payment_method is not None:
            values["payment_method"] = payment_method
        if subscription_id is not None:
            values["subscription_id"] = subscription_id
        if not values:
            return False
        values["updated_at"] = utcnow()

        stmt = update(Transaction).where(Transaction.id == transaction_id).values(**values)
        return await self._changed(stmt)


__all__ = ["SubscriptionRepository"]
