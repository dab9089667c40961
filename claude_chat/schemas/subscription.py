"""
Schemas for subscription plans, checkout and payment webhooks.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from claude_chat.models.subscription import SubscriptionStatus
from claude_chat.schemas.common import InitDataBody


class PlanResponse(BaseModel):
    id: int
    name: str
    description: str
    duration_days: int
    price: Decimal
    currency: str
    features: dict[str, Any]
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("price")
    def _serialize_price(self, price: Decimal) -> str:
        return f"{price:.2f}"


class SubscriptionResponse(BaseModel):
    id: int
    user_id: int
    plan_id: int
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime
    auto_renew: bool
    plan: PlanResponse

    model_config = ConfigDict(from_attributes=True)


class SubscriptionInfoResponse(BaseModel):
    """Response body for GET /api/subscription."""

    subscription: SubscriptionResponse | None
    plans: list[PlanResponse]
    success: bool = True


class CheckoutRequest(InitDataBody):
    """Request payload for POST /api/subscription."""

    plan_id: int = Field(alias="planId", gt=0)


class CheckoutResponse(BaseModel):
    payment_url: str | None = Field(alias="paymentUrl")
    payment_id: str = Field(alias="paymentId")
    transaction_id: int = Field(alias="transactionId")
    success: bool = True

    model_config = ConfigDict(populate_by_name=True)


class PaymentWebhookObject(BaseModel):
    id: str

    model_config = ConfigDict(extra="allow")


class PaymentWebhookEvent(BaseModel):
    """Notification body posted by YooKassa."""

    type: str | None = None
    event: str
    object: PaymentWebhookObject

    model_config = ConfigDict(extra="allow")
