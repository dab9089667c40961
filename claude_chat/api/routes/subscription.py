"""Subscription overview and checkout endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from claude_chat.api.dependencies import get_subscription_service
from claude_chat.core.auth import get_current_user
from claude_chat.models.user import User
from claude_chat.schemas.subscription import (
    CheckoutRequest,
    CheckoutResponse,
    PlanResponse,
    SubscriptionInfoResponse,
    SubscriptionResponse,
)
from claude_chat.services.subscription import SubscriptionService

router = APIRouter(prefix="/subscription", tags=["subscription"])

SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]


@router.get("", response_model=SubscriptionInfoResponse, summary="Active subscription and plans")
async def get_subscription(
    user: Annotated[User, Depends(get_current_user)],
    subscription_service: SubscriptionServiceDep,
) -> SubscriptionInfoResponse:
    overview = await subscription_service.overview(user)
    return SubscriptionInfoResponse(
        subscription=(
            SubscriptionResponse.model_validate(overview.subscription) if overview.subscription else None
        ),
        plans=[PlanResponse.model_validate(plan) for plan in overview.plans],
    )


@router.post(
    "",
    response_model=CheckoutResponse,
    summary="Start a payment for a plan",
    responses={404: {"description": "Plan is missing or inactive"}},
)
async def checkout(
    payload: CheckoutRequest,
    user: Annotated[User, Depends(get_current_user)],
    subscription_service: SubscriptionServiceDep,
) -> CheckoutResponse:
    result = await subscription_service.checkout(user, payload.plan_id)
    return CheckoutResponse(
        payment_url=result.payment_url,
        payment_id=result.payment_id,
        transaction_id=result.transaction_id,
    )
