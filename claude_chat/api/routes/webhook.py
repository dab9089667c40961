"""Payment provider notifications. Authenticated by body signature, not initData."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from pydantic import ValidationError

from claude_chat.api.dependencies import SettingsDep, get_subscription_service
from claude_chat.core.errors import ApplicationError, ErrorCode
from claude_chat.schemas.common import SuccessResponse
from claude_chat.schemas.subscription import PaymentWebhookEvent
from claude_chat.services.payments import verify_webhook_signature
from claude_chat.services.subscription import SubscriptionService

logger = logging.getLogger("claude_chat.api.webhook")

router = APIRouter(prefix="/webhook", tags=["webhook"])


@router.post(
    "/payment",
    response_model=SuccessResponse,
    summary="YooKassa payment notification",
    responses={401: {"description": "Signature mismatch"}},
)
async def payment_webhook(
    request: Request,
    app_settings: SettingsDep,
    subscription_service: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> SuccessResponse:
    payload = await request.body()
    signature = request.headers.get(app_settings.payment_webhook_signature_header, "")
    secret = (
        app_settings.yookassa_secret_key.get_secret_value()
        if app_settings.yookassa_secret_key is not None
        else ""
    )

    if not verify_webhook_signature(payload, signature, secret):
        logger.warning("Payment webhook signature rejected", extra={"event": "webhook.rejected"})
        raise ApplicationError(
            ErrorCode.INVALID_SIGNATURE,
            "Invalid signature",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    try:
        event = PaymentWebhookEvent.model_validate_json(payload)
    except ValidationError as error:
        raise ApplicationError(
            ErrorCode.VALIDATION_ERROR,
            "Invalid notification payload",
            details={"errors": error.error_count()},
        ) from error

    await subscription_service.handle_payment_event(event.event, event.object.id)
    return SuccessResponse(success=True)
