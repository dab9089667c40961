"""YooKassa payment gateway client and webhook signature check."""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from urllib.parse import quote
from uuid import uuid4

import httpx

logger = logging.getLogger("claude_chat.services.payments")

DEFAULT_YOOKASSA_API_URL = "https://api.yookassa.ru/v3"


class PaymentGatewayError(Exception):
    """Raised when the payment provider rejects a call or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class PaymentInfo:
    id: str
    status: str
    confirmation_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    payment_method_type: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "PaymentInfo":
        confirmation = data.get("confirmation") or {}
        payment_method = data.get("payment_method") or {}
        metadata = data.get("metadata")
        return cls(
            id=str(data["id"]),
            status=str(data.get("status", "")),
            confirmation_url=confirmation.get("confirmation_url"),
            metadata=metadata if isinstance(metadata, dict) else {},
            payment_method_type=payment_method.get("type"),
        )


def verify_webhook_signature(payload: bytes, signature: str, secret: str) -> bool:
    """Check the hex HMAC-SHA1 of the raw webhook body against ``signature``."""

    if not secret or not signature:
        return False
    expected = hmac.new(secret.encode(), payload, hashlib.sha1).hexdigest()
    return hmac.compare_digest(expected, signature)


class YooKassaClient:
    """Thin async wrapper over the YooKassa REST API."""

    def __init__(
        self,
        shop_id: str,
        secret_key: str,
        api_url: str = DEFAULT_YOOKASSA_API_URL,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = http_client or httpx.AsyncClient(
            base_url=api_url,
            auth=(shop_id, secret_key),
            timeout=timeout,
        )

    async def create_payment(
        self,
        *,
        amount: Decimal,
        currency: str,
        description: str,
        return_url: str,
        metadata: dict[str, Any],
    ) -> PaymentInfo:
        body = {
            "amount": {"value": f"{amount:.2f}", "currency": currency},
            "confirmation": {"type": "redirect", "return_url": return_url},
            "capture": True,
            "description": description,
            "metadata": metadata,
        }
        data = await self._request(
            "POST",
            "/payments",
            json=body,
            headers={"Idempotence-Key": uuid4().hex},
        )
        payment = PaymentInfo.from_api(data)
        logger.info(
            "Payment created",
            extra={"payment_id": payment.id, "payment_status": payment.status},
        )
        return payment

    async def get_payment(self, payment_id: str) -> PaymentInfo | None:
        try:
            data = await self._request("GET", f"/payments/{quote(payment_id, safe='')}")
        except PaymentGatewayError as error:
            if error.status_code == 404:
                return None
            raise
        return PaymentInfo.from_api(data)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as error:
            logger.error("Payment gateway unreachable", extra={"error": type(error).__name__})
            raise PaymentGatewayError("Payment gateway unreachable") from error

        if response.status_code >= 400:
            logger.error(
                "Payment gateway error",
                extra={"status_code": response.status_code, "http_path": url},
            )
            raise PaymentGatewayError(
                f"Payment gateway error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as error:
            raise PaymentGatewayError("Payment gateway returned invalid JSON") from error
        if not isinstance(data, dict) or "id" not in data:
            raise PaymentGatewayError("Payment gateway returned an unexpected payload")
        return data


__all__ = [
    "PaymentGatewayError",
    "PaymentInfo",
    "YooKassaClient",
    "verify_webhook_signature",
]
