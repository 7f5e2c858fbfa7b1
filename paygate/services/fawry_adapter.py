"""
Fawry Adapter - Egypt reference-code and card payments.

Reference codes can be paid at any Fawry outlet, so links live for a full day.
Callback signature is a plain SHA-256 over fields plus the merchant security key.
"""

import hashlib
from collections.abc import Mapping
from datetime import timedelta
from decimal import Decimal
from typing import Any
from urllib.parse import urlencode

from paygate.models.api import Currency, GatewayId, PaymentCallbackResponse, PaymentStatus
from paygate.models.domain import AdapterConfig, ResolvedPaymentRequest
from paygate.services.payment_adapter import (
    BaseAdapter,
    parse_timestamp,
    to_currency,
    to_decimal,
)

FAWRY_SANDBOX_URL = "https://atfawry.fawrystaging.com"
FAWRY_PRODUCTION_URL = "https://www.atfawry.com"

FAWRY_STATUS_MAP = {
    "PAID": PaymentStatus.SUCCESS,
    "NEW": PaymentStatus.PENDING,
    "UNPAID": PaymentStatus.PENDING,
    "CANCELED": PaymentStatus.CANCELLED,
    "CANCELLED": PaymentStatus.CANCELLED,
    "EXPIRED": PaymentStatus.CANCELLED,
    "REFUNDED": PaymentStatus.CANCELLED,
    "FAILED": PaymentStatus.FAILED,
}


def _amount(value: Any) -> str:
    """Fawry signs amounts with exactly two decimals."""
    return f"{Decimal(str(value)):.2f}"


class FawryAdapter(BaseAdapter):
    """Fawry Pay implementation of the PaymentAdapter protocol."""

    gateway = GatewayId.FAWRY
    default_currency = Currency.EGP
    link_ttl = timedelta(hours=24)
    required_credentials = ("merchant_id", "secret_key")

    def _checkout_url(
        self, config: AdapterConfig, request: ResolvedPaymentRequest, transaction_id: str
    ) -> str:
        base = FAWRY_SANDBOX_URL if config.is_sandbox else FAWRY_PRODUCTION_URL
        query = urlencode(
            {
                "merchantCode": config.merchant_id or "",
                "merchantRefNum": transaction_id,
                "amount": f"{request.amount:.2f}",
            }
        )
        return f"{base}/atfawry/plugin/?{query}"

    async def handle_callback(
        self, payload: Mapping[str, Any], headers: Mapping[str, str]
    ) -> PaymentCallbackResponse:
        """Map a Fawry V2 server notification."""
        self._ensure_initialized()
        raw_status = str(payload.get("orderStatus", "")).upper()
        status = FAWRY_STATUS_MAP.get(raw_status, PaymentStatus.FAILED)

        return PaymentCallbackResponse(
            transaction_id=str(payload.get("merchantRefNumber", "")),
            status=status,
            amount=to_decimal(payload.get("paymentAmount", payload.get("orderAmount"))),
            currency=to_currency(payload.get("currency"), self.default_currency),
            gateway=self.gateway,
            gateway_reference=str(payload.get("fawryRefNumber", "")),
            paid_at=parse_timestamp(payload.get("paymentTime"))
            if status == PaymentStatus.SUCCESS
            else None,
        )

    def _expected_signature(self, payload: Mapping[str, Any], secret: str) -> str:
        message = "".join(
            [
                str(payload["fawryRefNumber"]),
                str(payload["merchantRefNumber"]),
                _amount(payload["paymentAmount"]),
                _amount(payload["orderAmount"]),
                str(payload["orderStatus"]),
                str(payload["paymentMethod"]),
                str(payload.get("paymentRefrenceNumber") or ""),
                secret,
            ]
        )
        return hashlib.sha256(message.encode()).hexdigest()
