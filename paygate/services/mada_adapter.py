"""
mada Adapter - Saudi domestic card scheme.
"""

import hashlib
from collections.abc import Mapping
from datetime import timedelta
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

MADA_SANDBOX_URL = "https://sandbox.mada-pay.sa"
MADA_PRODUCTION_URL = "https://checkout.mada-pay.sa"

MADA_STATUS_MAP = {
    "APPROVED": PaymentStatus.SUCCESS,
    "CAPTURED": PaymentStatus.SUCCESS,
    "INITIATED": PaymentStatus.PENDING,
    "PENDING": PaymentStatus.PENDING,
    "AUTHORIZED": PaymentStatus.PENDING,  # not captured yet
    "CANCELLED": PaymentStatus.CANCELLED,
    "CANCELED": PaymentStatus.CANCELLED,
    "REVERSED": PaymentStatus.CANCELLED,
    "VOIDED": PaymentStatus.CANCELLED,
    "DECLINED": PaymentStatus.FAILED,
}


class MadaAdapter(BaseAdapter):
    """mada implementation of the PaymentAdapter protocol."""

    gateway = GatewayId.MADA
    default_currency = Currency.SAR
    link_ttl = timedelta(minutes=20)
    required_credentials = ("merchant_id", "secret_key")

    def _checkout_url(
        self, config: AdapterConfig, request: ResolvedPaymentRequest, transaction_id: str
    ) -> str:
        base = MADA_SANDBOX_URL if config.is_sandbox else MADA_PRODUCTION_URL
        query = urlencode({"merchantId": config.merchant_id or "", "orderId": transaction_id})
        return f"{base}/checkout?{query}"

    async def handle_callback(
        self, payload: Mapping[str, Any], headers: Mapping[str, str]
    ) -> PaymentCallbackResponse:
        """Map a mada payment notification."""
        self._ensure_initialized()
        raw_status = str(payload.get("status", "")).strip().upper()
        status = MADA_STATUS_MAP.get(raw_status, PaymentStatus.FAILED)

        return PaymentCallbackResponse(
            transaction_id=str(payload.get("orderId", "")),
            status=status,
            amount=to_decimal(payload.get("amount")),
            currency=to_currency(payload.get("currency"), self.default_currency),
            gateway=self.gateway,
            gateway_reference=str(payload.get("transactionId", "")),
            paid_at=parse_timestamp(payload.get("timestamp"))
            if status == PaymentStatus.SUCCESS
            else None,
        )

    def _expected_signature(self, payload: Mapping[str, Any], secret: str) -> str:
        message = "".join(
            str(payload[name]) for name in ("merchantId", "orderId", "amount", "currency", "status")
        )
        return hashlib.sha256((message + secret).encode()).hexdigest()
