"""
HyperPay Adapter - Gulf card processing on the OPPWA platform.

HyperPay reports outcomes as result codes ("000.100.110") rather than words;
the code families below follow the OPPWA result-code documentation.
"""

import re
from collections.abc import Mapping
from datetime import timedelta
from typing import Any
from urllib.parse import urlencode

from paygate.models.api import Currency, GatewayId, PaymentCallbackResponse, PaymentStatus
from paygate.models.domain import AdapterConfig, ResolvedPaymentRequest
from paygate.services.payment_adapter import (
    BaseAdapter,
    hmac_hex,
    parse_timestamp,
    to_currency,
    to_decimal,
)

HYPERPAY_SANDBOX_URL = "https://eu-test.oppwa.com"
HYPERPAY_PRODUCTION_URL = "https://eu-prod.oppwa.com"

# Checked in order; anything unmatched is a failure
HYPERPAY_RESULT_PATTERNS: tuple[tuple[re.Pattern[str], PaymentStatus], ...] = (
    (re.compile(r"^(000\.000\.|000\.100\.1|000\.[36]|000\.400\.1[12]0)"), PaymentStatus.SUCCESS),
    # processed, but flagged for manual review
    (re.compile(r"^(000\.400\.0[^3]|000\.400\.100)"), PaymentStatus.PENDING),
    (re.compile(r"^(000\.200|800\.400\.5|100\.400\.500)"), PaymentStatus.PENDING),
    (re.compile(r"^(100\.396\.101|100\.396\.104)"), PaymentStatus.CANCELLED),
)


def map_result_code(code: str) -> PaymentStatus:
    """Map an OPPWA result code onto PaymentStatus."""
    for pattern, status in HYPERPAY_RESULT_PATTERNS:
        if pattern.match(code):
            return status
    return PaymentStatus.FAILED


def _notification_body(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    """Webhooks wrap the transaction in {"type": ..., "payload": {...}}."""
    inner = payload.get("payload")
    return inner if isinstance(inner, Mapping) else payload


class HyperPayAdapter(BaseAdapter):
    """HyperPay implementation of the PaymentAdapter protocol."""

    gateway = GatewayId.HYPERPAY
    default_currency = Currency.SAR
    link_ttl = timedelta(minutes=45)
    required_credentials = ("api_key", "merchant_id")

    def _checkout_url(
        self, config: AdapterConfig, request: ResolvedPaymentRequest, transaction_id: str
    ) -> str:
        base = HYPERPAY_SANDBOX_URL if config.is_sandbox else HYPERPAY_PRODUCTION_URL
        query = urlencode({"checkoutId": transaction_id, "entityId": config.merchant_id or ""})
        return f"{base}/v1/paymentWidgets.js?{query}"

    async def handle_callback(
        self, payload: Mapping[str, Any], headers: Mapping[str, str]
    ) -> PaymentCallbackResponse:
        """Map a HyperPay payment notification."""
        self._ensure_initialized()
        body = _notification_body(payload)
        result = body.get("result")
        code = str(result.get("code", "")) if isinstance(result, Mapping) else ""
        status = map_result_code(code)

        return PaymentCallbackResponse(
            transaction_id=str(body.get("merchantTransactionId", "")),
            status=status,
            amount=to_decimal(body.get("amount")),
            currency=to_currency(body.get("currency"), self.default_currency),
            gateway=self.gateway,
            gateway_reference=str(body.get("id", "")),
            paid_at=parse_timestamp(body.get("timestamp"))
            if status == PaymentStatus.SUCCESS
            else None,
        )

    def _expected_signature(self, payload: Mapping[str, Any], secret: str) -> str:
        body = _notification_body(payload)
        message = "|".join(
            [
                str(body["id"]),
                str(body["merchantTransactionId"]),
                str(body["amount"]),
                str(body["currency"]),
                str(body["result"]["code"]),
            ]
        )
        return hmac_hex(secret, message)
