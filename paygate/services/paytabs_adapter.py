"""
PayTabs Adapter - Gulf card processing for UAE and KSA.
"""

from collections.abc import Mapping
from datetime import timedelta
from typing import Any
from urllib.parse import urlencode

from paygate.models.api import (
    Currency,
    GatewayId,
    PaymentCallbackResponse,
    PaymentStatus,
    Region,
)
from paygate.models.domain import AdapterConfig, ResolvedPaymentRequest
from paygate.services.payment_adapter import (
    BaseAdapter,
    hmac_hex,
    parse_timestamp,
    to_currency,
    to_decimal,
)

# PayTabs runs a separate domain per region
PAYTABS_REGION_URLS = {
    Region.KSA: "https://secure.paytabs.sa",
    Region.UAE: "https://secure.paytabs.com",
    Region.EGYPT: "https://secure-egypt.paytabs.com",
}

PAYTABS_STATUS_MAP = {
    "A": PaymentStatus.SUCCESS,  # authorised
    "H": PaymentStatus.PENDING,  # on hold
    "P": PaymentStatus.PENDING,
    "V": PaymentStatus.CANCELLED,  # voided
    "E": PaymentStatus.FAILED,
    "D": PaymentStatus.FAILED,
    "X": PaymentStatus.FAILED,
}


class PayTabsAdapter(BaseAdapter):
    """PayTabs implementation of the PaymentAdapter protocol."""

    gateway = GatewayId.PAYTABS
    default_currency = Currency.AED
    link_ttl = timedelta(minutes=30)
    required_credentials = ("merchant_id", "secret_key")

    def _checkout_url(
        self, config: AdapterConfig, request: ResolvedPaymentRequest, transaction_id: str
    ) -> str:
        base = PAYTABS_REGION_URLS[request.region]
        query = urlencode({"profile_id": config.merchant_id or "", "cart_id": transaction_id})
        return f"{base}/payment/page/{transaction_id}?{query}"

    async def handle_callback(
        self, payload: Mapping[str, Any], headers: Mapping[str, str]
    ) -> PaymentCallbackResponse:
        """Map a PayTabs IPN body or return-page post."""
        self._ensure_initialized()
        result = payload.get("payment_result")
        if not isinstance(result, Mapping):
            result = {}

        raw_status = str(result.get("response_status") or payload.get("respStatus") or "")
        status = PAYTABS_STATUS_MAP.get(raw_status.upper(), PaymentStatus.FAILED)

        return PaymentCallbackResponse(
            transaction_id=str(payload.get("cart_id") or payload.get("cartId") or ""),
            status=status,
            amount=to_decimal(payload.get("cart_amount", payload.get("tran_total"))),
            currency=to_currency(payload.get("cart_currency"), self.default_currency),
            gateway=self.gateway,
            gateway_reference=str(payload.get("tran_ref") or payload.get("tranRef") or ""),
            paid_at=parse_timestamp(result.get("transaction_time"))
            if status == PaymentStatus.SUCCESS
            else None,
        )

    def _expected_signature(self, payload: Mapping[str, Any], secret: str) -> str:
        fields = sorted(
            (key, str(value))
            for key, value in payload.items()
            if key != "signature"
            and isinstance(value, (str, int, float))
            and not isinstance(value, bool)
            and str(value) != ""
        )
        if not fields:
            raise ValueError("no signable fields")
        return hmac_hex(secret, urlencode(fields))
