"""
Paymob Adapter - Egypt card and wallet acceptance via Paymob Accept.

Callbacks are "processed" transaction webhooks: {"type": "TRANSACTION", "obj": {...}}.
Signature is Paymob's HMAC-SHA512 over a fixed list of transaction fields.
"""

import hashlib
from collections.abc import Mapping
from datetime import timedelta
from typing import Any
from urllib.parse import urlencode

from paygate.models.api import (
    Currency,
    GatewayId,
    PaymentCallbackResponse,
    PaymentStatus,
    PayoutRequest,
    PayoutResponse,
)
from paygate.models.domain import AdapterConfig, ResolvedPaymentRequest
from paygate.services.payment_adapter import (
    BaseAdapter,
    hmac_hex,
    parse_timestamp,
    to_currency,
    to_decimal,
)

PAYMOB_BASE_URL = "https://accept.paymob.com"

# Order matters: Paymob concatenates these values in exactly this sequence
PAYMOB_HMAC_FIELDS = (
    "amount_cents",
    "created_at",
    "currency",
    "error_occured",
    "has_parent_transaction",
    "id",
    "integration_id",
    "is_3d_secure",
    "is_auth",
    "is_capture",
    "is_refunded",
    "is_standalone_payment",
    "is_voided",
    "order.id",
    "owner",
    "pending",
    "source_data.pan",
    "source_data.sub_type",
    "source_data.type",
    "success",
)


def _lookup(obj: Mapping[str, Any], dotted: str) -> Any:
    """Resolve 'order.id' style paths; KeyError when absent."""
    value: Any = obj
    for part in dotted.split("."):
        value = value[part]
    return value


def _hmac_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flag(value: Any) -> bool:
    """Paymob sends booleans as JSON booleans in webhooks and strings in redirects."""
    if isinstance(value, bool):
        return value
    return str(value).lower() == "true"


class PaymobAdapter(BaseAdapter):
    """Paymob Accept implementation of the PaymentAdapter protocol."""

    gateway = GatewayId.PAYMOB
    default_currency = Currency.EGP
    link_ttl = timedelta(minutes=60)
    required_credentials = ("api_key", "integration_id", "iframe_id", "webhook_secret")

    def _checkout_url(
        self, config: AdapterConfig, request: ResolvedPaymentRequest, transaction_id: str
    ) -> str:
        iframe_id = config.iframe_id or "0"
        query = urlencode({"payment_token": transaction_id})
        return f"{PAYMOB_BASE_URL}/api/acceptance/iframes/{iframe_id}?{query}"

    async def handle_callback(
        self, payload: Mapping[str, Any], headers: Mapping[str, str]
    ) -> PaymentCallbackResponse:
        """Map a Paymob transaction webhook."""
        self._ensure_initialized()
        obj = payload.get("obj")
        if not isinstance(obj, Mapping):
            obj = payload

        order = obj.get("order")
        merchant_order_id = order.get("merchant_order_id") if isinstance(order, Mapping) else None
        transaction_id = str(merchant_order_id or obj.get("merchant_order_id") or "")

        status = self._map_status(obj)
        amount_cents = to_decimal(obj.get("amount_cents"))

        return PaymentCallbackResponse(
            transaction_id=transaction_id,
            status=status,
            amount=amount_cents / 100,
            currency=to_currency(obj.get("currency"), self.default_currency),
            gateway=self.gateway,
            gateway_reference=str(obj.get("id", "")),
            paid_at=parse_timestamp(obj.get("created_at"))
            if status == PaymentStatus.SUCCESS
            else None,
        )

    @staticmethod
    def _map_status(obj: Mapping[str, Any]) -> PaymentStatus:
        if _flag(obj.get("is_voided")) or _flag(obj.get("is_refunded")):
            return PaymentStatus.CANCELLED
        if _flag(obj.get("success")):
            return PaymentStatus.SUCCESS
        if _flag(obj.get("pending")):
            return PaymentStatus.PENDING
        return PaymentStatus.FAILED

    def _expected_signature(self, payload: Mapping[str, Any], secret: str) -> str:
        obj = payload.get("obj", payload)
        message = "".join(_hmac_value(_lookup(obj, name)) for name in PAYMOB_HMAC_FIELDS)
        return hmac_hex(secret, message, hashlib.sha512)

    async def payout(self, request: PayoutRequest) -> PayoutResponse:
        """Paymob disbursements to wallets and bank accounts."""
        self._ensure_initialized()
        return self._payout_response(request)
