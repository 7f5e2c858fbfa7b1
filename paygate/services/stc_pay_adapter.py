"""
STC Pay Adapter - Saudi mobile wallet.

Wallet payments are confirmed by OTP on the customer's phone, so payment
links are short-lived. STC Pay also supports wallet-to-wallet payouts.
"""

from collections.abc import Mapping
from datetime import timedelta
from typing import Any
from urllib.parse import urlencode

from paygate.exceptions import CapabilityNotImplementedError
from paygate.models.api import (
    Currency,
    GatewayId,
    PaymentCallbackResponse,
    PaymentStatus,
    PayoutDestinationType,
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

STC_PAY_SANDBOX_URL = "https://b2btest.stcpay.com.sa"
STC_PAY_PRODUCTION_URL = "https://b2b.stcpay.com.sa"

# PaymentStatus arrives either as a number or as its description
STC_PAY_STATUS_MAP = {
    "1": PaymentStatus.PENDING,
    "2": PaymentStatus.SUCCESS,
    "3": PaymentStatus.CANCELLED,
    "4": PaymentStatus.CANCELLED,  # expired
    "PENDING": PaymentStatus.PENDING,
    "PAID": PaymentStatus.SUCCESS,
    "CANCELLED": PaymentStatus.CANCELLED,
    "EXPIRED": PaymentStatus.CANCELLED,
}


class StcPayAdapter(BaseAdapter):
    """STC Pay implementation of the PaymentAdapter protocol."""

    gateway = GatewayId.STC_PAY
    default_currency = Currency.SAR
    link_ttl = timedelta(minutes=15)
    required_credentials = ("merchant_id", "api_key")

    def _checkout_url(
        self, config: AdapterConfig, request: ResolvedPaymentRequest, transaction_id: str
    ) -> str:
        base = STC_PAY_SANDBOX_URL if config.is_sandbox else STC_PAY_PRODUCTION_URL
        params = {
            "MerchantId": config.merchant_id or "",
            "RefNum": transaction_id,
            "Amount": f"{request.amount:.2f}",
        }
        if request.customer.phone:
            params["MobileNo"] = request.customer.phone
        return f"{base}/DirectPayment/V4/Pay?{urlencode(params)}"

    async def handle_callback(
        self, payload: Mapping[str, Any], headers: Mapping[str, str]
    ) -> PaymentCallbackResponse:
        """Map an STC Pay payment notification."""
        self._ensure_initialized()
        raw_status = str(payload.get("PaymentStatus", payload.get("PaymentStatusDesc", "")))
        status = STC_PAY_STATUS_MAP.get(raw_status.strip().upper(), PaymentStatus.FAILED)

        return PaymentCallbackResponse(
            transaction_id=str(payload.get("RefNum", "")),
            status=status,
            amount=to_decimal(payload.get("Amount")),
            currency=to_currency(payload.get("Currency"), self.default_currency),
            gateway=self.gateway,
            gateway_reference=str(payload.get("STCPayRefNum", "")),
            paid_at=parse_timestamp(payload.get("PaymentDate"))
            if status == PaymentStatus.SUCCESS
            else None,
        )

    def _expected_signature(self, payload: Mapping[str, Any], secret: str) -> str:
        message = "".join(
            str(payload[name]) for name in ("RefNum", "STCPayRefNum", "Amount", "PaymentStatus")
        )
        return hmac_hex(secret, message)

    async def payout(self, request: PayoutRequest) -> PayoutResponse:
        """Wallet-to-wallet disbursement; bank transfers are not offered."""
        self._ensure_initialized()
        if request.destination.type != PayoutDestinationType.WALLET:
            raise CapabilityNotImplementedError(
                self.gateway.value, f"payout to {request.destination.type.value}"
            )
        return self._payout_response(request)
