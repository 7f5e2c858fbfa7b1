"""
Payment Adapter Protocol - Gateway-agnostic interface.

NO DICTIONARIES - All data uses strongly typed models. Provider webhook
payloads are the one exception: they arrive as raw JSON mappings and each
adapter is responsible for mapping them onto PaymentCallbackResponse.
"""

import hashlib
import hmac
import secrets
import time
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Protocol

from structlog import get_logger

from paygate.exceptions import (
    AdapterConfigurationError,
    AdapterNotInitializedError,
    CapabilityNotImplementedError,
)
from paygate.models.api import (
    Currency,
    GatewayId,
    PaymentCallbackResponse,
    PaymentCreateResponse,
    PaymentStatus,
    PayoutRequest,
    PayoutResponse,
    RefundRequest,
    RefundResponse,
)
from paygate.models.domain import AdapterConfig, ResolvedPaymentRequest

logger = get_logger(__name__)

TRANSACTION_PREFIX = "TX"
REFUND_PREFIX = "RF"
PAYOUT_PREFIX = "PO"


def _utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


def gateway_token(gateway: GatewayId) -> str:
    """Transaction-id segment for a gateway; underscores would split the id."""
    return gateway.value.replace("_", "")


def generate_transaction_id(prefix: str, gateway: GatewayId) -> str:
    """
    Build {prefix}_{gateway}_{timestampMs}_{random}.

    The gateway token is always the second underscore-delimited segment, which
    is how refunds and status probes recover the owning adapter.
    """
    timestamp_ms = int(time.time() * 1000)
    return f"{prefix}_{gateway_token(gateway)}_{timestamp_ms}_{secrets.token_hex(4)}"


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Parse a provider amount without raising; NaN and Infinity fall back to default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default
    return result if result.is_finite() else default


def to_currency(value: Any, default: Currency) -> Currency:
    """Parse a provider currency code without raising."""
    if isinstance(value, str):
        try:
            return Currency(value.strip().upper())
        except ValueError:
            return default
    return default


def parse_timestamp(value: Any) -> datetime | None:
    """Parse ISO-8601 strings or epoch milliseconds; None when unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def hmac_hex(secret: str, message: str, digestmod: Any = hashlib.sha256) -> str:
    """Hex HMAC of a canonical string."""
    return hmac.new(secret.encode(), message.encode(), digestmod).hexdigest()


def signatures_match(expected: str, provided: str) -> bool:
    """Constant-time, case-insensitive hex comparison."""
    return hmac.compare_digest(expected.lower(), provided.strip().lower())


class PaymentAdapter(Protocol):
    """
    Payment adapter protocol.

    Every gateway (Paymob, Fawry, PayTabs, HyperPay, STC Pay, mada) implements
    this interface so the orchestrator stays provider-agnostic.
    """

    gateway: GatewayId

    def initialize(self, config: AdapterConfig) -> None:
        """
        Store credentials. Must be called before any capability.

        Raises:
            AdapterConfigurationError: If required credentials are missing in production
        """
        ...

    async def create_payment(self, request: ResolvedPaymentRequest) -> PaymentCreateResponse:
        """
        Create a payment and return the hosted checkout link.

        Raises:
            AdapterNotInitializedError: If initialize() has not been called
        """
        ...

    async def handle_callback(
        self, payload: Mapping[str, Any], headers: Mapping[str, str]
    ) -> PaymentCallbackResponse:
        """Map a provider webhook onto the normalized shape. Unknown statuses map to FAILED."""
        ...

    def verify_signature(self, payload: Mapping[str, Any], signature: str) -> bool:
        """Recompute the provider signature. False (never raises) without a secret."""
        ...

    async def refund(self, request: RefundRequest) -> RefundResponse:
        """Refund a captured payment."""
        ...

    async def payout(self, request: PayoutRequest) -> PayoutResponse:
        """
        Send money to a beneficiary.

        Raises:
            CapabilityNotImplementedError: If the gateway offers no payouts
        """
        ...

    async def get_transaction_status(self, transaction_id: str) -> PaymentCallbackResponse:
        """Best-effort status probe."""
        ...

    async def health_check(self) -> bool:
        """True iff initialized with a configuration."""
        ...


class BaseAdapter:
    """
    Shared bookkeeping for all gateway adapters.

    Subclasses set the class attributes and implement _checkout_url,
    handle_callback and _expected_signature.
    """

    gateway: ClassVar[GatewayId]
    default_currency: ClassVar[Currency]
    link_ttl: ClassVar[timedelta]
    required_credentials: ClassVar[tuple[str, ...]] = ()

    def __init__(self) -> None:
        self._config: AdapterConfig | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, config: AdapterConfig) -> None:
        """Store the configuration once, validating credentials in production."""
        missing = [name for name in self.required_credentials if not getattr(config, name)]
        if missing:
            if not config.is_sandbox:
                raise AdapterConfigurationError(self.gateway.value, missing)
            logger.warning(
                "adapter_credentials_missing",
                gateway=self.gateway.value,
                missing=missing,
                environment=config.environment,
            )
        self._config = config
        logger.info(
            "adapter_initialized", gateway=self.gateway.value, environment=config.environment
        )

    def _ensure_initialized(self) -> AdapterConfig:
        if self._config is None:
            raise AdapterNotInitializedError(self.gateway.value)
        return self._config

    @property
    def signing_secret(self) -> str | None:
        """Secret used for callback signatures; webhook secret first."""
        if self._config is None:
            return None
        return self._config.webhook_secret or self._config.secret_key

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    async def create_payment(self, request: ResolvedPaymentRequest) -> PaymentCreateResponse:
        """Issue a transaction id and a checkout link valid for this gateway's link_ttl."""
        config = self._ensure_initialized()
        transaction_id = generate_transaction_id(TRANSACTION_PREFIX, self.gateway)
        expires_at = _utc_now() + self.link_ttl

        response = PaymentCreateResponse(
            status=PaymentStatus.PENDING,
            transaction_id=transaction_id,
            payment_url=self._checkout_url(config, request, transaction_id),
            gateway=self.gateway,
            expires_at=expires_at,
            amount=request.amount,
            currency=request.currency,
            region=request.region,
        )

        logger.info(
            "gateway_payment_created",
            gateway=self.gateway.value,
            transaction_id=transaction_id,
            order_id=request.order_id,
            amount=str(request.amount),
            currency=request.currency.value,
        )
        return response

    def verify_signature(self, payload: Mapping[str, Any], signature: str) -> bool:
        """Fail-closed signature check."""
        secret = self.signing_secret
        if not secret or not signature:
            return False
        try:
            expected = self._expected_signature(payload, secret)
        except (KeyError, TypeError, ValueError, AttributeError, ArithmeticError) as exc:
            logger.warning(
                "signature_payload_malformed", gateway=self.gateway.value, error=str(exc)
            )
            return False
        return signatures_match(expected, signature)

    async def refund(self, request: RefundRequest) -> RefundResponse:
        """Submit a refund; the provider settles it asynchronously."""
        self._ensure_initialized()
        refund_id = generate_transaction_id(REFUND_PREFIX, self.gateway)
        logger.info(
            "gateway_refund_submitted",
            gateway=self.gateway.value,
            refund_id=refund_id,
            transaction_id=request.transaction_id,
            amount=str(request.amount),
        )
        return RefundResponse(
            refund_id=refund_id,
            transaction_id=request.transaction_id,
            status=PaymentStatus.PENDING,
            amount=request.amount,
            currency=request.currency or self.default_currency,
            gateway=self.gateway,
        )

    async def payout(self, request: PayoutRequest) -> PayoutResponse:
        """Payouts are opt-in per gateway."""
        self._ensure_initialized()
        raise CapabilityNotImplementedError(self.gateway.value, "payout")

    async def get_transaction_status(self, transaction_id: str) -> PaymentCallbackResponse:
        """Placeholder probe: no provider query is made, so the answer is never final."""
        self._ensure_initialized()
        return PaymentCallbackResponse(
            transaction_id=transaction_id,
            status=PaymentStatus.PENDING,
            amount=Decimal("0"),
            currency=self.default_currency,
            gateway=self.gateway,
            gateway_reference="",
        )

    async def health_check(self) -> bool:
        """True iff initialized."""
        return self._config is not None

    # ------------------------------------------------------------------
    # Provider hooks
    # ------------------------------------------------------------------

    def _checkout_url(
        self, config: AdapterConfig, request: ResolvedPaymentRequest, transaction_id: str
    ) -> str:
        raise NotImplementedError

    def _expected_signature(self, payload: Mapping[str, Any], secret: str) -> str:
        raise NotImplementedError

    def _payout_response(self, request: PayoutRequest) -> PayoutResponse:
        """Shared payout bookkeeping for gateways that support disbursements."""
        payout_id = generate_transaction_id(PAYOUT_PREFIX, self.gateway)
        logger.info(
            "gateway_payout_submitted",
            gateway=self.gateway.value,
            payout_id=payout_id,
            amount=str(request.amount),
            currency=request.currency.value,
            destination_type=request.destination.type.value,
        )
        return PayoutResponse(
            payout_id=payout_id,
            status=PaymentStatus.PENDING,
            amount=request.amount,
            currency=request.currency,
            gateway=self.gateway,
            destination_account=request.destination.account,
        )
