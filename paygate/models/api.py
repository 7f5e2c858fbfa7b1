"""
API Models - Pydantic models for request/response validation.

NO DICTIONARIES - All data structures are strongly typed.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

AUTO = "AUTO"


class Region(str, Enum):
    """Market regions the orchestrator routes for."""

    EGYPT = "EGYPT"
    UAE = "UAE"
    KSA = "KSA"


class Currency(str, Enum):
    """ISO 4217 currencies accepted by the unified contract."""

    EGP = "EGP"
    AED = "AED"
    SAR = "SAR"
    USD = "USD"


class GatewayId(str, Enum):
    """Gateway identifiers used in routing tables."""

    PAYMOB = "PAYMOB"
    FAWRY = "FAWRY"
    PAYTABS = "PAYTABS"
    HYPERPAY = "HYPERPAY"
    STC_PAY = "STC_PAY"
    MADA = "MADA"
    APPLE_PAY = "APPLE_PAY"  # routable in KSA tables, no adapter


# Gateways backed by an adapter implementation
SUPPORTED_GATEWAYS: tuple[GatewayId, ...] = (
    GatewayId.PAYMOB,
    GatewayId.FAWRY,
    GatewayId.PAYTABS,
    GatewayId.HYPERPAY,
    GatewayId.STC_PAY,
    GatewayId.MADA,
)


class PaymentStatus(str, Enum):
    """Normalized payment status - every provider vocabulary maps onto these."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"


class PayoutDestinationType(str, Enum):
    """Where a payout is delivered."""

    WALLET = "wallet"
    BANK_ACCOUNT = "bank_account"


def _upper(value: Any) -> Any:
    """Normalize selector strings so 'ksa' and ' KSA ' both parse."""
    if isinstance(value, str):
        return value.strip().upper()
    return value


# ============================================================================
# Payment Creation Models
# ============================================================================


class CustomerInfo(BaseModel):
    """Customer details forwarded to the provider's checkout."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=32)


class UnifiedPaymentContract(BaseModel):
    """POST /create request body - gateway-agnostic payment request."""

    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    currency: Currency | Literal["AUTO"] = AUTO
    region: Region | Literal["AUTO"] = AUTO
    customer: CustomerInfo
    order_id: str = Field(..., min_length=1, max_length=128)
    description: str | None = Field(None, max_length=500)
    metadata: dict[str, str] = Field(default_factory=dict)
    return_url: str | None = Field(None, max_length=2048)
    preferred_gateway: GatewayId | None = None
    idempotency_key: str | None = Field(None, min_length=1, max_length=255)

    @field_validator("currency", "region", "preferred_gateway", mode="before")
    @classmethod
    def normalize_selector(cls, v: Any) -> Any:
        """Selectors are case-insensitive."""
        return _upper(v)


class PaymentCreateResponse(BaseModel):
    """Result of creating a payment with a gateway."""

    status: PaymentStatus
    transaction_id: str
    payment_url: str
    gateway: GatewayId
    expires_at: datetime
    amount: Decimal
    currency: Currency
    region: Region


class PaymentCallbackResponse(BaseModel):
    """Normalized provider webhook or status-probe result."""

    transaction_id: str
    status: PaymentStatus
    amount: Decimal
    currency: Currency
    gateway: GatewayId
    gateway_reference: str
    paid_at: datetime | None = None


# ============================================================================
# Refund Models
# ============================================================================


class RefundRequest(BaseModel):
    """POST /refund request body."""

    transaction_id: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    currency: Currency | None = None
    reason: str | None = Field(None, max_length=500)
    gateway: GatewayId | None = None
    idempotency_key: str | None = Field(None, min_length=1, max_length=255)

    @field_validator("currency", "gateway", mode="before")
    @classmethod
    def normalize_codes(cls, v: Any) -> Any:
        """Codes are case-insensitive."""
        return _upper(v)


class RefundResponse(BaseModel):
    """Result of a refund request."""

    refund_id: str
    transaction_id: str
    status: PaymentStatus
    amount: Decimal
    currency: Currency
    gateway: GatewayId


# ============================================================================
# Payout Models
# ============================================================================


class PayoutDestination(BaseModel):
    """Beneficiary of a payout."""

    type: PayoutDestinationType
    account: str = Field(..., min_length=1, max_length=64, description="Wallet phone or IBAN")
    name: str = Field(..., min_length=1, max_length=255)
    bank_code: str | None = Field(None, max_length=32)


class PayoutRequest(BaseModel):
    """POST /payout request body."""

    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    currency: Currency
    destination: PayoutDestination
    description: str | None = Field(None, max_length=500)
    idempotency_key: str | None = Field(None, min_length=1, max_length=255)

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v: Any) -> Any:
        """Currency codes are case-insensitive."""
        return _upper(v)


class PayoutResponse(BaseModel):
    """Result of a payout request."""

    payout_id: str
    status: PaymentStatus
    amount: Decimal
    currency: Currency
    gateway: GatewayId
    destination_account: str


# ============================================================================
# Routing Configuration Models
# ============================================================================


class RegionRouting(BaseModel):
    """Routing table entry for one region."""

    currency: Currency
    gateways: list[GatewayId]
    fallback: GatewayId


class PaymentRoutingConfig(BaseModel):
    """Region routing tables plus the gateway priority weights used to rank them."""

    default_region: Region
    regions: dict[Region, RegionRouting]
    priorities: dict[GatewayId, int]


class GatewayListResponse(BaseModel):
    """GET /gateways/{region} payload."""

    region: Region
    gateways: list[GatewayId]


class IdempotencyKeyResponse(BaseModel):
    """POST /idempotency-key payload."""

    idempotency_key: str


# ============================================================================
# Envelope Models
# ============================================================================


class SuccessResponse(BaseModel):
    """Envelope for successful responses."""

    success: Literal[True] = True
    data: Any = None


class ErrorResponse(BaseModel):
    """Envelope for failed responses."""

    success: Literal[False] = False
    error: str
    code: str
