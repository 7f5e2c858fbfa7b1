"""
Domain Models - Internal business logic models using dataclasses.

NO DICTIONARIES - All data structures are strongly typed immutable dataclasses.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from paygate.models.api import AUTO, Currency, CustomerInfo, GatewayId, Region


@dataclass(frozen=True)
class AdapterConfig:
    """Credentials and environment handed to an adapter at initialize()."""

    gateway: GatewayId
    environment: str
    api_key: str | None = None
    secret_key: str | None = None
    merchant_id: str | None = None
    webhook_secret: str | None = None
    iframe_id: str | None = None
    integration_id: str | None = None
    callback_url: str | None = None

    def __post_init__(self) -> None:
        """Validate environment."""
        if self.environment not in ("sandbox", "production"):
            raise ValueError(f"Invalid payment environment: {self.environment}")

    @property
    def is_sandbox(self) -> bool:
        """True when the adapter should target provider test endpoints."""
        return self.environment == "sandbox"


@dataclass(frozen=True)
class ResolvedRoute:
    """Outcome of region -> currency -> gateway resolution."""

    region: Region
    currency: Currency
    gateway: GatewayId


@dataclass(frozen=True)
class ResolvedPaymentRequest:
    """
    Unified contract after selector resolution.

    This is the only payment shape adapters see, so AUTO can never reach them.
    """

    amount: Decimal
    currency: Currency
    region: Region
    customer: CustomerInfo
    order_id: str
    description: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    return_url: str | None = None

    def __post_init__(self) -> None:
        """Validate resolved payment constraints."""
        if self.amount <= 0:
            raise ValueError(f"Payment amount must be positive: {self.amount}")
        if self.currency == AUTO or not isinstance(self.currency, Currency):
            raise ValueError(
                f"Currency must be resolved before reaching an adapter: {self.currency}"
            )
        if self.region == AUTO or not isinstance(self.region, Region):
            raise ValueError(f"Region must be resolved before reaching an adapter: {self.region}")


@dataclass(frozen=True)
class IdempotencyEntry:
    """Stored first response for an idempotency key."""

    key: str
    response: Any
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """An entry is absent from the instant it expires."""
        return now >= self.expires_at
