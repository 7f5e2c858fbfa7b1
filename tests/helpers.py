"""
Shared test helpers: a controllable clock and fully populated adapter configs.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from paygate.models.api import GatewayId
from paygate.models.domain import AdapterConfig

WEBHOOK_SECRET = "whsec_test_secret"
SECRET_KEY = "sk_test_secret"


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_adapter_config(
    gateway: GatewayId, environment: str = "sandbox", **overrides: Any
) -> AdapterConfig:
    """AdapterConfig with every credential populated."""
    values: dict[str, Any] = {
        "api_key": "api_test_key",
        "secret_key": SECRET_KEY,
        "merchant_id": "merchant_test",
        "webhook_secret": WEBHOOK_SECRET,
        "iframe_id": "12345",
        "integration_id": "67890",
        "callback_url": f"http://test/callback/{gateway.value}",
    }
    values.update(overrides)
    return AdapterConfig(gateway=gateway, environment=environment, **values)
