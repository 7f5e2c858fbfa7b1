"""
Adapter Registry - Lazily constructed, cached adapter per gateway.

Owned by the orchestrator rather than living at module level, so each app
(or test) gets its own cache.
"""

import threading
from collections.abc import Callable, Mapping

from structlog import get_logger

from paygate.config import load_gateway_credentials, settings
from paygate.models.api import SUPPORTED_GATEWAYS, GatewayId
from paygate.models.domain import AdapterConfig
from paygate.services.fawry_adapter import FawryAdapter
from paygate.services.hyperpay_adapter import HyperPayAdapter
from paygate.services.mada_adapter import MadaAdapter
from paygate.services.payment_adapter import PaymentAdapter
from paygate.services.paymob_adapter import PaymobAdapter
from paygate.services.paytabs_adapter import PayTabsAdapter
from paygate.services.stc_pay_adapter import StcPayAdapter

logger = get_logger(__name__)

AdapterFactory = Callable[[], PaymentAdapter]

DEFAULT_ADAPTER_FACTORIES: Mapping[GatewayId, AdapterFactory] = {
    GatewayId.PAYMOB: PaymobAdapter,
    GatewayId.FAWRY: FawryAdapter,
    GatewayId.PAYTABS: PayTabsAdapter,
    GatewayId.HYPERPAY: HyperPayAdapter,
    GatewayId.STC_PAY: StcPayAdapter,
    GatewayId.MADA: MadaAdapter,
}


def build_adapter_config(gateway: GatewayId, environment: str) -> AdapterConfig:
    """Read {PREFIX}_* credentials for a gateway from the environment."""
    credentials = load_gateway_credentials(gateway.value)
    return AdapterConfig(
        gateway=gateway,
        environment=environment,
        api_key=credentials.api_key,
        secret_key=credentials.secret_key,
        merchant_id=credentials.merchant_id,
        webhook_secret=credentials.webhook_secret,
        iframe_id=credentials.iframe_id,
        integration_id=credentials.integration_id,
        callback_url=f"{settings.callback_base_url.rstrip('/')}/callback/{gateway.value}",
    )


class AdapterRegistry:
    """
    Gateway identifier -> initialized adapter instance.

    Usage:
        registry = AdapterRegistry(environment="sandbox")
        adapter = registry.get_adapter(GatewayId.PAYMOB)
        if adapter is None:
            ...  # credentials missing or gateway unknown
    """

    def __init__(
        self,
        environment: str | None = None,
        factories: Mapping[GatewayId, AdapterFactory] | None = None,
        config_loader: Callable[[GatewayId, str], AdapterConfig] = build_adapter_config,
    ) -> None:
        self.environment = environment or settings.payment_environment
        self._factories = dict(factories if factories is not None else DEFAULT_ADAPTER_FACTORIES)
        self._config_loader = config_loader
        self._instances: dict[GatewayId, PaymentAdapter] = {}
        self._lock = threading.Lock()

    @property
    def gateways(self) -> tuple[GatewayId, ...]:
        """Gateways this registry can construct."""
        return tuple(g for g in SUPPORTED_GATEWAYS if g in self._factories)

    def get_adapter(self, gateway: GatewayId | str) -> PaymentAdapter | None:
        """
        Return the cached adapter, constructing it on first use.

        Returns None (never raises) for unknown gateways or when construction
        or initialization fails.
        """
        try:
            gateway_id = GatewayId(gateway)
        except ValueError:
            logger.warning("adapter_unknown_gateway", gateway=str(gateway))
            return None

        factory = self._factories.get(gateway_id)
        if factory is None:
            logger.warning("adapter_not_registered", gateway=gateway_id.value)
            return None

        with self._lock:
            cached = self._instances.get(gateway_id)
            if cached is not None:
                return cached

            try:
                adapter = factory()
                adapter.initialize(self._config_loader(gateway_id, self.environment))
            except Exception as exc:
                logger.error(
                    "adapter_initialization_failed",
                    gateway=gateway_id.value,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                return None

            self._instances[gateway_id] = adapter
            return adapter

    def clear(self) -> None:
        """Drop all cached adapters; the next lookup re-reads credentials."""
        with self._lock:
            self._instances.clear()
