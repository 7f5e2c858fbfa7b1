"""
Payment Router - Region, currency and gateway resolution.

Pure resolution logic with no I/O. The routing table is mutable at runtime
through update_config().
"""

from structlog import get_logger

from paygate.models.api import (
    AUTO,
    SUPPORTED_GATEWAYS,
    Currency,
    GatewayId,
    PaymentRoutingConfig,
    Region,
    RegionRouting,
)
from paygate.models.domain import ResolvedRoute

logger = get_logger(__name__)

CURRENCY_REGIONS: dict[Currency, Region] = {
    Currency.EGP: Region.EGYPT,
    Currency.AED: Region.UAE,
    Currency.SAR: Region.KSA,
}


def default_routing_config(default_region: Region = Region.EGYPT) -> PaymentRoutingConfig:
    """Routing table shipped with the service."""
    return PaymentRoutingConfig(
        default_region=default_region,
        regions={
            Region.EGYPT: RegionRouting(
                currency=Currency.EGP,
                gateways=[GatewayId.PAYMOB, GatewayId.FAWRY],
                fallback=GatewayId.PAYMOB,
            ),
            Region.UAE: RegionRouting(
                currency=Currency.AED,
                gateways=[GatewayId.PAYTABS, GatewayId.HYPERPAY],
                fallback=GatewayId.PAYTABS,
            ),
            Region.KSA: RegionRouting(
                currency=Currency.SAR,
                gateways=[
                    GatewayId.STC_PAY,
                    GatewayId.MADA,
                    GatewayId.HYPERPAY,
                    GatewayId.PAYTABS,
                    GatewayId.APPLE_PAY,
                ],
                fallback=GatewayId.MADA,
            ),
        },
        priorities={
            GatewayId.PAYMOB: 100,
            GatewayId.FAWRY: 90,
            GatewayId.STC_PAY: 100,
            GatewayId.MADA: 95,
            GatewayId.HYPERPAY: 90,
            GatewayId.PAYTABS: 100,
            GatewayId.APPLE_PAY: 80,
        },
    )


class PaymentRouter:
    """Resolves AUTO selectors and ranks gateways by configured priority."""

    def __init__(self, config: PaymentRoutingConfig | None = None) -> None:
        self._config = config.model_copy(deep=True) if config else default_routing_config()

    def resolve_region(self, selector: Region | str) -> Region:
        """AUTO -> configured default region; explicit regions pass through."""
        if selector == AUTO:
            return self._config.default_region
        return Region(selector)

    def resolve_currency(self, selector: Currency | str, region: Region) -> Currency:
        """AUTO -> the region's default currency; explicit currencies pass through."""
        if selector == AUTO:
            return self._region_routing(region).currency
        return Currency(selector)

    def resolve(
        self,
        region: Region | str,
        currency: Currency | str,
        preferred: GatewayId | str | None = None,
    ) -> ResolvedRoute:
        """Resolve both selectors, then pick the gateway for the resolved region."""
        resolved_region = self.resolve_region(region)
        return ResolvedRoute(
            region=resolved_region,
            currency=self.resolve_currency(currency, resolved_region),
            gateway=self.select_gateway(resolved_region, preferred),
        )

    def get_available_gateways(self, region: Region | str) -> list[GatewayId]:
        """Region's gateways sorted by descending priority; ties keep configured order."""
        routing = self._region_routing(region)
        priorities = self._config.priorities
        # sorted() is stable, so equal weights keep their configured order
        return sorted(routing.gateways, key=lambda g: priorities.get(g, 0), reverse=True)

    def select_gateway(
        self, region: Region | str, preferred: GatewayId | str | None = None
    ) -> GatewayId:
        """Preferred if available, else highest priority, else the region's fallback."""
        available = self.get_available_gateways(region)
        if preferred is not None and preferred in available:
            return GatewayId(preferred)
        if available:
            return available[0]
        fallback = self._region_routing(region).fallback
        logger.warning("gateway_fallback_used", region=str(region), gateway=fallback.value)
        return fallback

    def is_gateway_supported(self, gateway: GatewayId | str, region: Region | str) -> bool:
        """True when the gateway has an adapter and is routable in the region."""
        if gateway not in SUPPORTED_GATEWAYS:
            return False
        routing = self._region_routing(region)
        return gateway in routing.gateways or gateway == routing.fallback

    def currencies_for_gateway(self, gateway: GatewayId | str) -> list[Currency]:
        """Currencies of every region that routes to the gateway, in table order."""
        currencies: list[Currency] = []
        for routing in self._config.regions.values():
            routed = gateway in routing.gateways or gateway == routing.fallback
            if routed and routing.currency not in currencies:
                currencies.append(routing.currency)
        return currencies

    @staticmethod
    def region_for_currency(currency: Currency | str) -> Region:
        """Payout routing: EGP->EGYPT, AED->UAE, SAR->KSA, anything else->KSA."""
        try:
            return CURRENCY_REGIONS.get(Currency(currency), Region.KSA)
        except ValueError:
            return Region.KSA

    def get_config(self) -> PaymentRoutingConfig:
        """Copy of the current routing table."""
        return self._config.model_copy(deep=True)

    def update_config(
        self,
        default_region: Region | None = None,
        regions: dict[Region, RegionRouting] | None = None,
        priorities: dict[GatewayId, int] | None = None,
    ) -> PaymentRoutingConfig:
        """Merge changes into the routing table and return the result."""
        merged_regions = dict(self._config.regions)
        if regions:
            merged_regions.update(regions)
        merged_priorities = dict(self._config.priorities)
        if priorities:
            merged_priorities.update(priorities)

        self._config = PaymentRoutingConfig(
            default_region=default_region or self._config.default_region,
            regions=merged_regions,
            priorities=merged_priorities,
        )
        logger.info(
            "routing_config_updated",
            default_region=self._config.default_region.value,
            regions=[r.value for r in self._config.regions],
        )
        return self.get_config()

    def _region_routing(self, region: Region | str) -> RegionRouting:
        """Unknown regions fall back to the default region's table."""
        try:
            routing = self._config.regions.get(Region(region))
        except ValueError:
            routing = None
        if routing is None:
            return self._config.regions[self._config.default_region]
        return routing
