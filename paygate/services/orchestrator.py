"""
Payment Orchestrator - Single entry point for every payment operation.

Validates the unified contract, enforces idempotency, resolves region,
currency and gateway through the router, obtains the adapter from the
registry and delegates with a bounded timeout.
"""

import asyncio
import secrets
import time
from collections.abc import Awaitable, Callable, Mapping
from datetime import timedelta
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from structlog import get_logger

from paygate.config import Settings
from paygate.exceptions import (
    AdapterTimeoutError,
    AdapterUnavailableError,
    CapabilityNotImplementedError,
    ContractValidationError,
    GatewayNotSupportedError,
    PaymentProviderError,
    SignatureVerificationError,
)
from paygate.models.api import (
    SUPPORTED_GATEWAYS,
    GatewayId,
    GatewayListResponse,
    PaymentCallbackResponse,
    PaymentCreateResponse,
    PaymentRoutingConfig,
    PayoutRequest,
    PayoutResponse,
    RefundRequest,
    RefundResponse,
    Region,
    UnifiedPaymentContract,
)
from paygate.models.domain import ResolvedPaymentRequest
from paygate.observability.logging import log_context
from paygate.observability.metrics import metrics
from paygate.observability.tracing import trace_operation
from paygate.services.adapter_registry import AdapterRegistry
from paygate.services.idempotency import IdempotencyStore
from paygate.services.payment_adapter import PaymentAdapter, gateway_token
from paygate.services.payment_router import PaymentRouter, default_routing_config

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
T = TypeVar("T")

DEFAULT_GATEWAY = GatewayId.PAYMOB

# Checked in order; the first non-empty header wins
SIGNATURE_HEADERS = ("x-signature", "hmac", "signature")

_GATEWAY_TOKENS = {gateway_token(g): g for g in SUPPORTED_GATEWAYS}


def generate_idempotency_key() -> str:
    """Server-issued key: IK_{timestampMs}_{random hex}."""
    return f"IK_{int(time.time() * 1000)}_{secrets.token_hex(8)}"


def extract_gateway_from_transaction_id(transaction_id: str) -> GatewayId:
    """
    Recover the owning gateway from the second segment of a transaction id.

    Falls back to PAYMOB when the id is unparseable or names no supported gateway.
    """
    parts = transaction_id.split("_")
    if len(parts) >= 2:
        gateway = _GATEWAY_TOKENS.get(parts[1].upper())
        if gateway is not None:
            return gateway
        # ids minted with the raw identifier, e.g. TX_STC_PAY_...
        if len(parts) >= 3:
            joined = f"{parts[1]}_{parts[2]}".upper()
            for candidate in SUPPORTED_GATEWAYS:
                if candidate.value == joined:
                    return candidate
    return DEFAULT_GATEWAY


def extract_signature(headers: Mapping[str, str]) -> str | None:
    """First non-empty of x-signature, hmac, signature (case-insensitive)."""
    lowered = {key.lower(): value for key, value in headers.items()}
    for name in SIGNATURE_HEADERS:
        value = lowered.get(name)
        if value and value.strip():
            return value.strip()
    return None


def _format_validation_error(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
        for error in exc.errors()
    )


def _validate(model: type[ModelT], payload: Any) -> ModelT:
    """Validate a request body against its contract."""
    if isinstance(payload, model):
        return payload
    if not isinstance(payload, Mapping):
        raise ContractValidationError("request body must be a JSON object")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ContractValidationError(_format_validation_error(exc)) from exc


class PaymentOrchestrator:
    """
    Façade over router, registry and idempotency store.

    Usage:
        orchestrator = PaymentOrchestrator()
        response = await orchestrator.create_payment(body, idempotency_key="IK_...")
    """

    def __init__(
        self,
        router: PaymentRouter | None = None,
        registry: AdapterRegistry | None = None,
        idempotency: IdempotencyStore | None = None,
        adapter_timeout_seconds: float = 30.0,
        require_callback_signature: bool = False,
    ) -> None:
        self.router = router or PaymentRouter()
        self.registry = registry or AdapterRegistry()
        self.idempotency = idempotency or IdempotencyStore()
        self.adapter_timeout_seconds = adapter_timeout_seconds
        self.require_callback_signature = require_callback_signature

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def create_payment(
        self,
        payload: Mapping[str, Any] | UnifiedPaymentContract,
        idempotency_key: str | None = None,
    ) -> PaymentCreateResponse:
        """
        Create a payment with the best gateway for the resolved region.

        Raises:
            ContractValidationError: If the body is not a valid contract
            GatewayNotSupportedError: If the selected gateway cannot serve the region
            AdapterUnavailableError: If the adapter could not be initialized
        """
        contract = _validate(UnifiedPaymentContract, payload)
        key = idempotency_key or contract.idempotency_key

        with trace_operation("create_payment", idempotency_key_present=bool(key)):
            return await self._with_idempotency(
                key, "create_payment", lambda: self._create_payment(contract)
            )

    async def _create_payment(self, contract: UnifiedPaymentContract) -> PaymentCreateResponse:
        route = self.router.resolve(contract.region, contract.currency, contract.preferred_gateway)
        region, currency, gateway = route.region, route.currency, route.gateway

        if not self.router.is_gateway_supported(gateway, region):
            raise GatewayNotSupportedError(gateway.value, region.value)

        adapter = self._require_adapter(gateway)
        request = ResolvedPaymentRequest(
            amount=contract.amount,
            currency=currency,
            region=region,
            customer=contract.customer,
            order_id=contract.order_id,
            description=contract.description,
            metadata=dict(contract.metadata),
            return_url=contract.return_url,
        )

        response = await self._call(gateway, "create_payment", adapter.create_payment(request))
        metrics.record_payment(gateway.value, response.status.value)
        logger.info(
            "payment_created",
            gateway=gateway.value,
            region=region.value,
            currency=currency.value,
            transaction_id=response.transaction_id,
            order_id=contract.order_id,
        )
        return response

    async def handle_callback(
        self,
        gateway: str,
        payload: Mapping[str, Any],
        headers: Mapping[str, str],
    ) -> PaymentCallbackResponse:
        """
        Normalize a provider webhook.

        The signature is only checked when one of the signature headers is
        present; unsigned callbacks are accepted unless require_callback_signature.

        Raises:
            SignatureVerificationError: If a signature is present and invalid,
                or missing while signatures are required
        """
        gateway_id = self._parse_gateway(gateway)
        if not isinstance(payload, Mapping):
            raise ContractValidationError("callback body must be a JSON object")

        with log_context(gateway=gateway_id.value), trace_operation(
            "handle_callback", gateway=gateway_id.value
        ):
            adapter = self._require_adapter(gateway_id)
            signature = extract_signature(headers)

            if signature is not None:
                if not adapter.verify_signature(payload, signature):
                    metrics.record_callback(gateway_id.value, "REJECTED", "invalid")
                    logger.warning("callback_signature_invalid")
                    raise SignatureVerificationError(gateway_id.value)
                signature_state = "verified"
            elif self.require_callback_signature:
                metrics.record_callback(gateway_id.value, "REJECTED", "missing")
                logger.warning("callback_signature_required")
                raise SignatureVerificationError(gateway_id.value, "Missing callback signature")
            else:
                signature_state = "missing"
                logger.warning("callback_signature_missing")

            result = await self._call(
                gateway_id, "handle_callback", adapter.handle_callback(payload, headers)
            )
            metrics.record_callback(gateway_id.value, result.status.value, signature_state)
            logger.info(
                "callback_processed",
                transaction_id=result.transaction_id,
                status=result.status.value,
                signature=signature_state,
            )
            return result

    async def get_transaction_status(
        self, transaction_id: str, gateway: str | None = None
    ) -> PaymentCallbackResponse:
        """Status probe; the gateway is parsed from the id unless given."""
        gateway_id = (
            self._parse_gateway(gateway)
            if gateway
            else extract_gateway_from_transaction_id(transaction_id)
        )
        adapter = self._require_adapter(gateway_id)
        return await self._call(
            gateway_id, "get_transaction_status", adapter.get_transaction_status(transaction_id)
        )

    # ------------------------------------------------------------------
    # Refunds and payouts
    # ------------------------------------------------------------------

    async def refund(
        self,
        payload: Mapping[str, Any] | RefundRequest,
        idempotency_key: str | None = None,
    ) -> RefundResponse:
        """
        Refund through the gateway that owns the transaction.

        Without an explicit currency the gateway's only routed currency is used.

        Raises:
            ContractValidationError: If currency is omitted for a gateway routed
                in several regions
        """
        request = _validate(RefundRequest, payload)
        key = idempotency_key or request.idempotency_key

        with trace_operation("refund", transaction_id=request.transaction_id):
            return await self._with_idempotency(key, "refund", lambda: self._refund(request))

    async def _refund(self, request: RefundRequest) -> RefundResponse:
        gateway = request.gateway or extract_gateway_from_transaction_id(request.transaction_id)
        if gateway not in SUPPORTED_GATEWAYS:
            raise GatewayNotSupportedError(gateway.value)

        if request.currency is None:
            currencies = self.router.currencies_for_gateway(gateway)
            if len(currencies) != 1:
                raise ContractValidationError(
                    f"currency is required for {gateway.value} refunds"
                )
            request = request.model_copy(update={"currency": currencies[0]})

        adapter = self._require_adapter(gateway)
        response = await self._call(gateway, "refund", adapter.refund(request))
        metrics.record_refund(gateway.value)
        logger.info(
            "refund_issued",
            gateway=gateway.value,
            refund_id=response.refund_id,
            transaction_id=request.transaction_id,
        )
        return response

    async def payout(
        self,
        payload: Mapping[str, Any] | PayoutRequest,
        idempotency_key: str | None = None,
    ) -> PayoutResponse:
        """
        Pay out through the top gateway of the currency's region.

        Raises:
            CapabilityNotImplementedError: If that gateway offers no payouts
        """
        request = _validate(PayoutRequest, payload)
        key = idempotency_key or request.idempotency_key

        with trace_operation("payout", currency=request.currency.value):
            return await self._with_idempotency(key, "payout", lambda: self._payout(request))

    async def _payout(self, request: PayoutRequest) -> PayoutResponse:
        region = self.router.region_for_currency(request.currency)
        gateway = self.router.select_gateway(region)
        if not self.router.is_gateway_supported(gateway, region):
            raise GatewayNotSupportedError(gateway.value, region.value)

        adapter = self._require_adapter(gateway)
        try:
            response = await self._call(gateway, "payout", adapter.payout(request))
        except CapabilityNotImplementedError:
            logger.info("payout_not_supported", gateway=gateway.value, region=region.value)
            raise

        metrics.record_payout(gateway.value)
        logger.info(
            "payout_issued",
            gateway=gateway.value,
            payout_id=response.payout_id,
            currency=request.currency.value,
        )
        return response

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_available_gateways(self, region: str) -> GatewayListResponse:
        """Ranked gateways for a region name (case-insensitive)."""
        try:
            region_id = Region(region.strip().upper())
        except ValueError as exc:
            raise ContractValidationError(
                f"Unsupported region: {region}. Expected one of EGYPT, UAE, KSA"
            ) from exc
        return GatewayListResponse(
            region=region_id, gateways=self.router.get_available_gateways(region_id)
        )

    def get_routing_config(self) -> PaymentRoutingConfig:
        """Current routing table."""
        return self.router.get_config()

    async def health_check(self) -> dict[str, bool]:
        """Health of every supported gateway; uninitializable adapters are unhealthy."""
        health: dict[str, bool] = {}
        for gateway in SUPPORTED_GATEWAYS:
            adapter = self.registry.get_adapter(gateway)
            if adapter is None:
                health[gateway.value] = False
                continue
            try:
                health[gateway.value] = await self._call(
                    gateway, "health_check", adapter.health_check()
                )
            except AdapterTimeoutError:
                health[gateway.value] = False
        return health

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _with_idempotency(
        self, key: str | None, operation: str, run: Callable[[], Awaitable[T]]
    ) -> T:
        """Keys are scoped per operation, so one key never crosses response types."""
        if not key:
            return await run()

        response, cached = await self.idempotency.run(f"{operation}:{key}", run)
        if cached:
            metrics.record_idempotency_hit(operation)
            logger.info("idempotency_hit", operation=operation, idempotency_key=key)
        return response

    async def _call(self, gateway: GatewayId, operation: str, call: Awaitable[T]) -> T:
        """
        Await an adapter capability with the configured timeout.

        Raises:
            AdapterTimeoutError: If the call exceeds adapter_timeout_seconds
            PaymentProviderError: If the provider data fails response validation
        """
        start = time.perf_counter()
        try:
            return await asyncio.wait_for(call, timeout=self.adapter_timeout_seconds)
        except TimeoutError as exc:
            metrics.record_error(AdapterTimeoutError.__name__, operation)
            logger.error(
                "adapter_call_timeout",
                gateway=gateway.value,
                operation=operation,
                timeout_seconds=self.adapter_timeout_seconds,
            )
            raise AdapterTimeoutError(
                gateway.value, operation, self.adapter_timeout_seconds
            ) from exc
        except ValidationError as exc:
            metrics.record_error(PaymentProviderError.__name__, operation)
            logger.warning(
                "adapter_payload_malformed",
                gateway=gateway.value,
                operation=operation,
                error=_format_validation_error(exc),
            )
            raise PaymentProviderError(
                f"{gateway.value} {operation} payload could not be normalized"
            ) from exc
        finally:
            metrics.record_adapter_call(gateway.value, operation, time.perf_counter() - start)

    def _require_adapter(self, gateway: GatewayId) -> PaymentAdapter:
        adapter = self.registry.get_adapter(gateway)
        if adapter is None:
            raise AdapterUnavailableError(gateway.value)
        return adapter

    @staticmethod
    def _parse_gateway(gateway: str) -> GatewayId:
        """Route-supplied gateway names are case-insensitive."""
        try:
            gateway_id = GatewayId(gateway.strip().upper())
        except ValueError as exc:
            raise GatewayNotSupportedError(gateway) from exc
        if gateway_id not in SUPPORTED_GATEWAYS:
            raise GatewayNotSupportedError(gateway_id.value)
        return gateway_id


def build_orchestrator(settings: Settings) -> PaymentOrchestrator:
    """Wire router, registry and idempotency store from settings."""
    return PaymentOrchestrator(
        router=PaymentRouter(default_routing_config(Region(settings.default_region))),
        registry=AdapterRegistry(environment=settings.payment_environment),
        idempotency=IdempotencyStore(ttl=timedelta(seconds=settings.idempotency_ttl_seconds)),
        adapter_timeout_seconds=settings.adapter_timeout_seconds,
        require_callback_signature=settings.require_callback_signature,
    )
