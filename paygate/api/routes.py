"""
API Routes - FastAPI endpoints for payment orchestration.

NO DICTIONARIES - All requests/responses use Pydantic models, wrapped in the
SuccessResponse / ErrorResponse envelopes. Provider webhook bodies are the
exception: they are forwarded to the adapters as raw mappings.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Header, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from structlog import get_logger

from paygate.api.dependencies import get_orchestrator
from paygate.exceptions import (
    AdapterConfigurationError,
    AdapterNotInitializedError,
    AdapterTimeoutError,
    AdapterUnavailableError,
    CapabilityNotImplementedError,
    ContractValidationError,
    GatewayNotSupportedError,
    PaymentGatewayError,
    PaymentProviderError,
    SignatureVerificationError,
)
from paygate.models.api import ErrorResponse, IdempotencyKeyResponse, SuccessResponse
from paygate.observability.metrics import metrics
from paygate.services.orchestrator import PaymentOrchestrator, generate_idempotency_key

logger = get_logger(__name__)

router = APIRouter()

# Checked in order, so subclasses must precede their bases
ERROR_STATUS_CODES: tuple[tuple[type[PaymentGatewayError], int], ...] = (
    (ContractValidationError, status.HTTP_400_BAD_REQUEST),
    (GatewayNotSupportedError, status.HTTP_400_BAD_REQUEST),
    (AdapterUnavailableError, status.HTTP_400_BAD_REQUEST),
    (CapabilityNotImplementedError, status.HTTP_400_BAD_REQUEST),
    (SignatureVerificationError, status.HTTP_401_UNAUTHORIZED),
    (AdapterNotInitializedError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (AdapterConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (AdapterTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (PaymentProviderError, status.HTTP_502_BAD_GATEWAY),
)


def status_code_for(exc: PaymentGatewayError) -> int:
    """HTTP status for a domain error; unmapped errors are server errors."""
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def success_response(data: Any, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Wrap data in the success envelope."""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(SuccessResponse(data=data)),
    )


def error_response(error: str, code: str, status_code: int) -> JSONResponse:
    """Render the failure envelope."""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(ErrorResponse(error=error, code=code)),
    )


def gateway_error_response(exc: PaymentGatewayError, operation: str) -> JSONResponse:
    """Log a domain error and render it in the failure envelope."""
    status_code = status_code_for(exc)
    metrics.record_error(type(exc).__name__, operation)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "payment_operation_failed",
        operation=operation,
        error=str(exc),
        error_type=type(exc).__name__,
        code=exc.code,
        status_code=status_code,
    )
    return error_response(str(exc), exc.code, status_code)


# ============================================================================
# Payments
# ============================================================================


@router.post("/create", response_model=SuccessResponse)
async def create_payment(
    body: dict[str, Any] = Body(...),
    x_idempotency_key: str | None = Header(None),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """
    Create a payment with the best gateway for the region.

    Currency and region default to AUTO. A repeated x-idempotency-key (or
    body idempotency_key) returns the first response unchanged.
    """
    try:
        result = await orchestrator.create_payment(body, idempotency_key=x_idempotency_key)
    except PaymentGatewayError as exc:
        return gateway_error_response(exc, "create_payment")
    return success_response(result)


@router.post("/callback/{gateway}", response_model=SuccessResponse)
async def handle_callback(
    gateway: str,
    request: Request,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """
    Provider webhook ingress.

    Accepts JSON or form-encoded bodies. The gateway path segment is
    case-insensitive.
    """
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/x-www-form-urlencoded"):
            form = await request.form()
            payload: Any = {key: value for key, value in form.items()}
        else:
            try:
                payload = await request.json()
            except ValueError as exc:
                raise ContractValidationError("callback body must be valid JSON") from exc

        result = await orchestrator.handle_callback(gateway, payload, request.headers)
    except PaymentGatewayError as exc:
        return gateway_error_response(exc, "handle_callback")
    return success_response(result)


@router.get("/transaction/{transaction_id}", response_model=SuccessResponse)
async def get_transaction_status(
    transaction_id: str,
    gateway: str | None = None,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Status probe. The gateway is read from the transaction id unless given."""
    try:
        result = await orchestrator.get_transaction_status(transaction_id, gateway=gateway)
    except PaymentGatewayError as exc:
        return gateway_error_response(exc, "get_transaction_status")
    return success_response(result)


# ============================================================================
# Refunds and Payouts
# ============================================================================


@router.post("/refund", response_model=SuccessResponse)
async def refund(
    body: dict[str, Any] = Body(...),
    x_idempotency_key: str | None = Header(None),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Refund a payment through the gateway that created it."""
    try:
        result = await orchestrator.refund(body, idempotency_key=x_idempotency_key)
    except PaymentGatewayError as exc:
        return gateway_error_response(exc, "refund")
    return success_response(result)


@router.post("/payout", response_model=SuccessResponse)
async def payout(
    body: dict[str, Any] = Body(...),
    x_idempotency_key: str | None = Header(None),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """
    Send money to a wallet or bank account.

    Returns CAPABILITY_NOT_IMPLEMENTED when the currency's gateway has no payouts.
    """
    try:
        result = await orchestrator.payout(body, idempotency_key=x_idempotency_key)
    except PaymentGatewayError as exc:
        return gateway_error_response(exc, "payout")
    return success_response(result)


# ============================================================================
# Introspection
# ============================================================================


@router.get("/gateways/{region}", response_model=SuccessResponse)
async def list_gateways(
    region: str,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Ranked gateways for EGYPT, UAE or KSA (case-insensitive)."""
    try:
        result = orchestrator.get_available_gateways(region)
    except PaymentGatewayError as exc:
        return gateway_error_response(exc, "list_gateways")
    return success_response(result)


@router.get("/config", response_model=SuccessResponse)
async def routing_config(
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Current routing configuration."""
    return success_response(orchestrator.get_routing_config())


@router.get("/health", response_model=SuccessResponse)
async def health(
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """
    Per-gateway health.

    Every supported gateway is listed; those whose adapter cannot be
    initialized report false.
    """
    return success_response(await orchestrator.health_check())


@router.post("/idempotency-key", response_model=SuccessResponse)
async def create_idempotency_key() -> JSONResponse:
    """Issue a fresh idempotency key for clients that cannot generate one."""
    return success_response(IdempotencyKeyResponse(idempotency_key=generate_idempotency_key()))
