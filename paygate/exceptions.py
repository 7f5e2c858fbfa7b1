"""
Exception Classes - Strongly typed exception hierarchy.

NO DICTIONARIES - All exceptions have typed attributes.
Every exception carries a stable machine-readable code for API clients.
"""


class PaymentGatewayError(Exception):
    """Base exception for all payment orchestration errors."""

    code = "PAYMENT_ERROR"


class ContractValidationError(PaymentGatewayError):
    """Raised when a request body does not match its contract schema."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Invalid request: {message}")


class GatewayNotSupportedError(PaymentGatewayError):
    """Raised when a gateway has no adapter or is not routable in a region."""

    code = "GATEWAY_NOT_SUPPORTED"

    def __init__(self, gateway: str, region: str | None = None) -> None:
        self.gateway = gateway
        self.region = region
        if region:
            super().__init__(f"Gateway {gateway} is not supported in region {region}")
        else:
            super().__init__(f"Gateway {gateway} is not supported")


class AdapterUnavailableError(PaymentGatewayError):
    """Raised when the registry could not construct or initialize an adapter."""

    code = "ADAPTER_UNAVAILABLE"

    def __init__(self, gateway: str) -> None:
        self.gateway = gateway
        super().__init__(f"Failed to initialize adapter for gateway {gateway}")


class AdapterNotInitializedError(PaymentGatewayError):
    """Raised when an adapter capability is used before initialize()."""

    code = "ADAPTER_NOT_INITIALIZED"

    def __init__(self, gateway: str) -> None:
        self.gateway = gateway
        super().__init__(f"Adapter {gateway} is not initialized")


class AdapterConfigurationError(PaymentGatewayError):
    """Raised when an adapter is initialized without required credentials."""

    code = "ADAPTER_CONFIGURATION_ERROR"

    def __init__(self, gateway: str, missing: list[str]) -> None:
        self.gateway = gateway
        self.missing = missing
        super().__init__(f"Adapter {gateway} missing credentials: {', '.join(missing)}")


class CapabilityNotImplementedError(PaymentGatewayError):
    """
    Raised when a gateway does not offer a capability (e.g. payouts).

    Distinct from PaymentProviderError: the gateway is healthy, it just cannot
    do this, so callers may try another gateway.
    """

    code = "CAPABILITY_NOT_IMPLEMENTED"

    def __init__(self, gateway: str, capability: str) -> None:
        self.gateway = gateway
        self.capability = capability
        super().__init__(f"{capability} is not implemented for gateway {gateway}")


class SignatureVerificationError(PaymentGatewayError):
    """Raised when a callback signature is missing (when required) or does not verify."""

    code = "SIGNATURE_INVALID"

    def __init__(self, gateway: str, message: str = "Invalid callback signature") -> None:
        self.gateway = gateway
        self.message = message
        super().__init__(f"{message} for gateway {gateway}")


class AdapterTimeoutError(PaymentGatewayError):
    """Raised when an adapter capability call exceeds its time budget."""

    code = "ADAPTER_TIMEOUT"

    def __init__(self, gateway: str, operation: str, timeout_seconds: float) -> None:
        self.gateway = gateway
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{gateway} {operation} timed out after {timeout_seconds}s")


class PaymentProviderError(PaymentGatewayError):
    """Raised when a payment provider operation fails."""

    code = "PROVIDER_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Payment provider error: {message}")
