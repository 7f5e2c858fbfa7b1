"""
Application Configuration - Pydantic Settings for type-safe config.

NO DICTIONARIES - All configuration is strongly typed.
FAIL FAST - Critical config is validated at startup.
"""

import sys

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PAYMENT_ENVIRONMENTS = ("sandbox", "production")
LOG_FORMATS = ("json", "console")


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_title: str = "Payment Orchestration API"
    api_version: str = "0.1.0"
    api_description: str = "Unified payment gateway orchestration for EGYPT, UAE and KSA"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability - Metrics
    metrics_enabled: bool = True

    # Observability - Tracing
    tracing_enabled: bool = True
    otlp_endpoint: str = "http://otel-collector:4317"
    otlp_insecure: bool = True
    service_name: str = "paygate-orchestrator"

    # Payment Orchestration
    payment_environment: str = "sandbox"  # sandbox or production
    default_region: str = "EGYPT"
    idempotency_ttl_seconds: int = 24 * 60 * 60
    adapter_timeout_seconds: float = 30.0
    # Unsigned provider callbacks are accepted unless this is enabled
    require_callback_signature: bool = False
    callback_base_url: str = "http://localhost:8000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate critical configuration at startup.

        The app MUST NOT start with an unknown payment environment or region,
        since every adapter and routing decision depends on them.
        """
        errors: list[str] = []

        self.payment_environment = self.payment_environment.lower()
        if self.payment_environment not in PAYMENT_ENVIRONMENTS:
            errors.append(
                f"PAYMENT_ENVIRONMENT must be one of {PAYMENT_ENVIRONMENTS}, "
                f"got: {self.payment_environment}"
            )

        self.default_region = self.default_region.upper()
        if self.default_region not in ("EGYPT", "UAE", "KSA"):
            errors.append(f"DEFAULT_REGION must be EGYPT, UAE or KSA, got: {self.default_region}")

        if self.log_format not in LOG_FORMATS:
            errors.append(f"LOG_FORMAT must be one of {LOG_FORMATS}, got: {self.log_format}")

        if self.idempotency_ttl_seconds <= 0:
            errors.append("IDEMPOTENCY_TTL_SECONDS must be positive")

        if self.adapter_timeout_seconds <= 0:
            errors.append("ADAPTER_TIMEOUT_SECONDS must be positive")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "CRITICAL CONFIGURATION ERROR - APPLICATION CANNOT START",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self

    @property
    def is_production(self) -> bool:
        """True when adapters must talk to live provider endpoints."""
        return self.payment_environment == "production"


class GatewayCredentials(BaseSettings):
    """
    Credentials for a single gateway.

    Loaded with a per-gateway env prefix, e.g. PAYMOB_API_KEY or STCPAY_MERCHANT_ID.
    """

    api_key: str | None = None
    secret_key: str | None = None
    merchant_id: str | None = None
    webhook_secret: str | None = None
    iframe_id: str | None = None
    integration_id: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def gateway_env_prefix(gateway: str) -> str:
    """Env var prefix for a gateway identifier (underscores stripped): STC_PAY -> STCPAY."""
    return gateway.replace("_", "").upper()


def load_gateway_credentials(gateway: str) -> GatewayCredentials:
    """Read {PREFIX}_API_KEY, {PREFIX}_SECRET_KEY, ... for one gateway."""
    return GatewayCredentials(_env_prefix=f"{gateway_env_prefix(gateway)}_")


# Global settings instance - validates at import time
settings = Settings()
