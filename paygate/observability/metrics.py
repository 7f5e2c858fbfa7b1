"""
Metrics Collection with Prometheus.

Exposes payment and HTTP metrics for monitoring.
"""

from enum import Enum

from prometheus_client import Counter, Gauge, Histogram, Info

from paygate.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    ENDPOINT = "endpoint"
    METHOD = "method"
    STATUS_CODE = "status_code"
    OPERATION = "operation"
    GATEWAY = "gateway"
    PAYMENT_STATUS = "status"
    ERROR_TYPE = "error_type"


class PaymentMetrics:
    """
    Centralized metrics for the payment orchestrator.

    Covers:
    - HTTP requests (rate, duration, in-flight)
    - Payments, callbacks, refunds and payouts per gateway
    - Idempotency cache hits
    - Adapter call latency
    - Errors by type
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""

        # ====================================================================
        # Service Info
        # ====================================================================
        self.service_info = Info(
            "paygate_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.api_version,
                "service_name": settings.service_name,
                "payment_environment": settings.payment_environment,
            }
        )

        # ====================================================================
        # HTTP Metrics
        # ====================================================================
        self.http_requests_total = Counter(
            "paygate_http_requests_total",
            "Total HTTP requests",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD, MetricLabels.STATUS_CODE],
        )

        self.http_request_duration_seconds = Histogram(
            "paygate_http_request_duration_seconds",
            "HTTP request duration in seconds",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.http_requests_in_progress = Gauge(
            "paygate_http_requests_in_progress",
            "Number of HTTP requests currently being processed",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
        )

        # ====================================================================
        # Payment Operation Metrics
        # ====================================================================
        self.payments_total = Counter(
            "paygate_payments_total",
            "Total payments created",
            [MetricLabels.GATEWAY, MetricLabels.PAYMENT_STATUS],
        )

        self.callbacks_total = Counter(
            "paygate_callbacks_total",
            "Total provider callbacks processed",
            [MetricLabels.GATEWAY, MetricLabels.PAYMENT_STATUS, "signature"],
        )

        self.refunds_total = Counter(
            "paygate_refunds_total",
            "Total refunds issued",
            [MetricLabels.GATEWAY],
        )

        self.payouts_total = Counter(
            "paygate_payouts_total",
            "Total payouts issued",
            [MetricLabels.GATEWAY],
        )

        self.idempotency_hits_total = Counter(
            "paygate_idempotency_hits_total",
            "Requests answered from the idempotency store",
            [MetricLabels.OPERATION],
        )

        self.adapter_call_duration_seconds = Histogram(
            "paygate_adapter_call_duration_seconds",
            "Adapter capability call duration in seconds",
            [MetricLabels.GATEWAY, MetricLabels.OPERATION],
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "paygate_errors_total",
            "Total errors by type",
            [MetricLabels.ERROR_TYPE, MetricLabels.OPERATION],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_http_request(
        self, endpoint: str, method: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics."""
        self.http_requests_total.labels(
            endpoint=endpoint, method=method, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(endpoint=endpoint, method=method).observe(
            duration
        )

    def record_payment(self, gateway: str, status: str) -> None:
        """Record a created payment."""
        self.payments_total.labels(gateway=gateway, status=status).inc()

    def record_callback(self, gateway: str, status: str, signature: str) -> None:
        """Record a processed callback; signature is verified, missing or invalid."""
        self.callbacks_total.labels(gateway=gateway, status=status, signature=signature).inc()

    def record_refund(self, gateway: str) -> None:
        """Record an issued refund."""
        self.refunds_total.labels(gateway=gateway).inc()

    def record_payout(self, gateway: str) -> None:
        """Record an issued payout."""
        self.payouts_total.labels(gateway=gateway).inc()

    def record_idempotency_hit(self, operation: str) -> None:
        """Record a request short-circuited by the idempotency store."""
        self.idempotency_hits_total.labels(operation=operation).inc()

    def record_adapter_call(self, gateway: str, operation: str, duration: float) -> None:
        """Record adapter call latency."""
        self.adapter_call_duration_seconds.labels(gateway=gateway, operation=operation).observe(
            duration
        )

    def record_error(self, error_type: str, operation: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_type=error_type, operation=operation).inc()


# Global metrics instance
metrics = PaymentMetrics()
