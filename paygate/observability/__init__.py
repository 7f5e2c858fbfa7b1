"""
Observability module - Logging, Metrics, and Tracing.
"""

from paygate.observability.logging import get_logger, log_context, setup_logging
from paygate.observability.metrics import metrics
from paygate.observability.tracing import setup_tracing

__all__ = [
    "get_logger",
    "log_context",
    "setup_logging",
    "metrics",
    "setup_tracing",
]
