"""
Pytest Configuration and Centralized Fixtures.

Provides reusable fixtures for testing:
- Deterministic clock for idempotency TTL tests
- Router, registry and idempotency store wired without environment lookups
- Orchestrator built from those parts
- API test client with the orchestrator dependency overridden
- Unified payment contract bodies
"""

import os
from collections.abc import Iterator
from datetime import timedelta
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Set required environment variables BEFORE importing app modules
os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("PAYMENT_ENVIRONMENT", "sandbox")
os.environ.setdefault("LOG_FORMAT", "console")

from paygate.api.dependencies import get_orchestrator
from paygate.services.adapter_registry import AdapterRegistry
from paygate.services.idempotency import IdempotencyStore
from paygate.services.orchestrator import PaymentOrchestrator
from paygate.services.payment_router import PaymentRouter
from tests.helpers import FakeClock, make_adapter_config

# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def fake_clock() -> FakeClock:
    """Deterministic clock starting at 2026-01-01T12:00Z."""
    return FakeClock()


@pytest.fixture
def router() -> PaymentRouter:
    """Router with the shipped routing table."""
    return PaymentRouter()


@pytest.fixture
def registry() -> AdapterRegistry:
    """Registry whose adapters get fully populated sandbox credentials."""
    return AdapterRegistry(environment="sandbox", config_loader=make_adapter_config)


@pytest.fixture
def idempotency_store(fake_clock: FakeClock) -> IdempotencyStore:
    """Store with a 24h TTL driven by the fake clock."""
    return IdempotencyStore(ttl=timedelta(hours=24), clock=fake_clock)


@pytest.fixture
def orchestrator(
    router: PaymentRouter, registry: AdapterRegistry, idempotency_store: IdempotencyStore
) -> PaymentOrchestrator:
    """Orchestrator over the in-memory fixtures."""
    return PaymentOrchestrator(
        router=router,
        registry=registry,
        idempotency=idempotency_store,
        adapter_timeout_seconds=5.0,
    )


# ============================================================================
# Request Body Fixtures
# ============================================================================


@pytest.fixture
def ksa_contract() -> dict[str, Any]:
    """KSA payment with AUTO currency."""
    return {
        "amount": "150.00",
        "currency": "AUTO",
        "region": "KSA",
        "customer": {"name": "Test Customer", "email": "customer@example.com"},
        "order_id": "order-ksa-1",
    }


@pytest.fixture
def auto_contract() -> dict[str, Any]:
    """Fully automatic payment: region and currency both AUTO."""
    return {
        "amount": "99.99",
        "customer": {"name": "Test Customer"},
        "order_id": "order-auto-1",
    }


# ============================================================================
# FastAPI Test Client Fixtures
# ============================================================================


@pytest.fixture
def app() -> FastAPI:
    """Create FastAPI app for testing."""
    from paygate.main import app as main_app

    return main_app


@pytest.fixture
def client(app: FastAPI, orchestrator: PaymentOrchestrator) -> Iterator[TestClient]:
    """Synchronous test client backed by the fixture orchestrator."""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()
