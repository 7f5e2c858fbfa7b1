"""
FastAPI Dependencies - Request-scoped access to shared services.
"""

from fastapi import Request

from paygate.services.orchestrator import PaymentOrchestrator


def get_orchestrator(request: Request) -> PaymentOrchestrator:
    """
    Return the application's orchestrator.

    Built once at startup and stored on app.state; tests replace this
    dependency through app.dependency_overrides.
    """
    orchestrator: PaymentOrchestrator = request.app.state.orchestrator
    return orchestrator
