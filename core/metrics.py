"""
Prometheus metrics for the redirect checkout service.

Handshake diagnostics (the `<flow>.browser-switch.*`, `<flow>.selected` style
events) are counted here and logged through structlog, and the FastAPI app
exposes everything at /metrics.
"""

import structlog
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

from core.logging import BusinessEvents

log = structlog.get_logger(__name__)

handshake_events = Counter(
    "checkout_handshake_events_total",
    "Diagnostic events emitted during redirect authorization handshakes",
    ["event"],
)

authorization_outcomes = Counter(
    "checkout_authorization_outcomes_total",
    "Resolved redirect authorizations by flow and outcome",
    ["flow", "outcome"],
)


def record_event(event: str, **fields):
    """Count a handshake diagnostic event and log it."""
    handshake_events.labels(event=event).inc()
    log.info(BusinessEvents.HANDSHAKE_EVENT, name=event, **fields)


def record_outcome(flow: str, outcome: str):
    authorization_outcomes.labels(flow=flow, outcome=outcome).inc()


def init_metrics(app):
    """
    Initialize Prometheus metrics instrumentation for the FastAPI app.

    Args:
        app: FastAPI application instance

    Returns:
        Instrumentator instance
    """
    inst = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
    )
    inst.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
    return inst
