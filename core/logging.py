"""
structlog configuration for the checkout service.

Redirect returns carry provider tokens (`token`, `ba_token`, `PayerID`) in
their URLs. Those are bearer material for the round-trip, so every event
passes through `redact_round_trip_tokens` before it is rendered.
"""

import logging
import os
import re
import sys

import structlog
from opentelemetry.instrumentation.logging import LoggingInstrumentor

REDACTED = "***"
ROUND_TRIP_PARAMS = ("token", "ba_token", "paymentId", "PayerID")

_PARAM_IN_URL = re.compile(
    r"([?&](?:%s)=)[^&#\s\"']*" % "|".join(ROUND_TRIP_PARAMS)
)


def redact_url(url: str) -> str:
    return _PARAM_IN_URL.sub(lambda m: m.group(1) + REDACTED, url)


def redact_round_trip_tokens(logger, method_name, event_dict):
    """Mask provider tokens in any string value that looks like a URL."""
    for key, value in event_dict.items():
        if isinstance(value, str) and "=" in value and key != "event":
            event_dict[key] = redact_url(value)
    return event_dict


def _renderer():
    # JSON for machines, colours for people
    if os.getenv("ENVIRONMENT", "development") in ("test", "production"):
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True, sort_keys=False)


def configure_logging():
    """Set up structlog + OTEL context injection."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            # After format_exc_info so rendered tracebacks are masked too
            redact_round_trip_tokens,
            _renderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    stream = sys.stdout if os.getenv("ENVIRONMENT") == "test" else sys.stderr
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    # uvicorn and SQLAlchemy log through the root handler; keep them quiet
    for name in ("uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).handlers.clear()
    logging.getLogger("sqlalchemy.engine").setLevel(logging.ERROR)

    LoggingInstrumentor().instrument(set_logging_format=False)


class BusinessEvents:
    """Standard names for business event logs"""

    API_ENTRY = "api.request"
    AUTHORIZATION_REQUESTED = "checkout.authorization.requested"
    AUTHORIZATION_STARTED = "checkout.authorization.started"
    AUTHORIZATION_REJECTED = "checkout.authorization.rejected"
    REDIRECT_RETURNED = "checkout.redirect.returned"
    REDIRECT_RESOLVED = "checkout.redirect.resolved"
    TOKENIZATION_SUCCESS = "checkout.tokenization.success"
    TOKENIZATION_FAILURE = "checkout.tokenization.failure"
    GATEWAY_REQUEST = "gateway.request"
    GATEWAY_FAILURE = "gateway.failure"
    HANDSHAKE_EVENT = "checkout.handshake.event"


# Configure logging when module is imported
configure_logging()
