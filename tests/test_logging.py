import sys
from unittest.mock import patch

import structlog

from api.middleware import redact_query
from core.logging import (
    BusinessEvents,
    configure_logging,
    redact_round_trip_tokens,
    redact_url,
)
from core.metrics import record_event


class _TestLogger:
    def __init__(self):
        self.output = []

    def __call__(self, logger, method_name, event_dict):
        """Process log events and store them for test assertions"""
        self.output.append(event_dict.copy())
        return event_dict


def _capture():
    test_logger = _TestLogger()

    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            test_logger,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,  # Don't cache to ensure fresh config
    )
    return test_logger


def test_structlog_json():
    test_logger = _capture()

    log = structlog.get_logger("test")
    log.bind(foo="bar").info("hello world")

    assert len(test_logger.output) > 0
    log_dict = test_logger.output[-1]

    assert log_dict["foo"] == "bar"
    assert log_dict["event"] == "hello world"
    assert "timestamp" in log_dict
    assert log_dict["level"] == "info"


def test_redact_query_hides_round_trip_tokens():
    params = {"token": "T1", "ba_token": "BA-1", "PayerID": "P1", "page": "2"}

    assert redact_query(params) == {
        "token": "***",
        "ba_token": "***",
        "PayerID": "***",
        "page": "2",
    }


def test_api_request_logging_redacts_token(client):
    """Return hits are logged without their round-trip token."""
    test_logger = _capture()

    client.get("/api/v1/checkout/return/success?token=T1")

    api_logs = [
        log for log in test_logger.output if log.get("event") == BusinessEvents.API_ENTRY
    ]
    assert len(api_logs) > 0

    log_entry = api_logs[0]
    assert log_entry["method"] == "GET"
    assert log_entry["path"] == "/api/v1/checkout/return/success"
    assert log_entry["query_params"] == {"token": "***"}


def test_tokens_in_urls_are_masked():
    event = redact_round_trip_tokens(
        None,
        "info",
        {
            "event": "checkout.redirect.returned",
            "url": "https://x/success?token=T1&PayerID=P1&page=2",
            "flow": "single-payment",
        },
    )

    assert event["url"] == "https://x/success?token=***&PayerID=***&page=2"
    assert event["flow"] == "single-payment"
    assert redact_url("https://x/a?ba_token=BA-1") == "https://x/a?ba_token=***"


def test_handshake_events_are_logged():
    with patch("core.metrics.log") as mock_log:
        record_event("paypal.single-payment.selected", payment_type=None)

    mock_log.info.assert_called_once_with(
        BusinessEvents.HANDSHAKE_EVENT,
        name="paypal.single-payment.selected",
        payment_type=None,
    )


def test_authorization_start_is_logged(client):
    with patch("payments.initiator.log") as mock_log:
        response = client.post(
            "/api/v1/checkout/paypal/one-time-payment",
            json={"amount": "10.00", "currency_code": "USD"},
        )
    assert response.status_code == 200

    mock_log.info.assert_any_call(
        BusinessEvents.AUTHORIZATION_STARTED,
        flow="single-payment",
        correlation_id="corr-123",
    )


def test_tracebacks_are_redacted_after_formatting():
    with patch("core.logging.LoggingInstrumentor"):
        configure_logging()
    processors = structlog.get_config()["processors"]

    assert processors.index(redact_round_trip_tokens) > processors.index(
        structlog.processors.format_exc_info
    )

    try:
        raise ValueError("bad return https://x/success?token=T1&PayerID=P1")
    except ValueError:
        event = {"event": "checkout.redirect.returned", "exc_info": sys.exc_info()}
        for processor in (structlog.processors.format_exc_info, redact_round_trip_tokens):
            event = processor(None, "error", event)

    assert "token=***&PayerID=***" in event["exception"]
    assert "T1" not in event["exception"]
    assert "P1" not in event["exception"]
