"""Test the metrics module."""

from unittest.mock import MagicMock, patch

from core.metrics import (
    authorization_outcomes,
    handshake_events,
    init_metrics,
    record_event,
    record_outcome,
)


def test_record_event_increments_counter():
    metric = handshake_events.labels(event="paypal.billing-agreement.selected")
    initial_value = metric._value.get()

    record_event("paypal.billing-agreement.selected")

    assert metric._value.get() == initial_value + 1


def test_record_outcome_labels():
    metric = authorization_outcomes.labels(flow="local-payment", outcome="invalid")
    initial_value = metric._value.get()

    record_outcome("local-payment", "invalid")
    record_outcome("local-payment", "invalid")

    assert metric._value.get() == initial_value + 2
    assert metric._labelvalues == ("local-payment", "invalid")


def test_metrics_naming_convention():
    assert handshake_events._name == "checkout_handshake_events"
    assert authorization_outcomes._name == "checkout_authorization_outcomes"


def test_init_metrics_with_app():
    """Test metrics initialization with FastAPI app."""
    mock_app = MagicMock()

    with patch("core.metrics.Instrumentator") as mock_instrumentator:
        mock_inst = MagicMock()
        mock_instrumentator.return_value = mock_inst
        mock_inst.instrument.return_value = mock_inst
        mock_inst.expose.return_value = mock_inst

        result = init_metrics(mock_app)

        mock_instrumentator.assert_called_once()
        mock_inst.instrument.assert_called_with(mock_app)
        mock_inst.expose.assert_called_with(
            mock_app, endpoint="/metrics", include_in_schema=False
        )
        assert result == mock_inst


def test_metrics_endpoint_integration(client):
    """Handshake counters show up at /metrics after a checkout starts."""
    client.post(
        "/api/v1/checkout/paypal/one-time-payment",
        json={"amount": "10.00", "currency_code": "USD"},
    )

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers.get("content-type", "")
    content = response.text
    assert "checkout_handshake_events_total" in content
    assert 'event="paypal.single-payment.browser-switch.started"' in content
