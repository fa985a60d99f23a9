"""
Tokenization bridge tests.
"""

from unittest.mock import patch

import pytest

from payments.errors import (
    InconsistentResponse,
    TransportError,
    UnexpectedCredentialType,
    UserCancelled,
)
from payments.models import (
    AuthorizationOutcome,
    AuthorizationSession,
    FlowKind,
    PaymentCredential,
    PaymentMethodNonce,
)
from payments.resolver import NOT_COMPLETED, response_envelope
from payments.tokenization import TokenizationBridge

RETURNED_URL = "https://x/success?token=T1"


@pytest.fixture
def session():
    return AuthorizationSession(
        approval_url="https://x/a?token=T1",
        success_url="https://x/success",
        flow=FlowKind.SINGLE_PAYMENT,
        correlation_id="corr-1",
        merchant_account_id="merchant-usd",
        intent="sale",
    )


@pytest.fixture
def authorized(session):
    return AuthorizationOutcome.authorized(session, response_envelope(RETURNED_URL))


@pytest.mark.asyncio
async def test_cancelled_outcome_never_tokenizes(fake_gateway):
    bridge = TokenizationBridge(fake_gateway)

    with pytest.raises(UserCancelled) as exc_info:
        await bridge.complete(AuthorizationOutcome.cancelled())

    assert str(exc_info.value) == "User canceled PayPal"
    assert fake_gateway.tokenize_calls == []


@pytest.mark.asyncio
async def test_invalid_outcome_carries_reason(fake_gateway, session):
    bridge = TokenizationBridge(fake_gateway)

    with pytest.raises(InconsistentResponse) as exc_info:
        await bridge.complete(AuthorizationOutcome.invalid(NOT_COMPLETED, session=session))

    assert str(exc_info.value) == NOT_COMPLETED
    assert fake_gateway.tokenize_calls == []


@pytest.mark.asyncio
async def test_authorized_outcome_is_tokenized(fake_gateway, authorized):
    nonce = await TokenizationBridge(fake_gateway).complete(authorized)

    assert nonce.nonce == "fake-paypal-nonce"
    credential = fake_gateway.tokenize_calls[0]
    assert credential.flow is FlowKind.SINGLE_PAYMENT
    assert credential.correlation_id == "corr-1"
    assert credential.merchant_account_id == "merchant-usd"
    assert credential.intent == "sale"
    assert credential.response_data == response_envelope(RETURNED_URL)


def test_credential_json_shape(authorized):
    body = TokenizationBridge.to_credential(authorized).to_json()

    assert body == {
        "paypal_account": {
            "correlation_id": "corr-1",
            "intent": "sale",
            "options": {"validate": False},
            "client": {"environment": None},
            "response": {"webURL": RETURNED_URL},
            "response_type": "web",
        },
        "_meta": {"source": "paypal-browser", "integration": "custom"},
        "merchant_account_id": "merchant-usd",
    }


def test_credential_json_without_merchant_account():
    credential = PaymentCredential(
        flow=FlowKind.BILLING_AGREEMENT, response_data={"response_type": "web"}
    )
    assert "merchant_account_id" not in credential.to_json()


@pytest.mark.asyncio
async def test_unexpected_credential_type(fake_gateway, authorized):
    fake_gateway.nonce = PaymentMethodNonce(nonce="n", type="CreditCard")

    with pytest.raises(UnexpectedCredentialType) as exc_info:
        await TokenizationBridge(fake_gateway).complete(authorized)

    assert exc_info.value.actual == "CreditCard"
    assert exc_info.value.expected == "PayPalAccount"


@pytest.mark.asyncio
async def test_tokenizer_checkout_error_propagates_unchanged(fake_gateway, authorized):
    error = TransportError("gateway down", status_code=500)
    fake_gateway.tokenize_error = error

    with pytest.raises(TransportError) as exc_info:
        await TokenizationBridge(fake_gateway).complete(authorized)

    assert exc_info.value is error


@pytest.mark.asyncio
async def test_tokenizer_unexpected_error_becomes_transport_error(fake_gateway, authorized):
    fake_gateway.tokenize_error = RuntimeError("socket closed")

    with pytest.raises(TransportError) as exc_info:
        await TokenizationBridge(fake_gateway).complete(authorized)

    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_credit_financing_is_recorded(fake_gateway, authorized):
    fake_gateway.nonce = PaymentMethodNonce(
        nonce="n",
        type="PayPalAccount",
        credit_financing={"term": 12},
    )

    with patch("payments.tokenization.record_event") as mock_record:
        await TokenizationBridge(fake_gateway).complete(authorized)

    mock_record.assert_called_once_with("paypal.credit.accepted")


def test_nonce_from_json():
    nonce = PaymentMethodNonce.from_json(
        {
            "paypalAccounts": [
                {
                    "nonce": "abc",
                    "type": "PayPalAccount",
                    "details": {
                        "email": "payer@example.com",
                        "creditFinancingOffered": {"term": 6},
                    },
                }
            ]
        }
    )

    assert nonce.nonce == "abc"
    assert nonce.details["email"] == "payer@example.com"
    assert nonce.credit_financing == {"term": 6}

    with pytest.raises(ValueError):
        PaymentMethodNonce.from_json({})
