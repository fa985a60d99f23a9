"""
Data model for the redirect authorization handshake.

Covers the caller's authorization request, the gateway's replies, the
session that bridges the redirect, and the outcome and credential produced
when the browser comes back.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

REDIRECT_SOURCE = "paypal-browser"
PAYPAL_ACCOUNT_TYPE = "PayPalAccount"


class FlowKind(str, Enum):
    SINGLE_PAYMENT = "single-payment"
    BILLING_AGREEMENT = "billing-agreement"
    LOCAL_PAYMENT = "local-payment"

    @property
    def token_key(self) -> str:
        """Query parameter carrying the round-trip token for this flow."""
        return "ba_token" if self is FlowKind.BILLING_AGREEMENT else "token"

    @property
    def event_prefix(self) -> str:
        if self is FlowKind.LOCAL_PAYMENT:
            return "local-payment"
        return f"paypal.{self.value}"

    @property
    def success_segment(self) -> str:
        if self is FlowKind.LOCAL_PAYMENT:
            return "local-payment-success"
        return "success"

    @property
    def cancel_segment(self) -> str:
        if self is FlowKind.LOCAL_PAYMENT:
            return "local-payment-cancel"
        return "cancel"


class PostalAddress(BaseModel):
    model_config = ConfigDict(frozen=True)

    street_address: str | None = None
    extended_address: str | None = None
    locality: str | None = None
    region: str | None = None
    postal_code: str | None = None
    country_code_alpha2: str | None = None


class AuthorizationRequest(BaseModel):
    """What the caller wants authorized.

    `amount` decides the PayPal flow: present for a one-time payment, absent
    for a billing agreement. Local payments need both `amount` and
    `payment_type`.
    """

    model_config = ConfigDict(frozen=True)

    amount: str | None = None
    currency_code: str | None = None
    given_name: str | None = None
    surname: str | None = None
    email: str | None = None
    phone: str | None = None
    address: PostalAddress | None = None
    merchant_account_id: str | None = None
    payment_type: str | None = None
    payment_type_country_code: str | None = None
    bic: str | None = None
    shipping_address_required: bool = False
    intent: str = "sale"
    offer_credit: bool = False
    offer_pay_later: bool = False


class CheckoutConfig(BaseModel):
    """Immutable client configuration handed to every handshake component."""

    model_config = ConfigDict(frozen=True)

    return_url_base: str
    source: str = REDIRECT_SOURCE

    def return_url(self, flow: FlowKind) -> str:
        return f"{self.return_url_base.rstrip('/')}/{flow.success_segment}"

    def cancel_url(self, flow: FlowKind) -> str:
        return f"{self.return_url_base.rstrip('/')}/{flow.cancel_segment}"


class GatewayConfiguration(BaseModel):
    paypal_enabled: bool = False
    environment: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "GatewayConfiguration":
        paypal = data.get("paypal") or {}
        enabled = data.get("paypalEnabled", paypal.get("enabled", False))
        return cls(paypal_enabled=bool(enabled), environment=data.get("environment"))


class GatewayAuthorization(BaseModel):
    """Gateway reply to a create-payment-resource style call."""

    approval_url: str
    success_url: str | None = None
    correlation_id: str | None = None
    merchant_account_id: str | None = None
    intent: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "GatewayAuthorization":
        # Flat replies carry approvalUrl; older endpoints nest it
        approval_url = (
            data.get("approvalUrl")
            or (data.get("paymentResource") or {}).get("redirectUrl")
            or (data.get("agreementSetup") or {}).get("approvalUrl")
        )
        if not approval_url:
            raise ValueError("Gateway response missing approval URL")
        return cls(
            approval_url=approval_url,
            success_url=data.get("successUrl"),
            correlation_id=data.get("correlationId"),
            merchant_account_id=data.get("merchantAccountId"),
            intent=data.get("intent"),
        )


class AuthorizationSession(BaseModel):
    """Round-trip state stored in the redirect mechanism's metadata slot."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    approval_url: str = Field(alias="approval-url")
    success_url: str = Field(alias="success-url")
    flow: FlowKind = Field(alias="payment-type")
    correlation_id: str | None = Field(default=None, alias="client-metadata-id")
    merchant_account_id: str | None = Field(default=None, alias="merchant-account-id")
    intent: str | None = None
    source: str = REDIRECT_SOURCE

    def to_metadata(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_metadata(cls, metadata: dict[str, Any] | None) -> "AuthorizationSession":
        return cls.model_validate(metadata or {})


class RedirectStatus(str, Enum):
    OK = "ok"
    USER_CANCELLED = "user_cancelled"


@dataclass(frozen=True)
class RedirectResult:
    """What the redirect mechanism hands back when the user returns."""

    status: RedirectStatus
    url: str | None
    metadata: dict[str, Any] | None


class OutcomeStatus(str, Enum):
    CANCELLED = "cancelled"
    AUTHORIZED = "authorized"
    INVALID = "invalid"


@dataclass(frozen=True)
class AuthorizationOutcome:
    status: OutcomeStatus
    session: AuthorizationSession | None = None
    response_data: dict[str, Any] | None = None
    reason: str | None = None

    @classmethod
    def cancelled(cls, session=None):
        return cls(OutcomeStatus.CANCELLED, session=session)

    @classmethod
    def authorized(cls, session, response_data):
        return cls(OutcomeStatus.AUTHORIZED, session=session, response_data=response_data)

    @classmethod
    def invalid(cls, reason, session=None):
        return cls(OutcomeStatus.INVALID, session=session, reason=reason)


class PaymentCredential(BaseModel):
    """Tokenizable PayPal account built from an authorized redirect."""

    model_config = ConfigDict(frozen=True)

    flow: FlowKind
    response_data: dict[str, Any]
    correlation_id: str | None = None
    intent: str | None = None
    merchant_account_id: str | None = None
    source: str = REDIRECT_SOURCE

    def to_json(self) -> dict[str, Any]:
        account: dict[str, Any] = {
            "correlation_id": self.correlation_id,
            "intent": self.intent,
            "options": {"validate": False},
        }
        account.update(self.response_data)
        body: dict[str, Any] = {
            "paypal_account": account,
            "_meta": {"source": self.source, "integration": "custom"},
        }
        if self.merchant_account_id is not None:
            body["merchant_account_id"] = self.merchant_account_id
        return body


class PaymentMethodNonce(BaseModel):
    nonce: str
    type: str
    details: dict[str, Any] = Field(default_factory=dict)
    credit_financing: dict[str, Any] | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "PaymentMethodNonce":
        accounts = data.get("paypalAccounts") or []
        if not accounts:
            raise ValueError("Tokenization response missing paypalAccounts")
        account = accounts[0]
        details = account.get("details") or {}
        return cls(
            nonce=account["nonce"],
            type=account.get("type", ""),
            details=details,
            credit_financing=details.get("creditFinancingOffered"),
        )
