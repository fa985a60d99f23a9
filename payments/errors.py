"""
Checkout error taxonomy.

Every failure surfaced to the caller is a CheckoutError with a stable `code`
discriminator. The HTTP layer renders `http_status` and `code` directly.
"""

from typing import Any


class CheckoutError(Exception):
    code = "checkout_error"
    http_status = 500
    default_message = "Checkout failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    def to_dict(self) -> dict[str, Any]:
        return {"detail": str(self), "code": self.code}


class InvalidRequestState(CheckoutError):
    """The request does not match the entry point it was sent to."""

    code = "invalid_request_state"
    http_status = 422
    default_message = "The authorization request is not valid for this flow"


class ProviderDisabled(CheckoutError):
    code = "provider_disabled"
    http_status = 409
    default_message = (
        "PayPal is not enabled for this merchant. Enable it in the gateway "
        "control panel before starting a redirect checkout."
    )


class RedirectMisconfigured(CheckoutError):
    code = "redirect_misconfigured"
    http_status = 500
    default_message = (
        "The return URL is not a registered redirect target. Add its host to "
        "REDIRECT_ALLOWED_HOSTS or fix RETURN_URL_BASE."
    )


class AuthorizationInProgress(CheckoutError):
    code = "authorization_in_progress"
    http_status = 409
    default_message = "Another authorization is still waiting for its redirect"


class EncodeError(CheckoutError):
    code = "encode_error"
    http_status = 422
    default_message = "The authorization request could not be encoded"


class TransportError(CheckoutError):
    """A gateway or tokenization call failed. The cause is chained, not interpreted."""

    code = "transport_error"
    http_status = 502
    default_message = "Payment gateway request failed"

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UserCancelled(CheckoutError):
    """Terminal, non-failure outcome: the user backed out of the provider page."""

    code = "user_cancelled"
    http_status = 200
    default_message = "User canceled PayPal"


class InconsistentResponse(CheckoutError):
    code = "inconsistent_response"
    http_status = 400
    default_message = "The response contained inconsistent data"


class LaunchFailure(CheckoutError):
    """The redirect could not be opened after the gateway session was created.

    The gateway-side session is orphaned; start over with a fresh initiate.
    """

    code = "launch_failure"
    http_status = 502
    default_message = "Could not open the authorization page"

    def __init__(self, message: str | None = None, session=None):
        super().__init__(message)
        self.session = session


class UnexpectedCredentialType(CheckoutError):
    code = "unexpected_credential_type"
    http_status = 502
    default_message = "Tokenization returned an unexpected payment method type"

    def __init__(self, actual: str | None, expected: str):
        super().__init__(
            f"Tokenization returned {actual!r}, expected {expected!r}"
        )
        self.actual = actual
        self.expected = expected


class NoPendingAuthorization(CheckoutError):
    code = "no_pending_authorization"
    http_status = 404
    default_message = "No pending authorization for this browser"
