from abc import ABC, abstractmethod
from typing import Any

from payments.models import (
    FlowKind,
    GatewayAuthorization,
    GatewayConfiguration,
    PaymentCredential,
    PaymentMethodNonce,
)


# ---------------------------------------------------------------------------
# Collaborators the handshake talks to
# ---------------------------------------------------------------------------


class PaymentGateway(ABC):
    """Request/response access to the payment gateway."""

    @abstractmethod
    async def get_configuration(self) -> GatewayConfiguration:
        """Fetch the merchant's gateway configuration."""

    @abstractmethod
    async def create_authorization(
        self, flow: FlowKind, payload: dict[str, Any]
    ) -> GatewayAuthorization:
        """Create a provider-hosted authorization and return its URLs."""


class Tokenizer(ABC):
    @abstractmethod
    async def tokenize(self, credential: PaymentCredential) -> PaymentMethodNonce:
        """Exchange an authorized account for a payment method nonce."""


class RedirectMechanism(ABC):
    """Opens the provider page and later delivers a RedirectResult.

    Implementations own durability of the metadata across the redirect.
    """

    @abstractmethod
    def is_return_target_registered(self, return_url_base: str) -> bool:
        """Whether returns to `return_url_base` will reach this mechanism."""

    @abstractmethod
    def has_pending(self) -> bool:
        """Whether a launched redirect is still waiting for its return."""

    @abstractmethod
    def launch(self, url: str, metadata: dict[str, Any]) -> None:
        """Send the user to `url`, persisting `metadata` for the return.

        Raises AuthorizationInProgress when another redirect claimed the
        pending slot first.
        """
