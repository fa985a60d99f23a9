"""
Redirect checkout client.

Caller-facing entry points for PayPal one-time payments, billing agreements
and local payments. Starting a flow returns once the user has been sent to
the provider; the result arrives later through `on_redirect_result`.
"""

import structlog

from core.logging import BusinessEvents
from payments.interfaces import PaymentGateway, RedirectMechanism, Tokenizer
from payments.initiator import HandshakeInitiator
from payments.models import (
    AuthorizationRequest,
    AuthorizationSession,
    CheckoutConfig,
    FlowKind,
    PaymentMethodNonce,
    RedirectResult,
)
from payments.resolver import HandshakeResolver
from payments.tokenization import TokenizationBridge

log = structlog.get_logger(__name__)


class RedirectCheckoutClient:
    def __init__(
        self,
        gateway: PaymentGateway,
        tokenizer: Tokenizer,
        redirect: RedirectMechanism,
        config: CheckoutConfig,
    ):
        self.initiator = HandshakeInitiator(gateway, redirect, config)
        self.resolver = HandshakeResolver()
        self.bridge = TokenizationBridge(tokenizer)

    async def request_one_time_payment(
        self, request: AuthorizationRequest
    ) -> AuthorizationSession:
        return await self.request_authorization(request, FlowKind.SINGLE_PAYMENT)

    async def request_billing_agreement(
        self, request: AuthorizationRequest
    ) -> AuthorizationSession:
        return await self.request_authorization(request, FlowKind.BILLING_AGREEMENT)

    async def request_local_payment(
        self, request: AuthorizationRequest
    ) -> AuthorizationSession:
        return await self.request_authorization(request, FlowKind.LOCAL_PAYMENT)

    async def request_authorization(
        self, request: AuthorizationRequest, flow: FlowKind
    ) -> AuthorizationSession:
        return await self.initiator.initiate(request, flow)

    async def on_redirect_result(self, result: RedirectResult) -> PaymentMethodNonce:
        """Resolve a redirect return and tokenize it.

        Raises UserCancelled when the user backed out, InconsistentResponse
        when the return does not match the recorded session.
        """
        log.info(
            BusinessEvents.REDIRECT_RETURNED, status=result.status.value, url=result.url
        )
        outcome = self.resolver.resolve(result)
        return await self.bridge.complete(outcome)
