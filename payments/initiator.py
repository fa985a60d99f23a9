"""
Handshake initiator.

Validates the request against its entry point, passes the configuration gate,
asks the gateway for a provider-hosted approval URL and hands that URL plus
the serialized AuthorizationSession to the redirect mechanism.
"""

import uuid

import structlog

from core.logging import BusinessEvents
from core.metrics import record_event
from payments.encoder import encode
from payments.errors import (
    AuthorizationInProgress,
    InvalidRequestState,
    LaunchFailure,
)
from payments.gate import ConfigurationGate
from payments.interfaces import PaymentGateway, RedirectMechanism
from payments.models import (
    AuthorizationRequest,
    AuthorizationSession,
    CheckoutConfig,
    FlowKind,
)

log = structlog.get_logger(__name__)


def validate_request(request: AuthorizationRequest, flow: FlowKind) -> None:
    """Raise InvalidRequestState when `request` does not fit `flow`."""
    if flow is FlowKind.SINGLE_PAYMENT and request.amount is None:
        raise InvalidRequestState(
            "An amount must be specified for the Single Payment flow."
        )
    if flow is FlowKind.BILLING_AGREEMENT and request.amount is not None:
        raise InvalidRequestState(
            "There must be no amount specified for the Billing Agreement flow"
        )
    if flow is FlowKind.LOCAL_PAYMENT:
        if request.amount is None:
            raise InvalidRequestState("An amount must be specified for a local payment.")
        if not request.payment_type:
            raise InvalidRequestState("A payment type must be specified for a local payment.")


def _record_selection(request: AuthorizationRequest, flow: FlowKind) -> None:
    if flow is FlowKind.LOCAL_PAYMENT:
        record_event("local-payment.selected", payment_type=request.payment_type)
        return
    record_event(f"{flow.event_prefix}.selected")
    if request.offer_credit:
        record_event(f"{flow.event_prefix}.credit.offered")
    if flow is FlowKind.SINGLE_PAYMENT and request.offer_pay_later:
        record_event(f"{flow.event_prefix}.paylater.offered")


class HandshakeInitiator:
    def __init__(
        self,
        gateway: PaymentGateway,
        redirect: RedirectMechanism,
        config: CheckoutConfig,
        gate: ConfigurationGate | None = None,
    ):
        self.gateway = gateway
        self.redirect = redirect
        self.config = config
        self.gate = gate or ConfigurationGate(redirect, config)

    async def initiate(
        self, request: AuthorizationRequest, flow: FlowKind
    ) -> AuthorizationSession:
        """
        Start a redirect authorization.

        Returns once the redirect has been launched. The outcome arrives later
        through the resolver, never through this return value.

        Raises:
            InvalidRequestState, AuthorizationInProgress, ProviderDisabled,
            RedirectMisconfigured: before any network call.
            AuthorizationInProgress: also raised at launch when a concurrent
                start won the redirect slot; the session is abandoned.
            EncodeError, TransportError: gateway call not made or failed.
            LaunchFailure: gateway session created but the redirect failed;
                the session is abandoned.
        """
        validate_request(request, flow)
        if self.redirect.has_pending():
            raise AuthorizationInProgress()

        _record_selection(request, flow)
        log.info(
            BusinessEvents.AUTHORIZATION_REQUESTED,
            flow=flow.value,
            amount=request.amount,
            currency=request.currency_code,
        )

        configuration = await self.gateway.get_configuration()
        self.gate.check(configuration, flow)

        return_url = self.config.return_url(flow)
        payload = encode(request, return_url, self.config.cancel_url(flow))
        authorization = await self.gateway.create_authorization(flow, payload)

        session = AuthorizationSession(
            approval_url=authorization.approval_url,
            success_url=authorization.success_url or return_url,
            flow=flow,
            correlation_id=authorization.correlation_id or uuid.uuid4().hex,
            merchant_account_id=authorization.merchant_account_id
            or request.merchant_account_id,
            intent=authorization.intent or request.intent,
            source=self.config.source,
        )

        record_event(f"{flow.event_prefix}.browser-switch.started")
        try:
            self.redirect.launch(session.approval_url, session.to_metadata())
        except AuthorizationInProgress:
            # Another start claimed the redirect slot while this one was in flight
            log.warning(
                BusinessEvents.AUTHORIZATION_REJECTED,
                flow=flow.value,
                code=AuthorizationInProgress.code,
                correlation_id=session.correlation_id,
            )
            raise
        except Exception as e:
            log.error(
                BusinessEvents.AUTHORIZATION_REJECTED,
                flow=flow.value,
                code=LaunchFailure.code,
                correlation_id=session.correlation_id,
                error=str(e),
            )
            raise LaunchFailure(f"Could not open the authorization page: {e}", session=session) from e

        log.info(
            BusinessEvents.AUTHORIZATION_STARTED,
            flow=flow.value,
            correlation_id=session.correlation_id,
        )
        return session
