"""
Redirect checkout routes.

The browser starts a flow with one of the POST routes, follows
`redirect_url` to the provider and comes back through `/return/...`. A
front end that sees the user close the provider window reports it with
`/cancel`.
"""

import uuid

import structlog
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from api.redirects import DatabaseRedirectMechanism
from api.schemas import (
    AuthorizationCancelled,
    AuthorizationCompleted,
    AuthorizationStarted,
)
from core.dependencies import get_checkout_config, get_gateway_service, get_settings
from core.settings import Settings
from db.session import get_db
from payments.client import RedirectCheckoutClient
from payments.errors import NoPendingAuthorization, UserCancelled
from payments.gateway_service import GatewayService
from payments.models import (
    AuthorizationRequest,
    CheckoutConfig,
    FlowKind,
    RedirectStatus,
)

log = structlog.get_logger(__name__)

router = APIRouter()


class CheckoutContext:
    """Per-request wiring of the client to this browser's redirect store."""

    def __init__(
        self,
        request: Request,
        db: Session = Depends(get_db),
        settings: Settings = Depends(get_settings),
        gateway: GatewayService = Depends(get_gateway_service),
        config: CheckoutConfig = Depends(get_checkout_config),
    ):
        self.cookie_name = settings.CHECKOUT_COOKIE_NAME
        self.existing_key = request.cookies.get(self.cookie_name)
        self.browser_key = self.existing_key or uuid.uuid4().hex
        self.redirect = DatabaseRedirectMechanism(
            db,
            self.browser_key,
            settings.redirect_allowed_hosts,
            settings.PENDING_REDIRECT_TTL_SECONDS,
        )
        self.client = RedirectCheckoutClient(gateway, gateway, self.redirect, config)


async def _start(
    flow: FlowKind,
    body: AuthorizationRequest,
    response: Response,
    ctx: CheckoutContext,
) -> AuthorizationStarted:
    session = await ctx.client.request_authorization(body, flow)
    response.set_cookie(ctx.cookie_name, ctx.browser_key, httponly=True, samesite="lax")
    return AuthorizationStarted(
        redirect_url=ctx.redirect.launched_url or session.approval_url,
        flow=flow,
        correlation_id=session.correlation_id,
    )


@router.post("/paypal/one-time-payment", response_model=AuthorizationStarted)
async def start_one_time_payment(
    body: AuthorizationRequest, response: Response, ctx: CheckoutContext = Depends()
):
    """
    Start a PayPal one-time payment. `amount` is required.

    **Request Example:**
    ```json
    {"amount": "10.00", "currency_code": "USD"}
    ```
    """
    return await _start(FlowKind.SINGLE_PAYMENT, body, response, ctx)


@router.post("/paypal/billing-agreement", response_model=AuthorizationStarted)
async def start_billing_agreement(
    body: AuthorizationRequest, response: Response, ctx: CheckoutContext = Depends()
):
    """Start a PayPal billing agreement. `amount` must be omitted."""
    return await _start(FlowKind.BILLING_AGREEMENT, body, response, ctx)


@router.post("/local-payment", response_model=AuthorizationStarted)
async def start_local_payment(
    body: AuthorizationRequest, response: Response, ctx: CheckoutContext = Depends()
):
    """Start a local (bank redirect) payment such as iDEAL or Sofort."""
    return await _start(FlowKind.LOCAL_PAYMENT, body, response, ctx)


@router.get(
    "/return/{segment}",
    response_model=AuthorizationCompleted | AuthorizationCancelled,
)
async def redirect_return(
    segment: str, request: Request, ctx: CheckoutContext = Depends()
):
    """Landing page for the provider's success and cancel redirects."""
    if ctx.existing_key is None:
        raise NoPendingAuthorization()

    result = ctx.redirect.consume(RedirectStatus.OK, str(request.url))
    try:
        nonce = await ctx.client.on_redirect_result(result)
    except UserCancelled:
        log.info("checkout.return.cancelled", segment=segment, browser_key=ctx.browser_key)
        return AuthorizationCancelled()
    return AuthorizationCompleted(nonce=nonce.nonce, type=nonce.type, details=nonce.details)


@router.post("/cancel", response_model=AuthorizationCancelled)
async def cancel_authorization(ctx: CheckoutContext = Depends()):
    """Report that the user closed the provider window without returning."""
    if ctx.existing_key is None:
        raise NoPendingAuthorization()

    # A cancelled return never reaches tokenization; resolving records the outcome
    ctx.client.resolver.resolve(
        ctx.redirect.consume(RedirectStatus.USER_CANCELLED, None)
    )
    return AuthorizationCancelled()
