from datetime import UTC, datetime, timedelta
from typing import Any

import requests
import structlog
import tenacity
from starlette.concurrency import run_in_threadpool

from core.logging import BusinessEvents
from core.settings import Settings
from core.tracing import get_tracer
from payments.errors import TransportError
from payments.interfaces import PaymentGateway, Tokenizer
from payments.models import (
    FlowKind,
    GatewayAuthorization,
    GatewayConfiguration,
    PaymentCredential,
    PaymentMethodNonce,
)

log = structlog.get_logger(__name__)
tracer = get_tracer(__name__)

TOKEN_PATH = "/v1/oauth2/token"
CONFIGURATION_PATH = "/v1/configuration"
TOKENIZE_PATH = "/v1/payment_methods/paypal_accounts"
AUTHORIZATION_PATHS = {
    FlowKind.SINGLE_PAYMENT: "/v1/paypal_hermes/create_payment_resource",
    FlowKind.BILLING_AGREEMENT: "/v1/paypal_hermes/setup_billing_agreement",
    FlowKind.LOCAL_PAYMENT: "/v1/local_payments/create",
}

RETRYABLE = (requests.ConnectionError, requests.Timeout)


class GatewayService(PaymentGateway, Tokenizer):
    """HTTP transport to the payment gateway.

    Connection errors and timeouts are retried here; everything else,
    including non-2xx replies, surfaces as TransportError.
    """

    def __init__(
        self,
        base_url: str,
        client_id: str,
        secret: str,
        timeout: float = 20.0,
        max_attempts: int = 3,
        retry_wait: float = 1.0,
    ):
        self.base = base_url.rstrip("/")
        self.client = client_id
        self.secret = secret
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait
        self._token_cache: tuple[str, datetime] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GatewayService":
        return cls(
            base_url=settings.GATEWAY_BASE_URL,
            client_id=settings.GATEWAY_CLIENT_ID,
            secret=settings.GATEWAY_SECRET,
            timeout=settings.GATEWAY_TIMEOUT_SECONDS,
            max_attempts=settings.GATEWAY_MAX_ATTEMPTS,
        )

    def _retrying(self) -> tenacity.Retrying:
        return tenacity.Retrying(
            stop=tenacity.stop_after_attempt(self.max_attempts),
            wait=tenacity.wait_exponential(multiplier=self.retry_wait, max=8),
            retry=tenacity.retry_if_exception_type(RETRYABLE),
            reraise=True,
        )

    def _token(self) -> str:
        if self._token_cache and self._token_cache[1] > datetime.now(UTC):
            return self._token_cache[0]

        r = self._call(
            requests.post,
            TOKEN_PATH,
            auth=(self.client, self.secret),
            data={"grant_type": "client_credentials"},
        )
        tok = r["access_token"]
        self._token_cache = (tok, datetime.now(UTC) + timedelta(minutes=5))
        return tok

    def _call(self, send, path: str, **kwargs) -> dict[str, Any]:
        url = f"{self.base}{path}"
        try:
            for attempt in self._retrying():
                with attempt:
                    response = send(url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            log.error(BusinessEvents.GATEWAY_FAILURE, path=path, error=str(e))
            raise TransportError(f"Gateway request to {path} failed: {e}") from e

        if response.status_code not in (200, 201):
            log.error(
                BusinessEvents.GATEWAY_FAILURE,
                path=path,
                status_code=response.status_code,
                body=response.text,
            )
            raise TransportError(
                f"Gateway request to {path} failed: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json() if response.content else {}
        except ValueError as e:
            raise TransportError(f"Gateway returned invalid JSON for {path}") from e

    def _authorized(self, send, path: str, **kwargs) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._token()}",
            "Content-Type": "application/json",
        }
        with tracer.start_as_current_span(f"gateway {path}"):
            log.info(BusinessEvents.GATEWAY_REQUEST, path=path)
            return self._call(send, path, headers=headers, **kwargs)

    def fetch_configuration(self) -> GatewayConfiguration:
        return GatewayConfiguration.from_json(
            self._authorized(requests.get, CONFIGURATION_PATH)
        )

    def create_authorization_sync(
        self, flow: FlowKind, payload: dict[str, Any]
    ) -> GatewayAuthorization:
        data = self._authorized(requests.post, AUTHORIZATION_PATHS[flow], json=payload)
        try:
            return GatewayAuthorization.from_json(data)
        except ValueError as e:
            raise TransportError(str(e)) from e

    def tokenize_sync(self, credential: PaymentCredential) -> PaymentMethodNonce:
        data = self._authorized(requests.post, TOKENIZE_PATH, json=credential.to_json())
        try:
            return PaymentMethodNonce.from_json(data)
        except (KeyError, ValueError) as e:
            raise TransportError(f"Malformed tokenization response: {e}") from e

    async def get_configuration(self) -> GatewayConfiguration:
        return await run_in_threadpool(self.fetch_configuration)

    async def create_authorization(
        self, flow: FlowKind, payload: dict[str, Any]
    ) -> GatewayAuthorization:
        return await run_in_threadpool(self.create_authorization_sync, flow, payload)

    async def tokenize(self, credential: PaymentCredential) -> PaymentMethodNonce:
        return await run_in_threadpool(self.tokenize_sync, credential)
