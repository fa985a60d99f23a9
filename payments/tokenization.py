import structlog

from core.logging import BusinessEvents
from core.metrics import record_event
from payments.errors import (
    CheckoutError,
    InconsistentResponse,
    TransportError,
    UnexpectedCredentialType,
    UserCancelled,
)
from payments.interfaces import Tokenizer
from payments.models import (
    PAYPAL_ACCOUNT_TYPE,
    AuthorizationOutcome,
    OutcomeStatus,
    PaymentCredential,
    PaymentMethodNonce,
)

log = structlog.get_logger(__name__)


class TokenizationBridge:
    """Maps a resolved outcome onto the tokenization collaborator."""

    def __init__(self, tokenizer: Tokenizer, expected_type: str = PAYPAL_ACCOUNT_TYPE):
        self.tokenizer = tokenizer
        self.expected_type = expected_type

    @staticmethod
    def to_credential(outcome: AuthorizationOutcome) -> PaymentCredential:
        if outcome.status is OutcomeStatus.CANCELLED:
            raise UserCancelled()
        if outcome.status is OutcomeStatus.INVALID:
            raise InconsistentResponse(outcome.reason)

        session = outcome.session
        return PaymentCredential(
            flow=session.flow,
            response_data=outcome.response_data,
            correlation_id=session.correlation_id,
            intent=session.intent,
            merchant_account_id=session.merchant_account_id,
            source=session.source,
        )

    async def complete(self, outcome: AuthorizationOutcome) -> PaymentMethodNonce:
        """Tokenize an authorized outcome; cancelled/invalid ones never reach the tokenizer."""
        credential = self.to_credential(outcome)

        try:
            nonce = await self.tokenizer.tokenize(credential)
        except CheckoutError as e:
            log.error(
                BusinessEvents.TOKENIZATION_FAILURE,
                flow=credential.flow.value,
                correlation_id=credential.correlation_id,
                code=e.code,
                error=str(e),
            )
            raise
        except Exception as e:
            log.error(
                BusinessEvents.TOKENIZATION_FAILURE,
                flow=credential.flow.value,
                correlation_id=credential.correlation_id,
                error=str(e),
            )
            raise TransportError(f"Tokenization failed: {e}") from e

        if nonce.type != self.expected_type:
            raise UnexpectedCredentialType(nonce.type, self.expected_type)

        if nonce.credit_financing is not None:
            record_event("paypal.credit.accepted")

        log.info(
            BusinessEvents.TOKENIZATION_SUCCESS,
            flow=credential.flow.value,
            correlation_id=credential.correlation_id,
            nonce_type=nonce.type,
        )
        return nonce
