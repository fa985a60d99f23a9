"""
Handshake resolver.

Turns a redirect-return event into an AuthorizationOutcome. Rules, in order:

1. the mechanism reports the user cancelled -> CANCELLED, URL not inspected;
2. last path segment of the returned URL differs from the recorded success
   URL's -> INVALID;
3./4. the flow's token parameter must be present and equal the one in the
   recorded approval URL -> otherwise INVALID;
5. AUTHORIZED with the normalized "web" response envelope.
"""

from urllib.parse import parse_qs, urlsplit

import structlog
from pydantic import ValidationError

from core.logging import BusinessEvents
from core.metrics import record_event, record_outcome
from payments.models import (
    AuthorizationOutcome,
    AuthorizationSession,
    FlowKind,
    OutcomeStatus,
    RedirectResult,
    RedirectStatus,
)

log = structlog.get_logger(__name__)

NOT_COMPLETED = "user did not complete authorization"
INCONSISTENT = "inconsistent response data"


def last_path_segment(url: str) -> str | None:
    segments = [s for s in urlsplit(url).path.split("/") if s]
    return segments[-1] if segments else None


def query_parameter(url: str, key: str) -> str | None:
    values = parse_qs(urlsplit(url).query, keep_blank_values=True).get(key)
    return values[0] if values else None


def response_envelope(url: str) -> dict:
    return {
        "client": {"environment": None},
        "response": {"webURL": url},
        "response_type": "web",
    }


def _flow_from_metadata(metadata: dict | None) -> FlowKind | None:
    if not isinstance(metadata, dict):
        return None
    try:
        return FlowKind(metadata.get("payment-type"))
    except ValueError:
        return None


def check_returned_url(url: str | None, session: AuthorizationSession) -> str | None:
    """Return the rejection reason for `url`, or None when it is consistent."""
    if not url:
        return NOT_COMPLETED
    try:
        status = last_path_segment(url)
        if status is None or status != last_path_segment(session.success_url):
            return NOT_COMPLETED

        token_key = session.flow.token_key
        returned_token = query_parameter(url, token_key)
        requested_token = query_parameter(session.approval_url, token_key)
    except ValueError:
        return INCONSISTENT

    if returned_token is None or returned_token != requested_token:
        return INCONSISTENT
    return None


class HandshakeResolver:
    def resolve(self, result: RedirectResult) -> AuthorizationOutcome:
        flow = _flow_from_metadata(result.metadata)
        prefix = flow.event_prefix if flow else "checkout"
        outcome = self._resolve(result)

        if outcome.status is OutcomeStatus.CANCELLED:
            record_event(f"{prefix}.browser-switch.canceled")
        elif outcome.status is OutcomeStatus.AUTHORIZED:
            record_event(f"{prefix}.browser-switch.succeeded")
        else:
            record_event(f"{prefix}.browser-switch.failed", reason=outcome.reason)

        record_outcome(flow.value if flow else "unknown", outcome.status.value)
        log.info(
            BusinessEvents.REDIRECT_RESOLVED,
            flow=flow.value if flow else None,
            outcome=outcome.status.value,
            reason=outcome.reason,
        )
        return outcome

    def _resolve(self, result: RedirectResult) -> AuthorizationOutcome:
        if result.status is RedirectStatus.USER_CANCELLED:
            return AuthorizationOutcome.cancelled()

        try:
            session = AuthorizationSession.from_metadata(result.metadata)
        except ValidationError:
            return AuthorizationOutcome.invalid(INCONSISTENT)

        reason = check_returned_url(result.url, session)
        if reason is not None:
            return AuthorizationOutcome.invalid(reason, session=session)
        return AuthorizationOutcome.authorized(session, response_envelope(result.url))
