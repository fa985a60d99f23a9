"""
Browser redirect mechanism backed by the database.

`launch` stores the serialized session in `pending_redirects` and remembers
the approval URL so the route can send the browser there. The browser's
return hit is turned back into a RedirectResult by `consume`, which claims
the row exactly once.

A partial unique index allows one `pending` row per browser, so two starts
racing past `has_pending` cannot both launch.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlsplit

import structlog
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.models import PendingRedirect, PendingRedirectStatus
from payments.errors import AuthorizationInProgress, NoPendingAuthorization
from payments.interfaces import RedirectMechanism
from payments.models import RedirectResult, RedirectStatus

log = structlog.get_logger(__name__)


class DatabaseRedirectMechanism(RedirectMechanism):
    def __init__(
        self,
        db: Session,
        browser_key: str,
        allowed_hosts: set[str],
        ttl_seconds: int = 3600,
    ):
        self.db = db
        self.browser_key = browser_key
        self.allowed_hosts = allowed_hosts
        self.ttl_seconds = ttl_seconds
        self.launched_url: str | None = None

    def is_return_target_registered(self, return_url_base: str) -> bool:
        try:
            parts = urlsplit(return_url_base)
        except ValueError:
            return False
        return (
            parts.scheme in ("http", "https")
            and (parts.hostname or "").lower() in self.allowed_hosts
        )

    def _cutoff(self) -> datetime:
        return datetime.now(UTC) - timedelta(seconds=self.ttl_seconds)

    def _pending(self):
        cutoff = self._cutoff()
        return self.db.query(PendingRedirect).filter(
            PendingRedirect.browser_key == self.browser_key,
            PendingRedirect.status == PendingRedirectStatus.pending,
            PendingRedirect.created_at > cutoff,
        )

    def has_pending(self) -> bool:
        return self._pending().first() is not None

    def _expire_stale(self) -> None:
        # Frees the single pending slot held by an abandoned redirect
        stale = self.db.query(PendingRedirect).filter(
            PendingRedirect.browser_key == self.browser_key,
            PendingRedirect.status == PendingRedirectStatus.pending,
            PendingRedirect.created_at <= self._cutoff(),
        )
        for record in stale:
            record.status = PendingRedirectStatus.expired
        self.db.flush()

    def launch(self, url: str, metadata: dict[str, Any]) -> None:
        """Claim this browser's pending slot and store the session metadata.

        Raises AuthorizationInProgress when another start claimed it first.
        """
        self._expire_stale()
        record = PendingRedirect(
            browser_key=self.browser_key,
            target_url=url,
            flow=metadata.get("payment-type"),
            correlation_id=metadata.get("client-metadata-id"),
            request_metadata=metadata,
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            log.warning(
                "redirect.launch.rejected",
                browser_key=self.browser_key,
                flow=metadata.get("payment-type"),
            )
            raise AuthorizationInProgress() from e
        self.launched_url = url
        log.info(
            "redirect.launched",
            browser_key=self.browser_key,
            pending_redirect_id=record.id,
            flow=record.flow,
        )

    def consume(self, status: RedirectStatus, url: str | None) -> RedirectResult:
        """Claim the browser's pending redirect and build its return event."""
        record = self._pending().order_by(PendingRedirect.id.desc()).first()
        if record is None:
            raise NoPendingAuthorization()

        claimed = self.db.execute(
            update(PendingRedirect)
            .where(
                PendingRedirect.id == record.id,
                PendingRedirect.status == PendingRedirectStatus.pending,
            )
            .values(
                status=PendingRedirectStatus.consumed,
                consumed_at=datetime.now(UTC),
            )
        )
        self.db.commit()
        if claimed.rowcount != 1:
            # Another return hit claimed it first
            raise NoPendingAuthorization()

        log.info(
            "redirect.consumed",
            browser_key=self.browser_key,
            pending_redirect_id=record.id,
            status=status.value,
        )
        return RedirectResult(
            status=status, url=url, metadata=dict(record.request_metadata)
        )
