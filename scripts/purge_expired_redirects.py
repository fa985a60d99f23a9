#!/usr/bin/env python3
"""
Mark abandoned redirects as expired.

A redirect whose browser never came back stays `pending` forever; once it is
older than PENDING_REDIRECT_TTL_SECONDS it no longer blocks new checkouts, and
this script records that by flipping it to `expired`. Can be run as a cron job
or manually.
"""

import sys
import os
from datetime import UTC, datetime, timedelta

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import structlog  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from core.dependencies import get_settings, init_settings  # noqa: E402
from db.models import PendingRedirect, PendingRedirectStatus  # noqa: E402
from db.session import manual_session  # noqa: E402

log = structlog.get_logger(__name__)


def expire_pending_redirects(db: Session, ttl_seconds: int) -> int:
    """Flip stale pending redirects to expired and return how many changed."""
    cutoff = datetime.now(UTC) - timedelta(seconds=ttl_seconds)
    stale = (
        db.query(PendingRedirect)
        .filter(
            PendingRedirect.status == PendingRedirectStatus.pending,
            PendingRedirect.created_at <= cutoff,
        )
        .all()
    )

    for record in stale:
        record.status = PendingRedirectStatus.expired
        log.info(
            "redirect.expired",
            pending_redirect_id=record.id,
            flow=record.flow,
            correlation_id=record.correlation_id,
        )
    return len(stale)


def main():
    init_settings()
    settings = get_settings()
    with manual_session(settings) as db:
        count = expire_pending_redirects(db, settings.PENDING_REDIRECT_TTL_SECONDS)
    print(f"✅ Expired {count} abandoned redirects")


if __name__ == "__main__":
    main()
