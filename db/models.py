"""
Database Models Module

This module defines SQLAlchemy ORM models for:
- Pending redirects (serialized AuthorizationSession metadata kept across the
  browser round-trip)
"""

from datetime import UTC, datetime
from enum import Enum as PyEnum

from sqlalchemy import JSON, Column, DateTime, Enum, Index, Integer, String, Text, text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


PENDING_ONLY = "status = 'pending'"


class PendingRedirectStatus(PyEnum):
    pending = "pending"
    consumed = "consumed"
    expired = "expired"


class PendingRedirect(Base):
    """A launched redirect waiting for the browser to come back."""

    __tablename__ = "pending_redirects"
    __table_args__ = (
        Index("ix_pending_redirects_browser_status", "browser_key", "status"),
        # At most one live redirect per browser
        Index(
            "uq_pending_redirects_browser_pending",
            "browser_key",
            unique=True,
            postgresql_where=text(PENDING_ONLY),
            sqlite_where=text(PENDING_ONLY),
        ),
    )

    id = Column(Integer, primary_key=True)
    browser_key = Column(String(64), nullable=False)
    target_url = Column(Text, nullable=False)
    flow = Column(String(32), nullable=True)
    correlation_id = Column(String(255), nullable=True)
    request_metadata = Column(JSON, nullable=False)
    status = Column(
        Enum(PendingRedirectStatus),
        nullable=False,
        default=PendingRedirectStatus.pending,
    )
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    consumed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<PendingRedirect(id={self.id}, browser_key={self.browser_key}, status={self.status})>"
