"""single pending redirect per browser, tz-aware timestamps

Revision ID: 7c2d4e6f8a13
Revises: 3a7c1e2b9f10
Create Date: 2026-10-17 10:15:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "7c2d4e6f8a13"
down_revision: Union[str, None] = "3a7c1e2b9f10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PENDING_ONLY = sa.text("status = 'pending'")


def upgrade() -> None:
    with op.batch_alter_table("pending_redirects") as batch_op:
        batch_op.alter_column(
            "created_at",
            existing_type=sa.DateTime(),
            type_=sa.DateTime(timezone=True),
            existing_nullable=False,
        )
        batch_op.alter_column(
            "consumed_at",
            existing_type=sa.DateTime(),
            type_=sa.DateTime(timezone=True),
            existing_nullable=True,
        )

    # Keep only the newest pending row per browser before enforcing uniqueness
    op.execute(
        """
        UPDATE pending_redirects SET status = 'expired'
        WHERE status = 'pending' AND id NOT IN (
            SELECT MAX(id) FROM pending_redirects
            WHERE status = 'pending' GROUP BY browser_key
        )
        """
    )
    op.create_index(
        "uq_pending_redirects_browser_pending",
        "pending_redirects",
        ["browser_key"],
        unique=True,
        postgresql_where=PENDING_ONLY,
        sqlite_where=PENDING_ONLY,
    )


def downgrade() -> None:
    op.drop_index("uq_pending_redirects_browser_pending", table_name="pending_redirects")
    with op.batch_alter_table("pending_redirects") as batch_op:
        batch_op.alter_column(
            "consumed_at",
            existing_type=sa.DateTime(timezone=True),
            type_=sa.DateTime(),
            existing_nullable=True,
        )
        batch_op.alter_column(
            "created_at",
            existing_type=sa.DateTime(timezone=True),
            type_=sa.DateTime(),
            existing_nullable=False,
        )
