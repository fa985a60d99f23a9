"""create pending_redirects table

Revision ID: 3a7c1e2b9f10
Revises:
Create Date: 2026-10-12 09:40:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3a7c1e2b9f10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "pending_redirects",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("browser_key", sa.String(length=64), nullable=False),
        sa.Column("target_url", sa.Text(), nullable=False),
        sa.Column("flow", sa.String(length=32), nullable=True),
        sa.Column("correlation_id", sa.String(length=255), nullable=True),
        sa.Column("request_metadata", sa.JSON(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "consumed", "expired", name="pendingredirectstatus"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("consumed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_pending_redirects_browser_status",
        "pending_redirects",
        ["browser_key", "status"],
    )


def downgrade() -> None:
    op.drop_index("ix_pending_redirects_browser_status", table_name="pending_redirects")
    op.drop_table("pending_redirects")
    op.execute("DROP TYPE IF EXISTS pendingredirectstatus")
