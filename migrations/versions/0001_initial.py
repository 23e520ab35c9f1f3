"""Queue and admin tables for queue-drain

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

Adds:
- drain_queue: leased work items (one row per queued record)
- drain_settings: operator-managed integer settings (e.g. drain.batch_size)
- drain_shunts: operator kill-switches by coordinator name
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "drain_queue",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("queue_name", sa.Text, nullable=False),
        sa.Column("payload", postgresql.JSONB, nullable=False),
        sa.Column(
            "enqueued_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("lease_token", postgresql.UUID(as_uuid=False)),
        sa.Column("leased_until", sa.TIMESTAMP(timezone=True)),
    )

    # Claim path: visible rows of one queue in FIFO order
    op.execute(
        """
        CREATE INDEX ix_drain_queue_claim
            ON drain_queue (queue_name, leased_until, id);
    """
    )

    op.create_table(
        "drain_settings",
        sa.Column("key", sa.Text, primary_key=True),
        sa.Column("value", sa.Text, nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()")),
    )

    op.create_table(
        "drain_shunts",
        sa.Column("name", sa.Text, primary_key=True),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("reason", sa.Text),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()")),
    )

    op.execute("INSERT INTO drain_settings (key, value) VALUES ('drain.batch_size', '100')")


def downgrade() -> None:
    op.drop_table("drain_shunts")
    op.drop_table("drain_settings")
    op.execute("DROP INDEX IF EXISTS ix_drain_queue_claim")
    op.drop_table("drain_queue")
