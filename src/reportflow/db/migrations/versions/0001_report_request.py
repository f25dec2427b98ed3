"""Create report_request table.

Revision ID: 0001
Revises:
"""

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "report_request",
        sa.Column("request_id", sa.String(64), primary_key=True),
        sa.Column("report_type", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("requested_by", sa.String(128), nullable=False),
        sa.Column("parameters", sa.JSON(), nullable=False),
        sa.Column("archive_ref", sa.String(256), nullable=True),
        sa.Column("error_message", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_report_request_status", "report_request", ["status"])
    op.create_index("ix_report_request_created_at", "report_request", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_report_request_created_at", table_name="report_request")
    op.drop_index("ix_report_request_status", table_name="report_request")
    op.drop_table("report_request")
