"""ledger tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "applied_applications",
        sa.Column("app_name", sa.String(length=63), nullable=False),
        sa.Column("application_id", sa.String(length=255), nullable=False),
        sa.Column("subdomain", sa.String(length=63), nullable=False),
        sa.Column("domain", sa.String(length=500), nullable=True),
        sa.Column("source_path", sa.String(length=1000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("app_name"),
    )

    op.create_table(
        "reconciliation_runs",
        sa.Column("run_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("app_name", sa.String(length=255), nullable=False),
        sa.Column("operation", sa.String(length=20), nullable=False),
        sa.Column("mode", sa.String(length=20), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("application_id", sa.String(length=255), nullable=True),
        sa.Column("domain", sa.String(length=500), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("error_kind", sa.String(length=50), nullable=True),
        sa.Column("warnings", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("run_id"),
    )
    op.create_index("ix_reconciliation_runs_app_name", "reconciliation_runs", ["app_name"])
    op.create_index("ix_reconciliation_runs_created_at", "reconciliation_runs", ["created_at"])
    op.create_index("ix_runs_app_created", "reconciliation_runs", ["app_name", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_runs_app_created", table_name="reconciliation_runs")
    op.drop_index("ix_reconciliation_runs_created_at", table_name="reconciliation_runs")
    op.drop_index("ix_reconciliation_runs_app_name", table_name="reconciliation_runs")
    op.drop_table("reconciliation_runs")
    op.drop_table("applied_applications")
