"""roles ledger

Revision ID: 0001_roles_ledger
Revises:
Create Date: 2026-03-02

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_roles_ledger"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("canonical_url", sa.String(length=800), nullable=False),
        sa.Column("company", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("job_title", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("source", sa.String(length=40), nullable=False),
        sa.Column("discovered_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="New"),
        sa.Column("query", sa.Text(), nullable=False, server_default=""),
        sa.Column("ats", sa.String(length=20), nullable=False, server_default="unknown"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_roles_canonical_url", "roles", ["canonical_url"], unique=True)
    op.create_index("ix_roles_status", "roles", ["status"], unique=False)

    op.create_table(
        "run_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("stage", sa.String(length=120), nullable=False),
        sa.Column("message", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("run_logs")
    op.drop_index("ix_roles_status", table_name="roles")
    op.drop_index("ix_roles_canonical_url", table_name="roles")
    op.drop_table("roles")
