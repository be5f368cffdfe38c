"""enrichment and scoring columns

Revision ID: 0002_enrichment_and_scoring
Revises: 0001_roles_ledger
Create Date: 2026-03-09

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_enrichment_and_scoring"
down_revision = "0001_roles_ledger"
branch_labels = None
depends_on = None


def _enrichment_columns() -> list[sa.Column]:
    return [
        sa.Column("jd_text", sa.Text(), nullable=False, server_default=""),
        sa.Column("location_raw", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("work_mode_hint", sa.String(length=80), nullable=False, server_default=""),
        sa.Column("http_status", sa.String(length=10), nullable=False, server_default=""),
        sa.Column("failure_reason", sa.String(length=80), nullable=False, server_default=""),
        sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("enriched_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _scoring_columns() -> list[sa.Column]:
    return [
        sa.Column("fit_score", sa.Integer(), nullable=True),
        sa.Column("fit_notes", sa.Text(), nullable=True),
        sa.Column("dealbreaker_flag", sa.Boolean(), nullable=True),
        sa.Column("location_us_ok", sa.String(length=10), nullable=True),
        sa.Column("comp_ok", sa.String(length=10), nullable=True),
        sa.Column("work_mode_final", sa.String(length=20), nullable=True),
        sa.Column("rank_key", sa.String(length=800), nullable=True),
        sa.Column("scored_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _has_table(insp: sa.Inspector, table: str) -> bool:
    return table in insp.get_table_names()


def _has_column(insp: sa.Inspector, table: str, column: str) -> bool:
    if not _has_table(insp, table):
        return False
    cols = {c["name"] for c in insp.get_columns(table)}
    return column in cols


def upgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if not _has_table(insp, "roles"):
        return

    with op.batch_alter_table("roles", schema=None) as batch_op:
        for column in _enrichment_columns() + _scoring_columns():
            if not _has_column(insp, "roles", column.name):
                batch_op.add_column(column)

    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing = {idx["name"] for idx in insp.get_indexes("roles")}
    if "ix_roles_rank_key" not in existing:
        op.create_index("ix_roles_rank_key", "roles", ["rank_key"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if not _has_table(insp, "roles"):
        return

    existing = {idx["name"] for idx in insp.get_indexes("roles")}
    if "ix_roles_rank_key" in existing:
        op.drop_index("ix_roles_rank_key", table_name="roles")

    with op.batch_alter_table("roles", schema=None) as batch_op:
        for column in reversed(_enrichment_columns() + _scoring_columns()):
            if _has_column(insp, "roles", column.name):
                batch_op.drop_column(column.name)
