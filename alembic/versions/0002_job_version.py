"""Job optimistic versioning

Revision ID: 0002_job_version
Revises: 0001_initial_schema
Create Date: 2026-09-16

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_job_version"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def _has_column(insp: sa.Inspector, table: str, column: str) -> bool:
    if table not in insp.get_table_names():
        return False
    cols = {c["name"] for c in insp.get_columns(table)}
    return column in cols


def upgrade() -> None:
    insp = sa.inspect(op.get_bind())
    if not _has_column(insp, "jobs", "version"):
        with op.batch_alter_table("jobs", schema=None) as batch_op:
            batch_op.add_column(sa.Column("version", sa.Integer(), nullable=False, server_default="1"))


def downgrade() -> None:
    insp = sa.inspect(op.get_bind())
    if _has_column(insp, "jobs", "version"):
        with op.batch_alter_table("jobs", schema=None) as batch_op:
            batch_op.drop_column("version")
