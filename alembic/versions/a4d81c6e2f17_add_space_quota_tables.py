"""add_space_quota_tables

Revision ID: a4d81c6e2f17
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "a4d81c6e2f17"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "space_quota",
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("limit_bytes", sa.BigInteger(), nullable=False),
        sa.Column("violation_policy", sa.String(length=32), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("kind", "subject"),
    )
    op.create_table(
        "table_region",
        sa.Column("region_id", sa.String(length=255), nullable=False),
        sa.Column("table_name", sa.String(length=255), nullable=False),
        sa.Column("namespace", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("region_id"),
    )
    op.create_index("ix_table_region_table_name", "table_region", ["table_name"])
    op.create_index("ix_table_region_namespace", "table_region", ["namespace"])
    op.create_table(
        "region_size_report",
        sa.Column("region_id", sa.String(length=255), nullable=False),
        sa.Column("size_bytes", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("reported_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("region_id"),
    )
    op.create_table(
        "space_quota_enforcement",
        sa.Column("table_name", sa.String(length=255), nullable=False),
        sa.Column("violation_policy", sa.String(length=32), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("table_name"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("space_quota_enforcement")
    op.drop_table("region_size_report")
    op.drop_index("ix_table_region_namespace", table_name="table_region")
    op.drop_index("ix_table_region_table_name", table_name="table_region")
    op.drop_table("table_region")
    op.drop_table("space_quota")
