"""create project numbering tables

Revision ID: 202610180001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610180001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "project_sequence",
        sa.Column("department_code", sa.String(length=2), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("last_sequence_number", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("department_code", "year"),
        sa.CheckConstraint("year >= 0 AND year <= 99", name="ck_project_sequence_year_range"),
        sa.CheckConstraint("last_sequence_number >= 0", name="ck_project_sequence_nonnegative"),
    )

    op.create_table(
        "project_mapping",
        sa.Column("project_number", sa.String(length=16), nullable=False),
        sa.Column("department", sa.String(length=255), nullable=False),
        sa.Column("department_code", sa.String(length=2), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("project_number"),
        sa.UniqueConstraint("department_code", "year", "sequence", name="uq_project_mapping_partition_sequence"),
        sa.CheckConstraint("sequence >= 1", name="ck_project_mapping_sequence_positive"),
    )
    op.create_index("ix_project_mapping_partition", "project_mapping", ["department_code", "year"])

    op.create_table(
        "project_mapping_deal",
        sa.Column("deal_id", sa.BigInteger(), nullable=False),
        sa.Column("project_number", sa.String(length=16), nullable=False),
        sa.Column("linked_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["project_number"], ["project_mapping.project_number"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("deal_id"),
        sa.CheckConstraint("deal_id >= 1", name="ck_project_mapping_deal_positive"),
    )
    op.create_index("ix_project_mapping_deal_project", "project_mapping_deal", ["project_number"])


def downgrade() -> None:
    op.drop_index("ix_project_mapping_deal_project", table_name="project_mapping_deal")
    op.drop_table("project_mapping_deal")
    op.drop_index("ix_project_mapping_partition", table_name="project_mapping")
    op.drop_table("project_mapping")
    op.drop_table("project_sequence")
