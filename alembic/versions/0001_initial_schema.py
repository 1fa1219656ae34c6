"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "test_results",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("test_date", sa.Date(), nullable=False),
        sa.Column("file_path", sa.String(length=512), nullable=False),
        sa.Column("lab_name", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("approval_status", sa.String(length=20), nullable=False),
        sa.Column("results", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_test_results_user_id", "test_results", ["user_id"], unique=False)
    op.create_index("ix_test_results_test_date", "test_results", ["test_date"], unique=False)
    op.create_index("ix_test_results_status", "test_results", ["status"], unique=False)
    op.create_index("ix_test_results_approval_status", "test_results", ["approval_status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_test_results_approval_status", table_name="test_results")
    op.drop_index("ix_test_results_status", table_name="test_results")
    op.drop_index("ix_test_results_test_date", table_name="test_results")
    op.drop_index("ix_test_results_user_id", table_name="test_results")
    op.drop_table("test_results")
