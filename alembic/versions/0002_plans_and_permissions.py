"""subscription plans and user permissions

Revision ID: 0002_plans_and_permissions
Revises: 0001_initial
Create Date: 2026-10-17 15:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


revision = "0002_plans_and_permissions"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "plans",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("duration_in_months", sa.Integer(), nullable=False),
        sa.Column("subscription_type", sa.String(length=50), nullable=True),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_plans_id", "plans", ["id"])

    with op.batch_alter_table("users") as batch_op:
        batch_op.add_column(sa.Column("permissions", sa.JSON(), nullable=False, server_default="[]"))


def downgrade() -> None:
    with op.batch_alter_table("users") as batch_op:
        batch_op.drop_column("permissions")
    op.drop_index("ix_plans_id", table_name="plans")
    op.drop_table("plans")
