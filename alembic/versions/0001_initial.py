"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

# JobStatus and CreatorKind persist enum names; BillType persists its values
job_status = sa.Enum("IN_PROGRESS", "COMPLETED", "PENDING", "CANCELLED", name="jobstatus")
creator_kind = sa.Enum("USER", "GARAGE", name="creatorkind")
bill_type = sa.Enum("gst", "non-gst", name="billtype")


def upgrade() -> None:
    op.create_table(
        "garages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("address", sa.String(length=500), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("logo", sa.String(length=500), nullable=True),
        sa.Column("gst_num", sa.String(length=50), nullable=True),
        sa.Column("pan_num", sa.String(length=50), nullable=True),
        sa.Column("bank_details", sa.JSON(), nullable=False),
        sa.Column("subscription_type", sa.String(length=50), nullable=True),
        sa.Column("subscription_start", sa.DateTime(), nullable=True),
        sa.Column("subscription_end", sa.DateTime(), nullable=True),
        sa.Column("is_subscribed", sa.Boolean(), nullable=True),
        sa.Column("payment_details", sa.JSON(), nullable=False),
        sa.Column("approved", sa.Boolean(), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=True),
        sa.Column("verification_code", sa.String(length=10), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_garages_id", "garages", ["id"])
    op.create_index("ix_garages_email", "garages", ["email"], unique=True)

    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=50), nullable=False, unique=True),
        sa.Column("description", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_roles_id", "roles", ["id"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=False),
        sa.Column("garage_id", sa.Integer(), sa.ForeignKey("garages.id", ondelete="CASCADE"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_garage_id", "users", ["garage_id"])

    op.create_table(
        "engineers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("garage_id", sa.Integer(), sa.ForeignKey("garages.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("specialization", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_engineers_id", "engineers", ["id"])
    op.create_index("ix_engineers_garage_id", "engineers", ["garage_id"])

    op.create_table(
        "inventory_parts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("garage_id", sa.Integer(), sa.ForeignKey("garages.id", ondelete="CASCADE"), nullable=False),
        sa.Column("car_name", sa.String(length=255), nullable=False),
        sa.Column("model", sa.String(length=255), nullable=False),
        sa.Column("part_number", sa.String(length=100), nullable=False),
        sa.Column("part_name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=True),
        sa.Column("purchase_price", sa.Float(), nullable=False),
        sa.Column("selling_price", sa.Float(), nullable=False),
        sa.Column("tax_amount", sa.Float(), nullable=True),
        sa.Column("hsn_number", sa.String(length=50), nullable=False),
        sa.Column("igst", sa.Float(), nullable=True),
        sa.Column("cgst_sgst", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_inventory_parts_id", "inventory_parts", ["id"])
    op.create_index("ix_inventory_parts_garage_id", "inventory_parts", ["garage_id"])
    op.create_index("ix_inventory_parts_part_number", "inventory_parts", ["part_number"])
    op.create_index("ix_inventory_parts_part_name", "inventory_parts", ["part_name"])

    op.create_table(
        "job_cards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("garage_id", sa.Integer(), sa.ForeignKey("garages.id", ondelete="CASCADE"), nullable=False),
        sa.Column("job_card_number", sa.Integer(), nullable=False),
        sa.Column("job_id", sa.String(length=50), nullable=False),
        sa.Column("customer_number", sa.String(length=50), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("contact_number", sa.String(length=20), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("company", sa.String(length=255), nullable=True),
        sa.Column("car_number", sa.String(length=50), nullable=False),
        sa.Column("model", sa.String(length=255), nullable=False),
        sa.Column("kilometer", sa.Float(), nullable=False),
        sa.Column("fuel_type", sa.String(length=50), nullable=False),
        sa.Column("fuel_level", sa.String(length=50), nullable=True),
        sa.Column("insurance_provider", sa.String(length=255), nullable=True),
        sa.Column("policy_number", sa.String(length=100), nullable=True),
        sa.Column("expiry_date", sa.DateTime(), nullable=True),
        sa.Column("registration_number", sa.String(length=100), nullable=True),
        sa.Column("excess_amount", sa.Float(), nullable=True),
        sa.Column("job_type", sa.String(length=100), nullable=True),
        sa.Column("job_details", sa.Text(), nullable=True),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("video", sa.String(length=500), nullable=True),
        sa.Column("status", job_status, nullable=False),
        sa.Column("engineer_ids", sa.JSON(), nullable=False),
        sa.Column("parts_used", sa.JSON(), nullable=False),
        sa.Column("labour_service_cost", sa.JSON(), nullable=False),
        sa.Column("labor_hours", sa.Float(), nullable=True),
        sa.Column("labor_services_total", sa.Float(), nullable=True),
        sa.Column("labor_services_tax", sa.Float(), nullable=True),
        sa.Column("engineer_remarks", sa.Text(), nullable=True),
        sa.Column("qc_done_by", sa.JSON(), nullable=True),
        sa.Column("qc_notes", sa.Text(), nullable=True),
        sa.Column("qc_date", sa.DateTime(), nullable=True),
        sa.Column("qc_bill_approved", sa.Boolean(), nullable=True),
        sa.Column("generate_bill", sa.Boolean(), nullable=False),
        sa.Column("created_by_kind", creator_kind, nullable=False),
        sa.Column("created_by_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("garage_id", "job_card_number", name="uq_job_cards_garage_number"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_job_cards_id", "job_cards", ["id"])
    op.create_index("ix_job_cards_garage_id", "job_cards", ["garage_id"])
    op.create_index("ix_job_cards_job_id", "job_cards", ["job_id"])

    op.create_table(
        "bills",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("garage_id", sa.Integer(), sa.ForeignKey("garages.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "job_card_id", sa.Integer(),
            sa.ForeignKey("job_cards.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("job_id", sa.String(length=50), nullable=True),
        sa.Column("invoice_no", sa.String(length=20), nullable=False),
        sa.Column("invoice_seq", sa.Integer(), nullable=False),
        sa.Column("bill_type", bill_type, nullable=False),
        sa.Column("parts", sa.JSON(), nullable=False),
        sa.Column("services", sa.JSON(), nullable=False),
        sa.Column("total_parts_cost", sa.Float(), nullable=False),
        sa.Column("total_labor_cost", sa.Float(), nullable=False),
        sa.Column("sub_total", sa.Float(), nullable=False),
        sa.Column("gst", sa.Float(), nullable=False),
        sa.Column("gst_percentage", sa.Float(), nullable=False),
        sa.Column("discount", sa.Float(), nullable=False),
        sa.Column("final_amount", sa.Float(), nullable=False),
        sa.Column("hsn_code", sa.String(length=50), nullable=True),
        sa.Column("logo", sa.String(length=500), nullable=True),
        sa.Column("bank_details", sa.JSON(), nullable=False),
        sa.Column("bill_to_party", sa.JSON(), nullable=True),
        sa.Column("shift_to_party", sa.JSON(), nullable=True),
        sa.Column("is_paid", sa.Boolean(), nullable=False),
        sa.Column("payment_method", sa.String(length=50), nullable=True),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("garage_id", "bill_type", "invoice_seq", name="uq_bills_garage_series_seq"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_bills_id", "bills", ["id"])
    op.create_index("ix_bills_garage_id", "bills", ["garage_id"])
    op.create_index("ix_bills_job_card_id", "bills", ["job_card_id"])
    op.create_index("ix_bills_job_id", "bills", ["job_id"])

    op.create_table(
        "sequence_counters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "garage_id", sa.Integer(),
            sa.ForeignKey("garages.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("current_value", sa.Integer(), nullable=False),
        sa.UniqueConstraint("garage_id", "name", name="uq_sequence_counters_garage_name"),
    )
    op.create_index("ix_sequence_counters_id", "sequence_counters", ["id"])
    op.create_index("ix_sequence_counters_garage_id", "sequence_counters", ["garage_id"])


def downgrade() -> None:
    op.drop_table("sequence_counters")
    op.drop_table("bills")
    op.drop_table("job_cards")
    op.drop_table("inventory_parts")
    op.drop_table("engineers")
    op.drop_table("users")
    op.drop_table("roles")
    op.drop_table("garages")
    bind = op.get_bind()
    for enum_type in (bill_type, creator_kind, job_status):
        enum_type.drop(bind, checkfirst=True)
