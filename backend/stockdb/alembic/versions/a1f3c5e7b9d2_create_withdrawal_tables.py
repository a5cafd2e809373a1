"""Create directory, item, withdrawal and audit tables.

Revision ID: a1f3c5e7b9d2
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1f3c5e7b9d2"
down_revision = None
branch_labels = None
depends_on = None

ITEM_STATUSES = ("IN_STOCK", "RESERVED", "INSTALLED", "LENT", "TRANSFERRED", "BROKEN")
WITHDRAWAL_TYPES = ("INSTALLATION", "LENDING", "TRANSFER")
WITHDRAWAL_STATUSES = ("PENDING", "CONFIRMED", "CANCELLED")


def _enum(values, name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("customer_code", sa.String(length=32), primary_key=True),
        sa.Column("customer_name", sa.String(length=255), nullable=False, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "branches",
        sa.Column("branch_code", sa.String(length=32), primary_key=True),
        sa.Column("branch_name", sa.String(length=255), nullable=False, index=True),
        sa.Column(
            "owner_customer_code",
            sa.String(length=32),
            sa.ForeignKey("customers.customer_code", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_branches_owner", "branches", ["owner_customer_code"])
    op.create_table(
        "departments",
        sa.Column("department_code", sa.String(length=32), primary_key=True),
        sa.Column("department_name", sa.String(length=255), nullable=False, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "staff",
        sa.Column("staff_code", sa.String(length=32), primary_key=True),
        sa.Column("staff_name", sa.String(length=255), nullable=False, index=True),
        sa.Column(
            "department_code",
            sa.String(length=32),
            sa.ForeignKey("departments.department_code", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "items",
        sa.Column("serial_no", sa.String(length=64), primary_key=True),
        sa.Column("model", sa.String(length=128), nullable=True),
        sa.Column("status", _enum(ITEM_STATUSES, "item_status_enum"), nullable=False, server_default="IN_STOCK"),
        sa.Column(
            "reserved_branch_code",
            sa.String(length=32),
            sa.ForeignKey("branches.branch_code", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_items_status", "items", ["status"])
    op.create_index("ix_items_reserved_branch", "items", ["reserved_branch_code"])

    op.create_table(
        "withdrawals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("type", _enum(WITHDRAWAL_TYPES, "withdrawal_type_enum"), nullable=False),
        sa.Column(
            "status",
            _enum(WITHDRAWAL_STATUSES, "withdrawal_status_enum"),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column(
            "for_branch_code",
            sa.String(length=32),
            sa.ForeignKey("branches.branch_code", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "for_department_code",
            sa.String(length=32),
            sa.ForeignKey("departments.department_code", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "created_by_staff_code",
            sa.String(length=32),
            sa.ForeignKey("staff.staff_code", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("install_date", sa.Date(), nullable=True),
        sa.Column("return_by", sa.Date(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_withdrawals_id", "withdrawals", ["id"])
    op.create_index("ix_withdrawals_status_date", "withdrawals", ["status", "date"])
    op.create_index("ix_withdrawals_type", "withdrawals", ["type"])
    op.create_index("ix_withdrawals_for_branch_code", "withdrawals", ["for_branch_code"])
    op.create_index("ix_withdrawals_for_department_code", "withdrawals", ["for_department_code"])
    op.create_index("ix_withdrawals_created_by_staff_code", "withdrawals", ["created_by_staff_code"])

    op.create_table(
        "withdrawal_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "withdrawal_id",
            sa.Integer(),
            sa.ForeignKey("withdrawals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "serial_no",
            sa.String(length=64),
            sa.ForeignKey("items.serial_no", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("withdrawal_id", "serial_no", name="uq_withdrawal_item"),
    )
    op.create_index("ix_withdrawal_items_id", "withdrawal_items", ["id"])
    op.create_index("ix_withdrawal_items_withdrawal_id", "withdrawal_items", ["withdrawal_id"])
    op.create_index("ix_withdrawal_items_serial", "withdrawal_items", ["serial_no"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("actor_staff_code", sa.String(length=32), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_events_id", "audit_events", ["id"])
    op.create_index("ix_audit_events_entity", "audit_events", ["entity_type", "entity_id"])
    op.create_index("ix_audit_events_action", "audit_events", ["action"])
    op.create_index("ix_audit_events_occurred_at", "audit_events", ["occurred_at"])
    op.create_index("ix_audit_events_actor_staff_code", "audit_events", ["actor_staff_code"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("withdrawal_items")
    op.drop_table("withdrawals")
    op.drop_table("items")
    op.drop_table("staff")
    op.drop_table("departments")
    op.drop_table("branches")
    op.drop_table("customers")
