"""Create inventory item, stock adjustment and transfer tables.

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = "a1c3e5f7b9d2"
down_revision = None
branch_labels = None
depends_on = None

# Non-native enums persist member names.
LOCATION_TYPES = ("WAREHOUSE", "VEHICLE")
TRANSFER_STATUSES = ("PENDING", "IN_TRANSIT", "COMPLETED", "CANCELLED")


def _table_exists(table_name: str) -> bool:
    return bool(inspect(op.get_bind()).has_table(table_name))


def _location_enum(name: str) -> sa.Enum:
    return sa.Enum(*LOCATION_TYPES, name=name, native_enum=False)


def upgrade() -> None:
    if not _table_exists("inventory_items"):
        op.create_table(
            "inventory_items",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("organization_id", sa.String(length=36), nullable=False),
            sa.Column("sku", sa.String(length=64), nullable=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("category", sa.String(length=128), nullable=True),
            sa.Column("location", sa.String(length=128), nullable=True),
            sa.Column("vendor_id", sa.Integer(), nullable=True),
            sa.Column("unit", sa.String(length=32), nullable=False, server_default="each"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("location_type", _location_enum("inventory_location_type_enum"), nullable=True),
            sa.Column("location_id", sa.Integer(), nullable=True),
            sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("unit_cost", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("unit_price", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("minimum_stock", sa.Integer(), nullable=True),
            sa.Column("reorder_point", sa.Integer(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint(
                "organization_id", "location_type", "location_id", "sku",
                name="uq_inventory_item_sku_location",
            ),
            sa.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
        )
        op.create_index("ix_inventory_items_id", "inventory_items", ["id"])
        op.create_index("ix_inventory_items_organization_id", "inventory_items", ["organization_id"])
        op.create_index("ix_inventory_items_sku", "inventory_items", ["sku"])
        op.create_index("ix_inventory_items_org_category", "inventory_items", ["organization_id", "category"])
        op.create_index(
            "ix_inventory_items_org_location",
            "inventory_items",
            ["organization_id", "location_type", "location_id"],
        )

    if not _table_exists("inventory_transfers"):
        op.create_table(
            "inventory_transfers",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("organization_id", sa.String(length=36), nullable=False),
            sa.Column("source_type", _location_enum("transfer_source_type_enum"), nullable=False),
            sa.Column("source_id", sa.Integer(), nullable=False),
            sa.Column("destination_type", _location_enum("transfer_destination_type_enum"), nullable=False),
            sa.Column("destination_id", sa.Integer(), nullable=False),
            sa.Column(
                "status",
                sa.Enum(*TRANSFER_STATUSES, name="transfer_status_enum", native_enum=False),
                nullable=False,
            ),
            sa.Column("requested_by_user_id", sa.String(length=36), nullable=True),
            sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("approved_by_user_id", sa.String(length=36), nullable=True),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("completed_by_user_id", sa.String(length=36), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("cancelled_by_user_id", sa.String(length=36), nullable=True),
            sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("scheduled_date", sa.Date(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_inventory_transfers_id", "inventory_transfers", ["id"])
        op.create_index("ix_inventory_transfers_organization_id", "inventory_transfers", ["organization_id"])
        op.create_index("ix_inventory_transfers_requested_by_user_id", "inventory_transfers", ["requested_by_user_id"])
        op.create_index("ix_inventory_transfers_org_status", "inventory_transfers", ["organization_id", "status"])
        op.create_index(
            "ix_inventory_transfers_org_requested", "inventory_transfers", ["organization_id", "requested_at"]
        )

    if not _table_exists("inventory_transfer_items"):
        op.create_table(
            "inventory_transfer_items",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "transfer_id",
                sa.Integer(),
                sa.ForeignKey("inventory_transfers.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column(
                "inventory_item_id",
                sa.Integer(),
                sa.ForeignKey("inventory_items.id", ondelete="RESTRICT"),
                nullable=False,
            ),
            sa.Column("quantity", sa.Integer(), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.CheckConstraint("quantity > 0", name="ck_inventory_transfer_items_quantity_positive"),
        )
        op.create_index("ix_inventory_transfer_items_id", "inventory_transfer_items", ["id"])
        op.create_index("ix_inventory_transfer_items_transfer_id", "inventory_transfer_items", ["transfer_id"])
        op.create_index(
            "ix_inventory_transfer_items_inventory_item_id", "inventory_transfer_items", ["inventory_item_id"]
        )

    if not _table_exists("stock_adjustments"):
        op.create_table(
            "stock_adjustments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("organization_id", sa.String(length=36), nullable=False),
            sa.Column(
                "inventory_item_id",
                sa.Integer(),
                sa.ForeignKey("inventory_items.id", ondelete="RESTRICT"),
                nullable=False,
            ),
            sa.Column("previous_quantity", sa.Integer(), nullable=False),
            sa.Column("new_quantity", sa.Integer(), nullable=False),
            sa.Column("quantity_change", sa.Integer(), nullable=False),
            sa.Column("reason", sa.String(length=64), nullable=False),
            sa.Column("performed_by_user_id", sa.String(length=36), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("adjustment_date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("location_type", _location_enum("stock_adjustment_location_type_enum"), nullable=True),
            sa.Column("location_id", sa.Integer(), nullable=True),
            sa.Column(
                "transfer_id",
                sa.Integer(),
                sa.ForeignKey("inventory_transfers.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.CheckConstraint("new_quantity >= 0", name="ck_stock_adjustments_new_quantity_non_negative"),
        )
        op.create_index("ix_stock_adjustments_id", "stock_adjustments", ["id"])
        op.create_index("ix_stock_adjustments_organization_id", "stock_adjustments", ["organization_id"])
        op.create_index("ix_stock_adjustments_inventory_item_id", "stock_adjustments", ["inventory_item_id"])
        op.create_index("ix_stock_adjustments_reason", "stock_adjustments", ["reason"])
        op.create_index("ix_stock_adjustments_performed_by_user_id", "stock_adjustments", ["performed_by_user_id"])
        op.create_index("ix_stock_adjustments_transfer_id", "stock_adjustments", ["transfer_id"])
        op.create_index("ix_stock_adjustments_org_date", "stock_adjustments", ["organization_id", "adjustment_date"])
        op.create_index(
            "ix_stock_adjustments_item_date", "stock_adjustments", ["inventory_item_id", "adjustment_date"]
        )


def downgrade() -> None:
    for table_name in ("stock_adjustments", "inventory_transfer_items", "inventory_transfers", "inventory_items"):
        if _table_exists(table_name):
            op.drop_table(table_name)
