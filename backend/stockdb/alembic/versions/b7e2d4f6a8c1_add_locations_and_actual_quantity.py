"""Add warehouse and vehicle registries and transfer line actual quantity.

Revision ID: b7e2d4f6a8c1
Revises: a1c3e5f7b9d2
Create Date: 2026-10-19 15:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = "b7e2d4f6a8c1"
down_revision = "a1c3e5f7b9d2"
branch_labels = None
depends_on = None


def _table_exists(table_name: str) -> bool:
    return bool(inspect(op.get_bind()).has_table(table_name))


def _column_exists(table_name: str, column_name: str) -> bool:
    columns = inspect(op.get_bind()).get_columns(table_name)
    return any(column["name"] == column_name for column in columns)


def upgrade() -> None:
    if not _table_exists("warehouses"):
        op.create_table(
            "warehouses",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("organization_id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=128), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("address", sa.String(length=255), nullable=True),
            sa.Column("phone_number", sa.String(length=32), nullable=True),
            sa.Column("latitude", sa.String(length=32), nullable=True),
            sa.Column("longitude", sa.String(length=32), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint("organization_id", "name", name="uq_warehouses_org_name"),
        )
        op.create_index("ix_warehouses_id", "warehouses", ["id"])
        op.create_index("ix_warehouses_organization_id", "warehouses", ["organization_id"])
        op.create_index("ix_warehouses_org_active", "warehouses", ["organization_id", "is_active"])

    if not _table_exists("vehicles"):
        op.create_table(
            "vehicles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("organization_id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=128), nullable=False),
            sa.Column("technician_user_id", sa.String(length=36), nullable=True),
            sa.Column("make", sa.String(length=64), nullable=True),
            sa.Column("model", sa.String(length=64), nullable=True),
            sa.Column("year", sa.Integer(), nullable=True),
            sa.Column("license_plate", sa.String(length=32), nullable=True),
            sa.Column("vin", sa.String(length=32), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint("organization_id", "name", name="uq_vehicles_org_name"),
        )
        op.create_index("ix_vehicles_id", "vehicles", ["id"])
        op.create_index("ix_vehicles_organization_id", "vehicles", ["organization_id"])
        op.create_index("ix_vehicles_technician_user_id", "vehicles", ["technician_user_id"])
        op.create_index("ix_vehicles_org_active", "vehicles", ["organization_id", "is_active"])

    if not _column_exists("inventory_transfer_items", "actual_quantity"):
        with op.batch_alter_table("inventory_transfer_items") as batch_op:
            batch_op.add_column(sa.Column("actual_quantity", sa.Integer(), nullable=True))
            batch_op.create_check_constraint(
                "ck_inventory_transfer_items_actual_quantity_non_negative",
                "actual_quantity IS NULL OR actual_quantity >= 0",
            )


def downgrade() -> None:
    if _column_exists("inventory_transfer_items", "actual_quantity"):
        with op.batch_alter_table("inventory_transfer_items") as batch_op:
            batch_op.drop_constraint("ck_inventory_transfer_items_actual_quantity_non_negative", type_="check")
            batch_op.drop_column("actual_quantity")
    for table_name in ("vehicles", "warehouses"):
        if _table_exists(table_name):
            op.drop_table(table_name)
