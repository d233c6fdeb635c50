from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from stockdb.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocationTypeEnum(str, enum.Enum):
    WAREHOUSE = "warehouse"
    VEHICLE = "vehicle"


class StockStatusEnum(str, enum.Enum):
    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    IN_STOCK = "in_stock"


class AdjustmentReasonEnum(str, enum.Enum):
    """Reasons written by the system itself; callers may use free text."""

    INITIAL_STOCK = "initial_stock"
    MANUAL_EDIT = "manual_edit"
    TRANSFER_OUT = "transfer_out"
    TRANSFER_IN = "transfer_in"


class InventoryItem(Base):
    __tablename__ = "inventory_items"
    __table_args__ = (
        # One row per SKU per location; the same SKU recurs across locations of an org.
        UniqueConstraint(
            "organization_id",
            "location_type",
            "location_id",
            "sku",
            name="uq_inventory_item_sku_location",
        ),
        CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
        Index("ix_inventory_items_org_category", "organization_id", "category"),
        Index("ix_inventory_items_org_location", "organization_id", "location_type", "location_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String(36), nullable=False, index=True)
    sku = Column(String(64), nullable=True, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(128), nullable=True)
    location = Column(String(128), nullable=True)
    vendor_id = Column(Integer, nullable=True)
    unit = Column(String(32), nullable=False, default="each")
    notes = Column(Text, nullable=True)

    location_type = Column(
        SAEnum(LocationTypeEnum, name="inventory_location_type_enum", native_enum=False),
        nullable=True,
    )
    location_id = Column(Integer, nullable=True)

    # Only stockdb.apps.inventory.ledger writes this column.
    quantity = Column(Integer, nullable=False, default=0)
    unit_cost = Column(Integer, nullable=False, default=0)
    unit_price = Column(Integer, nullable=False, default=0)
    minimum_stock = Column(Integer, nullable=True)
    reorder_point = Column(Integer, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} sku={self.sku!r} qty={self.quantity}>"


class StockAdjustment(Base):
    """
    Append-only ledger entry. Rows are never updated or deleted.
    """

    __tablename__ = "stock_adjustments"
    __table_args__ = (
        Index("ix_stock_adjustments_org_date", "organization_id", "adjustment_date"),
        Index("ix_stock_adjustments_item_date", "inventory_item_id", "adjustment_date"),
        CheckConstraint("new_quantity >= 0", name="ck_stock_adjustments_new_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String(36), nullable=False, index=True)
    inventory_item_id = Column(
        Integer,
        ForeignKey("inventory_items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    previous_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)
    quantity_change = Column(Integer, nullable=False)
    reason = Column(String(64), nullable=False, index=True)
    performed_by_user_id = Column(String(36), nullable=True, index=True)
    notes = Column(Text, nullable=True)
    adjustment_date = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    location_type = Column(
        SAEnum(LocationTypeEnum, name="stock_adjustment_location_type_enum", native_enum=False),
        nullable=True,
    )
    location_id = Column(Integer, nullable=True)
    transfer_id = Column(
        Integer,
        ForeignKey("inventory_transfers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<StockAdjustment id={self.id} item={self.inventory_item_id} "
            f"{self.previous_quantity}->{self.new_quantity}>"
        )
