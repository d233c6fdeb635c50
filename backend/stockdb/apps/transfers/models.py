from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from stockdb.database import Base
from stockdb.apps.inventory.models import LocationTypeEnum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransferStatusEnum(str, enum.Enum):
    PENDING = "pending"
    IN_TRANSIT = "in_transit"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InventoryTransfer(Base):
    __tablename__ = "inventory_transfers"
    __table_args__ = (
        Index("ix_inventory_transfers_org_status", "organization_id", "status"),
        Index("ix_inventory_transfers_org_requested", "organization_id", "requested_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String(36), nullable=False, index=True)

    source_type = Column(
        SAEnum(LocationTypeEnum, name="transfer_source_type_enum", native_enum=False),
        nullable=False,
    )
    source_id = Column(Integer, nullable=False)
    destination_type = Column(
        SAEnum(LocationTypeEnum, name="transfer_destination_type_enum", native_enum=False),
        nullable=False,
    )
    destination_id = Column(Integer, nullable=False)

    # Only the workflow registry decides how this moves.
    status = Column(
        SAEnum(TransferStatusEnum, name="transfer_status_enum", native_enum=False),
        nullable=False,
        default=TransferStatusEnum.PENDING,
    )

    requested_by_user_id = Column(String(36), nullable=True, index=True)
    requested_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    approved_by_user_id = Column(String(36), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    completed_by_user_id = Column(String(36), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_user_id = Column(String(36), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    scheduled_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    items = relationship(
        "InventoryTransferItem",
        back_populates="transfer",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InventoryTransferItem.id",
    )

    @property
    def transfer_type(self) -> str:
        source = getattr(self.source_type, "value", self.source_type)
        destination = getattr(self.destination_type, "value", self.destination_type)
        return f"{source}_to_{destination}"

    def __repr__(self) -> str:
        return f"<InventoryTransfer id={self.id} {self.transfer_type} status={self.status}>"


class InventoryTransferItem(Base):
    __tablename__ = "inventory_transfer_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_transfer_items_quantity_positive"),
        CheckConstraint(
            "actual_quantity IS NULL OR actual_quantity >= 0",
            name="ck_inventory_transfer_items_actual_quantity_non_negative",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    transfer_id = Column(
        Integer,
        ForeignKey("inventory_transfers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    inventory_item_id = Column(
        Integer,
        ForeignKey("inventory_items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    quantity = Column(Integer, nullable=False)
    # Counted on loading; completion moves this when set, else the requested quantity.
    actual_quantity = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    transfer = relationship("InventoryTransfer", back_populates="items")
    inventory_item = relationship("InventoryItem", lazy="joined")

    @property
    def moved_quantity(self) -> int:
        if self.actual_quantity is not None:
            return self.actual_quantity
        return self.quantity or 0
