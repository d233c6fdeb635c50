"""
Dashboard figures, recomputed from current state on every call.

Only active items are counted. Values are integer minor units
(``quantity * unit_cost``), so sums are exact.
"""

from __future__ import annotations

import os
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from stockdb.apps.inventory import models as inventory_models
from stockdb.apps.inventory.status import classify_stock
from stockdb.apps.locations import services as location_services
from stockdb.apps.transfers import models as transfer_models

from . import schemas

UNCATEGORIZED = "Uncategorized"
RECENT_ADJUSTMENTS_LIMIT = int(os.getenv("STOCKDB_RECENT_ADJUSTMENTS_LIMIT", "10"))


def _active_items(db: Session, *, organization_id: str) -> List[inventory_models.InventoryItem]:
    return (
        db.query(inventory_models.InventoryItem)
        .filter(
            inventory_models.InventoryItem.organization_id == organization_id,
            inventory_models.InventoryItem.is_active.is_(True),
        )
        .order_by(inventory_models.InventoryItem.id.asc())
        .all()
    )


def _item_value(item) -> int:
    return (item.quantity or 0) * (item.unit_cost or 0)


def total_inventory_value(items: Iterable) -> int:
    return sum(_item_value(item) for item in items)


def category_breakdown(items: Iterable) -> List[schemas.CategoryBreakdownRead]:
    buckets: Dict[str, Dict[str, int]] = defaultdict(
        lambda: {"item_count": 0, "total_quantity": 0, "total_value": 0}
    )
    for item in items:
        category = (item.category or "").strip() or UNCATEGORIZED
        bucket = buckets[category]
        bucket["item_count"] += 1
        bucket["total_quantity"] += item.quantity or 0
        bucket["total_value"] += _item_value(item)
    rows = [schemas.CategoryBreakdownRead(category=name, **totals) for name, totals in buckets.items()]
    rows.sort(key=lambda row: (-row.total_value, row.category))
    return rows


def low_stock_items(items: Iterable) -> list:
    flagged = (inventory_models.StockStatusEnum.LOW_STOCK, inventory_models.StockStatusEnum.OUT_OF_STOCK)
    return [item for item in items if classify_stock(item) in flagged]


def low_stock_report(db: Session, *, organization_id: str) -> List[inventory_models.InventoryItem]:
    return low_stock_items(_active_items(db, organization_id=organization_id))


def category_report(db: Session, *, organization_id: str) -> List[schemas.CategoryBreakdownRead]:
    return category_breakdown(_active_items(db, organization_id=organization_id))


def recent_adjustments(
    db: Session, *, organization_id: str, limit: Optional[int] = None
) -> List[inventory_models.StockAdjustment]:
    return (
        db.query(inventory_models.StockAdjustment)
        .filter(inventory_models.StockAdjustment.organization_id == organization_id)
        .order_by(
            inventory_models.StockAdjustment.adjustment_date.desc(),
            inventory_models.StockAdjustment.id.desc(),
        )
        .limit(limit or RECENT_ADJUSTMENTS_LIMIT)
        .all()
    )


def pending_transfer_count(db: Session, *, organization_id: str) -> int:
    return (
        db.query(transfer_models.InventoryTransfer)
        .filter(
            transfer_models.InventoryTransfer.organization_id == organization_id,
            transfer_models.InventoryTransfer.status == transfer_models.TransferStatusEnum.PENDING,
        )
        .count()
    )


def inventory_summary(
    db: Session, *, organization_id: str, recent_limit: Optional[int] = None
) -> schemas.InventorySummaryRead:
    items = _active_items(db, organization_id=organization_id)
    statuses = [classify_stock(item) for item in items]
    locations = location_services.active_location_counts(db, organization_id=organization_id)
    adjustments = recent_adjustments(db, organization_id=organization_id, limit=recent_limit)
    return schemas.InventorySummaryRead(
        total_value=total_inventory_value(items),
        total_items=len(items),
        low_stock_count=statuses.count(inventory_models.StockStatusEnum.LOW_STOCK),
        out_of_stock_count=statuses.count(inventory_models.StockStatusEnum.OUT_OF_STOCK),
        pending_transfers=pending_transfer_count(db, organization_id=organization_id),
        warehouse_count=locations[inventory_models.LocationTypeEnum.WAREHOUSE],
        vehicle_count=locations[inventory_models.LocationTypeEnum.VEHICLE],
        category_breakdown=category_breakdown(items),
        recent_adjustments=[schemas.StockAdjustmentRead.model_validate(row) for row in adjustments],
    )
