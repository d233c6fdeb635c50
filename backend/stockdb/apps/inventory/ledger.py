"""
Stock adjustment ledger.

Every change to ``InventoryItem.quantity`` goes through ``apply_adjustment``.
The write is a compare-and-swap on the quantity the caller read, so two
concurrent adjustments of the same item cannot both succeed against the same
starting value. A lost race surfaces as ``ConflictError``; nothing here
retries, because a blind retry would apply a relative delta twice.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from stockdb import errors
from stockdb.apps.events.broker import publish_change
from stockdb.utils.dates import day_bounds, utcnow

from . import models, schemas

logger = logging.getLogger(__name__)


def load_item(db: Session, *, organization_id: str, item_id: int) -> models.InventoryItem:
    item = (
        db.query(models.InventoryItem)
        .filter(
            models.InventoryItem.id == item_id,
            models.InventoryItem.organization_id == organization_id,
        )
        .first()
    )
    if not item:
        raise errors.NotFoundError(
            f"Inventory item {item_id} not found.",
            detail=[{"field": "inventory_item_id", "reason": "not found"}],
        )
    return item


def apply_adjustment(
    db: Session,
    *,
    organization_id: str,
    item_id: int,
    delta: int,
    reason: str,
    performed_by_user_id: Optional[str],
    notes: Optional[str] = None,
    expected_quantity: Optional[int] = None,
    location_type: Optional[models.LocationTypeEnum] = None,
    location_id: Optional[int] = None,
    transfer_id: Optional[int] = None,
) -> models.StockAdjustment:
    """
    Apply ``delta`` to the item and append the matching ledger entry.

    Decrements below zero are floored at zero; the stored entry records the
    change actually applied. Pass ``expected_quantity`` to fail fast when the
    caller's view of the item is stale.
    """
    reason = (reason or "").strip()
    if not reason:
        raise errors.ValidationError(
            "Adjustment reason is required.",
            detail=[{"field": "reason", "reason": "required"}],
        )

    item = load_item(db, organization_id=organization_id, item_id=item_id)
    previous = item.quantity or 0
    if expected_quantity is not None and expected_quantity != previous:
        logger.warning(
            "Stale quantity on adjustment",
            extra={"item_id": item_id, "expected": expected_quantity, "actual": previous},
        )
        raise errors.ConflictError(
            f"Item {item_id} quantity is {previous}, expected {expected_quantity}.",
            detail=[{"field": "expected_quantity", "reason": "stale"}],
        )

    new_quantity = max(0, previous + delta)
    now = utcnow()
    updated = (
        db.query(models.InventoryItem)
        .filter(
            models.InventoryItem.id == item.id,
            models.InventoryItem.quantity == previous,
        )
        .update(
            {
                models.InventoryItem.quantity: new_quantity,
                models.InventoryItem.updated_at: now,
            },
            synchronize_session="evaluate",
        )
    )
    if updated != 1:
        db.expire(item)
        logger.warning(
            "Concurrent quantity change detected",
            extra={"item_id": item_id, "previous_quantity": previous, "delta": delta},
        )
        raise errors.ConflictError(
            f"Item {item_id} was modified concurrently; re-read and retry.",
            detail=[{"field": "quantity", "reason": "concurrent modification"}],
        )

    adjustment = models.StockAdjustment(
        organization_id=organization_id,
        inventory_item_id=item.id,
        previous_quantity=previous,
        new_quantity=new_quantity,
        quantity_change=new_quantity - previous,
        reason=reason,
        performed_by_user_id=performed_by_user_id,
        notes=notes,
        adjustment_date=now,
        location_type=location_type if location_type is not None else item.location_type,
        location_id=location_id if location_id is not None else item.location_id,
        transfer_id=transfer_id,
    )
    db.add(adjustment)
    db.flush()

    logger.info(
        "Stock adjusted",
        extra={
            "item_id": item.id,
            "adjustment_id": adjustment.id,
            "previous_quantity": previous,
            "new_quantity": new_quantity,
            "reason": reason,
        },
    )
    publish_change(
        db,
        organization_id=organization_id,
        entity_type="inventory_item",
        entity_id=str(item.id),
        action="adjusted",
        actor_user_id=performed_by_user_id,
        metadata={
            "adjustmentId": adjustment.id,
            "previousQuantity": previous,
            "newQuantity": new_quantity,
            "reason": reason,
        },
    )
    return adjustment


def apply_absolute_set(
    db: Session,
    *,
    organization_id: str,
    item_id: int,
    new_quantity: int,
    reason: str,
    performed_by_user_id: Optional[str],
    notes: Optional[str] = None,
    expected_quantity: Optional[int] = None,
) -> models.StockAdjustment:
    if new_quantity is None or new_quantity < 0:
        raise errors.ValidationError(
            "Quantity cannot be negative.",
            detail=[{"field": "quantity", "reason": "must be >= 0"}],
        )
    item = load_item(db, organization_id=organization_id, item_id=item_id)
    return apply_adjustment(
        db,
        organization_id=organization_id,
        item_id=item.id,
        delta=new_quantity - (item.quantity or 0),
        reason=reason,
        performed_by_user_id=performed_by_user_id,
        notes=notes,
        expected_quantity=expected_quantity,
    )


def list_adjustments(
    db: Session,
    *,
    organization_id: str,
    filters: Optional[schemas.StockAdjustmentFilter] = None,
) -> List[models.StockAdjustment]:
    filters = filters or schemas.StockAdjustmentFilter()
    query = db.query(models.StockAdjustment).filter(
        models.StockAdjustment.organization_id == organization_id
    )
    if filters.inventory_item_id is not None:
        query = query.filter(models.StockAdjustment.inventory_item_id == filters.inventory_item_id)
    if filters.location_type is not None:
        query = query.filter(models.StockAdjustment.location_type == filters.location_type)
    if filters.location_id is not None:
        query = query.filter(models.StockAdjustment.location_id == filters.location_id)
    if filters.performed_by_user_id:
        query = query.filter(models.StockAdjustment.performed_by_user_id == filters.performed_by_user_id)
    if filters.reason:
        query = query.filter(models.StockAdjustment.reason == filters.reason)
    if filters.transfer_id is not None:
        query = query.filter(models.StockAdjustment.transfer_id == filters.transfer_id)
    lower, upper = day_bounds(filters.start_date, filters.end_date)
    if lower is not None:
        query = query.filter(models.StockAdjustment.adjustment_date >= lower)
    if upper is not None:
        query = query.filter(models.StockAdjustment.adjustment_date < upper)
    return (
        query.order_by(
            models.StockAdjustment.adjustment_date.desc(),
            models.StockAdjustment.id.desc(),
        )
        .limit(filters.limit)
        .all()
    )
