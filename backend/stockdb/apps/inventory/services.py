from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from stockdb import errors
from stockdb.apps.events.broker import publish_change
from stockdb.utils.dates import utcnow

from . import ledger, models, schemas
from .status import classify_stock, stock_threshold

logger = logging.getLogger(__name__)

__all__ = [
    "classify_stock",
    "stock_threshold",
    "filter_items",
    "list_items",
    "get_item",
    "create_item",
    "update_item",
    "deactivate_item",
    "find_item_at_location",
]

_NON_NEGATIVE_FIELDS = ("unit_cost", "unit_price", "minimum_stock", "reorder_point")


def _normalize_sku(sku: Optional[str]) -> Optional[str]:
    sku = (sku or "").strip()
    return sku or None


def _validate_fields(values: dict) -> None:
    failures = []
    if "name" in values and not (values.get("name") or "").strip():
        failures.append({"field": "name", "reason": "required"})
    if values.get("quantity") is not None and values["quantity"] < 0:
        failures.append({"field": "quantity", "reason": "must be >= 0"})
    for field in _NON_NEGATIVE_FIELDS:
        if values.get(field) is not None and values[field] < 0:
            failures.append({"field": field, "reason": "must be >= 0"})
    if failures:
        raise errors.ValidationError("Invalid inventory item.", detail=failures)


def _location_clause(query, location_type, location_id):
    if location_type is None:
        query = query.filter(models.InventoryItem.location_type.is_(None))
    else:
        query = query.filter(models.InventoryItem.location_type == location_type)
    if location_id is None:
        return query.filter(models.InventoryItem.location_id.is_(None))
    return query.filter(models.InventoryItem.location_id == location_id)


def _ensure_unique_sku(
    db: Session,
    *,
    organization_id: str,
    sku: Optional[str],
    location_type: Optional[models.LocationTypeEnum],
    location_id: Optional[int],
    exclude_id: Optional[int] = None,
) -> None:
    if not sku:
        return
    query = db.query(models.InventoryItem).filter(
        models.InventoryItem.organization_id == organization_id,
        models.InventoryItem.sku == sku,
    )
    query = _location_clause(query, location_type, location_id)
    if exclude_id is not None:
        query = query.filter(models.InventoryItem.id != exclude_id)
    if query.first():
        raise errors.ValidationError(
            f"SKU {sku} already exists at this location.",
            detail=[{"field": "sku", "reason": "duplicate"}],
        )


def filter_items(
    items: Iterable,
    *,
    search: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[models.StockStatusEnum] = None,
) -> list:
    """
    Pure filter over an item snapshot.

    ``search`` is a case-insensitive substring over name, SKU and description;
    ``category`` matches the stored value exactly; ``status`` matches the
    derived stock status.
    """
    needle = (search or "").strip().lower()
    results = []
    for item in items:
        if needle:
            haystack = (
                getattr(item, "name", None) or "",
                getattr(item, "sku", None) or "",
                getattr(item, "description", None) or "",
            )
            if not any(needle in value.lower() for value in haystack):
                continue
        if category is not None and getattr(item, "category", None) != category:
            continue
        if status is not None and classify_stock(item) != status:
            continue
        results.append(item)
    return results


def list_items(
    db: Session,
    *,
    organization_id: str,
    filters: Optional[schemas.InventoryItemFilter] = None,
) -> List[models.InventoryItem]:
    filters = filters or schemas.InventoryItemFilter()
    query = db.query(models.InventoryItem).filter(
        models.InventoryItem.organization_id == organization_id
    )
    if not filters.include_inactive:
        query = query.filter(models.InventoryItem.is_active.is_(True))
    items = query.order_by(models.InventoryItem.name.asc(), models.InventoryItem.id.asc()).all()
    return filter_items(items, search=filters.search, category=filters.category, status=filters.status)


def get_item(db: Session, *, organization_id: str, item_id: int) -> models.InventoryItem:
    return ledger.load_item(db, organization_id=organization_id, item_id=item_id)


def find_item_at_location(
    db: Session,
    *,
    organization_id: str,
    template: models.InventoryItem,
    location_type: models.LocationTypeEnum,
    location_id: int,
    include_inactive: bool = False,
) -> Optional[models.InventoryItem]:
    """Counterpart of ``template`` at a location: same SKU, or same name when it has none."""
    query = db.query(models.InventoryItem).filter(
        models.InventoryItem.organization_id == organization_id,
        models.InventoryItem.location_type == location_type,
        models.InventoryItem.location_id == location_id,
    )
    if not include_inactive:
        query = query.filter(models.InventoryItem.is_active.is_(True))
    if template.sku:
        query = query.filter(models.InventoryItem.sku == template.sku)
    else:
        query = query.filter(
            models.InventoryItem.sku.is_(None),
            models.InventoryItem.name == template.name,
        )
    return query.order_by(models.InventoryItem.is_active.desc(), models.InventoryItem.id.asc()).first()


def create_item(
    db: Session,
    *,
    organization_id: str,
    payload: schemas.InventoryItemCreate,
    actor_user_id: Optional[str],
) -> models.InventoryItem:
    values = payload.model_dump()
    _validate_fields(values)
    sku = _normalize_sku(values.pop("sku"))
    initial_quantity = values.pop("quantity") or 0
    _ensure_unique_sku(
        db,
        organization_id=organization_id,
        sku=sku,
        location_type=values.get("location_type"),
        location_id=values.get("location_id"),
    )

    now = utcnow()
    item = models.InventoryItem(
        organization_id=organization_id,
        sku=sku,
        quantity=0,
        is_active=True,
        created_at=now,
        updated_at=now,
        **{**values, "name": values["name"].strip()},
    )
    db.add(item)
    db.flush()

    if initial_quantity:
        ledger.apply_adjustment(
            db,
            organization_id=organization_id,
            item_id=item.id,
            delta=initial_quantity,
            reason=models.AdjustmentReasonEnum.INITIAL_STOCK.value,
            performed_by_user_id=actor_user_id,
            notes="Opening balance",
        )

    logger.info("Inventory item created", extra={"item_id": item.id, "sku": sku, "quantity": item.quantity})
    publish_change(
        db,
        organization_id=organization_id,
        entity_type="inventory_item",
        entity_id=str(item.id),
        action="created",
        actor_user_id=actor_user_id,
    )
    return item


def update_item(
    db: Session,
    *,
    organization_id: str,
    item_id: int,
    payload: schemas.InventoryItemUpdate,
    actor_user_id: Optional[str],
) -> models.InventoryItem:
    item = get_item(db, organization_id=organization_id, item_id=item_id)
    values = payload.model_dump(exclude_unset=True)
    _validate_fields(values)

    new_quantity = values.pop("quantity", None)
    quantity_notes = values.pop("quantity_notes", None)
    for field in ("unit", "unit_cost", "unit_price", "is_active"):
        if field in values and values[field] is None:
            values.pop(field)
    if "sku" in values:
        values["sku"] = _normalize_sku(values["sku"])
    if "name" in values:
        values["name"] = values["name"].strip()

    _ensure_unique_sku(
        db,
        organization_id=organization_id,
        sku=values.get("sku", item.sku),
        location_type=values.get("location_type", item.location_type),
        location_id=values.get("location_id", item.location_id),
        exclude_id=item.id,
    )

    for field, value in values.items():
        setattr(item, field, value)
    if values:
        item.updated_at = utcnow()
    db.flush()

    if new_quantity is not None and new_quantity != item.quantity:
        ledger.apply_absolute_set(
            db,
            organization_id=organization_id,
            item_id=item.id,
            new_quantity=new_quantity,
            reason=models.AdjustmentReasonEnum.MANUAL_EDIT.value,
            performed_by_user_id=actor_user_id,
            notes=quantity_notes,
        )

    logger.info("Inventory item updated", extra={"item_id": item.id, "fields": sorted(values)})
    publish_change(
        db,
        organization_id=organization_id,
        entity_type="inventory_item",
        entity_id=str(item.id),
        action="updated",
        actor_user_id=actor_user_id,
        metadata={"fields": sorted(values)},
    )
    return item


def deactivate_item(
    db: Session,
    *,
    organization_id: str,
    item_id: int,
    actor_user_id: Optional[str],
) -> models.InventoryItem:
    """Soft delete; adjustments and transfers keep referencing the row."""
    item = get_item(db, organization_id=organization_id, item_id=item_id)
    if item.is_active:
        item.is_active = False
        item.updated_at = utcnow()
        db.flush()
        logger.info("Inventory item deactivated", extra={"item_id": item.id})
        publish_change(
            db,
            organization_id=organization_id,
            entity_type="inventory_item",
            entity_id=str(item.id),
            action="deactivated",
            actor_user_id=actor_user_id,
        )
    return item
