from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from stockdb.apps.inventory import models as inventory_models
from stockdb.apps.locations import models as location_models

GuardResult = List[Dict[str, str]]


def _get_value(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def guard_transfer_has_items(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    if not _get_value(after_obj, "items"):
        return [{"field": "items", "reason": "transfer has no items"}]
    return []


def guard_source_stock_available(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    """
    Every source item must hold at least the quantity being moved.

    Lines for the same item are summed first, so two lines of 3 against a
    stock of 5 fail here rather than being floored at zero by the ledger.
    """
    required: Dict[int, int] = defaultdict(int)
    for line in _get_value(after_obj, "items") or []:
        quantity = _get_value(line, "moved_quantity")
        if quantity is None:
            quantity = _get_value(line, "quantity") or 0
        if quantity > 0:
            required[_get_value(line, "inventory_item_id")] += quantity
    if not required:
        return []

    items = (
        db.query(inventory_models.InventoryItem)
        .filter(inventory_models.InventoryItem.id.in_(list(required)))
        .all()
    )
    on_hand = {item.id: item.quantity or 0 for item in items}

    missing = []
    for item_id, quantity in sorted(required.items()):
        available = on_hand.get(item_id)
        if available is None:
            missing.append({"field": f"items.{item_id}", "reason": "source item not found"})
        elif available < quantity:
            missing.append(
                {
                    "field": f"items.{item_id}",
                    "reason": f"insufficient stock: {available} on hand, {quantity} required",
                }
            )
    return missing


def guard_locations_active(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    """Both ends of the transfer must still be registered and active."""
    missing = []
    organization_id = _get_value(after_obj, "organization_id")
    for field in ("source", "destination"):
        location_type = _get_value(after_obj, f"{field}_type")
        location_id = _get_value(after_obj, f"{field}_id")
        if location_type is None or location_id is None:
            continue
        model = location_models.LOCATION_MODELS[inventory_models.LocationTypeEnum(location_type)]
        location = (
            db.query(model)
            .filter(model.id == location_id, model.organization_id == organization_id)
            .first()
        )
        if location is None:
            missing.append({"field": field, "reason": "location not found"})
        elif not location.is_active:
            missing.append({"field": field, "reason": "location is inactive"})
    return missing
