from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from stockdb import errors
from stockdb.apps.events.broker import publish_change
from stockdb.apps.inventory import ledger
from stockdb.apps.inventory import models as inventory_models
from stockdb.apps.inventory import services as inventory_services
from stockdb.apps.locations import services as location_services
from stockdb.apps.workflow import apply_transition
from stockdb.utils.dates import day_bounds, utcnow

from . import models, schemas

logger = logging.getLogger(__name__)

WORKFLOW_NAME = "inventory_transfer"

_COPIED_ITEM_FIELDS = (
    "sku",
    "name",
    "description",
    "category",
    "vendor_id",
    "unit",
    "unit_cost",
    "unit_price",
    "minimum_stock",
    "reorder_point",
)


def get_transfer(db: Session, *, organization_id: str, transfer_id: int) -> models.InventoryTransfer:
    transfer = (
        db.query(models.InventoryTransfer)
        .filter(
            models.InventoryTransfer.id == transfer_id,
            models.InventoryTransfer.organization_id == organization_id,
        )
        .first()
    )
    if not transfer:
        raise errors.NotFoundError(
            f"Transfer {transfer_id} not found.",
            detail=[{"field": "transfer_id", "reason": "not found"}],
        )
    return transfer


def get_transfer_items(
    db: Session, *, organization_id: str, transfer_id: int
) -> List[models.InventoryTransferItem]:
    transfer = get_transfer(db, organization_id=organization_id, transfer_id=transfer_id)
    return list(transfer.items)


def _validate_lines(
    db: Session,
    *,
    organization_id: str,
    source: schemas.StockLocation,
    lines: Iterable[schemas.TransferItemCreate],
) -> None:
    failures = []
    for index, line in enumerate(lines):
        if line.quantity is None or line.quantity <= 0:
            failures.append({"field": f"items.{index}.quantity", "reason": "must be a positive integer"})
            continue
        item = (
            db.query(inventory_models.InventoryItem)
            .filter(
                inventory_models.InventoryItem.id == line.inventory_item_id,
                inventory_models.InventoryItem.organization_id == organization_id,
            )
            .first()
        )
        if not item:
            raise errors.NotFoundError(
                f"Inventory item {line.inventory_item_id} not found.",
                detail=[{"field": f"items.{index}.inventory_item_id", "reason": "not found"}],
            )
        if not item.is_active:
            failures.append({"field": f"items.{index}.inventory_item_id", "reason": "item is inactive"})
        elif item.location_type is not None and (
            item.location_type != source.type or item.location_id != source.id
        ):
            failures.append({"field": f"items.{index}.inventory_item_id", "reason": "item is not stocked at the source"})
    if failures:
        raise errors.ValidationError("Invalid transfer items.", detail=failures)


def _require_pending(transfer: models.InventoryTransfer) -> None:
    if transfer.status != models.TransferStatusEnum.PENDING:
        raise errors.ValidationError(
            "Items can only be added while the transfer is pending.",
            detail=[{"field": "status", "reason": f"transfer is {transfer.status.value}"}],
        )


def create_transfer(
    db: Session,
    *,
    organization_id: str,
    payload: schemas.TransferCreate,
    actor_user_id: Optional[str],
) -> models.InventoryTransfer:
    source, destination = payload.source, payload.destination
    if source.type == destination.type and source.id == destination.id:
        raise errors.ValidationError(
            "Source and destination must differ.",
            detail=[{"field": "destination", "reason": "same as source"}],
        )
    if not payload.items:
        raise errors.ValidationError(
            "A transfer needs at least one item.",
            detail=[{"field": "items", "reason": "required"}],
        )
    location_services.require_active_location(
        db,
        organization_id=organization_id,
        location_type=source.type,
        location_id=source.id,
        field="source",
    )
    location_services.require_active_location(
        db,
        organization_id=organization_id,
        location_type=destination.type,
        location_id=destination.id,
        field="destination",
    )
    _validate_lines(db, organization_id=organization_id, source=source, lines=payload.items)

    now = utcnow()
    transfer = models.InventoryTransfer(
        organization_id=organization_id,
        source_type=source.type,
        source_id=source.id,
        destination_type=destination.type,
        destination_id=destination.id,
        status=models.TransferStatusEnum.PENDING,
        requested_by_user_id=actor_user_id,
        requested_at=now,
        scheduled_date=payload.scheduled_date,
        notes=payload.notes,
        updated_at=now,
    )
    for line in payload.items:
        transfer.items.append(
            models.InventoryTransferItem(
                inventory_item_id=line.inventory_item_id,
                quantity=line.quantity,
                notes=line.notes,
            )
        )
    db.add(transfer)
    db.flush()

    logger.info(
        "Transfer requested",
        extra={"transfer_id": transfer.id, "transfer_type": transfer.transfer_type, "lines": len(transfer.items)},
    )
    publish_change(
        db,
        organization_id=organization_id,
        entity_type=WORKFLOW_NAME,
        entity_id=str(transfer.id),
        action="created",
        actor_user_id=actor_user_id,
        metadata={"transferType": transfer.transfer_type},
    )
    return transfer


def add_transfer_item(
    db: Session,
    *,
    organization_id: str,
    transfer_id: int,
    payload: schemas.TransferItemCreate,
    actor_user_id: Optional[str],
) -> models.InventoryTransferItem:
    transfer = get_transfer(db, organization_id=organization_id, transfer_id=transfer_id)
    _require_pending(transfer)
    source = schemas.StockLocation(type=transfer.source_type, id=transfer.source_id)
    _validate_lines(db, organization_id=organization_id, source=source, lines=[payload])

    line = models.InventoryTransferItem(
        inventory_item_id=payload.inventory_item_id,
        quantity=payload.quantity,
        notes=payload.notes,
    )
    transfer.items.append(line)
    transfer.updated_at = utcnow()
    db.flush()

    publish_change(
        db,
        organization_id=organization_id,
        entity_type=WORKFLOW_NAME,
        entity_id=str(transfer.id),
        action="item_added",
        actor_user_id=actor_user_id,
        metadata={"transferItemId": line.id},
    )
    return line


def update_transfer_item(
    db: Session,
    *,
    organization_id: str,
    transfer_id: int,
    transfer_item_id: int,
    payload: schemas.TransferItemUpdate,
    actor_user_id: Optional[str],
) -> models.InventoryTransferItem:
    """Record the counted quantity for a line before the transfer completes."""
    transfer = get_transfer(db, organization_id=organization_id, transfer_id=transfer_id)
    if transfer.status not in (models.TransferStatusEnum.PENDING, models.TransferStatusEnum.IN_TRANSIT):
        raise errors.ValidationError(
            "Lines can only be changed before the transfer is finished.",
            detail=[{"field": "status", "reason": f"transfer is {transfer.status.value}"}],
        )
    line = next((line for line in transfer.items if line.id == transfer_item_id), None)
    if line is None:
        raise errors.NotFoundError(
            f"Transfer item {transfer_item_id} not found.",
            detail=[{"field": "transfer_item_id", "reason": "not found"}],
        )

    values = payload.model_dump(exclude_unset=True)
    if "actual_quantity" in values:
        actual = values["actual_quantity"]
        if actual is not None and actual < 0:
            raise errors.ValidationError(
                "Actual quantity cannot be negative.",
                detail=[{"field": "actual_quantity", "reason": "must be >= 0"}],
            )
        line.actual_quantity = actual
    if "notes" in values:
        line.notes = values["notes"]
    transfer.updated_at = utcnow()
    db.flush()

    logger.info(
        "Transfer item updated",
        extra={"transfer_id": transfer.id, "transfer_item_id": line.id, "actual_quantity": line.actual_quantity},
    )
    publish_change(
        db,
        organization_id=organization_id,
        entity_type=WORKFLOW_NAME,
        entity_id=str(transfer.id),
        action="item_updated",
        actor_user_id=actor_user_id,
        metadata={"transferItemId": line.id, "actualQuantity": line.actual_quantity},
    )
    return line


def _destination_item(
    db: Session,
    *,
    transfer: models.InventoryTransfer,
    source_item: inventory_models.InventoryItem,
) -> inventory_models.InventoryItem:
    item = inventory_services.find_item_at_location(
        db,
        organization_id=transfer.organization_id,
        template=source_item,
        location_type=transfer.destination_type,
        location_id=transfer.destination_id,
        include_inactive=True,
    )
    if item:
        if not item.is_active:
            # Same SKU was retired here earlier; receiving stock brings it back.
            item.is_active = True
            item.updated_at = utcnow()
            db.flush()
            logger.info("Destination item reactivated", extra={"transfer_id": transfer.id, "item_id": item.id})
        return item
    now = utcnow()
    item = inventory_models.InventoryItem(
        organization_id=transfer.organization_id,
        location_type=transfer.destination_type,
        location_id=transfer.destination_id,
        quantity=0,
        is_active=True,
        created_at=now,
        updated_at=now,
        **{field: getattr(source_item, field) for field in _COPIED_ITEM_FIELDS},
    )
    db.add(item)
    db.flush()
    logger.info(
        "Destination item created",
        extra={"transfer_id": transfer.id, "item_id": item.id, "source_item_id": source_item.id},
    )
    return item


def _move_stock(db: Session, *, transfer: models.InventoryTransfer, actor_user_id: Optional[str]) -> None:
    """Source decrement, then destination increment, line by line."""
    for line in transfer.items:
        quantity = line.moved_quantity
        if quantity <= 0:
            logger.info(
                "Transfer line skipped, nothing counted",
                extra={"transfer_id": transfer.id, "transfer_item_id": line.id},
            )
            continue
        source_item = inventory_services.get_item(
            db, organization_id=transfer.organization_id, item_id=line.inventory_item_id
        )
        outbound = ledger.apply_adjustment(
            db,
            organization_id=transfer.organization_id,
            item_id=source_item.id,
            delta=-quantity,
            reason=inventory_models.AdjustmentReasonEnum.TRANSFER_OUT.value,
            performed_by_user_id=actor_user_id,
            notes=f"Transfer #{transfer.id} to {transfer.destination_type.value} {transfer.destination_id}",
            location_type=transfer.source_type,
            location_id=transfer.source_id,
            transfer_id=transfer.id,
        )
        try:
            destination_item = _destination_item(db, transfer=transfer, source_item=source_item)
            ledger.apply_adjustment(
                db,
                organization_id=transfer.organization_id,
                item_id=destination_item.id,
                delta=quantity,
                reason=inventory_models.AdjustmentReasonEnum.TRANSFER_IN.value,
                performed_by_user_id=actor_user_id,
                notes=f"Transfer #{transfer.id} from {transfer.source_type.value} {transfer.source_id}",
                location_type=transfer.destination_type,
                location_id=transfer.destination_id,
                transfer_id=transfer.id,
            )
        except Exception:
            logger.error(
                "Transfer destination leg failed",
                extra={
                    "transfer_id": transfer.id,
                    "transfer_item_id": line.id,
                    "source_item_id": source_item.id,
                    "outbound_adjustment_id": outbound.id,
                },
                exc_info=True,
            )
            raise


def transition_transfer(
    db: Session,
    *,
    organization_id: str,
    transfer_id: int,
    new_status: models.TransferStatusEnum,
    actor_user_id: Optional[str],
    notes: Optional[str] = None,
) -> models.InventoryTransfer:
    transfer = get_transfer(db, organization_id=organization_id, transfer_id=transfer_id)
    from_state = transfer.status.value
    to_state = models.TransferStatusEnum(new_status).value

    def _apply() -> None:
        now = utcnow()
        if to_state == models.TransferStatusEnum.IN_TRANSIT.value:
            transfer.approved_by_user_id = actor_user_id
            transfer.approved_at = now
        elif to_state == models.TransferStatusEnum.CANCELLED.value:
            transfer.cancelled_by_user_id = actor_user_id
            transfer.cancelled_at = now
        elif to_state == models.TransferStatusEnum.COMPLETED.value:
            _move_stock(db, transfer=transfer, actor_user_id=actor_user_id)
            transfer.completed_by_user_id = actor_user_id
            transfer.completed_at = now
        if notes:
            transfer.notes = f"{transfer.notes}\n{notes}" if transfer.notes else notes
        transfer.status = models.TransferStatusEnum(to_state)
        transfer.updated_at = now
        db.flush()

    apply_transition(
        db,
        organization_id=organization_id,
        actor_user_id=actor_user_id,
        entity_type=WORKFLOW_NAME,
        entity_id=str(transfer.id),
        from_state=from_state,
        to_state=to_state,
        before_obj={"status": from_state},
        after_obj=transfer,
        on_apply=_apply,
    )
    return transfer


def list_transfers(
    db: Session,
    *,
    organization_id: str,
    filters: Optional[schemas.TransferFilter] = None,
) -> List[models.InventoryTransfer]:
    filters = filters or schemas.TransferFilter()
    query = db.query(models.InventoryTransfer).filter(
        models.InventoryTransfer.organization_id == organization_id
    )
    if filters.status is not None:
        query = query.filter(models.InventoryTransfer.status == filters.status)
    if filters.transfer_type:
        source, _, destination = filters.transfer_type.partition("_to_")
        try:
            query = query.filter(
                models.InventoryTransfer.source_type == inventory_models.LocationTypeEnum(source),
                models.InventoryTransfer.destination_type == inventory_models.LocationTypeEnum(destination),
            )
        except ValueError as exc:
            raise errors.ValidationError(
                f"Unknown transfer type {filters.transfer_type}.",
                detail=[{"field": "transfer_type", "reason": "expected <source>_to_<destination>"}],
            ) from exc
    if filters.user_id:
        query = query.filter(
            or_(
                models.InventoryTransfer.requested_by_user_id == filters.user_id,
                models.InventoryTransfer.approved_by_user_id == filters.user_id,
                models.InventoryTransfer.completed_by_user_id == filters.user_id,
            )
        )
    if filters.location_type is not None:
        source_match = models.InventoryTransfer.source_type == filters.location_type
        destination_match = models.InventoryTransfer.destination_type == filters.location_type
        if filters.location_id is not None:
            source_match = source_match & (models.InventoryTransfer.source_id == filters.location_id)
            destination_match = destination_match & (
                models.InventoryTransfer.destination_id == filters.location_id
            )
        query = query.filter(or_(source_match, destination_match))
    lower, upper = day_bounds(filters.start_date, filters.end_date)
    if lower is not None:
        query = query.filter(models.InventoryTransfer.requested_at >= lower)
    if upper is not None:
        query = query.filter(models.InventoryTransfer.requested_at < upper)
    return (
        query.order_by(models.InventoryTransfer.requested_at.desc(), models.InventoryTransfer.id.desc())
        .limit(filters.limit)
        .all()
    )
