from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from stockdb.database import get_db, get_read_db
from stockdb.security import CallerContext, get_caller, require_actor

from . import ledger, models, schemas, services

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("/items", response_model=List[schemas.InventoryItemRead])
def list_items(
    search: Optional[str] = None,
    category: Optional[str] = None,
    stock_status: Optional[models.StockStatusEnum] = Query(None, alias="status"),
    include_inactive: bool = False,
    db: Session = Depends(get_read_db),
    caller: CallerContext = Depends(get_caller),
):
    filters = schemas.InventoryItemFilter(
        search=search,
        category=category,
        status=stock_status,
        include_inactive=include_inactive,
    )
    return services.list_items(db, organization_id=caller.organization_id, filters=filters)


@router.get("/items/{item_id}", response_model=schemas.InventoryItemRead)
def get_item(
    item_id: int,
    db: Session = Depends(get_read_db),
    caller: CallerContext = Depends(get_caller),
):
    return services.get_item(db, organization_id=caller.organization_id, item_id=item_id)


@router.post("/items", response_model=schemas.InventoryItemRead, status_code=status.HTTP_201_CREATED)
def create_item(
    payload: schemas.InventoryItemCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    item = services.create_item(
        db,
        organization_id=caller.organization_id,
        payload=payload,
        actor_user_id=caller.user_id,
    )
    db.commit()
    db.refresh(item)
    return item


@router.patch("/items/{item_id}", response_model=schemas.InventoryItemRead)
def update_item(
    item_id: int,
    payload: schemas.InventoryItemUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    item = services.update_item(
        db,
        organization_id=caller.organization_id,
        item_id=item_id,
        payload=payload,
        actor_user_id=caller.user_id,
    )
    db.commit()
    db.refresh(item)
    return item


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    item_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    services.deactivate_item(
        db,
        organization_id=caller.organization_id,
        item_id=item_id,
        actor_user_id=caller.user_id,
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/items/{item_id}/adjust", response_model=schemas.StockAdjustResult)
def adjust_stock(
    item_id: int,
    payload: schemas.StockAdjustRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    if payload.quantity is not None:
        adjustment = ledger.apply_absolute_set(
            db,
            organization_id=caller.organization_id,
            item_id=item_id,
            new_quantity=payload.quantity,
            reason=payload.reason,
            performed_by_user_id=caller.user_id,
            notes=payload.notes,
            expected_quantity=payload.expected_quantity,
        )
    else:
        adjustment = ledger.apply_adjustment(
            db,
            organization_id=caller.organization_id,
            item_id=item_id,
            delta=payload.delta,
            reason=payload.reason,
            performed_by_user_id=caller.user_id,
            notes=payload.notes,
            expected_quantity=payload.expected_quantity,
        )
    db.commit()
    item = services.get_item(db, organization_id=caller.organization_id, item_id=item_id)
    db.refresh(item)
    db.refresh(adjustment)
    return schemas.StockAdjustResult(
        item=schemas.InventoryItemRead.model_validate(item),
        adjustment=schemas.StockAdjustmentRead.model_validate(adjustment),
    )


@router.get("/adjustments", response_model=List[schemas.StockAdjustmentRead])
def list_adjustments(
    inventory_item_id: Optional[int] = None,
    location_type: Optional[models.LocationTypeEnum] = None,
    location_id: Optional[int] = None,
    performed_by_user_id: Optional[str] = None,
    reason: Optional[str] = None,
    transfer_id: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: int = 100,
    db: Session = Depends(get_read_db),
    caller: CallerContext = Depends(get_caller),
):
    filters = schemas.StockAdjustmentFilter(
        inventory_item_id=inventory_item_id,
        location_type=location_type,
        location_id=location_id,
        performed_by_user_id=performed_by_user_id,
        reason=reason,
        transfer_id=transfer_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return ledger.list_adjustments(db, organization_id=caller.organization_id, filters=filters)
