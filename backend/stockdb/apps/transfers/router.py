from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockdb.apps.inventory.models import LocationTypeEnum
from stockdb.database import get_db, get_read_db
from stockdb.security import CallerContext, get_caller, require_actor

from . import models, schemas, services

router = APIRouter(prefix="/inventory/transfers", tags=["transfers"])


@router.post("", response_model=schemas.TransferRead, status_code=status.HTTP_201_CREATED)
def create_transfer(
    payload: schemas.TransferCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    transfer = services.create_transfer(
        db,
        organization_id=caller.organization_id,
        payload=payload,
        actor_user_id=caller.user_id,
    )
    db.commit()
    db.refresh(transfer)
    return transfer


@router.get("", response_model=List[schemas.TransferRead])
def list_transfers(
    transfer_status: Optional[models.TransferStatusEnum] = Query(None, alias="status"),
    transfer_type: Optional[str] = None,
    user_id: Optional[str] = None,
    location_type: Optional[LocationTypeEnum] = None,
    location_id: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: int = 200,
    db: Session = Depends(get_read_db),
    caller: CallerContext = Depends(get_caller),
):
    filters = schemas.TransferFilter(
        status=transfer_status,
        transfer_type=transfer_type,
        user_id=user_id,
        location_type=location_type,
        location_id=location_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return services.list_transfers(db, organization_id=caller.organization_id, filters=filters)


@router.get("/{transfer_id}", response_model=schemas.TransferRead)
def get_transfer(
    transfer_id: int,
    db: Session = Depends(get_read_db),
    caller: CallerContext = Depends(get_caller),
):
    return services.get_transfer(db, organization_id=caller.organization_id, transfer_id=transfer_id)


@router.post("/{transfer_id}/status", response_model=schemas.TransferRead)
def transition_transfer(
    transfer_id: int,
    payload: schemas.TransferStatusUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    transfer = services.transition_transfer(
        db,
        organization_id=caller.organization_id,
        transfer_id=transfer_id,
        new_status=payload.status,
        actor_user_id=caller.user_id,
        notes=payload.notes,
    )
    db.commit()
    db.refresh(transfer)
    return transfer


@router.get("/{transfer_id}/items", response_model=List[schemas.TransferItemRead])
def get_transfer_items(
    transfer_id: int,
    db: Session = Depends(get_read_db),
    caller: CallerContext = Depends(get_caller),
):
    return services.get_transfer_items(db, organization_id=caller.organization_id, transfer_id=transfer_id)


@router.post(
    "/{transfer_id}/items",
    response_model=schemas.TransferItemRead,
    status_code=status.HTTP_201_CREATED,
)
def add_transfer_item(
    transfer_id: int,
    payload: schemas.TransferItemCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    line = services.add_transfer_item(
        db,
        organization_id=caller.organization_id,
        transfer_id=transfer_id,
        payload=payload,
        actor_user_id=caller.user_id,
    )
    db.commit()
    db.refresh(line)
    return line


@router.patch("/{transfer_id}/items/{transfer_item_id}", response_model=schemas.TransferItemRead)
def update_transfer_item(
    transfer_id: int,
    transfer_item_id: int,
    payload: schemas.TransferItemUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    line = services.update_transfer_item(
        db,
        organization_id=caller.organization_id,
        transfer_id=transfer_id,
        transfer_item_id=transfer_item_id,
        payload=payload,
        actor_user_id=caller.user_id,
    )
    db.commit()
    db.refresh(line)
    return line
