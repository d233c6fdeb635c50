from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from stockdb.apps.inventory.models import LocationTypeEnum
from stockdb.database import get_db, get_read_db
from stockdb.security import CallerContext, get_caller, require_actor

from . import schemas, services

router = APIRouter(prefix="/inventory", tags=["locations"])

WAREHOUSE = LocationTypeEnum.WAREHOUSE
VEHICLE = LocationTypeEnum.VEHICLE


# ---------------------------------------------------------------------------
# Warehouses
# ---------------------------------------------------------------------------


@router.get("/warehouses", response_model=List[schemas.WarehouseRead])
def list_warehouses(
    include_inactive: bool = False,
    db: Session = Depends(get_read_db),
    caller: CallerContext = Depends(get_caller),
):
    return services.list_locations(
        db,
        organization_id=caller.organization_id,
        location_type=WAREHOUSE,
        filters=schemas.LocationFilter(include_inactive=include_inactive),
    )


@router.get("/warehouses/{warehouse_id}", response_model=schemas.WarehouseRead)
def get_warehouse(
    warehouse_id: int,
    db: Session = Depends(get_read_db),
    caller: CallerContext = Depends(get_caller),
):
    return services.get_location(
        db, organization_id=caller.organization_id, location_type=WAREHOUSE, location_id=warehouse_id
    )


@router.post("/warehouses", response_model=schemas.WarehouseRead, status_code=status.HTTP_201_CREATED)
def create_warehouse(
    payload: schemas.WarehouseCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    warehouse = services.create_location(
        db,
        organization_id=caller.organization_id,
        location_type=WAREHOUSE,
        payload=payload,
        actor_user_id=caller.user_id,
    )
    db.commit()
    db.refresh(warehouse)
    return warehouse


@router.patch("/warehouses/{warehouse_id}", response_model=schemas.WarehouseRead)
def update_warehouse(
    warehouse_id: int,
    payload: schemas.WarehouseUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    warehouse = services.update_location(
        db,
        organization_id=caller.organization_id,
        location_type=WAREHOUSE,
        location_id=warehouse_id,
        payload=payload,
        actor_user_id=caller.user_id,
    )
    db.commit()
    db.refresh(warehouse)
    return warehouse


@router.delete("/warehouses/{warehouse_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_warehouse(
    warehouse_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    services.deactivate_location(
        db,
        organization_id=caller.organization_id,
        location_type=WAREHOUSE,
        location_id=warehouse_id,
        actor_user_id=caller.user_id,
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Vehicles
# ---------------------------------------------------------------------------


@router.get("/vehicles", response_model=List[schemas.VehicleRead])
def list_vehicles(
    include_inactive: bool = False,
    technician_user_id: Optional[str] = None,
    db: Session = Depends(get_read_db),
    caller: CallerContext = Depends(get_caller),
):
    return services.list_locations(
        db,
        organization_id=caller.organization_id,
        location_type=VEHICLE,
        filters=schemas.LocationFilter(
            include_inactive=include_inactive,
            technician_user_id=technician_user_id,
        ),
    )


@router.get("/vehicles/{vehicle_id}", response_model=schemas.VehicleRead)
def get_vehicle(
    vehicle_id: int,
    db: Session = Depends(get_read_db),
    caller: CallerContext = Depends(get_caller),
):
    return services.get_location(
        db, organization_id=caller.organization_id, location_type=VEHICLE, location_id=vehicle_id
    )


@router.post("/vehicles", response_model=schemas.VehicleRead, status_code=status.HTTP_201_CREATED)
def create_vehicle(
    payload: schemas.VehicleCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    vehicle = services.create_location(
        db,
        organization_id=caller.organization_id,
        location_type=VEHICLE,
        payload=payload,
        actor_user_id=caller.user_id,
    )
    db.commit()
    db.refresh(vehicle)
    return vehicle


@router.patch("/vehicles/{vehicle_id}", response_model=schemas.VehicleRead)
def update_vehicle(
    vehicle_id: int,
    payload: schemas.VehicleUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    vehicle = services.update_location(
        db,
        organization_id=caller.organization_id,
        location_type=VEHICLE,
        location_id=vehicle_id,
        payload=payload,
        actor_user_id=caller.user_id,
    )
    db.commit()
    db.refresh(vehicle)
    return vehicle


@router.delete("/vehicles/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vehicle(
    vehicle_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_actor),
):
    services.deactivate_location(
        db,
        organization_id=caller.organization_id,
        location_type=VEHICLE,
        location_id=vehicle_id,
        actor_user_id=caller.user_id,
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
