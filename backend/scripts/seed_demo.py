from __future__ import annotations

import os
from typing import Optional

from stockdb.database import WriteSessionLocal
from stockdb.apps.inventory import models as inventory_models
from stockdb.apps.inventory import schemas as inventory_schemas
from stockdb.apps.inventory import services as inventory_services
from stockdb.apps.locations import models as location_models
from stockdb.apps.locations import schemas as location_schemas
from stockdb.apps.locations import services as location_services
from stockdb.apps.transfers import models as transfer_models
from stockdb.apps.transfers import schemas as transfer_schemas
from stockdb.apps.transfers import services as transfer_services

ORG_ID = os.getenv("SEED_ORGANIZATION_ID", "demo-org")
ACTOR_ID = os.getenv("SEED_USER_ID", "demo-admin")

WAREHOUSE = inventory_models.LocationTypeEnum.WAREHOUSE
VEHICLE = inventory_models.LocationTypeEnum.VEHICLE

DEMO_WAREHOUSE = {"name": "Main warehouse", "address": "12 Depot Road"}
DEMO_VEHICLE = {"name": "Van 7", "make": "Ford", "model": "Transit", "year": 2022, "technician_user_id": ACTOR_ID}

DEMO_ITEMS = [
    {"sku": "FLT-1625", "name": "Pleated filter 16x25", "category": "Filters", "quantity": 40,
     "unit_cost": 650, "unit_price": 1400, "minimum_stock": 10},
    {"sku": "CAP-3550", "name": "Run capacitor 35/5 uF", "category": "Electrical", "quantity": 6,
     "unit_cost": 1200, "unit_price": 3900, "reorder_point": 8},
    {"sku": "R410A-25", "name": "R-410A 25 lb cylinder", "category": "Chemicals", "quantity": 3,
     "unit_cost": 18500, "unit_price": 32000, "minimum_stock": 2},
    {"sku": "TSTAT-PRO", "name": "Programmable thermostat", "category": None, "quantity": 0,
     "unit_cost": 4200, "unit_price": 9900},
]


def _get_or_create_location(db, location_type, payload):
    model = location_models.LOCATION_MODELS[location_type]
    location = (
        db.query(model)
        .filter(model.organization_id == ORG_ID, model.name == payload.name)
        .first()
    )
    if location:
        return location
    location = location_services.create_location(
        db,
        organization_id=ORG_ID,
        location_type=location_type,
        payload=payload,
        actor_user_id=ACTOR_ID,
    )
    db.commit()
    return location


def _get_or_create_item(db, warehouse_id: int, fields: dict) -> inventory_models.InventoryItem:
    item = (
        db.query(inventory_models.InventoryItem)
        .filter(
            inventory_models.InventoryItem.organization_id == ORG_ID,
            inventory_models.InventoryItem.sku == fields["sku"],
            inventory_models.InventoryItem.location_type == WAREHOUSE,
            inventory_models.InventoryItem.location_id == warehouse_id,
        )
        .first()
    )
    if item:
        return item
    item = inventory_services.create_item(
        db,
        organization_id=ORG_ID,
        payload=inventory_schemas.InventoryItemCreate(location_type=WAREHOUSE, location_id=warehouse_id, **fields),
        actor_user_id=ACTOR_ID,
    )
    db.commit()
    return item


def _seed_van_restock(
    db, item: inventory_models.InventoryItem, warehouse_id: int, vehicle_id: int
) -> Optional[transfer_models.InventoryTransfer]:
    existing = transfer_services.list_transfers(
        db,
        organization_id=ORG_ID,
        filters=transfer_schemas.TransferFilter(transfer_type="warehouse_to_vehicle"),
    )
    if existing:
        return None
    transfer = transfer_services.create_transfer(
        db,
        organization_id=ORG_ID,
        payload=transfer_schemas.TransferCreate(
            source={"type": WAREHOUSE, "id": warehouse_id},
            destination={"type": VEHICLE, "id": vehicle_id},
            items=[{"inventory_item_id": item.id, "quantity": 8}],
            notes="Demo van restock",
        ),
        actor_user_id=ACTOR_ID,
    )
    db.commit()
    for status in (transfer_models.TransferStatusEnum.IN_TRANSIT, transfer_models.TransferStatusEnum.COMPLETED):
        transfer_services.transition_transfer(
            db,
            organization_id=ORG_ID,
            transfer_id=transfer.id,
            new_status=status,
            actor_user_id=ACTOR_ID,
        )
        db.commit()
    return transfer


def main() -> None:
    db = WriteSessionLocal()
    try:
        warehouse = _get_or_create_location(db, WAREHOUSE, location_schemas.WarehouseCreate(**DEMO_WAREHOUSE))
        vehicle = _get_or_create_location(db, VEHICLE, location_schemas.VehicleCreate(**DEMO_VEHICLE))
        items = [_get_or_create_item(db, warehouse.id, dict(fields)) for fields in DEMO_ITEMS]
        _seed_van_restock(db, items[0], warehouse.id, vehicle.id)
    finally:
        db.close()


if __name__ == "__main__":
    main()
