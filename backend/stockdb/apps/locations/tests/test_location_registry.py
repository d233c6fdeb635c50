from __future__ import annotations

import pytest

from stockdb import errors
from stockdb.apps.inventory.models import LocationTypeEnum
from stockdb.apps.locations import router as location_router
from stockdb.apps.locations import schemas as location_schemas
from stockdb.apps.locations import services as location_services

ORG_ID = "org-loc"
ACTOR = "user-loc"

WAREHOUSE = LocationTypeEnum.WAREHOUSE
VEHICLE = LocationTypeEnum.VEHICLE


def _warehouse(db, name, **fields):
    warehouse = location_services.create_location(
        db,
        organization_id=ORG_ID,
        location_type=WAREHOUSE,
        payload=location_schemas.WarehouseCreate(name=name, **fields),
        actor_user_id=ACTOR,
    )
    db.commit()
    return warehouse


def _vehicle(db, name, **fields):
    vehicle = location_services.create_location(
        db,
        organization_id=ORG_ID,
        location_type=VEHICLE,
        payload=location_schemas.VehicleCreate(name=name, **fields),
        actor_user_id=ACTOR,
    )
    db.commit()
    return vehicle


def test_create_and_read_warehouse(db_session):
    warehouse = _warehouse(db_session, "  North depot ", address="1 Yard Lane", phone_number="")

    assert warehouse.name == "North depot"
    assert warehouse.is_active is True
    assert warehouse.phone_number is None
    read = location_schemas.WarehouseRead.model_validate(warehouse)
    assert read.location_type == WAREHOUSE
    assert location_services.get_location(
        db_session, organization_id=ORG_ID, location_type="warehouse", location_id=warehouse.id
    ) is warehouse


def test_names_unique_per_organization_and_kind(db_session):
    _warehouse(db_session, "Depot")
    with pytest.raises(errors.ConflictError):
        _warehouse(db_session, "depot")

    # A vehicle may share a warehouse's name.
    assert _vehicle(db_session, "Depot").id is not None


def test_update_location_ignores_null_name_and_checks_uniqueness(db_session):
    _vehicle(db_session, "Van 1")
    van = _vehicle(db_session, "Van 2", technician_user_id="tech-1")

    updated = location_services.update_location(
        db_session,
        organization_id=ORG_ID,
        location_type=VEHICLE,
        location_id=van.id,
        payload=location_schemas.VehicleUpdate(name=None, license_plate="KDA 123X"),
        actor_user_id=ACTOR,
    )
    assert (updated.name, updated.license_plate) == ("Van 2", "KDA 123X")

    with pytest.raises(errors.ConflictError):
        location_services.update_location(
            db_session,
            organization_id=ORG_ID,
            location_type=VEHICLE,
            location_id=van.id,
            payload=location_schemas.VehicleUpdate(name="Van 1"),
            actor_user_id=ACTOR,
        )


def test_list_hides_inactive_unless_asked(db_session):
    kept = _vehicle(db_session, "Van A", technician_user_id="tech-1")
    retired = _vehicle(db_session, "Van B", technician_user_id="tech-2")
    location_services.deactivate_location(
        db_session,
        organization_id=ORG_ID,
        location_type=VEHICLE,
        location_id=retired.id,
        actor_user_id=ACTOR,
    )
    db_session.commit()

    active = location_services.list_locations(db_session, organization_id=ORG_ID, location_type=VEHICLE)
    assert [v.id for v in active] == [kept.id]

    everything = location_services.list_locations(
        db_session,
        organization_id=ORG_ID,
        location_type=VEHICLE,
        filters=location_schemas.LocationFilter(include_inactive=True),
    )
    assert [v.id for v in everything] == [kept.id, retired.id]

    assigned = location_services.list_locations(
        db_session,
        organization_id=ORG_ID,
        location_type=VEHICLE,
        filters=location_schemas.LocationFilter(include_inactive=True, technician_user_id="tech-2"),
    )
    assert [v.id for v in assigned] == [retired.id]


def test_require_active_location(db_session):
    depot = _warehouse(db_session, "Depot")
    closed = _warehouse(db_session, "Closed", is_active=False)

    assert location_services.require_active_location(
        db_session, organization_id=ORG_ID, location_type=WAREHOUSE, location_id=depot.id
    ) is depot
    with pytest.raises(errors.ValidationError):
        location_services.require_active_location(
            db_session, organization_id=ORG_ID, location_type=WAREHOUSE, location_id=closed.id
        )
    with pytest.raises(errors.NotFoundError):
        location_services.require_active_location(
            db_session, organization_id="org-other", location_type=WAREHOUSE, location_id=depot.id
        )


def test_active_location_counts(db_session):
    _warehouse(db_session, "Depot")
    _warehouse(db_session, "Closed", is_active=False)
    _vehicle(db_session, "Van 1")
    _vehicle(db_session, "Van 2")

    counts = location_services.active_location_counts(db_session, organization_id=ORG_ID)

    assert counts == {WAREHOUSE: 1, VEHICLE: 2}


def test_location_routes_registered():
    routes = {(route.path, tuple(sorted(route.methods))) for route in location_router.router.routes}
    for collection, key in (("warehouses", "warehouse_id"), ("vehicles", "vehicle_id")):
        assert (f"/inventory/{collection}", ("GET",)) in routes
        assert (f"/inventory/{collection}", ("POST",)) in routes
        assert (f"/inventory/{collection}/{{{key}}}", ("GET",)) in routes
        assert (f"/inventory/{collection}/{{{key}}}", ("PATCH",)) in routes
        assert (f"/inventory/{collection}/{{{key}}}", ("DELETE",)) in routes


def test_warehouse_endpoints(db_session, caller):
    created = location_router.create_warehouse(
        location_schemas.WarehouseCreate(name="Central"), db=db_session, caller=caller
    )
    location_router.delete_warehouse(created.id, db=db_session, caller=caller)

    assert location_router.list_warehouses(db=db_session, caller=caller) == []
    assert location_router.get_warehouse(created.id, db=db_session, caller=caller).is_active is False
