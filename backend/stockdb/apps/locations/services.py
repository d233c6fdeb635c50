"""
Warehouse and vehicle registry.

Locations are soft-deleted so that items, adjustments and transfers keep
pointing at a real row. Only active locations can send or receive stock.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Union

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from stockdb import errors
from stockdb.apps.events.broker import publish_change
from stockdb.apps.inventory.models import LocationTypeEnum
from stockdb.utils.dates import utcnow

from . import models, schemas

logger = logging.getLogger(__name__)

Location = Union[models.Warehouse, models.Vehicle]

def _model_for(location_type: LocationTypeEnum):
    return models.LOCATION_MODELS[LocationTypeEnum(location_type)]


def _ensure_unique_name(
    db: Session,
    *,
    organization_id: str,
    location_type: LocationTypeEnum,
    name: str,
    exclude_id: Optional[int] = None,
) -> None:
    model = _model_for(location_type)
    query = db.query(model.id).filter(
        model.organization_id == organization_id,
        func.lower(model.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first():
        raise errors.ConflictError(
            f"A {location_type.value} named {name!r} already exists.",
            detail=[{"field": "name", "reason": "already exists"}],
        )


def get_location(
    db: Session,
    *,
    organization_id: str,
    location_type: LocationTypeEnum,
    location_id: int,
    field: str = "location_id",
) -> Location:
    location_type = LocationTypeEnum(location_type)
    model = _model_for(location_type)
    location = (
        db.query(model)
        .filter(model.id == location_id, model.organization_id == organization_id)
        .first()
    )
    if not location:
        raise errors.NotFoundError(
            f"{location_type.value.capitalize()} {location_id} not found.",
            detail=[{"field": field, "reason": "not found"}],
        )
    return location


def require_active_location(
    db: Session,
    *,
    organization_id: str,
    location_type: LocationTypeEnum,
    location_id: int,
    field: str = "location",
) -> Location:
    """Raise unless the location exists in this organization and is active."""
    location = get_location(
        db,
        organization_id=organization_id,
        location_type=location_type,
        location_id=location_id,
        field=field,
    )
    if not location.is_active:
        raise errors.ValidationError(
            f"{location_type.value.capitalize()} {location_id} is inactive.",
            detail=[{"field": field, "reason": "location is inactive"}],
        )
    return location


def list_locations(
    db: Session,
    *,
    organization_id: str,
    location_type: LocationTypeEnum,
    filters: Optional[schemas.LocationFilter] = None,
) -> List[Location]:
    filters = filters or schemas.LocationFilter()
    model = _model_for(location_type)
    query = db.query(model).filter(model.organization_id == organization_id)
    if not filters.include_inactive:
        query = query.filter(model.is_active.is_(True))
    if filters.technician_user_id and model is models.Vehicle:
        query = query.filter(models.Vehicle.technician_user_id == filters.technician_user_id)
    return query.order_by(model.name.asc(), model.id.asc()).all()


def create_location(
    db: Session,
    *,
    organization_id: str,
    location_type: LocationTypeEnum,
    payload: BaseModel,
    actor_user_id: Optional[str],
) -> Location:
    location_type = LocationTypeEnum(location_type)
    values = payload.model_dump()
    name = values["name"].strip()
    _ensure_unique_name(db, organization_id=organization_id, location_type=location_type, name=name)

    now = utcnow()
    location = _model_for(location_type)(
        **{**values, "name": name},
        organization_id=organization_id,
        created_at=now,
        updated_at=now,
    )
    db.add(location)
    db.flush()

    logger.info(
        "Location created",
        extra={"location_type": location_type.value, "location_id": location.id, "location_name": name},
    )
    publish_change(
        db,
        organization_id=organization_id,
        entity_type=location_type.value,
        entity_id=str(location.id),
        action="created",
        actor_user_id=actor_user_id,
    )
    return location


def update_location(
    db: Session,
    *,
    organization_id: str,
    location_type: LocationTypeEnum,
    location_id: int,
    payload: BaseModel,
    actor_user_id: Optional[str],
) -> Location:
    location_type = LocationTypeEnum(location_type)
    location = get_location(
        db, organization_id=organization_id, location_type=location_type, location_id=location_id
    )
    values = payload.model_dump(exclude_unset=True)
    if values.get("name") is not None:
        values["name"] = values["name"].strip()
        _ensure_unique_name(
            db,
            organization_id=organization_id,
            location_type=location_type,
            name=values["name"],
            exclude_id=location.id,
        )
    for field in ("name", "is_active"):
        if field in values and values[field] is None:
            values.pop(field)

    for key, value in values.items():
        setattr(location, key, value)
    location.updated_at = utcnow()
    db.flush()

    logger.info(
        "Location updated",
        extra={"location_type": location_type.value, "location_id": location.id, "fields": sorted(values)},
    )
    publish_change(
        db,
        organization_id=organization_id,
        entity_type=location_type.value,
        entity_id=str(location.id),
        action="updated",
        actor_user_id=actor_user_id,
        metadata={"fields": sorted(values)},
    )
    return location


def deactivate_location(
    db: Session,
    *,
    organization_id: str,
    location_type: LocationTypeEnum,
    location_id: int,
    actor_user_id: Optional[str],
) -> Location:
    location_type = LocationTypeEnum(location_type)
    location = get_location(
        db, organization_id=organization_id, location_type=location_type, location_id=location_id
    )
    if location.is_active:
        location.is_active = False
        location.updated_at = utcnow()
        db.flush()
        logger.info(
            "Location deactivated",
            extra={"location_type": location_type.value, "location_id": location.id},
        )
        publish_change(
            db,
            organization_id=organization_id,
            entity_type=location_type.value,
            entity_id=str(location.id),
            action="deactivated",
            actor_user_id=actor_user_id,
        )
    return location


def active_location_counts(db: Session, *, organization_id: str) -> Dict[LocationTypeEnum, int]:
    counts = {}
    for location_type, model in models.LOCATION_MODELS.items():
        counts[location_type] = (
            db.query(func.count(model.id))
            .filter(model.organization_id == organization_id, model.is_active.is_(True))
            .scalar()
        ) or 0
    return counts
