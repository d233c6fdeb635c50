from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, UniqueConstraint

from stockdb.database import Base
from stockdb.apps.inventory.models import LocationTypeEnum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Warehouse(Base):
    __tablename__ = "warehouses"
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_warehouses_org_name"),
        Index("ix_warehouses_org_active", "organization_id", "is_active"),
    )

    location_type = LocationTypeEnum.WAREHOUSE

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String(36), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(255), nullable=True)
    phone_number = Column(String(32), nullable=True)
    latitude = Column(String(32), nullable=True)
    longitude = Column(String(32), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        return f"<Warehouse id={self.id} name={self.name!r}>"


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_vehicles_org_name"),
        Index("ix_vehicles_org_active", "organization_id", "is_active"),
    )

    location_type = LocationTypeEnum.VEHICLE

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String(36), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    technician_user_id = Column(String(36), nullable=True, index=True)
    make = Column(String(64), nullable=True)
    model = Column(String(64), nullable=True)
    year = Column(Integer, nullable=True)
    license_plate = Column(String(32), nullable=True)
    vin = Column(String(32), nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        return f"<Vehicle id={self.id} name={self.name!r}>"


LOCATION_MODELS = {
    LocationTypeEnum.WAREHOUSE: Warehouse,
    LocationTypeEnum.VEHICLE: Vehicle,
}
