from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from stockdb.apps.inventory.models import LocationTypeEnum


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class WarehouseBase(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: Optional[str] = None
    address: Optional[str] = Field(default=None, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=32)
    latitude: Optional[str] = Field(default=None, max_length=32)
    longitude: Optional[str] = Field(default=None, max_length=32)

    @field_validator("description", "address", "phone_number", "latitude", "longitude", mode="before")
    @classmethod
    def normalize_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)


class WarehouseCreate(WarehouseBase):
    is_active: bool = True


class WarehouseUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    description: Optional[str] = None
    address: Optional[str] = Field(default=None, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=32)
    latitude: Optional[str] = Field(default=None, max_length=32)
    longitude: Optional[str] = Field(default=None, max_length=32)
    is_active: Optional[bool] = None


class WarehouseRead(WarehouseBase):
    id: int
    organization_id: str
    location_type: LocationTypeEnum = LocationTypeEnum.WAREHOUSE
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VehicleBase(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    technician_user_id: Optional[str] = Field(default=None, max_length=36)
    make: Optional[str] = Field(default=None, max_length=64)
    model: Optional[str] = Field(default=None, max_length=64)
    year: Optional[int] = None
    license_plate: Optional[str] = Field(default=None, max_length=32)
    vin: Optional[str] = Field(default=None, max_length=32)
    notes: Optional[str] = None

    @field_validator(
        "technician_user_id", "make", "model", "year", "license_plate", "vin", "notes", mode="before"
    )
    @classmethod
    def normalize_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)


class VehicleCreate(VehicleBase):
    is_active: bool = True


class VehicleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    technician_user_id: Optional[str] = Field(default=None, max_length=36)
    make: Optional[str] = Field(default=None, max_length=64)
    model: Optional[str] = Field(default=None, max_length=64)
    year: Optional[int] = None
    license_plate: Optional[str] = Field(default=None, max_length=32)
    vin: Optional[str] = Field(default=None, max_length=32)
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class VehicleRead(VehicleBase):
    id: int
    organization_id: str
    location_type: LocationTypeEnum = LocationTypeEnum.VEHICLE
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LocationFilter(BaseModel):
    include_inactive: bool = False
    technician_user_id: Optional[str] = None
