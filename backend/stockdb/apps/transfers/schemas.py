from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from stockdb.apps.inventory.models import LocationTypeEnum
from stockdb.utils.dates import to_calendar_date

from . import models


class StockLocation(BaseModel):
    type: LocationTypeEnum
    id: int


class TransferItemCreate(BaseModel):
    inventory_item_id: int
    # Positivity is checked by the service so it reports a ValidationError.
    quantity: int
    notes: Optional[str] = None


class TransferItemUpdate(BaseModel):
    actual_quantity: Optional[int] = None
    notes: Optional[str] = None


class TransferItemRead(TransferItemCreate):
    id: int
    transfer_id: int
    actual_quantity: Optional[int] = None
    moved_quantity: int

    class Config:
        from_attributes = True


class TransferCreate(BaseModel):
    source: StockLocation
    destination: StockLocation
    items: List[TransferItemCreate] = Field(default_factory=list)
    notes: Optional[str] = None
    scheduled_date: Optional[date] = None

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def normalize_scheduled_date(cls, value: Any) -> Optional[date]:
        return to_calendar_date(value)


class TransferStatusUpdate(BaseModel):
    status: models.TransferStatusEnum
    notes: Optional[str] = None


class TransferRead(BaseModel):
    id: int
    organization_id: str
    source_type: LocationTypeEnum
    source_id: int
    destination_type: LocationTypeEnum
    destination_id: int
    transfer_type: str
    status: models.TransferStatusEnum
    requested_by_user_id: Optional[str] = None
    requested_at: datetime
    approved_by_user_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    completed_by_user_id: Optional[str] = None
    completed_at: Optional[datetime] = None
    cancelled_by_user_id: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    scheduled_date: Optional[date] = None
    notes: Optional[str] = None
    updated_at: datetime
    items: List[TransferItemRead] = Field(default_factory=list)

    class Config:
        from_attributes = True


class TransferFilter(BaseModel):
    status: Optional[models.TransferStatusEnum] = None
    transfer_type: Optional[str] = None
    user_id: Optional[str] = None
    location_type: Optional[LocationTypeEnum] = None
    location_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    limit: int = Field(default=200, ge=1, le=1000)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def normalize_dates(cls, value: Any) -> Optional[date]:
        return to_calendar_date(value)

    @field_validator("status", "transfer_type", "user_id", "location_type", mode="before")
    @classmethod
    def normalize_blank(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def check_range(self) -> "TransferFilter":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date.")
        return self
