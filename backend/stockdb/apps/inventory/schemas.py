from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

from stockdb.utils.dates import to_calendar_date

from . import models
from .status import classify_stock


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class InventoryItemBase(BaseModel):
    name: str
    sku: Optional[str] = Field(default=None, max_length=64)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=128)
    location: Optional[str] = Field(default=None, max_length=128)
    vendor_id: Optional[int] = None
    unit: str = "each"
    notes: Optional[str] = None
    location_type: Optional[models.LocationTypeEnum] = None
    location_id: Optional[int] = None
    unit_cost: int = 0
    unit_price: int = 0
    minimum_stock: Optional[int] = None
    reorder_point: Optional[int] = None

    @field_validator(
        "sku",
        "description",
        "category",
        "location",
        "notes",
        "vendor_id",
        "location_type",
        "location_id",
        "minimum_stock",
        "reorder_point",
        mode="before",
    )
    @classmethod
    def normalize_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)


class InventoryItemCreate(InventoryItemBase):
    # Range checks happen in the service so direct callers get the same errors.
    quantity: int = 0


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = None
    sku: Optional[str] = Field(default=None, max_length=64)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=128)
    location: Optional[str] = Field(default=None, max_length=128)
    vendor_id: Optional[int] = None
    unit: Optional[str] = None
    notes: Optional[str] = None
    location_type: Optional[models.LocationTypeEnum] = None
    location_id: Optional[int] = None
    unit_cost: Optional[int] = None
    unit_price: Optional[int] = None
    minimum_stock: Optional[int] = None
    reorder_point: Optional[int] = None
    is_active: Optional[bool] = None
    quantity: Optional[int] = None
    quantity_notes: Optional[str] = None

    @field_validator("vendor_id", "location_id", "minimum_stock", "reorder_point", "quantity", mode="before")
    @classmethod
    def normalize_optional_numbers(cls, value: Any) -> Any:
        return _blank_to_none(value)


class InventoryItemRead(InventoryItemBase):
    id: int
    organization_id: str
    quantity: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @computed_field
    @property
    def stock_status(self) -> models.StockStatusEnum:
        return classify_stock(self)


class InventoryItemFilter(BaseModel):
    search: Optional[str] = None
    category: Optional[str] = None
    status: Optional[models.StockStatusEnum] = None
    include_inactive: bool = False

    @field_validator("search", "category", "status", mode="before")
    @classmethod
    def normalize_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


class StockAdjustRequest(BaseModel):
    """Exactly one of ``delta`` (relative) or ``quantity`` (absolute)."""

    delta: Optional[int] = None
    quantity: Optional[int] = None
    reason: str = Field(..., min_length=1, max_length=64)
    notes: Optional[str] = None
    expected_quantity: Optional[int] = None

    @model_validator(mode="after")
    def check_single_mode(self) -> "StockAdjustRequest":
        if (self.delta is None) == (self.quantity is None):
            raise ValueError("Provide exactly one of delta or quantity.")
        return self


class StockAdjustmentRead(BaseModel):
    id: int
    organization_id: str
    inventory_item_id: int
    previous_quantity: int
    new_quantity: int
    quantity_change: int
    reason: str
    performed_by_user_id: Optional[str] = None
    notes: Optional[str] = None
    adjustment_date: datetime
    location_type: Optional[models.LocationTypeEnum] = None
    location_id: Optional[int] = None
    transfer_id: Optional[int] = None

    class Config:
        from_attributes = True


class StockAdjustResult(BaseModel):
    item: InventoryItemRead
    adjustment: StockAdjustmentRead


class StockAdjustmentFilter(BaseModel):
    inventory_item_id: Optional[int] = None
    location_type: Optional[models.LocationTypeEnum] = None
    location_id: Optional[int] = None
    performed_by_user_id: Optional[str] = None
    reason: Optional[str] = None
    transfer_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    limit: int = Field(default=100, ge=1, le=1000)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def normalize_dates(cls, value: Any) -> Optional[date]:
        return to_calendar_date(value)

    @field_validator("performed_by_user_id", "reason", mode="before")
    @classmethod
    def normalize_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @model_validator(mode="after")
    def check_range(self) -> "StockAdjustmentFilter":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date.")
        return self


class InventoryItemList(BaseModel):
    items: List[InventoryItemRead]
