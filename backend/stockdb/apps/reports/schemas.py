from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from stockdb.apps.inventory.schemas import StockAdjustmentRead


class CategoryBreakdownRead(BaseModel):
    category: str
    item_count: int
    total_quantity: int
    total_value: int


class InventorySummaryRead(BaseModel):
    total_value: int
    total_items: int
    low_stock_count: int
    out_of_stock_count: int
    pending_transfers: int
    warehouse_count: int
    vehicle_count: int
    category_breakdown: List[CategoryBreakdownRead] = Field(default_factory=list)
    recent_adjustments: List[StockAdjustmentRead] = Field(default_factory=list)
