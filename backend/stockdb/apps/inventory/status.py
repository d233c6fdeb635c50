from __future__ import annotations

from typing import Any

from .models import StockStatusEnum


def stock_threshold(item: Any) -> int:
    """The larger of minimum stock and reorder point; unset counts as 0."""
    return max(getattr(item, "minimum_stock", None) or 0, getattr(item, "reorder_point", None) or 0)


def classify_stock(item: Any) -> StockStatusEnum:
    """
    Works on ORM rows and on pydantic read models alike.

    Zero or below always wins over the threshold comparison.
    """
    quantity = getattr(item, "quantity", None) or 0
    if quantity <= 0:
        return StockStatusEnum.OUT_OF_STOCK
    threshold = stock_threshold(item)
    if threshold > 0 and quantity <= threshold:
        return StockStatusEnum.LOW_STOCK
    return StockStatusEnum.IN_STOCK
