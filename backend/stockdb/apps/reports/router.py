from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockdb.apps.inventory.schemas import InventoryItemRead
from stockdb.database import get_read_db
from stockdb.security import CallerContext, get_caller

from . import schemas, services

router = APIRouter(prefix="/inventory", tags=["inventory-reports"])


@router.get("/summary", response_model=schemas.InventorySummaryRead)
def get_inventory_summary(
    recent_limit: Optional[int] = Query(None, ge=1, le=100),
    db: Session = Depends(get_read_db),
    caller: CallerContext = Depends(get_caller),
):
    return services.inventory_summary(db, organization_id=caller.organization_id, recent_limit=recent_limit)


@router.get("/categories", response_model=List[schemas.CategoryBreakdownRead])
def get_category_breakdown(
    db: Session = Depends(get_read_db),
    caller: CallerContext = Depends(get_caller),
):
    return services.category_report(db, organization_id=caller.organization_id)


# Registered ahead of the inventory router so it wins over /items/{item_id}.
@router.get("/items/low-stock", response_model=List[InventoryItemRead])
def get_low_stock_report(
    db: Session = Depends(get_read_db),
    caller: CallerContext = Depends(get_caller),
):
    return services.low_stock_report(db, organization_id=caller.organization_id)
