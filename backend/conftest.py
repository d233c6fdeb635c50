from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"

from stockdb.database import Base  # noqa: E402
from stockdb.apps.inventory import models as inventory_models  # noqa: E402
from stockdb.apps.locations import models as location_models  # noqa: E402
from stockdb.apps.transfers import models as transfer_models  # noqa: E402
from stockdb.security import CallerContext  # noqa: E402

ORG_ID = "org-1"
USER_ID = "user-1"


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(
        bind=engine,
        tables=[
            location_models.Warehouse.__table__,
            location_models.Vehicle.__table__,
            inventory_models.InventoryItem.__table__,
            transfer_models.InventoryTransfer.__table__,
            transfer_models.InventoryTransferItem.__table__,
            inventory_models.StockAdjustment.__table__,
        ],
    )
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def caller() -> CallerContext:
    return CallerContext(organization_id=ORG_ID, user_id=USER_ID)


@pytest.fixture()
def register_location(db_session):
    """Insert a warehouse or vehicle with a fixed id, as transfers refer to them by id."""

    def _register(location_type, location_id, *, organization_id=ORG_ID, name=None, is_active=True):
        location_type = inventory_models.LocationTypeEnum(location_type)
        model = location_models.LOCATION_MODELS[location_type]
        location = model(
            id=location_id,
            organization_id=organization_id,
            name=name or f"{location_type.value} {location_id}",
            is_active=is_active,
        )
        db_session.add(location)
        db_session.commit()
        return location

    return _register
