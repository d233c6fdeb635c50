# backend/stockdb/__init__.py
"""
Import ORM models from each app so that Base.metadata.create_all() sees
all tables. The model classes live in stockdb/apps/*/models.py.
"""

from .apps.inventory import models as inventory_models      # items + ledger
from .apps.locations import models as locations_models      # warehouses + vehicles
from .apps.transfers import models as transfers_models      # transfers + lines

__all__ = [
    "inventory_models",
    "locations_models",
    "transfers_models",
]
