"""
Inventory module.

Item catalog, stock status, and the adjustment ledger that owns every
quantity change.
"""

from . import models  # noqa: F401
