"""
Stock transfers between warehouses and vehicles.
"""

from . import models  # noqa: F401
