"""Warehouses and vehicles that hold stock."""

from . import models  # noqa: F401
