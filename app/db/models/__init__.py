# app/db/models/__init__.py

from app.db.base import Base

# Catalog store: parts, assemblies and their ordered component links
from .catalog import Assembly, AssemblyComponent, Part

# Configuration store: one row per order/build, plus captured tracking
from .orders import BomItemTracking, OrderConfiguration

__all__ = [
    "Base",
    "Part",
    "Assembly",
    "AssemblyComponent",
    "OrderConfiguration",
    "BomItemTracking",
]
