"""
Pallet packing for customer orders.

This package turns an order's items into a sequence of pallets without
touching the database; persistence lives in services.packing_store.

Key Components:
- plan: Input records (PackingOrder, PackingLine) and the PackingPlan result
- packer: The packing algorithm
- validator: Fatal input checks and plan verification
- view: Derived values and packing slips for single pallets

Design Principles:
- Determinism: Same input produces an identical plan
- Exactness: All capacity arithmetic uses Decimal
- Anomalies are data: unplaceable quantities become remainders, not errors
"""

from pallet_planner.packing.config import PackerConfig
from pallet_planner.packing.packer import pack
from pallet_planner.packing.plan import (
    PackingLine,
    PackingOrder,
    PackingPlan,
    ProductSnapshot,
    Remainder,
)
from pallet_planner.packing.validator import validate_packing_input, verify_plan
from pallet_planner.packing.view import PalletView, plan_views

__all__ = [
    "pack",
    "PackerConfig",
    "PackingLine",
    "PackingOrder",
    "PackingPlan",
    "ProductSnapshot",
    "Remainder",
    "validate_packing_input",
    "verify_plan",
    "PalletView",
    "plan_views",
]
