"""
Services package for the pallet planner.

Contains the workflows and derived values that sit on top of the
repositories: the packing store and packing runs, the order book and
catalog helpers.
"""

from pallet_planner.services.packing_service import pack_order, repack_order
from pallet_planner.services.packing_store import PackingStore, SqlPackingStore

__all__ = ["pack_order", "repack_order", "PackingStore", "SqlPackingStore"]
