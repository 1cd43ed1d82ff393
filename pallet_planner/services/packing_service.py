"""
Packing workflow: load an order, pack it, and optionally save the plan.

Every run is wrapped in a packing_run_context so that all log records of
the run carry the same packing_run_id and order_id. A fatal input error
aborts the run before anything is written.
"""

import logging

from pallet_planner.core.config import settings
from pallet_planner.core.observability import (
    get_packing_run_id,
    metrics,
    packing_run_context,
    track_duration,
)
from pallet_planner.packing.config import PackerConfig
from pallet_planner.packing.packer import pack
from pallet_planner.packing.plan import PackingPlan
from pallet_planner.services.packing_store import PackingStore

logger = logging.getLogger(__name__)


def _record_plan(plan: PackingPlan) -> None:
    metrics.packer_pallets_count.observe(len(plan.pallets))
    for remainder in plan.remainders:
        metrics.packer_remainders_total.labels(reason=remainder.reason.value).inc()


async def pack_order(
    store: PackingStore, order_id: int, config: PackerConfig | None = None
) -> PackingPlan:
    """
    Pack an order without saving the result.

    Args:
        store: Where the order is read from
        order_id: Order to pack
        config: Packer configuration; defaults come from settings

    Returns:
        The packing plan

    Raises:
        NotFoundError: If the order does not exist
        PackingInputError: If the order cannot be packed at all
    """
    config = config or PackerConfig.from_settings(settings)
    # Joins the run of an enclosing repack_order, if any
    with packing_run_context(order_id, get_packing_run_id() or None):
        order = await store.load_order(order_id)
        with track_duration(metrics.packer_duration_seconds, metrics.packer_runs_total):
            plan = pack(order, config)
        _record_plan(plan)
        return plan


async def repack_order(
    store: PackingStore, order_id: int, config: PackerConfig | None = None
) -> PackingPlan:
    """
    Pack an order and replace its saved pallets with the new plan.

    Raises:
        NotFoundError: If the order does not exist
        PackingInputError: If the order cannot be packed; nothing is written
        ValidationError: If the plan does not fit the order; nothing is written
    """
    config = config or PackerConfig.from_settings(settings)
    with packing_run_context(order_id) as run_id:
        plan = await pack_order(store, order_id, config)
        await store.save_packing_plan(order_id, plan)
        logger.info(
            f"Repacked order {order_id}: {len(plan.pallets)} pallets, "
            f"{len(plan.remainders)} remainders",
            extra={"run_id": run_id, "complete": plan.is_complete},
        )
        return plan
