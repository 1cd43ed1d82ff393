"""
Observability module for the pallet planner.

Provides:
- Structured logging with JSON format and a packing-run correlation ID
- Prometheus metrics collection (packer runs, pallets, remainders, DB writes)

Usage:
    from pallet_planner.core.observability import (
        configure_logging,
        get_packing_run_id,
        metrics,
    )
"""

import json
import logging
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

# ============================================================================
# Context Variables for Run Tracking
# ============================================================================

# Correlation ID - links all logs for a single packing run
_packing_run_id_ctx: ContextVar[str] = ContextVar("packing_run_id", default="")

# Order currently being packed
_order_id_ctx: ContextVar[str] = ContextVar("order_id", default="")


def generate_run_id() -> str:
    """Generate a unique packing run ID for correlation."""
    return str(uuid.uuid4())


def get_packing_run_id() -> str:
    """Get the current packing run ID from context."""
    return _packing_run_id_ctx.get()


def get_order_id() -> str:
    """Get the order being packed from context."""
    return _order_id_ctx.get()


@contextmanager
def packing_run_context(order_id: object, run_id: str | None = None) -> Iterator[str]:
    """
    Bind a packing run ID and order ID to every log record in the block.

    Yields:
        The run ID in effect
    """
    run_id = run_id or generate_run_id()
    run_token = _packing_run_id_ctx.set(run_id)
    order_token = _order_id_ctx.set(str(order_id))
    try:
        yield run_id
    finally:
        _order_id_ctx.reset(order_token)
        _packing_run_id_ctx.reset(run_token)


# ============================================================================
# Structured Logging Configuration
# ============================================================================

_STANDARD_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs as JSON with standard fields:
    - timestamp: ISO 8601 format
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - logger: Logger name
    - message: Log message
    - packing_run_id: Correlation ID (if inside a packing run)
    - order_id: Order being packed (if inside a packing run)
    - extra: Any additional context from logging.extra
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        run_id = get_packing_run_id()
        if run_id:
            log_entry["packing_run_id"] = run_id

        order_id = get_order_id()
        if order_id:
            log_entry["order_id"] = order_id

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        log_entry["file"] = record.pathname
        log_entry["line"] = record.lineno
        log_entry["function"] = record.funcName

        # These come from logger.info("msg", extra={"key": "value"})
        extra_keys = {k: v for k, v in record.__dict__.items() if k not in _STANDARD_RECORD_KEYS}
        if extra_keys:
            log_entry["extra"] = extra_keys

        return json.dumps(log_entry, default=str)


def configure_structured_logging(level: str = "INFO") -> None:
    """
    Configure root logger with structured JSON formatting.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(handler)


def configure_logging(level: str | None = None, structured: bool | None = None) -> None:
    """
    Configure logging from settings, with explicit overrides.

    Plain text logging is used when structured logs are disabled.
    """
    from pallet_planner.core.config import settings

    level = level or settings.app_log_level
    if structured is None:
        structured = settings.observability_structured_logs

    if structured:
        configure_structured_logging(level)
        return

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


# ============================================================================
# Prometheus Metrics
# ============================================================================

# Use a custom registry to avoid conflicts with other Prometheus metrics
_registry = CollectorRegistry()


class Metrics:
    """
    Centralized metrics collection for the pallet planner.

    Metrics groups:
    - Packer: run outcomes and duration, pallets produced, remainders
    - Database: packing plan writes
    """

    def __init__(self, registry: CollectorRegistry) -> None:
        self.registry = registry

        # -------------------------------------------------------------------
        # Packer Metrics
        # -------------------------------------------------------------------

        self.packer_runs_total = Counter(
            "packer_runs_total",
            "Total packer runs",
            ["status"],
            registry=self.registry,
        )

        self.packer_duration_seconds = Histogram(
            "packer_duration_seconds",
            "Packer run duration in seconds",
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
            registry=self.registry,
        )

        self.packer_pallets_count = Histogram(
            "packer_pallets_count",
            "Number of pallets in a packing plan",
            buckets=(0, 1, 2, 5, 10, 25, 50, 100),
            registry=self.registry,
        )

        self.packer_remainders_total = Counter(
            "packer_remainders_total",
            "Order items left (partly) unplaced",
            ["reason"],
            registry=self.registry,
        )

        # -------------------------------------------------------------------
        # Database Metrics
        # -------------------------------------------------------------------

        self.plan_saves_total = Counter(
            "plan_saves_total",
            "Packing plan writes",
            ["status"],
            registry=self.registry,
        )

        self.plan_save_duration_seconds = Histogram(
            "plan_save_duration_seconds",
            "Packing plan write duration in seconds",
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=self.registry,
        )


# Global metrics instance
metrics = Metrics(_registry)


@contextmanager
def track_duration(histogram: Histogram, counter: Counter) -> Iterator[None]:
    """
    Observe the block's duration and count it by outcome.

    The counter is labelled ``status`` = ``success`` or ``error``.
    """
    start = time.perf_counter()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        histogram.observe(time.perf_counter() - start)
        counter.labels(status=status).inc()


def render_metrics() -> bytes:
    """Render all metrics in Prometheus text format."""
    return generate_latest(_registry)
