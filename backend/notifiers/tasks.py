"""Scheduled tasks for the notifier engine."""

from __future__ import annotations

import logging

from notifiers.engine.config import get_engine_config
from notifiers.runtime import get_engine, run_cycle
from scheduler import Every, register

logger = logging.getLogger(__name__)

_config = get_engine_config()


@register(
    "notifiers_reconcile",
    schedule=Every(seconds=_config.reconcile_interval_seconds),
    description="Matches stored cluster events against notifiers and sends new matches.",
)
def notifiers_reconcile() -> dict:
    """
    Run one reconcile cycle.

    Failures propagate so the scheduler records them and applies any configured backoff.
    """
    result = run_cycle()
    if result.dispatched or result.failed:
        logger.info(
            "Reconcile: %d dispatched, %d failed, %d deduplicated",
            result.dispatched,
            result.failed,
            result.deduplicated,
        )
    return result.as_dict()


@register(
    "notifiers_dedup_sweep",
    schedule=Every(seconds=_config.dedup_retention_seconds),
    description="Evicts dedup entries older than the retention window.",
)
def notifiers_dedup_sweep() -> int:
    """Sweep expired entries from the dedup cache."""
    return get_engine().sweep_dedup()
