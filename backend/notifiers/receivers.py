"""Signal receivers that queue a reconcile when inputs change."""

from __future__ import annotations

import logging
import os
import sys

from django.conf import settings
from django.db import transaction

from notifiers.runtime import request_reconcile

logger = logging.getLogger(__name__)


def _is_management_command() -> bool:
    argv0 = os.path.basename(sys.argv[0] or "")
    return argv0 == "manage.py" and len(sys.argv) > 1 and sys.argv[1] not in {"runserver", "run"}


def reconcile_on_change_enabled() -> bool:
    if getattr(settings, "IS_TESTING", False) or _is_management_command():
        return False
    return bool(getattr(settings, "NOTIFIER_RECONCILE_ON_CHANGE", True))


def _queue_after_commit(reason: str) -> None:
    if not reconcile_on_change_enabled():
        return
    logger.debug("Reconcile requested after commit: %s", reason)
    transaction.on_commit(lambda: request_reconcile(reason))


def on_events_ingested(sender, *, upserted: int = 0, deleted: int = 0, **_kwargs) -> None:
    """Queue a reconcile after new or changed events were stored."""
    if upserted:
        _queue_after_commit("events_ingested")


def on_notifier_saved(sender, instance, **_kwargs) -> None:
    """Queue a reconcile after a notifier was created or edited."""
    if instance.is_enabled:
        _queue_after_commit(f"notifier_saved:{instance.name}")
