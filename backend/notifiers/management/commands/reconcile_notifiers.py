"""Management command to run one notifier reconcile cycle."""

from __future__ import annotations

import json

from django.core.management.base import BaseCommand, CommandError

from notifiers.engine.errors import ReconcileError
from notifiers.runtime import run_cycle


class Command(BaseCommand):
    """Run one reconcile cycle against stored events and notifiers."""

    help = "Run one notifier reconcile cycle and print its summary"

    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--timeout",
            type=float,
            default=None,
            help="Cycle deadline in seconds (defaults to NOTIFIER_ENGINE cycle_timeout_seconds)",
        )

    def handle(self, *args, **options) -> None:
        timeout = options.get("timeout")
        if timeout is not None and timeout <= 0:
            raise CommandError("--timeout must be positive")

        try:
            result = run_cycle(timeout_sec=timeout)
        except ReconcileError as exc:
            raise CommandError(f"Reconcile failed: {exc}") from exc

        self.stdout.write(
            self.style.SUCCESS(
                f"Reconciled {result.subscribers} notifiers against {result.events} events: "
                f"{result.dispatched} sent, {result.failed} failed, {result.deduplicated} deduplicated"
            )
        )
        self.stdout.write(json.dumps(result.as_dict(), indent=2, sort_keys=True))
