from __future__ import annotations

import atexit
import sys

from django.apps import AppConfig


class NotifiersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "notifiers"
    verbose_name = "Notifiers"

    def ready(self) -> None:
        """Connect on-change reconcile triggers and tie engine shutdown to process exit."""
        from django.db.models.signals import post_save

        from events.signals import events_ingested
        from notifiers.models import Notifier
        from notifiers.receivers import on_events_ingested, on_notifier_saved

        events_ingested.connect(on_events_ingested, dispatch_uid="notifiers_events_ingested")
        post_save.connect(on_notifier_saved, sender=Notifier, dispatch_uid="notifiers_notifier_saved")

        # Avoid side effects during migrations/collectstatic.
        argv = " ".join(sys.argv).lower()
        if any(token in argv for token in ["makemigrations", "migrate", "collectstatic"]):
            return

        from notifiers.runtime import shutdown_engine

        atexit.register(shutdown_engine)
