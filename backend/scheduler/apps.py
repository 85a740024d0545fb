"""Django app configuration for the scheduler."""

from __future__ import annotations

import os
import sys

from django.apps import AppConfig
from django.conf import settings


def _should_start() -> bool:
    """Determine if the scheduler should start in this process."""
    if not getattr(settings, "SCHEDULER_ENABLED", True):
        return False

    # Don't start during testing
    if getattr(settings, "IS_TESTING", False):
        return False

    # Server binaries pass flags as argv[1] (e.g. `gunicorn -b ...`), so argv[1]
    # is not a management command there.
    argv0 = os.path.basename(sys.argv[0] or "")
    if any(server in argv0 for server in ("gunicorn", "uvicorn", "daphne")):
        return True

    # For management commands only the development server runs tasks in-process.
    if len(sys.argv) > 1:
        return sys.argv[1] in {"runserver", "run"}

    return False


class SchedulerConfig(AppConfig):
    """Django app configuration for the task scheduler."""

    name = "scheduler"
    verbose_name = "Task Scheduler"

    def ready(self) -> None:
        """Discover `tasks` modules and start the scheduler when Django is ready."""
        from django.utils.module_loading import autodiscover_modules

        # Registration is import-time only; discovery always runs so that
        # list_tasks/run_task see every task.
        autodiscover_modules("tasks")

        if _should_start():
            from .runner import start_scheduler

            start_scheduler()
