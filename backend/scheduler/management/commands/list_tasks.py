"""Management command to list registered scheduled tasks."""

from __future__ import annotations

from django.core.management.base import BaseCommand

from scheduler import get_tasks
from scheduler.registry import evaluate_task_enabled


class Command(BaseCommand):
    """List registered tasks (event cleanup, reconcile, dedup sweep) with their schedules."""

    help = "List all registered scheduled tasks"

    def handle(self, *args, **options) -> None:
        tasks = get_tasks()

        if not tasks:
            self.stdout.write(self.style.WARNING("No tasks registered."))
            return

        self.stdout.write(self.style.SUCCESS(f"Registered tasks ({len(tasks)}):"))
        self.stdout.write("")

        for name, task in sorted(tasks.items()):
            enabled, reason = evaluate_task_enabled(task)
            if enabled:
                status = self.style.SUCCESS("enabled")
            else:
                status = self.style.ERROR(reason or "disabled")

            self.stdout.write(f"  {name}")
            if task.description:
                self.stdout.write(f"    {task.description}")
            self.stdout.write(f"    Schedule: {task.schedule.describe()}")
            self.stdout.write(f"    Status:   {status}")
            if task.max_runtime_seconds:
                self.stdout.write(f"    Max run:  {task.max_runtime_seconds}s")
            self.stdout.write(f"    Function: {task.func.__module__}.{task.func.__name__}")
            self.stdout.write("")

