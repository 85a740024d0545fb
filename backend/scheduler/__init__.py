"""In-process task scheduler with watchdog.

Periodic work (reconcile cycles, dedup sweeps, event cleanup) runs in
daemon threads inside the Django process, without external infrastructure.
Apps declare tasks in their `tasks` module:

    from scheduler import Every, register

    @register("notifiers_reconcile", schedule=Every(seconds=30))
    def notifiers_reconcile() -> dict:
        ...
"""

from .registry import ScheduledTask, get_task, get_tasks, register
from .runner import get_scheduler_status, start_scheduler, stop_scheduler
from .schedules import DailyAt, Every, Schedule

__all__ = [
    "DailyAt",
    "Every",
    "Schedule",
    "ScheduledTask",
    "get_scheduler_status",
    "get_task",
    "get_tasks",
    "register",
    "start_scheduler",
    "stop_scheduler",
]
