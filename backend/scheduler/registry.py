"""Task registration and discovery for the scheduler."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from django.conf import settings

from .schedules import Schedule

logger = logging.getLogger(__name__)

_tasks: dict[str, "ScheduledTask"] = {}

EnabledWhenPredicate = Callable[[], bool]

_POLICY_FIELDS = (
    "failure_backoff_base_seconds",
    "failure_backoff_max_seconds",
    "failure_suspend_after",
    "failure_suspend_seconds",
)


@dataclass
class ScheduledTask:
    """A registered scheduled task and its failure policy."""

    name: str
    func: Callable[[], Any]
    schedule: Schedule
    enabled: bool = True
    description: str | None = None
    enabled_when: EnabledWhenPredicate | None = None
    max_runtime_seconds: int | None = None
    failure_backoff_base_seconds: int = 0
    failure_backoff_max_seconds: int = 0
    failure_suspend_after: int = 0
    failure_suspend_seconds: int = 0


def _override_for(name: str) -> dict[str, Any]:
    """Per-task entry from settings.SCHEDULER_TASK_OVERRIDES, or {}."""
    overrides = getattr(settings, "SCHEDULER_TASK_OVERRIDES", None)
    override = overrides.get(name) if isinstance(overrides, dict) else None
    return override if isinstance(override, dict) else {}


def _first_doc_line(func: Callable[..., Any]) -> str | None:
    for line in (func.__doc__ or "").strip().splitlines():
        if line.strip():
            return line.strip()[:500]
    return None


def register(
    name: str,
    schedule: Schedule,
    enabled: bool = True,
    description: str | None = None,
    enabled_when: EnabledWhenPredicate | None = None,
) -> Callable[[Callable[[], Any]], Callable[[], Any]]:
    """Decorator to register a scheduled task.

    Registration happens at import; SchedulerConfig.ready() imports every
    app's `tasks` module. Settings overrides may disable a task or give it a
    runtime limit and failure backoff.

    Usage:
        @register("events_cleanup", schedule=Every(seconds=3600))
        def cleanup_events() -> int:
            ...
    """

    def decorator(func: Callable[[], Any]) -> Callable[[], Any]:
        override = _override_for(name)
        max_runtime = override.get("max_runtime_seconds")

        _tasks[name] = ScheduledTask(
            name=name,
            func=func,
            schedule=schedule,
            enabled=bool(override.get("enabled", enabled)),
            description=description or _first_doc_line(func),
            enabled_when=enabled_when,
            max_runtime_seconds=int(max_runtime) if max_runtime is not None else None,
            **{field: int(override.get(field) or 0) for field in _POLICY_FIELDS},
        )
        return func

    return decorator


def get_tasks() -> dict[str, ScheduledTask]:
    """Return a copy of all registered tasks."""
    return _tasks.copy()


def get_task(name: str) -> ScheduledTask | None:
    return _tasks.get(name)


def evaluate_task_enabled(task: ScheduledTask) -> tuple[bool, str | None]:
    """
    Return (enabled, reason).

    reason is None when enabled, otherwise "disabled" (static config or
    override), "gated" (enabled_when returned False) or "gating_error"
    (enabled_when raised).
    """
    if not task.enabled:
        return False, "disabled"
    if task.enabled_when is None:
        return True, None

    try:
        gated_on = bool(task.enabled_when())
    except Exception:
        logger.exception("Task %s enabled_when predicate failed", task.name)
        return False, "gating_error"
    return (True, None) if gated_on else (False, "gated")
