"""Task runner with watchdog for the scheduler."""

from __future__ import annotations

import logging
import random
import threading
import time
from datetime import datetime, timedelta

from django.db import close_old_connections
from django.utils import timezone

from .registry import ScheduledTask, evaluate_task_enabled, get_tasks
from .schedules import DailyAt, Every, Schedule

logger = logging.getLogger(__name__)

_WATCHDOG_INTERVAL = 60  # Check threads every 60 seconds
_lock = threading.Lock()  # Protect shared state
_threads: dict[str, threading.Thread] = {}
_stop_events: dict[str, threading.Event] = {}
_running: set[str] = set()  # Track currently executing tasks
_task_status: dict[str, dict[str, object]] = {}
_watchdog_started = False
_watchdog_stop = threading.Event()


def _compute_next_run(schedule: Schedule, now: datetime) -> datetime:
    """Compute next run time for a schedule."""
    if isinstance(schedule, DailyAt):
        local_now = timezone.localtime(now)
        next_run = local_now.replace(
            hour=schedule.hour,
            minute=schedule.minute,
            second=0,
            microsecond=0,
        )
        if next_run <= local_now:
            next_run += timedelta(days=1)
        return next_run
    elif isinstance(schedule, Every):
        jitter_offset = (
            random.randint(-schedule.jitter, schedule.jitter) if schedule.jitter > 0 else 0
        )
        delay_seconds = max(0, schedule.seconds + jitter_offset)
        return now + timedelta(seconds=delay_seconds)
    raise ValueError(f"Unknown schedule type: {type(schedule)}")


def _failure_delay_seconds(*, task: ScheduledTask, consecutive_failures: int) -> tuple[int, bool]:
    """
    Return (delay_seconds, is_suspended) based on task failure policy.

    Delay is applied as a minimum "not before" time, never as an earlier retry.
    """
    if consecutive_failures <= 0:
        return 0, False

    delay_seconds = 0
    if task.failure_backoff_base_seconds > 0:
        delay_seconds = task.failure_backoff_base_seconds * (2 ** (consecutive_failures - 1))
        if task.failure_backoff_max_seconds > 0:
            delay_seconds = min(delay_seconds, task.failure_backoff_max_seconds)

    is_suspended = (
        task.failure_suspend_after > 0
        and consecutive_failures >= task.failure_suspend_after
        and task.failure_suspend_seconds > 0
    )
    if is_suspended:
        delay_seconds = max(delay_seconds, task.failure_suspend_seconds)

    return max(0, int(delay_seconds)), is_suspended


def _update_status(name: str, **fields: object) -> None:
    with _lock:
        _task_status.setdefault(name, {}).update(fields)


def _execute(task: ScheduledTask, *, consecutive_failures: int) -> None:
    """Run the task body once and record the outcome."""
    start_time = time.monotonic()
    try:
        close_old_connections()
        logger.info("Task %s starting", task.name)
        task.func()
    except Exception:
        duration = time.monotonic() - start_time
        logger.exception("Task %s failed after %.2fs", task.name, duration)
        _update_status(
            task.name,
            last_finished_at=timezone.now().isoformat(),
            last_duration_seconds=round(duration, 6),
            last_error="exception",
            consecutive_failures=consecutive_failures + 1,
        )
    else:
        duration = time.monotonic() - start_time
        logger.info("Task %s completed in %.2fs", task.name, duration)
        _update_status(
            task.name,
            last_finished_at=timezone.now().isoformat(),
            last_duration_seconds=round(duration, 6),
            consecutive_failures=0,
        )
    finally:
        close_old_connections()
        with _lock:
            _running.discard(task.name)


def _run_task_loop(*, task: ScheduledTask, stop_event: threading.Event) -> None:
    """Run a task on its schedule until `stop_event` is set."""
    while not stop_event.is_set():
        now = timezone.now()
        next_run = _compute_next_run(task.schedule, now)

        with _lock:
            consecutive_failures = int(_task_status.get(task.name, {}).get("consecutive_failures") or 0)

        delay_seconds, is_suspended = _failure_delay_seconds(
            task=task,
            consecutive_failures=consecutive_failures,
        )
        if delay_seconds > 0:
            not_before = now + timedelta(seconds=delay_seconds)
            next_run = max(next_run, not_before)
            _update_status(
                task.name,
                backoff_until_at=not_before.isoformat(),
                backoff_seconds=delay_seconds,
                suspended=is_suspended,
            )

        sleep_seconds = (next_run - now).total_seconds()
        _update_status(task.name, next_run_at=next_run.isoformat(), last_scheduled_at=now.isoformat())
        logger.debug("Task %s scheduled for %s (in %.0fs)", task.name, next_run.isoformat(), sleep_seconds)

        if stop_event.wait(timeout=max(0, sleep_seconds)):
            break

        # Prevent overlapping executions
        with _lock:
            if task.name in _running:
                logger.warning("Task %s still running, skipping this execution", task.name)
                continue
            _running.add(task.name)
            _task_status.setdefault(task.name, {}).update(
                {
                    "last_started_at": timezone.now().isoformat(),
                    "last_error": None,
                    "backoff_until_at": None,
                    "backoff_seconds": 0,
                    "suspended": False,
                    "stuck": False,
                }
            )

        _execute(task, consecutive_failures=consecutive_failures)

    logger.info("Task %s stopping", task.name)
    _update_status(task.name, next_run_at=None, stopping=False)


def _start_task_thread_locked(name: str, task: ScheduledTask) -> None:
    """Start (or restart) the loop thread for a task. Must hold lock."""
    stop_event = threading.Event()
    thread = threading.Thread(
        target=_run_task_loop,
        kwargs={"task": task, "stop_event": stop_event},
        name=f"task-{name}",
        daemon=True,
    )
    thread.start()
    _threads[name] = thread
    _stop_events[name] = stop_event
    logger.info("Started task thread: %s", name)


def _check_stuck(name: str, task: ScheduledTask, now: datetime) -> None:
    with _lock:
        status = _task_status.get(name, {})
        is_running = name in _running
        last_started_at = status.get("last_started_at")
        already_stuck = bool(status.get("stuck"))

    if not (is_running and task.max_runtime_seconds and isinstance(last_started_at, str)) or already_stuck:
        return

    started_at = datetime.fromisoformat(last_started_at)
    runtime_seconds = (now - started_at).total_seconds()
    if runtime_seconds <= float(task.max_runtime_seconds):
        return

    _update_status(
        name,
        stuck=True,
        stuck_detected_at=now.isoformat(),
        stuck_for_seconds=int(runtime_seconds),
    )
    logger.error(
        "Task %s appears stuck (runtime %.0fs > max_runtime_seconds=%s)",
        name,
        runtime_seconds,
        task.max_runtime_seconds,
    )


def _watchdog_pass() -> None:
    """Stop gated tasks, flag stuck ones and restart dead threads."""
    for name, task in get_tasks().items():
        enabled_now, enabled_reason = evaluate_task_enabled(task)
        _update_status(name, enabled=enabled_now, enabled_reason=enabled_reason)

        if not enabled_now:
            with _lock:
                thread = _threads.get(name)
                stop = _stop_events.get(name)
                if thread is not None and thread.is_alive() and stop is not None and not stop.is_set():
                    _task_status.setdefault(name, {})["stopping"] = True
                    stop.set()
            continue

        _check_stuck(name, task, timezone.now())

        with _lock:
            thread = _threads.get(name)
            if thread is None or not thread.is_alive():
                if thread is not None:
                    logger.warning("Task %s thread died, restarting...", name)
                _start_task_thread_locked(name, task)


def _run_watchdog() -> None:
    """Monitor task threads and restart any that died."""
    while not _watchdog_stop.wait(_WATCHDOG_INTERVAL):
        _watchdog_pass()


def start_scheduler() -> None:
    """Start all registered tasks and the watchdog."""
    global _watchdog_started

    with _lock:
        if _watchdog_started:
            return
        _watchdog_started = True  # Set early to prevent race conditions
        _watchdog_stop.clear()

        for name, task in get_tasks().items():
            enabled_now, enabled_reason = evaluate_task_enabled(task)
            _task_status.setdefault(name, {}).update(
                {"enabled": enabled_now, "enabled_reason": enabled_reason}
            )
            if enabled_now:
                _start_task_thread_locked(name, task)

    # Start watchdog (outside lock - it will acquire lock when needed)
    watchdog = threading.Thread(target=_run_watchdog, name="task-watchdog", daemon=True)
    watchdog.start()
    logger.info("Started task watchdog")


def stop_scheduler() -> None:
    """Signal every task loop and the watchdog to exit."""
    global _watchdog_started

    with _lock:
        _watchdog_stop.set()
        for stop in _stop_events.values():
            stop.set()
        _watchdog_started = False


def get_scheduler_status() -> dict:
    """Return scheduler health for monitoring endpoints."""
    with _lock:
        return {
            "running": _watchdog_started,
            "tasks": {
                name: {
                    "thread_alive": _threads.get(name) is not None and _threads[name].is_alive(),
                    "currently_running": name in _running,
                    "status": dict(_task_status.get(name) or {}),
                }
                for name in get_tasks()
            },
        }
