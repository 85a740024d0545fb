"""Schedule type definitions for the task scheduler."""

from __future__ import annotations

from dataclasses import dataclass


class Schedule:
    """Base class for schedules."""

    def describe(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class DailyAt(Schedule):
    """Run once daily at a wall-clock time in the Django TIME_ZONE."""

    hour: int = 3
    minute: int = 0

    def __post_init__(self) -> None:
        if not (0 <= self.hour < 24 and 0 <= self.minute < 60):
            raise ValueError(f"Invalid time of day: {self.hour:02d}:{self.minute:02d}")

    def describe(self) -> str:
        return f"Daily at {self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class Every(Schedule):
    """Run at a fixed interval, optionally spread by +/- `jitter` seconds."""

    seconds: int = 3600
    jitter: int = 0

    def __post_init__(self) -> None:
        if self.seconds <= 0:
            raise ValueError("Every.seconds must be positive")
        if self.jitter < 0:
            raise ValueError("Every.jitter must not be negative")

    def describe(self) -> str:
        text = f"Every {_format_interval(self.seconds)}"
        if self.jitter:
            text += f" (+/-{self.jitter}s jitter)"
        return text


def _format_interval(seconds: int) -> str:
    for unit, size in (("hours", 3600), ("minutes", 60)):
        if seconds >= size:
            value = seconds / size
            return f"{int(value)} {unit}" if value == int(value) else f"{value:.1f} {unit}"
    return f"{seconds} seconds"
