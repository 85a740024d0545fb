"""Engine configuration dataclass and settings normalization."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DEDUP_SCOPE_GLOBAL = "global"
DEDUP_SCOPE_SUBSCRIBER = "subscriber"
DEDUP_SCOPES = (DEDUP_SCOPE_GLOBAL, DEDUP_SCOPE_SUBSCRIBER)

STATUS_HISTORY_OVERWRITE = "overwrite"
STATUS_HISTORY_APPEND = "append"
STATUS_HISTORY_MODES = (STATUS_HISTORY_OVERWRITE, STATUS_HISTORY_APPEND)


@dataclass(frozen=True)
class EngineConfig:
    """Configuration for the notifier decision-and-dispatch engine."""

    rate_limit_per_sec: float = 1.0
    rate_limit_burst: int = 10
    dedup_retention_seconds: int = 300
    dedup_shards: int = 16
    dedup_scope: str = DEDUP_SCOPE_GLOBAL
    cycle_timeout_seconds: int = 60
    status_history: str = STATUS_HISTORY_OVERWRITE
    recent_events_limit: int = 50
    reconcile_interval_seconds: int = 30


def _coerce_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _bounded_int(value: Any, default: int, *, minimum: int, maximum: int | None = None) -> int:
    """Whole numbers only; anything invalid or below `minimum` becomes `default`."""
    if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
        return default
    if maximum is not None and value > maximum:
        return maximum
    return value


def normalize_engine_config(raw: Any) -> EngineConfig:
    """
    Normalize raw settings dict into a typed EngineConfig.

    Args:
        raw: Raw settings value (dict or None)

    Returns:
        Validated EngineConfig with defaults applied
    """
    if not isinstance(raw, dict):
        return EngineConfig()

    defaults = EngineConfig()

    rate_limit_per_sec = _coerce_number(raw.get("rate_limit_per_sec", defaults.rate_limit_per_sec))
    if rate_limit_per_sec is None or rate_limit_per_sec <= 0:
        rate_limit_per_sec = defaults.rate_limit_per_sec
    elif rate_limit_per_sec > 100:
        rate_limit_per_sec = 100.0

    dedup_scope = str(raw.get("dedup_scope") or defaults.dedup_scope).strip().lower()
    if dedup_scope not in DEDUP_SCOPES:
        dedup_scope = defaults.dedup_scope

    status_history = str(raw.get("status_history") or defaults.status_history).strip().lower()
    if status_history not in STATUS_HISTORY_MODES:
        status_history = defaults.status_history

    def setting(name: str, *, minimum: int, maximum: int | None = None) -> int:
        default = getattr(defaults, name)
        return _bounded_int(raw.get(name, default), default, minimum=minimum, maximum=maximum)

    return EngineConfig(
        rate_limit_per_sec=rate_limit_per_sec,
        rate_limit_burst=setting("rate_limit_burst", minimum=1, maximum=1000),
        dedup_retention_seconds=setting("dedup_retention_seconds", minimum=1),
        dedup_shards=setting("dedup_shards", minimum=1, maximum=256),
        dedup_scope=dedup_scope,
        cycle_timeout_seconds=setting("cycle_timeout_seconds", minimum=1, maximum=3600),
        status_history=status_history,
        recent_events_limit=setting("recent_events_limit", minimum=1, maximum=1000),
        reconcile_interval_seconds=setting("reconcile_interval_seconds", minimum=5),
    )


def get_engine_config() -> EngineConfig:
    """
    Load engine configuration from Django settings.

    Returns:
        EngineConfig built from settings.NOTIFIER_ENGINE
    """
    from django.conf import settings

    raw = getattr(settings, "NOTIFIER_ENGINE", None)
    return normalize_engine_config(raw)
