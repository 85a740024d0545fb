"""
Decision-and-dispatch engine for cluster event notifiers.

Filters events per subscriber, suppresses repeats through a time-bounded
dedup cache and delivers matches through a shared rate limiter.
"""

from .config import EngineConfig, get_engine_config, normalize_engine_config
from .context import CycleContext
from .dedup import DedupCache
from .dispatcher import RateLimitedDispatcher
from .filters import NotifierConfig, build_notifier_config, explain_mismatch, matches
from .rate_limiter import TokenBucket
from .reconciler import CycleState, NotifierReconciler
from .stats import EngineStats
from .types import CycleResult, DispatchOutcome, Event, ObjectReference, Subscriber

__all__ = [
    "CycleContext",
    "CycleResult",
    "CycleState",
    "DedupCache",
    "DispatchOutcome",
    "EngineConfig",
    "EngineStats",
    "Event",
    "NotifierConfig",
    "NotifierReconciler",
    "ObjectReference",
    "RateLimitedDispatcher",
    "Subscriber",
    "TokenBucket",
    "build_notifier_config",
    "explain_mismatch",
    "get_engine_config",
    "matches",
    "normalize_engine_config",
]
