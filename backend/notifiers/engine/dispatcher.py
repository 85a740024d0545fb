"""Rate-limited delivery of rendered messages to notification sinks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notifications.handlers.base import NotificationResult

from .context import CycleContext
from .rate_limiter import TokenBucket

if TYPE_CHECKING:
    from notifications.handlers.base import Sink

logger = logging.getLogger(__name__)

RATE_LIMIT_EXHAUSTED = "RATE_LIMIT_EXHAUSTED"


class RateLimitedDispatcher:
    """
    Sends one message per token drawn from a shared TokenBucket.

    Every send goes through the bucket; there is no bypass path. Waiting for
    a token aborts as soon as the cycle context is cancelled or its deadline
    passes.
    """

    def __init__(self, bucket: TokenBucket, *, acquire_timeout_sec: float | None = None):
        """
        Args:
            bucket: Limiter shared by every subscriber and event
            acquire_timeout_sec: Longest wait for a token when the context has no deadline
        """
        self._bucket = bucket
        self._acquire_timeout_sec = acquire_timeout_sec

    @property
    def bucket(self) -> TokenBucket:
        return self._bucket

    def send(self, sink: "Sink", message: str, context: CycleContext) -> NotificationResult:
        acquired = self._bucket.wait_and_acquire(
            timeout_sec=context.bound_timeout(self._acquire_timeout_sec),
            cancel_event=context.cancel_event,
        )
        if not acquired:
            logger.debug("No rate-limit token available for %s sink", sink.channel)
            return NotificationResult.error(
                "Rate limit exhausted before a token became available",
                code=RATE_LIMIT_EXHAUSTED,
            )

        return sink.send(message, timeout=context.bound_timeout(None), cancel_event=context.cancel_event)
