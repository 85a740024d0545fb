"""Token bucket rate limiter shared by every outbound sink call."""

from __future__ import annotations

import threading
import time

# Longest single sleep in wait_and_acquire; the deadline and refill are
# re-checked after each step.
_MAX_WAIT_STEP_SEC = 0.1


class TokenBucket:
    """
    Process-wide send budget for notification sinks.

    Every Slack or webhook delivery costs one token. The bucket starts full
    with `burst` tokens and refills at `rate_per_sec`; a delivery that finds
    it empty waits for the next token rather than skipping the limiter.
    """

    def __init__(self, *, rate_per_sec: float, burst: int):
        if rate_per_sec <= 0:
            raise ValueError("rate_per_sec must be positive")
        if burst < 1:
            raise ValueError("burst must be at least 1")

        self._rate_per_sec = rate_per_sec
        self._burst = burst
        self._tokens = float(burst)
        self._last_refill = time.monotonic()
        self._lock = threading.Lock()

    @property
    def rate_per_sec(self) -> float:
        return self._rate_per_sec

    @property
    def burst(self) -> int:
        return self._burst

    def _take_locked(self, tokens: int) -> float:
        """
        Refill, then take `tokens` if the bucket holds them.

        Returns 0.0 when taken, otherwise the seconds until enough tokens
        will have refilled. Caller holds the lock.
        """
        now = time.monotonic()
        self._tokens = min(self._burst, self._tokens + (now - self._last_refill) * self._rate_per_sec)
        self._last_refill = now

        if self._tokens >= tokens:
            self._tokens -= tokens
            return 0.0
        return (tokens - self._tokens) / self._rate_per_sec

    def acquire(self, tokens: int = 1) -> bool:
        """Take `tokens` for immediate sends, or return False without waiting."""
        if tokens < 1:
            return True
        with self._lock:
            return self._take_locked(tokens) == 0.0

    def wait_and_acquire(
        self,
        tokens: int = 1,
        timeout_sec: float | None = 1.0,
        cancel_event: threading.Event | None = None,
    ) -> bool:
        """
        Block a sink call until its token is available.

        Args:
            tokens: Number of sends to pay for (default 1)
            timeout_sec: Longest wait in seconds; None waits until a token refills
            cancel_event: Set by the reconcile cycle to abandon the wait

        Returns:
            True once the tokens are taken; False on timeout, on cancellation,
            or when more tokens are requested than the bucket can ever hold
        """
        if tokens < 1:
            return True
        if tokens > self._burst:
            return False

        deadline = time.monotonic() + timeout_sec if timeout_sec is not None else None

        while cancel_event is None or not cancel_event.is_set():
            with self._lock:
                refill_in = self._take_locked(tokens)
            if refill_in == 0.0:
                return True

            step = min(refill_in, _MAX_WAIT_STEP_SEC)
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                step = min(step, remaining)

            if cancel_event is not None:
                cancel_event.wait(step)
            else:
                time.sleep(step)

        return False

    @property
    def available_tokens(self) -> float:
        """Tokens a sink call could take right now (refills first)."""
        with self._lock:
            self._take_locked(0)
            return self._tokens

    def reset(self) -> None:
        """Refill the bucket to `burst`."""
        with self._lock:
            self._tokens = float(self._burst)
            self._last_refill = time.monotonic()
