"""
Base notification sink protocol and result types.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

CANCELLED = "CANCELLED"

# How often a cancellable send checks its cancel event and deadline.
_CANCEL_POLL_SEC = 0.05


@dataclass
class NotificationResult:
    """Result of a notification send attempt."""

    success: bool
    message: str
    error_code: str | None = None
    status_code: int | None = None
    provider_response: dict | None = None

    @classmethod
    def ok(
        cls,
        message: str = "Sent successfully",
        response: dict | None = None,
        status_code: int | None = None,
    ) -> "NotificationResult":
        """Create a successful result."""
        return cls(success=True, message=message, status_code=status_code, provider_response=response)

    @classmethod
    def error(
        cls,
        message: str,
        code: str = "ERROR",
        response: dict | None = None,
        status_code: int | None = None,
    ) -> "NotificationResult":
        """Create an error result."""
        return cls(
            success=False,
            message=message,
            error_code=code,
            status_code=status_code,
            provider_response=response,
        )


def result_from_response(response: httpx.Response, *, sink_name: str) -> NotificationResult:
    """Map an HTTP response to a result; any 2xx is success."""
    status_code = response.status_code
    if 200 <= status_code < 300:
        return NotificationResult.ok(f"{sink_name} returned {status_code}", status_code=status_code)

    body = (response.text or "")[:500]
    detail = f": {body}" if body else ""
    if status_code in (401, 403):
        code = "UNAUTHORIZED" if status_code == 401 else "FORBIDDEN"
    elif status_code == 404:
        code = "NOT_FOUND"
    elif status_code == 429:
        code = "RATE_LIMITED"
    elif status_code >= 500:
        code = "SERVER_ERROR"
    else:
        code = "API_ERROR"
    return NotificationResult.error(
        f"{sink_name} returned HTTP {status_code}{detail}",
        code=code,
        status_code=status_code,
        response={"raw": body} if body else None,
    )


def validate_webhook_url(config: dict) -> list[str]:
    url = config.get("url")
    if not url:
        return ["Webhook URL is required"]
    if not isinstance(url, str) or not url.startswith(("http://", "https://")):
        return ["URL must start with http:// or https://"]
    return []


def sink_config(url: str, token: str = "") -> dict:
    """Handler config for a notifier's webhook URL and optional bearer token."""
    config = {"url": url}
    if token:
        config["token"] = token
    return config


@dataclass(frozen=True)
class Sink:
    """A handler bound to one subscriber's configuration."""

    handler: "NotificationHandler"
    config: dict

    @property
    def channel(self) -> str:
        return self.handler.channel

    def send(
        self,
        message: str,
        *,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> NotificationResult:
        return self.handler.send(self.config, message, timeout=timeout, cancel_event=cancel_event)


class NotificationHandler(ABC):
    """
    Abstract base class for notification sinks.

    Each handler must implement:
        - channel: Unique channel tag used for selection
        - display_name: Human-readable name
        - config_schema: JSON Schema for configuration validation
        - validate_config(): Validate configuration
        - send(): Deliver one text message
    """

    # Override in subclasses
    channel: str = ""
    display_name: str = ""
    config_schema: dict = {}

    TIMEOUT = 10.0

    @abstractmethod
    def validate_config(self, config: dict) -> list[str]:
        """
        Validate sink configuration.

        Args:
            config: Configuration dictionary

        Returns:
            List of validation error messages (empty if valid)
        """
        pass

    @abstractmethod
    def send(
        self,
        config: dict,
        message: str,
        *,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> NotificationResult:
        """
        Send a notification.

        Args:
            config: Sink configuration
            message: Notification message body
            timeout: Upper bound in seconds for the whole request (defaults to TIMEOUT)
            cancel_event: When set, an in-flight request is abandoned

        Returns:
            NotificationResult indicating success or failure
        """
        pass

    def bind(self, config: dict) -> Sink:
        """Return a Sink that sends with this handler and `config`."""
        return Sink(handler=self, config=dict(config))

    def _timeout(self, timeout: float | None) -> float:
        if timeout is None:
            return self.TIMEOUT
        return max(0.001, min(self.TIMEOUT, timeout))

    def _post_json(
        self,
        url: str,
        payload: dict,
        *,
        headers: dict | None = None,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> NotificationResult:
        """POST a JSON payload and translate the outcome into a result."""
        timeout = self._timeout(timeout)
        if cancel_event is None:
            with httpx.Client(timeout=timeout) as client:
                return self._request(client, url, payload, headers)
        return self._post_cancellable(url, payload, headers, timeout, cancel_event)

    def _post_cancellable(
        self,
        url: str,
        payload: dict,
        headers: dict | None,
        timeout: float,
        cancel_event: threading.Event,
    ) -> NotificationResult:
        """
        Run the request on a worker thread and wait for it, the deadline or
        `cancel_event`, whichever comes first.

        Abandoning the request closes the client, which tears down its
        connection; the worker's late result is discarded.
        """
        client = httpx.Client(timeout=timeout)
        done = threading.Event()
        outcome: dict = {}

        def worker() -> None:
            try:
                outcome["result"] = self._request(client, url, payload, headers)
            except Exception as exc:  # re-raised on the calling thread
                outcome["error"] = exc
            finally:
                done.set()

        threading.Thread(target=worker, name=f"{self.channel}-sink-send", daemon=True).start()

        deadline = time.monotonic() + timeout
        while not done.wait(_CANCEL_POLL_SEC):
            if cancel_event.is_set():
                client.close()
                logger.info("%s request cancelled", self.display_name)
                return NotificationResult.error(f"Request to {self.display_name} cancelled", code=CANCELLED)
            if time.monotonic() >= deadline:
                client.close()
                logger.warning("%s request timed out", self.display_name)
                return NotificationResult.error(f"Request to {self.display_name} timed out", code="TIMEOUT")

        client.close()
        if "error" in outcome:
            raise outcome["error"]
        return outcome["result"]

    def _request(self, client: httpx.Client, url: str, payload: dict, headers: dict | None) -> NotificationResult:
        try:
            response = client.post(url, json=payload, headers=headers)
            return result_from_response(response, sink_name=self.display_name)
        except httpx.TimeoutException:
            logger.warning("%s request timed out", self.display_name)
            return NotificationResult.error(
                f"Request to {self.display_name} timed out",
                code="TIMEOUT",
            )
        except httpx.RequestError as exc:
            logger.warning("%s network error: %s", self.display_name, exc)
            return NotificationResult.error(f"Network error: {exc}", code="NETWORK_ERROR")
