"""
Generic webhook notification sink.

Posts `{"text": <rendered event>}` to any HTTP endpoint. A notifier's
`auth_token` is sent as `Authorization: Bearer <token>`.
"""

from __future__ import annotations

import threading

from .base import NotificationHandler, NotificationResult, validate_webhook_url


class WebhookHandler(NotificationHandler):
    """Handler for generic JSON webhooks."""

    channel = "webhook"
    display_name = "Webhook"

    config_schema = {
        "type": "object",
        "required": ["url"],
        "properties": {
            "url": {"type": "string", "title": "Webhook URL", "format": "uri"},
            "token": {
                "type": "string",
                "title": "Bearer Token",
                "description": "Optional; sent in the Authorization header",
            },
        },
    }

    def validate_config(self, config: dict) -> list[str]:
        errors = validate_webhook_url(config)
        token = config.get("token")
        if token is not None and (not isinstance(token, str) or any(c in token for c in "\r\n")):
            errors.append("Bearer token must be a single-line string")
        return errors

    def send(
        self,
        config: dict,
        message: str,
        *,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> NotificationResult:
        if validate_webhook_url(config):
            return NotificationResult.error("Missing webhook URL", code="INVALID_CONFIG")
        return self._post_json(
            config["url"],
            {"text": message},
            headers=self._build_headers(config),
            timeout=timeout,
            cancel_event=cancel_event,
        )

    def _build_headers(self, config: dict) -> dict:
        headers = {"Content-Type": "application/json"}
        if config.get("token"):
            headers["Authorization"] = f"Bearer {config['token']}"
        return headers
