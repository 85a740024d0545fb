"""
Slack notification sink.

Posts to a Slack incoming webhook URL with a `{"text": ...}` payload; the
event layout uses Slack mrkdwn (`*bold*`).
"""

from __future__ import annotations

import threading

from .base import NotificationHandler, NotificationResult, validate_webhook_url


class SlackHandler(NotificationHandler):
    channel = "slack"
    display_name = "Slack"

    config_schema = {
        "type": "object",
        "required": ["url"],
        "properties": {
            "url": {
                "type": "string",
                "title": "Incoming Webhook URL",
                "format": "uri",
                "description": "e.g. https://hooks.slack.com/services/T000/B000/XXXX",
            },
        },
    }

    def validate_config(self, config: dict) -> list[str]:
        return validate_webhook_url(config)

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
            self._build_payload(message),
            timeout=timeout,
            cancel_event=cancel_event,
        )

    def _build_payload(self, message: str) -> dict:
        return {"text": message}
