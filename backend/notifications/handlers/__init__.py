"""
Notification sink registry.

A notifier's `channel` tag selects one handler here; the handler is bound to
the notifier's webhook (and token) to form the sink a cycle sends through.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .base import NotificationHandler

_HANDLER_CLASSES: dict[str, type["NotificationHandler"]] | None = None


def _registry() -> dict[str, type["NotificationHandler"]]:
    """Import handler modules on first use."""
    global _HANDLER_CLASSES
    if _HANDLER_CLASSES is None:
        from .slack import SlackHandler
        from .webhook import WebhookHandler

        _HANDLER_CLASSES = {cls.channel: cls for cls in (SlackHandler, WebhookHandler)}
    return _HANDLER_CLASSES


def get_handler(channel: str) -> "NotificationHandler":
    """
    Get a handler instance for a channel tag.

    Raises:
        ValueError: If no sink is registered for the channel
    """
    handler_class = _registry().get(channel)
    if handler_class is None:
        raise ValueError(f"Unknown channel: {channel}")
    return handler_class()


def get_available_channels() -> list[str]:
    return list(_registry())


def get_handler_metadata(channel: str) -> dict:
    """Channel tag, display name and config schema for API display."""
    handler = get_handler(channel)
    return {
        "channel": handler.channel,
        "display_name": handler.display_name,
        "config_schema": handler.config_schema,
    }


def get_all_handlers_metadata() -> list[dict]:
    return [get_handler_metadata(channel) for channel in get_available_channels()]
