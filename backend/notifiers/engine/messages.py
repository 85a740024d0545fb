from __future__ import annotations

from .types import Event


def build_event_message(event: Event, *, prefix: str = "") -> str:
    """
    Render the fixed notification layout for an event.

    The object kind appears twice (headline and "Affecting Object Type");
    the prefix line is omitted when no prefix is configured.
    """
    lines: list[str] = []
    if prefix:
        lines.append(f"*{prefix}*")
    lines.extend(
        [
            f"*{event.object.kind}* in namespace *{event.namespace}*",
            f"*Reason:* {event.reason}",
            f"*Message:* {event.message}",
            f"*Affecting Object Type:* {event.object.kind}",
            f"*Affecting Object Name:* {event.object.name}",
        ]
    )
    return "\n".join(lines)
