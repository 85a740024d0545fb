"""Value types flowing through the notifier engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ObjectReference:
    """The object an event is about."""

    kind: str
    name: str


@dataclass(frozen=True)
class Event:
    """
    An observed cluster event.

    Immutable once observed; `uid` is the identity used for deduplication.
    """

    uid: str
    name: str
    namespace: str
    type: str
    reason: str
    message: str
    timestamp: datetime | None
    object: ObjectReference

    def summary(self) -> str:
        """Status-line summary in the `<reason>: <message>` layout."""
        return f"{self.reason}: {self.message}"


@dataclass(frozen=True)
class Subscriber:
    """A configured notification recipient and its raw filter criteria."""

    name: str
    channel: str
    webhook: str
    namespaces: tuple[str, ...]
    event_types: tuple[str, ...]
    event_reasons: tuple[str, ...] = ()
    event_object_types: tuple[str, ...] = ()
    message_contains: tuple[str, ...] = ()
    message_prefix: str = ""
    enable_verbose: bool = False
    auth_token: str = field(default="", repr=False)
    key: object = None
    recent_events: tuple[str, ...] = ()


@dataclass
class DispatchOutcome:
    """Events successfully sent for one subscriber during one cycle."""

    subscriber: str
    sent: list[str] = field(default_factory=list)
    last_event_time: datetime | None = None
    failed: int = 0
    history: list[str] | None = None

    @property
    def count(self) -> int:
        return len(self.sent)

    @property
    def recent_events(self) -> list[str]:
        """Summaries to persist; `history` when carried over, else this cycle's sends."""
        if self.history is not None:
            return list(self.history)
        return list(self.sent)

    @property
    def status_message(self) -> str:
        return f"Processed {self.count} events"

    def record_sent(self, event: Event) -> None:
        self.sent.append(event.summary())
        if event.timestamp is not None and (
            self.last_event_time is None or event.timestamp > self.last_event_time
        ):
            self.last_event_time = event.timestamp


@dataclass
class CycleResult:
    """Aggregated result of one reconciliation cycle."""

    subscribers: int = 0
    events: int = 0
    evaluated: int = 0
    dispatched: int = 0
    deduplicated: int = 0
    filtered: int = 0
    failed: int = 0
    skipped_subscribers: int = 0
    outcomes: dict[str, DispatchOutcome] = field(default_factory=dict)

    def as_dict(self) -> dict:
        """Serialize to dictionary for API/management output."""
        return {
            "subscribers": self.subscribers,
            "events": self.events,
            "evaluated": self.evaluated,
            "dispatched": self.dispatched,
            "deduplicated": self.deduplicated,
            "filtered": self.filtered,
            "failed": self.failed,
            "skipped_subscribers": self.skipped_subscribers,
            "outcomes": {
                name: {
                    "count": outcome.count,
                    "failed": outcome.failed,
                    "recent_events": outcome.recent_events,
                    "last_event_time": (
                        outcome.last_event_time.isoformat() if outcome.last_event_time else None
                    ),
                    "status_message": outcome.status_message,
                }
                for name, outcome in self.outcomes.items()
            },
        }
