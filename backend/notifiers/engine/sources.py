"""Collaborator protocols the reconciler depends on."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from .types import DispatchOutcome, Event, Subscriber


class SubscriberSource(Protocol):
    def list_subscribers(self) -> Sequence[Subscriber]:
        """Return every active subscriber; raise SourceError on failure."""
        ...


class EventSource(Protocol):
    def list_events(self) -> Sequence[Event]:
        """Return the full current event set; raise SourceError on failure."""
        ...


class StatusSink(Protocol):
    def write_status(self, subscriber: Subscriber, outcome: DispatchOutcome) -> None:
        """Persist a subscriber's dispatch outcome; raise StatusUpdateError on failure."""
        ...
