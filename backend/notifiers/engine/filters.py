"""Subscriber filter configuration and the event matching predicate."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .types import Event, Subscriber


@dataclass(frozen=True)
class NotifierConfig:
    """
    Normalized, query-optimized filter criteria for one subscriber.

    Built once per subscriber per cycle and never mutated. Empty `reasons`,
    `object_kinds` and `substrings` mean "admit any".
    """

    namespaces: frozenset[str]
    severities: frozenset[str]
    reasons: frozenset[str]
    object_kinds: frozenset[str]
    substrings: tuple[str, ...]

    @property
    def folded_substrings(self) -> tuple[str, ...]:
        return tuple(s.casefold() for s in self.substrings)


def _as_set(values: Iterable[str] | None) -> frozenset[str]:
    if not values:
        return frozenset()
    return frozenset(v for v in values if isinstance(v, str) and v)


def build_notifier_config(subscriber: Subscriber) -> NotifierConfig:
    """Derive the normalized filter config from a subscriber record."""
    substrings = tuple(
        s for s in (subscriber.message_contains or ()) if isinstance(s, str) and s
    )
    return NotifierConfig(
        namespaces=_as_set(subscriber.namespaces),
        severities=_as_set(subscriber.event_types),
        reasons=_as_set(subscriber.event_reasons),
        object_kinds=_as_set(subscriber.event_object_types),
        substrings=substrings,
    )


def explain_mismatch(config: NotifierConfig, event: Event) -> str | None:
    """
    Return the name of the first criterion the event fails, or None on match.

    Criteria are checked in order and short-circuit: namespace, type, reason,
    object kind, then message substrings. Substrings are a disjunction: one
    case-insensitive hit is enough, but when any are configured a message
    with no hit is rejected.
    """
    if event.namespace not in config.namespaces:
        return "namespace"

    if event.type not in config.severities:
        return "type"

    if config.reasons and event.reason not in config.reasons:
        return "reason"

    if config.object_kinds and event.object.kind not in config.object_kinds:
        return "object_kind"

    if config.substrings:
        message = (event.message or "").casefold()
        if not any(needle in message for needle in config.folded_substrings):
            return "message"

    return None


def matches(config: NotifierConfig, event: Event) -> bool:
    """Pure predicate: True when the event passes every configured criterion."""
    return explain_mismatch(config, event) is None
