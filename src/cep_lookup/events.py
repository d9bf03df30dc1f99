"""
Synchronous event emitter for lookup observability.

Listeners are registered per LookupEvent and called in registration
order with the event's payload dataclass.
"""

from __future__ import annotations

import logging
from typing import Callable, Union

from .models import CacheHitEvent, FailureEvent, LookupEvent, SuccessEvent

logger = logging.getLogger(__name__)

EventPayload = Union[SuccessEvent, FailureEvent, CacheHitEvent]
Listener = Callable[[EventPayload], None]

_PAYLOAD_TYPES: dict[LookupEvent, type] = {
    LookupEvent.SUCCESS: SuccessEvent,
    LookupEvent.FAILURE: FailureEvent,
    LookupEvent.CACHE_HIT: CacheHitEvent,
}


class EventEmitter:
    """Fixed registry with one listener list per LookupEvent."""

    def __init__(self) -> None:
        self._listeners: dict[LookupEvent, list[Listener]] = {event: [] for event in LookupEvent}

    @staticmethod
    def _resolve(event: Union[str, LookupEvent]) -> LookupEvent:
        try:
            return LookupEvent(event)
        except ValueError:
            valid = ", ".join(e.value for e in LookupEvent)
            raise ValueError(f"Unknown event '{event}'. Expected one of: {valid}") from None

    def on(self, event: Union[str, LookupEvent], listener: Listener) -> None:
        self._listeners[self._resolve(event)].append(listener)

    def off(self, event: Union[str, LookupEvent], listener: Listener) -> None:
        """Remove every registration of `listener` for `event`."""
        key = self._resolve(event)
        self._listeners[key] = [l for l in self._listeners[key] if l != listener]

    def listener_count(self, event: Union[str, LookupEvent]) -> int:
        return len(self._listeners[self._resolve(event)])

    def emit(self, event: LookupEvent, payload: EventPayload) -> None:
        """
        Call every listener of `event` with `payload`.

        A failing listener is logged and skipped; it never affects the
        lookup that emitted the event.
        """
        expected = _PAYLOAD_TYPES[event]
        if not isinstance(payload, expected):
            raise TypeError(f"{event.value} expects {expected.__name__}, got {type(payload).__name__}")

        # copy so listeners can unsubscribe themselves
        for listener in list(self._listeners[event]):
            try:
                listener(payload)
            except Exception:
                logger.exception(f"Listener {listener!r} failed on '{event.value}'")
