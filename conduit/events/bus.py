"""Synchronous typed event bus with a wildcard channel."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable

from ..infra.logging import get_logger
from ..types import BusEvent

logger = get_logger(__name__)

Handler = Callable[[BusEvent], None]
Unsubscribe = Callable[[], None]

WILDCARD = "*"


class EventBus:
    """In-process pub/sub.

    ``publish`` calls exact-type subscribers first, then wildcard subscribers,
    each in subscription order, synchronously on the publisher's stack. There
    is no queue: a slow handler blocks the publisher.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._wildcard: list[Handler] = []

    def subscribe(self, event_type: str, handler: Handler) -> Unsubscribe:
        if event_type == WILDCARD:
            return self.subscribe_all(handler)
        self._handlers[event_type].append(handler)
        return lambda: self._remove(self._handlers.get(event_type, []), handler)

    def subscribe_all(self, handler: Handler) -> Unsubscribe:
        self._wildcard.append(handler)
        return lambda: self._remove(self._wildcard, handler)

    def publish(self, event: BusEvent) -> None:
        # Copy so handlers that (un)subscribe during fan-out don't affect this event.
        for h in list(self._handlers.get(event.type, [])) + list(self._wildcard):
            try:
                h(event)
            except Exception:
                logger.exception("event_handler_failed", event_type=event.type)

    def send(self, event_type: str, source: str, data: Any = None) -> BusEvent:
        event = BusEvent(type=event_type, source=source, data=data)
        self.publish(event)
        return event

    def handler_count(self, event_type: str | None = None) -> int:
        if event_type is None:
            return sum(len(h) for h in self._handlers.values()) + len(self._wildcard)
        if event_type == WILDCARD:
            return len(self._wildcard)
        return len(self._handlers.get(event_type, []))

    @staticmethod
    def _remove(handlers: list[Handler], handler: Handler) -> None:
        if handler in handlers:
            handlers.remove(handler)
