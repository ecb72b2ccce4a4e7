"""Events package: re-exports EventBus and Handler."""

from .bus import WILDCARD, EventBus, Handler, Unsubscribe

__all__ = ["EventBus", "Handler", "Unsubscribe", "WILDCARD"]
