"""Context signal engine."""

from .engine import (
    ENGINE_SOURCE, SIGNAL_EVENT, ContextEngine, clipboard_provider, clock_provider,
)

__all__ = ["ContextEngine", "ENGINE_SOURCE", "SIGNAL_EVENT", "clipboard_provider", "clock_provider"]
