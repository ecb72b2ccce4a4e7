"""Context signal and snapshot types."""

from __future__ import annotations

import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Literal, Mapping

ContextLayer = Literal["immediate", "session", "daily", "longterm"]


def now_ms() -> int:
    return int(time.time() * 1000)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ContextSignal:
    layer: ContextLayer
    key: str
    value: Any
    source: str
    timestamp: int = field(default_factory=now_ms)


@dataclass
class SignalProvider:
    layer: ContextLayer
    key: str
    source: str
    fetch: Callable[[], Awaitable[Any]]
    interval: float | None = None


@dataclass(frozen=True)
class ConversationMessage:
    role: Literal["user", "assistant"]
    content: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=now_iso)
    model: str | None = None


@dataclass(frozen=True)
class ContextSnapshot:
    time: str
    signals: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    clipboard: str | None = None
    active_module: str | None = None
    recent_messages: tuple[ConversationMessage, ...] = ()
