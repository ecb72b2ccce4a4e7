"""Bus event type."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .context import now_ms


@dataclass(frozen=True)
class BusEvent:
    type: str
    source: str
    data: Any = None
    timestamp: int = field(default_factory=now_ms)
