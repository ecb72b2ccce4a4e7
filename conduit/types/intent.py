"""Intent type."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class Intent:
    raw: str
    modules: tuple[str, ...]
    type: str
    confidence: float
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    params: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def primary(self) -> str:
        return self.modules[0] if self.modules else self.type
