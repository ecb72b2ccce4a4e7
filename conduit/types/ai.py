"""AI backend types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..providers.streaming import CancelToken, DeltaStream

Role = Literal["user", "assistant", "system"]


@dataclass
class AIMessage:
    role: Role
    content: str


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class AIRequest:
    model: str
    messages: list[AIMessage]
    system: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    cancel_token: CancelToken | None = None


@dataclass
class AIResponse:
    content: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)


@runtime_checkable
class AIProvider(Protocol):
    id: str
    name: str
    models: list[str]

    async def chat(self, request: AIRequest) -> AIResponse: ...
    def stream(self, request: AIRequest) -> DeltaStream: ...
