"""Capability module contract and the values it exchanges with the runtime."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .context import ContextSignal, ContextSnapshot
    from .intent import Intent

UIHint = Literal["chat", "panel", "notification"]


@dataclass
class ModuleConfig:
    enabled: bool = True
    settings: dict[str, Any] = field(default_factory=dict)

    def merged(self, partial: Mapping[str, Any] | ModuleConfig | None) -> ModuleConfig:
        """Shallow overwrite: only the fields present in ``partial`` change."""
        if partial is None:
            partial = {}
        elif isinstance(partial, ModuleConfig):
            partial = {"enabled": partial.enabled, "settings": partial.settings}
        unknown = set(partial) - {"enabled", "settings"}
        if unknown:
            raise ValueError(f"Unknown module config fields: {sorted(unknown)}")
        # The result never shares a settings dict with self or the caller.
        settings = partial.get("settings", self.settings)
        return ModuleConfig(enabled=partial.get("enabled", self.enabled), settings=dict(settings))


@dataclass
class ModuleResult:
    success: bool
    data: Any = None
    message: str | None = None
    error: str | None = None
    ui: UIHint | None = None


@dataclass
class ToolDefinition:
    name: str
    description: str
    input_schema: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    success: bool
    data: Any = None
    error: str | None = None


@dataclass
class QuickAction:
    id: str
    label: str
    module_id: str
    action: Callable[[], Awaitable[None] | None]
    icon: str | None = None
    description: str | None = None


@runtime_checkable
class CapabilityModule(Protocol):
    """Required surface of a module.

    Optional capabilities are plain methods a module may or may not define:
    ``get_tools()``, ``execute_tool(name, args)``, ``get_context_signals()``
    and ``get_quick_actions()``. Use :func:`capability` to look them up.
    """

    id: str
    name: str
    description: str
    version: str
    triggers: list[str]

    async def init(self, config: ModuleConfig) -> None: ...
    async def destroy(self) -> None: ...
    def can_handle(self, intent: Intent) -> bool: ...
    async def handle(self, intent: Intent, snapshot: ContextSnapshot) -> ModuleResult: ...


OPTIONAL_CAPABILITIES = ("get_tools", "execute_tool", "get_context_signals", "get_quick_actions")


def capability(module: Any, name: str) -> Callable[..., Any] | None:
    """Return the bound optional capability ``name`` or None if the module lacks it."""
    fn = getattr(module, name, None)
    return fn if callable(fn) else None


def context_signals_of(module: Any) -> list[ContextSignal]:
    fn = capability(module, "get_context_signals")
    return list(fn() or []) if fn else []
