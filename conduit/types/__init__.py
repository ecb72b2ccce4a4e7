"""Core type definitions: re-exported from sub-modules."""

from .ai import AIMessage, AIProvider, AIRequest, AIResponse, Role, TokenUsage
from .context import (
    ContextLayer, ContextSignal, ContextSnapshot, ConversationMessage, SignalProvider,
)
from .events import BusEvent
from .intent import Intent
from .modules import (
    CapabilityModule, ModuleConfig, ModuleResult, QuickAction, ToolDefinition, ToolResult,
    UIHint, capability, context_signals_of,
)

__all__ = [
    "AIMessage", "AIProvider", "AIRequest", "AIResponse", "Role", "TokenUsage",
    "ContextLayer", "ContextSignal", "ContextSnapshot", "ConversationMessage", "SignalProvider",
    "BusEvent",
    "Intent",
    "CapabilityModule", "ModuleConfig", "ModuleResult", "QuickAction", "ToolDefinition",
    "ToolResult", "UIHint", "capability", "context_signals_of",
]
