"""
Pytest Configuration and Fixtures
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from conduit.events import EventBus
from conduit.modules import ModuleRegistry
from conduit.stores import InMemoryConversationStore, InMemoryPreferences
from conduit.types import (
    AIRequest, AIResponse, ContextSignal, ModuleResult, QuickAction, ToolDefinition, ToolResult,
    TokenUsage,
)


class FakeModule:
    """Minimal capability module: only the required surface."""

    def __init__(
        self,
        module_id: str,
        triggers: list[str] | None = None,
        fail_init: bool = False,
        fail_handle: bool = False,
        fail_destroy: bool = False,
    ) -> None:
        self.id = module_id
        self.name = module_id.title()
        self.description = f"{module_id} module"
        self.version = "0.0.1"
        self.triggers = list(triggers or [])
        self.fail_init = fail_init
        self.fail_handle = fail_handle
        self.fail_destroy = fail_destroy
        self.config = None
        self.destroyed = False
        self.handled: list[tuple[Any, Any]] = []

    async def init(self, config):
        if self.fail_init:
            raise RuntimeError(f"{self.id} init boom")
        self.config = config

    async def destroy(self):
        if self.fail_destroy:
            raise RuntimeError(f"{self.id} destroy boom")
        self.destroyed = True

    def can_handle(self, intent):
        return any(t in intent.raw.lower() for t in self.triggers)

    async def handle(self, intent, snapshot):
        if self.fail_handle:
            raise RuntimeError(f"{self.id} handle boom")
        self.handled.append((intent, snapshot))
        return ModuleResult(success=True, data=self.id, message=f"handled by {self.id}", ui="chat")


class ToolModule(FakeModule):
    """FakeModule with every optional capability."""

    def __init__(self, module_id: str, tools: list[str], **kwargs: Any) -> None:
        super().__init__(module_id, **kwargs)
        self.tool_names = tools
        self.calls: list[tuple[str, dict]] = []
        self.signals: list[ContextSignal] = []

    def get_tools(self):
        return [ToolDefinition(name=n, description=f"{n} tool") for n in self.tool_names]

    async def execute_tool(self, name, args):
        self.calls.append((name, args))
        if args.get("explode"):
            raise ValueError("tool exploded")
        return ToolResult(success=True, data={"tool": name, "args": args})

    def get_context_signals(self):
        return self.signals

    def get_quick_actions(self):
        return [QuickAction(id=f"{self.id}.go", label="Go", module_id=self.id, action=lambda: None)]


class FakeAI:
    """Stands in for AIProviderRegistry in module tests."""

    def __init__(self, reply: str = "ok", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.requests: list[AIRequest] = []

    async def chat(self, request: AIRequest) -> AIResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return AIResponse(content=self.reply, model=request.model, usage=TokenUsage(3, 5))


class ScriptedBody(httpx.AsyncByteStream):
    """Response body that yields fixed chunks, optionally hangs, and records closing."""

    def __init__(self, chunks: list[bytes], hang: bool = False) -> None:
        self.chunks = chunks
        self.hang = hang
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
            await asyncio.sleep(0)
        if self.hang:
            await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def registry() -> ModuleRegistry:
    return ModuleRegistry()


@pytest.fixture
def prefs() -> InMemoryPreferences:
    p = InMemoryPreferences()
    p.set_api_key("anthropic", "sk-ant-test")
    p.set_api_key("openai", "sk-openai-test")
    return p


@pytest.fixture
def conversations() -> InMemoryConversationStore:
    return InMemoryConversationStore()
