"""Shell: explicit bootstrap and teardown of the orchestration runtime."""

from __future__ import annotations

from typing import Any

import httpx

from ..builtin import ChatModule, CodeModule
from ..config import ShellSettings
from ..context import ContextEngine
from ..events import EventBus
from ..infra.logging import configure_logging, get_logger
from ..modules import LifecycleReport, ModuleRegistry
from ..providers import AIProviderRegistry, ClaudeBackend, OllamaBackend, OpenAIBackend
from ..router import IntentRouter
from ..stores import (
    ClipboardSource, ConversationStore, InMemoryPreferences, PreferenceStore, VectorStore,
)
from ..types import ConversationMessage, Intent, ModuleResult

logger = get_logger(__name__)

SHELL_SOURCE = "shell"
ROUTED_EVENT = "intent:routed"
HANDLED_EVENT = "intent:handled"


class Shell:
    """Owns one bus, module registry, router, context engine and AI registry.

    Nothing is global: every component is built here and handed to the ones
    that depend on it.
    """

    def __init__(
        self,
        settings: ShellSettings | None = None,
        preferences: PreferenceStore | None = None,
        conversations: ConversationStore | None = None,
        vectors: VectorStore | None = None,
        clipboard: ClipboardSource | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or ShellSettings()
        self.preferences = preferences if preferences is not None else InMemoryPreferences.from_env()
        self.conversations = conversations
        self.vectors = vectors
        self._http_client = http_client

        self.bus = EventBus()
        self.modules = ModuleRegistry()
        self.router = IntentRouter(self.modules, default_module=self.settings.default_module)
        self.context = ContextEngine(
            self.modules,
            self.bus,
            clipboard=clipboard,
            clock_interval=self.settings.clock_interval,
            clipboard_interval=self.settings.clipboard_interval,
            recent_limit=self.settings.recent_message_limit,
        )
        self.ai = AIProviderRegistry()
        self._history: list[ConversationMessage] = []
        self._started = False

    @classmethod
    def from_env(cls, env_file: str | None = None, **collaborators: Any) -> Shell:
        """Settings from the environment, logging configured, defaults registered."""
        settings = ShellSettings.from_env(env_file)
        configure_logging(settings.log_level, settings.log_json)
        shell = cls(settings, **collaborators)
        shell.register_default_backends()
        shell.register_builtin_modules()
        return shell

    def register_default_backends(self) -> None:
        b = self.settings.backends
        common = dict(client=self._http_client, timeout=b.request_timeout, stream_buffer=b.stream_buffer)
        self.ai.register(ClaudeBackend(self.preferences, url=b.anthropic_url, **common))
        self.ai.register(OpenAIBackend(self.preferences, url=b.openai_url, **common))
        self.ai.register(OllamaBackend(self.preferences, base_url=b.ollama_url, **common))

    def register_builtin_modules(self) -> None:
        model = self.settings.default_model
        self.modules.register(
            ChatModule(self.ai, self.preferences, self.conversations, self.vectors, default_model=model)
        )
        self.modules.register(CodeModule(self.ai, self.preferences, default_model=model))

    async def start(self) -> LifecycleReport:
        if self._started:
            return LifecycleReport()
        report = await self.modules.init_all()
        await self.context.start()
        self._started = True
        logger.info("shell_started", modules=report.succeeded, failed=list(report.failed))
        return report

    async def handle_message(self, text: str) -> tuple[Intent, ModuleResult]:
        intent = self.router.route(text)
        self.bus.send(ROUTED_EVENT, SHELL_SOURCE, intent)
        self.context.set_active_module(intent.primary)
        self._remember(ConversationMessage(role="user", content=text))
        result = await self.router.execute(intent, self.context.get_snapshot())
        if result.success and result.message:
            self._remember(ConversationMessage(role="assistant", content=result.message))
        self.bus.send(HANDLED_EVENT, SHELL_SOURCE, {"intent": intent, "result": result})
        return intent, result

    def _remember(self, message: ConversationMessage) -> None:
        self._history.append(message)
        del self._history[: -self.settings.recent_message_limit]
        self.context.set_recent_messages(self._history)

    async def shutdown(self) -> LifecycleReport:
        self.context.stop()
        report = await self.modules.destroy_all()
        await self.ai.aclose()
        self._started = False
        logger.info("shell_stopped", failed=list(report.failed))
        return report
