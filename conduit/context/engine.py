"""ContextEngine: keeps live context signals fed by periodic providers."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from types import MappingProxyType
from typing import Any

from ..events import EventBus
from ..infra.logging import get_logger
from ..modules import ModuleRegistry
from ..stores import ClipboardSource
from ..types import (
    ContextSignal, ContextSnapshot, ConversationMessage, SignalProvider, context_signals_of,
)
from ..types.context import now_iso

logger = get_logger(__name__)

SIGNAL_EVENT = "context:signal"
ENGINE_SOURCE = "context-engine"

Sleep = Callable[[float], Awaitable[None]]


def clock_provider(interval: float) -> SignalProvider:
    async def fetch() -> str:
        return now_iso()

    return SignalProvider(layer="immediate", key="time", source="system", fetch=fetch, interval=interval)


def clipboard_provider(clipboard: ClipboardSource, interval: float) -> SignalProvider:
    return SignalProvider(
        layer="immediate", key="clipboard", source="system", fetch=clipboard.read, interval=interval
    )


class ContextEngine:
    """Aggregates signals from providers and modules, publishing each change on the bus.

    Every provider gets one immediate fetch on :meth:`start` and, if it has an
    interval, a repeating asyncio task. :meth:`stop` cancels all tasks and
    bumps a generation counter so a fetch still in flight when the engine
    stopped cannot write its result.
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        bus: EventBus,
        clipboard: ClipboardSource | None = None,
        clock_interval: float = 1.0,
        clipboard_interval: float = 2.0,
        recent_limit: int = 10,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._registry = registry
        self._bus = bus
        self._clipboard = clipboard
        self._clock_interval = clock_interval
        self._clipboard_interval = clipboard_interval
        self._recent_limit = recent_limit
        self._sleep = sleep

        self._signals: dict[str, ContextSignal] = {}
        self._providers: list[SignalProvider] = []
        self._tasks: list[asyncio.Task[None]] = []
        self._recent: tuple[ConversationMessage, ...] = ()
        self._active_module: str | None = None
        self._running = False
        self._generation = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def active_timers(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    def register_provider(self, provider: SignalProvider) -> None:
        self._providers.append(provider)

    def _builtin_providers(self) -> list[SignalProvider]:
        builtins = [clock_provider(self._clock_interval)]
        if self._clipboard is not None:
            builtins.append(clipboard_provider(self._clipboard, self._clipboard_interval))
        return builtins

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        generation = self._generation

        for module in self._registry.get_enabled():
            try:
                signals = context_signals_of(module)
            except Exception:
                logger.exception("module_signals_failed", module_id=module.id)
                continue
            for signal in signals:
                self.set_signal(signal)

        for provider in self._builtin_providers() + list(self._providers):
            await self._fetch_and_publish(provider, generation)
            if generation != self._generation:
                return  # stopped during the initial fetch
            if provider.interval:
                self._tasks.append(asyncio.create_task(self._poll(provider, generation)))
        logger.info("context_engine_started", providers=len(self._providers), timers=len(self._tasks))

    def stop(self) -> None:
        self._running = False
        self._generation += 1
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()

    async def _poll(self, provider: SignalProvider, generation: int) -> None:
        interval = provider.interval or 0
        while generation == self._generation:
            await self._sleep(interval)
            await self._fetch_and_publish(provider, generation)

    async def _fetch_and_publish(self, provider: SignalProvider, generation: int) -> None:
        try:
            value = await provider.fetch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("signal_fetch_failed", key=provider.key, source=provider.source, error=str(e))
            return
        if generation != self._generation:
            return
        self.set_signal(
            ContextSignal(layer=provider.layer, key=provider.key, value=value, source=provider.source)
        )

    def set_signal(self, signal: ContextSignal) -> None:
        self._signals[signal.key] = signal
        self._bus.send(SIGNAL_EVENT, ENGINE_SOURCE, signal)

    def get_signal(self, key: str) -> Any:
        signal = self._signals.get(key)
        return signal.value if signal else None

    def set_recent_messages(self, messages: Sequence[ConversationMessage]) -> None:
        self._recent = tuple(messages)[-self._recent_limit:]

    def set_active_module(self, module_id: str | None) -> None:
        self._active_module = module_id

    def get_snapshot(self) -> ContextSnapshot:
        clipboard = self._signals.get("clipboard")
        return ContextSnapshot(
            time=now_iso(),
            signals=MappingProxyType({k: s.value for k, s in self._signals.items()}),
            clipboard=clipboard.value if clipboard else None,
            active_module=self._active_module,
            recent_messages=self._recent,
        )
