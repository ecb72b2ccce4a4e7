"""Unit tests for ContextEngine signal lifecycle."""

import asyncio

import pytest

from conduit.context import ENGINE_SOURCE, SIGNAL_EVENT, ContextEngine
from conduit.types import ContextSignal, ConversationMessage, SignalProvider
from tests.conftest import ToolModule


class Ticker:
    """Manually driven replacement for asyncio.sleep."""

    def __init__(self):
        self._waiters = []

    async def sleep(self, interval):
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        await fut

    async def tick(self):
        waiters, self._waiters = self._waiters, []
        for fut in waiters:
            if not fut.done():
                fut.set_result(None)
        await settle()


async def settle(rounds: int = 10):
    for _ in range(rounds):
        await asyncio.sleep(0)


def counting_provider(key="counter", interval=1.0):
    calls = []

    async def fetch():
        calls.append(len(calls) + 1)
        return len(calls)

    return SignalProvider(layer="session", key=key, source="test", fetch=fetch, interval=interval), calls


@pytest.fixture
def ticker():
    return Ticker()


@pytest.fixture
def engine(registry, bus, ticker):
    e = ContextEngine(registry, bus, sleep=ticker.sleep)
    yield e
    e.stop()


@pytest.fixture
def published(bus):
    events = []
    bus.subscribe(SIGNAL_EVENT, events.append)
    return events


class TestStart:
    async def test_immediate_fetch_on_start(self, engine, published):
        provider, calls = counting_provider()
        engine.register_provider(provider)
        await engine.start()
        assert calls == [1]
        assert engine.get_signal("counter") == 1
        assert engine.get_signal("time") is not None
        assert {e.data.key for e in published} == {"time", "counter"}
        assert all(e.source == ENGINE_SOURCE for e in published)

    async def test_periodic_fetch(self, engine, ticker):
        provider, calls = counting_provider()
        engine.register_provider(provider)
        await engine.start()
        await settle()
        await ticker.tick()
        await ticker.tick()
        assert engine.get_signal("counter") == 3

    async def test_one_shot_provider_has_no_timer(self, engine):
        provider, calls = counting_provider(interval=None)
        engine.register_provider(provider)
        await engine.start()
        assert calls == [1]
        assert engine.active_timers == 1  # clock only

    async def test_start_twice_is_noop(self, engine):
        provider, calls = counting_provider()
        engine.register_provider(provider)
        await engine.start()
        await engine.start()
        assert calls == [1]
        assert engine.active_timers == 2

    async def test_module_signals_applied(self, registry, engine):
        module = ToolModule("code", [])
        module.signals = [ContextSignal(layer="session", key="code.project", value={"name": "x"}, source="code")]
        registry.register(module)
        await engine.start()
        assert engine.get_signal("code.project") == {"name": "x"}

    async def test_disabled_module_signals_skipped(self, registry, engine):
        module = ToolModule("code", [])
        module.signals = [ContextSignal(layer="session", key="k", value=1, source="code")]
        registry.register(module, {"enabled": False})
        await engine.start()
        assert engine.get_signal("k") is None

    async def test_failing_provider_isolated(self, engine, ticker):
        async def broken():
            raise RuntimeError("sensor offline")

        engine.register_provider(SignalProvider(layer="daily", key="bad", source="t", fetch=broken, interval=1.0))
        provider, calls = counting_provider()
        engine.register_provider(provider)
        await engine.start()
        await settle()
        await ticker.tick()
        assert engine.get_signal("bad") is None
        assert engine.get_signal("counter") == 2

    async def test_clipboard_provider_only_when_given(self, registry, bus, ticker):
        class Clipboard:
            async def read(self):
                return "copied text"

        without = ContextEngine(registry, bus, sleep=ticker.sleep)
        await without.start()
        assert without.active_timers == 1
        without.stop()

        with_clip = ContextEngine(registry, bus, clipboard=Clipboard(), sleep=ticker.sleep)
        await with_clip.start()
        assert with_clip.active_timers == 2
        assert with_clip.get_snapshot().clipboard == "copied text"
        with_clip.stop()


class TestStop:
    async def test_no_signals_after_stop(self, engine, ticker, published):
        provider, calls = counting_provider()
        engine.register_provider(provider)
        await engine.start()
        await settle()
        engine.stop()
        await settle()
        before = len(published)
        await ticker.tick()
        await ticker.tick()
        assert len(published) == before
        assert engine.active_timers == 0
        assert not engine.running

    async def test_late_initial_fetch_discarded(self, engine, published):
        gate = asyncio.Event()

        async def slow():
            await gate.wait()
            return "late"

        engine.register_provider(SignalProvider(layer="session", key="slow", source="t", fetch=slow))
        starting = asyncio.create_task(engine.start())
        await settle()
        engine.stop()
        gate.set()
        await starting
        assert engine.get_signal("slow") is None
        assert engine.active_timers == 0

    async def test_late_periodic_fetch_discarded(self, engine, ticker):
        gate = asyncio.Event()
        values = iter(["first", "second"])

        async def fetch():
            value = next(values)
            if value == "second":
                await gate.wait()
            return value

        engine.register_provider(SignalProvider(layer="session", key="k", source="t", fetch=fetch, interval=1.0))
        await engine.start()
        await settle()
        await ticker.tick()  # second fetch now in flight
        engine.stop()
        gate.set()
        await settle()
        assert engine.get_signal("k") == "first"

    async def test_stop_start_cycle_does_not_duplicate(self, engine, ticker):
        provider, calls = counting_provider()
        engine.register_provider(provider)
        await engine.start()
        first = engine.active_timers
        engine.stop()
        await engine.start()
        assert engine.active_timers == first == 2
        await settle()
        await ticker.tick()
        assert calls == [1, 2, 3]


class TestSignalsAndSnapshot:
    def test_set_signal_overwrites(self, engine, published):
        engine.set_signal(ContextSignal(layer="session", key="k", value=1, source="t"))
        engine.set_signal(ContextSignal(layer="daily", key="k", value=2, source="t"))
        assert engine.get_signal("k") == 2
        assert [e.data.value for e in published] == [1, 2]

    def test_snapshot_signals_read_only(self, engine):
        engine.set_signal(ContextSignal(layer="session", key="k", value=1, source="t"))
        snap = engine.get_snapshot()
        with pytest.raises(TypeError):
            snap.signals["k"] = 2
        assert snap.signals["k"] == 1
        assert snap.time

    def test_snapshot_is_a_copy(self, engine):
        snap = engine.get_snapshot()
        engine.set_signal(ContextSignal(layer="session", key="k", value=1, source="t"))
        assert "k" not in snap.signals

    def test_recent_messages_keep_newest(self, engine):
        msgs = [ConversationMessage(role="user", content=str(i)) for i in range(15)]
        engine.set_recent_messages(msgs)
        recent = engine.get_snapshot().recent_messages
        assert [m.content for m in recent] == [str(i) for i in range(5, 15)]

    def test_active_module(self, engine):
        assert engine.get_snapshot().active_module is None
        engine.set_active_module("code")
        assert engine.get_snapshot().active_module == "code"
