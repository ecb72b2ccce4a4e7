"""Unit tests for the Shell runtime wiring."""

import httpx
import pytest

from conduit.config import BackendSettings, ShellSettings
from conduit.runtime import HANDLED_EVENT, ROUTED_EVENT, Shell
from conduit.stores import InMemoryPreferences
from tests.conftest import FakeModule, mock_client


def anthropic_reply(text):
    return httpx.Response(200, json={
        "content": [{"type": "text", "text": text}],
        "usage": {"input_tokens": 1, "output_tokens": 1},
    })


@pytest.fixture
def sent():
    return []


@pytest.fixture
async def shell(prefs, conversations, sent):
    def handler(req):
        sent.append(req)
        return anthropic_reply("hello from claude")

    s = Shell(
        ShellSettings(clock_interval=60, backends=BackendSettings(ollama_url="http://ollama:1")),
        prefs,
        conversations=conversations,
        http_client=mock_client(handler),
    )
    s.register_default_backends()
    s.register_builtin_modules()
    yield s
    await s.shutdown()


class TestShell:
    async def test_bootstrap(self, shell):
        report = await shell.start()
        assert report.ok
        assert report.succeeded == ["chat", "code"]
        assert [b.id for b in shell.ai.get_all()] == ["claude", "openai", "ollama"]
        assert shell.context.running
        assert shell.context.get_signal("time")

    async def test_start_twice_is_noop(self, shell):
        await shell.start()
        again = await shell.start()
        assert again.succeeded == []

    async def test_chat_message_end_to_end(self, shell, sent):
        await shell.start()
        events = []
        shell.bus.subscribe_all(events.append)

        intent, result = await shell.handle_message("hello there")

        assert intent.type == "chat"
        assert result.success
        assert result.message == "hello from claude"
        assert [e.type for e in events] == [ROUTED_EVENT, HANDLED_EVENT]
        assert events[1].data["result"] is result
        assert len(sent) == 1
        snap = shell.context.get_snapshot()
        assert snap.active_module == "chat"
        assert [m.role for m in snap.recent_messages] == ["user", "assistant"]

    async def test_code_message_routes_to_code(self, shell, sent):
        await shell.start()
        intent, result = await shell.handle_message("fix this bug in my code")
        assert intent.modules[0] == "code"
        assert result.ui == "panel"
        assert sent == []

    async def test_missing_credential_is_failed_result(self, conversations):
        shell = Shell(ShellSettings(), InMemoryPreferences(), conversations=conversations)
        shell.register_default_backends()
        shell.register_builtin_modules()
        await shell.start()
        intent, result = await shell.handle_message("hi")
        assert not result.success
        assert "API key not configured" in result.error
        await shell.shutdown()

    async def test_default_model_setting(self, prefs, sent):
        def handler(req):
            sent.append(req)
            return httpx.Response(200, json={"message": {"content": "local"}})

        shell = Shell(
            ShellSettings(default_model="llama3.2", backends=BackendSettings(ollama_url="http://ollama:1")),
            prefs,
            http_client=mock_client(handler),
        )
        shell.register_default_backends()
        shell.register_builtin_modules()
        _, result = await shell.handle_message("hello")
        assert result.message == "local"
        assert str(sent[0].url) == "http://ollama:1/api/chat"

    async def test_custom_module_and_failed_init(self, shell):
        shell.modules.register(FakeModule("notes", ["note"], fail_init=True))
        report = await shell.start()
        assert list(report.failed) == ["notes"]
        assert report.succeeded == ["chat", "code"]

    async def test_shutdown(self, shell):
        await shell.start()
        report = await shell.shutdown()
        assert report.ok
        assert not shell.context.running
        assert shell.context.active_timers == 0


class TestShellFromEnv:
    async def test_reads_settings_and_registers_defaults(self, monkeypatch, tmp_path, prefs):
        import structlog

        env_file = tmp_path / ".env"
        env_file.write_text("CONDUIT_DEFAULT_MODULE=code\nCONDUIT_LOG_LEVEL=warning\n")
        for var in ("CONDUIT_DEFAULT_MODULE", "CONDUIT_LOG_LEVEL"):
            monkeypatch.setenv(var, "")
            monkeypatch.delenv(var)

        shell = Shell.from_env(str(env_file), preferences=prefs)
        try:
            assert shell.settings.default_module == "code"
            assert shell.settings.log_level == "WARNING"
            assert shell.router.default_module == "code"
            assert [m.id for m in shell.modules.get_all()] == ["chat", "code"]
            assert len(shell.ai.get_all()) == 3
        finally:
            await shell.shutdown()
            structlog.reset_defaults()
