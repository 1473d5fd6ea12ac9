"""Tests for the chatwire command-line interface."""

import asyncio
from collections.abc import AsyncIterator, Iterator

import pytest
from typer.testing import CliRunner
from websockets.asyncio.server import ServerConnection, serve

from chatwire import __version__
from chatwire.cli import _parse_headers, _run_session, app
from chatwire.models.config import ConnectionConfig
from chatwire.observability import configure_logging

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """The CLI points logging at the runner's stderr; point it back afterwards."""
    yield
    configure_logging(force=True)


class TestVersion:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestHandshakeCommand:
    """chatwire handshake."""

    def test_prints_request_with_secrets_redacted(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CHATWIRE_DEBUG", raising=False)
        result = runner.invoke(
            app,
            [
                "handshake",
                "wss://irc-ws.chat.twitch.tv/chat",
                "-H",
                "Authorization: Bearer abc123",
                "--header",
                "Origin: https://example.com",
            ],
        )
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "GET /chat HTTP/1.1"
        assert "Host: irc-ws.chat.twitch.tv" in lines
        assert "Upgrade: websocket" in lines
        assert "Sec-WebSocket-Version: 13" in lines
        assert "Sec-WebSocket-Key: ***REDACTED***" in lines
        assert "Authorization: ***REDACTED***" in lines
        assert "Origin: https://example.com" in lines
        assert "abc123" not in result.output

    def test_default_url(self) -> None:
        result = runner.invoke(app, ["handshake"])
        assert result.exit_code == 0, result.output
        assert "Host: irc-ws.chat.twitch.tv" in result.output

    def test_non_default_port_in_host(self) -> None:
        result = runner.invoke(app, ["handshake", "ws://localhost:8080"])
        assert result.exit_code == 0
        assert "Host: localhost:8080" in result.output.splitlines()

    def test_invalid_url_exits_1(self) -> None:
        result = runner.invoke(app, ["handshake", "http://example.com"])
        assert result.exit_code == 1
        assert "Invalid WebSocket URL" in result.output

    def test_malformed_header_exits_2(self) -> None:
        result = runner.invoke(app, ["handshake", "ws://localhost", "-H", "NoColonHere"])
        assert result.exit_code == 2


class TestConnectCommand:
    """chatwire connect."""

    def test_unreachable_server_exits_1(self) -> None:
        result = runner.invoke(app, ["connect", "ws://127.0.0.1:1/", "--timeout", "1"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_invalid_url_exits_1(self) -> None:
        result = runner.invoke(app, ["connect", "ftp://example.com"])
        assert result.exit_code == 1
        assert "Invalid WebSocket URL" in result.output

    def test_invalid_env_config_exits_1(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHATWIRE_TIMEOUT", "-5")
        result = runner.invoke(app, ["connect", "ws://127.0.0.1:1/"])
        assert result.exit_code == 1
        assert "Invalid CHATWIRE_* configuration" in result.output


async def _greeter(websocket: ServerConnection) -> None:
    await websocket.send("hello")
    await websocket.send("world")
    async for message in websocket:
        if message == "bye":
            await websocket.close(1000, "done")
            return


@pytest.fixture
async def greeter_url() -> AsyncIterator[str]:
    async with serve(_greeter, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        yield f"ws://127.0.0.1:{port}/chat"


SESSION_CONFIG = ConnectionConfig(timeout=2000, ping_interval=0, close_timeout=1000)


class TestRunSession:
    """The connect command's session loop against a local server."""

    @pytest.mark.asyncio
    async def test_without_count_prints_until_server_closes(
        self, greeter_url: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = await asyncio.wait_for(
            _run_session(greeter_url, [], ["bye"], 0, 0.1, SESSION_CONFIG), timeout=5.0
        )

        captured = capsys.readouterr()
        assert code == 0
        assert captured.out.splitlines() == ["hello", "world"]
        assert "Closed: 1000 done" in captured.err

    @pytest.mark.asyncio
    async def test_without_count_keeps_listening(self, greeter_url: str) -> None:
        session = asyncio.create_task(_run_session(greeter_url, [], [], 0, 0.1, SESSION_CONFIG))
        await asyncio.sleep(0.3)
        assert not session.done()
        session.cancel()
        with pytest.raises(asyncio.CancelledError):
            await session

    @pytest.mark.asyncio
    async def test_count_returns_once_reached(
        self, greeter_url: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = await _run_session(greeter_url, [], [], 2, 2.0, SESSION_CONFIG)

        assert code == 0
        assert capsys.readouterr().out.splitlines() == ["hello", "world"]

    @pytest.mark.asyncio
    async def test_server_close_before_count_exits_1(
        self, greeter_url: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = await _run_session(greeter_url, [], ["bye"], 5, 2.0, SESSION_CONFIG)

        assert code == 1
        assert "Connection ended after 2/5 messages" in capsys.readouterr().err


class TestParseHeaders:
    def test_strips_whitespace(self) -> None:
        assert _parse_headers(["  X-Id :  42 "]) == [("X-Id", "42")]

    def test_value_may_contain_colons(self) -> None:
        assert _parse_headers(["Origin: https://a:1"]) == [("Origin", "https://a:1")]

    def test_none(self) -> None:
        assert _parse_headers(None) == []
