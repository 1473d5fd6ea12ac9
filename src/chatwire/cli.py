"""Command-line interface for chatwire.

This module provides commands to inspect the opening handshake and to
hold a short interactive session against a WebSocket chat endpoint.

Example:
    >>> # From terminal:
    >>> # chatwire --version
    >>> # chatwire handshake wss://irc-ws.chat.twitch.tv -H "Authorization: Bearer abc"
    >>> # chatwire connect wss://irc-ws.chat.twitch.tv --send "NICK justinfan123" --count 3
"""

import asyncio
from typing import Annotated, Optional

import typer
from pydantic import ValidationError

from chatwire import __version__
from chatwire.errors import ChatwireError
from chatwire.models.config import ConnectionConfig
from chatwire.models.constants import DEFAULT_URL
from chatwire.observability import configure_logging, sanitize_for_logging
from chatwire.transport.connection import ConnectionHandlers, WebSocketConnection
from chatwire.transport.handshake import build_request

app = typer.Typer(help="chatwire WebSocket transport CLI.")

# Seconds to wait for messages when --count is given without --timeout
DEFAULT_LISTEN_TIMEOUT = 10.0


def _version_callback(value: bool) -> None:
    """Print the version and exit when requested."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


VERSION_OPTION = typer.Option(
    False,
    "--version",
    help="Show chatwire version and exit.",
    callback=_version_callback,
    is_eager=True,
)

HeaderOption = Annotated[
    Optional[list[str]],
    typer.Option("--header", "-H", help="Extra request header as 'Name: value' (repeatable)."),
]


def _parse_headers(raw_headers: Optional[list[str]]) -> list[tuple[str, str]]:
    headers: list[tuple[str, str]] = []
    for raw in raw_headers or []:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Header must look like 'Name: value', got {raw!r}")
        headers.append((name.strip(), value.strip()))
    return headers


def _load_config() -> ConnectionConfig:
    try:
        return ConnectionConfig.from_env()
    except ValidationError as e:
        typer.echo(f"Invalid CHATWIRE_* configuration: {e}", err=True)
        raise typer.Exit(1) from e


@app.callback()
def cli(
    version: bool = VERSION_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """chatwire CLI entrypoint."""
    configure_logging(log_level="DEBUG" if verbose else "WARNING", force=True)


@app.command("handshake")
def handshake(
    url: Annotated[str, typer.Argument(help="ws:// or wss:// URL.")] = DEFAULT_URL,
    header: HeaderOption = None,
) -> None:
    """Print the upgrade request that would be sent to URL (secrets redacted)."""
    try:
        request = build_request(url, _parse_headers(header))
    except ChatwireError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(1) from e
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    typer.echo(f"GET {request.url.path} HTTP/1.1")
    for name, value in request.headers:
        shown = sanitize_for_logging({name: value})[name]
        typer.echo(f"{name}: {shown}")


async def _run_session(
    url: str,
    headers: list[tuple[str, str]],
    messages: list[str],
    count: int,
    timeout: float,
    config: ConnectionConfig,
) -> int:
    received = 0
    done = asyncio.Event()

    def on_message(message: str | bytes) -> None:
        nonlocal received
        received += 1
        typer.echo(message if isinstance(message, str) else f"<{len(message)} bytes> {message.hex()}")
        if count and received >= count:
            done.set()

    def on_error(error: ChatwireError) -> None:
        typer.echo(f"Error: {error.message}", err=True)

    def on_disconnect(reason: str) -> None:
        typer.echo(f"Disconnected: {reason}", err=True)
        done.set()

    def on_close(code: int, reason: str) -> None:
        typer.echo(f"Closed: {code} {reason}".rstrip(), err=True)
        done.set()

    connection = WebSocketConnection(
        url,
        ConnectionHandlers(
            on_message=on_message,
            on_error=on_error,
            on_disconnect=on_disconnect,
            on_close=on_close,
        ),
        config.with_overrides(max_reconnect_attempts=0),
        extra_headers=headers,
    )
    if not await connection.connect():
        await connection.close()
        return 1
    try:
        for message in messages:
            await connection.send(message)
        if not count:
            # Listen until the server closes or the link is lost for good
            await done.wait()
            return 0
        try:
            await asyncio.wait_for(done.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            typer.echo(f"Timed out after {timeout:g}s ({received}/{count} messages)", err=True)
            return 1
        if received < count:
            typer.echo(f"Connection ended after {received}/{count} messages", err=True)
            return 1
    finally:
        await connection.shutdown()
    return 0


@app.command("connect")
def connect(
    url: Annotated[str, typer.Argument(help="ws:// or wss:// URL.")] = DEFAULT_URL,
    header: HeaderOption = None,
    send: Annotated[
        Optional[list[str]],
        typer.Option("--send", "-s", help="Text message to send once open (repeatable)."),
    ] = None,
    count: Annotated[
        int,
        typer.Option(
            "--count",
            "-n",
            min=0,
            help="Messages to print before exiting (0: until the server closes).",
        ),
    ] = 0,
    timeout: Annotated[
        float,
        typer.Option("--timeout", "-t", min=0.0, help="Seconds to wait for --count messages."),
    ] = DEFAULT_LISTEN_TIMEOUT,
) -> None:
    """Open URL, send messages, print what arrives, then close gracefully."""
    headers = _parse_headers(header)
    config = _load_config()
    try:
        exit_code = asyncio.run(_run_session(url, headers, send or [], count, timeout, config))
    except ChatwireError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(1) from e
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    if exit_code:
        raise typer.Exit(exit_code)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
