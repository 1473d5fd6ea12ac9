"""WebSocket opening handshake (RFC 6455 section 4).

The client sends an HTTP/1.1 ``GET`` upgrade request carrying a random
``Sec-WebSocket-Key``; the server must answer ``101`` with
``Upgrade: websocket`` and a ``Sec-WebSocket-Accept`` equal to
``base64(sha1(key + GUID))``.

Example:
    >>> url = parse_url("wss://example.com/chat")
    >>> request = build_request(url, {"Authorization": "Bearer abc"})
    >>> request.raw.startswith(b"GET /chat HTTP/1.1\\r\\n")
    True
"""

from __future__ import annotations

import base64
import hashlib
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from chatwire.errors import HandshakeError, InvalidURLError
from chatwire.models.constants import (
    DEFAULT_PORTS,
    MAX_HANDSHAKE_SIZE,
    WEBSOCKET_GUID,
    WEBSOCKET_VERSION,
)
from chatwire.models.entities import WebSocketURL

HEADER_TERMINATOR = b"\r\n\r\n"
SWITCHING_PROTOCOLS = 101

HeaderInput = Mapping[str, str] | Iterable[tuple[str, str]]


@dataclass(frozen=True)
class HandshakeRequest:
    """An encoded upgrade request and the key needed to validate its answer."""

    raw: bytes
    key: str
    url: WebSocketURL
    headers: tuple[tuple[str, str], ...] = field(default=())


@dataclass(frozen=True)
class HandshakeResponse:
    """Parsed ``101`` response head. Header names are lower-cased."""

    status: int
    reason: str
    headers: dict[str, str]


def parse_url(url: str) -> WebSocketURL:
    """Validate and normalise a ``ws``/``wss`` URL.

    Missing ports default to 80 (``ws``) and 443 (``wss``); a missing path
    becomes ``/``; the query string is kept as part of the request target.

    Raises:
        InvalidURLError: Unsupported scheme, missing host or bad port.
    """
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError as e:
        raise InvalidURLError(url, str(e)) from e
    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise InvalidURLError(url, f"scheme must be ws or wss, got {parts.scheme or 'none'!r}")
    if not parts.hostname:
        raise InvalidURLError(url, "missing host")
    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"
    return WebSocketURL(
        scheme=scheme,
        host=parts.hostname,
        port=port if port is not None else DEFAULT_PORTS[scheme],
        path=path,
    )


def generate_key() -> str:
    """Return a fresh base64-encoded 16-byte nonce."""
    return base64.b64encode(os.urandom(16)).decode("ascii")


def accept_key(key: str) -> str:
    """Derive the ``Sec-WebSocket-Accept`` value the server must echo for *key*."""
    digest = hashlib.sha1((key + WEBSOCKET_GUID).encode("ascii")).digest()
    return base64.b64encode(digest).decode("ascii")


def normalize_headers(extra_headers: HeaderInput | None) -> list[tuple[str, str]]:
    """Return *extra_headers* as name/value pairs, rejecting CR, LF and colons in names."""
    if extra_headers is None:
        return []
    items = extra_headers.items() if isinstance(extra_headers, Mapping) else extra_headers
    pairs: list[tuple[str, str]] = []
    for name, value in items:
        name, value = str(name), str(value)
        if not name or any(ch in name for ch in "\r\n:"):
            raise ValueError(f"invalid header name {name!r}")
        if "\r" in value or "\n" in value:
            raise ValueError(f"header {name!r} value contains a line break")
        pairs.append((name, value))
    return pairs


def build_request(
    url: WebSocketURL | str,
    extra_headers: HeaderInput | None = None,
    *,
    key: str | None = None,
) -> HandshakeRequest:
    """Build the HTTP/1.1 upgrade request for *url*.

    Caller-supplied headers (e.g. ``Authorization: Bearer <token>``) are
    appended verbatim after the standard ones.

    Raises:
        InvalidURLError: If *url* is a string that does not parse.
        ValueError: If a header name or value would break the request framing.
    """
    target = parse_url(url) if isinstance(url, str) else url
    ws_key = key or generate_key()
    headers: list[tuple[str, str]] = [
        ("Host", target.host_header),
        ("Upgrade", "websocket"),
        ("Connection", "Upgrade"),
        ("Sec-WebSocket-Key", ws_key),
        ("Sec-WebSocket-Version", WEBSOCKET_VERSION),
    ]
    headers.extend(normalize_headers(extra_headers))
    lines = [f"GET {target.path} HTTP/1.1"]
    lines.extend(f"{name}: {value}" for name, value in headers)
    raw = ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")
    return HandshakeRequest(raw=raw, key=ws_key, url=target, headers=tuple(headers))


def split_response(buffer: bytes | bytearray) -> tuple[bytes, bytes] | None:
    """Split a response buffer into its header block and the bytes after it.

    Returns ``None`` until the blank line ending the headers has arrived.
    Anything after it already belongs to the WebSocket stream.

    Raises:
        HandshakeError: If the header block grows past MAX_HANDSHAKE_SIZE.
    """
    index = buffer.find(HEADER_TERMINATOR)
    if index < 0:
        if len(buffer) > MAX_HANDSHAKE_SIZE:
            raise HandshakeError(f"response headers exceed {MAX_HANDSHAKE_SIZE} bytes")
        return None
    end = index + len(HEADER_TERMINATOR)
    return bytes(buffer[:index]), bytes(buffer[end:])


def _parse_head(head: bytes) -> HandshakeResponse:
    text = head.decode("latin-1")
    lines = text.split("\r\n")
    parts = lines[0].split(" ", 2)
    if len(parts) < 2 or not parts[0].startswith("HTTP/"):
        raise HandshakeError(f"malformed status line {lines[0]!r}")
    try:
        status = int(parts[1])
    except ValueError:
        raise HandshakeError(f"malformed status line {lines[0]!r}") from None
    reason = parts[2] if len(parts) > 2 else ""

    headers: dict[str, str] = {}
    for line in lines[1:]:
        if not line:
            continue
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            raise HandshakeError(f"malformed header line {line!r}", status=status)
        lname = name.strip().lower()
        value = value.strip()
        headers[lname] = f"{headers[lname]}, {value}" if lname in headers else value
    return HandshakeResponse(status=status, reason=reason, headers=headers)


def validate_response(
    head: bytes,
    expected_key: str | None,
    *,
    verify_accept: bool = True,
) -> HandshakeResponse:
    """Check the server's upgrade response.

    Args:
        head: Response bytes up to (not including) the blank line.
        expected_key: The ``Sec-WebSocket-Key`` that was sent.
        verify_accept: Also require a matching ``Sec-WebSocket-Accept``.

    Raises:
        HandshakeError: Non-101 status, missing ``Upgrade: websocket``, or
            a missing/mismatched accept value.
    """
    response = _parse_head(head)
    if response.status != SWITCHING_PROTOCOLS:
        raise HandshakeError(
            f"unexpected status {response.status} {response.reason}".rstrip(),
            status=response.status,
        )

    upgrade_tokens = {
        token.strip().lower() for token in response.headers.get("upgrade", "").split(",")
    }
    if "websocket" not in upgrade_tokens:
        raise HandshakeError("missing 'Upgrade: websocket' header", status=response.status)

    if verify_accept:
        if expected_key is None:
            raise HandshakeError("no request key to verify the accept value against")
        received = response.headers.get("sec-websocket-accept")
        if received is None:
            raise HandshakeError("missing Sec-WebSocket-Accept header", status=response.status)
        if received != accept_key(expected_key):
            raise HandshakeError(
                "Sec-WebSocket-Accept does not match request key", status=response.status
            )
    return response


__all__ = [
    "HandshakeRequest",
    "HeaderInput",
    "HandshakeResponse",
    "accept_key",
    "build_request",
    "generate_key",
    "normalize_headers",
    "parse_url",
    "split_response",
    "validate_response",
]
