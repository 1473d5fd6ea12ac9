"""WebSocket frame codec (RFC 6455 section 5).

Pure and stateless: ``encode_frame`` turns an opcode and payload into one
complete wire frame, ``decode_frame`` parses at most one frame from the
front of a byte buffer. Partial input yields ``None`` and the caller keeps
its buffer until more bytes arrive; nothing is retained between calls.

Wire layout::

    byte 0   FIN | RSV1-3 | opcode(4)
    byte 1   MASK | length(7)        126 -> 16-bit length follows
                                     127 -> 64-bit length follows
    [mask key, 4 bytes]  only when MASK is set
    payload

Client-to-server frames are always masked with a fresh random key.
"""

from __future__ import annotations

import os
import struct

from chatwire.errors import ProtocolError
from chatwire.models.constants import (
    CLOSE_ABNORMAL,
    CLOSE_INVALID_PAYLOAD,
    CLOSE_MESSAGE_TOO_BIG,
    CLOSE_NO_STATUS,
    CLOSE_NORMAL,
    MAX_CONTROL_PAYLOAD,
)
from chatwire.models.entities import CloseInfo, Frame
from chatwire.models.enums import Opcode

FIN_BIT = 0x80
RSV_BITS = 0x70
OPCODE_MASK = 0x0F
MASK_BIT = 0x80
LENGTH_MASK = 0x7F

LENGTH_16 = 126
LENGTH_64 = 127

# Close codes a peer must never put on the wire
_RESERVED_CLOSE_CODES = frozenset({1004, CLOSE_NO_STATUS, CLOSE_ABNORMAL, 1015})

Payload = str | bytes | bytearray | memoryview


def _as_bytes(payload: Payload) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return bytes(payload)


def apply_mask(data: bytes, mask: bytes) -> bytes:
    """XOR *data* with the repeating 4-byte *mask*. Masking is its own inverse."""
    if len(mask) != 4:
        raise ValueError("mask key must be exactly 4 bytes")
    size = len(data)
    if size == 0:
        return b""
    key = (mask * (size // 4 + 1))[:size]
    masked = int.from_bytes(data, "big") ^ int.from_bytes(key, "big")
    return masked.to_bytes(size, "big")


def encode_frame(
    opcode: Opcode | int,
    payload: Payload = b"",
    *,
    fin: bool = True,
    mask: bool = True,
    mask_key: bytes | None = None,
) -> bytes:
    """Encode one frame.

    Args:
        opcode: Frame opcode.
        payload: Frame body; ``str`` is encoded as UTF-8.
        fin: FIN flag. Control frames must not be fragmented.
        mask: Mask the payload. Clients always mask; unmasked output is
            only useful for simulating a server.
        mask_key: Explicit 4-byte key, otherwise a fresh random one is drawn.

    Raises:
        ValueError: If a control frame is fragmented or its payload exceeds 125 bytes.
    """
    op = Opcode(opcode)
    body = _as_bytes(payload)
    length = len(body)
    if op.is_control():
        if not fin:
            raise ValueError(f"control frame {op.name} cannot be fragmented")
        if length > MAX_CONTROL_PAYLOAD:
            raise ValueError(
                f"control frame {op.name} payload is {length} bytes (max {MAX_CONTROL_PAYLOAD})"
            )

    header = bytearray([(FIN_BIT if fin else 0) | op.value])
    mask_flag = MASK_BIT if mask else 0
    if length < LENGTH_16:
        header.append(mask_flag | length)
    elif length < (1 << 16):
        header.append(mask_flag | LENGTH_16)
        header.extend(struct.pack("!H", length))
    else:
        header.append(mask_flag | LENGTH_64)
        header.extend(struct.pack("!Q", length))

    if not mask:
        return bytes(header) + body

    key = mask_key if mask_key is not None else os.urandom(4)
    header.extend(key)
    return bytes(header) + apply_mask(body, key)


def decode_frame(
    data: bytes | bytearray | memoryview,
    *,
    max_payload: int | None = None,
) -> tuple[Frame, int] | None:
    """Decode the frame at the start of *data*.

    Returns:
        ``(frame, bytes_consumed)`` for a complete frame, or ``None`` when
        *data* holds only a prefix of one. Masked frames are unmasked.

    Raises:
        ProtocolError: Reserved bits or opcode, non-minimal or oversized
            length encoding, or a malformed control frame.
    """
    available = len(data)
    if available < 2:
        return None

    first, second = data[0], data[1]
    if first & RSV_BITS:
        raise ProtocolError("reserved bits set without a negotiated extension")
    raw_opcode = first & OPCODE_MASK
    try:
        opcode = Opcode(raw_opcode)
    except ValueError:
        raise ProtocolError(f"reserved opcode 0x{raw_opcode:X}") from None
    fin = bool(first & FIN_BIT)
    masked = bool(second & MASK_BIT)

    length = second & LENGTH_MASK
    offset = 2
    if length == LENGTH_16:
        if available < offset + 2:
            return None
        (length,) = struct.unpack_from("!H", data, offset)
        offset += 2
        if length < LENGTH_16:
            raise ProtocolError(f"16-bit length field used for {length}-byte payload")
    elif length == LENGTH_64:
        if available < offset + 8:
            return None
        (length,) = struct.unpack_from("!Q", data, offset)
        offset += 8
        if length >> 63:
            raise ProtocolError("64-bit length has its most significant bit set")
        if length < (1 << 16):
            raise ProtocolError(f"64-bit length field used for {length}-byte payload")

    if opcode.is_control():
        if not fin:
            raise ProtocolError(f"fragmented control frame {opcode.name}")
        if length > MAX_CONTROL_PAYLOAD:
            raise ProtocolError(f"control frame {opcode.name} payload is {length} bytes")
    if max_payload is not None and length > max_payload:
        raise ProtocolError(
            f"frame payload of {length} bytes exceeds limit of {max_payload}",
            close_code=CLOSE_MESSAGE_TOO_BIG,
        )

    mask_key = b""
    if masked:
        if available < offset + 4:
            return None
        mask_key = bytes(data[offset : offset + 4])
        offset += 4

    end = offset + length
    if available < end:
        return None

    payload = bytes(data[offset:end])
    if masked:
        payload = apply_mask(payload, mask_key)
    return Frame(opcode=opcode, payload=payload, fin=fin, masked=masked), end


def encode_close_payload(code: int = CLOSE_NORMAL, reason: str = "") -> bytes:
    """Build a close frame body; the reason is trimmed to fit a control frame."""
    body = _as_bytes(reason)
    limit = MAX_CONTROL_PAYLOAD - 2
    if len(body) > limit:
        body = body[:limit].decode("utf-8", errors="ignore").encode("utf-8")
    return struct.pack("!H", code) + body


def parse_close_payload(payload: bytes) -> CloseInfo:
    """Parse a close frame body into code and reason.

    An empty body is reported as a normal closure with no reason.

    Raises:
        ProtocolError: One-byte body, a code outside the sendable range,
            or a reason that is not valid UTF-8.
    """
    if not payload:
        return CloseInfo(code=CLOSE_NORMAL, reason="")
    if len(payload) == 1:
        raise ProtocolError("close frame body of 1 byte")
    (code,) = struct.unpack_from("!H", payload, 0)
    if code < 1000 or code >= 5000 or code in _RESERVED_CLOSE_CODES:
        raise ProtocolError(f"invalid close code {code}")
    try:
        reason = payload[2:].decode("utf-8")
    except UnicodeDecodeError:
        raise ProtocolError(
            "close reason is not valid UTF-8", close_code=CLOSE_INVALID_PAYLOAD
        ) from None
    return CloseInfo(code=code, reason=reason)


__all__ = [
    "Payload",
    "apply_mask",
    "decode_frame",
    "encode_close_payload",
    "encode_frame",
    "parse_close_payload",
]
