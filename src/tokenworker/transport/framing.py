"""Packet framing with Content-Length headers.

Packets use the same base framing as LSP:

    Content-Length: <length>\r\n
    [Content-Type: <type>]\r\n
    \r\n
    <json packet envelope>

The Content-Length header is required and gives the byte count of the UTF-8
JSON body. Headers are separated from the body by a blank line.
"""

from __future__ import annotations

import asyncio
import json

from tokenworker.errors import FramingError
from tokenworker.protocol.codec import Packet

CONTENT_LENGTH = "Content-Length"
HEADER_ENCODING = "ascii"
CONTENT_ENCODING = "utf-8"
CRLF = b"\r\n"

DEFAULT_MAX_MESSAGE_SIZE = 16 * 1024 * 1024


def parse_header(header_bytes: bytes) -> dict[str, str]:
    """Parse headers from raw bytes.

    Args:
        header_bytes: Raw header bytes without the trailing blank line.

    Returns:
        Dictionary mapping header names to values.

    Raises:
        FramingError: If headers are malformed or Content-Length is missing/invalid.

    Example:
        >>> parse_header(b"Content-Length: 42\\r\\nContent-Type: application/json")
        {'Content-Length': '42', 'Content-Type': 'application/json'}
    """
    if not header_bytes:
        raise FramingError("Empty header block")

    try:
        header_text = header_bytes.decode(HEADER_ENCODING)
    except UnicodeDecodeError as e:
        raise FramingError(f"Header contains non-ASCII characters: {e}") from e

    headers: dict[str, str] = {}
    for line in header_text.split("\r\n"):
        if not line:
            continue

        colon_pos = line.find(":")
        if colon_pos == -1:
            raise FramingError(f"Malformed header line (no colon): {line!r}")

        name = line[:colon_pos].strip()
        value = line[colon_pos + 1 :].strip()
        if not name:
            raise FramingError(f"Empty header name in line: {line!r}")

        headers[name] = value

    if CONTENT_LENGTH not in headers:
        raise FramingError("Missing required Content-Length header")

    try:
        length = int(headers[CONTENT_LENGTH])
    except ValueError as e:
        raise FramingError(f"Invalid Content-Length value: {headers[CONTENT_LENGTH]!r}") from e

    if length < 0:
        raise FramingError(f"Negative Content-Length: {length}")

    return headers


async def read_packet(
    reader: asyncio.StreamReader,
    *,
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
) -> Packet | None:
    """Read a single packet from the stream.

    Returns:
        The packet, or None on a clean EOF at a packet boundary.

    Raises:
        FramingError: If framing is invalid or the body cannot be parsed.
        DecodeError: If the envelope is not a valid packet.
    """
    header_bytes = b""

    while True:
        try:
            line = await reader.readuntil(CRLF)
        except asyncio.IncompleteReadError as e:
            if header_bytes == b"" and not e.partial and reader.at_eof():
                return None
            raise FramingError("Unexpected EOF while reading headers") from e
        except asyncio.LimitOverrunError as e:
            raise FramingError(f"Header line too long: {e}") from e

        if line == CRLF:
            break

        header_bytes += line

    if header_bytes.endswith(CRLF):
        header_bytes = header_bytes[:-2]

    headers = parse_header(header_bytes)
    content_length = int(headers[CONTENT_LENGTH])

    if content_length > max_message_size:
        raise FramingError(f"Message size {content_length} exceeds maximum {max_message_size}")

    try:
        body_bytes = await reader.readexactly(content_length)
    except asyncio.IncompleteReadError as e:
        raise FramingError(
            f"Incomplete message body: expected {content_length} bytes, got {len(e.partial)}"
        ) from e

    try:
        data = json.loads(body_bytes.decode(CONTENT_ENCODING))
    except UnicodeDecodeError as e:
        raise FramingError(f"Invalid UTF-8 in message body: {e}") from e
    except json.JSONDecodeError as e:
        raise FramingError(f"Invalid JSON in message body: {e}") from e

    if not isinstance(data, dict):
        raise FramingError(f"Packet must be a JSON object, got {type(data).__name__}")

    return Packet.from_dict(data)


def frame_packet(packet: Packet) -> bytes:
    """Serialize a packet with its Content-Length header.

    Raises:
        FramingError: If the packet cannot be serialized to JSON.
    """
    try:
        body_bytes = json.dumps(packet.to_dict(), separators=(",", ":")).encode(CONTENT_ENCODING)
    except (TypeError, ValueError) as e:
        raise FramingError(f"Packet cannot be serialized to JSON: {e}") from e

    header = f"{CONTENT_LENGTH}: {len(body_bytes)}\r\n\r\n".encode(HEADER_ENCODING)
    return header + body_bytes


def write_packet(writer: asyncio.StreamWriter, packet: Packet) -> None:
    """Write a framed packet without waiting for it to drain."""
    writer.write(frame_packet(packet))
