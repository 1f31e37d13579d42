"""Bidirectional packet channel to the parent editor.

The editor listens on a local Unix domain socket and the worker connects to
it. Once connected, ``Channel.listen`` delivers events to a handler one at a
time, awaiting each before reading the next packet, so packets are handled
strictly in arrival order. ``Channel.send`` never waits.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from tokenworker.errors import ConnectError, DecodeError
from tokenworker.logging import get_logger
from tokenworker.protocol.codec import Packet
from tokenworker.transport.framing import (
    DEFAULT_MAX_MESSAGE_SIZE,
    read_packet,
    write_packet,
)

log = get_logger("transport")


@dataclass(frozen=True, slots=True)
class Connected:
    """The channel is established."""


@dataclass(frozen=True, slots=True)
class Received:
    """A packet arrived, or an inbound packet could not be decoded."""

    packet: Packet | None = None
    error: DecodeError | None = None


@dataclass(frozen=True, slots=True)
class Disconnected:
    """The remote end closed the connection."""

    reason: str | None = None


ChannelEvent = Connected | Received | Disconnected
EventHandler = Callable[[ChannelEvent], Awaitable[None]]


class Channel:
    """A connected packet channel."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._max_message_size = max_message_size
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed or self._writer.is_closing()

    def send(self, packet: Packet) -> None:
        """Queue a packet for writing. Fire-and-forget."""
        if self.closed:
            return
        try:
            write_packet(self._writer, packet)
        except (ConnectionError, RuntimeError) as e:
            log.debug("Dropping outbound packet: %s", e)

    async def drain(self, timeout: float) -> None:
        """Wait up to ``timeout`` seconds for buffered writes to flush."""
        if self.closed:
            return
        try:
            await asyncio.wait_for(self._writer.drain(), timeout=timeout)
        except asyncio.TimeoutError:
            log.warning("Timed out flushing outbound packets")
        except ConnectionError as e:
            log.debug("Connection lost while flushing: %s", e)

    async def listen(self, handler: EventHandler) -> None:
        """Deliver channel events to ``handler`` until the connection ends.

        A packet that cannot be framed or decoded is delivered as a
        ``Received`` event carrying the error; reading stops afterwards since
        the stream position can no longer be trusted.
        """
        await handler(Connected())

        reason: str | None = None
        while not self._closed:
            try:
                packet = await read_packet(self._reader, max_message_size=self._max_message_size)
            except DecodeError as e:
                await handler(Received(error=e))
                reason = str(e)
                break
            except (ConnectionError, OSError) as e:
                reason = str(e)
                break

            if packet is None:
                break
            await handler(Received(packet=packet))

        self.close()
        await handler(Disconnected(reason=reason))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with contextlib.suppress(Exception):
            self._writer.close()


async def connect(
    path: str,
    *,
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
) -> Channel:
    """Connect to the editor's socket at ``path``.

    Raises:
        ConnectError: If the endpoint cannot be opened.
    """
    open_unix = getattr(asyncio, "open_unix_connection", None)
    if open_unix is None:
        raise ConnectError("Unix domain sockets are not supported on this platform")

    try:
        reader, writer = await open_unix(path)
    except OSError as e:
        raise ConnectError(f"Cannot connect to {path}: {e}") from e

    log.debug("Connected to %s", path)
    return Channel(reader, writer, max_message_size=max_message_size)
