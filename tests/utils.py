"""Shared test utilities for tokenworker tests."""

from __future__ import annotations

from tokenworker.protocol.codec import Packet, decode_server_message, encode_message
from tokenworker.protocol.messages import Message, ServerMessage, TokenUpdate


class RecordingChannel:
    """Stand-in for a connected Channel that records outbound packets."""

    def __init__(self) -> None:
        self.packets: list[Packet] = []
        self.drained = False
        self.closed = False

    def send(self, packet: Packet) -> None:
        self.packets.append(packet)

    async def drain(self, timeout: float) -> None:
        self.drained = True

    def close(self) -> None:
        self.closed = True

    @property
    def messages(self) -> list[ServerMessage]:
        """Decoded server messages in send order."""
        return [decode_server_message(p.body) for p in self.packets]

    def token_updates(self) -> list[TokenUpdate]:
        return [m for m in self.messages if isinstance(m, TokenUpdate)]

    def clear(self) -> None:
        self.packets.clear()


def packet_for(message: Message) -> Packet:
    """Wrap a client message the way the editor would."""
    return Packet(body=encode_message(message))


def raw_packet(tag: str, payload: dict | None = None, version: int = 1) -> Packet:
    """Build a packet from a raw tag, for messages the worker may not know."""
    return Packet(body={"type": tag, "version": version, "payload": payload or {}})
