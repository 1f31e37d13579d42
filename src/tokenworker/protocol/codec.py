"""Tagged message encoding and packet envelopes.

Packet body format:
    {"type": "<tag>", "version": <int>, "payload": {...}}

Packet envelope (what the transport frames):
    {"kind": "message", "id": 0, "body": <packet body>}

Outbound traffic always uses the same kind and id; there is no request
correlation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from tokenworker.errors import DecodeError
from tokenworker.protocol.messages import (
    CLIENT_MESSAGES,
    SERVER_MESSAGES,
    ClientMessage,
    Message,
    ServerMessage,
    UnknownMessage,
)

PROTOCOL_VERSION = 1
PACKET_KIND = "message"
PACKET_ID = 0


@dataclass(slots=True)
class Packet:
    """A framed unit of transport."""

    kind: str = PACKET_KIND
    id: int = PACKET_ID
    body: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "id": self.id, "body": self.body}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Packet:
        """Parse an envelope, raising DecodeError on a malformed one."""
        body = data.get("body")
        if not isinstance(body, dict):
            raise DecodeError("Packet body must be an object")
        packet_id = data.get("id", PACKET_ID)
        if not isinstance(packet_id, int) or isinstance(packet_id, bool):
            raise DecodeError(f"Packet id must be an integer, got {packet_id!r}")
        return cls(kind=str(data.get("kind", PACKET_KIND)), id=packet_id, body=body)


def _split_body(body: Any) -> tuple[str, dict[str, Any]]:
    if not isinstance(body, dict):
        raise DecodeError(f"Message body must be an object, got {type(body).__name__}")

    tag = body.get("type")
    if not isinstance(tag, str) or not tag:
        raise DecodeError("Message body is missing a string 'type'")

    version = body.get("version", PROTOCOL_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version < 1:
        raise DecodeError(f"Invalid protocol version for {tag!r}: {version!r}")

    payload = body.get("payload", {})
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise DecodeError(f"Payload of {tag!r} must be an object")

    return tag, payload


def decode_client_message(body: Any) -> ClientMessage:
    """Decode a packet body into a client message.

    Newer protocol versions are accepted as long as the payload still
    validates; unknown fields are ignored.

    Raises:
        DecodeError: If the body is malformed or the payload does not validate.
    """
    tag, payload = _split_body(body)

    model = CLIENT_MESSAGES.get(tag)
    if model is None:
        return UnknownMessage(tag=tag, payload=payload)

    try:
        return model.model_validate(payload)  # type: ignore[return-value]
    except ValidationError as e:
        raise DecodeError(f"Invalid {tag!r} payload: {e}") from e


def decode_server_message(body: Any) -> ServerMessage:
    """Decode a server message body. Used by clients and tests."""
    tag, payload = _split_body(body)

    model = SERVER_MESSAGES.get(tag)
    if model is None:
        raise DecodeError(f"Unknown server message type {tag!r}")

    try:
        return model.model_validate(payload)  # type: ignore[return-value]
    except ValidationError as e:
        raise DecodeError(f"Invalid {tag!r} payload: {e}") from e


def encode_message(message: Message) -> dict[str, Any]:
    """Encode a message into its tagged body."""
    return {
        "type": message.TAG,
        "version": PROTOCOL_VERSION,
        "payload": message.model_dump(mode="json", by_alias=True),
    }


def message_packet(message: Message) -> Packet:
    """Wrap a message in the fixed outbound packet envelope."""
    return Packet(body=encode_message(message))
