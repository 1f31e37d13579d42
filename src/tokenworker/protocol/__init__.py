"""Wire protocol: message models and the tagged codec."""

from tokenworker.protocol.codec import (
    PACKET_ID,
    PACKET_KIND,
    PROTOCOL_VERSION,
    Packet,
    decode_client_message,
    decode_server_message,
    encode_message,
    message_packet,
)
from tokenworker.protocol.messages import (
    CLIENT_MESSAGES,
    BufferEnter,
    BufferUpdate,
    ClientMessage,
    Close,
    Closing,
    ConfigurationChanged,
    Echo,
    EchoReply,
    HealthCheckPass,
    Initialize,
    Initialized,
    Log,
    RunHealthCheck,
    ServerMessage,
    SimulateMessageException,
    ThemeChanged,
    TokenUpdate,
    UnknownMessage,
    VisibleRangesChanged,
)

__all__ = [
    # Codec
    "PACKET_ID",
    "PACKET_KIND",
    "PROTOCOL_VERSION",
    "Packet",
    "decode_client_message",
    "decode_server_message",
    "encode_message",
    "message_packet",
    # Client messages
    "CLIENT_MESSAGES",
    "ClientMessage",
    "Echo",
    "Initialize",
    "RunHealthCheck",
    "BufferEnter",
    "ConfigurationChanged",
    "ThemeChanged",
    "BufferUpdate",
    "VisibleRangesChanged",
    "Close",
    "SimulateMessageException",
    "UnknownMessage",
    # Server messages
    "ServerMessage",
    "EchoReply",
    "Initialized",
    "HealthCheckPass",
    "TokenUpdate",
    "Closing",
    "Log",
]
