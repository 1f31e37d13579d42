"""Transport layer: packet framing and the editor channel."""

from tokenworker.transport.channel import (
    Channel,
    ChannelEvent,
    Connected,
    Disconnected,
    EventHandler,
    Received,
    connect,
)
from tokenworker.transport.framing import (
    frame_packet,
    parse_header,
    read_packet,
    write_packet,
)

__all__ = [
    "Channel",
    "ChannelEvent",
    "Connected",
    "Disconnected",
    "EventHandler",
    "Received",
    "connect",
    "frame_packet",
    "parse_header",
    "read_packet",
    "write_packet",
]
