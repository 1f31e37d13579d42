"""Client and server message types.

Each message is a pydantic model with a ``TAG`` used as the discriminator on
the wire. ``CLIENT_MESSAGES`` maps tags to the models the worker accepts;
anything else decodes to ``UnknownMessage``.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import Field

from tokenworker.protocol.types import (
    BufferChange,
    BufferTokens,
    BufferVisibleRanges,
    LanguageInfo,
    Theme,
    WireModel,
)


class Message(WireModel):
    """Base class for tagged messages."""

    TAG: ClassVar[str] = ""


# === Client -> Server ===


class Echo(Message):
    """Ask the worker to reply with the same text."""

    TAG: ClassVar[str] = "echo"

    message: str


class Initialize(Message):
    """Initial handshake carrying language info and editor setup."""

    TAG: ClassVar[str] = "initialize"

    language_info: LanguageInfo = Field(default_factory=LanguageInfo, alias="languageInfo")
    setup: dict[str, Any] = Field(default_factory=dict)


class RunHealthCheck(Message):
    TAG: ClassVar[str] = "runHealthCheck"


class BufferEnter(Message):
    """A buffer was opened or focused in the editor."""

    TAG: ClassVar[str] = "bufferEnter"

    buffer_id: int = Field(alias="bufferId")
    filetype: str


class ConfigurationChanged(Message):
    TAG: ClassVar[str] = "configurationChanged"

    configuration: dict[str, Any] = Field(default_factory=dict)


class ThemeChanged(Message):
    TAG: ClassVar[str] = "themeChanged"

    theme: Theme = Field(default_factory=Theme)


class BufferUpdate(Message):
    """An edit to a buffer.

    ``lines`` is the full buffer content after the edit and ``scope`` the
    grammar scope the editor resolved for it.
    """

    TAG: ClassVar[str] = "bufferUpdate"

    update: BufferChange
    lines: list[str]
    scope: str


class VisibleRangesChanged(Message):
    TAG: ClassVar[str] = "visibleRangesChanged"

    ranges: list[BufferVisibleRanges] = Field(default_factory=list)


class Close(Message):
    TAG: ClassVar[str] = "close"


class SimulateMessageException(Message):
    """Ask the worker to fail on purpose."""

    TAG: ClassVar[str] = "simulateMessageException"


class UnknownMessage(Message):
    """A message whose tag this worker does not understand."""

    tag: str
    payload: dict[str, Any] = Field(default_factory=dict)


ClientMessage = (
    Echo
    | Initialize
    | RunHealthCheck
    | BufferEnter
    | ConfigurationChanged
    | ThemeChanged
    | BufferUpdate
    | VisibleRangesChanged
    | Close
    | SimulateMessageException
    | UnknownMessage
)

CLIENT_MESSAGES: dict[str, type[Message]] = {
    cls.TAG: cls
    for cls in (
        Echo,
        Initialize,
        RunHealthCheck,
        BufferEnter,
        ConfigurationChanged,
        ThemeChanged,
        BufferUpdate,
        VisibleRangesChanged,
        Close,
        SimulateMessageException,
    )
}


# === Server -> Client ===


class EchoReply(Message):
    TAG: ClassVar[str] = "echoReply"

    message: str


class Initialized(Message):
    TAG: ClassVar[str] = "initialized"


class HealthCheckPass(Message):
    TAG: ClassVar[str] = "healthCheckPass"

    passed: bool


class TokenUpdate(Message):
    """A flushed batch of token results, possibly empty."""

    TAG: ClassVar[str] = "tokenUpdate"

    updates: list[BufferTokens] = Field(default_factory=list)

    def buffer_ids(self) -> list[int]:
        return [u.buffer_id for u in self.updates]


class Closing(Message):
    TAG: ClassVar[str] = "closing"


class Log(Message):
    TAG: ClassVar[str] = "log"

    message: str
    level: str = "info"


ServerMessage = EchoReply | Initialized | HealthCheckPass | TokenUpdate | Closing | Log

SERVER_MESSAGES: dict[str, type[Message]] = {
    cls.TAG: cls for cls in (EchoReply, Initialized, HealthCheckPass, TokenUpdate, Closing, Log)
}
