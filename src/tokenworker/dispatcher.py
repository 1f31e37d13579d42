"""Protocol dispatcher.

Maps each decoded client message to a state transition, immediate replies,
log entries and an outcome. Handlers never raise for protocol reasons: a
deliberate failure or an unexpected exception becomes a ``FATAL`` result and
the server loop performs the single "log then terminate" action.
"""

from __future__ import annotations

import traceback
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from tokenworker.errors import DecodeError, DeliberateFailure
from tokenworker.health import HEALTH_CHECK_SUCCESS, HealthCheck, run_health_check
from tokenworker.logging import get_logger
from tokenworker.protocol.codec import Packet, decode_client_message
from tokenworker.protocol.messages import (
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
    Message,
    RunHealthCheck,
    ServerMessage,
    SimulateMessageException,
    ThemeChanged,
    UnknownMessage,
    VisibleRangesChanged,
)
from tokenworker.state import SessionState

log = get_logger("dispatcher")


class Outcome(Enum):
    """What the server loop does after a message was handled."""

    CONTINUE = "continue"
    EXIT = "exit"  # Graceful close, success status
    FATAL = "fatal"  # Log and terminate with fatal status


@dataclass
class DispatchResult:
    """Everything a handled message produces.

    Attributes:
        replies: Messages to send back immediately, in order
        logs: Log lines to forward to the client
        kick: Whether the scheduler must be (re)armed
        outcome: Whether to keep running, exit, or fail
        error: Failure description for FATAL outcomes
    """

    replies: list[ServerMessage] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)
    kick: bool = False
    outcome: Outcome = Outcome.CONTINUE
    error: str | None = None

    @classmethod
    def fatal(cls, error: str) -> DispatchResult:
        return cls(outcome=Outcome.FATAL, error=error)


Handler = Callable[[SessionState, Message, HealthCheck], DispatchResult]


def _echo(state: SessionState, msg: Echo, health_check: HealthCheck) -> DispatchResult:
    return DispatchResult(replies=[EchoReply(message=msg.message)])


def _initialize(
    state: SessionState, msg: Initialize, health_check: HealthCheck
) -> DispatchResult:
    state.initialize(msg.language_info, msg.setup)
    return DispatchResult(replies=[Initialized()], kick=True)


def _health_check(
    state: SessionState, msg: RunHealthCheck, health_check: HealthCheck
) -> DispatchResult:
    code = health_check()
    return DispatchResult(replies=[HealthCheckPass(passed=code == HEALTH_CHECK_SUCCESS)])


def _buffer_enter(
    state: SessionState, msg: BufferEnter, health_check: HealthCheck
) -> DispatchResult:
    state.buffer_enter(msg.buffer_id, msg.filetype)
    return DispatchResult(kick=True)


def _configuration_changed(
    state: SessionState, msg: ConfigurationChanged, health_check: HealthCheck
) -> DispatchResult:
    state.configuration_changed(msg.configuration)
    return DispatchResult(kick=True)


def _theme_changed(
    state: SessionState, msg: ThemeChanged, health_check: HealthCheck
) -> DispatchResult:
    state.theme_changed(msg.theme)
    return DispatchResult(kick=True)


def _buffer_update(
    state: SessionState, msg: BufferUpdate, health_check: HealthCheck
) -> DispatchResult:
    state.buffer_update(msg.update, msg.lines, msg.scope)
    return DispatchResult(kick=True)


def _visible_ranges_changed(
    state: SessionState, msg: VisibleRangesChanged, health_check: HealthCheck
) -> DispatchResult:
    state.visible_ranges_changed(msg.ranges)
    return DispatchResult()


def _close(state: SessionState, msg: Close, health_check: HealthCheck) -> DispatchResult:
    return DispatchResult(replies=[Closing()], outcome=Outcome.EXIT)


def _simulate_exception(
    state: SessionState, msg: SimulateMessageException, health_check: HealthCheck
) -> DispatchResult:
    return DispatchResult.fatal(describe_error(DeliberateFailure("Simulated message exception")))


def _unknown(
    state: SessionState, msg: UnknownMessage, health_check: HealthCheck
) -> DispatchResult:
    return DispatchResult(logs=[f"Unhandled message: {msg.tag}"])


HANDLERS: dict[type[Message], Handler] = {
    Echo: _echo,
    Initialize: _initialize,
    RunHealthCheck: _health_check,
    BufferEnter: _buffer_enter,
    ConfigurationChanged: _configuration_changed,
    ThemeChanged: _theme_changed,
    BufferUpdate: _buffer_update,
    VisibleRangesChanged: _visible_ranges_changed,
    Close: _close,
    SimulateMessageException: _simulate_exception,
    UnknownMessage: _unknown,
}  # type: ignore[dict-item]


def dispatch(
    state: SessionState,
    message: ClientMessage,
    *,
    health_check: HealthCheck = run_health_check,
) -> DispatchResult:
    """Apply one client message to the session state.

    Any exception raised by a transition is converted into a FATAL result.
    """
    handler = HANDLERS.get(type(message), _unknown_type)
    try:
        return handler(state, message, health_check)
    except Exception as e:
        log.debug("Handler for %s failed", type(message).__name__, exc_info=True)
        return DispatchResult.fatal(describe_error(e))


def handle_packet(
    state: SessionState,
    packet: Packet,
    *,
    health_check: HealthCheck = run_health_check,
) -> DispatchResult:
    """Decode a packet body and dispatch it."""
    try:
        message = decode_client_message(packet.body)
    except DecodeError as e:
        return DispatchResult.fatal(describe_error(e))
    return dispatch(state, message, health_check=health_check)


def _unknown_type(state: SessionState, msg: Message, health_check: HealthCheck) -> DispatchResult:
    return DispatchResult(logs=[f"Unhandled message: {type(msg).__name__}"])


def describe_error(error: BaseException) -> str:
    """One-line description of an exception for the client log."""
    return "".join(traceback.format_exception_only(type(error), error)).strip()
