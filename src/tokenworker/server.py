"""Worker server loop.

Composes the channel, dispatcher, session state and scheduler. All of them
live on the event loop thread; the context object is the single owner of the
session state and the channel reference.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from dataclasses import dataclass, field

from tokenworker.config import Config, get_config
from tokenworker.dispatcher import DispatchResult, Outcome, describe_error, handle_packet
from tokenworker.errors import EXIT_FATAL, EXIT_SUCCESS, ConnectError
from tokenworker.health import HealthCheck, run_health_check
from tokenworker.logging import get_logger
from tokenworker.protocol.codec import message_packet
from tokenworker.protocol.messages import Log, ServerMessage, TokenUpdate
from tokenworker.protocol.types import BufferTokens
from tokenworker.scheduler import WorkScheduler
from tokenworker.state import SessionState
from tokenworker.tokenizer import RegexTokenizer, Tokenizer
from tokenworker.transport.channel import (
    Channel,
    ChannelEvent,
    Connected,
    Disconnected,
    Received,
    connect,
)

log = get_logger("server")

ExitFunction = Callable[[int], object]


@dataclass
class WorkerContext:
    """Mutable context owned by the event loop."""

    config: Config
    tokenizer: Tokenizer
    state: SessionState = field(default_factory=SessionState)
    channel: Channel | None = None


class Server:
    """The running worker.

    Example:
        server = Server("/tmp/editor.sock", config=load_config())
        code = asyncio.run(server.run())
    """

    def __init__(
        self,
        pipe: str,
        *,
        config: Config | None = None,
        tokenizer: Tokenizer | None = None,
        health_check: HealthCheck = run_health_check,
        exit_fn: ExitFunction = os._exit,
    ) -> None:
        """Initialize the server.

        Args:
            pipe: Path of the editor's socket.
            config: Worker configuration. Defaults to the cached global config.
            tokenizer: Tokenizer used for work quanta.
            health_check: Function run on ``runHealthCheck``.
            exit_fn: Called with the exit code on termination.
        """
        config = config or get_config()
        self.pipe = pipe
        self.context = WorkerContext(config=config, tokenizer=tokenizer or RegexTokenizer())
        self.scheduler = WorkScheduler(self.step, interval=config.scheduler.interval)
        self.exit_code: int | None = None
        self._health_check = health_check
        self._exit_fn = exit_fn
        self._done: asyncio.Event | None = None
        self._pending_failure: asyncio.Task[None] | None = None

    @property
    def state(self) -> SessionState:
        return self.context.state

    @property
    def terminated(self) -> bool:
        return self.exit_code is not None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def run(self) -> int:
        """Connect and serve until terminated.

        Returns:
            The exit code passed to the exit function.
        """
        self._done = asyncio.Event()
        transport = self.context.config.transport

        try:
            channel = await connect(self.pipe, max_message_size=transport.max_message_size)
        except ConnectError as e:
            log.warning("%s; running without a channel", e)
        else:
            self.context.channel = channel
            await channel.listen(self.handle_event)

        if not self.terminated:
            await self._done.wait()
        return self.exit_code if self.exit_code is not None else EXIT_SUCCESS

    async def terminate(self, code: int) -> None:
        """Flush pending writes, stop, and exit with ``code``."""
        if self.terminated:
            return
        self.exit_code = code
        self.scheduler.stop()

        channel = self.context.channel
        if channel is not None:
            await channel.drain(self.context.config.transport.drain_timeout)
            channel.close()

        if self._done is not None:
            self._done.set()
        log.info("Terminating with status %d", code)
        self._exit_fn(code)

    async def fail(self, error: str) -> None:
        """Report a fatal error to the client and exit with the fatal status."""
        if self.terminated:
            return
        log.error("Fatal: %s", error)
        try:
            self.send(Log(message=f"fatal: {error}", level="error"))
        except Exception as e:
            log.warning("Could not report fatal error to the editor: %s", e)
        await self.terminate(EXIT_FATAL)

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    def send(self, message: ServerMessage) -> None:
        """Send a message if a channel is connected; otherwise do nothing."""
        channel = self.context.channel
        if channel is not None:
            channel.send(message_packet(message))

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    async def handle_event(self, event: ChannelEvent) -> None:
        """Handle one channel event. Events after termination are ignored."""
        if self.terminated:
            return

        if isinstance(event, Connected):
            log.info("Connected to editor at %s", self.pipe)
        elif isinstance(event, Disconnected):
            log.info("Editor disconnected%s", f": {event.reason}" if event.reason else "")
            self.scheduler.stop()
            self.context.channel = None
        elif isinstance(event, Received):
            if event.error is not None:
                result = DispatchResult.fatal(describe_error(event.error))
            elif event.packet is not None:
                result = handle_packet(
                    self.context.state, event.packet, health_check=self._health_check
                )
            else:
                return
            await self.apply(result)

    async def apply(self, result: DispatchResult) -> None:
        """Send replies and logs, kick the scheduler, act on the outcome."""
        try:
            for reply in result.replies:
                self.send(reply)

            for line in result.logs:
                log.info("%s", line)
                self.send(Log(message=line))
        except Exception as e:
            await self.fail(describe_error(e))
            return

        if result.kick:
            self.scheduler.kick()

        if result.outcome is Outcome.EXIT:
            await self.terminate(EXIT_SUCCESS)
        elif result.outcome is Outcome.FATAL:
            await self.fail(result.error or "unknown failure")

    # -------------------------------------------------------------------------
    # Scheduler step
    # -------------------------------------------------------------------------

    def step(self) -> bool:
        """One scheduler tick: at most one work quantum, then always a flush.

        Returns:
            True when work was pending at the start of the tick.
        """
        if self.terminated:
            return False

        state = self.context.state
        had_work = state.has_pending_work
        try:
            if had_work:
                state.do_work(
                    self.context.tokenizer,
                    self.context.config.scheduler.lines_per_quantum,
                )
            updates = state.flush()
        except Exception as e:
            self._pending_failure = asyncio.get_running_loop().create_task(
                self.fail(describe_error(e))
            )
            return False

        self.send(
            TokenUpdate(
                updates=[
                    BufferTokens(buffer_id=buffer_id, lines=lines)
                    for buffer_id, lines in updates.items()
                ]
            )
        )
        return had_work
