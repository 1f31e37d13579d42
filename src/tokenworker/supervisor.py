"""Liveness supervisor: exit when the parent editor process dies.

This prevents orphan workers when the editor crashes or is killed, since the
transport is not guaranteed to report a disconnect in that case. The
supervisor runs on its own daemon thread and never touches session state or
the channel; its only effect is terminating the process.

Two strategies satisfy the same contract:
- ``WaitStrategy`` blocks on an OS-level wait for the parent (pidfd on Linux,
  a process handle on Windows).
- ``PollStrategy`` sleeps and probes the parent pid at a fixed interval.
"""

from __future__ import annotations

import os
import sys
import threading
import time
from collections.abc import Callable
from typing import Protocol

from tokenworker.config.schema import SupervisorConfig, SupervisorStrategy
from tokenworker.errors import EXIT_FATAL, EXIT_SUCCESS, ParentUnobservable
from tokenworker.logging import get_logger

log = get_logger("supervisor")

# Windows process access rights / wait constants
_SYNCHRONIZE = 0x00100000
_PROCESS_QUERY_LIMITED_INFORMATION = 0x1000
_INFINITE = 0xFFFFFFFF
_STILL_ACTIVE = 259


class LivenessStrategy(Protocol):
    """Blocks until the parent process is gone."""

    name: str

    def watch(self, parent_pid: int) -> None:
        """Return once the parent has exited.

        Raises:
            ParentUnobservable: If the parent cannot be watched at all.
        """
        ...


def _check_pid(parent_pid: int) -> None:
    if parent_pid <= 0:
        raise ParentUnobservable(f"Invalid parent pid: {parent_pid}")


def process_alive(pid: int) -> bool:
    """Zero-effect liveness probe for ``pid``."""
    if sys.platform == "win32":
        return _process_alive_win32(pid)
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but owned by another user
        return True
    except OSError:
        return False
    return True


def _process_alive_win32(pid: int) -> bool:
    import ctypes

    kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
    handle = kernel32.OpenProcess(_PROCESS_QUERY_LIMITED_INFORMATION, False, pid)
    if not handle:
        return False
    try:
        exit_code = ctypes.c_ulong()
        if not kernel32.GetExitCodeProcess(handle, ctypes.byref(exit_code)):
            return False
        return exit_code.value == _STILL_ACTIVE
    finally:
        kernel32.CloseHandle(handle)


class PollStrategy:
    """Probe the parent every ``interval`` seconds."""

    name = "poll"

    def __init__(
        self,
        interval: float = 2.0,
        *,
        probe: Callable[[int], bool] = process_alive,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.interval = interval
        self._probe = probe
        self._sleep = sleep

    def watch(self, parent_pid: int) -> None:
        _check_pid(parent_pid)
        while True:
            self._sleep(self.interval)
            if not self._probe(parent_pid):
                return


class WaitStrategy:
    """Block on an OS wait primitive until the parent exits."""

    name = "wait"

    def watch(self, parent_pid: int) -> None:
        _check_pid(parent_pid)
        if sys.platform == "win32":
            self._watch_win32(parent_pid)
        else:
            self._watch_pidfd(parent_pid)

    def _watch_pidfd(self, parent_pid: int) -> None:
        import select

        try:
            fd = os.pidfd_open(parent_pid)
        except (AttributeError, OSError) as e:
            raise ParentUnobservable(f"Cannot open parent process {parent_pid}: {e}") from e

        try:
            poller = select.poll()
            poller.register(fd, select.POLLIN)
            # Readable once the process has terminated
            while not poller.poll():
                pass
        finally:
            os.close(fd)

    def _watch_win32(self, parent_pid: int) -> None:
        import ctypes

        kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
        handle = kernel32.OpenProcess(_SYNCHRONIZE, False, parent_pid)
        if not handle:
            raise ParentUnobservable(f"Cannot open parent process {parent_pid}")
        try:
            result = kernel32.WaitForSingleObject(handle, _INFINITE)
            log.debug("Parent wait returned %d", result)
        finally:
            kernel32.CloseHandle(handle)


def wait_supported() -> bool:
    """Whether ``WaitStrategy`` can run on this platform and kernel."""
    if sys.platform == "win32":
        return True
    pidfd_open = getattr(os, "pidfd_open", None)
    if pidfd_open is None:
        return False
    try:
        os.close(pidfd_open(os.getpid()))
    except OSError:
        return False
    return True


def select_strategy(config: SupervisorConfig) -> LivenessStrategy:
    """Pick the supervisor strategy once at startup."""
    if config.strategy is SupervisorStrategy.POLL:
        return PollStrategy(config.poll_interval)
    if config.strategy is SupervisorStrategy.WAIT or wait_supported():
        return WaitStrategy()
    return PollStrategy(config.poll_interval)


class LivenessSupervisor:
    """Runs a strategy on a daemon thread and terminates the process after it.

    Example:
        supervisor = LivenessSupervisor(parent_pid, select_strategy(config.supervisor))
        supervisor.start()
    """

    def __init__(
        self,
        parent_pid: int,
        strategy: LivenessStrategy,
        *,
        terminate: Callable[[int], object] = os._exit,
    ) -> None:
        self.parent_pid = parent_pid
        self.strategy = strategy
        self._terminate = terminate
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name="liveness-supervisor", daemon=True
        )
        self._thread.start()
        log.debug(
            "Liveness supervisor started (parent=%d, strategy=%s)",
            self.parent_pid, self.strategy.name,
        )

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        try:
            self.strategy.watch(self.parent_pid)
        except ParentUnobservable as e:
            log.error("Cannot supervise parent: %s", e)
            code = EXIT_FATAL
        except Exception:
            log.exception("Liveness supervisor failed")
            code = EXIT_FATAL
        else:
            log.info("Parent process %d exited, terminating", self.parent_pid)
            code = EXIT_SUCCESS
        self._terminate(code)
