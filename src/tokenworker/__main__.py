"""Entry point for running the worker.

Usage:
    TOKENWORKER_PARENT_PID=1234 TOKENWORKER_PIPE=/tmp/editor.sock python -m tokenworker

The editor launches the worker with its own pid and the path of the socket
it listens on. The worker connects back, serves until told to close, and exits
on its own once the editor process is gone.
"""

import asyncio
import os
from collections.abc import Mapping

from tokenworker.errors import EXIT_FATAL, EXIT_SUCCESS
from tokenworker.logging import get_logger, setup_logging

log = get_logger()

PARENT_PID_ENV = "TOKENWORKER_PARENT_PID"
PIPE_ENV = "TOKENWORKER_PIPE"


def read_environment(environ: Mapping[str, str] = os.environ) -> tuple[int, str]:
    """Read the parent pid and channel path.

    Raises:
        ValueError: If either value is missing or the pid is not an integer.
    """
    raw_pid = environ.get(PARENT_PID_ENV, "").strip()
    pipe = environ.get(PIPE_ENV, "").strip()

    if not raw_pid:
        raise ValueError(f"{PARENT_PID_ENV} is not set")
    if not pipe:
        raise ValueError(f"{PIPE_ENV} is not set")

    try:
        parent_pid = int(raw_pid)
    except ValueError as e:
        raise ValueError(f"{PARENT_PID_ENV} must be an integer, got {raw_pid!r}") from e

    return parent_pid, pipe


def main() -> None:
    """Run the worker."""
    from tokenworker.config import load_config
    from tokenworker.server import Server
    from tokenworker.supervisor import LivenessSupervisor, select_strategy

    # Load config before logging so we can use config.logging settings
    config = load_config()
    setup_logging(config.logging)

    try:
        parent_pid, pipe = read_environment()
    except ValueError as e:
        log.error("Cannot start: %s", e)
        os._exit(EXIT_FATAL)

    log.info(
        "Starting tokenworker (pid=%d, parent=%d, pipe=%s, tick=%.1fms)",
        os.getpid(), parent_pid, pipe, config.scheduler.interval_ms,
    )

    # Ensure we exit when the editor dies
    supervisor = LivenessSupervisor(parent_pid, select_strategy(config.supervisor))
    supervisor.start()

    code = EXIT_FATAL
    try:
        code = asyncio.run(Server(pipe, config=config).run())
    except KeyboardInterrupt:
        code = EXIT_SUCCESS
    finally:
        # Ensure process exits even if there are lingering resources
        log.info("Exiting (status=%d)", code)
        os._exit(code)


if __name__ == "__main__":
    main()
