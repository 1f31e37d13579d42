"""Error taxonomy and process exit codes for the worker.

Every fatal category ends the process with ``EXIT_FATAL``; only a graceful
``close`` or a parent that went away ends it with ``EXIT_SUCCESS``.
"""

from __future__ import annotations

EXIT_SUCCESS = 0
EXIT_FATAL = 2


class TokenWorkerError(Exception):
    """Base class for worker errors."""

    pass


class ConnectError(TokenWorkerError):
    """The transport channel could not be established.

    Not fatal: the server keeps running with sends treated as no-ops.
    """

    pass


class DecodeError(TokenWorkerError):
    """An inbound packet could not be decoded into a client message."""

    pass


class FramingError(DecodeError):
    """Error in packet framing.

    Raised when:
    - Content-Length header is missing, not an integer, or negative
    - Header format is malformed
    - The body is not valid UTF-8 JSON
    - The stream ends in the middle of a packet
    """

    pass


class DeliberateFailure(TokenWorkerError):
    """Raised on request by the client to exercise the fatal path."""

    pass


class ParentUnobservable(TokenWorkerError):
    """The liveness supervisor cannot watch the given parent process."""

    pass
