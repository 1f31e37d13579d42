"""Tests for the worker entry point."""

from __future__ import annotations

import pytest

from tokenworker.__main__ import PARENT_PID_ENV, PIPE_ENV, read_environment


class TestReadEnvironment:
    """Tests for read_environment."""

    def test_reads_pid_and_pipe(self) -> None:
        environ = {PARENT_PID_ENV: "4242", PIPE_ENV: "/tmp/editor.sock"}
        assert read_environment(environ) == (4242, "/tmp/editor.sock")

    def test_strips_whitespace(self) -> None:
        environ = {PARENT_PID_ENV: " 17\n", PIPE_ENV: " /tmp/e.sock "}
        assert read_environment(environ) == (17, "/tmp/e.sock")

    def test_missing_pid(self) -> None:
        with pytest.raises(ValueError, match="TOKENWORKER_PARENT_PID is not set"):
            read_environment({PIPE_ENV: "/tmp/editor.sock"})

    def test_missing_pipe(self) -> None:
        with pytest.raises(ValueError, match="TOKENWORKER_PIPE is not set"):
            read_environment({PARENT_PID_ENV: "1"})

    def test_non_integer_pid(self) -> None:
        """A pid that is not a number is rejected."""
        with pytest.raises(ValueError, match="must be an integer"):
            read_environment({PARENT_PID_ENV: "editor", PIPE_ENV: "/tmp/editor.sock"})
