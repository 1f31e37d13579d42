"""Session state and its transitions.

``SessionState`` is a plain container with no I/O. The dispatcher mutates it
when messages arrive and the scheduler mutates it on each work quantum and
flush. Exactly one instance exists per process and it is only ever touched
from the event loop thread.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any

from tokenworker.buffers import Buffer
from tokenworker.logging import get_logger
from tokenworker.protocol.types import (
    BufferChange,
    BufferVisibleRanges,
    LanguageInfo,
    LineRange,
    LineTokens,
    Theme,
)
from tokenworker.tokenizer import Tokenizer

log = get_logger("state")


@dataclass(frozen=True, slots=True)
class TokenizeRange:
    """Deferred work: tokenize lines ``[start, end)`` of a buffer."""

    buffer_id: int
    start: int
    end: int

    def covers(self, other: TokenizeRange) -> bool:
        return (
            self.buffer_id == other.buffer_id
            and self.start <= other.start
            and other.end <= self.end
        )


WorkItem = TokenizeRange


@dataclass
class SessionState:
    """All mutable state of a worker session."""

    pending_work: deque[WorkItem] = field(default_factory=deque)
    token_updates: dict[int, list[LineTokens]] = field(default_factory=dict)
    buffers: dict[int, Buffer] = field(default_factory=dict)
    configuration: dict[str, Any] = field(default_factory=dict)
    theme: Theme = field(default_factory=Theme)
    language_info: LanguageInfo = field(default_factory=LanguageInfo)
    setup: dict[str, Any] = field(default_factory=dict)
    visible_ranges: dict[int, list[LineRange]] = field(default_factory=dict)

    @property
    def has_pending_work(self) -> bool:
        return bool(self.pending_work)

    # -------------------------------------------------------------------------
    # Queue helpers
    # -------------------------------------------------------------------------

    def enqueue(self, buffer_id: int, start: int, end: int) -> None:
        """Queue a line range, dropping queued ranges it supersedes."""
        if end <= start:
            return
        item = TokenizeRange(buffer_id, start, end)
        self.pending_work = deque(w for w in self.pending_work if not item.covers(w))
        self.pending_work.append(item)

    def enqueue_buffer(self, buffer_id: int) -> None:
        buffer = self.buffers.get(buffer_id)
        if buffer is not None:
            self.enqueue(buffer_id, 0, buffer.line_count)

    def enqueue_all(self) -> None:
        for buffer_id in self.buffers:
            self.enqueue_buffer(buffer_id)

    # -------------------------------------------------------------------------
    # Message transitions
    # -------------------------------------------------------------------------

    def initialize(self, language_info: LanguageInfo, setup: dict[str, Any]) -> None:
        self.language_info = language_info
        self.setup = dict(setup)
        self.enqueue_all()

    def buffer_enter(self, buffer_id: int, filetype: str) -> None:
        buffer = self.buffers.get(buffer_id)
        if buffer is None:
            self.buffers[buffer_id] = Buffer(id=buffer_id, filetype=filetype)
            return
        if buffer.filetype != filetype:
            buffer.filetype = filetype
            self.enqueue_buffer(buffer_id)

    def configuration_changed(self, configuration: dict[str, Any]) -> None:
        self.configuration = dict(configuration)
        self.enqueue_all()

    def theme_changed(self, theme: Theme) -> None:
        self.theme = theme
        self.enqueue_all()

    def buffer_update(self, change: BufferChange, lines: list[str], scope: str) -> None:
        """Apply an edit and queue tokenization from the first changed line."""
        buffer = self.buffers.get(change.id)
        if buffer is None:
            buffer = self.buffers[change.id] = Buffer(id=change.id)

        first = buffer.apply(change, lines, scope)
        if first is None:
            log.debug(
                "Ignoring stale update for buffer %d (version %d < %d)",
                change.id, change.version, buffer.version,
            )
            return
        self.enqueue(change.id, first, buffer.line_count)

    def visible_ranges_changed(self, ranges: list[BufferVisibleRanges]) -> None:
        self.visible_ranges = {r.buffer_id: list(r.ranges) for r in ranges}

    # -------------------------------------------------------------------------
    # Scheduler transitions
    # -------------------------------------------------------------------------

    def _next_index(self) -> int:
        """Index of the first queued item touching a visible range, else 0."""
        for i, item in enumerate(self.pending_work):
            for r in self.visible_ranges.get(item.buffer_id, ()):
                if r.overlaps(item.start, item.end):
                    return i
        return 0

    def do_work(self, tokenizer: Tokenizer, max_lines: int) -> None:
        """Perform one work quantum.

        Takes the next item, tokenizes at most ``max_lines`` of its lines
        (starting at the visible part when there is one) and pushes what is
        left back onto the front of the queue.
        """
        if not self.pending_work:
            return

        index = self._next_index()
        item = self.pending_work[index]
        del self.pending_work[index]

        buffer = self.buffers.get(item.buffer_id)
        if buffer is None:
            return
        end = min(item.end, buffer.line_count)
        if item.start >= end:
            return

        start = item.start
        for r in self.visible_ranges.get(item.buffer_id, ()):
            if r.overlaps(item.start, end):
                start = max(item.start, r.start)
                break

        stop = min(end, start + max(1, max_lines))

        if item.start < start:
            self.pending_work.appendleft(TokenizeRange(item.buffer_id, item.start, start))
        if stop < end:
            self.pending_work.appendleft(TokenizeRange(item.buffer_id, stop, end))

        scope = buffer.resolve_scope(self.language_info)
        results = self.token_updates.setdefault(item.buffer_id, [])
        for line in range(start, stop):
            tokens = tokenizer.tokenize_line(
                scope,
                buffer.lines[line],
                theme=self.theme,
                configuration=self.configuration,
            )
            results.append(LineTokens(line=line, version=buffer.version, tokens=tokens))

    def flush(self) -> dict[int, list[LineTokens]]:
        """Return accumulated token updates and clear them."""
        updates, self.token_updates = self.token_updates, {}
        return updates
