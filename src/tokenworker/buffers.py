"""Editor buffers tracked by the worker."""

from __future__ import annotations

from dataclasses import dataclass, field

from tokenworker.protocol.types import PLAIN_TEXT_SCOPE, BufferChange, LanguageInfo


@dataclass
class Buffer:
    """Registration metadata and latest content of one editor buffer.

    Attributes:
        id: Editor buffer id
        filetype: Filetype reported on buffer enter (may be empty)
        scope: Grammar scope from the last update, if any
        lines: Full content after the last applied update
        version: Version of the last applied update
    """

    id: int
    filetype: str = ""
    scope: str | None = None
    lines: list[str] = field(default_factory=list)
    version: int = -1

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def resolve_scope(self, language_info: LanguageInfo) -> str:
        """Grammar scope for this buffer.

        The scope sent with the latest update wins, then the editor's
        filetype mapping, then plain text.
        """
        if self.scope:
            return self.scope
        if self.filetype:
            return language_info.scope_for(self.filetype)
        return PLAIN_TEXT_SCOPE

    def apply(self, change: BufferChange, lines: list[str], scope: str) -> int | None:
        """Apply an edit.

        Updates older than the current version are ignored unless they are
        full updates.

        Returns:
            The first line whose tokens need recomputing, or None when the
            update was ignored.
        """
        if not change.is_full and change.version < self.version:
            return None

        # Nothing was tokenized yet, so the whole buffer is new
        had_content = self.version >= 0 and bool(self.lines)
        scope_changed = bool(scope) and scope != self.scope
        self.lines = list(lines)
        self.version = change.version
        if scope:
            self.scope = scope

        if change.is_full or scope_changed or not had_content:
            return 0
        return min(change.start_line, len(self.lines))
