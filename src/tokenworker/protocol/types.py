"""Payload types shared by client and server messages."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

PLAIN_TEXT_SCOPE = "text.plain"


class WireModel(BaseModel):
    """Base model for wire types with populate_by_name enabled."""

    model_config = ConfigDict(populate_by_name=True)


class LineRange(WireModel):
    """Half-open range of line indices."""

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    def overlaps(self, start: int, end: int) -> bool:
        return self.start < end and start < self.end


class BufferVisibleRanges(WireModel):
    """Lines of one buffer currently visible in the editor."""

    buffer_id: int = Field(alias="bufferId")
    ranges: list[LineRange] = Field(default_factory=list)


class BufferChange(WireModel):
    """Describes an incremental edit of a buffer.

    ``start_line``/``end_line`` delimit the replaced region in the old
    content. A full update replaces the whole buffer.
    """

    id: int
    start_line: int = Field(default=0, ge=0, alias="startLine")
    end_line: int = Field(default=0, ge=0, alias="endLine")
    version: int = 0
    is_full: bool = Field(default=False, alias="isFull")


class LanguageInfo(WireModel):
    """Filetype to grammar scope mapping supplied by the editor."""

    scopes: dict[str, str] = Field(default_factory=dict)

    def scope_for(self, filetype: str) -> str:
        return self.scopes.get(filetype, PLAIN_TEXT_SCOPE)


class Theme(WireModel):
    """Token colours keyed by scope prefix.

    ``color_for("string.quoted.double")`` tries the full scope first, then
    ``string.quoted`` and ``string``.
    """

    colors: dict[str, str] = Field(default_factory=dict)

    def color_for(self, scope: str) -> str | None:
        parts = scope.split(".")
        while parts:
            color = self.colors.get(".".join(parts))
            if color is not None:
                return color
            parts.pop()
        return None


class Token(WireModel):
    """A scoped column range within one line."""

    start: int
    end: int
    scope: str
    foreground: str | None = None


class LineTokens(WireModel):
    """Tokens for one line of a buffer at a given version."""

    line: int
    version: int = 0
    tokens: list[Token] = Field(default_factory=list)


class BufferTokens(WireModel):
    """Accumulated token results for a single buffer."""

    buffer_id: int = Field(alias="bufferId")
    lines: list[LineTokens] = Field(default_factory=list)
