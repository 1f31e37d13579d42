"""Line tokenizer used for each unit of scheduled work.

Grammars are ordered lists of regex rules. Rules are applied in order and a
match is kept only when it does not overlap a span claimed by an earlier rule,
so strings and comments protect their contents from keyword matching. A rule
with a capture group scopes only the group.

Tokenization is per line and stateless: any range of lines can be tokenized
independently, which lets the scheduler split work freely.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Protocol

from tokenworker.protocol.types import PLAIN_TEXT_SCOPE, Theme, Token

# Lines longer than this (in characters) are only tokenized up to the limit.
MAX_LINE_LENGTH_KEY = "syntax.maxLineLength"
DEFAULT_MAX_LINE_LENGTH = 10_000


@dataclass(slots=True)
class Rule:
    """A single grammar rule."""

    pattern: re.Pattern[str]
    scope: str


@dataclass
class Grammar:
    """An ordered set of rules for one grammar scope."""

    scope: str
    rules: list[Rule] = field(default_factory=list)

    @classmethod
    def from_patterns(cls, scope: str, patterns: list[tuple[str, str]]) -> Grammar:
        return cls(scope, [Rule(re.compile(p), s) for p, s in patterns])


def _words(words: list[str]) -> str:
    return r"\b(?:" + "|".join(map(re.escape, words)) + r")\b"


_NUMBER = (
    r"\b(?:0b[01_]+|0o[0-7_]+|0x[0-9A-Fa-f_]+|\d[\d_]*(?:\.\d[\d_]*)?(?:[eE][+-]?\d+)?)(?:[jJ])?\b"
)

PYTHON_GRAMMAR = Grammar.from_patterns(
    "source.python",
    [
        (r"#.*$", "comment.line.number-sign.python"),
        (r"[rRbBuUfF]{0,2}\"(?:[^\"\\]|\\.)*\"", "string.quoted.double.python"),
        (r"[rRbBuUfF]{0,2}'(?:[^'\\]|\\.)*'", "string.quoted.single.python"),
        (r"^\s*@([A-Za-z_][\w.]*)", "entity.name.function.decorator.python"),
        (r"\bclass\s+([A-Za-z_]\w*)", "entity.name.type.class.python"),
        (r"\bdef\s+([A-Za-z_]\w*)", "entity.name.function.python"),
        (
            _words(
                [
                    "False", "None", "True", "and", "as", "assert", "async", "await",
                    "break", "class", "continue", "def", "del", "elif", "else", "except",
                    "finally", "for", "from", "global", "if", "import", "in", "is",
                    "lambda", "nonlocal", "not", "or", "pass", "raise", "return", "try",
                    "while", "with", "yield",
                ]
            ),
            "keyword.control.python",
        ),
        (
            _words(["print", "len", "range", "dict", "list", "set", "str", "int", "isinstance"]),
            "support.function.builtin.python",
        ),
        (r"\b__\w+__\b", "support.variable.magic.python"),
        (_NUMBER, "constant.numeric.python"),
    ],
)

JAVASCRIPT_GRAMMAR = Grammar.from_patterns(
    "source.js",
    [
        (r"//.*$", "comment.line.double-slash.js"),
        (r"\"(?:[^\"\\]|\\.)*\"", "string.quoted.double.js"),
        (r"'(?:[^'\\]|\\.)*'", "string.quoted.single.js"),
        (r"`(?:[^`\\]|\\.)*`", "string.template.js"),
        (r"\bclass\s+([A-Za-z_$][\w$]*)", "entity.name.type.class.js"),
        (r"\bfunction\s+([A-Za-z_$][\w$]*)", "entity.name.function.js"),
        (
            _words(
                [
                    "break", "case", "catch", "class", "const", "continue", "default",
                    "delete", "do", "else", "export", "extends", "finally", "for",
                    "function", "if", "import", "in", "instanceof", "let", "new",
                    "return", "switch", "this", "throw", "try", "typeof", "var",
                    "void", "while", "yield", "async", "await",
                ]
            ),
            "keyword.control.js",
        ),
        (_words(["true", "false", "null", "undefined"]), "constant.language.js"),
        (_NUMBER, "constant.numeric.js"),
    ],
)

DEFAULT_GRAMMARS: dict[str, Grammar] = {
    g.scope: g for g in (PYTHON_GRAMMAR, JAVASCRIPT_GRAMMAR)
}


class Tokenizer(Protocol):
    """Computes the tokens of one line."""

    def tokenize_line(
        self,
        scope: str,
        text: str,
        *,
        theme: Theme,
        configuration: dict[str, Any],
    ) -> list[Token]: ...


class RegexTokenizer:
    """Default tokenizer backed by a registry of regex grammars.

    Scopes without a grammar (including ``text.plain``) produce one token
    spanning the whole non-empty line.
    """

    def __init__(self, grammars: dict[str, Grammar] | None = None) -> None:
        self._grammars = dict(DEFAULT_GRAMMARS if grammars is None else grammars)

    def register(self, grammar: Grammar) -> None:
        self._grammars[grammar.scope] = grammar

    def has_grammar(self, scope: str) -> bool:
        return scope in self._grammars

    def tokenize_line(
        self,
        scope: str,
        text: str,
        *,
        theme: Theme,
        configuration: dict[str, Any],
    ) -> list[Token]:
        limit = configuration.get(MAX_LINE_LENGTH_KEY, DEFAULT_MAX_LINE_LENGTH)
        if isinstance(limit, int) and not isinstance(limit, bool) and limit >= 0:
            text = text[:limit]

        if not text:
            return []

        grammar = self._grammars.get(scope)
        if grammar is None:
            name = scope or PLAIN_TEXT_SCOPE
            return [Token(start=0, end=len(text), scope=name, foreground=theme.color_for(name))]

        claimed: list[tuple[int, int, str]] = []
        for rule in grammar.rules:
            for m in rule.pattern.finditer(text):
                s, e = m.span(1) if m.re.groups else m.span()
                if s == e or _overlaps(claimed, s, e):
                    continue
                claimed.append((s, e, rule.scope))

        claimed.sort()
        return [
            Token(start=s, end=e, scope=name, foreground=theme.color_for(name))
            for s, e, name in claimed
        ]


def _overlaps(spans: list[tuple[int, int, str]], start: int, end: int) -> bool:
    return any(start < e and s < end for s, e, _ in spans)
