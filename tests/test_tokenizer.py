"""Tests for the regex line tokenizer."""

from __future__ import annotations

from tokenworker.protocol.types import Theme
from tokenworker.tokenizer import MAX_LINE_LENGTH_KEY, Grammar, RegexTokenizer


def _scopes(tokens) -> list[tuple[str, int, int]]:
    return [(t.scope, t.start, t.end) for t in tokens]


class TestRegexTokenizer:
    """Tests for RegexTokenizer.tokenize_line."""

    def setup_method(self) -> None:
        self.tokenizer = RegexTokenizer()
        self.theme = Theme()

    def tokenize(self, scope: str, text: str, **config):
        return self.tokenizer.tokenize_line(scope, text, theme=self.theme, configuration=config)

    def test_plain_text_is_one_token(self) -> None:
        """Scopes without a grammar produce one whole-line token."""
        tokens = self.tokenize("text.plain", "line1")
        assert _scopes(tokens) == [("text.plain", 0, 5)]

    def test_empty_line_has_no_tokens(self) -> None:
        """Empty lines produce no tokens."""
        assert self.tokenize("source.python", "") == []
        assert self.tokenize("text.plain", "") == []

    def test_python_keywords_and_names(self) -> None:
        """Python keywords, function names and numbers are scoped."""
        tokens = self.tokenize("source.python", "def add(x): return x + 1")
        scopes = {(t.scope, t.start, t.end) for t in tokens}

        assert ("keyword.control.python", 0, 3) in scopes
        assert ("entity.name.function.python", 4, 7) in scopes
        assert ("keyword.control.python", 12, 18) in scopes
        assert ("constant.numeric.python", 23, 24) in scopes

    def test_strings_protect_their_contents(self) -> None:
        """Keywords inside strings are not tokenized separately."""
        tokens = self.tokenize("source.python", 'x = "if else"')

        assert [t.scope for t in tokens] == ["string.quoted.double.python"]
        assert (tokens[0].start, tokens[0].end) == (4, 13)

    def test_comment_wins_over_keywords(self) -> None:
        """Comments claim the rest of the line."""
        tokens = self.tokenize("source.python", "pass  # return")

        assert [t.scope for t in tokens] == [
            "keyword.control.python",
            "comment.line.number-sign.python",
        ]

    def test_tokens_are_sorted_by_column(self) -> None:
        """Tokens come back in column order."""
        tokens = self.tokenize("source.js", "const x = 'a'; // done")
        starts = [t.start for t in tokens]
        assert starts == sorted(starts)

    def test_theme_colors_resolve_by_prefix(self) -> None:
        """Foreground colours come from the most specific theme scope."""
        self.theme = Theme(colors={"keyword": "#ff0000", "keyword.control.python": "#00ff00"})

        tokens = self.tokenize("source.python", "return 1")

        assert tokens[0].foreground == "#00ff00"
        assert tokens[1].foreground is None

    def test_max_line_length_truncates(self) -> None:
        """Only the configured prefix of long lines is tokenized."""
        tokens = self.tokenize("text.plain", "abcdefgh", **{MAX_LINE_LENGTH_KEY: 3})
        assert _scopes(tokens) == [("text.plain", 0, 3)]

    def test_register_custom_grammar(self) -> None:
        """Custom grammars can be registered."""
        self.tokenizer.register(Grammar.from_patterns("source.ini", [(r"^\[.*\]$", "section")]))

        assert self.tokenizer.has_grammar("source.ini")
        assert _scopes(self.tokenize("source.ini", "[core]")) == [("section", 0, 6)]
