from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

# Newline sequences, horizontal whitespace runs, and single structural characters.
SEPARATOR_RE = re.compile(r"(\r\n|\r|\n)|[\t ]+|[(){}\[\];,.:=<>/\\^$\"']")


@dataclass(frozen=True)
class Token:
    content: str
    # Half-open character range in the text the token was cut from
    start: int
    end: int

    @property
    def is_whitespace(self) -> bool:
        return self.content.strip() == ""

    @property
    def is_line_break(self) -> bool:
        return self.content in ("\n", "\r", "\r\n")


def tokenize(text: str) -> List[Token]:
    """
    Split text into alternating content and separator tokens.

    "".join(t.content for t in tokenize(s)) == s holds for every s.
    """
    tokens: List[Token] = []
    pos = 0
    for m in SEPARATOR_RE.finditer(text):
        if m.start() > pos:
            tokens.append(Token(text[pos : m.start()], pos, m.start()))
        tokens.append(Token(m.group(0), m.start(), m.end()))
        pos = m.end()
    if pos < len(text):
        tokens.append(Token(text[pos:], pos, len(text)))
    return tokens


class TokenSequence:
    """Immutable token list for one document snapshot."""

    __slots__ = ("_tokens", "_text")

    def __init__(self, tokens: Iterable[Token]) -> None:
        self._tokens: Tuple[Token, ...] = tuple(tokens)
        self._text = "".join(t.content for t in self._tokens)

    @classmethod
    def from_text(cls, text: str) -> "TokenSequence":
        return cls(tokenize(text))

    @property
    def tokens(self) -> Tuple[Token, ...]:
        return self._tokens

    @property
    def text(self) -> str:
        return self._text

    def __len__(self) -> int:
        return len(self._tokens)

    def __getitem__(self, idx: int) -> Token:
        return self._tokens[idx]

    def __iter__(self):
        return iter(self._tokens)

    def __repr__(self) -> str:
        return f"TokenSequence({self._text!r})"

    def trimmed(self) -> "TokenSequence":
        """Drop leading and trailing whitespace tokens."""
        toks = self._tokens
        lo, hi = 0, len(toks)
        while lo < hi and toks[lo].is_whitespace:
            lo += 1
        while hi > lo and toks[hi - 1].is_whitespace:
            hi -= 1
        if lo == 0 and hi == len(toks):
            return self
        return TokenSequence(_reoffset(toks[lo:hi]))

    def offset_of(self, idx: int) -> int:
        """Character offset of token idx; len(text) for idx == len(self)."""
        if idx >= len(self._tokens):
            return len(self._text)
        return self._tokens[idx].start

    def replace(self, start: int, end: int, other: "TokenSequence") -> "TokenSequence":
        """Return a new sequence with tokens [start, end) swapped for other's tokens."""
        if not 0 <= start <= end <= len(self._tokens):
            raise IndexError(f"token range [{start}, {end}) out of bounds")
        spliced = [*self._tokens[:start], *other.tokens, *self._tokens[end:]]
        return TokenSequence(_reoffset(spliced))


def _reoffset(tokens: Sequence[Token]) -> List[Token]:
    out: List[Token] = []
    pos = 0
    for t in tokens:
        end = pos + len(t.content)
        out.append(t if (t.start == pos and t.end == end) else Token(t.content, pos, end))
        pos = end
    return out
