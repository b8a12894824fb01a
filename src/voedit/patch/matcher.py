from __future__ import annotations

from typing import Callable, List, NamedTuple, Optional

from .tokens import Token, TokenSequence

TokenEq = Callable[[Token, Token], bool]


class TokenRange(NamedTuple):
    # Half-open token index range
    start: int
    end: int


class _Run(NamedTuple):
    token: Token
    first: int
    last: int


def loose_token_eq(a: Token, b: Token) -> bool:
    """Any two gaps are equal; content compares case-insensitively."""
    if a.is_whitespace and b.is_whitespace:
        return True
    if a.is_whitespace or b.is_whitespace:
        return False
    return a.content.casefold() == b.content.casefold()


def gap_token_eq(a: Token, b: Token) -> bool:
    """Any two gaps are equal; content must match exactly."""
    if a.is_whitespace and b.is_whitespace:
        return True
    return a.content == b.content


def exact_token_eq(a: Token, b: Token) -> bool:
    return a.content == b.content


def _runs(seq: TokenSequence) -> List[_Run]:
    # Consecutive whitespace tokens ("\n" then "    ") form one gap.
    runs: List[_Run] = []
    for idx, tok in enumerate(seq.tokens):
        if tok.is_whitespace and runs and runs[-1].token.is_whitespace:
            prev = runs[-1]
            merged = Token(prev.token.content + tok.content, prev.token.start, tok.end)
            runs[-1] = _Run(merged, prev.first, idx)
        else:
            runs.append(_Run(tok, idx, idx))
    return runs


def _ends_with_line_break(seq: TokenSequence) -> bool:
    for tok in reversed(seq.tokens):
        if not tok.is_whitespace:
            return False
        if tok.is_line_break:
            return True
    return False


def _through_line_break(haystack: TokenSequence, idx: int) -> Optional[int]:
    # End index just past the first line break in the gap starting at idx
    while idx < len(haystack) and haystack[idx].is_whitespace:
        if haystack[idx].is_line_break:
            return idx + 1
        idx += 1
    return None


def find_match(
    haystack: TokenSequence,
    needle: TokenSequence,
    eq: TokenEq = loose_token_eq,
) -> Optional[TokenRange]:
    """
    Return the first token range of haystack equivalent to needle.

    Leading whitespace of the needle is ignored, so the range always starts on a
    content token. Trailing whitespace is ignored too, unless it holds a line
    break: then the match must be followed by one and the range takes it in.
    An empty needle never matches.
    """
    to_eol = _ends_with_line_break(needle)
    needle = needle.trimmed()
    if len(needle) == 0:
        return None
    hay_runs = _runs(haystack)
    needle_runs = _runs(needle)
    n = len(needle_runs)
    for i in range(len(hay_runs) - n + 1):
        for j in range(n):
            if not eq(hay_runs[i + j].token, needle_runs[j].token):
                break
        else:
            end = hay_runs[i + n - 1].last + 1
            if to_eol:
                eol_end = _through_line_break(haystack, end)
                if eol_end is None:
                    continue
                end = eol_end
            return TokenRange(hay_runs[i].first, end)
    return None


def contains(haystack: TokenSequence, text: str, eq: TokenEq = loose_token_eq) -> bool:
    return find_match(haystack, TokenSequence.from_text(text), eq) is not None
