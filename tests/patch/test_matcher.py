from voedit.patch.matcher import (
    TokenRange,
    contains,
    exact_token_eq,
    gap_token_eq,
    find_match,
    loose_token_eq,
)
from voedit.patch.tokens import Token, TokenSequence


def _seq(text: str) -> TokenSequence:
    return TokenSequence.from_text(text)


def test_loose_eq_treats_any_gaps_as_equal():
    assert loose_token_eq(Token("  ", 0, 2), Token("\t", 0, 1))
    assert loose_token_eq(Token("\n", 0, 1), Token(" ", 0, 1))
    assert not loose_token_eq(Token(" ", 0, 1), Token("x", 0, 1))
    assert loose_token_eq(Token("Foo", 0, 3), Token("fOO", 0, 3))
    assert not loose_token_eq(Token("foo", 0, 3), Token("bar", 0, 3))


def test_find_returns_first_match():
    hay = _seq("x = 1\nx = 1\n")
    rng = find_match(hay, _seq("x = 1"))
    assert rng == TokenRange(0, 5)
    assert "".join(t.content for t in hay.tokens[rng.start : rng.end]) == "x = 1"


def test_find_tolerates_indentation_drift():
    hay = _seq("def f():\n        if a:\n            b()\n")
    rng = find_match(hay, _seq("if a:\n    b()"))
    assert rng is not None
    matched = "".join(t.content for t in hay.tokens[rng.start : rng.end])
    assert matched == "if a:\n            b()"


def test_find_tolerates_tabs_versus_spaces_and_case():
    hay = _seq("CALL(a,\tb)")
    assert find_match(hay, _seq("call(a,    B)")) is not None


def test_find_with_exact_eq_requires_same_whitespace():
    hay = _seq("a  b")
    assert find_match(hay, _seq("a b"), exact_token_eq) is None
    assert find_match(hay, _seq("a  b"), exact_token_eq) is not None


def test_gap_cannot_match_content():
    assert find_match(_seq("ab"), _seq("a b")) is None
    assert find_match(_seq("a b"), _seq("ab")) is None


def test_empty_and_blank_needles_never_match():
    hay = _seq("anything\n")
    assert find_match(hay, _seq("")) is None
    assert find_match(hay, _seq("  \n ")) is None


def test_needle_leading_whitespace_is_ignored():
    hay = _seq("a\n    foo()  \nb")
    rng = find_match(hay, _seq("\n    foo()  "))
    assert rng is not None
    assert hay.tokens[rng.start].content == "foo"
    assert hay.tokens[rng.end - 1].content == ")"


def test_needle_trailing_line_break_is_matched():
    hay = _seq("a\n    foo()  \nb")
    rng = find_match(hay, _seq("foo()\n"))
    assert rng is not None
    matched = "".join(t.content for t in hay.tokens[rng.start : rng.end])
    assert matched == "foo()  \n"


def test_needle_trailing_line_break_needs_one_in_haystack():
    assert find_match(_seq("x foo()"), _seq("foo()\n")) is None
    assert find_match(_seq("foo() bar\nfoo()\n"), _seq("foo()\n")) == TokenRange(6, 10)


def test_needle_longer_than_haystack():
    assert find_match(_seq("a"), _seq("a b c")) is None


def test_contains_helper():
    hay = _seq("return value;\n")
    assert contains(hay, "RETURN   value;")
    assert not contains(hay, "return other;")


def test_gap_eq_is_case_sensitive():
    hay = _seq("Value =  1")
    assert find_match(hay, _seq("Value = 1"), gap_token_eq) is not None
    assert find_match(hay, _seq("value = 1"), gap_token_eq) is None
    assert find_match(hay, _seq("value = 1")) is not None
