from __future__ import annotations

import re
from typing import List

_NEWLINE_RE = re.compile(r"\r\n|\r|\n")


def _leading_ws(line: str) -> str:
    return line[: len(line) - len(line.lstrip(" \t"))]


def _line_start(content: str, offset: int) -> int:
    i = min(offset, len(content)) - 1
    while i >= 0 and content[i] not in "\r\n":
        i -= 1
    return i + 1


def detect_indentation(content: str, offset: int) -> str:
    """Leading spaces/tabs of the line that contains offset."""
    if offset <= 0:
        start = 0
    else:
        start = _line_start(content, offset)
    return _leading_ws(_NEWLINE_RE.split(content[start:], maxsplit=1)[0])


def line_prefix(content: str, offset: int) -> str:
    """Text between the start of offset's line and offset itself."""
    if offset <= 0:
        return ""
    return content[_line_start(content, offset) : offset]


def detect_line_ending(content: str) -> str:
    return "\r\n" if "\r\n" in content else "\n"


def adjust_replacement_indentation(
    replacement: str,
    target: str,
    lead: str = "",
    eol: str = "\n",
) -> str:
    """
    Dedent replacement to its common indentation and re-indent it with target.

    Surrounding blank lines are dropped and inner blank lines emptied. A trailing
    line break is kept as a single eol. The first line continues after lead, the
    document text already in front of the match, so it only receives the part of
    target that lead does not cover.
    """
    tail = eol if replacement.rstrip(" \t").endswith(("\n", "\r")) else ""
    lines: List[str] = _NEWLINE_RE.split(replacement)
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        return tail

    min_indent = min(len(_leading_ws(line)) for line in lines if line.strip())
    out: List[str] = [
        target + line[min_indent:] if line.strip() else "" for line in lines
    ]

    if not lead.strip() and target.startswith(lead):
        first_indent = target[len(lead) :]
    else:
        first_indent = ""
    out[0] = first_indent + out[0][len(target) :]
    return eol.join(out) + tail
