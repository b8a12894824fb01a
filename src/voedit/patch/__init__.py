from __future__ import annotations

import pathlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, MutableMapping, Optional

from voedit.logger import logger
from voedit.settings import EngineSettings

from .engine import apply_batch, apply_edit, select_candidates  # noqa: F401
from .models import (  # noqa: F401
    ALREADY_APPLIED_REASON,
    ORIGINAL_NOT_FOUND_REASON,
    BatchResult,
    EditRequest,
    EditStatus,
    MatchCandidate,
    PatchApplyResult,
)
from .tokens import Token, TokenSequence, tokenize  # noqa: F401


class EditError(ValueError):
    """A document could not be read or written for editing."""


class DocumentOps(ABC):
    """
    Abstract source of truth for document text.
    Implementations must handle path safety and track the changes map.
    """

    @abstractmethod
    def open(self, rel: str) -> Optional[str]:
        """Current text of rel, or None when the document does not exist."""
        ...

    @abstractmethod
    def write(self, rel: str, content: str) -> None: ...

    @property
    @abstractmethod
    def changes_map(self) -> Dict[str, str]:
        """
        A map of relative document paths to change kind: 'created' | 'updated'.
        """
        ...


class FileSystemDocumentOps(DocumentOps):
    """
    File-backed implementation that keeps every path under base_path and
    records change kinds.
    """

    def __init__(self, base_path: pathlib.Path):
        self._base_path = pathlib.Path(base_path)
        self._changes: Dict[str, str] = {}

    def _resolve_safe_path(self, rel: str) -> pathlib.Path:
        if not rel:
            raise EditError("Empty file path")
        if rel.startswith("/") or rel.startswith("~"):
            raise EditError(f"Absolute paths are not allowed: {rel}")
        abs_path = (self._base_path / rel).resolve()
        base_resolved = self._base_path.resolve()
        if abs_path == base_resolved or base_resolved in abs_path.parents:
            return abs_path
        raise EditError(f"Path escapes project root: {rel}")

    def _record(self, rel: str, change: str) -> None:
        # A document created in this session stays 'created'
        if self._changes.get(rel) != "created":
            self._changes[rel] = change

    def open(self, rel: str) -> Optional[str]:
        path = self._resolve_safe_path(rel)
        if not path.exists():
            return None
        if not path.is_file():
            raise EditError(f"Not a regular file: {rel}")
        try:
            with path.open("rt", encoding="utf-8", newline="") as fh:
                return fh.read()
        except UnicodeDecodeError as e:
            raise EditError(f"Can not edit non-text file: {rel}") from e

    def write(self, rel: str, content: str) -> None:
        path = self._resolve_safe_path(rel)
        existed = path.exists()
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wt", encoding="utf-8", newline="") as fh:
            fh.write(content)
        self._record(rel, "updated" if existed else "created")

    @property
    def changes_map(self) -> Dict[str, str]:
        return self._changes


def _normalise_rel(rel: str) -> str:
    return pathlib.PurePosixPath(rel).as_posix()


class BufferedDocumentOps(DocumentOps):
    """
    Overlay of open editor buffers on top of another DocumentOps.
    A buffered document is read from and written to its buffer, never disk.
    Paths are compared in normalised form, so "./f.txt" finds the buffer "f.txt".
    """

    def __init__(self, fallback: DocumentOps, buffers: MutableMapping[str, str]):
        self._fallback = fallback
        self._buffers = buffers
        self._changes: Dict[str, str] = {}

    def _buffer_key(self, rel: str) -> Optional[str]:
        want = _normalise_rel(rel)
        for key in self._buffers:
            if _normalise_rel(key) == want:
                return key
        return None

    def open(self, rel: str) -> Optional[str]:
        key = self._buffer_key(rel)
        if key is not None:
            return self._buffers[key]
        return self._fallback.open(rel)

    def write(self, rel: str, content: str) -> None:
        key = self._buffer_key(rel)
        if key is not None:
            self._buffers[key] = content
            self._changes[key] = "updated"
            return
        self._fallback.write(rel, content)

    @property
    def changes_map(self) -> Dict[str, str]:
        return {**self._fallback.changes_map, **self._changes}


@dataclass
class EditOutcome:
    path: str
    summary: str
    result: BatchResult
    written: bool


def make_code_block(text: str, lang: str = "", max_chars: Optional[int] = None) -> str:
    if max_chars is not None and len(text) > max_chars:
        text = text[:max_chars] + " ... (truncated)"
    fence = "```"
    while fence in text:
        fence += "`"
    return f"{fence}{lang}\n{text}\n{fence}"


def render_unapplied_warning(
    result: BatchResult, settings: Optional[EngineSettings] = None
) -> Optional[str]:
    """Human-readable warning with a preview of the first unapplied edit."""
    if result.unapplied_count == 0 or result.first_unapplied is None:
        return None
    cfg = settings or EngineSettings()
    first = result.first_unapplied
    parts: List[str] = [
        "Some edits could not be applied after multiple passes.",
        f"Unapplied edits remaining: {result.unapplied_count}",
        "Example (decoded) old block:",
        make_code_block(first.original, max_chars=cfg.preview_max_chars),
        "Example (decoded) new block:",
        make_code_block(first.replacement, max_chars=cfg.preview_max_chars),
    ]
    return "\n\n".join(parts)


def edit_document(
    rel: str,
    edits: Iterable[Any],
    ops: DocumentOps,
    settings: Optional[EngineSettings] = None,
) -> EditOutcome:
    """
    Apply a batch of edits to one document held by ops.

    A missing document is edited as empty text. The result is written back only
    when at least one edit applied or the text changed.
    """
    cfg = settings or EngineSettings()
    current = ops.open(rel)
    if current is None:
        current = ""
    result = apply_batch(current, edits, settings=cfg)

    written = False
    if result.applied_count > 0 or result.changed:
        ops.write(rel, result.final_content)
        written = True

    lines: List[str] = []
    if result.applied_count == 0:
        if result.skipped_count > 0:
            lines.append(
                f"No changes needed in {rel} ({result.skipped_count} edit(s) already applied)."
            )
        else:
            lines.append(f"No replacements made in {rel}.")
    else:
        lines.append(f"Applied edits to {rel}.")
        lines.append(
            f"Edits summary: applied {result.applied_count}, "
            f"skipped {result.skipped_count} (already applied)"
        )

    warning = render_unapplied_warning(result, cfg)
    if warning:
        logger.warning(
            "unapplied edits",
            path=rel,
            unapplied=result.unapplied_count,
            original=result.first_unapplied.original if result.first_unapplied else None,
        )
        lines.append(warning)

    return EditOutcome(
        path=rel, summary="\n\n".join(lines), result=result, written=written
    )

