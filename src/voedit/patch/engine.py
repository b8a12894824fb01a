from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from voedit.logger import logger
from voedit.settings import EngineSettings

from .indent import (
    adjust_replacement_indentation,
    detect_indentation,
    detect_line_ending,
    line_prefix,
)
from .matcher import find_match, gap_token_eq
from .models import (
    ALREADY_APPLIED_REASON,
    ORIGINAL_NOT_FOUND_REASON,
    BatchResult,
    EditRequest,
    EditStatus,
    MatchCandidate,
    PatchApplyResult,
)
from .tokens import TokenSequence, tokenize

# (position in batch, edit)
PendingEdit = Tuple[int, EditRequest]


@dataclass
class Selection:
    # Non-overlapping candidates to apply this pass, ordered by position
    accepted: List[MatchCandidate] = field(default_factory=list)
    # Matched but overlapped by an earlier candidate, or not matched at all
    deferred: List[PendingEdit] = field(default_factory=list)
    skipped: List[PendingEdit] = field(default_factory=list)
    # Number of edits whose original matched
    found: int = 0


def _coerce_edit(edit: Any) -> EditRequest:
    if isinstance(edit, EditRequest):
        return edit
    if isinstance(edit, dict):
        return EditRequest.model_validate(edit)
    raise TypeError(f"Expected EditRequest or mapping, got {type(edit).__name__}")


def _content_of(text: str) -> List[str]:
    return [t.content for t in tokenize(text) if not t.is_whitespace]


def render_replacement(content: str, edit: EditRequest, offset: int, eol: str) -> str:
    """The replacement text as it would be spliced in at offset."""
    return adjust_replacement_indentation(
        edit.replacement,
        detect_indentation(content, offset),
        lead=line_prefix(content, offset),
        eol=eol,
    )


def select_candidates(tokens: TokenSequence, pending: Sequence[PendingEdit]) -> Selection:
    """
    Match every pending edit against tokens and pick a non-overlapping subset.

    Earliest match wins; on equal starts the shorter match wins, then batch order.
    Edits whose replacement is already present are classified as skipped.
    """
    sel = Selection()
    candidates: List[MatchCandidate] = []
    content = tokens.text
    eol = detect_line_ending(content)

    for index, edit in pending:
        orig_range = find_match(tokens, TokenSequence.from_text(edit.original))
        # Case-sensitive, so an edit that only changes case is not taken as done
        repl_range = find_match(
            tokens, TokenSequence.from_text(edit.replacement), gap_token_eq
        )
        if orig_range is not None:
            offset = tokens.offset_of(orig_range.start)
            if _content_of(edit.original) == _content_of(edit.replacement):
                # Only whitespace changes, so gap-tolerant matching can not tell
                # before from after; compare the matched text itself.
                matched = content[offset : tokens.offset_of(orig_range.end)]
                done = matched == render_replacement(content, edit, offset, eol)
            else:
                # A replacement that contains its own original is only "done" when
                # the original sits inside an occurrence of the replacement.
                done = (
                    repl_range is not None
                    and repl_range.start <= orig_range.start
                    and orig_range.end <= repl_range.end
                )
            if done:
                sel.skipped.append((index, edit))
                continue
            candidates.append(
                MatchCandidate(
                    index=index,
                    edit=edit,
                    start=orig_range.start,
                    end=orig_range.end,
                    offset=offset,
                )
            )
        elif repl_range is not None:
            sel.skipped.append((index, edit))
        else:
            sel.deferred.append((index, edit))

    sel.found = len(candidates)
    candidates.sort(key=lambda c: (c.start, c.length))
    last_end = -1
    for cand in candidates:
        if cand.start >= last_end:
            sel.accepted.append(cand)
            last_end = cand.end
        else:
            sel.deferred.append((cand.index, cand.edit))
    sel.deferred.sort(key=lambda p: p[0])
    return sel


def apply_candidates(tokens: TokenSequence, accepted: Iterable[MatchCandidate]) -> TokenSequence:
    """Splice re-indented replacements into tokens, highest offset first."""
    content = tokens.text
    eol = detect_line_ending(content)
    current = tokens
    for cand in sorted(accepted, key=lambda c: c.start, reverse=True):
        adjusted = render_replacement(content, cand.edit, cand.offset, eol)
        start = cand.start
        if (
            adjusted == ""
            and current[cand.end - 1].is_line_break
            and not line_prefix(content, cand.offset).strip()
        ):
            # Whole lines deleted: their indentation goes too
            while (
                start > 0
                and current[start - 1].is_whitespace
                and not current[start - 1].is_line_break
            ):
                start -= 1
        current = current.replace(start, cand.end, TokenSequence.from_text(adjusted))
    return current


def apply_insertions(content: str, inserts: Sequence[EditRequest], separator: str = "\n") -> str:
    if not inserts:
        return content
    block = separator.join(e.replacement for e in inserts)
    if content == "":
        return block
    return block + separator + content


def apply_batch(
    content: str,
    edits: Iterable[Any],
    *,
    max_passes: Optional[int] = None,
    settings: Optional[EngineSettings] = None,
) -> BatchResult:
    """
    Apply a batch of edits to content and report what happened.

    Insertions (empty original) are prepended once, in batch order. Replacements
    are then matched and applied over up to max_passes passes, so an edit whose
    original only appears after another edit has run still lands. Failing to
    match is never an error: such edits are reported as unapplied and the content
    they would have touched is left as it was.
    """
    if not isinstance(content, str):
        raise TypeError(f"content must be str, got {type(content).__name__}")
    cfg = settings or EngineSettings()
    passes_limit = max_passes if max_passes is not None else cfg.max_passes
    if passes_limit < 1:
        raise ValueError("max_passes must be at least 1")

    batch = [_coerce_edit(e) for e in edits]
    statuses: List[Optional[EditStatus]] = [None] * len(batch)
    result = BatchResult(final_content=content, initial_content=content)
    if not batch:
        return result

    inserts = [e for e in batch if e.is_insertion]
    current = apply_insertions(content, inserts, cfg.insert_separator)
    for i, e in enumerate(batch):
        if e.is_insertion:
            statuses[i] = EditStatus.APPLIED

    pending: List[PendingEdit] = [(i, e) for i, e in enumerate(batch) if not e.is_insertion]
    passes = 0
    for pass_no in range(1, passes_limit + 1):
        if not pending:
            break
        passes = pass_no
        tokens = TokenSequence.from_text(current)
        sel = select_candidates(tokens, pending)
        for idx, _ in sel.skipped:
            statuses[idx] = EditStatus.SKIPPED
        logger.debug(
            "edit pass",
            pass_no=pass_no,
            pending=len(pending),
            found=sel.found,
            accepted=len(sel.accepted),
            skipped=len(sel.skipped),
            deferred=len(sel.deferred),
        )
        pending = sel.deferred
        if not sel.accepted:
            break
        current = apply_candidates(tokens, sel.accepted).text
        for cand in sel.accepted:
            statuses[cand.index] = EditStatus.APPLIED

    final_statuses = [s if s is not None else EditStatus.UNAPPLIED for s in statuses]
    result.final_content = current
    result.statuses = final_statuses
    result.passes = passes
    result.applied_count = final_statuses.count(EditStatus.APPLIED)
    result.skipped_count = final_statuses.count(EditStatus.SKIPPED)
    result.unapplied_count = final_statuses.count(EditStatus.UNAPPLIED)
    if pending:
        result.first_unapplied = pending[0][1]

    logger.info(
        "edit batch done",
        edits=len(batch),
        applied=result.applied_count,
        skipped=result.skipped_count,
        unapplied=result.unapplied_count,
        passes=passes,
    )
    return result


def apply_edit(content: str, edit: Any, settings: Optional[EngineSettings] = None) -> PatchApplyResult:
    """Apply one edit through the batch logic."""
    result = apply_batch(content, [edit], settings=settings)
    if result.applied_count > 0:
        return PatchApplyResult(applied=True, content=result.final_content)
    if result.skipped_count > 0:
        return PatchApplyResult(applied=False, reason=ALREADY_APPLIED_REASON)
    return PatchApplyResult(applied=False, reason=ORIGINAL_NOT_FOUND_REASON)
