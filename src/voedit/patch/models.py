from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class EditStatus(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    UNAPPLIED = "unapplied"


class EditRequest(BaseModel):
    """
    A single {original, replacement} block.

    An empty original marks an insertion. Tool callers may use the
    old_string/new_string spelling.
    """

    model_config = ConfigDict(frozen=True, strict=True, populate_by_name=True)

    original: str = Field(validation_alias=AliasChoices("original", "old_string"))
    replacement: str = Field(
        validation_alias=AliasChoices("replacement", "new_string")
    )

    @property
    def is_insertion(self) -> bool:
        return self.original == ""


@dataclass
class MatchCandidate:
    # Position of the edit in the submitted batch
    index: int
    edit: EditRequest
    # Half-open token range in the current pass's TokenSequence
    start: int
    end: int
    # Character offset of the first matched token
    offset: int

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass
class BatchResult:
    final_content: str
    applied_count: int = 0
    skipped_count: int = 0
    unapplied_count: int = 0
    first_unapplied: Optional[EditRequest] = None
    # Per-edit outcome, aligned with the submitted batch
    statuses: List[EditStatus] = field(default_factory=list)
    # Replacement passes actually run
    passes: int = 0
    initial_content: str = ""

    @property
    def changed(self) -> bool:
        return self.final_content != self.initial_content

    @property
    def unapplied(self) -> List[int]:
        return [i for i, s in enumerate(self.statuses) if s == EditStatus.UNAPPLIED]


ORIGINAL_NOT_FOUND_REASON = (
    "The original text to replace was not found in the file content. "
    "Consider re-reading the file to check if the original has changed since last read."
)

ALREADY_APPLIED_REASON = (
    "The replacement text is already present in the file content; "
    "the edit appears to have been applied already."
)


@dataclass
class PatchApplyResult:
    applied: bool
    content: Optional[str] = None
    reason: Optional[str] = None
