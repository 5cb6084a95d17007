"""Public data models for trackdiff.

Every value produced or consumed by the diff, mapping, apply and resolve
stages lives here.  All types are plain dataclasses; the ephemeral ones
(:class:`ExtractedText`, :class:`Change`, :class:`Modification`) are
scoped to a single comparison pass and are never mutated after
construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ChangeType(str, Enum):
    """Content change categories emitted by the diff engine."""

    INSERTION = "insertion"
    """Text present only in the modified version."""

    DELETION = "deletion"
    """Text present only in the original version."""

    REPLACEMENT = "replacement"
    """A removed run immediately followed by an added run."""


class FormattingChangeType(str, Enum):
    """Mark change categories over text that is otherwise unchanged."""

    FORMAT_ADDED = "formatAdded"
    FORMAT_REMOVED = "formatRemoved"
    FORMAT_MODIFIED = "formatModified"
    """Same mark type on the same range with different attributes."""


class ResolutionAction(str, Enum):
    """What to do with a tracked change."""

    APPROVE = "approve"
    """Make the change permanent."""

    REJECT = "reject"
    """Revert the change."""


class TrackKind(str, Enum):
    """Which annotation mark a :class:`TrackedRange` carries."""

    INSERT = "insert"
    DELETE = "delete"
    FORMAT = "format"


# ---------------------------------------------------------------------------
# Tree-level values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Mark:
    """A tag on a span of text: formatting or an internal annotation.

    Equality compares ``type`` and ``attrs``; hashing uses ``type`` only so
    that marks with dict attributes can still live in sets.
    """

    type: str
    attrs: dict[str, Any] = field(default_factory=dict, hash=False)

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.attrs:
            data["attrs"] = dict(self.attrs)
        return data

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Mark:
        return cls(type=data["type"], attrs=dict(data.get("attrs") or {}))


@dataclass(frozen=True)
class TextRange:
    """A half-open tree-position range ``[start, end)``."""

    start: int
    end: int


# ---------------------------------------------------------------------------
# Extraction results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FormattingSpan:
    """One contiguous run of identical non-internal marks.

    Attributes
    ----------
    char_start, char_end:
        Half-open character range in the extracted text.
    marks:
        The active formatting marks over the range.
    """

    char_start: int
    char_end: int
    marks: tuple[Mark, ...]


@dataclass(frozen=True)
class ExtractedText:
    """Flattened text plus its char-to-position index.

    Attributes
    ----------
    text:
        The plain text, with synthetic block and table separators.
    char_to_pos:
        ``char_to_pos[i]`` is the tree position character ``i`` came from.
        Always the same length as ``text``.
    formatting:
        Formatting spans over ``text``.  Empty unless extracted with
        formatting.
    """

    text: str
    char_to_pos: tuple[int, ...] = ()
    formatting: tuple[FormattingSpan, ...] = ()


# ---------------------------------------------------------------------------
# Diff results
# ---------------------------------------------------------------------------

@dataclass
class Change:
    """One content-diff unit with character-offset metadata.

    Insertions and replacements carry ``char_start``/``char_end`` in the
    modified text.  Deletions carry ``insert_at`` (an offset in the
    modified text) and ``context_before``, the trimmed text preceding the
    anchor captured at diff time.
    """

    id: str
    type: ChangeType
    content: str
    old_content: str | None = None
    char_start: int | None = None
    char_end: int | None = None
    insert_at: int | None = None
    context_before: str | None = None

    def __post_init__(self) -> None:
        self.type = ChangeType(self.type)
        if self.char_start is not None and self.char_end is not None:
            if self.char_start >= self.char_end:
                raise ValueError(
                    f"char_start must be < char_end, got "
                    f"{self.char_start} >= {self.char_end}"
                )

    @property
    def position(self) -> int:
        """Effective position used to order changes."""
        if self.char_start is not None:
            return self.char_start
        if self.insert_at is not None:
            return self.insert_at
        return 0


@dataclass
class FormattingChange:
    """A mark added, removed or modified over unchanged text.

    Positions are always in modified-text space.  ``content`` is a short
    preview of the affected text.
    """

    id: str
    type: FormattingChangeType
    mark_type: str
    content: str
    char_start: int
    char_end: int
    old_attrs: dict[str, Any] | None = None
    new_attrs: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        self.type = FormattingChangeType(self.type)

    @property
    def position(self) -> int:
        return self.char_start


AnyChange = Union[Change, FormattingChange]


@dataclass
class DiffSummary:
    """Simple per-category counts."""

    insertions: int = 0
    deletions: int = 0
    replacements: int = 0
    formatting_changes: int = 0

    @property
    def total(self) -> int:
        return (
            self.insertions
            + self.deletions
            + self.replacements
            + self.formatting_changes
        )


# ---------------------------------------------------------------------------
# Mapping and application
# ---------------------------------------------------------------------------

@dataclass
class Modification:
    """A change mapped into tree-position space, ready for application.

    Attributes
    ----------
    change:
        The content or formatting change being applied.
    pm_from, pm_to:
        Target tree range.  Equal for deletions.
    is_deletion:
        ``True`` when ghost text must be spliced in at ``pm_from``.
    context_range:
        The search match that anchored a deletion, used to copy formatting
        from real text next to the anchor.
    """

    change: AnyChange
    pm_from: int
    pm_to: int
    is_deletion: bool = False
    context_range: TextRange | None = None


@dataclass(frozen=True)
class TrackChangeUser:
    """Attribution carried on every annotation mark."""

    name: str
    email: str
    avatar: str = ""


COMPARISON_USER = TrackChangeUser(
    name="Comparison",
    email="comparison@trackdiff.diff",
)
"""Default author for annotations created by a comparison."""


@dataclass
class TrackChangesResult:
    """Outcome of an apply or resolve call.

    Attributes
    ----------
    success_count:
        Modifications (or resolved ranges) that were applied.
    total_count:
        Modifications (or ranges) that were attempted.
    errors:
        One human-readable entry per failure.  Never raised.
    """

    success_count: int = 0
    total_count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and self.success_count == self.total_count


@dataclass(frozen=True)
class TrackedRange:
    """An annotation located in a live document.

    ``change_id`` is the id of the originating change: the mark id with
    its ``insert-``/``delete-`` prefix removed.
    """

    start: int
    end: int
    kind: TrackKind
    mark_id: str
    change_id: str
    mark: Mark
