"""Configuration for trackdiff.

:class:`TrackDiffConfig` captures every tuneable knob of the diff, mapping,
apply and resolve stages.  Every component accepts an optional config and
falls back to the defaults below, which reproduce the reference behaviour.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from trackdiff.models import COMPARISON_USER, TrackChangeUser
from trackdiff.observability.logger import resolve_level

# ---------------------------------------------------------------------------
# Mark name constants
# ---------------------------------------------------------------------------

TRACK_INSERT_MARK = "trackInsert"
TRACK_DELETE_MARK = "trackDelete"
TRACK_FORMAT_MARK = "trackFormat"

DEFAULT_EXCLUDED_MARK_TYPES: list[str] = [
    TRACK_INSERT_MARK,
    TRACK_DELETE_MARK,
    TRACK_FORMAT_MARK,
    "comment",
    "commentMark",
]
"""Mark types that never take part in a formatting comparison."""


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

@dataclass
class TrackDiffConfig:
    """Complete configuration for a comparison.

    Parameters
    ----------
    context_length:
        Characters of modified text captured before a deletion's anchor as
        ``context_before``.
    min_context_length:
        Minimum ``context_before`` length for the context search to be
        attempted.
    search_context_length:
        Trailing characters of ``context_before`` used as the search needle.
    min_unchanged_range:
        Unchanged ranges whose trimmed text is shorter than this are not
        inspected for formatting changes.
    preview_length:
        Length of the ``content`` preview on formatting changes.
    insert_mark, delete_mark, format_mark:
        Names of the annotation mark types in the host schema.
    excluded_mark_types:
        Mark types ignored by formatting extraction and stripped from ghost
        text formatting.
    detect_modified_marks:
        Fold a removed and an added mark of the same type over the same
        range into one ``formatModified`` change.
    on_schema_missing:
        Behaviour when the host schema lacks an annotation mark.

        * ``"abort"``: return a result with zero successes and one error.
        * ``"raise"``: raise :class:`~trackdiff.errors.SchemaPreconditionError`.
    default_user:
        Author recorded on annotations when the caller passes none.
    settle_delay_seconds:
        Pause between diffing and applying in
        :class:`~trackdiff.session.ComparisonSession`.  Cosmetic only.
    metrics:
        Optional :class:`~trackdiff.observability.MetricsHook` backend.
    log_level:
        When set, :class:`~trackdiff.session.ComparisonSession` applies it
        to every trackdiff logger.  A level number or name such as
        ``"WARNING"``.
    debug_dump_changes:
        Write computed content and formatting changes to *stderr* as JSON.
    """

    # ── Diff ────────────────────────────────────────────────────────────
    context_length: int = 30

    min_context_length: int = 5

    search_context_length: int = 20

    min_unchanged_range: int = 2

    preview_length: int = 50

    detect_modified_marks: bool = False

    # ── Marks ───────────────────────────────────────────────────────────
    insert_mark: str = TRACK_INSERT_MARK

    delete_mark: str = TRACK_DELETE_MARK

    format_mark: str = TRACK_FORMAT_MARK

    excluded_mark_types: list[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_MARK_TYPES),
    )

    # ── Apply ───────────────────────────────────────────────────────────
    on_schema_missing: Literal["abort", "raise"] = "abort"

    default_user: TrackChangeUser = COMPARISON_USER

    settle_delay_seconds: float = 0.0

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    log_level: int | str | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_changes: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.context_length < 0:
            raise ValueError(f"context_length must be >= 0, got {self.context_length}")
        if self.min_context_length < 1:
            raise ValueError(f"min_context_length must be >= 1, got {self.min_context_length}")
        if self.search_context_length < self.min_context_length:
            raise ValueError(
                f"search_context_length must be >= min_context_length "
                f"({self.min_context_length}), got {self.search_context_length}"
            )
        if self.min_unchanged_range < 0:
            raise ValueError(f"min_unchanged_range must be >= 0, got {self.min_unchanged_range}")
        if self.preview_length < 1:
            raise ValueError(f"preview_length must be >= 1, got {self.preview_length}")
        if self.settle_delay_seconds < 0:
            raise ValueError(f"settle_delay_seconds must be >= 0, got {self.settle_delay_seconds}")
        if self.on_schema_missing not in ("abort", "raise"):
            raise ValueError(
                f"on_schema_missing must be 'abort' or 'raise', got {self.on_schema_missing!r}"
            )
        if self.log_level is not None:
            resolve_level(self.log_level)
        names = {self.insert_mark, self.delete_mark, self.format_mark}
        if len(names) != 3:
            raise ValueError("insert_mark, delete_mark and format_mark must be distinct")

    @property
    def annotation_marks(self) -> frozenset[str]:
        """The three annotation mark names."""
        return frozenset((self.insert_mark, self.delete_mark, self.format_mark))
