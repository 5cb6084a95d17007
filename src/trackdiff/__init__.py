"""trackdiff: rich-text document comparison with tracked-change annotations.

Public re-exports
-----------------

* **Session:** :class:`ComparisonSession`, :class:`ComparisonOutcome`
* **Pipeline:** extraction, diff, apply and resolve functions
* **Configuration:** :class:`TrackDiffConfig`
* **Errors:** Every :class:`TrackDiffError` subclass and :class:`ErrorCode`
* **Models:** All change, result and annotation types

Usage::

    from trackdiff import ComparisonSession

    session = ComparisonSession()
    session.load_original("Hello world")
    session.load_modified("Hello beautiful world")
    outcome = session.run()
    for change in outcome.changes:
        print(change.type.value, change.content)
"""

from __future__ import annotations

# ── Configuration ───────────────────────────────────────────────────────
from trackdiff.config import (
    DEFAULT_EXCLUDED_MARK_TYPES,
    TRACK_DELETE_MARK,
    TRACK_FORMAT_MARK,
    TRACK_INSERT_MARK,
    TrackDiffConfig,
)

# ── Pipeline ────────────────────────────────────────────────────────────
from trackdiff.diff import (
    compute_changes,
    compute_diff_summary,
    compute_formatting_changes,
    filter_changes_by_type,
    get_deletion_search_context,
    get_mark_type_label,
    has_sufficient_context,
    sort_changes_for_application,
)

# ── Documents ───────────────────────────────────────────────────────────
from trackdiff.document import (
    DEFAULT_SCHEMA,
    Document,
    DocumentTree,
    MutationBuilder,
    Node,
    Schema,
    document_from_markdown,
)

# ── Errors ──────────────────────────────────────────────────────────────
from trackdiff.errors import (
    DeletionAnchorNotFoundError,
    DocumentStructureError,
    ErrorCode,
    InvalidPositionError,
    PositionMappingError,
    SchemaPreconditionError,
    SessionPendingError,
    TrackDiffError,
)
from trackdiff.extract import (
    extract_context,
    extract_plain_text,
    extract_with_formatting,
    extract_with_positions,
)

# ── Models ──────────────────────────────────────────────────────────────
from trackdiff.models import (
    COMPARISON_USER,
    Change,
    ChangeType,
    DiffSummary,
    ExtractedText,
    FormattingChange,
    FormattingChangeType,
    FormattingSpan,
    Mark,
    Modification,
    ResolutionAction,
    TextRange,
    TrackChangesResult,
    TrackChangeUser,
    TrackedRange,
    TrackKind,
)

# ── Session ─────────────────────────────────────────────────────────────
from trackdiff.session import ComparisonOutcome, ComparisonSession, SessionState
from trackdiff.track import (
    PositionMapper,
    ResolutionEngine,
    TrackChangesApplicator,
    apply_formatting_track_changes,
    apply_track_changes,
    approve_all,
    approve_change,
    build_modifications,
    find_track_change_marks,
    locate_change,
    reject_all,
    reject_change,
)

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    # Session
    "ComparisonSession",
    "ComparisonOutcome",
    "SessionState",
    # Configuration
    "TrackDiffConfig",
    "DEFAULT_EXCLUDED_MARK_TYPES",
    "TRACK_INSERT_MARK",
    "TRACK_DELETE_MARK",
    "TRACK_FORMAT_MARK",
    # Documents
    "DEFAULT_SCHEMA",
    "Document",
    "DocumentTree",
    "MutationBuilder",
    "Node",
    "Schema",
    "document_from_markdown",
    # Extraction
    "extract_plain_text",
    "extract_with_positions",
    "extract_with_formatting",
    "extract_context",
    # Diff
    "compute_changes",
    "compute_formatting_changes",
    "compute_diff_summary",
    "filter_changes_by_type",
    "get_deletion_search_context",
    "get_mark_type_label",
    "has_sufficient_context",
    "sort_changes_for_application",
    # Mapping and application
    "PositionMapper",
    "TrackChangesApplicator",
    "build_modifications",
    "apply_track_changes",
    "apply_formatting_track_changes",
    # Resolution
    "ResolutionEngine",
    "approve_change",
    "reject_change",
    "approve_all",
    "reject_all",
    "find_track_change_marks",
    "locate_change",
    # Error base + code enum
    "TrackDiffError",
    "ErrorCode",
    # Errors
    "PositionMappingError",
    "DeletionAnchorNotFoundError",
    "SchemaPreconditionError",
    "InvalidPositionError",
    "DocumentStructureError",
    "SessionPendingError",
    # Models: changes
    "Change",
    "ChangeType",
    "FormattingChange",
    "FormattingChangeType",
    "DiffSummary",
    # Models: extraction
    "ExtractedText",
    "FormattingSpan",
    "Mark",
    "TextRange",
    # Models: annotation
    "Modification",
    "TrackChangeUser",
    "COMPARISON_USER",
    "TrackChangesResult",
    "TrackedRange",
    "TrackKind",
    "ResolutionAction",
]
