"""Diff engine: character diff, content changes and formatting changes."""

from __future__ import annotations

from .changes import (
    compute_changes,
    compute_diff_summary,
    filter_changes_by_type,
    get_deletion_search_context,
    has_sufficient_context,
    sort_changes_for_application,
)
from .formatting import (
    compute_formatting_changes,
    get_mark_type_label,
    normalize_mark_key,
    unchanged_ranges,
)
from .lcs import DiffKind, DiffRun, diff_chars

__all__ = [
    "DiffKind",
    "DiffRun",
    "compute_changes",
    "compute_diff_summary",
    "compute_formatting_changes",
    "diff_chars",
    "filter_changes_by_type",
    "get_deletion_search_context",
    "get_mark_type_label",
    "has_sufficient_context",
    "normalize_mark_key",
    "sort_changes_for_application",
    "unchanged_ranges",
]
