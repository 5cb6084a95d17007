"""Tracked-change annotation: position mapping, application and resolution."""

from __future__ import annotations

from .applicator import (
    TrackChangesApplicator,
    apply_formatting_track_changes,
    apply_track_changes,
    create_track_delete_mark,
    create_track_format_mark,
    create_track_insert_mark,
    get_formatting_marks,
)
from .mapper import PositionMapper, build_modifications, sort_modifications_for_application
from .resolution import (
    ResolutionEngine,
    approve_all,
    approve_change,
    find_track_change_marks,
    locate_change,
    reject_all,
    reject_change,
)

__all__ = [
    "PositionMapper",
    "ResolutionEngine",
    "TrackChangesApplicator",
    "apply_formatting_track_changes",
    "apply_track_changes",
    "approve_all",
    "approve_change",
    "build_modifications",
    "create_track_delete_mark",
    "create_track_format_mark",
    "create_track_insert_mark",
    "find_track_change_marks",
    "get_formatting_marks",
    "locate_change",
    "reject_all",
    "reject_change",
    "sort_modifications_for_application",
]
