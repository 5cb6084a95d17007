"""Approve or reject tracked changes by id.

Annotations are located by a fresh scan of the live document every time,
never from the positions computed at apply time: earlier resolutions may
have shifted everything.  A replacement's insert half and ghost half share
a change id and are resolved together.  Resolving an id that no longer has
any annotation is a no-op.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Iterable, Sequence
from typing import Any

from trackdiff.config import TrackDiffConfig
from trackdiff.document.protocols import DocumentTree, MutationBuilder
from trackdiff.errors import TrackDiffError
from trackdiff.models import (
    FormattingChangeType,
    Mark,
    ResolutionAction,
    TextRange,
    TrackChangesResult,
    TrackedRange,
    TrackKind,
)
from trackdiff.observability import NoopMetricsHook, get_logger

log = get_logger("trackdiff.track.resolution")

_PREFIXES = ("insert-", "delete-")


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------

def find_track_change_marks(
    document: DocumentTree,
    config: TrackDiffConfig | None = None,
) -> list[TrackedRange]:
    """Collect every annotation in *document* in document order.

    Adjacent text nodes carrying the same annotation (same kind and mark
    id) are reported as one range.
    """
    config = config or TrackDiffConfig()
    kinds = {
        config.insert_mark: TrackKind.INSERT,
        config.delete_mark: TrackKind.DELETE,
        config.format_mark: TrackKind.FORMAT,
    }
    ranges: list[TrackedRange] = []
    open_ranges: dict[tuple[TrackKind, str], int] = {}

    for node, pos in document.descendants():
        if not node.is_text:
            continue
        end = pos + node.node_size
        for mark in node.marks:
            kind = kinds.get(mark.type)
            if kind is None:
                continue
            mark_id = str(mark.attrs.get("id") or "")
            key = (kind, mark_id)
            index = open_ranges.get(key)
            if index is not None and ranges[index].end == pos:
                ranges[index] = dataclasses.replace(ranges[index], end=end)
                continue
            open_ranges[key] = len(ranges)
            ranges.append(
                TrackedRange(
                    start=pos,
                    end=end,
                    kind=kind,
                    mark_id=mark_id,
                    change_id=_change_id(mark_id),
                    mark=mark,
                )
            )
    return ranges


def _change_id(mark_id: str) -> str:
    for prefix in _PREFIXES:
        if mark_id.startswith(prefix):
            return mark_id[len(prefix):]
    return mark_id


def locate_change(
    document: DocumentTree,
    change_id: str,
    content: str | None = None,
    config: TrackDiffConfig | None = None,
) -> TextRange | None:
    """Return the range spanned by every annotation of *change_id*.

    When no annotation carries the id and *content* is given, the first
    insert or delete annotation whose text contains the first 30
    characters of *content* (or is contained in them) is returned instead.
    """
    ranges = find_track_change_marks(document, config)
    matched = [r for r in ranges if r.change_id == change_id]
    if matched:
        return TextRange(min(r.start for r in matched), max(r.end for r in matched))

    if content:
        needle = content.strip()[:30]
        for r in ranges:
            if r.kind is TrackKind.FORMAT:
                continue
            text = _range_text(document, r)
            if needle in text or (text.strip() and text.strip() in needle):
                return TextRange(r.start, r.end)
    return None


def _range_text(document: DocumentTree, r: TrackedRange) -> str:
    parts: list[str] = []
    for node, pos in document.nodes_between(r.start, r.end):
        if node.is_text:
            parts.append(node.text[max(r.start, pos) - pos:min(r.end, pos + node.node_size) - pos])
    return "".join(parts)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class ResolutionEngine:
    """Approve or reject annotations in a live document.

    Parameters
    ----------
    config:
        Mark names and metrics backend.
    """

    def __init__(self, config: TrackDiffConfig | None = None) -> None:
        self._config = config or TrackDiffConfig()
        self._metrics = (
            self._config.metrics if self._config.metrics is not None else NoopMetricsHook()
        )

    def resolve(
        self,
        document: DocumentTree,
        change_id: str,
        action: ResolutionAction | str,
    ) -> TrackChangesResult:
        """Approve or reject every annotation of one change.

        Returns
        -------
        TrackChangesResult
            ``total_count`` is the number of annotation ranges found for
            the id, ``success_count`` the number resolved.  An unknown or
            already-resolved id yields ``(0, 0, [])`` and leaves the
            document untouched.
        """
        action = ResolutionAction(action)
        ranges = [
            r for r in find_track_change_marks(document, self._config)
            if r.change_id == change_id
        ]
        if not ranges:
            log.debug(
                "No annotations left for change",
                extra={"extra_fields": {"op": "resolve", "change_id": change_id}},
            )
            return TrackChangesResult()
        return self._resolve_ranges(document, ranges, action)

    def approve(self, document: DocumentTree, change_id: str) -> TrackChangesResult:
        return self.resolve(document, change_id, ResolutionAction.APPROVE)

    def reject(self, document: DocumentTree, change_id: str) -> TrackChangesResult:
        return self.resolve(document, change_id, ResolutionAction.REJECT)

    def resolve_all(
        self,
        document: DocumentTree,
        action: ResolutionAction | str,
    ) -> TrackChangesResult:
        """Apply *action* to every annotation in one batch."""
        action = ResolutionAction(action)
        ranges = find_track_change_marks(document, self._config)
        if not ranges:
            return TrackChangesResult()
        return self._resolve_ranges(document, ranges, action)

    # ── Batch ───────────────────────────────────────────────────────────

    def _resolve_ranges(
        self,
        document: DocumentTree,
        ranges: Sequence[TrackedRange],
        action: ResolutionAction,
    ) -> TrackChangesResult:
        # Mark-only edits go before text removal at the same start.
        ordered = sorted(
            ranges,
            key=lambda r: (r.start, not _removes_text(r, action)),
            reverse=True,
        )
        tr = document.transaction()
        errors: list[str] = []
        success = 0
        for r in ordered:
            try:
                self._resolve_one(tr, r, action)
            except TrackDiffError as exc:
                errors.append(f"Failed to {action.value} {r.kind.value}: {exc.message}")
                log.warning(
                    "Failed to resolve annotation",
                    extra={
                        "extra_fields": {
                            "op": "resolve",
                            "action": action.value,
                            "mark_id": r.mark_id,
                            "start": r.start,
                            "end": r.end,
                            "reason": exc.message,
                        }
                    },
                )
            else:
                success += 1
        tr.commit()

        _emit_resolution_metrics(self._metrics, ordered, action)
        log.info(
            f"Resolved {success}/{len(ordered)} annotations",
            extra={
                "extra_fields": {
                    "op": "resolve",
                    "action": action.value,
                    "change_ids": sorted({r.change_id for r in ordered}),
                }
            },
        )
        return TrackChangesResult(success_count=success, total_count=len(ordered), errors=errors)

    def _resolve_one(
        self,
        tr: MutationBuilder,
        r: TrackedRange,
        action: ResolutionAction,
    ) -> None:
        if _removes_text(r, action):
            tr.delete(r.start, r.end)
            return
        if r.kind is TrackKind.FORMAT and action is ResolutionAction.REJECT:
            _revert_formatting(tr, r)
        tr.remove_mark(r.start, r.end, r.mark)


def _removes_text(r: TrackedRange, action: ResolutionAction) -> bool:
    if r.kind is TrackKind.INSERT:
        return action is ResolutionAction.REJECT
    if r.kind is TrackKind.DELETE:
        return action is ResolutionAction.APPROVE
    return False


def _revert_formatting(tr: MutationBuilder, r: TrackedRange) -> None:
    """Undo the formatting change recorded on a ``trackFormat`` mark."""
    attrs = r.mark.attrs
    mark_type = attrs.get("markType")
    if not mark_type:
        return
    if attrs.get("changeType") == FormattingChangeType.FORMAT_ADDED.value:
        tr.remove_mark(r.start, r.end, mark_type)
        return
    old_attrs = _load_attrs(attrs.get("oldAttrs"))
    tr.add_mark(r.start, r.end, Mark(mark_type, old_attrs))


def _load_attrs(raw: Any) -> dict[str, Any]:
    if not raw:
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    return dict(json.loads(raw))


def _emit_resolution_metrics(
    metrics: Any,
    ranges: Iterable[TrackedRange],
    action: ResolutionAction,
) -> None:
    """Emit one ``resolutions_total`` count per change id resolved."""
    count = len({r.change_id for r in ranges})
    if count:
        metrics.increment("trackdiff.resolutions_total", count, tags={"action": action.value})


# ---------------------------------------------------------------------------
# Module-level entry points
# ---------------------------------------------------------------------------

def approve_change(
    document: DocumentTree,
    change_id: str,
    config: TrackDiffConfig | None = None,
) -> TrackChangesResult:
    """Make one change permanent."""
    return ResolutionEngine(config).approve(document, change_id)


def reject_change(
    document: DocumentTree,
    change_id: str,
    config: TrackDiffConfig | None = None,
) -> TrackChangesResult:
    """Revert one change."""
    return ResolutionEngine(config).reject(document, change_id)


def approve_all(document: DocumentTree, config: TrackDiffConfig | None = None) -> TrackChangesResult:
    return ResolutionEngine(config).resolve_all(document, ResolutionAction.APPROVE)


def reject_all(document: DocumentTree, config: TrackDiffConfig | None = None) -> TrackChangesResult:
    return ResolutionEngine(config).resolve_all(document, ResolutionAction.REJECT)
