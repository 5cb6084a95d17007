"""Annotation applicator: turn mapped changes into tracked-change marks.

Takes the content and formatting changes produced by the diff engine,
maps them into tree positions with :class:`~trackdiff.track.mapper.PositionMapper`
and folds every resulting mutation into one transaction on the live
document.  Modifications are applied from the highest position down so
that no mutation shifts a position that has not been used yet.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from trackdiff.config import (
    TRACK_DELETE_MARK,
    TRACK_FORMAT_MARK,
    TRACK_INSERT_MARK,
    TrackDiffConfig,
)
from trackdiff.document.protocols import DocumentTree, MutationBuilder
from trackdiff.errors import SchemaPreconditionError, TrackDiffError
from trackdiff.models import (
    Change,
    ChangeType,
    ExtractedText,
    FormattingChange,
    Mark,
    Modification,
    TextRange,
    TrackChangesResult,
    TrackChangeUser,
)
from trackdiff.observability import NoopMetricsHook, get_logger

from .mapper import PositionMapper, sort_modifications_for_application

log = get_logger("trackdiff.track.applicator")


# ---------------------------------------------------------------------------
# Mark factories
# ---------------------------------------------------------------------------

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _author_attrs(id: str, user: TrackChangeUser, date: str) -> dict[str, Any]:
    return {
        "id": id,
        "author": user.name,
        "authorEmail": user.email,
        "authorImage": user.avatar,
        "date": date,
    }


def create_track_insert_mark(
    id: str,
    user: TrackChangeUser,
    date: str,
    mark_type: str = TRACK_INSERT_MARK,
) -> Mark:
    """Create the annotation carried by inserted text."""
    return Mark(mark_type, _author_attrs(id, user, date))


def create_track_delete_mark(
    id: str,
    user: TrackChangeUser,
    date: str,
    mark_type: str = TRACK_DELETE_MARK,
) -> Mark:
    """Create the annotation carried by ghost text."""
    return Mark(mark_type, _author_attrs(id, user, date))


def create_track_format_mark(
    change: FormattingChange,
    user: TrackChangeUser,
    date: str,
    mark_type: str = TRACK_FORMAT_MARK,
) -> Mark:
    """Create the annotation for a formatting change.

    The attribute snapshots are stored as JSON strings so the mark stays
    flat and serializable by any host.
    """
    attrs = _author_attrs(change.id, user, date)
    attrs.update(
        changeType=change.type.value,
        markType=change.mark_type,
        oldAttrs=_dump_attrs(change.old_attrs),
        newAttrs=_dump_attrs(change.new_attrs),
    )
    return Mark(mark_type, attrs)


def _dump_attrs(attrs: dict[str, Any] | None) -> str | None:
    if attrs is None:
        return None
    return json.dumps(attrs, sort_keys=True, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Ghost text formatting
# ---------------------------------------------------------------------------

def get_formatting_marks(
    doc: Any,
    context_range: TextRange | None,
    position: int,
    config: TrackDiffConfig | None = None,
) -> list[Mark]:
    """Formatting marks for ghost text inserted at *position*.

    Marks are taken from the first text node with marks inside
    *context_range*, else from the text node just before *position*, else
    the text node just after it, else whatever is active at *position*.
    Annotation and other excluded marks are dropped from the result.

    Parameters
    ----------
    doc:
        The working tree root (``tr.doc``), so earlier steps in the same
        batch are visible.
    context_range:
        The search match that anchored a deletion, if any.
    position:
        The ghost text's insertion point.
    config:
        Supplies the excluded mark types.
    """
    config = config or TrackDiffConfig()
    excluded = set(config.excluded_mark_types) | config.annotation_marks

    marks: Sequence[Mark] = ()
    if context_range is not None:
        for node, _pos in doc.nodes_between(context_range.start, context_range.end):
            if node.is_text and node.marks:
                marks = node.marks
                break

    if not marks:
        rpos = doc.resolve(position)
        if rpos.node_before is not None and rpos.node_before.is_text:
            marks = rpos.node_before.marks
        elif rpos.node_after is not None and rpos.node_after.is_text:
            marks = rpos.node_after.marks
        else:
            marks = rpos.marks()

    return [m for m in marks if m.type not in excluded]


# ---------------------------------------------------------------------------
# Applicator
# ---------------------------------------------------------------------------

class TrackChangesApplicator:
    """Apply content and formatting changes as tracked-change annotations.

    Parameters
    ----------
    config:
        Mark names, schema policy, default author and metrics backend.
    """

    def __init__(self, config: TrackDiffConfig | None = None) -> None:
        self._config = config or TrackDiffConfig()
        self._metrics = (
            self._config.metrics if self._config.metrics is not None else NoopMetricsHook()
        )
        self._mapper = PositionMapper(self._config)

    def apply(
        self,
        document: DocumentTree,
        changes: Sequence[Change],
        extracted: ExtractedText,
        user: TrackChangeUser | None = None,
        formatting_changes: Sequence[FormattingChange] = (),
    ) -> TrackChangesResult:
        """Annotate *document* with *changes* and *formatting_changes*.

        Parameters
        ----------
        document:
            The live (modified) document.  Mutated in place by a single
            dispatch.
        changes:
            Content changes from :func:`~trackdiff.diff.compute_changes`.
        extracted:
            The position index built from *document* in its current state.
        user:
            Author recorded on every mark.  Defaults to
            ``config.default_user``.
        formatting_changes:
            Changes from :func:`~trackdiff.diff.compute_formatting_changes`.

        Returns
        -------
        TrackChangesResult
            ``total_count`` is the number of changes passed in.  Mapping and
            mutation failures are listed in ``errors``.

        Raises
        ------
        SchemaPreconditionError
            When an annotation mark is missing from the schema and
            ``config.on_schema_missing == "raise"``.
        """
        required = [self._config.insert_mark, self._config.delete_mark]
        if formatting_changes:
            required.append(self._config.format_mark)
        return self._run(document, changes, formatting_changes, extracted, user, required)

    def apply_formatting(
        self,
        document: DocumentTree,
        formatting_changes: Sequence[FormattingChange],
        extracted: ExtractedText,
        user: TrackChangeUser | None = None,
    ) -> TrackChangesResult:
        """Annotate formatting changes only.  Needs only the format mark."""
        return self._run(
            document, (), formatting_changes, extracted, user, [self._config.format_mark]
        )

    # ── Batch ───────────────────────────────────────────────────────────

    def _run(
        self,
        document: DocumentTree,
        changes: Sequence[Change],
        formatting_changes: Sequence[FormattingChange],
        extracted: ExtractedText,
        user: TrackChangeUser | None,
        required: list[str],
    ) -> TrackChangesResult:
        total = len(changes) + len(formatting_changes)
        missing = [name for name in required if not document.has_mark_type(name)]
        if missing:
            message = f"Schema missing track marks: {', '.join(missing)}"
            log.error(
                message,
                extra={"extra_fields": {"op": "apply", "missing_marks": missing}},
            )
            if self._config.on_schema_missing == "raise":
                raise SchemaPreconditionError(message, context={"missing_marks": missing})
            return TrackChangesResult(success_count=0, total_count=total, errors=[message])

        errors: list[str] = []
        format_mods = self._mapper.map_all(document, formatting_changes, extracted, errors)
        content_mods = self._mapper.map_all(document, changes, extracted, errors)
        ordered = sort_modifications_for_application([*format_mods, *content_mods])

        user = user or self._config.default_user
        date = _now_iso()
        tr = document.transaction()
        success = 0
        for mod in ordered:
            try:
                self._apply_one(tr, mod, user, date)
            except TrackDiffError as exc:
                errors.append(f"Failed to apply {mod.change.type.value}: {exc.message}")
                log.warning(
                    "Failed to apply modification",
                    extra={
                        "extra_fields": {
                            "op": "apply",
                            "change_id": mod.change.id,
                            "pm_from": mod.pm_from,
                            "pm_to": mod.pm_to,
                            "reason": exc.message,
                        }
                    },
                )
            else:
                success += 1
        tr.commit()

        _emit_apply_metrics(self._metrics, success, total - success)
        log.info(
            f"Track changes applied: {success}/{total}",
            extra={
                "extra_fields": {
                    "op": "apply",
                    "success_count": success,
                    "total_count": total,
                    "error_count": len(errors),
                }
            },
        )
        return TrackChangesResult(success_count=success, total_count=total, errors=errors)

    # ── Single modification ─────────────────────────────────────────────

    def _apply_one(
        self,
        tr: MutationBuilder,
        mod: Modification,
        user: TrackChangeUser,
        date: str,
    ) -> None:
        cfg = self._config
        change = mod.change

        if isinstance(change, FormattingChange):
            tr.add_mark(
                mod.pm_from,
                mod.pm_to,
                create_track_format_mark(change, user, date, cfg.format_mark),
            )
            return

        if change.type == ChangeType.INSERTION:
            tr.add_mark(
                mod.pm_from,
                mod.pm_to,
                create_track_insert_mark(f"insert-{change.id}", user, date, cfg.insert_mark),
            )

        elif change.type == ChangeType.DELETION:
            self._insert_ghost(
                tr, change.content, change.id, mod.pm_from, mod.context_range, user, date
            )

        elif change.type == ChangeType.REPLACEMENT:
            tr.add_mark(
                mod.pm_from,
                mod.pm_to,
                create_track_insert_mark(f"insert-{change.id}", user, date, cfg.insert_mark),
            )
            self._insert_ghost(
                tr, change.old_content or "", change.id, mod.pm_from, None, user, date
            )

    def _insert_ghost(
        self,
        tr: MutationBuilder,
        text: str,
        change_id: str,
        pos: int,
        context_range: TextRange | None,
        user: TrackChangeUser,
        date: str,
    ) -> None:
        marks = get_formatting_marks(tr.doc, context_range, pos, self._config)
        delete_mark = create_track_delete_mark(
            f"delete-{change_id}", user, date, self._config.delete_mark
        )
        ghost = tr.schema.text(text, [*marks, delete_mark])
        tr.insert(pos, ghost)


def _emit_apply_metrics(metrics: Any, success: int, failure: int) -> None:
    """Emit ``apply_success_total`` / ``apply_failure_total`` counters."""
    if success:
        metrics.increment("trackdiff.apply_success_total", success)
    if failure:
        metrics.increment("trackdiff.apply_failure_total", failure)


# ---------------------------------------------------------------------------
# Module-level entry points
# ---------------------------------------------------------------------------

def apply_track_changes(
    document: DocumentTree,
    changes: Sequence[Change],
    extracted: ExtractedText,
    user: TrackChangeUser | None = None,
    formatting_changes: Sequence[FormattingChange] = (),
    config: TrackDiffConfig | None = None,
) -> TrackChangesResult:
    """Apply *changes* to *document*; see :meth:`TrackChangesApplicator.apply`."""
    return TrackChangesApplicator(config).apply(
        document, changes, extracted, user, formatting_changes
    )


def apply_formatting_track_changes(
    document: DocumentTree,
    formatting_changes: Sequence[FormattingChange],
    extracted: ExtractedText,
    user: TrackChangeUser | None = None,
    config: TrackDiffConfig | None = None,
) -> TrackChangesResult:
    return TrackChangesApplicator(config).apply_formatting(
        document, formatting_changes, extracted, user
    )
