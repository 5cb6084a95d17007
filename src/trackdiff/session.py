"""Comparison session: the short-lived value threaded through one comparison.

A :class:`ComparisonSession` waits for two independent load signals, the
original snapshot and the modified (live) document.  Once both have fired
it diffs them, annotates the live document with tracked changes, and then
serves approve/reject calls against it.

Usage::

    from trackdiff import ComparisonSession

    session = ComparisonSession()
    session.load_original("Hello world")
    session.load_modified("Hello beautiful world")
    outcome = session.run()
    session.approve(outcome.changes[0].id)
"""

from __future__ import annotations

import dataclasses
import json
import sys
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from trackdiff.config import TrackDiffConfig
from trackdiff.diff import compute_changes, compute_diff_summary, compute_formatting_changes
from trackdiff.document import Document, MarkdownLoader, Node
from trackdiff.errors import SessionPendingError
from trackdiff.extract import extract_with_formatting
from trackdiff.models import (
    Change,
    DiffSummary,
    ExtractedText,
    FormattingChange,
    TextRange,
    TrackChangesResult,
    TrackChangeUser,
)
from trackdiff.observability import NoopMetricsHook, get_logger, set_log_level
from trackdiff.track import ResolutionEngine, TrackChangesApplicator, locate_change

log = get_logger("trackdiff.session")


class SessionState(str, Enum):
    """Lifecycle of a :class:`ComparisonSession`."""

    PENDING = "pending"
    """At least one of the two snapshots has not loaded yet."""

    READY = "ready"
    """Both snapshots are loaded; the comparison has not run."""

    APPLIED = "applied"
    """Tracked changes are in the live document."""


@dataclass
class ComparisonOutcome:
    """Everything one comparison produced."""

    changes: list[Change] = field(default_factory=list)
    formatting_changes: list[FormattingChange] = field(default_factory=list)
    summary: DiffSummary = field(default_factory=DiffSummary)
    result: TrackChangesResult = field(default_factory=TrackChangesResult)


class ComparisonSession:
    """Diff two document versions and manage the resulting tracked changes.

    Parameters
    ----------
    config:
        Comparison configuration.  Defaults apply when omitted.
    user:
        Author recorded on annotations.  Defaults to
        ``config.default_user``.
    auto_run:
        Run the comparison as soon as both snapshots have loaded.
    on_complete:
        Called with the :class:`ComparisonOutcome` after every run.
    """

    def __init__(
        self,
        config: TrackDiffConfig | None = None,
        *,
        user: TrackChangeUser | None = None,
        auto_run: bool = False,
        on_complete: Callable[[ComparisonOutcome], Any] | None = None,
    ) -> None:
        self._config = config or TrackDiffConfig()
        if self._config.log_level is not None:
            set_log_level(self._config.log_level)
        self._metrics = (
            self._config.metrics if self._config.metrics is not None else NoopMetricsHook()
        )
        self._user = user
        self._auto_run = auto_run
        self._on_complete = on_complete
        self._applicator = TrackChangesApplicator(self._config)
        self._resolver = ResolutionEngine(self._config)

        self._original: ExtractedText | None = None
        self._document: Document | None = None
        self._outcome: ComparisonOutcome | None = None
        self._pending: dict[str, Change | FormattingChange] = {}

    # ------------------------------------------------------------------
    # Load signals
    # ------------------------------------------------------------------

    @property
    def original_loaded(self) -> bool:
        return self._original is not None

    @property
    def modified_loaded(self) -> bool:
        return self._document is not None

    @property
    def state(self) -> SessionState:
        if not (self.original_loaded and self.modified_loaded):
            return SessionState.PENDING
        if self._outcome is None:
            return SessionState.READY
        return SessionState.APPLIED

    @property
    def document(self) -> Document | None:
        """The live document annotations are applied to."""
        return self._document

    def load_original(self, source: Any) -> None:
        """Capture the original snapshot.

        *source* may be Markdown text, a JSON tree, a :class:`Node` or a
        :class:`Document`.  Its text is extracted immediately, so later
        edits to *source* do not affect the comparison.
        """
        root = source
        if isinstance(source, str):
            root = MarkdownLoader().load(source).doc
        self._original = extract_with_formatting(root, self._config)
        self._outcome = None
        self._signal("original")

    def load_modified(self, source: Any) -> None:
        """Set the live document.

        *source* may be Markdown text, a JSON tree, a :class:`Node` or a
        :class:`Document`.  A :class:`Document` is annotated in place;
        anything else is wrapped in a new one.
        """
        if isinstance(source, Document):
            document = source
        elif isinstance(source, str):
            document = MarkdownLoader().load(source)
        elif isinstance(source, Node):
            document = Document(source)
        else:
            document = Document.from_json(source)
        self._document = document
        self._outcome = None
        self._signal("modified")

    def _signal(self, which: str) -> None:
        log.debug(
            f"{which} snapshot loaded",
            extra={"extra_fields": {"op": "load", "state": self.state.value}},
        )
        if self._auto_run and self.state is SessionState.READY:
            self.run()

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def run(self) -> ComparisonOutcome:
        """Diff both snapshots and annotate the live document.

        Returns the existing outcome when the comparison has already run
        for the loaded snapshots.

        Raises
        ------
        SessionPendingError
            If either snapshot has not loaded.
        """
        if self._original is None or self._document is None:
            raise SessionPendingError(
                "comparison requested before both snapshots loaded",
                context={
                    "original_loaded": self.original_loaded,
                    "modified_loaded": self.modified_loaded,
                },
            )
        if self._outcome is not None:
            return self._outcome

        original = self._original
        document = self._document
        t0 = time.monotonic()
        modified = extract_with_formatting(document, self._config)
        changes = compute_changes(original.text, modified.text, self._config)
        formatting_changes = compute_formatting_changes(
            original.text,
            original.formatting,
            modified.text,
            modified.formatting,
            self._config,
        )
        self._metrics.timing("trackdiff.diff_duration_ms", (time.monotonic() - t0) * 1000)
        _emit_change_metrics(self._metrics, changes, formatting_changes)

        if self._config.debug_dump_changes:
            print(
                "[trackdiff] Computed changes:",
                json.dumps(
                    {
                        "changes": [dataclasses.asdict(c) for c in changes],
                        "formatting_changes": [dataclasses.asdict(c) for c in formatting_changes],
                    },
                    indent=2,
                    ensure_ascii=False,
                ),
                file=sys.stderr,
            )

        if self._config.settle_delay_seconds > 0:
            time.sleep(self._config.settle_delay_seconds)

        result = self._applicator.apply(
            document,
            changes,
            modified,
            user=self._user,
            formatting_changes=formatting_changes,
        )
        outcome = ComparisonOutcome(
            changes=changes,
            formatting_changes=formatting_changes,
            summary=compute_diff_summary(changes, formatting_changes),
            result=result,
        )
        self._outcome = outcome
        self._pending = {c.id: c for c in [*changes, *formatting_changes]}
        self._report_pending()

        if self._on_complete is not None:
            self._on_complete(outcome)
        return outcome

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @property
    def pending_changes(self) -> list[Change | FormattingChange]:
        """Changes not yet approved or rejected, in diff order."""
        return list(self._pending.values())

    def approve(self, change_id: str) -> TrackChangesResult:
        return self._resolve(change_id, approve=True)

    def reject(self, change_id: str) -> TrackChangesResult:
        return self._resolve(change_id, approve=False)

    def approve_all(self) -> TrackChangesResult:
        result = self._resolver.resolve_all(self._require_document(), "approve")
        self._pending.clear()
        self._report_pending()
        return result

    def reject_all(self) -> TrackChangesResult:
        result = self._resolver.resolve_all(self._require_document(), "reject")
        self._pending.clear()
        self._report_pending()
        return result

    def locate(self, change_id: str) -> TextRange | None:
        """Tree range currently covered by *change_id*'s annotations."""
        change = self._pending.get(change_id)
        content = change.content if change is not None else None
        return locate_change(self._require_document(), change_id, content, self._config)

    def summary(self) -> DiffSummary:
        """Counts over the changes still pending."""
        changes = [c for c in self._pending.values() if isinstance(c, Change)]
        formatting = [c for c in self._pending.values() if isinstance(c, FormattingChange)]
        return compute_diff_summary(changes, formatting)

    def _resolve(self, change_id: str, *, approve: bool) -> TrackChangesResult:
        document = self._require_document()
        if approve:
            result = self._resolver.approve(document, change_id)
        else:
            result = self._resolver.reject(document, change_id)
        self._pending.pop(change_id, None)
        self._report_pending()
        return result

    def _report_pending(self) -> None:
        self._metrics.gauge("trackdiff.pending_changes", len(self._pending))

    def _require_document(self) -> Document:
        if self._document is None:
            raise SessionPendingError(
                "no modified document loaded",
                context={
                    "original_loaded": self.original_loaded,
                    "modified_loaded": False,
                },
            )
        return self._document


def _emit_change_metrics(
    metrics: Any,
    changes: list[Change],
    formatting_changes: list[FormattingChange],
) -> None:
    """Emit ``changes_total`` and ``formatting_changes_total`` counters by type."""
    counts: Counter[str] = Counter(c.type.value for c in changes)
    for change_type, count in counts.items():
        metrics.increment("trackdiff.changes_total", count, tags={"type": change_type})
    format_counts: Counter[str] = Counter(c.type.value for c in formatting_changes)
    for change_type, count in format_counts.items():
        metrics.increment(
            "trackdiff.formatting_changes_total", count, tags={"type": change_type},
        )
