"""Classify a character diff into content changes.

Walks the runs of :func:`~trackdiff.diff.lcs.diff_chars` while tracking how
much of the modified text has been consumed, and emits one
:class:`~trackdiff.models.Change` per insertion, deletion or replacement.
Whitespace-only runs are treated as layout noise and skipped.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from trackdiff.config import TrackDiffConfig
from trackdiff.extract.text_extraction import extract_context
from trackdiff.models import (
    Change,
    ChangeType,
    DiffSummary,
    FormattingChange,
)

from .lcs import DiffKind, DiffRun, diff_chars

DEFAULT_CONTEXT_LENGTH = 30
MIN_CONTEXT_LENGTH = 5
SEARCH_CONTEXT_LENGTH = 20


def compute_changes(
    original_text: str,
    modified_text: str,
    config: TrackDiffConfig | None = None,
) -> list[Change]:
    """Compute content changes between two texts.

    Parameters
    ----------
    original_text:
        Text of the original snapshot.
    modified_text:
        Text of the modified (live) document.
    config:
        Supplies ``context_length`` for deletions.

    Returns
    -------
    list[Change]
        Changes in text order with ids ``change-0``, ``change-1``, ...
        Insertions and replacements are positioned in the modified text
        by ``char_start``/``char_end``; deletions by ``insert_at``.
    """
    context_length = config.context_length if config is not None else DEFAULT_CONTEXT_LENGTH
    runs = diff_chars(original_text, modified_text)
    changes: list[Change] = []
    modified_index = 0
    i = 0

    while i < len(runs):
        run = runs[i]

        if run.kind is DiffKind.EQUAL:
            modified_index += len(run.value)
            i += 1
            continue

        if not run.value.strip():
            if run.added:
                modified_index += len(run.value)
            i += 1
            continue

        following = runs[i + 1] if i + 1 < len(runs) else None
        if run.removed and following is not None and following.added and following.value.strip():
            changes.append(_replacement(run, following, modified_index, len(changes)))
            modified_index += len(following.value)
            i += 2
            continue

        if run.added:
            changes.append(_insertion(run, modified_index, len(changes)))
            modified_index += len(run.value)
        else:
            changes.append(
                Change(
                    id=f"change-{len(changes)}",
                    type=ChangeType.DELETION,
                    content=run.value.strip(),
                    insert_at=modified_index,
                    context_before=extract_context(modified_text, modified_index, context_length),
                )
            )
        i += 1

    return changes


def _leading_whitespace(value: str) -> int:
    return len(value) - len(value.lstrip())


def _insertion(run: DiffRun, modified_index: int, n: int) -> Change:
    text = run.value.strip()
    start = modified_index + _leading_whitespace(run.value)
    return Change(
        id=f"change-{n}",
        type=ChangeType.INSERTION,
        content=text,
        char_start=start,
        char_end=start + len(text),
    )


def _replacement(removed: DiffRun, added: DiffRun, modified_index: int, n: int) -> Change:
    text = added.value.strip()
    start = modified_index + _leading_whitespace(added.value)
    return Change(
        id=f"change-{n}",
        type=ChangeType.REPLACEMENT,
        content=text,
        old_content=removed.value.strip(),
        char_start=start,
        char_end=start + len(text),
    )


# ---------------------------------------------------------------------------
# Helpers over change lists
# ---------------------------------------------------------------------------

def sort_changes_for_application(changes: Sequence[Change]) -> list[Change]:
    """Return a new list ordered by descending effective position.

    The sort is stable, so changes sharing a position keep their relative
    order.  Applying from the end of the document backwards keeps every
    not-yet-applied position valid.
    """
    return sorted(changes, key=lambda c: c.position, reverse=True)


def has_sufficient_context(change: Change, min_length: int = MIN_CONTEXT_LENGTH) -> bool:
    """True for deletions whose ``context_before`` is long enough to search."""
    return (
        change.type == ChangeType.DELETION
        and change.context_before is not None
        and len(change.context_before) >= min_length
    )


def get_deletion_search_context(
    change: Change,
    max_length: int = SEARCH_CONTEXT_LENGTH,
    min_length: int = MIN_CONTEXT_LENGTH,
) -> str | None:
    """Return the trailing ``max_length`` characters of ``context_before``.

    Returns ``None`` when the context is missing or shorter than
    *min_length*.
    """
    context = change.context_before
    if not context or len(context) < min_length:
        return None
    return context[max(0, len(context) - max_length):]


def filter_changes_by_type(changes: Iterable[Change], type: ChangeType | str) -> list[Change]:
    wanted = ChangeType(type)
    return [c for c in changes if c.type == wanted]


def compute_diff_summary(
    changes: Iterable[Change],
    formatting_changes: Sequence[FormattingChange] = (),
) -> DiffSummary:
    """Count changes per category."""
    summary = DiffSummary(formatting_changes=len(formatting_changes))
    for change in changes:
        if change.type == ChangeType.INSERTION:
            summary.insertions += 1
        elif change.type == ChangeType.DELETION:
            summary.deletions += 1
        elif change.type == ChangeType.REPLACEMENT:
            summary.replacements += 1
    return summary
