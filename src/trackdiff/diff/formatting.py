"""Detect mark changes over text that is otherwise unchanged.

Only characters inside an ``equal`` run of the character diff are
inspected, so a formatting change can never overlap a content change.
Marks are compared by a normalized key: the mark type alone, except that
links are keyed by ``href`` and text styles and highlights by ``color``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from trackdiff.config import TrackDiffConfig
from trackdiff.models import FormattingChange, FormattingChangeType, FormattingSpan, Mark

from .lcs import DiffKind, diff_chars

MARK_TYPE_LABELS: dict[str, str] = {
    "bold": "Bold",
    "italic": "Italic",
    "underline": "Underline",
    "strike": "Strikethrough",
    "code": "Code",
    "link": "Link",
    "textStyle": "Text Style",
    "highlight": "Highlight",
    "subscript": "Subscript",
    "superscript": "Superscript",
}

_KEY_ATTRS: dict[str, str] = {
    "link": "href",
    "textStyle": "color",
    "highlight": "color",
}


def get_mark_type_label(mark_type: str) -> str:
    """Human-readable name for a mark type; unknown types pass through."""
    return MARK_TYPE_LABELS.get(mark_type, mark_type)


def normalize_mark_key(mark: Mark) -> str:
    """Comparison key for a mark."""
    attr = _KEY_ATTRS.get(mark.type)
    if attr is None:
        return mark.type
    return f"{mark.type}:{mark.attrs.get(attr) or ''}"


# ---------------------------------------------------------------------------
# Unchanged ranges
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UnchangedRange:
    """Text identical in both versions, with its offsets in each."""

    orig_start: int
    orig_end: int
    mod_start: int
    mod_end: int
    text: str


def unchanged_ranges(original_text: str, modified_text: str) -> list[UnchangedRange]:
    """Return the ``equal`` runs of the character diff with their offsets."""
    ranges: list[UnchangedRange] = []
    orig_pos = mod_pos = 0
    for run in diff_chars(original_text, modified_text):
        size = len(run.value)
        if run.kind is DiffKind.EQUAL:
            ranges.append(
                UnchangedRange(orig_pos, orig_pos + size, mod_pos, mod_pos + size, run.value)
            )
            orig_pos += size
            mod_pos += size
        elif run.removed:
            orig_pos += size
        else:
            mod_pos += size
    return ranges


# ---------------------------------------------------------------------------
# Formatting diff
# ---------------------------------------------------------------------------

class _Entry:
    """A pending formatting change in modified-text space."""

    __slots__ = ("type", "key", "mark", "start", "end", "range_index", "old_mark")

    def __init__(
        self,
        type: FormattingChangeType,
        key: str,
        mark: Mark,
        start: int,
        range_index: int,
    ) -> None:
        self.type = type
        self.key = key
        self.mark = mark
        self.start = start
        self.end = start + 1
        self.range_index = range_index
        self.old_mark: Mark | None = None


def compute_formatting_changes(
    original_text: str,
    original_formatting: Sequence[FormattingSpan],
    modified_text: str,
    modified_formatting: Sequence[FormattingSpan],
    config: TrackDiffConfig | None = None,
) -> list[FormattingChange]:
    """Compute formatting changes between two versions.

    Parameters
    ----------
    original_text, original_formatting:
        Text and spans of the original snapshot.
    modified_text, modified_formatting:
        Text and spans of the modified document.
    config:
        Supplies ``min_unchanged_range``, ``preview_length`` and
        ``detect_modified_marks``.

    Returns
    -------
    list[FormattingChange]
        Changes sorted by position with ids ``format-0``, ``format-1``, ...
        Each covers exactly the characters whose mark set differs.
    """
    config = config or TrackDiffConfig()
    entries: list[_Entry] = []

    for index, rng in enumerate(unchanged_ranges(original_text, modified_text)):
        if len(rng.text.strip()) < config.min_unchanged_range:
            continue
        orig_spans = _spans_in(original_formatting, rng.orig_start, rng.orig_end)
        mod_spans = _spans_in(modified_formatting, rng.mod_start, rng.mod_end)
        active: dict[tuple[FormattingChangeType, str], _Entry] = {}

        for offset in range(len(rng.text)):
            orig_keyed = _keyed(orig_spans, rng.orig_start + offset)
            mod_keyed = _keyed(mod_spans, rng.mod_start + offset)

            present: dict[tuple[FormattingChangeType, str], Mark] = {}
            for key, mark in mod_keyed.items():
                if key not in orig_keyed:
                    present[(FormattingChangeType.FORMAT_ADDED, key)] = mark
            for key, mark in orig_keyed.items():
                if key not in mod_keyed:
                    present[(FormattingChangeType.FORMAT_REMOVED, key)] = mark

            pos = rng.mod_start + offset
            for run_key in [k for k in active if k not in present]:
                entries.append(active.pop(run_key))
            for run_key, mark in present.items():
                if run_key in active:
                    active[run_key].end = pos + 1
                else:
                    active[run_key] = _Entry(run_key[0], run_key[1], mark, pos, index)

        entries.extend(active.values())

    entries.sort(key=lambda e: e.start)
    entries = _merge(entries)
    if config.detect_modified_marks:
        entries = _fold_modified(entries)

    changes: list[FormattingChange] = []
    for n, entry in enumerate(entries):
        affected = modified_text[entry.start:entry.end]
        old_attrs: dict[str, Any] | None = None
        new_attrs: dict[str, Any] | None = None
        if entry.type is FormattingChangeType.FORMAT_ADDED:
            new_attrs = dict(entry.mark.attrs)
        elif entry.type is FormattingChangeType.FORMAT_REMOVED:
            old_attrs = dict(entry.mark.attrs)
        else:
            old_attrs = dict(entry.old_mark.attrs) if entry.old_mark else {}
            new_attrs = dict(entry.mark.attrs)
        changes.append(
            FormattingChange(
                id=f"format-{n}",
                type=entry.type,
                mark_type=entry.mark.type,
                content=affected.strip()[:config.preview_length],
                char_start=entry.start,
                char_end=entry.end,
                old_attrs=old_attrs,
                new_attrs=new_attrs,
            )
        )
    return changes


def _spans_in(
    spans: Sequence[FormattingSpan],
    start: int,
    end: int,
) -> list[FormattingSpan]:
    return [s for s in spans if s.char_start < end and s.char_end > start]


def _keyed(spans: Sequence[FormattingSpan], pos: int) -> dict[str, Mark]:
    keyed: dict[str, Mark] = {}
    for span in spans:
        if span.char_start <= pos < span.char_end:
            for mark in span.marks:
                keyed.setdefault(normalize_mark_key(mark), mark)
    return keyed


def _merge(entries: list[_Entry]) -> list[_Entry]:
    """Fold entries of the same change and key that overlap or touch.

    Touching entries from different unchanged ranges stay separate: a
    deletion may be anchored at the seam between them.
    """
    result: list[_Entry] = []
    last_by_key: dict[tuple[FormattingChangeType, str], _Entry] = {}
    for entry in entries:
        current = last_by_key.get((entry.type, entry.key))
        if current is not None and (
            entry.start < current.end
            or (entry.start == current.end and entry.range_index == current.range_index)
        ):
            current.end = max(current.end, entry.end)
            continue
        result.append(entry)
        last_by_key[(entry.type, entry.key)] = entry
    return result


def _fold_modified(entries: list[_Entry]) -> list[_Entry]:
    """Pair removed and added marks of one type over the same range."""
    result: list[_Entry] = []
    removed: dict[tuple[str, int, int], _Entry] = {}
    for entry in entries:
        if entry.type is FormattingChangeType.FORMAT_REMOVED:
            removed[(entry.mark.type, entry.start, entry.end)] = entry
    paired: set[int] = set()
    for entry in entries:
        if entry.type is FormattingChangeType.FORMAT_ADDED:
            old = removed.get((entry.mark.type, entry.start, entry.end))
            if old is not None and id(old) not in paired:
                paired.add(id(old))
                entry.type = FormattingChangeType.FORMAT_MODIFIED
                entry.old_mark = old.mark
        result.append(entry)
    return [e for e in result if id(e) not in paired]
