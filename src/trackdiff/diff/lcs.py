"""Character-level diff between two texts.

Uses Myers' O(ND) shortest-edit-script search, which finds a longest common
subsequence of characters without materialising an O(NM) table.  Ties
between extending a removal and extending an insertion are broken in favour
of the removal unless the insertion path has advanced strictly further
through the old text, so run boundaries are deterministic.

Two normalisations are applied to the raw edit script:

* every gap between two equal runs becomes exactly one ``removed`` run
  followed by one ``added`` run;
* an equal run sandwiched between two gaps, and no longer than the larger
  side of either gap, is folded into its neighbours and the folded gap
  gives its common prefix and suffix back to the equal runs.  Single stray
  characters inside a rewritten word therefore do not split one
  replacement into two, while a fold that would turn a plain deletion or
  insertion into a replacement is skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DiffKind(str, Enum):
    """Run categories of a character diff."""

    EQUAL = "equal"
    REMOVED = "removed"
    ADDED = "added"


@dataclass(frozen=True)
class DiffRun:
    """A maximal run of characters with the same :class:`DiffKind`."""

    kind: DiffKind
    value: str

    @property
    def added(self) -> bool:
        return self.kind is DiffKind.ADDED

    @property
    def removed(self) -> bool:
        return self.kind is DiffKind.REMOVED


def diff_chars(old: str, new: str) -> list[DiffRun]:
    """Diff *old* against *new* character by character.

    Parameters
    ----------
    old:
        The original text.
    new:
        The modified text.

    Returns
    -------
    list[DiffRun]
        Runs in text order.  Concatenating the ``equal`` and ``removed``
        values yields *old*; concatenating ``equal`` and ``added`` yields
        *new*.  Identical inputs give a single ``equal`` run, and two empty
        inputs give ``[]``.
    """
    if not old and not new:
        return []
    script = _myers(old, new)
    segments = _coalesce(script, old, new)
    segments = _absorb_short_equalities(segments)

    runs: list[DiffRun] = []
    for segment in segments:
        if len(segment) == 1:
            runs.append(DiffRun(DiffKind.EQUAL, segment[0]))
            continue
        removed, added = segment
        if removed:
            runs.append(DiffRun(DiffKind.REMOVED, removed))
        if added:
            runs.append(DiffRun(DiffKind.ADDED, added))
    return runs


# ---------------------------------------------------------------------------
# Myers search
# ---------------------------------------------------------------------------

class _Component:
    """One step of an edit path, linked back to its predecessor."""

    __slots__ = ("count", "added", "removed", "previous")

    def __init__(
        self,
        count: int,
        added: bool,
        removed: bool,
        previous: _Component | None,
    ) -> None:
        self.count = count
        self.added = added
        self.removed = removed
        self.previous = previous


class _Path:
    """Furthest-reaching path on one diagonal."""

    __slots__ = ("old_pos", "last")

    def __init__(self, old_pos: int, last: _Component | None) -> None:
        self.old_pos = old_pos
        self.last = last


def _myers(old: str, new: str) -> list[tuple[bool, bool, int]]:
    """Return the edit script as ``(added, removed, count)`` steps."""
    old_len = len(old)
    new_len = len(new)
    max_edit = old_len + new_len

    # Diagonal k holds paths where old_pos - new_pos == k.
    best: dict[int, _Path | None] = {0: _Path(-1, None)}
    new_pos = _extract_common(best[0], new, old, 0)
    if best[0].old_pos + 1 >= old_len and new_pos + 1 >= new_len:
        return _script(best[0].last)

    min_diag = -max_edit - 1
    max_diag = max_edit + 1
    edit_length = 1
    while edit_length <= max_edit:
        diag = max(min_diag, -edit_length)
        while diag <= min(max_diag, edit_length):
            remove_path = best.get(diag - 1)
            add_path = best.get(diag + 1)
            if remove_path is not None:
                best[diag - 1] = None

            can_add = False
            if add_path is not None:
                add_new_pos = add_path.old_pos - diag
                can_add = 0 <= add_new_pos < new_len
            can_remove = remove_path is not None and remove_path.old_pos + 1 < old_len

            if not can_add and not can_remove:
                best[diag] = None
                diag += 2
                continue

            if not can_remove or (can_add and remove_path.old_pos + 1 < add_path.old_pos):
                path = _add_to_path(add_path, added=True, removed=False, old_step=0)
            else:
                path = _add_to_path(remove_path, added=False, removed=True, old_step=1)

            new_pos = _extract_common(path, new, old, diag)
            if path.old_pos + 1 >= old_len and new_pos + 1 >= new_len:
                return _script(path.last)

            best[diag] = path
            if path.old_pos + 1 >= old_len:
                max_diag = min(max_diag, diag - 1)
            if new_pos + 1 >= new_len:
                min_diag = max(min_diag, diag + 1)
            diag += 2
        edit_length += 1

    # Unreachable: an edit script of length old_len + new_len always exists.
    raise AssertionError("edit script search did not terminate")


def _add_to_path(path: _Path, *, added: bool, removed: bool, old_step: int) -> _Path:
    last = path.last
    if last is not None and last.added == added and last.removed == removed:
        component = _Component(last.count + 1, added, removed, last.previous)
    else:
        component = _Component(1, added, removed, last)
    return _Path(path.old_pos + old_step, component)


def _extract_common(path: _Path, new: str, old: str, diag: int) -> int:
    """Follow the diagonal while characters match; return the new position."""
    old_pos = path.old_pos
    new_pos = old_pos - diag
    common = 0
    while (
        new_pos + 1 < len(new)
        and old_pos + 1 < len(old)
        and new[new_pos + 1] == old[old_pos + 1]
    ):
        new_pos += 1
        old_pos += 1
        common += 1
    if common:
        path.last = _Component(common, False, False, path.last)
    path.old_pos = old_pos
    return new_pos


def _script(last: _Component | None) -> list[tuple[bool, bool, int]]:
    steps: list[tuple[bool, bool, int]] = []
    while last is not None:
        steps.append((last.added, last.removed, last.count))
        last = last.previous
    steps.reverse()
    return steps


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

# A segment is either ``(equal_text,)`` or ``(removed_text, added_text)``.
_Segment = tuple[str, ...]


def _coalesce(script: list[tuple[bool, bool, int]], old: str, new: str) -> list[_Segment]:
    segments: list[_Segment] = []
    old_pos = new_pos = 0
    removed: list[str] = []
    added: list[str] = []

    def flush() -> None:
        if removed or added:
            segments.append(("".join(removed), "".join(added)))
            removed.clear()
            added.clear()

    for is_added, is_removed, count in script:
        if is_removed:
            removed.append(old[old_pos:old_pos + count])
            old_pos += count
        elif is_added:
            added.append(new[new_pos:new_pos + count])
            new_pos += count
        else:
            flush()
            value = new[new_pos:new_pos + count]
            if segments and len(segments[-1]) == 1:
                segments[-1] = (segments[-1][0] + value,)
            else:
                segments.append((value,))
            old_pos += count
            new_pos += count
    flush()
    return segments


def _absorb_short_equalities(segments: list[_Segment]) -> list[_Segment]:
    changed = True
    while changed:
        changed = False
        for i in range(1, len(segments) - 1):
            before, equal, after = segments[i - 1], segments[i], segments[i + 1]
            if len(equal) != 1 or len(before) != 2 or len(after) != 2:
                continue
            size = len(equal[0])
            if size > max(map(len, before)) or size > max(map(len, after)):
                continue
            prefix, removed, added, suffix = _strip_common(
                before[0] + equal[0] + after[0],
                before[1] + equal[0] + after[1],
            )
            # Unless both gaps rewrite text, the fold must strip back down to
            # a one-sided gap; a plain deletion never becomes a replacement.
            if not (all(before) and all(after)) and removed and added:
                continue
            # Each fold leaves one gap fewer, so the loop terminates.
            segments = _join_equalities(
                [*segments[:i - 1], (prefix,), (removed, added), (suffix,), *segments[i + 2:]]
            )
            changed = True
            break
    return segments


def _strip_common(removed: str, added: str) -> tuple[str, str, str, str]:
    """Split a gap into ``(prefix, removed, added, suffix)``."""
    head = 0
    while head < len(removed) and head < len(added) and removed[head] == added[head]:
        head += 1
    tail = 0
    while (
        tail < len(removed) - head
        and tail < len(added) - head
        and removed[-1 - tail] == added[-1 - tail]
    ):
        tail += 1
    return (
        removed[:head],
        removed[head:len(removed) - tail],
        added[head:len(added) - tail],
        removed[len(removed) - tail:],
    )


def _join_equalities(segments: list[_Segment]) -> list[_Segment]:
    joined: list[_Segment] = []
    for segment in segments:
        if not any(segment):
            continue
        if len(segment) == 1 and joined and len(joined[-1]) == 1:
            joined[-1] = (joined[-1][0] + segment[0],)
        else:
            joined.append(segment)
    return joined
