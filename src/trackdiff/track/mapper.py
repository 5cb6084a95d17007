"""Map character-offset changes into tree positions.

Insertions, replacements and formatting changes are translated straight
through the char-to-position index of the modified document.  A deletion's
text does not exist in that document, so it is anchored by searching for
the surviving text captured before it at diff time, falling back to the
index when the context is too short or not found.
"""

from __future__ import annotations

from collections.abc import Sequence

from trackdiff.config import TrackDiffConfig
from trackdiff.diff.changes import get_deletion_search_context, has_sufficient_context
from trackdiff.document.protocols import DocumentTree
from trackdiff.errors import DeletionAnchorNotFoundError, PositionMappingError, TrackDiffError
from trackdiff.models import (
    AnyChange,
    Change,
    ChangeType,
    ExtractedText,
    Modification,
    TextRange,
)
from trackdiff.observability import get_logger

log = get_logger("trackdiff.track.mapper")


class PositionMapper:
    """Turns changes into :class:`~trackdiff.models.Modification` values.

    Parameters
    ----------
    config:
        Supplies the deletion context thresholds.
    """

    def __init__(self, config: TrackDiffConfig | None = None) -> None:
        self._config = config or TrackDiffConfig()

    def map(
        self,
        document: DocumentTree,
        change: AnyChange,
        extracted: ExtractedText,
    ) -> Modification:
        """Map one change.

        Raises
        ------
        PositionMappingError
            An insertion, replacement or formatting change whose offsets
            fall outside the index.
        DeletionAnchorNotFoundError
            A deletion that neither search nor the index could place.
        """
        if isinstance(change, Change) and change.type == ChangeType.DELETION:
            return self._map_deletion(document, change, extracted)
        return self._map_range(change, extracted)

    def map_all(
        self,
        document: DocumentTree,
        changes: Sequence[AnyChange],
        extracted: ExtractedText,
        errors: list[str] | None = None,
    ) -> list[Modification]:
        """Map every change, dropping the ones that fail.

        Each failure is logged and, when *errors* is given, recorded there.
        """
        modifications: list[Modification] = []
        for change in changes:
            try:
                modifications.append(self.map(document, change, extracted))
            except TrackDiffError as exc:
                log.warning(
                    exc.message,
                    extra={
                        "extra_fields": {
                            "op": "map_change",
                            "code": getattr(exc.code, "value", exc.code),
                            **exc.context,
                        }
                    },
                )
                if errors is not None:
                    errors.append(exc.message)
        return modifications

    # ── Ranges ──────────────────────────────────────────────────────────

    def _map_range(self, change: AnyChange, extracted: ExtractedText) -> Modification:
        index_map = extracted.char_to_pos
        start, end = change.char_start, change.char_end
        if (
            start is None
            or end is None
            or not 0 <= start < len(index_map)
            or not 0 < end <= len(index_map)
        ):
            raise PositionMappingError(
                f'Position mapping failed for "{change.content[:30]}..."',
                context={
                    "change_id": change.id,
                    "char_start": start,
                    "char_end": end,
                    "index_length": len(index_map),
                },
            )
        return Modification(
            change=change,
            pm_from=index_map[start],
            pm_to=index_map[end - 1] + 1,
        )

    # ── Deletions ───────────────────────────────────────────────────────

    def _map_deletion(
        self,
        document: DocumentTree,
        change: Change,
        extracted: ExtractedText,
    ) -> Modification:
        cfg = self._config
        search_context: str | None = None
        if has_sufficient_context(change, cfg.min_context_length):
            search_context = get_deletion_search_context(
                change, cfg.search_context_length, cfg.min_context_length
            )
            if search_context:
                matches = document.search(search_context)
                if matches:
                    match = matches[0]
                    return Modification(
                        change=change,
                        pm_from=match.end,
                        pm_to=match.end,
                        is_deletion=True,
                        context_range=TextRange(match.start, match.end),
                    )

        if extracted.char_to_pos:
            anchor = _index_anchor(extracted, change.insert_at)
        else:
            # Everything was deleted: the ghost text opens the first textblock.
            anchor = _first_textblock_start(document)
        if anchor is None:
            raise DeletionAnchorNotFoundError(
                f'Failed to map deletion "{change.content[:30]}..."',
                context={
                    "change_id": change.id,
                    "insert_at": change.insert_at,
                    "search_context": search_context,
                },
            )
        return Modification(change=change, pm_from=anchor, pm_to=anchor, is_deletion=True)


def _index_anchor(extracted: ExtractedText, insert_at: int | None) -> int | None:
    """``char_to_pos[insert_at]``, else one past ``char_to_pos[insert_at - 1]``.

    A synthetic block or table separator maps to a position between nodes
    where no text can go, so a deletion landing on one is anchored at the
    end of the text before it instead.
    """
    if insert_at is None:
        return None
    index_map = extracted.char_to_pos
    if 0 <= insert_at < len(index_map):
        if insert_at > 0 and _is_separator(extracted, insert_at):
            return index_map[insert_at - 1] + 1
        return index_map[insert_at]
    if 0 < insert_at <= len(index_map):
        return index_map[insert_at - 1] + 1
    return None


def _is_separator(extracted: ExtractedText, index: int) -> bool:
    # Separators are whitespace that does not continue the previous text run.
    index_map = extracted.char_to_pos
    return (
        extracted.text[index] in "\n "
        and index_map[index] != index_map[index - 1] + 1
    )


def _first_textblock_start(document: DocumentTree) -> int | None:
    for node, pos in document.descendants():
        if node.is_textblock:
            return pos + 1
    return None


def build_modifications(
    document: DocumentTree,
    changes: Sequence[AnyChange],
    extracted: ExtractedText,
    config: TrackDiffConfig | None = None,
    errors: list[str] | None = None,
) -> list[Modification]:
    """Map *changes* against *document*; see :meth:`PositionMapper.map_all`."""
    return PositionMapper(config).map_all(document, changes, extracted, errors)


def sort_modifications_for_application(modifications: Sequence[Modification]) -> list[Modification]:
    """Stable sort by descending ``pm_from``; never mutates the input."""
    return sorted(modifications, key=lambda m: m.pm_from, reverse=True)
