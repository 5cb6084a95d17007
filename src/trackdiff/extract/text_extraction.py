"""Flatten document trees into plain text with a position index.

All extractors share one traversal so that the text they produce is
identical character for character.  Separators are decided per container:

* a newline goes before a block child unless it is the container's first
  emitted part, or the previous part is empty or already ends in a newline;
* a space goes before a table child unless the previous part is empty or
  ends in a space or newline.

A synthetic separator is indexed at the tree position of the child it
precedes.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from trackdiff.config import DEFAULT_EXCLUDED_MARK_TYPES, TrackDiffConfig
from trackdiff.document.nodes import Node
from trackdiff.document.tree import DEFAULT_SCHEMA
from trackdiff.models import ExtractedText, FormattingSpan, TextRange

BLOCK_TYPES: frozenset[str] = frozenset({
    "paragraph",
    "heading",
    "listItem",
    "bulletList",
    "orderedList",
    "blockquote",
    "codeBlock",
    "horizontalRule",
})
"""Children of these types are preceded by a newline."""

TABLE_TYPES: frozenset[str] = frozenset({
    "table",
    "tableRow",
    "tableCell",
    "tableHeader",
})
"""Children of these types are preceded by a space."""


# ---------------------------------------------------------------------------
# Shared traversal
# ---------------------------------------------------------------------------

class _Extraction:
    """Accumulators for one traversal."""

    __slots__ = ("char_to_pos", "spans", "excluded", "with_formatting")

    def __init__(self, excluded: Iterable[str], with_formatting: bool) -> None:
        self.char_to_pos: list[int] = []
        self.spans: list[list[Any]] = []
        self.excluded = frozenset(excluded)
        self.with_formatting = with_formatting

    def separator(self, pos: int) -> None:
        self.char_to_pos.append(pos)

    def text(self, node: Node, pos: int) -> None:
        start = len(self.char_to_pos)
        self.char_to_pos.extend(range(pos, pos + node.node_size))
        if not self.with_formatting:
            return
        marks = tuple(m for m in node.marks if m.type not in self.excluded)
        if not marks:
            return
        end = len(self.char_to_pos)
        last = self.spans[-1] if self.spans else None
        if last is not None and last[1] == start and last[2] == marks:
            last[1] = end
        else:
            self.spans.append([start, end, marks])

    def result(self, text: str) -> ExtractedText:
        return ExtractedText(
            text=text,
            char_to_pos=tuple(self.char_to_pos),
            formatting=tuple(FormattingSpan(s, e, m) for s, e, m in self.spans),
        )


def _walk(node: Node, content_start: int, state: _Extraction) -> str:
    parts: list[str] = []
    pos = content_start
    for child in node.content:
        name = child.type.name

        if name in BLOCK_TYPES and parts:
            last = parts[-1]
            if last and not last.endswith("\n"):
                parts.append("\n")
                state.separator(pos)

        if name in TABLE_TYPES:
            last = parts[-1] if parts else ""
            if last and not last.endswith((" ", "\n")):
                parts.append(" ")
                state.separator(pos)

        if child.is_text:
            parts.append(child.text)
            state.text(child, pos)
        elif child.is_leaf:
            parts.append("")
        else:
            parts.append(_walk(child, pos + 1, state))
        pos += child.node_size
    return "".join(parts)


def _root(source: Any) -> Node:
    """Accept a node, a live document or a JSON tree."""
    if isinstance(source, Node):
        return source
    if isinstance(source, dict):
        return Node.from_json(source, DEFAULT_SCHEMA, strict=False)
    doc = getattr(source, "doc", None)
    if isinstance(doc, Node):
        return doc
    raise TypeError(f"cannot extract text from {type(source).__name__}")


def _extract(source: Any, excluded: Iterable[str], with_formatting: bool) -> ExtractedText:
    root = _root(source)
    state = _Extraction(excluded, with_formatting)
    if root.is_text:
        state.text(root, 0)
        return state.result(root.text)
    return state.result(_walk(root, 0, state))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_plain_text(source: Any) -> str:
    """Return the plain text of a node, live document or JSON tree."""
    return _extract(source, (), False).text


def extract_with_positions(source: Any) -> ExtractedText:
    """Return text plus a char-to-position index, without formatting."""
    return _extract(source, (), False)


def extract_with_formatting(
    source: Any,
    config: TrackDiffConfig | None = None,
) -> ExtractedText:
    """Return text, the position index and formatting spans.

    Parameters
    ----------
    source:
        A :class:`Node`, a live document or a JSON tree.
    config:
        Supplies ``excluded_mark_types``.  Defaults apply when omitted.

    Returns
    -------
    ExtractedText
        Spans cover maximal runs of identical non-excluded marks.
    """
    excluded = config.excluded_mark_types if config is not None else DEFAULT_EXCLUDED_MARK_TYPES
    return _extract(source, excluded, True)


def extract_context(text: str, position: int, length: int = 30) -> str:
    """Return up to *length* characters before *position*, trimmed."""
    start = max(0, position - length)
    return text[start:position].strip()


def char_to_position(extracted: ExtractedText, index: int) -> int | None:
    """Map a character index to a tree position.

    Indices past the end extrapolate from the last mapped character;
    negative indices, or any index into an empty index, give ``None``.
    """
    index_map = extracted.char_to_pos
    if 0 <= index < len(index_map):
        return index_map[index]
    if index > 0 and index_map and index >= len(index_map):
        last = len(index_map) - 1
        return index_map[last] + (index - last)
    return None


def char_range_to_positions(
    extracted: ExtractedText,
    char_start: int,
    char_end: int,
) -> TextRange | None:
    """Map ``[char_start, char_end)`` to a tree range, or ``None``."""
    index_map = extracted.char_to_pos
    last = char_end - 1
    if char_end <= char_start:
        return None
    if not (0 <= char_start < len(index_map) and 0 <= last < len(index_map)):
        return None
    return TextRange(index_map[char_start], index_map[last] + 1)


