"""Batched mutations against a :class:`~trackdiff.document.tree.Document`.

A :class:`Transaction` accumulates edits on a private working tree.  The
live document only changes when :meth:`Transaction.commit` dispatches the
whole batch at once.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from trackdiff.document.nodes import Node, join_text
from trackdiff.errors import DocumentStructureError, InvalidPositionError
from trackdiff.models import Mark

if TYPE_CHECKING:
    from trackdiff.document.tree import Document


class Transaction:
    """A pending mutation set.

    Attributes
    ----------
    doc:
        The working tree, reflecting every step applied so far.  Positions
        passed to later steps refer to this tree.
    steps:
        Names of the steps applied, in order.
    """

    def __init__(self, document: Document) -> None:
        self._document = document
        self.schema = document.schema
        self.doc: Node = document.doc
        self.steps: list[str] = []

    @property
    def doc_changed(self) -> bool:
        return self.doc is not self._document.doc

    # ── Marks ───────────────────────────────────────────────────────────

    def add_mark(self, start: int, end: int, mark: Mark) -> Transaction:
        """Add *mark* to every text node in ``[start, end)``."""
        if not self.schema.has_mark(mark.type):
            raise DocumentStructureError(
                f"mark type '{mark.type}' is not in the schema",
                context={"marks": [mark.type]},
            )
        self._check_range(start, end)
        self.doc = _map_text(
            self.doc, start, end, lambda marks: self.schema.add_to_set(marks, mark)
        )
        self.steps.append("addMark")
        return self

    def remove_mark(self, start: int, end: int, mark: Mark | str) -> Transaction:
        """Remove a mark from every text node in ``[start, end)``.

        A :class:`Mark` removes only marks equal to it; a string removes
        every mark of that type.
        """
        self._check_range(start, end)
        if isinstance(mark, str):
            def keep(m: Mark) -> bool:
                return m.type != mark
        else:
            def keep(m: Mark) -> bool:
                return m != mark
        self.doc = _map_text(
            self.doc, start, end, lambda marks: tuple(m for m in marks if keep(m))
        )
        self.steps.append("removeMark")
        return self

    # ── Structure ───────────────────────────────────────────────────────

    def insert(self, pos: int, node: Node) -> Transaction:
        """Insert *node* at *pos*."""
        return self.replace(pos, pos, [node])

    def delete(self, start: int, end: int) -> Transaction:
        """Delete ``[start, end)``.  The range must stay within one parent."""
        return self.replace(start, end, [])

    def replace(self, start: int, end: int, nodes: Sequence[Node]) -> Transaction:
        self._check_range(start, end)
        self.doc = _replace(self.doc, start, end, list(nodes))
        self.steps.append("replace")
        return self

    # ── Dispatch ────────────────────────────────────────────────────────

    def commit(self) -> None:
        """Dispatch the batch to the owning document."""
        self._document.dispatch(self)

    def _check_range(self, start: int, end: int) -> None:
        size = self.doc.content_size
        if not 0 <= start <= end <= size:
            raise InvalidPositionError(
                f"range [{start}, {end}) outside document of size {size}",
                context={"start": start, "end": end, "doc_size": size},
            )


# ---------------------------------------------------------------------------
# Tree rewriting
# ---------------------------------------------------------------------------

def _map_text(
    node: Node,
    start: int,
    end: int,
    fn: Callable[[tuple[Mark, ...]], tuple[Mark, ...]],
) -> Node:
    """Rewrite the marks of text inside ``[start, end)`` of *node*'s content."""
    out: list[Node] = []
    offset = 0
    for child in node.content:
        size = child.node_size
        child_end = offset + size
        if child_end <= start or offset >= end or (child.is_leaf and not child.is_text):
            out.append(child)
        elif child.is_text:
            a = max(start, offset) - offset
            b = min(end, child_end) - offset
            if a > 0:
                out.append(child.cut(0, a))
            middle = child.cut(a, b)
            out.append(middle.mark(fn(middle.marks)))
            if b < size:
                out.append(child.cut(b, size))
        else:
            out.append(_map_text(child, start - offset - 1, end - offset - 1, fn))
        offset = child_end
    return node.copy(join_text(out))


def _replace(node: Node, start: int, end: int, inserted: list[Node]) -> Node:
    """Replace ``[start, end)`` of *node*'s content with *inserted*."""
    offset = 0
    for i, child in enumerate(node.content):
        child_end = offset + child.node_size
        if not child.is_leaf and offset < start and end < child_end:
            new_child = _replace(child, start - offset - 1, end - offset - 1, inserted)
            return node.copy(node.content[:i] + (new_child,) + node.content[i + 1:])
        offset = child_end

    for new in inserted:
        accepts = "inline" if new.is_inline else "block"
        if node.type.content != accepts:
            raise InvalidPositionError(
                f"'{node.type.name}' cannot hold {accepts} node '{new.type.name}'",
                context={"pos": start, "reason": "content mismatch"},
            )

    left: list[Node] = []
    right: list[Node] = []
    offset = 0
    for child in node.content:
        size = child.node_size
        child_end = offset + size
        if child_end <= start:
            left.append(child)
        elif offset >= end:
            right.append(child)
        elif child.is_text:
            if offset < start:
                left.append(child.cut(0, start - offset))
            if child_end > end:
                right.append(child.cut(end - offset, size))
        elif offset < start or child_end > end:
            raise InvalidPositionError(
                f"range [{start}, {end}) cuts through '{child.type.name}'",
                context={"start": start, "end": end, "reason": "crosses block boundary"},
            )
        offset = child_end
    return node.copy(join_text([*left, *inserted, *right]))
