"""The reference live document.

:class:`Document` wraps an immutable root :class:`~trackdiff.document.nodes.Node`
and swaps it out whenever a :class:`~trackdiff.document.transaction.Transaction`
is dispatched.  It satisfies the
:class:`~trackdiff.document.protocols.DocumentTree` protocol that the
mapping, apply and resolve stages are written against.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from trackdiff.document.nodes import Node, ResolvedPos, Schema
from trackdiff.document.transaction import Transaction
from trackdiff.errors import DocumentStructureError
from trackdiff.models import TextRange

DEFAULT_SCHEMA = Schema()


class Document:
    """A mutable handle on an immutable document tree.

    Parameters
    ----------
    doc:
        The root node.  Must be of type ``doc``.
    schema:
        The schema the tree was built with.
    """

    def __init__(self, doc: Node, schema: Schema = DEFAULT_SCHEMA) -> None:
        if doc.type.name != "doc":
            raise DocumentStructureError(
                f"root node must be 'doc', got '{doc.type.name}'",
                context={"node_type": doc.type.name},
            )
        self.doc = doc
        self.schema = schema
        self.version = 0
        self.dispatch_count = 0

    @classmethod
    def from_json(cls, data: dict[str, Any], schema: Schema = DEFAULT_SCHEMA) -> Document:
        return cls(Node.from_json(data, schema), schema)

    def to_json(self) -> dict[str, Any]:
        return self.doc.to_json()

    @property
    def content_size(self) -> int:
        return self.doc.content_size

    @property
    def text_content(self) -> str:
        return self.doc.text_content

    # ── Traversal ───────────────────────────────────────────────────────

    def descendants(self) -> Iterator[tuple[Node, int]]:
        return self.doc.descendants()

    def nodes_between(self, start: int, end: int) -> Iterator[tuple[Node, int]]:
        return self.doc.nodes_between(start, end)

    def resolve(self, pos: int) -> ResolvedPos:
        return self.doc.resolve(pos)

    def text_between(self, start: int, end: int, block_separator: str = "") -> str:
        """Text in ``[start, end)``, with *block_separator* between textblocks."""
        parts: list[str] = []
        first_block = True
        for node, pos in self.nodes_between(start, end):
            if node.is_textblock:
                if not first_block:
                    parts.append(block_separator)
                first_block = False
            elif node.is_text:
                a = max(start, pos) - pos
                b = min(end, pos + node.node_size) - pos
                parts.append(node.text[a:b])
        return "".join(parts)

    def search(self, query: str) -> list[TextRange]:
        """Find every literal occurrence of *query* in document order.

        Matches never span a textblock boundary or an inline leaf.
        """
        if not query:
            return []
        matches: list[TextRange] = []
        for run, run_start in self._text_runs():
            idx = run.find(query)
            while idx != -1:
                matches.append(TextRange(run_start + idx, run_start + idx + len(query)))
                idx = run.find(query, idx + 1)
        return matches

    def _text_runs(self) -> Iterator[tuple[str, int]]:
        for block, pos in self.descendants():
            if not block.is_textblock:
                continue
            run: list[str] = []
            run_start = offset = pos + 1
            for child in block.content:
                if child.is_text:
                    if not run:
                        run_start = offset
                    run.append(child.text)
                elif run:
                    yield "".join(run), run_start
                    run = []
                offset += child.node_size
            if run:
                yield "".join(run), run_start

    def has_mark_type(self, name: str) -> bool:
        return self.schema.has_mark(name)

    # ── Mutation ────────────────────────────────────────────────────────

    def transaction(self) -> Transaction:
        return Transaction(self)

    def dispatch(self, tr: Transaction) -> None:
        """Make *tr*'s working tree the live tree."""
        self.doc = tr.doc
        self.version += 1
        self.dispatch_count += 1

    def __repr__(self) -> str:
        return f"Document(v{self.version}, {self.doc!r})"
