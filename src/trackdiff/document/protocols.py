"""Capabilities the diff pipeline needs from a host document layer.

The mapping, apply and resolve stages only talk to these protocols, so
any editor model that can walk its tree, search text and batch mutations
can host tracked changes.  :class:`~trackdiff.document.tree.Document` is
the reference implementation.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any, Protocol, runtime_checkable

from trackdiff.models import Mark, TextRange


@runtime_checkable
class TreeNode(Protocol):
    """A node as seen by the extractor and the applicator."""

    @property
    def is_text(self) -> bool: ...

    @property
    def is_block(self) -> bool: ...

    @property
    def is_textblock(self) -> bool: ...

    @property
    def node_size(self) -> int: ...

    text: str | None
    marks: tuple[Mark, ...]
    content: tuple[Any, ...]


@runtime_checkable
class ResolvedPosition(Protocol):
    """A position with the siblings touching it."""

    node_before: Any | None
    node_after: Any | None

    def marks(self) -> Sequence[Mark]: ...


@runtime_checkable
class MutationBuilder(Protocol):
    """A pending batch of edits with exactly one commit."""

    doc: Any
    schema: Any

    def add_mark(self, start: int, end: int, mark: Mark) -> Any: ...

    def remove_mark(self, start: int, end: int, mark: Mark | str) -> Any: ...

    def insert(self, pos: int, node: Any) -> Any: ...

    def delete(self, start: int, end: int) -> Any: ...

    def commit(self) -> None: ...


@runtime_checkable
class DocumentTree(Protocol):
    """A live document that can be traversed, searched and mutated."""

    doc: Any
    schema: Any

    def descendants(self) -> Iterator[tuple[Any, int]]: ...

    def nodes_between(self, start: int, end: int) -> Iterator[tuple[Any, int]]: ...

    def resolve(self, pos: int) -> ResolvedPosition: ...

    def search(self, query: str) -> list[TextRange]: ...

    def has_mark_type(self, name: str) -> bool: ...

    def transaction(self) -> MutationBuilder: ...
