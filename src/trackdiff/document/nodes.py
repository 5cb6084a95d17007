"""Schema and immutable nodes for the reference document tree.

Positions follow the usual rich-text editor token model:

* the root's content starts at position ``0``;
* a text node of length ``n`` occupies ``n`` positions;
* a leaf node (rule, hard break, image) occupies ``1``;
* any other node occupies ``2 + content size`` and its content starts one
  position after the node itself.

Nodes are never mutated.  Every edit builds a new tree that shares
untouched subtrees with the old one.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from trackdiff.errors import DocumentStructureError, InvalidPositionError
from trackdiff.models import Mark

# ---------------------------------------------------------------------------
# Types and schema
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NodeType:
    """Static description of a node type.

    ``content`` is what the node may hold: ``"block"`` children, ``"inline"``
    children (text and inline leaves), or ``"none"`` for leaves.
    """

    name: str
    group: Literal["block", "inline"] = "block"
    content: Literal["block", "inline", "none"] = "block"

    @property
    def is_text(self) -> bool:
        return self.name == "text"

    @property
    def is_leaf(self) -> bool:
        return self.content == "none"

    @property
    def is_block(self) -> bool:
        return self.group == "block"

    @property
    def is_inline(self) -> bool:
        return self.group == "inline"

    @property
    def is_textblock(self) -> bool:
        return self.is_block and self.content == "inline"


@dataclass(frozen=True)
class MarkType:
    """Static description of a mark type.

    An ``exclusive`` mark replaces any mark of the same type when added;
    a non-exclusive one may appear several times with different attrs.
    """

    name: str
    exclusive: bool = True


DEFAULT_NODE_TYPES: list[NodeType] = [
    NodeType("doc", "block", "block"),
    NodeType("paragraph", "block", "inline"),
    NodeType("heading", "block", "inline"),
    NodeType("blockquote", "block", "block"),
    NodeType("bulletList", "block", "block"),
    NodeType("orderedList", "block", "block"),
    NodeType("listItem", "block", "block"),
    NodeType("codeBlock", "block", "inline"),
    NodeType("horizontalRule", "block", "none"),
    NodeType("table", "block", "block"),
    NodeType("tableRow", "block", "block"),
    NodeType("tableCell", "block", "block"),
    NodeType("tableHeader", "block", "block"),
    NodeType("hardBreak", "inline", "none"),
    NodeType("image", "inline", "none"),
    NodeType("text", "inline", "none"),
]

DEFAULT_MARK_TYPES: list[MarkType] = [
    MarkType("link"),
    MarkType("bold"),
    MarkType("italic"),
    MarkType("underline"),
    MarkType("strike"),
    MarkType("code"),
    MarkType("textStyle"),
    MarkType("highlight"),
    MarkType("subscript"),
    MarkType("superscript"),
    MarkType("comment", exclusive=False),
    MarkType("commentMark", exclusive=False),
    MarkType("trackInsert"),
    MarkType("trackDelete"),
    MarkType("trackFormat", exclusive=False),
]


class Schema:
    """The node and mark types a document may contain.

    Mark order in the schema is the canonical order of marks on a node.

    Parameters
    ----------
    nodes:
        Node types.  Must include ``doc`` and ``text``.
    marks:
        Mark types, in canonical order.
    """

    def __init__(
        self,
        nodes: Iterable[NodeType] = DEFAULT_NODE_TYPES,
        marks: Iterable[MarkType] = DEFAULT_MARK_TYPES,
    ) -> None:
        self.nodes: dict[str, NodeType] = {n.name: n for n in nodes}
        self.marks: dict[str, MarkType] = {m.name: m for m in marks}
        self._rank = {name: i for i, name in enumerate(self.marks)}
        for required in ("doc", "text"):
            if required not in self.nodes:
                raise DocumentStructureError(
                    f"schema must define a '{required}' node type",
                    context={"node_type": required},
                )

    def without_marks(self, *names: str) -> Schema:
        """Return a copy of this schema lacking the named mark types."""
        return Schema(
            self.nodes.values(),
            [m for m in self.marks.values() if m.name not in names],
        )

    # ── Lookup ──────────────────────────────────────────────────────────

    def node_type(self, name: str) -> NodeType:
        try:
            return self.nodes[name]
        except KeyError:
            raise DocumentStructureError(
                f"unknown node type '{name}'", context={"node_type": name}
            ) from None

    def has_mark(self, name: str) -> bool:
        return name in self.marks

    # ── Construction ────────────────────────────────────────────────────

    def text(self, text: str, marks: Iterable[Mark] = ()) -> Node:
        """Create a text node carrying *marks* in canonical order."""
        return Node(self.nodes["text"], text=text, marks=self.sort_marks(marks))

    def node(
        self,
        name: str,
        content: Sequence[Node] = (),
        attrs: dict[str, Any] | None = None,
    ) -> Node:
        return Node(self.node_type(name), attrs=attrs, content=content)

    # ── Mark sets ───────────────────────────────────────────────────────

    def sort_marks(self, marks: Iterable[Mark]) -> tuple[Mark, ...]:
        fallback = len(self._rank)
        return tuple(sorted(marks, key=lambda m: self._rank.get(m.type, fallback)))

    def add_to_set(self, marks: Sequence[Mark], mark: Mark) -> tuple[Mark, ...]:
        """Add *mark* to a mark set, replacing same-type exclusive marks."""
        if mark in marks:
            return tuple(marks)
        mark_type = self.marks.get(mark.type)
        exclusive = mark_type.exclusive if mark_type is not None else True
        kept = [m for m in marks if not (exclusive and m.type == mark.type)]
        return self.sort_marks([*kept, mark])


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

class Node:
    """An immutable tree node.

    Text nodes carry ``text`` and ``marks``; every other node carries
    ``content``.  Only inline nodes may carry marks.
    """

    __slots__ = ("type", "attrs", "content", "text", "marks")

    def __init__(
        self,
        type: NodeType,
        attrs: dict[str, Any] | None = None,
        content: Sequence[Node] = (),
        text: str | None = None,
        marks: Sequence[Mark] = (),
    ) -> None:
        if type.is_text and not text:
            raise DocumentStructureError("text nodes must not be empty")
        if type.is_leaf and content:
            raise DocumentStructureError(
                f"leaf node '{type.name}' cannot have content",
                context={"node_type": type.name},
            )
        self.type = type
        self.attrs: dict[str, Any] = dict(attrs or {})
        self.content: tuple[Node, ...] = tuple(content)
        self.text = text
        self.marks: tuple[Mark, ...] = tuple(marks)

    # ── Classification ──────────────────────────────────────────────────

    @property
    def is_text(self) -> bool:
        return self.type.is_text

    @property
    def is_leaf(self) -> bool:
        return self.type.is_leaf

    @property
    def is_block(self) -> bool:
        return self.type.is_block

    @property
    def is_inline(self) -> bool:
        return self.type.is_inline

    @property
    def is_textblock(self) -> bool:
        return self.type.is_textblock

    # ── Size ────────────────────────────────────────────────────────────

    @property
    def node_size(self) -> int:
        if self.text is not None:
            return len(self.text)
        if self.is_leaf:
            return 1
        return 2 + self.content_size

    @property
    def content_size(self) -> int:
        return sum(child.node_size for child in self.content)

    @property
    def text_content(self) -> str:
        if self.text is not None:
            return self.text
        return "".join(child.text_content for child in self.content)

    # ── Derivation ──────────────────────────────────────────────────────

    def copy(self, content: Sequence[Node]) -> Node:
        return Node(self.type, self.attrs, content, self.text, self.marks)

    def mark(self, marks: Sequence[Mark]) -> Node:
        return Node(self.type, self.attrs, self.content, self.text, marks)

    def cut(self, start: int, end: int) -> Node:
        """Return the ``[start, end)`` slice of a text node."""
        if self.text is None:
            raise InvalidPositionError(
                f"cannot cut non-text node '{self.type.name}'",
                context={"start": start, "end": end, "reason": "not text"},
            )
        return Node(self.type, self.attrs, text=self.text[start:end], marks=self.marks)

    def same_markup(self, other: Node) -> bool:
        return (
            self.type == other.type
            and self.attrs == other.attrs
            and self.marks == other.marks
        )

    # ── Traversal ───────────────────────────────────────────────────────

    def descendants(self) -> Iterator[tuple[Node, int]]:
        """Yield ``(node, pos)`` for every descendant in document order.

        ``pos`` is relative to the start of this node's content.
        """
        yield from _walk_between(self, 0, None, None)

    def nodes_between(self, start: int, end: int) -> Iterator[tuple[Node, int]]:
        """Yield descendants overlapping ``[start, end)`` in document order."""
        yield from _walk_between(self, 0, start, end)

    def resolve(self, pos: int) -> ResolvedPos:
        """Resolve a content-relative position into its tree context."""
        size = self.content_size
        if pos < 0 or pos > size:
            raise InvalidPositionError(
                f"position {pos} outside document of size {size}",
                context={"pos": pos, "doc_size": size},
            )
        parent, start, depth = self, 0, 0
        descended = True
        while descended:
            descended = False
            offset = start
            for child in parent.content:
                end = offset + child.node_size
                if not child.is_leaf and offset < pos < end:
                    parent, start, depth = child, offset + 1, depth + 1
                    descended = True
                    break
                offset = end

        rel = pos - start
        before: Node | None = None
        after: Node | None = None
        text_offset = 0
        offset = 0
        for child in parent.content:
            end = offset + child.node_size
            if end == rel:
                before = child
            elif offset == rel:
                after = child
                break
            elif offset < rel < end:
                text_offset = rel - offset
                before = child.cut(0, text_offset)
                after = child.cut(text_offset, child.node_size)
                break
            offset = end
        return ResolvedPos(
            pos=pos,
            parent=parent,
            start=start,
            depth=depth,
            node_before=before,
            node_after=after,
            text_offset=text_offset,
        )

    # ── Serialization ───────────────────────────────────────────────────

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.name}
        if self.attrs:
            data["attrs"] = dict(self.attrs)
        if self.text is not None:
            data["text"] = self.text
        if self.content:
            data["content"] = [child.to_json() for child in self.content]
        if self.marks:
            data["marks"] = [m.to_json() for m in self.marks]
        return data

    @classmethod
    def from_json(
        cls,
        data: dict[str, Any],
        schema: Schema,
        *,
        strict: bool = True,
    ) -> Node:
        """Build a node from ``{type, text?, content?|children?, marks?, attrs?}``.

        With ``strict=False`` unknown node types are accepted: a node with
        children becomes a block container, one without becomes an inline
        leaf.
        """
        return _node_from_json(data, schema, strict, "$")

    # ── Dunder ──────────────────────────────────────────────────────────

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return (
            self.same_markup(other)
            and self.text == other.text
            and self.content == other.content
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self.text is not None:
            marks = "".join(f"[{m.type}]" for m in self.marks)
            return f"{marks}{self.text!r}"
        inner = ", ".join(repr(c) for c in self.content)
        return f"{self.type.name}({inner})"


@dataclass(frozen=True)
class ResolvedPos:
    """A position with its surrounding tree context.

    Attributes
    ----------
    parent:
        The innermost node whose content contains the position.
    start:
        Position at which ``parent``'s content starts.
    node_before, node_after:
        Siblings touching the position.  Inside a text node these are the
        two halves of that node.
    text_offset:
        Offset into the text node the position falls inside, else ``0``.
    """

    pos: int
    parent: Node
    start: int
    depth: int
    node_before: Node | None
    node_after: Node | None
    text_offset: int = 0

    @property
    def parent_offset(self) -> int:
        return self.pos - self.start

    def marks(self) -> tuple[Mark, ...]:
        """Marks active at the position."""
        if not self.parent.content:
            return ()
        if self.node_before is not None:
            return self.node_before.marks
        if self.node_after is not None:
            return self.node_after.marks
        return ()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _walk_between(
    node: Node,
    content_start: int,
    start: int | None,
    end: int | None,
) -> Iterator[tuple[Node, int]]:
    pos = content_start
    for child in node.content:
        child_end = pos + child.node_size
        if start is not None and end is not None:
            if child_end <= start:
                pos = child_end
                continue
            if pos >= end:
                return
        yield child, pos
        if child.content:
            yield from _walk_between(child, pos + 1, start, end)
        pos = child_end


def join_text(nodes: Iterable[Node]) -> tuple[Node, ...]:
    """Merge adjacent text nodes that carry identical marks."""
    out: list[Node] = []
    for node in nodes:
        if out and node.is_text and out[-1].is_text and out[-1].same_markup(node):
            prev = out.pop()
            out.append(Node(prev.type, prev.attrs, text=prev.text + node.text, marks=prev.marks))
        else:
            out.append(node)
    return tuple(out)


def _node_from_json(data: Any, schema: Schema, strict: bool, path: str) -> Node:
    if not isinstance(data, dict) or "type" not in data:
        raise DocumentStructureError(
            "node must be a mapping with a 'type' key", context={"path": path}
        )
    name = data["type"]
    children = data.get("content")
    if children is None:
        children = data.get("children") or []
    try:
        node_type = schema.node_type(name)
    except DocumentStructureError:
        if strict:
            raise
        node_type = NodeType(name, "block", "block") if children else NodeType(name, "inline", "none")

    marks = [Mark.from_json(m) for m in data.get("marks") or []]
    if strict:
        unknown = [m.type for m in marks if not schema.has_mark(m.type)]
        if unknown:
            raise DocumentStructureError(
                f"unknown mark type(s) {unknown} at {path}",
                context={"path": path, "marks": unknown},
            )

    if node_type.is_text:
        return Node(node_type, data.get("attrs"), text=data.get("text", ""), marks=schema.sort_marks(marks))

    content = [
        _node_from_json(child, schema, strict, f"{path}.{i}")
        for i, child in enumerate(children)
        if strict or not _is_empty_text(child)
    ]
    if node_type.is_leaf:
        content = []
    return Node(
        node_type,
        data.get("attrs"),
        content=join_text(content),
        marks=schema.sort_marks(marks),
    )


def _is_empty_text(data: Any) -> bool:
    return isinstance(data, dict) and data.get("type") == "text" and not data.get("text")
