"""Tree builders shared by the test modules."""

from __future__ import annotations

from typing import Any

from trackdiff.document import DEFAULT_SCHEMA, Document, Node
from trackdiff.models import Mark


def t(text: str, *marks: str | Mark) -> Node:
    """Text node; marks given as type names or :class:`Mark` values."""
    return DEFAULT_SCHEMA.text(
        text, [m if isinstance(m, Mark) else Mark(m) for m in marks]
    )


def p(*children: Node | str) -> Node:
    """Paragraph; bare strings become unmarked text."""
    return DEFAULT_SCHEMA.node(
        "paragraph", [t(c) if isinstance(c, str) else c for c in children]
    )


def h(level: int, *children: Node | str) -> Node:
    return DEFAULT_SCHEMA.node(
        "heading",
        [t(c) if isinstance(c, str) else c for c in children],
        attrs={"level": level},
    )


def node(name: str, *children: Node, **attrs: Any) -> Node:
    return DEFAULT_SCHEMA.node(name, children, attrs=attrs or None)


def doc(*blocks: Node) -> Document:
    return Document(DEFAULT_SCHEMA.node("doc", blocks))


def texts(document: Document) -> list[tuple[str, tuple[str, ...]]]:
    """``(text, mark types)`` for every text node, in document order."""
    return [
        (n.text, tuple(m.type for m in n.marks))
        for n, _ in document.descendants()
        if n.is_text
    ]


class RecordingMetricsHook:
    """A metrics backend that records all calls for assertion."""

    def __init__(self) -> None:
        self.increments: list[dict[str, Any]] = []
        self.timings: list[dict[str, Any]] = []
        self.gauges: list[dict[str, Any]] = []

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        self.increments.append({"name": name, "value": value, "tags": tags})

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        self.timings.append({"name": name, "ms": ms, "tags": tags})

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        self.gauges.append({"name": name, "value": value, "tags": tags})

    def counted(self, name: str) -> int:
        return sum(c["value"] for c in self.increments if c["name"] == name)
