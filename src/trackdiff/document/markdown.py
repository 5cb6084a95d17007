"""Build documents from Markdown.

This module wraps mistune v3's AST renderer and turns its token stream into
a :class:`~trackdiff.document.tree.Document`.  It is the quickest way to
produce the two snapshots a comparison needs.

Block tokens handled:
    heading, paragraph, block_text, block_quote, list, list_item,
    block_code, thematic_break, table, block_html

Inline tokens handled:
    text, strong, emphasis, strikethrough, codespan, link, image,
    softbreak, linebreak, inline_html
"""

from __future__ import annotations

from typing import Any

import mistune

from trackdiff.document.nodes import Node, Schema, join_text
from trackdiff.document.tree import DEFAULT_SCHEMA, Document
from trackdiff.models import Mark

# ---------------------------------------------------------------------------
# Mistune-to-mark mapping
# ---------------------------------------------------------------------------

_INLINE_MARKS: dict[str, str] = {
    "strong": "bold",
    "emphasis": "italic",
    "strikethrough": "strike",
}

# Types that should be silently skipped
_SKIP_TYPES: frozenset[str] = frozenset({
    "blank_line",
})


class MarkdownLoader:
    """Parse Markdown into a document tree."""

    def __init__(self, schema: Schema = DEFAULT_SCHEMA) -> None:
        self.schema = schema
        self._parser = mistune.create_markdown(
            renderer="ast",
            plugins=[
                "strikethrough",
                "table",
                "url",
            ],
        )

    def load(self, markdown: str) -> Document:
        """Parse *markdown* and return a new document."""
        tokens = self._parser(markdown)
        if isinstance(tokens, str):
            tokens = []
        blocks = self._blocks(tokens)
        if not blocks:
            blocks = [self.schema.node("paragraph")]
        return Document(self.schema.node("doc", blocks), self.schema)

    # ── Blocks ──────────────────────────────────────────────────────────

    def _blocks(self, tokens: list[dict[str, Any]]) -> list[Node]:
        result: list[Node] = []
        for token in tokens:
            node = self._block(token)
            if node is not None:
                result.append(node)
        return result

    def _block(self, token: dict[str, Any]) -> Node | None:
        kind = token.get("type", "")
        attrs = token.get("attrs") or {}
        schema = self.schema

        if kind in _SKIP_TYPES:
            return None

        if kind == "heading":
            return schema.node(
                "heading",
                self._inline(token.get("children", []), ()),
                attrs={"level": attrs.get("level", 1)},
            )

        if kind in ("paragraph", "block_text"):
            return schema.node("paragraph", self._inline(token.get("children", []), ()))

        if kind == "block_quote":
            return schema.node("blockquote", self._blocks(token.get("children", [])))

        if kind == "list":
            name = "orderedList" if attrs.get("ordered") else "bulletList"
            items = [
                schema.node("listItem", self._blocks(item.get("children", [])))
                for item in token.get("children", [])
                if item.get("type") in ("list_item", "task_list_item")
            ]
            list_attrs = {"start": attrs["start"]} if attrs.get("start") else None
            return schema.node(name, items, attrs=list_attrs)

        # block_code: mistune v3 stores code in "raw" with a trailing newline
        if kind == "block_code":
            code = token.get("raw", "")
            if code.endswith("\n"):
                code = code[:-1]
            content = [schema.text(code)] if code else []
            info = attrs.get("info")
            return schema.node("codeBlock", content, attrs={"language": info} if info else None)

        if kind == "thematic_break":
            return schema.node("horizontalRule")

        if kind == "table":
            return self._table(token)

        if kind == "block_html":
            raw = token.get("raw", "").strip()
            return schema.node("paragraph", [schema.text(raw)] if raw else [])

        # Unknown token: skip silently
        return None

    def _table(self, token: dict[str, Any]) -> Node:
        rows: list[Node] = []
        for part in token.get("children", []):
            if part.get("type") == "table_head":
                rows.append(self._row(part.get("children", []), "tableHeader"))
            elif part.get("type") == "table_body":
                for row in part.get("children", []):
                    rows.append(self._row(row.get("children", []), "tableCell"))
        return self.schema.node("table", rows)

    def _row(self, cells: list[dict[str, Any]], cell_type: str) -> Node:
        schema = self.schema
        return schema.node(
            "tableRow",
            [
                schema.node(
                    cell_type,
                    [schema.node("paragraph", self._inline(cell.get("children", []), ()))],
                )
                for cell in cells
            ],
        )

    # ── Inline ──────────────────────────────────────────────────────────

    def _inline(self, tokens: list[dict[str, Any]], marks: tuple[Mark, ...]) -> list[Node]:
        nodes: list[Node] = []
        schema = self.schema
        for token in tokens:
            kind = token.get("type", "")

            if kind in ("text", "inline_html"):
                raw = token.get("raw", "")
                if raw:
                    nodes.append(schema.text(raw, marks))

            elif kind in _INLINE_MARKS:
                child_marks = (*marks, Mark(_INLINE_MARKS[kind]))
                nodes.extend(self._inline(token.get("children", []), child_marks))

            elif kind == "codespan":
                raw = token.get("raw", "")
                if raw:
                    nodes.append(schema.text(raw, (*marks, Mark("code"))))

            elif kind == "link":
                href = (token.get("attrs") or {}).get("url", "")
                child_marks = (*marks, Mark("link", {"href": href}))
                nodes.extend(self._inline(token.get("children", []), child_marks))

            elif kind == "image":
                attrs = token.get("attrs") or {}
                alt = "".join(c.get("raw", "") for c in token.get("children", []))
                nodes.append(schema.node("image", attrs={"src": attrs.get("url", ""), "alt": alt}))

            elif kind == "softbreak":
                nodes.append(schema.text(" ", marks))

            elif kind == "linebreak":
                nodes.append(schema.node("hardBreak"))

            # Unknown inline types are silently skipped

        return list(join_text(nodes))


def document_from_markdown(markdown: str, schema: Schema = DEFAULT_SCHEMA) -> Document:
    """Parse *markdown* into a :class:`Document` using *schema*."""
    return MarkdownLoader(schema).load(markdown)
