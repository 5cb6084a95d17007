"""Host document model: protocols plus a reference in-memory tree."""

from __future__ import annotations

from .markdown import MarkdownLoader, document_from_markdown
from .nodes import (
    DEFAULT_MARK_TYPES,
    DEFAULT_NODE_TYPES,
    MarkType,
    Node,
    NodeType,
    ResolvedPos,
    Schema,
)
from .protocols import DocumentTree, MutationBuilder, ResolvedPosition, TreeNode
from .transaction import Transaction
from .tree import DEFAULT_SCHEMA, Document

__all__ = [
    "DEFAULT_MARK_TYPES",
    "DEFAULT_NODE_TYPES",
    "DEFAULT_SCHEMA",
    "Document",
    "DocumentTree",
    "MarkType",
    "MarkdownLoader",
    "MutationBuilder",
    "Node",
    "NodeType",
    "ResolvedPos",
    "ResolvedPosition",
    "Schema",
    "Transaction",
    "TreeNode",
    "document_from_markdown",
]
