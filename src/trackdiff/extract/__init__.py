"""Text extraction: flatten trees into text with a char-to-position index."""

from __future__ import annotations

from .text_extraction import (
    BLOCK_TYPES,
    TABLE_TYPES,
    char_range_to_positions,
    char_to_position,
    extract_context,
    extract_plain_text,
    extract_with_formatting,
    extract_with_positions,
)

__all__ = [
    "BLOCK_TYPES",
    "TABLE_TYPES",
    "char_range_to_positions",
    "char_to_position",
    "extract_context",
    "extract_plain_text",
    "extract_with_formatting",
    "extract_with_positions",
]
