"""Tests for text extraction and the char-to-position index."""

from __future__ import annotations

import pytest
from builders import doc, h, node, p, t

from trackdiff.config import TrackDiffConfig
from trackdiff.document import DEFAULT_SCHEMA
from trackdiff.extract import (
    char_range_to_positions,
    char_to_position,
    extract_context,
    extract_plain_text,
    extract_with_formatting,
    extract_with_positions,
)
from trackdiff.models import ExtractedText, FormattingSpan, Mark, TextRange

_HELLO = ExtractedText(text="Hello", char_to_pos=(1, 2, 3, 4, 5))


def _table(*rows: list[str]) -> object:
    return node(
        "table",
        *[node("tableRow", *[node("tableCell", p(cell)) for cell in row]) for row in rows],
    )


class TestExtractPlainText:
    def test_single_paragraph(self):
        assert extract_plain_text(doc(p("Hello world"))) == "Hello world"

    def test_newline_between_blocks(self):
        assert extract_plain_text(doc(p("one"), h(1, "two"), p("three"))) == "one\ntwo\nthree"

    def test_no_newline_before_first_block(self):
        assert extract_plain_text(doc(p("a"))).startswith("a")

    def test_empty_block_adds_no_separator(self):
        assert extract_plain_text(doc(p("a"), p(), p("b"))) == "a\nb"

    def test_nested_lists(self):
        d = doc(
            node(
                "bulletList",
                node("listItem", p("one")),
                node("listItem", p("two")),
            )
        )
        assert extract_plain_text(d) == "one\ntwo"

    def test_table_cells_separated_by_space(self):
        d = doc(_table(["Cell 1", "Cell 2"], ["Cell 3", "Cell 4"]))
        assert extract_plain_text(d) == "Cell 1 Cell 2 Cell 3 Cell 4"

    def test_table_after_paragraph(self):
        assert extract_plain_text(doc(p("x"), _table(["a"]))) == "x a"

    def test_inline_text_joined(self):
        para = p("Hello ", t("world", "bold"), "!")
        assert extract_plain_text(para) == "Hello world!"

    def test_text_node(self):
        assert extract_plain_text(t("just text")) == "just text"

    def test_json_input(self):
        data = {
            "type": "doc",
            "content": [
                {"type": "paragraph", "content": [{"type": "text", "text": "a"}]},
                {"type": "paragraph", "content": [{"type": "text", "text": "b"}]},
            ],
        }
        assert extract_plain_text(data) == "a\nb"

    def test_unknown_container_gets_no_separator(self):
        data = {
            "type": "doc",
            "content": [
                {"type": "paragraph", "content": [{"type": "text", "text": "a"}]},
                {"type": "mystery", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "b"}]}]},
            ],
        }
        assert extract_plain_text(data) == "ab"

    def test_unsupported_source(self):
        with pytest.raises(TypeError):
            extract_plain_text(42)


class TestExtractWithPositions:
    def test_positions_follow_tree(self):
        extracted = extract_with_positions(doc(p("ab"), p("cd")))
        assert extracted.text == "ab\ncd"
        # the separator is indexed at the second paragraph's own position
        assert extracted.char_to_pos == (1, 2, 4, 5, 6)

    def test_length_matches_text(self):
        d = doc(h(2, "Title"), _table(["a", "b"]), node("blockquote", p("q")))
        extracted = extract_with_positions(d)
        assert len(extracted.char_to_pos) == len(extracted.text)

    def test_same_text_as_plain_extractor(self):
        d = doc(p("a", DEFAULT_SCHEMA.node("hardBreak"), "b"), node("horizontalRule"), p("c"))
        assert extract_with_positions(d).text == extract_plain_text(d)

    def test_inline_leaf_skips_a_position(self):
        d = doc(p("a", DEFAULT_SCHEMA.node("hardBreak"), "b"))
        extracted = extract_with_positions(d)
        assert extracted.text == "ab"
        assert extracted.char_to_pos == (1, 3)

    def test_positions_address_their_characters(self):
        d = doc(p("Hello ", t("world", "italic")), p("again"))
        extracted = extract_with_positions(d)
        for i, ch in enumerate(extracted.text):
            if ch == "\n":
                continue
            pos = extracted.char_to_pos[i]
            assert d.text_between(pos, pos + 1) == ch

    def test_no_formatting_collected(self):
        assert extract_with_positions(doc(p(t("a", "bold")))).formatting == ()


class TestExtractWithFormatting:
    def test_spans_cover_marked_runs(self):
        d = doc(p("This is ", t("Important", "bold"), " text"))
        extracted = extract_with_formatting(d)
        assert extracted.formatting == (FormattingSpan(8, 17, (Mark("bold"),)),)

    def test_adjacent_identical_marks_merge_across_blocks(self):
        d = doc(p(t("ab", "bold")), p(t("cd", "bold")))
        extracted = extract_with_formatting(d)
        # the unmarked separator breaks the run
        assert [(s.char_start, s.char_end) for s in extracted.formatting] == [(0, 2), (3, 5)]

    def test_different_marks_split_spans(self):
        d = doc(p(t("ab", "bold"), t("cd", "bold", "italic")))
        spans = extract_with_formatting(d).formatting
        assert [(s.char_start, s.char_end, len(s.marks)) for s in spans] == [(0, 2, 1), (2, 4, 2)]

    def test_annotation_marks_excluded(self):
        d = doc(p(t("ab", "bold", "trackInsert"), t("cd", "trackDelete")))
        spans = extract_with_formatting(d).formatting
        assert spans == (FormattingSpan(0, 2, (Mark("bold"),)),)

    def test_custom_exclusions(self):
        d = doc(p(t("ab", "bold")))
        config = TrackDiffConfig(excluded_mark_types=["bold"])
        assert extract_with_formatting(d, config).formatting == ()

    def test_live_document_source(self):
        d = doc(p(t("x", "code")))
        assert extract_with_formatting(d).text == "x"


class TestExtractContext:
    def test_preceding_text(self):
        assert extract_context("Hello world", 6) == "Hello"

    def test_respects_length(self):
        text = "The quick brown fox jumps over the lazy dog"
        assert len(extract_context(text, 20, 10)) <= 10

    def test_start_of_text(self):
        assert extract_context("Hello world", 0, 10) == ""

    def test_short_text(self):
        assert extract_context("Hi", 2, 10) == "Hi"

    def test_trims(self):
        context = extract_context("   Hello   world   ", 10, 15)
        assert context == context.strip()

    def test_default_length(self):
        assert len(extract_context("A" * 50, 50)) == 30


class TestCharToPosition:
    def test_valid_index(self):
        assert char_to_position(_HELLO, 0) == 1
        assert char_to_position(_HELLO, 4) == 5

    def test_negative_index(self):
        assert char_to_position(_HELLO, -1) is None

    def test_past_end_extrapolates(self):
        assert char_to_position(_HELLO, 6) == 7

    def test_empty_index(self):
        assert char_to_position(ExtractedText(text=""), 0) is None


class TestCharRangeToPositions:
    def test_full_range(self):
        assert char_range_to_positions(_HELLO, 0, 5) == TextRange(1, 6)

    def test_single_character(self):
        assert char_range_to_positions(_HELLO, 2, 3) == TextRange(3, 4)

    @pytest.mark.parametrize(("start", "end"), [(10, 15), (0, 20), (3, 3)])
    def test_invalid(self, start, end):
        assert char_range_to_positions(_HELLO, start, end) is None
