"""Tests for batched tree mutations."""

from __future__ import annotations

import pytest
from builders import doc, node, p, t, texts

from trackdiff.document import DEFAULT_SCHEMA, Document, MutationBuilder
from trackdiff.errors import DocumentStructureError, InvalidPositionError
from trackdiff.models import Mark


class TestAddMark:
    def test_splits_text_at_range(self):
        d = doc(p("Hello world"))
        d.transaction().add_mark(7, 12, Mark("bold")).commit()
        assert texts(d) == [("Hello ", ()), ("world", ("bold",))]

    def test_spans_multiple_blocks(self):
        d = doc(p("ab"), p("cd"))
        d.transaction().add_mark(2, 6, Mark("italic")).commit()
        assert texts(d) == [("a", ()), ("b", ("italic",)), ("c", ("italic",)), ("d", ())]

    def test_rejoins_equal_neighbours(self):
        d = doc(p(t("ab", "bold"), "cd"))
        d.transaction().add_mark(3, 5, Mark("bold")).commit()
        assert texts(d) == [("abcd", ("bold",))]

    def test_unknown_mark_type(self):
        d = Document(DEFAULT_SCHEMA.node("doc", [p("ab")]), DEFAULT_SCHEMA.without_marks("trackInsert"))
        with pytest.raises(DocumentStructureError):
            d.transaction().add_mark(1, 3, Mark("trackInsert"))

    def test_out_of_range(self):
        with pytest.raises(InvalidPositionError):
            doc(p("ab")).transaction().add_mark(0, 9, Mark("bold"))


class TestRemoveMark:
    def test_remove_by_type(self):
        d = doc(p(t("ab", Mark("link", {"href": "/a"}))))
        d.transaction().remove_mark(1, 3, "link").commit()
        assert texts(d) == [("ab", ())]

    def test_remove_by_value_keeps_others(self):
        first = Mark("trackFormat", {"id": "format-0"})
        second = Mark("trackFormat", {"id": "format-1"})
        d = doc(p(t("ab", first, second)))
        d.transaction().remove_mark(1, 3, first).commit()
        assert d.doc.content[0].content[0].marks == (second,)

    def test_partial_range(self):
        d = doc(p(t("abcd", "bold")))
        d.transaction().remove_mark(2, 4, "bold").commit()
        assert texts(d) == [("a", ("bold",)), ("bc", ()), ("d", ("bold",))]


class TestStructure:
    def test_insert_text_inside_text(self):
        d = doc(p("Helloworld"))
        d.transaction().insert(6, DEFAULT_SCHEMA.text(" ")).commit()
        assert d.text_content == "Hello world"

    def test_insert_marked_text_stays_separate(self):
        d = doc(p("ac"))
        d.transaction().insert(2, t("b", "trackDelete")).commit()
        assert texts(d) == [("a", ()), ("b", ("trackDelete",)), ("c", ())]

    def test_insert_into_empty_paragraph(self):
        d = doc(p())
        d.transaction().insert(1, t("x")).commit()
        assert d.text_content == "x"

    def test_insert_text_between_blocks_fails(self):
        d = doc(p("ab"), p("cd"))
        with pytest.raises(InvalidPositionError):
            d.transaction().insert(4, t("x"))

    def test_insert_block_between_blocks(self):
        d = doc(p("ab"), p("cd"))
        d.transaction().insert(4, p("xy")).commit()
        assert [n.text_content for n in d.doc.content] == ["ab", "xy", "cd"]

    def test_delete_within_text(self):
        d = doc(p("Hello world"))
        d.transaction().delete(6, 12).commit()
        assert d.text_content == "Hello"

    def test_delete_across_text_nodes(self):
        d = doc(p("ab", t("cd", "bold"), "ef"))
        d.transaction().delete(2, 6).commit()
        assert texts(d) == [("af", ())]

    def test_delete_across_blocks_fails(self):
        d = doc(p("ab"), p("cd"))
        with pytest.raises(InvalidPositionError):
            d.transaction().delete(2, 6)

    def test_delete_inline_leaf(self):
        d = doc(p("a", DEFAULT_SCHEMA.node("hardBreak"), "b"))
        d.transaction().delete(2, 3).commit()
        assert texts(d) == [("ab", ())]

    def test_steps_apply_to_working_tree(self):
        d = doc(node("blockquote", p("ac")))
        tr = d.transaction()
        tr.insert(3, t("b"))
        tr.add_mark(2, 5, Mark("bold"))
        assert isinstance(tr, MutationBuilder)
        assert tr.doc_changed
        assert tr.steps == ["replace", "addMark"]
        tr.commit()
        assert texts(d) == [("abc", ("bold",))]
