"""Tests for the comparison session."""

from __future__ import annotations

import json

import pytest
from builders import RecordingMetricsHook, doc, p, texts

from trackdiff import ComparisonSession, SessionState, TrackDiffConfig
from trackdiff.errors import ErrorCode, SessionPendingError
from trackdiff.models import ChangeType, FormattingChangeType, TextRange, TrackChangeUser


def _session(original: str, modified, **kwargs) -> ComparisonSession:
    session = ComparisonSession(**kwargs)
    session.load_original(original)
    session.load_modified(modified)
    return session


class TestLifecycle:
    def test_pending_until_both_loaded(self):
        session = ComparisonSession()
        assert session.state is SessionState.PENDING
        session.load_original("Hello world")
        assert session.original_loaded
        assert not session.modified_loaded
        assert session.state is SessionState.PENDING

    def test_run_before_load_raises(self):
        session = ComparisonSession()
        session.load_modified("Hello world")
        with pytest.raises(SessionPendingError) as exc_info:
            session.run()
        assert exc_info.value.code == ErrorCode.SESSION_PENDING
        assert exc_info.value.context == {"original_loaded": False, "modified_loaded": True}

    def test_resolve_before_load_raises(self):
        with pytest.raises(SessionPendingError):
            ComparisonSession().approve("change-0")

    def test_ready_then_applied(self):
        session = _session("Hello world", "Hello beautiful world")
        assert session.state is SessionState.READY
        session.run()
        assert session.state is SessionState.APPLIED

    def test_run_is_cached(self):
        session = _session("Hello world", "Hello beautiful world")
        first = session.run()
        assert session.run() is first
        assert session.document.dispatch_count == 1

    def test_reload_resets(self):
        session = _session("Hello world", "Hello beautiful world")
        session.run()
        session.load_modified("Hello world")
        assert session.state is SessionState.READY
        assert session.run().changes == []


class TestRun:
    def test_insertion(self):
        session = _session("Hello world", "Hello beautiful world")
        outcome = session.run()
        assert [(c.type, c.content) for c in outcome.changes] == [
            (ChangeType.INSERTION, "beautiful")
        ]
        assert outcome.result.ok
        assert outcome.summary.insertions == 1
        assert ("beautiful", ("trackInsert",)) in texts(session.document)

    def test_formatting(self):
        session = _session("This is Important text", "This is **Important** text")
        outcome = session.run()
        assert outcome.changes == []
        assert [(c.type, c.mark_type) for c in outcome.formatting_changes] == [
            (FormattingChangeType.FORMAT_ADDED, "bold")
        ]
        assert outcome.summary.total == 1
        assert ("Important", ("bold", "trackFormat")) in texts(session.document)

    def test_live_document_annotated_in_place(self):
        live = doc(p("Hello beautiful world"))
        session = _session("Hello world", live)
        session.run()
        assert session.document is live
        assert live.dispatch_count == 1

    def test_json_and_node_sources(self):
        session = ComparisonSession()
        session.load_original(doc(p("Hello world")).doc)
        session.load_modified(doc(p("Hello universe")).to_json())
        [change] = session.run().changes
        assert change.type is ChangeType.REPLACEMENT

    def test_original_snapshot_is_frozen(self):
        original = doc(p("Hello world"))
        session = ComparisonSession()
        session.load_original(original)
        tr = original.transaction()
        tr.delete(1, 7)
        tr.commit()
        session.load_modified("Hello world")
        assert session.run().changes == []

    def test_user_recorded(self):
        user = TrackChangeUser(name="Ada", email="ada@example.com")
        session = _session("Hello world", "Hello beautiful world", user=user)
        session.run()
        authors = {
            m.attrs["author"]
            for n, _ in session.document.descendants()
            if n.is_text
            for m in n.marks
        }
        assert authors == {"Ada"}

    def test_auto_run_and_callback(self):
        outcomes = []
        session = ComparisonSession(auto_run=True, on_complete=outcomes.append)
        session.load_modified("Hello beautiful world")
        assert outcomes == []
        session.load_original("Hello world")
        assert len(outcomes) == 1
        assert session.state is SessionState.APPLIED

    def test_settle_delay(self, monkeypatch):
        slept = []
        monkeypatch.setattr("trackdiff.session.time.sleep", slept.append)
        config = TrackDiffConfig(settle_delay_seconds=0.25)
        _session("Hello world", "Hello beautiful world", config=config).run()
        assert slept == [0.25]

    def test_debug_dump(self, capsys):
        config = TrackDiffConfig(debug_dump_changes=True)
        _session("Hello world", "Hello beautiful world", config=config).run()
        err = capsys.readouterr().err
        assert "[trackdiff] Computed changes:" in err
        rest = err.split("[trackdiff] Computed changes:", 1)[1].lstrip()
        payload, _ = json.JSONDecoder().raw_decode(rest)
        assert payload["changes"][0]["content"] == "beautiful"
        assert payload["formatting_changes"] == []

    def test_metrics(self):
        hook = RecordingMetricsHook()
        config = TrackDiffConfig(metrics=hook)
        _session("Hello world", "Hello XYZ world QQ", config=config).run()
        assert {"name": "trackdiff.changes_total", "value": 2, "tags": {"type": "insertion"}} in hook.increments
        assert [t["name"] for t in hook.timings] == ["trackdiff.diff_duration_ms"]
        assert hook.counted("trackdiff.apply_success_total") == 2


class TestResolution:
    def test_approve_removes_from_pending(self):
        session = _session("Hello world", "Hello XYZ world QQ")
        session.run()
        assert [c.id for c in session.pending_changes] == ["change-0", "change-1"]
        result = session.approve("change-0")
        assert result.success_count == 1
        assert [c.id for c in session.pending_changes] == ["change-1"]
        assert session.summary().insertions == 1

    def test_reject(self):
        session = _session("Hello world", "Hello beautiful world")
        session.run()
        session.reject("change-0")
        assert session.document.text_content == "Hello  world"
        assert session.pending_changes == []

    def test_approve_all(self):
        session = _session("Hello world", "Hello XYZ world QQ")
        session.run()
        assert session.approve_all().success_count == 2
        assert session.pending_changes == []
        assert session.summary().total == 0

    def test_reject_all(self):
        session = _session("Hello world", "Hello XYZ world QQ")
        session.run()
        session.reject_all()
        assert session.pending_changes == []
        assert "XYZ" not in session.document.text_content

    def test_locate(self):
        session = _session("Hello world", "Hello universe")
        session.run()
        assert session.locate("change-0") == TextRange(7, 20)
        session.approve("change-0")
        assert session.locate("change-0") is None
