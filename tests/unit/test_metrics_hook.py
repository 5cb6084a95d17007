"""Tests for the MetricsHook protocol and its wiring.

Covers:
  - Protocol conformance (isinstance, structural subtyping)
  - NoopMetricsHook behaviour
  - Every documented metric name is listed in the module docstring
  - Metrics wiring through TrackDiffConfig into each component
"""
from __future__ import annotations

import pytest
from builders import RecordingMetricsHook, doc, p

import trackdiff.observability.metrics as metrics_module
from trackdiff.config import TrackDiffConfig
from trackdiff.observability.metrics import MetricsHook, NoopMetricsHook
from trackdiff.session import ComparisonSession
from trackdiff.track import ResolutionEngine, TrackChangesApplicator

# ---------------------------------------------------------------------------
# Protocol conformance
# ---------------------------------------------------------------------------


class TestMetricsHookProtocol:
    def test_noop_is_instance_of_protocol(self):
        assert isinstance(NoopMetricsHook(), MetricsHook)

    def test_recording_hook_is_instance_of_protocol(self):
        assert isinstance(RecordingMetricsHook(), MetricsHook)

    def test_class_missing_gauge_is_not_instance(self):
        class PartialHook:
            def increment(self, name, value=1, tags=None):
                pass

            def timing(self, name, ms, tags=None):
                pass

        assert not isinstance(PartialHook(), MetricsHook)

    def test_empty_class_is_not_instance(self):
        class Empty:
            pass

        assert not isinstance(Empty(), MetricsHook)


class TestNoopMetricsHook:
    def test_methods_return_none(self):
        hook = NoopMetricsHook()
        assert hook.increment("trackdiff.changes_total", 3, tags={"type": "insertion"}) is None
        assert hook.timing("trackdiff.diff_duration_ms", 1.5) is None
        assert hook.gauge("anything", -1.0) is None

    def test_noop_has_slots(self):
        assert NoopMetricsHook.__slots__ == ()


# ---------------------------------------------------------------------------
# Metric names
# ---------------------------------------------------------------------------

_METRIC_NAMES = [
    "trackdiff.changes_total",
    "trackdiff.formatting_changes_total",
    "trackdiff.diff_duration_ms",
    "trackdiff.apply_success_total",
    "trackdiff.apply_failure_total",
    "trackdiff.resolutions_total",
    "trackdiff.pending_changes",
]


class TestMetricNames:
    @pytest.mark.parametrize("metric_name", _METRIC_NAMES)
    def test_metric_name_in_module_docstring(self, metric_name: str):
        assert metric_name in metrics_module.__doc__


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


class TestMetricsConfigWiring:
    def test_config_metrics_defaults_to_none(self):
        assert TrackDiffConfig().metrics is None

    def test_applicator_uses_noop_when_metrics_none(self):
        assert isinstance(TrackChangesApplicator()._metrics, NoopMetricsHook)

    def test_applicator_uses_custom_metrics(self):
        hook = RecordingMetricsHook()
        assert TrackChangesApplicator(TrackDiffConfig(metrics=hook))._metrics is hook

    def test_resolver_uses_custom_metrics(self):
        hook = RecordingMetricsHook()
        assert ResolutionEngine(TrackDiffConfig(metrics=hook))._metrics is hook

    def test_full_session_emits_every_stage(self):
        hook = RecordingMetricsHook()
        session = ComparisonSession(TrackDiffConfig(metrics=hook))
        session.load_original(doc(p("Hello world. This is Important text")))
        session.load_modified("Hello brave world. This is **Important** text")
        outcome = session.run()
        session.approve_all()

        names = {c["name"] for c in hook.increments} | {t["name"] for t in hook.timings}
        assert names == {
            "trackdiff.changes_total",
            "trackdiff.formatting_changes_total",
            "trackdiff.diff_duration_ms",
            "trackdiff.apply_success_total",
            "trackdiff.resolutions_total",
        }
        assert hook.counted("trackdiff.apply_success_total") == outcome.summary.total
        assert [g["value"] for g in hook.gauges] == [outcome.summary.total, 0]
        assert {g["name"] for g in hook.gauges} == {"trackdiff.pending_changes"}

    def test_pending_gauge_tracks_single_resolutions(self):
        hook = RecordingMetricsHook()
        session = ComparisonSession(TrackDiffConfig(metrics=hook))
        session.load_original(doc(p("Hello world")))
        session.load_modified(doc(p("Hello XYZ world QQ")))
        session.run()
        session.approve("change-0")
        session.reject("change-1")
        assert [g["value"] for g in hook.gauges] == [2, 1, 0]
