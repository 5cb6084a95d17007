"""Tests for TrackDiffConfig defaults and validation."""

from __future__ import annotations

import pytest

from trackdiff.config import (
    DEFAULT_EXCLUDED_MARK_TYPES,
    TRACK_DELETE_MARK,
    TRACK_FORMAT_MARK,
    TRACK_INSERT_MARK,
    TrackDiffConfig,
)
from trackdiff.models import COMPARISON_USER


class TestDefaults:
    def test_diff_defaults(self, config):
        assert config.context_length == 30
        assert config.min_context_length == 5
        assert config.search_context_length == 20
        assert config.min_unchanged_range == 2
        assert config.preview_length == 50
        assert config.detect_modified_marks is False

    def test_mark_names(self, config):
        assert (config.insert_mark, config.delete_mark, config.format_mark) == (
            "trackInsert",
            "trackDelete",
            "trackFormat",
        )
        assert config.annotation_marks == {TRACK_INSERT_MARK, TRACK_DELETE_MARK, TRACK_FORMAT_MARK}

    def test_excluded_marks(self, config):
        assert config.excluded_mark_types == DEFAULT_EXCLUDED_MARK_TYPES
        assert "comment" in config.excluded_mark_types

    def test_excluded_marks_not_shared(self):
        first = TrackDiffConfig()
        first.excluded_mark_types.append("custom")
        assert "custom" not in TrackDiffConfig().excluded_mark_types

    def test_apply_defaults(self, config):
        assert config.on_schema_missing == "abort"
        assert config.default_user is COMPARISON_USER
        assert config.settle_delay_seconds == 0.0
        assert config.metrics is None
        assert config.debug_dump_changes is False
        assert config.log_level is None


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"context_length": -1},
            {"min_context_length": 0},
            {"search_context_length": 3},
            {"min_unchanged_range": -1},
            {"preview_length": 0},
            {"settle_delay_seconds": -0.5},
            {"on_schema_missing": "ignore"},
            {"insert_mark": "trackDelete"},
            {"log_level": "LOUD"},
        ],
    )
    def test_rejected(self, kwargs):
        with pytest.raises(ValueError):
            TrackDiffConfig(**kwargs)

    def test_search_length_may_equal_minimum(self):
        config = TrackDiffConfig(min_context_length=8, search_context_length=8)
        assert config.search_context_length == 8

    def test_log_level_by_name_or_number(self):
        assert TrackDiffConfig(log_level="info").log_level == "info"
        assert TrackDiffConfig(log_level=30).log_level == 30

    def test_custom_mark_names(self):
        config = TrackDiffConfig(insert_mark="ins", delete_mark="del", format_mark="fmt")
        assert config.annotation_marks == {"ins", "del", "fmt"}
