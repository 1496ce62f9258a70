"""Unit tests for default config loading and merging."""

import pytest

from firehose_platform.config.defaults import load_defaults, merge_configs


class TestLoadDefaults:
    def test_loads_stream_defaults(self):
        defaults = load_defaults("stream")
        assert defaults["tags"] == {"managed-by": "firehose-platform"}
        assert "destination" not in defaults

    def test_loads_platform_defaults(self):
        defaults = load_defaults("platform")
        assert defaults["engine"] == "template"
        assert defaults["boto3"]["rollback_on_failure"] is True

    def test_missing_defaults_raises(self):
        with pytest.raises(FileNotFoundError, match="nonexistent"):
            load_defaults("nonexistent")


class TestMergeConfigs:
    def test_shallow_override(self):
        assert merge_configs({"a": 1, "b": 2}, {"b": 99}) == {"a": 1, "b": 99}

    def test_deep_merge(self):
        base = {"tags": {"managed-by": "x", "team": "a"}}
        result = merge_configs(base, {"tags": {"team": "b"}})
        assert result == {"tags": {"managed-by": "x", "team": "b"}}

    def test_base_not_mutated(self):
        base = {"tags": {"team": "a"}}
        merge_configs(base, {"tags": {"team": "b"}})
        assert base == {"tags": {"team": "a"}}

    def test_lists_replaced_not_merged(self):
        result = merge_configs({"writers": ["a"]}, {"writers": ["b"]})
        assert result == {"writers": ["b"]}
