"""Tests for runtime configuration."""

from __future__ import annotations

import dataclasses

import pytest

from json_shadow_workbench.config import DEFAULT_CONFIG, WorkbenchConfig
from json_shadow_workbench.shadow_tree import build_shadow_tree
from json_shadow_workbench.session import Session


class TestWorkbenchConfig:
    def test_defaults(self) -> None:
        assert DEFAULT_CONFIG.preview_length == 32
        assert DEFAULT_CONFIG.page_lines == 300
        assert DEFAULT_CONFIG.max_candidates == 20
        assert (DEFAULT_CONFIG.candidate_min_length, DEFAULT_CONFIG.candidate_max_length) == (2, 50)

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_CONFIG.page_lines = 10  # type: ignore[misc]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"preview_length": 0},
            {"page_lines": 0},
            {"max_candidates": -1},
            {"candidate_min_length": 10, "candidate_max_length": 5},
            {"log_level": "LOUD"},
        ],
    )
    def test_invalid_values(self, kwargs) -> None:
        with pytest.raises(ValueError):
            WorkbenchConfig(**kwargs)

    def test_from_env(self) -> None:
        config = WorkbenchConfig.from_env({
            "JSON_WORKBENCH_PREVIEW_LENGTH": "8",
            "JSON_WORKBENCH_LOG_LEVEL": " debug ",
            "JSON_WORKBENCH_PAGE_LINES": "",
            "UNRELATED": "1",
        })
        assert config.preview_length == 8
        assert config.log_level == "debug"
        assert config.page_lines == 300

    def test_from_env_bad_integer(self) -> None:
        with pytest.raises(ValueError, match="JSON_WORKBENCH_MAX_CANDIDATES"):
            WorkbenchConfig.from_env({"JSON_WORKBENCH_MAX_CANDIDATES": "many"})

    def test_preview_length_reaches_index(self) -> None:
        s = Session(WorkbenchConfig(preview_length=3))
        s.load_text('{"a": "abcdef"}')
        assert s.index[1].preview == '"abc..."'
        assert build_shadow_tree({"a": "abcdef"}, 3)[1].preview == '"abc..."'
