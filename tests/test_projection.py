"""Tests for the final product projection and upload shape checks."""

from __future__ import annotations

import json

import pytest

from json_shadow_workbench.errors import ParseFailure
from json_shadow_workbench.projection import (
    load_product_items,
    project_final_product,
    project_items,
    same_shape,
    validate_upload_shape,
)


def _intermediate(names):
    items = [{"source_path": f"$.k{i}", "name": n, "seq": i} for i, n in enumerate(names)]
    return json.dumps({"stage": "intermediate2", "count": len(items), "items": items})


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


class TestProjectFinal:
    def test_maps_seq_to_name(self) -> None:
        final = json.loads(project_final_product(_intermediate(["A", "B"])))
        assert final == {"0": "A", "1": "B"}

    def test_keys_sorted_as_text(self) -> None:
        text = project_final_product(_intermediate([f"v{i}" for i in range(12)]))
        keys = list(json.loads(text).keys())
        assert keys[:4] == ["0", "1", "10", "11"]
        assert keys[4] == "2"

    def test_bad_seq_falls_back_to_zero(self) -> None:
        final = project_items([{"name": "only"}, {"seq": "x", "name": "later"}])
        assert final == {"0": "later"}

    def test_non_string_name_becomes_empty(self) -> None:
        assert project_items([{"seq": 0, "name": 5}]) == {"0": ""}

    def test_output_is_pretty(self) -> None:
        text = project_final_product(_intermediate(["张三"]))
        assert text == '{\n  "0": "张三"\n}'

    def test_empty_items(self) -> None:
        assert project_final_product('{"items": []}') == "{}"

    @pytest.mark.parametrize("text", ["not json", "[]", '{"stage": "intermediate2"}', '{"items": {}}'])
    def test_invalid_intermediate(self, text: str) -> None:
        with pytest.raises(ParseFailure):
            load_product_items(text)


# ---------------------------------------------------------------------------
# Shape validation
# ---------------------------------------------------------------------------


class TestShape:
    def test_same_shape_ignores_values(self) -> None:
        assert same_shape({"0": "a", "1": "b"}, {"0": "x", "1": "y"})

    def test_key_count_differs(self) -> None:
        assert not same_shape({"0": "a"}, {"0": "a", "1": "b"})

    def test_key_names_differ(self) -> None:
        assert not same_shape({"0": "a"}, {"5": "a"})

    def test_scalar_kinds(self) -> None:
        assert same_shape(1, 2.5)
        assert not same_shape("1", 1)
        assert not same_shape(True, 1)
        assert same_shape(None, None)

    def test_nested(self) -> None:
        assert same_shape({"a": [1, {"b": "x"}]}, {"a": [2, {"b": "y"}]})
        assert not same_shape({"a": [1]}, {"a": [1, 2]})

    def test_upload_matching_final_passes(self) -> None:
        validate_upload_shape('{"0": "new"}', '{"0": "old"}')

    def test_empty_final_skips_check(self) -> None:
        validate_upload_shape('{"anything": [1, 2]}', "")
        validate_upload_shape("not even json", "   ")

    def test_mismatch_raises(self) -> None:
        with pytest.raises(ParseFailure) as info:
            validate_upload_shape('{"0": "new", "1": "extra"}', '{"0": "old"}')
        assert "structure" in str(info.value)

    def test_bad_upload_json_raises(self) -> None:
        with pytest.raises(ParseFailure):
            validate_upload_shape("{broken", '{"0": "old"}')
