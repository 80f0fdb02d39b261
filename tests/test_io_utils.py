"""Tests for strict JSON parsing and guarded serialization."""

from __future__ import annotations

import pytest

from json_shadow_workbench.errors import NestingTooDeep, ParseFailure
from json_shadow_workbench.io_utils import dump_json_pretty, dumps_guarded, file_location, parse_json_text


def _nested(depth: int):
    data = {}
    current = data
    for _ in range(depth):
        child = {}
        current["a"] = child
        current = child
    return data


class TestParse:
    def test_plain_document(self) -> None:
        assert parse_json_text('{"a": [1, 2.5, null]}') == {"a": [1, 2.5, None]}

    def test_bytes_are_decoded(self) -> None:
        assert parse_json_text('{"k": "värde"}'.encode("utf-8")) == {"k": "värde"}

    @pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_constants(self, constant) -> None:
        with pytest.raises(ParseFailure) as info:
            parse_json_text(f'{{"x": {constant}}}', "upload")
        assert info.value.source == "upload"
        assert constant in str(info.value)

    def test_too_deep(self) -> None:
        with pytest.raises(ParseFailure) as info:
            parse_json_text("[" * 100_000 + "]" * 100_000)
        assert info.value.detail == "nesting is too deep"
        assert isinstance(info.value.cause, RecursionError)

    def test_invalid_utf8(self) -> None:
        with pytest.raises(ParseFailure):
            parse_json_text(b'"\xff"')


class TestDump:
    def test_pretty(self) -> None:
        assert dump_json_pretty({"a": "é"}) == '{\n  "a": "é"\n}'

    def test_too_deep(self) -> None:
        with pytest.raises(NestingTooDeep) as info:
            dump_json_pretty(_nested(200_000), "extract")
        assert info.value.operation == "extract"
        assert str(info.value) == "Document is nested too deeply to extract."

    def test_compact_too_deep(self) -> None:
        with pytest.raises(NestingTooDeep):
            dumps_guarded(_nested(200_000), "build the intermediate product", separators=(",", ":"))


class TestFileLocation:
    def test_path_like(self, tmp_path) -> None:
        assert file_location(tmp_path / "a.json") == str(tmp_path / "a.json")

    def test_anonymous(self) -> None:
        assert file_location(None) == ""
        assert file_location(object()) == ""
