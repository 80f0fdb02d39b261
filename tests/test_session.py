"""Tests for the session facade: loading, addressing, products and saving."""

from __future__ import annotations

import json

import pytest

from json_shadow_workbench.errors import AddressError, IoFailure, NotLoaded, ParseFailure, SessionBusy
from json_shadow_workbench.session import Session

# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoad:
    def test_load_from_path(self, json_file, catalog) -> None:
        s = Session()
        s.load(json_file)
        assert s.loaded
        assert s.document == catalog
        assert s.original_path == str(json_file)
        assert s.index[0].address == "$"

    def test_load_from_file_object(self, json_file, catalog) -> None:
        s = Session()
        with open(json_file, "rb") as f:
            s.load(f)
        assert s.document == catalog
        assert s.original_path == str(json_file)

    def test_load_invalid_json(self, tmp_path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        s = Session()
        with pytest.raises(ParseFailure):
            s.load(path)
        assert not s.loaded

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(IoFailure):
            Session().load(tmp_path / "missing.json")

    def test_load_text(self) -> None:
        s = Session()
        s.load_text('{"a": [1, 2]}')
        assert [n.address for n in s.index] == ["$", "$.a", "$.a[0]", "$.a[1]"]
        assert s.original_path is None

    @pytest.mark.parametrize("text", ['{"x": NaN}', '[Infinity]', '{"x": -Infinity}'])
    def test_non_finite_constants_rejected(self, text) -> None:
        s = Session()
        with pytest.raises(ParseFailure):
            s.load_text(text)
        assert not s.loaded

    def test_too_deep_input_rejected(self) -> None:
        s = Session()
        with pytest.raises(ParseFailure, match="nesting is too deep"):
            s.load_text("[" * 100_000 + "]" * 100_000)
        assert not s.loaded

    def test_reload_clears_products(self, session, catalog) -> None:
        session.build_intermediate("name")
        session.build_final()
        session.load_document(catalog)
        assert session.intermediate_text == ""
        assert session.final_text == ""

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.extract("$"),
            lambda s: s.mutate("$.a", "x"),
            lambda s: s.save(),
            lambda s: s.build_intermediate("x"),
            lambda s: s.detect_candidate_fields(),
            lambda s: s.extract_search_results("x"),
            lambda s: s.apply_corrections("{}"),
        ],
    )
    def test_operations_need_a_document(self, call) -> None:
        with pytest.raises(NotLoaded):
            call(Session())


# ---------------------------------------------------------------------------
# Extract and mutate
# ---------------------------------------------------------------------------


class TestExtractMutate:
    def test_extract_root_round_trips(self, session, catalog) -> None:
        assert json.loads(session.extract("$")) == catalog

    def test_extract_is_pretty(self, session) -> None:
        assert session.extract("$.meta") == '{\n  "updated": "2024-05-01",\n  "version": "1.2.3"\n}'

    def test_extract_missing(self, session) -> None:
        with pytest.raises(AddressError) as info:
            session.extract("$.nonexistent.path")
        assert info.value.reason == AddressError.NO_MATCH

    def test_mutate_then_extract(self, session) -> None:
        written = session.mutate("$.items[1].name", "Cherry")
        assert written == "$.items[1].name"
        assert "Cherry" in session.extract("$.items[1]")
        node = session.find_node("$.items[1].name")
        assert node is not None and node.preview == '"Cherry"'

    def test_mutate_stores_text_literally(self, session) -> None:
        session.mutate("$.items[0].price", "42")
        assert session.document["items"][0]["price"] == "42"
        assert session.find_node("$.items[0].price").kind.value == "String"

    def test_mutate_container_collapses_subtree(self, session) -> None:
        before = len(session.index)
        session.mutate("$.meta", "gone")
        assert len(session.index) == before - 2
        assert session.find_node("$.meta.version") is None

    def test_failed_mutate_leaves_document(self, session, catalog) -> None:
        before = json.dumps(catalog, sort_keys=True)
        with pytest.raises(AddressError):
            session.mutate("$.nonexistent.path", "v")
        with pytest.raises(AddressError):
            session.mutate("items", "v")
        assert json.dumps(session.document, sort_keys=True) == before

    def test_mutate_root_replaces_document(self, session) -> None:
        assert session.mutate("$", "hello") == "$"
        assert session.document == "hello"
        assert session.extract("$") == '"hello"'
        assert [n.address for n in session.index] == ["$"]
        assert session.index[0].preview == '"hello"'

    def test_busy_session_rejects_mutation(self, session) -> None:
        session._guard.acquire()
        try:
            with pytest.raises(SessionBusy):
                session.mutate("$.title", "x")
        finally:
            session._guard.release()
        assert session.document["title"] == "Catalog"


# ---------------------------------------------------------------------------
# Saving
# ---------------------------------------------------------------------------


class TestSave:
    def test_save_to_target(self, session, tmp_path, catalog) -> None:
        target = tmp_path / "out.json"
        written = session.save(target)
        assert written == str(target)
        text = target.read_text(encoding="utf-8")
        assert json.loads(text) == catalog
        assert "\n  " in text

    def test_save_to_original(self, json_file) -> None:
        s = Session()
        s.load(json_file)
        s.mutate("$.title", "Renamed")
        s.save()
        assert json.loads(json_file.read_text(encoding="utf-8"))["title"] == "Renamed"

    def test_save_without_location(self, session) -> None:
        with pytest.raises(IoFailure):
            session.save()

    def test_save_to_unwritable_target(self, session, tmp_path) -> None:
        with pytest.raises(IoFailure):
            session.save(tmp_path / "no-such-dir" / "out.json")

    def test_unicode_kept(self, tmp_path) -> None:
        s = Session()
        s.load_text('{"名字": "张三"}')
        target = tmp_path / "u.json"
        s.save(target)
        assert "张三" in target.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class TestProducts:
    def test_build_intermediate_records_text(self, session) -> None:
        text = session.build_intermediate("name")
        assert session.intermediate_text == text
        assert json.loads(text)["count"] == 2

    def test_empty_filter(self, session) -> None:
        assert session.build_intermediate("  ") == ""

    def test_no_match_gives_empty_product(self, session) -> None:
        product = json.loads(session.build_intermediate("zzz"))
        assert product["count"] == 0
        assert product["items"] == []

    def test_new_intermediate_drops_final(self, session) -> None:
        session.build_intermediate("name")
        session.build_final()
        assert session.final_text
        session.build_intermediate("title")
        assert session.final_text == ""

    def test_build_final(self, session) -> None:
        session.build_intermediate("name")
        assert json.loads(session.build_final()) == {"0": "Apple", "1": "Banana"}

    def test_build_final_without_intermediate(self, session) -> None:
        with pytest.raises(ParseFailure):
            session.build_final()

    def test_detect_candidate_fields(self, session) -> None:
        assert session.detect_candidate_fields() == ["name", "title"]

    def test_snapshot_is_private(self, session) -> None:
        index, document = session.snapshot()
        index[0].expanded = True
        document["title"] = "copy"
        assert not session.index[0].expanded
        assert session.document["title"] == "Catalog"


class TestSearchResults:
    def test_empty_filter(self, session) -> None:
        assert session.extract_search_results("") == ""

    def test_no_match(self, session) -> None:
        assert session.extract_search_results("zzz") == "{}"

    def test_single_match_is_plain_extract(self, session) -> None:
        assert session.extract_search_results("version") == '"1.2.3"'

    def test_multiple_matches(self, session) -> None:
        data = json.loads(session.extract_search_results("price"))
        assert data["search_filter"] == "price"
        assert data["total_matches"] == 2
        assert data["truncated"] is False
        first = data["results"]["match_1_price"]
        assert first == {"path": "$.items[0].price", "name": "price", "type": "Number", "content": 3}
        assert "match_2_price" in data["results"]


class TestCorrections:
    def test_apply_and_write_back(self, json_file) -> None:
        s = Session()
        s.load(json_file)
        s.build_intermediate("name")
        s.build_final()
        result = s.apply_corrections('{"0": "Apricot", "1": "Blueberry"}')
        assert (result.modified, result.skipped) == (2, 0)
        assert s.document["items"][0]["name"] == "Apricot"
        assert s.find_node("$.items[1].name").preview == '"Blueberry"'
        saved = json.loads(json_file.read_text(encoding="utf-8"))
        assert saved["items"][1]["name"] == "Blueberry"

    def test_no_write_back(self, json_file) -> None:
        s = Session()
        s.load(json_file)
        s.build_intermediate("name")
        s.build_final()
        s.apply_corrections('{"0": "Apricot", "1": "Blueberry"}', write_back=False)
        assert json.loads(json_file.read_text(encoding="utf-8"))["items"][0]["name"] == "Apple"

    def test_shape_mismatch_rejected(self, session) -> None:
        session.build_intermediate("name")
        session.build_final()
        with pytest.raises(ParseFailure):
            session.apply_corrections('{"0": "only one"}')
        assert session.document["items"][0]["name"] == "Apple"

    def test_expansion_survives_install(self, session) -> None:
        session.build_intermediate("name")
        session.toggle_expanded("$")
        session.toggle_expanded("$.items")
        result = session.apply_corrections('{"0": "X"}', write_back=False)
        assert result.modified == 1
        assert session.document["items"][0]["name"] == "X"
        assert session.find_node("$.items").expanded
        assert [n.address for n in session.visible_nodes()] == [
            "$", "$.title", "$.items", "$.items[0]", "$.items[1]", "$.items[2]", "$.meta",
        ]
