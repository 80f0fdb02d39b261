"""Shared fixtures: small documents and loaded sessions."""

from __future__ import annotations

import json
from typing import Any

import pytest

from json_shadow_workbench.session import Session


@pytest.fixture
def catalog() -> Any:
    """A document with records that carry a `name` sibling."""
    return {
        "title": "Catalog",
        "items": [
            {"name": "Apple", "title": "Red fruit", "price": 3},
            {"name": "Banana", "title": "Yellow fruit", "price": 2},
            {"id": 7, "title": "Nameless"},
        ],
        "meta": {"updated": "2024-05-01", "version": "1.2.3"},
    }


@pytest.fixture
def session(catalog) -> Session:
    s = Session()
    s.load_document(catalog)
    return s


@pytest.fixture
def json_file(tmp_path, catalog):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog), encoding="utf-8")
    return path
