from __future__ import annotations

import json

from adapters.json_exporter import dumps, export_json, to_jsonable
from core.normalise import normalise_array


def test_collection_is_exported_with_pagination(pages_response):
    pages = normalise_array(pages_response)

    data = to_jsonable(pages)

    assert [page["title"] for page in data["data"]] == ["Root", "Node", "Leaf"]
    assert data["data"][0]["createdAt"].startswith("2023-04-09T11:26:45.039")
    assert data["pagination"] == {"page": 1, "pageSize": 25, "pageCount": 1, "total": 3}


def test_single_entity_and_none():
    assert to_jsonable({"id": 1, "title": "x"}) == {"id": 1, "title": "x"}
    assert dumps(None) == "null"


def test_export_json_writes_utf8_file(tmp_path, pages_response):
    output = tmp_path / "out" / "pages.json"

    path = export_json(result=normalise_array(pages_response), output_path=output)

    assert path == output
    text = output.read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert json.loads(text)["pagination"]["total"] == 3
