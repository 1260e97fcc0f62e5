# tests/test_importer.py
import json

import pytest

from produce.errors import ImportValidationError
from produce.importer import EMPTY_IMPORT_MESSAGE, ImportService, parse, split
from produce.models import Category
from produce.services import build_services

SAMPLE = [
    {"id": 1, "name": "Carrot", "type": "vegetable", "quantity": 10922, "unit": "g"},
    {"id": 2, "name": "Apples", "type": "fruit", "quantity": 20, "unit": "kg"},
    {"id": 3, "name": "Pears", "type": "fruit", "quantity": 3500, "unit": "g"},
]


@pytest.fixture
def services(db, backend):
    return build_services(db, backend)


@pytest.fixture
def importer(services):
    return ImportService(services)


def test_parse_valid_array():
    items = parse(json.dumps(SAMPLE))
    assert [i.name for i in items] == ["Carrot", "Apples", "Pears"]
    assert items[1].type is Category.FRUIT


@pytest.mark.parametrize("text,fragment", [
    ('{"name": "Apple"}', "JSON must be an array"),
    ("[1]", "item 0: must be an object"),
    ('[{"name": "Apple", "type": "fruit", "unit": "kg"}]', "quantity"),
    ('[{"name": "Apple", "type": "fruit", "quantity": "lots", "unit": "kg"}]', "quantity"),
    ('[{"name": "Apple", "type": "fruit", "quantity": 1, "unit": "lb"}]', "unit"),
    ('[{"name": "Rock", "type": "mineral", "quantity": 1, "unit": "g"}]', "type"),
    ("not json", "Invalid JSON"),
])
def test_parse_rejects(text, fragment):
    with pytest.raises(ImportValidationError) as exc:
        parse(text)
    assert fragment in str(exc.value)


def test_split_converts_to_grams():
    result = split(parse(json.dumps(SAMPLE)))
    assert [f["quantity"] for f in result["fruits"]] == [20000.0, 3500.0]
    assert result["vegetables"] == [
        {"id": 1, "name": "Carrot", "type": "vegetable", "quantity": 10922.0, "unit": "g"}
    ]


def test_import_persists_in_grams_and_invalidates(importer, services):
    fruits = services[Category.FRUIT]
    assert fruits.list() == []
    result = importer.import_items(parse(json.dumps(SAMPLE)))
    assert result.imported_count == 3
    assert result.errors == []
    assert [(p["name"], p["quantity"]) for p in fruits.list()] == [("Apples", 20000.0), ("Pears", 3500.0)]
    assert services[Category.VEGETABLE].list(unit="kg")[0]["quantity"] == pytest.approx(10.922)


def test_import_empty(importer):
    result = importer.import_items([])
    assert result.imported_count == 0
    assert result.errors == [EMPTY_IMPORT_MESSAGE]


def test_failed_category_does_not_block_the_other(importer, services, db):
    with db.connect() as conn:
        conn.execute("DROP TABLE fruits")
    result = importer.import_items(parse(json.dumps(SAMPLE)))
    assert result.imported_count == 1
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Fruits import failed")
    assert [v["name"] for v in services[Category.VEGETABLE].list()] == ["Carrot"]


def test_import_file(importer, tmp_path):
    path = tmp_path / "request.json"
    path.write_text(json.dumps(SAMPLE), encoding="utf-8")
    assert importer.import_file(path).imported_count == 3


def test_import_missing_file(importer, tmp_path):
    with pytest.raises(ImportValidationError, match="File not found"):
        importer.import_file(tmp_path / "nope.json")


@pytest.mark.parametrize("text", [
    '[{"name": "Melon", "type": "fruit", "quantity": 1e306, "unit": "kg"}]',
    '[{"name": "Melon", "type": "fruit", "quantity": 1e309, "unit": "g"}]',
])
def test_parse_rejects_non_finite_quantities(text):
    with pytest.raises(ImportValidationError, match="item 0"):
        parse(text)


def test_import_endpoint_rejects_overflowing_quantity(client):
    r = client.post("/api/import", json=[{"name": "Melon", "type": "fruit", "quantity": 1e306, "unit": "kg"}])
    assert r.status_code == 400
    assert client.get("/api/fruits").json()["data"] == []
