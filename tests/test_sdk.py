# tests/test_sdk.py
import json

import pytest

from sdk.produce_client import ProduceClient


@pytest.fixture
def sdk(client):
    c = ProduceClient(base_url="http://testserver")
    # route the SDK through the in-process app instead of the network
    c.session = client
    return c


def test_add_list_remove(sdk):
    created = sdk.add_product("fruits", "Apple", 1.5, "kg")
    assert created["data"]["quantity"] == 1500.0
    assert sdk.list_products("fruits", unit="kg")[0]["quantity"] == 1.5
    assert sdk.list_products("fruits", search="zzz") == []
    assert sdk.remove_product("fruits", created["data"]["id"]) is True
    assert sdk.remove_product("fruits", created["data"]["id"]) is False


def test_add_validation_failure_returns_body(sdk):
    resp = sdk.add_product("fruits", "Apple", -1, "kg")
    assert resp["success"] is False
    assert resp["errors"]


def test_import_from_file_and_health(sdk, tmp_path):
    path = tmp_path / "request.json"
    path.write_text(json.dumps([{"name": "Carrot", "type": "vegetable", "quantity": 2, "unit": "kg"}]))
    preview = sdk.preview_import(path)
    assert preview["vegetables"][0]["quantity"] == 2000.0
    assert sdk.import_products(str(path))["data"]["imported_count"] == 1
    assert sdk.list_products("vegetables")[0]["name"] == "Carrot"
    assert sdk.health()["status"] == "healthy"
