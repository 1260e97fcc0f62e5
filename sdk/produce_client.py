# sdk/produce_client.py
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import requests


class ProduceClient:
    def __init__(self, base_url: str = "http://localhost:8000", timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    # Categories are addressed by their plural URL segment: "fruits" or "vegetables"
    def list_products(self, category: str, search: Optional[str] = None, unit: str = "g") -> List[Dict[str, Any]]:
        params = {"unit": unit}
        if search:
            params["search"] = search
        r = self.session.get(self._url(f"/api/{category}"), params=params, timeout=self.timeout)
        r.raise_for_status()
        return r.json()["data"]

    def add_product(self, category: str, name: str, quantity: float, unit: str = "kg") -> Dict[str, Any]:
        r = self.session.post(self._url(f"/api/{category}"), json={
            "name": name, "quantity": quantity, "unit": unit
        }, timeout=self.timeout)
        # validation failures carry field messages worth showing to the caller
        if r.status_code == 400:
            return r.json()
        r.raise_for_status()
        return r.json()

    def remove_product(self, category: str, product_id: int) -> bool:
        r = self.session.delete(self._url(f"/api/{category}/{product_id}"), timeout=self.timeout)
        if r.status_code == 404:
            return False
        r.raise_for_status()
        return True

    def health(self) -> Dict[str, Any]:
        r = self.session.get(self._url("/health"), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def import_products(self, items: Union[List[Dict[str, Any]], str, Path]) -> Dict[str, Any]:
        r = self.session.post(self._url("/api/import"), json=_load_items(items), timeout=self.timeout)
        if r.status_code == 400:
            return r.json()
        r.raise_for_status()
        return r.json()

    def preview_import(self, items: Union[List[Dict[str, Any]], str, Path]) -> Dict[str, Any]:
        r = self.session.post(self._url("/api/file_content"), json=_load_items(items), timeout=self.timeout)
        r.raise_for_status()
        return r.json()


def _load_items(items: Union[List[Dict[str, Any]], str, Path]) -> List[Dict[str, Any]]:
    if isinstance(items, (str, Path)):
        with open(items, "r", encoding="utf-8") as f:
            return json.load(f)
    return items
