# produce/importer.py
"""Bulk import of products from a JSON array.

Expected input::

    [
      {"id": 1, "name": "Carrot", "type": "vegetable", "quantity": 10922, "unit": "g"},
      {"id": 2, "name": "Apples", "type": "fruit", "quantity": 20, "unit": "kg"}
    ]

Quantities are converted to grams before anything is stored. The ``id``
field is accepted but ignored; the store assigns its own ids.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from pydantic import ValidationError

from .core import ImportItem
from .errors import ImportValidationError, StoreError
from .models import Category
from .services import CategoryService
from .units import to_grams

logger = logging.getLogger(__name__)

EMPTY_IMPORT_MESSAGE = "No products found in the file."


@dataclass
class ImportResult:
    imported_count: int = 0
    errors: List[str] = field(default_factory=list)


def _describe(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return ", ".join(parts)


def parse_items(data: Any) -> List[ImportItem]:
    """Validate already-decoded JSON. Raises ImportValidationError."""
    if not isinstance(data, list):
        raise ImportValidationError("JSON must be an array")
    items = []
    for index, raw in enumerate(data):
        if not isinstance(raw, dict):
            raise ImportValidationError(f"item {index}: must be an object")
        try:
            items.append(ImportItem.model_validate(raw))
        except ValidationError as e:
            raise ImportValidationError(f"item {index}: {_describe(e)}") from e
    return items


def parse(json_text: Union[str, bytes]) -> List[ImportItem]:
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise ImportValidationError(f"Invalid JSON: {e}") from e
    return parse_items(data)


def split(items: List[ImportItem]) -> Dict[str, List[Dict[str, Any]]]:
    """Convert items to grams and group them by category, without persisting."""
    result: Dict[str, List[Dict[str, Any]]] = {c.plural: [] for c in Category}
    for item in items:
        result[item.type.plural].append({
            "id": item.id,
            "name": item.name,
            "type": item.type.value,
            "quantity": to_grams(item.quantity, item.unit),
            "unit": "g",
        })
    return result


class ImportService:
    def __init__(self, services: Mapping[Category, CategoryService]):
        self.services = services

    def process(self, items: List[ImportItem]) -> Dict[str, List[Dict[str, Any]]]:
        return split(items)

    def import_items(self, items: List[ImportItem]) -> ImportResult:
        result = ImportResult()
        if not items:
            result.errors.append(EMPTY_IMPORT_MESSAGE)
            return result

        for category, products in split(items).items():
            if not products:
                continue
            service = self.services[Category.from_plural(category)]
            try:
                count = service.repository.insert_many((p["name"], p["quantity"]) for p in products)
            except StoreError as e:
                logger.error("%s import failed: %s", service.category.label, e)
                result.errors.append(f"{category.capitalize()} import failed: {e}")
                continue
            service.cache.invalidate_all()
            result.imported_count += count
            logger.info("imported %d %s", count, category)
        return result

    def import_file(self, path: Union[str, Path]) -> ImportResult:
        path = Path(path)
        if not path.is_file():
            raise ImportValidationError(f"File not found: {path}")
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ImportValidationError(f"Could not read file: {path}") from e
        return self.import_items(parse(text))
