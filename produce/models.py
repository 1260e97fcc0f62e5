# produce/models.py
import json
from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class Category(str, Enum):
    FRUIT = "fruit"
    VEGETABLE = "vegetable"

    @property
    def plural(self) -> str:
        # also the table name, the URL segment and the cache namespace
        return f"{self.value}s"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def from_plural(cls, segment: str) -> "Category":
        for category in cls:
            if category.plural == segment:
                return category
        raise ValueError(f"unknown category: {segment}")


class Unit(str, Enum):
    GRAMS = "g"
    KILOGRAMS = "kg"


class Product(BaseModel):
    id: int
    name: str
    quantity_grams: float = Field(ge=0, allow_inf_nan=False)
    category: Category


def encode_products(products: List[Product]) -> bytes:
    return json.dumps([p.model_dump(mode="json") for p in products]).encode("utf-8")


def decode_products(raw: bytes) -> List[Product]:
    """Inverse of encode_products. Raises ValueError on malformed payloads."""
    items = json.loads(raw)
    if not isinstance(items, list):
        raise ValueError("cached payload is not a list")
    return [Product.model_validate(item) for item in items]
