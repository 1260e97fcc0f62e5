# produce/core.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .models import Category, Product, Unit
from .units import from_grams, to_grams


class ProductIn(BaseModel):
    name: str = Field(max_length=255)
    quantity: float = Field(gt=0, allow_inf_nan=False)
    unit: Unit = Unit.KILOGRAMS

    @model_validator(mode="after")
    def quantity_fits_in_grams(self) -> "ProductIn":
        to_grams(self.quantity, self.unit)
        return self

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name cannot be blank")
        return value


class ImportItem(BaseModel):
    id: Optional[int] = None
    name: str = Field(max_length=255)
    type: Category
    quantity: float = Field(ge=0, allow_inf_nan=False)
    unit: Unit

    @model_validator(mode="after")
    def quantity_fits_in_grams(self) -> "ImportItem":
        to_grams(self.quantity, self.unit)
        return self

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name cannot be blank")
        return value


class ApiResponse(BaseModel):
    success: bool
    message: str
    data: Any = None
    errors: List[str] = []


def _make_product_dict(product: Product, unit: Unit = Unit.GRAMS) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "quantity": from_grams(product.quantity_grams, unit),
        "unit": unit.value,
    }
