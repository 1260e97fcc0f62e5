# produce/units.py
import math
from typing import Union

from .models import Unit

GRAMS_PER_KILOGRAM = 1000


def _as_unit(unit: Union[Unit, str]) -> Unit:
    try:
        return Unit(unit)
    except ValueError:
        raise ValueError(f"Unit must be either kg or g, got {unit!r}")


def to_grams(quantity: float, unit: Union[Unit, str]) -> float:
    grams = float(quantity)
    if _as_unit(unit) is Unit.KILOGRAMS:
        grams *= GRAMS_PER_KILOGRAM
    if not math.isfinite(grams):
        raise ValueError(f"quantity must be a finite number of grams, got {quantity!r} {unit}")
    return grams


def to_kilograms(quantity_grams: float) -> float:
    return float(quantity_grams) / GRAMS_PER_KILOGRAM


def from_grams(quantity_grams: float, unit: Union[Unit, str]) -> float:
    """Express a stored gram quantity in the unit a caller asked for."""
    if _as_unit(unit) is Unit.KILOGRAMS:
        return to_kilograms(quantity_grams)
    return float(quantity_grams)
