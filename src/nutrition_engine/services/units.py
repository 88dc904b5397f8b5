"""Parsing and conversion of free-text quantities."""

import re
from dataclasses import dataclass

WORD_AMOUNTS: dict[str, float] = {
    "a": 1,
    "an": 1,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "half": 0.5,
    "quarter": 0.25,
    "double": 2,
    "triple": 3,
    "couple": 2,
}

GRAMS_PER_UNIT: dict[str, float] = {
    "g": 1,
    "gram": 1,
    "mg": 0.001,
    "milligram": 0.001,
    "kg": 1000,
    "kilogram": 1000,
    "oz": 28.35,
    "ounce": 28.35,
    "lb": 453.59,
    "pound": 453.59,
}

ML_PER_UNIT: dict[str, float] = {
    "ml": 1,
    "milliliter": 1,
    "l": 1000,
    "liter": 1000,
    "tsp": 4.92,
    "teaspoon": 4.92,
    "tbsp": 14.78,
    "tablespoon": 14.78,
    "cup": 240,
    "fl oz": 29.57,
    "fl-oz": 29.57,
    "fluid ounce": 29.57,
    "pt": 473.17,
    "pint": 473.17,
    "qt": 946.35,
    "quart": 946.35,
    "gal": 3785.41,
    "gallon": 3785.41,
}

DEFAULT_UNIT = "serving"

_NUMERIC_PREFIX = re.compile(r"^([\d/.\s-]+)\s*(.*)$")


@dataclass(frozen=True)
class Quantity:
    """A parsed amount and depluralized unit."""

    amount: float
    unit: str


def parse_quantity(text: str) -> Quantity | None:
    """Parse a portion such as ``"1 1/2 cups"`` or ``"a slice"``.

    Returns None when no leading amount can be read. The unit is whatever
    follows the amount with a trailing ``s`` removed; it is not checked
    against any list of known units.
    """
    cleaned = text.strip().lower()
    if not cleaned:
        return None

    first_word = cleaned.split()[0]
    if first_word in WORD_AMOUNTS:
        unit = cleaned[len(first_word) :].strip()
        return Quantity(amount=WORD_AMOUNTS[first_word], unit=_depluralize(unit))

    match = _NUMERIC_PREFIX.match(cleaned)
    if not match:
        return None
    amount = _parse_amount(match.group(1).strip())
    if amount is None:
        return None
    return Quantity(amount=amount, unit=_depluralize(match.group(2).strip()))


def to_grams(quantity: Quantity) -> float | None:
    """Convert a mass quantity to grams, if the unit is a known mass."""
    factor = GRAMS_PER_UNIT.get(quantity.unit)
    return quantity.amount * factor if factor is not None else None


def to_millilitres(quantity: Quantity) -> float | None:
    """Convert a volume quantity to millilitres, if the unit is a known volume."""
    factor = ML_PER_UNIT.get(quantity.unit)
    return quantity.amount * factor if factor is not None else None


def _depluralize(unit: str) -> str:
    if unit.endswith("s"):
        unit = unit[:-1]
    return unit or DEFAULT_UNIT


def _parse_amount(raw: str) -> float | None:
    """Sum whitespace-separated decimals and simple fractions."""
    if not raw:
        return None
    total = 0.0
    for part in raw.split():
        value = _parse_part(part)
        if value is None:
            return None
        total += value
    return total


def _parse_part(part: str) -> float | None:
    try:
        if "/" in part:
            numerator, denominator = part.split("/", 1)
            return float(numerator) / float(denominator)
        return float(part)
    except (ValueError, ZeroDivisionError):
        return None
