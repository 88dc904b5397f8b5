"""Shared helpers for Supabase-backed repositories."""

from datetime import datetime
from typing import Protocol

from nutrition_engine.domain.nutrition import (
    MACRO_FIELDS,
    NUTRIENT_FIELDS,
    NutrientProfile,
)
from nutrition_engine.errors import PersistenceError


class _Executable(Protocol):
    def execute(self) -> object: ...


def execute(query: _Executable, action: str):
    """Run a query, turning client failures into PersistenceError."""
    try:
        return query.execute()
    except Exception as exc:
        raise PersistenceError(f"Failed to {action}") from exc


def nutrient_columns(nutrients: NutrientProfile) -> dict[str, float]:
    """Nutrient columns for a row; unreported micronutrients are omitted."""
    return {
        name: getattr(nutrients, name)
        for name in NUTRIENT_FIELDS
        if getattr(nutrients, name) is not None
    }


def nutrients_from_row(row: dict[str, object]) -> NutrientProfile:
    values: dict[str, float] = {}
    for name in NUTRIENT_FIELDS:
        value = row.get(name)
        if isinstance(value, int | float):
            values[name] = float(value)
        elif name in MACRO_FIELDS:
            values[name] = 0.0
    return NutrientProfile(**values)


def parse_timestamp(raw: object) -> datetime:
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    return datetime.min
