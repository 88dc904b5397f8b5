"""Supabase-backed learned multipliers."""

from dataclasses import dataclass

from supabase import Client

from nutrition_engine.adapters.supabase_rows import execute
from nutrition_engine.services.scaling import LearnedMultiplierRepository


@dataclass
class SupabaseUnitConversionRepository(LearnedMultiplierRepository):
    """Rows in ``unit_conversions`` keyed by food and both portion strings."""

    client: Client

    def get_multiplier(
        self, food_name: str, from_unit: str, to_unit: str
    ) -> float | None:
        response = execute(
            self.client.table("unit_conversions")
            .select("multiplier")
            .eq("food_name", food_name)
            .eq("from_unit", from_unit)
            .eq("to_unit", to_unit)
            .limit(1),
            "read unit conversion",
        )
        if not response.data:
            return None
        value = response.data[0].get("multiplier")
        return float(value) if isinstance(value, int | float) else None

    def save_multiplier(
        self, food_name: str, from_unit: str, to_unit: str, multiplier: float
    ) -> None:
        execute(
            self.client.table("unit_conversions").upsert(
                {
                    "food_name": food_name,
                    "from_unit": from_unit,
                    "to_unit": to_unit,
                    "multiplier": multiplier,
                },
                on_conflict="food_name,from_unit,to_unit",
            ),
            "write unit conversion",
        )
