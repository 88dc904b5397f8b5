"""Supabase-backed product nutrition cache."""

from dataclasses import dataclass

from supabase import Client

from nutrition_engine.adapters.supabase_rows import (
    execute,
    nutrient_columns,
    nutrients_from_row,
)
from nutrition_engine.domain.nutrition import MACRO_FIELDS, NutritionRecord
from nutrition_engine.services.resolution import ProductCacheRepository


@dataclass
class SupabaseProductCacheRepository(ProductCacheRepository):
    """Cache rows in ``food_products`` keyed by normalized search term."""

    client: Client

    def get_product(self, search_term: str) -> NutritionRecord | None:
        response = execute(
            self.client.table("food_products")
            .select("product_name, nutrition_data, source, brand")
            .eq("search_term", search_term)
            .limit(1),
            "read product cache",
        )
        if not response.data:
            return None
        row = response.data[0]
        nutrition = row.get("nutrition_data") or {}
        return NutritionRecord(
            food_name=row.get("product_name") or search_term,
            nutrients=nutrients_from_row(nutrition),
            serving_size=nutrition.get("serving_size"),
            source=row.get("source") or "cache",
            brand=row.get("brand"),
        )

    def save_product(self, search_term: str, record: NutritionRecord) -> None:
        nutrients = nutrient_columns(record.nutrients)
        execute(
            self.client.table("food_products").upsert(
                {
                    "search_term": search_term,
                    "product_name": record.food_name,
                    "nutrition_data": {
                        **nutrients,
                        "serving_size": record.serving_size,
                    },
                    **{name: nutrients[name] for name in MACRO_FIELDS},
                    "source": record.source,
                    "brand": record.brand,
                },
                on_conflict="search_term",
            ),
            "write product cache",
        )
