"""Supabase repository for saved recipes."""

from dataclasses import dataclass

from supabase import Client

from nutrition_engine.adapters.supabase_rows import execute, nutrients_from_row
from nutrition_engine.domain.recipes import (
    RecipeDetails,
    RecipeIngredient,
    RecipeSummary,
)
from nutrition_engine.services.recipes import RecipeRepository


@dataclass
class SupabaseRecipeRepository(RecipeRepository):
    """Reads ``user_recipes`` and ``recipe_ingredients``."""

    client: Client

    def search_recipes(
        self, user_id: str, pattern: str, limit: int
    ) -> list[RecipeSummary]:
        response = execute(
            self.client.table("user_recipes")
            .select("id, recipe_name, nutrition_data, servings")
            .eq("user_id", user_id)
            .ilike("recipe_name", pattern)
            .limit(limit),
            "search recipes",
        )
        summaries = []
        for row in response.data or []:
            servings = _servings(row)
            calories = (row.get("nutrition_data") or {}).get("calories") or 0
            summaries.append(
                RecipeSummary(
                    id=str(row["id"]),
                    name=str(row["recipe_name"]),
                    servings=servings,
                    calories_per_serving=round(calories / servings),
                )
            )
        return summaries

    def get_recipe(self, recipe_id: str) -> RecipeDetails | None:
        response = execute(
            self.client.table("user_recipes")
            .select("id, recipe_name, servings, nutrition_data")
            .eq("id", recipe_id)
            .limit(1),
            "read recipe",
        )
        if not response.data:
            return None
        row = response.data[0]
        ingredients = execute(
            self.client.table("recipe_ingredients")
            .select("ingredient_name, quantity, unit, nutrition_data")
            .eq("recipe_id", recipe_id),
            "read recipe ingredients",
        )
        return RecipeDetails(
            id=str(row["id"]),
            name=str(row["recipe_name"]),
            servings=_servings(row),
            batch_nutrients=nutrients_from_row(row.get("nutrition_data") or {}),
            ingredients=tuple(
                _parse_ingredient(item) for item in ingredients.data or []
            ),
        )


def _servings(row: dict[str, object]) -> float:
    value = row.get("servings")
    return float(value) if isinstance(value, int | float) and value > 0 else 1.0


def _parse_ingredient(row: dict[str, object]) -> RecipeIngredient:
    quantity = row.get("quantity")
    calories = (row.get("nutrition_data") or {}).get("calories")
    return RecipeIngredient(
        name=str(row.get("ingredient_name") or ""),
        quantity=float(quantity) if isinstance(quantity, int | float) else None,
        unit=row.get("unit"),
        calories=float(calories) if isinstance(calories, int | float) else None,
    )
