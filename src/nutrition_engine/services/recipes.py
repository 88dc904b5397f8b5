"""Saved recipe search and per-serving nutrition."""

from dataclasses import dataclass
from typing import Protocol

from nutrition_engine.domain.nutrition import MACRO_FIELDS, NutrientProfile
from nutrition_engine.domain.recipes import RecipeDetails, RecipeSummary

SEARCH_LIMIT = 5


class RecipeRepository(Protocol):
    """Read access to saved recipes."""

    def search_recipes(
        self, user_id: str, pattern: str, limit: int
    ) -> list[RecipeSummary]:
        """Return recipes whose name matches an ilike pattern."""

    def get_recipe(self, recipe_id: str) -> RecipeDetails | None:
        """Return a recipe with its ingredients."""


@dataclass
class RecipeService:
    """Finds recipes and scales their nutrition to servings."""

    repository: RecipeRepository

    def find(self, user_id: str, query: str) -> list[RecipeSummary]:
        """Match every word of the query in order, case-insensitively."""
        words = [word for word in query.split() if len(word) > 1]
        pattern = f"%{'%'.join(words)}%" if words else f"%{query.strip()}%"
        return self.repository.search_recipes(user_id, pattern, SEARCH_LIMIT)

    def details(self, recipe_id: str) -> dict[str, object] | None:
        recipe = self.repository.get_recipe(recipe_id)
        if recipe is None:
            return None
        return {
            "id": recipe.id,
            "name": recipe.name,
            "servings": recipe.servings,
            "nutrition_per_serving": _macros(per_serving(recipe)),
            "total_batch": _macros(recipe.batch_nutrients),
            "ingredients": [
                {
                    "name": ingredient.name,
                    "quantity": ingredient.quantity,
                    "unit": ingredient.unit,
                    "calories": ingredient.calories,
                }
                for ingredient in recipe.ingredients
            ],
        }

    def calculate_serving(
        self, recipe_id: str, servings: float
    ) -> dict[str, object] | None:
        """Nutrition for a number of servings of a saved recipe."""
        recipe = self.repository.get_recipe(recipe_id)
        if recipe is None:
            return None
        single = per_serving(recipe)
        return {
            "recipe_id": recipe.id,
            "recipe_name": recipe.name,
            "servings_calculated": servings,
            "nutrition": {
                "calories": round(single.calories * servings),
                "protein_g": round(single.protein_g * servings, 1),
                "carbs_g": round(single.carbs_g * servings, 1),
                "fat_total_g": round(single.fat_total_g * servings, 1),
            },
        }


def per_serving(recipe: RecipeDetails) -> NutrientProfile:
    servings = recipe.servings or 1
    batch = recipe.batch_nutrients
    return NutrientProfile(
        calories=round(batch.calories / servings),
        protein_g=round(batch.protein_g / servings, 1),
        carbs_g=round(batch.carbs_g / servings, 1),
        fat_total_g=round(batch.fat_total_g / servings, 1),
    )


def _macros(nutrients: NutrientProfile) -> dict[str, float]:
    return {name: getattr(nutrients, name) for name in MACRO_FIELDS}
