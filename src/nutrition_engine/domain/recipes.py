"""Domain models for saved recipes."""

from dataclasses import dataclass

from nutrition_engine.domain.nutrition import NutrientProfile


@dataclass(frozen=True)
class RecipeSummary:
    """Search hit for a saved recipe."""

    id: str
    name: str
    servings: float
    calories_per_serving: float


@dataclass(frozen=True)
class RecipeIngredient:
    """An ingredient line in a saved recipe."""

    name: str
    quantity: float | None
    unit: str | None
    calories: float | None = None


@dataclass(frozen=True)
class RecipeDetails:
    """Saved recipe with batch nutrition."""

    id: str
    name: str
    servings: float
    batch_nutrients: NutrientProfile
    ingredients: tuple[RecipeIngredient, ...] = ()
