"""Domain models for persisted food logs."""

from dataclasses import dataclass
from datetime import datetime

from nutrition_engine.domain.nutrition import NutrientProfile


@dataclass(frozen=True)
class FoodLogRow:
    """A single logged food entry."""

    id: str | None
    logged_at: datetime
    food_name: str
    portion: str | None
    nutrients: NutrientProfile
    meal_type: str | None = None


@dataclass(frozen=True)
class NewFoodLog:
    """Food log payload written on confirmation."""

    user_id: str
    logged_at: datetime
    food_name: str
    portion: str | None
    nutrients: NutrientProfile
    confidence: str | None = None
    confidence_details: dict[str, str] | None = None
    error_sources: tuple[str, ...] = ()
    recipe_id: str | None = None
    # Confirming the same proposal twice must not add a second row.
    proposal_id: str | None = None
