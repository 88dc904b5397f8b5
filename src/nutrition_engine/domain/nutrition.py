"""Nutrition domain models."""

from dataclasses import dataclass, field
from typing import Literal

Confidence = Literal["low", "medium", "high"]

MACRO_FIELDS = ("calories", "protein_g", "carbs_g", "fat_total_g")
MICRO_FIELDS = (
    "fiber_g",
    "sugar_g",
    "sugar_added_g",
    "sodium_mg",
    "fat_saturated_g",
    "fat_trans_g",
    "cholesterol_mg",
    "potassium_mg",
    "calcium_mg",
    "iron_mg",
    "magnesium_mg",
    "vitamin_a_mcg",
    "vitamin_c_mg",
    "vitamin_d_mcg",
)
NUTRIENT_FIELDS = MACRO_FIELDS + MICRO_FIELDS


@dataclass(frozen=True)
class NutrientProfile:
    """Nutrient amounts for one serving of a food.

    Macros are always present. Micronutrients stay ``None`` when the source
    did not report them, which is different from a reported zero.
    """

    calories: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_total_g: float = 0.0
    fiber_g: float | None = None
    sugar_g: float | None = None
    sugar_added_g: float | None = None
    sodium_mg: float | None = None
    fat_saturated_g: float | None = None
    fat_trans_g: float | None = None
    cholesterol_mg: float | None = None
    potassium_mg: float | None = None
    calcium_mg: float | None = None
    iron_mg: float | None = None
    magnesium_mg: float | None = None
    vitamin_a_mcg: float | None = None
    vitamin_c_mg: float | None = None
    vitamin_d_mcg: float | None = None


@dataclass(frozen=True)
class NutritionRecord:
    """Unscaled nutrition data returned by a resolution tier."""

    food_name: str
    nutrients: NutrientProfile
    serving_size: str | None
    source: str
    brand: str | None = None


@dataclass(frozen=True)
class ResolvedFood:
    """A food item resolved and scaled to the user's portion."""

    name: str
    portion: str
    nutrients: NutrientProfile
    serving_size: str | None
    multiplier: float
    source: str
    confidence: Confidence
    confidence_details: dict[str, Confidence] = field(default_factory=dict)
    error_sources: tuple[str, ...] = ()


@dataclass(frozen=True)
class FailedLookup:
    """Observation recorded when no tier could resolve an item."""

    name: str
    normalized_name: str
    portion: str
    attempt: int
    reason: str
    user_id: str | None = None
