"""Goal reads, goal proposals and recommended targets."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from nutrition_engine.domain.goals import Goal, GoalType, UserProfile
from nutrition_engine.services.validation import NutritionValidator, ValidationResult

NUTRIENT_ALIASES = {
    "protein": "protein_g",
    "carbs": "carbs_g",
    "carbohydrates": "carbs_g",
    "carb": "carbs_g",
    "fat": "fat_total_g",
    "fat_g": "fat_total_g",
    "fiber": "fiber_g",
    "sugar": "sugar_g",
    "sodium": "sodium_mg",
    "kcal": "calories",
    "calorie": "calories",
}
ACTIVITY_MULTIPLIERS = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "active": 1.725,
    "very_active": 1.9,
}
DEFAULT_ACTIVITY_MULTIPLIER = 1.55
LOSE_WEIGHT = "lose weight"
GAIN_MUSCLE = "gain muscle"

_logger = logging.getLogger(__name__)


class GoalRepository(Protocol):
    """Read access to a user's goals."""

    def list_goals(self, user_id: str) -> list[Goal]:
        """Return all goals for a user."""


class ProfileRepository(Protocol):
    """Read access to user profiles."""

    def get_profile(self, user_id: str) -> UserProfile | None:
        """Return the profile for a user, if one exists."""


@dataclass(frozen=True)
class RecommendedGoals:
    """Targets derived from a profile."""

    targets: dict[str, int]
    bmr: int
    tdee: int
    health_goal: str | None
    activity_level: str | None


@dataclass(frozen=True)
class GoalDraft:
    """A normalized goal change waiting to be proposed."""

    goal: Goal
    validation: ValidationResult

    def payload(self) -> dict[str, object]:
        goal = self.goal
        return {
            "nutrient": goal.nutrient,
            "target_value": goal.target_value,
            "unit": goal.unit,
            "goal_type": goal.goal_type,
            "yellow_min": goal.yellow_min,
            "green_min": goal.green_min,
            "red_min": goal.red_min,
        }


@dataclass
class GoalService:
    """Reads goals and profiles and prepares goal changes."""

    goal_repository: GoalRepository
    profile_repository: ProfileRepository
    validator: NutritionValidator = field(default_factory=NutritionValidator)

    def get_goals(self, user_id: str) -> list[Goal]:
        return self.goal_repository.list_goals(user_id)

    def get_profile(self, user_id: str) -> UserProfile | None:
        return self.profile_repository.get_profile(user_id)

    def draft_goal(  # noqa: PLR0913
        self,
        nutrient: str,
        target_value: float,
        unit: str | None = None,
        goal_type: GoalType = "goal",
        yellow_min: float | None = None,
        green_min: float | None = None,
        red_min: float | None = None,
    ) -> GoalDraft:
        """Normalize a goal change and validate its value."""
        normalized = normalize_nutrient(nutrient)
        goal = Goal(
            nutrient=normalized,
            target_value=float(target_value),
            unit=unit or default_unit(normalized),
            goal_type=goal_type,
            yellow_min=yellow_min,
            green_min=green_min,
            red_min=red_min,
        )
        return GoalDraft(
            goal=goal, validation=self.validator.validate_goal(normalized, target_value)
        )

    def recommend(self, user_id: str) -> RecommendedGoals | None:
        """Return recommended targets, or None without enough profile data."""
        profile = self.get_profile(user_id)
        if profile is None:
            _logger.info("No profile for %s, cannot recommend goals", user_id)
            return None
        return recommended_goals(profile)


def normalize_nutrient(name: str) -> str:
    """Map user-facing nutrient names onto stored column names."""
    key = name.strip().lower()
    return NUTRIENT_ALIASES.get(key, key)


def default_unit(nutrient: str) -> str:
    if nutrient == "calories":
        return "kcal"
    if nutrient.endswith("_mg"):
        return "mg"
    if nutrient.endswith("_mcg"):
        return "mcg"
    return "g"


def recommended_goals(profile: UserProfile) -> RecommendedGoals | None:
    """Mifflin-St Jeor targets adjusted for activity and goal."""
    if profile.weight_kg is None or profile.height_cm is None or profile.age is None:
        return None

    bmr = 10 * profile.weight_kg + 6.25 * profile.height_cm - 5 * profile.age
    bmr += 5 if profile.gender == "male" else -161
    tdee = bmr * ACTIVITY_MULTIPLIERS.get(
        profile.activity_level or "", DEFAULT_ACTIVITY_MULTIPLIER
    )

    health_goal = (profile.health_goal or "").lower()
    target_calories = tdee
    if health_goal == LOSE_WEIGHT:
        target_calories -= 500
    elif health_goal == GAIN_MUSCLE:
        target_calories += 300

    protein_per_kg = 2.0 if health_goal == GAIN_MUSCLE else 1.6
    protein_g = round(profile.weight_kg * protein_per_kg)
    fat_g = round(target_calories * 0.25 / 9)
    carbs_g = round((target_calories - protein_g * 4 - fat_g * 9) / 4)
    return RecommendedGoals(
        targets={
            "calories": round(target_calories),
            "protein_g": protein_g,
            "carbs_g": carbs_g,
            "fat_total_g": fat_g,
            "fiber_g": 38 if profile.gender == "male" else 25,
            "sugar_g": 50,
        },
        bmr=round(bmr),
        tdee=round(tdee),
        health_goal=profile.health_goal,
        activity_level=profile.activity_level,
    )
