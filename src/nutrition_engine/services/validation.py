"""Sanity checks for nutrition numbers and goal values."""

import logging
import re
from dataclasses import dataclass, field

from nutrition_engine.services.analytics import AnalyticsRecorder

MAX_ITEM_CALORIES = 2500
MAX_SODIUM_MG = 5000
MAX_SERVING_GRAMS = 2500
MIN_CALORIE_DISCREPANCY = 50
CALORIE_DISCREPANCY_RATIO = 0.25

_LIKELY_CALORIC = re.compile(
    r"protein|oil|butter|fat|carb|flour|bread|meat|chicken|beef|egg|milk|cheese|"
    r"rice|pasta|sugar|honey|syrup|avocado|nut|almond|peanut|snack|cookie|cake|"
    r"chip|potato|corn|bean|lentil|salmon|tuna|steak|pork|bacon|yogurt",
    re.IGNORECASE,
)
_GRAMS = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*g\b", re.IGNORECASE)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NutritionCheck:
    """Nutrition numbers to check for one item."""

    food_name: str
    calories: float
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_total_g: float = 0.0
    sodium_mg: float | None = None
    serving_size: str | None = None


@dataclass
class ValidationResult:
    """Errors block a log, warnings are shown to the user."""

    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.errors

    def as_dict(self) -> dict[str, object]:
        return {
            "passed": self.passed,
            "warnings": list(self.warnings),
            "errors": list(self.errors),
        }


@dataclass
class NutritionValidator:
    """Checks items for impossible or suspicious values."""

    analytics: AnalyticsRecorder = field(default_factory=AnalyticsRecorder)

    def validate_items(
        self, items: list[NutritionCheck], user_id: str | None = None
    ) -> ValidationResult:
        """Validate items and record failures for analysis."""
        result = ValidationResult()
        for item in items:
            _check_item(item, result)

        if not result.passed:
            _logger.info("Validation failed: %s", result.errors)
            self.analytics.validation_failure(
                user_id,
                ", ".join(item.food_name for item in items),
                ", ".join(item.serving_size or "" for item in items),
                {"errors": result.errors, "warnings": result.warnings},
            )
        return result

    def validate_goal(self, nutrient: str, value: float) -> ValidationResult:
        """Check a daily goal value against reasonable ranges."""
        result = ValidationResult()
        if value < 0:
            result.errors.append(f"{nutrient}: Goal value cannot be negative.")

        name = nutrient.lower()
        if "calorie" in name or name == "kcal":
            if value < 1000:
                result.warnings.append(
                    f"{value:g} kcal seems very low for a daily calorie goal."
                )
            elif value > 5000:
                result.warnings.append(
                    f"{value:g} kcal seems very high for a daily calorie goal."
                )
        elif "protein" in name:
            if value < 30:
                result.warnings.append(
                    f"{value:g}g seems low for a daily protein goal."
                )
            elif value > 400:
                result.warnings.append(
                    f"{value:g}g seems very high for a daily protein goal."
                )
        elif "sodium" in name and value > 5000:
            result.warnings.append(
                f"{value:g}mg of sodium is well above recommended daily limits."
            )
        elif "fiber" in name and value > 100:
            result.warnings.append(f"{value:g}g of fiber is extremely high.")
        return result


def _check_item(item: NutritionCheck, result: ValidationResult) -> None:
    name = item.food_name
    for label, value in (
        ("Calories", item.calories),
        ("Protein", item.protein_g),
        ("Fat", item.fat_total_g),
        ("Carbs", item.carbs_g),
    ):
        if value < 0:
            result.errors.append(f"{name}: {label} cannot be negative.")

    calculated = 4 * item.protein_g + 4 * item.carbs_g + 9 * item.fat_total_g
    allowed = max(MIN_CALORIE_DISCREPANCY, item.calories * CALORIE_DISCREPANCY_RATIO)
    if item.calories > 0 and abs(item.calories - calculated) > allowed:
        result.warnings.append(
            f"{name}: Calorie count ({item.calories:g}) is inconsistent with "
            f"macros (calculated: {round(calculated)})."
        )
    if item.calories > MAX_ITEM_CALORIES:
        result.warnings.append(
            f"{name}: Unusually high calorie count ({item.calories:g}) "
            "for a single item."
        )
    if item.sodium_mg and item.sodium_mg > MAX_SODIUM_MG:
        result.warnings.append(
            f"{name}: Very high sodium content ({item.sodium_mg:g}mg)."
        )

    if item.calories == 0 and calculated > 0:
        result.errors.append(
            f"{name}: 0 calories reported with non-zero macros."
        )
    if item.calories == 0 and _LIKELY_CALORIC.search(name):
        result.errors.append(
            f'{name}: "{name}" is a caloric food but returned 0 calories.'
        )

    grams = _GRAMS.match(item.serving_size or "")
    if grams and float(grams.group(1)) > MAX_SERVING_GRAMS:
        result.warnings.append(
            f"{name}: The portion size ({float(grams.group(1)):g}g) seems "
            "unusually large for a single log."
        )
