"""Static fallback nutrition for common ingredients."""

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from nutrition_engine.domain.nutrition import (
    NUTRIENT_FIELDS,
    NutrientProfile,
    NutritionRecord,
)

_logger = logging.getLogger(__name__)

INGREDIENT_MODIFIERS = (
    "organic",
    "fresh",
    "frozen",
    "canned",
    "dried",
    "raw",
    "cooked",
    "low sodium",
    "low-sodium",
    "reduced sodium",
    "no salt added",
    "low fat",
    "low-fat",
    "reduced fat",
    "fat free",
    "fat-free",
    "high oleic",
    "extra virgin",
    "virgin",
    "pure",
    "natural",
    "whole",
    "chopped",
    "diced",
    "sliced",
    "minced",
    "crushed",
    "boneless",
    "skinless",
    "bone-in",
    "skin-on",
    "large",
    "medium",
    "small",
    "mini",
    "ripe",
    "unripe",
    "mature",
    "unsalted",
    "salted",
    "roasted",
    "toasted",
    "plain",
    "flavored",
    "sweetened",
    "unsweetened",
)

_STOP_WORDS = {"a", "an", "the", "of", "with", "and", "for", "at", "some", "any"}
# Longest first so "low sodium" is removed before "low".
_MODIFIER_PATTERNS = [
    re.compile(rf"(?<![\w-]){re.escape(modifier)}(?![\w-])")
    for modifier in sorted(INGREDIENT_MODIFIERS, key=len, reverse=True)
]
_MIN_PARTIAL_LENGTH = 3
ZERO_CALORIE_SUBSTANCES = frozenset(
    {"salt", "water", "pepper", "spice", "herb", "seasoning", "tea", "coffee"}
)
# At most one of these may precede the substance ("green tea", "sea salt").
ZERO_CALORIE_QUALIFIERS = frozenset(
    {
        "black",
        "green",
        "white",
        "herbal",
        "sea",
        "kosher",
        "table",
        "sparkling",
        "mineral",
        "tap",
        "filtered",
        "ice",
        "iced",
        "hot",
        "brewed",
        "ground",
        "mixed",
    }
)


def normalize_food_name(name: str) -> str:
    """Lower-case a food name and drop stop words and punctuation."""
    words = [word for word in name.lower().split() if word not in _STOP_WORDS]
    cleaned = re.sub(r"[^\w\s]", "", " ".join(words))
    return re.sub(r"\s+", " ", cleaned).strip()


def strip_modifiers(name: str) -> str:
    """Remove preparation and size modifiers used only for matching."""
    simplified = name.lower().strip()
    for pattern in _MODIFIER_PATTERNS:
        simplified = pattern.sub("", simplified)
    return re.sub(r"\s+", " ", simplified).strip()


def matching_name(name: str) -> str:
    """Normalized name with modifiers removed."""
    return normalize_food_name(strip_modifiers(name))


def is_zero_calorie_food(name: str) -> bool:
    """True for the substance itself: salt, plain water, spices, tea or coffee.

    Dishes that merely mention one ("coffee cake", "pepper steak") are not
    calorie free.
    """
    words = matching_name(name).split()
    if not words or len(words) > 2:
        return False
    substance = words[-1]
    if (
        substance not in ZERO_CALORIE_SUBSTANCES
        and substance.removesuffix("s") not in ZERO_CALORIE_SUBSTANCES
    ):
        return False
    return len(words) == 1 or words[0] in ZERO_CALORIE_QUALIFIERS


@dataclass(frozen=True)
class FallbackEntry:
    """Reference nutrition for one serving of an ingredient."""

    nutrients: NutrientProfile
    serving_size: str


@dataclass(frozen=True)
class FallbackMatch:
    """A fallback entry plus the rule that matched it."""

    key: str
    entry: FallbackEntry
    reason: str

    def to_record(self, food_name: str) -> NutritionRecord:
        return NutritionRecord(
            food_name=food_name,
            nutrients=self.entry.nutrients,
            serving_size=self.entry.serving_size,
            source="fallback",
        )


@dataclass(frozen=True)
class FallbackTable:
    """Immutable lookup table matched loosely by ingredient name."""

    entries: Mapping[str, FallbackEntry]

    def match(self, name: str) -> FallbackMatch | None:
        """Find an entry by exact, modifier-stripped, partial or trailing word."""
        normalized = name.lower().strip()
        if normalized in self.entries:
            return self._hit(normalized, "exact")

        simplified = strip_modifiers(normalized)
        if simplified != normalized and simplified in self.entries:
            _logger.info("Fallback after modifiers: %r -> %r", normalized, simplified)
            return self._hit(simplified, "modifier_stripped")

        padded = f" {normalized} "
        long_enough = len(simplified) >= _MIN_PARTIAL_LENGTH
        for key in sorted(self.entries, key=len, reverse=True):
            if f" {key} " in padded:
                return self._hit(key, "partial")
            padded_key = f" {key} "
            if long_enough and (
                f" {simplified} " in padded_key or f" {simplified}s " in padded_key
            ):
                return self._hit(key, "partial")

        words = simplified.split()
        for index in range(len(words) - 1, -1, -1):
            candidate = " ".join(words[index:])
            if candidate in self.entries:
                return self._hit(candidate, "trailing_word")
        return None

    def _hit(self, key: str, reason: str) -> FallbackMatch:
        return FallbackMatch(key=key, entry=self.entries[key], reason=reason)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Mapping[str, object]]) -> "FallbackTable":
        """Build a table from ``{name: {serving_size, calories, ...}}`` data."""
        entries: dict[str, FallbackEntry] = {}
        for name, values in raw.items():
            nutrients = {
                field: float(values[field])
                for field in NUTRIENT_FIELDS
                if values.get(field) is not None
            }
            entries[name.lower().strip()] = FallbackEntry(
                nutrients=NutrientProfile(**nutrients),
                serving_size=str(values.get("serving_size") or "100g"),
            )
        return cls(entries=entries)


def load_fallback_table(path: str | None = None) -> FallbackTable:
    """Load the built-in table, replaced by a JSON file when a path is given."""
    if path is None:
        return FallbackTable.from_mapping(DEFAULT_FALLBACKS)
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return FallbackTable.from_mapping(raw)


def _per(  # noqa: PLR0913
    serving: str,
    kcal: float,
    protein: float,
    carbs: float,
    fat: float,
    **extra: float,
) -> dict[str, object]:
    return {
        "serving_size": serving,
        "calories": kcal,
        "protein_g": protein,
        "carbs_g": carbs,
        "fat_total_g": fat,
        **extra,
    }


# Values per 100g unless the serving says otherwise.
DEFAULT_FALLBACKS: dict[str, dict[str, object]] = {
    "chicken breast": _per("100g", 165, 31, 0, 3.6, sodium_mg=74),
    "chicken thigh": _per("100g", 209, 26, 0, 10.9, sodium_mg=95),
    "chicken": _per("100g", 239, 27, 0, 13.6, sodium_mg=82),
    "ground beef": _per("100g", 254, 17.2, 0, 20, sodium_mg=66),
    "beef": _per("100g", 250, 26, 0, 15, sodium_mg=72),
    "pork": _per("100g", 242, 27, 0, 14, sodium_mg=62),
    "bacon": _per("1 slice (8g)", 43, 3, 0.1, 3.3, sodium_mg=137),
    "salmon": _per("100g", 208, 20, 0, 13, sodium_mg=59),
    "tuna": _per("100g", 132, 28, 0, 1.3, sodium_mg=47),
    "shrimp": _per("100g", 99, 24, 0.2, 0.3, sodium_mg=111),
    "tofu": _per("100g", 76, 8, 1.9, 4.8, calcium_mg=350),
    "egg": _per("1 egg (50g)", 72, 6.3, 0.4, 4.8, cholesterol_mg=186),
    "egg white": _per("1 egg white (33g)", 17, 3.6, 0.2, 0.1, sodium_mg=55),
    "rice": _per("100g", 130, 2.7, 28.2, 0.3, fiber_g=0.4),
    "white rice": _per("100g", 130, 2.7, 28.2, 0.3, fiber_g=0.4),
    "brown rice": _per("100g", 112, 2.3, 23.5, 0.8, fiber_g=1.8),
    "pasta": _per("100g", 158, 5.8, 30.9, 0.9, fiber_g=1.8),
    "bread": _per("1 slice (28g)", 75, 2.6, 13.8, 1, fiber_g=0.8, sodium_mg=137),
    "tortilla": _per("1 tortilla (45g)", 140, 3.7, 23.6, 3.5, sodium_mg=330),
    "oats": _per("100g", 389, 16.9, 66.3, 6.9, fiber_g=10.6),
    "oatmeal": _per("1 cup (234g)", 166, 5.9, 28.1, 3.6, fiber_g=4),
    "quinoa": _per("100g", 120, 4.4, 21.3, 1.9, fiber_g=2.8),
    "potato": _per("100g", 77, 2, 17.5, 0.1, fiber_g=2.2, potassium_mg=425),
    "sweet potato": _per("100g", 86, 1.6, 20.1, 0.1, fiber_g=3),
    "broccoli": _per("100g", 34, 2.8, 6.6, 0.4, fiber_g=2.6),
    "spinach": _per("100g", 23, 2.9, 3.6, 0.4, fiber_g=2.2, iron_mg=2.7),
    "carrot": _per("100g", 41, 0.9, 9.6, 0.2, fiber_g=2.8),
    "tomato": _per("100g", 18, 0.9, 3.9, 0.2, fiber_g=1.2),
    "onion": _per("100g", 40, 1.1, 9.3, 0.1, fiber_g=1.7),
    "avocado": _per("100g", 160, 2, 8.5, 14.7, fiber_g=6.7, potassium_mg=485),
    "apple": _per("1 apple (182g)", 95, 0.5, 25.1, 0.3, fiber_g=4.4, sugar_g=18.9),
    "banana": _per("1 banana (118g)", 105, 1.3, 27, 0.4, fiber_g=3.1, sugar_g=14.4),
    "orange": _per("1 orange (131g)", 62, 1.2, 15.4, 0.2, fiber_g=3.1),
    "blueberry": _per("100g", 57, 0.7, 14.5, 0.3, fiber_g=2.4),
    "strawberry": _per("100g", 32, 0.7, 7.7, 0.3, fiber_g=2),
    "milk": _per("1 cup (240ml)", 122, 8.1, 11.7, 4.8, calcium_mg=293),
    "greek yogurt": _per("100g", 59, 10.2, 3.6, 0.4, calcium_mg=110),
    "yogurt": _per("100g", 61, 3.5, 4.7, 3.3, calcium_mg=121),
    "cheddar cheese": _per("100g", 403, 24.9, 1.3, 33.1, sodium_mg=621),
    "cheese": _per("100g", 403, 24.9, 1.3, 33.1, sodium_mg=621),
    "butter": _per("1 tbsp (14g)", 102, 0.1, 0, 11.5, fat_saturated_g=7.3),
    "olive oil": _per("1 tbsp (13.5g)", 119, 0, 0, 13.5, fat_saturated_g=1.9),
    "oil": _per("1 tbsp (14g)", 124, 0, 0, 14),
    "peanut butter": _per("2 tbsp (32g)", 188, 8, 6.3, 16.1, fiber_g=1.9),
    "almond": _per("100g", 579, 21.2, 21.6, 49.9, fiber_g=12.5),
    "walnut": _per("100g", 654, 15.2, 13.7, 65.2, fiber_g=6.7),
    "sugar": _per("1 tsp (4g)", 16, 0, 4.2, 0, sugar_g=4.2),
    "honey": _per("1 tbsp (21g)", 64, 0.1, 17.3, 0, sugar_g=17.2),
    "black beans": _per("100g", 132, 8.9, 23.7, 0.5, fiber_g=8.7),
    "lentils": _per("100g", 116, 9, 20.1, 0.4, fiber_g=7.9),
    "chickpeas": _per("100g", 164, 8.9, 27.4, 2.6, fiber_g=7.6),
    "pizza": _per("1 slice (107g)", 285, 12.2, 35.7, 10.4, sodium_mg=640),
    "salt": _per("1 tsp (6g)", 0, 0, 0, 0, sodium_mg=2325),
    "coffee": _per("1 cup (240ml)", 2, 0.3, 0, 0),
    "tea": _per("1 cup (240ml)", 2, 0, 0.7, 0),
    "water": _per("1 cup (240ml)", 0, 0, 0, 0),
}
