"""Portion scaling between user portions and serving sizes."""

import logging
import math
import re
from dataclasses import dataclass, replace
from typing import Protocol

from nutrition_engine.domain.nutrition import (
    MICRO_FIELDS,
    NutrientProfile,
)
from nutrition_engine.errors import GenerationError
from nutrition_engine.services.generative import GenerativeService
from nutrition_engine.services.units import (
    Quantity,
    parse_quantity,
    to_grams,
    to_millilitres,
)

_logger = logging.getLogger(__name__)

_PARENTHETICAL = re.compile(r"\(([^)]+)\)")
_FIRST_NUMBER = re.compile(r"\d+(?:\.\d+)?")

SCALING_PROMPT = (
    "You convert food portions. Given the user's portion and the official "
    "serving size, reply with ONLY the numeric multiplier that converts "
    "nutrition for the serving size into nutrition for the user's portion "
    '(for example 1.5, 0.5, 2). If unsure, reply 1. Example: "1 apple" '
    '(about 180g) vs "100g" -> 1.8'
)


class LearnedMultiplierRepository(Protocol):
    """Persistence interface for learned unit conversions."""

    def get_multiplier(
        self, food_name: str, from_unit: str, to_unit: str
    ) -> float | None:
        """Return a learned multiplier, if present."""

    def save_multiplier(
        self, food_name: str, from_unit: str, to_unit: str, multiplier: float
    ) -> None:
        """Store a learned multiplier."""


@dataclass(frozen=True)
class ScaleResult:
    """Multiplier plus how it was found."""

    multiplier: float
    method: str
    degraded: bool = False


@dataclass
class PortionScaler:
    """Computes nutrient multipliers for user portions."""

    learned_multipliers: LearnedMultiplierRepository | None = None
    generative: GenerativeService | None = None

    async def scale(
        self,
        user_portion: str,
        serving_size: str | None,
        food_name: str | None = None,
    ) -> ScaleResult:
        """Return the multiplier from ``serving_size`` to ``user_portion``."""
        if not serving_size:
            return ScaleResult(multiplier=1.0, method="no_serving_size")

        user = parse_quantity(user_portion)
        official = parse_quantity(_PARENTHETICAL.sub("", serving_size))
        if user is not None and official is not None:
            ruled = _rule_based(user, official)
            if ruled is not None:
                return ruled

        if user is not None:
            annotated = _parenthetical(user, serving_size)
            if annotated is not None:
                return annotated

        if food_name:
            learned = self._learned(food_name, user_portion, serving_size)
            if learned is not None:
                return ScaleResult(multiplier=learned, method="learned")

        estimated = await self._estimate(user_portion, serving_size)
        if estimated is not None:
            if food_name:
                self._remember(food_name, user_portion, serving_size, estimated)
            return ScaleResult(multiplier=estimated, method="generative")

        _logger.info(
            "Scaling defaulted to 1: portion=%s serving=%s", user_portion, serving_size
        )
        return ScaleResult(multiplier=1.0, method="default", degraded=True)

    def _learned(
        self, food_name: str, user_portion: str, serving_size: str
    ) -> float | None:
        if self.learned_multipliers is None:
            return None
        try:
            value = self.learned_multipliers.get_multiplier(
                _key(food_name), _key(user_portion), _key(serving_size)
            )
        except Exception:
            _logger.warning("Learned multiplier lookup failed", exc_info=True)
            return None
        if value is None or not _usable(value):
            return None
        return float(value)

    def _remember(
        self, food_name: str, user_portion: str, serving_size: str, value: float
    ) -> None:
        if self.learned_multipliers is None:
            return
        try:
            self.learned_multipliers.save_multiplier(
                _key(food_name), _key(user_portion), _key(serving_size), value
            )
        except Exception:
            _logger.warning("Learned multiplier write failed", exc_info=True)

    async def _estimate(self, user_portion: str, serving_size: str) -> float | None:
        if self.generative is None:
            return None
        try:
            text = await self.generative.complete(
                system=SCALING_PROMPT,
                messages=[
                    {
                        "role": "user",
                        "content": (
                            f'User portion: "{user_portion}"\n'
                            f'Official serving size: "{serving_size}"'
                        ),
                    }
                ],
            )
        except GenerationError:
            return None
        value = parse_multiplier(text)
        _logger.info("Generative scaling: raw=%r parsed=%s", text, value)
        return value


def parse_multiplier(text: str | None) -> float | None:
    """Read the first numeric token as a multiplier, if finite and positive."""
    if not text:
        return None
    match = _FIRST_NUMBER.search(text)
    if not match:
        return None
    value = float(match.group(0))
    return value if _usable(value) else None


def scale_nutrients(nutrients: NutrientProfile, multiplier: float) -> NutrientProfile:
    """Multiply every nutrient field, rounding to one decimal and whole kcal."""
    if multiplier == 1:
        return nutrients
    updates: dict[str, float | None] = {
        "calories": float(round(nutrients.calories * multiplier)),
        "protein_g": _round(nutrients.protein_g * multiplier),
        "carbs_g": _round(nutrients.carbs_g * multiplier),
        "fat_total_g": _round(nutrients.fat_total_g * multiplier),
    }
    for name in MICRO_FIELDS:
        value = getattr(nutrients, name)
        updates[name] = _round(value * multiplier) if value is not None else None
    return replace(nutrients, **updates)


def _rule_based(user: Quantity, official: Quantity) -> ScaleResult | None:
    if user.unit == official.unit and official.amount > 0:
        ratio = user.amount / official.amount
        if _usable(ratio):
            return ScaleResult(multiplier=ratio, method="same_unit")
    return _convert(user, official, suffix="")


def _parenthetical(user: Quantity, serving_size: str) -> ScaleResult | None:
    match = _PARENTHETICAL.search(serving_size)
    if not match:
        return None
    annotated = parse_quantity(match.group(1))
    if annotated is None:
        return None
    return _convert(user, annotated, suffix="_annotation")


def _convert(user: Quantity, official: Quantity, suffix: str) -> ScaleResult | None:
    user_grams, official_grams = to_grams(user), to_grams(official)
    if user_grams and official_grams:
        return ScaleResult(
            multiplier=user_grams / official_grams, method=f"mass{suffix}"
        )
    user_ml, official_ml = to_millilitres(user), to_millilitres(official)
    if user_ml and official_ml:
        return ScaleResult(multiplier=user_ml / official_ml, method=f"volume{suffix}")
    return None


def _usable(value: float) -> bool:
    return math.isfinite(value) and value > 0


def _round(value: float) -> float:
    return round(value * 10) / 10


def _key(value: str) -> str:
    return value.strip().lower()
