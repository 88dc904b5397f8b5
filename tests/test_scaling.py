"""Tests for portion scaling."""

import asyncio

import pytest

from nutrition_engine.domain.nutrition import NutrientProfile
from nutrition_engine.services.scaling import (
    PortionScaler,
    parse_multiplier,
    scale_nutrients,
)
from tests.conftest import InMemoryLearnedMultipliers, make_generative


def test_same_unit_ratio() -> None:
    result = asyncio.run(PortionScaler().scale("200g", "100g"))

    assert result.multiplier == 2.0
    assert result.method == "same_unit"
    assert not result.degraded


def test_count_units_match_ignoring_annotation() -> None:
    result = asyncio.run(PortionScaler().scale("2 eggs", "1 egg (50g)"))

    assert result.multiplier == 2.0
    assert result.method == "same_unit"


def test_mass_conversion() -> None:
    result = asyncio.run(PortionScaler().scale("8 oz", "100g"))

    assert result.multiplier == pytest.approx(2.268)
    assert result.method == "mass"


def test_volume_conversion() -> None:
    result = asyncio.run(PortionScaler().scale("2 tbsp", "1 cup (240ml)"))

    assert result.multiplier == pytest.approx(29.56 / 240)
    assert result.method == "volume"


def test_parenthetical_weight_is_used() -> None:
    result = asyncio.run(PortionScaler().scale("100g", "1 apple (182g)"))

    assert result.multiplier == pytest.approx(100 / 182)
    assert result.method == "mass_annotation"


def test_missing_serving_size_keeps_values() -> None:
    result = asyncio.run(PortionScaler().scale("1 bowl", None))

    assert result.multiplier == 1.0
    assert not result.degraded


def test_learned_multiplier_is_reused() -> None:
    learned = InMemoryLearnedMultipliers(
        values={("cereal", "1 bowl", "100g"): 0.6}
    )
    generative = make_generative("2")
    scaler = PortionScaler(learned_multipliers=learned, generative=generative)

    result = asyncio.run(scaler.scale("1 Bowl", "100g", "Cereal"))

    assert result.multiplier == 0.6
    assert result.method == "learned"
    assert generative.client.calls == []


def test_generative_multiplier_is_learned() -> None:
    learned = InMemoryLearnedMultipliers()
    scaler = PortionScaler(
        learned_multipliers=learned, generative=make_generative("About 1.8x")
    )

    result = asyncio.run(scaler.scale("1 apple", "100g", "apple"))

    assert result.multiplier == 1.8
    assert result.method == "generative"
    assert learned.values == {("apple", "1 apple", "100g"): 1.8}


def test_unusable_estimate_defaults_to_one() -> None:
    scaler = PortionScaler(generative=make_generative("unsure"))

    result = asyncio.run(scaler.scale("1 plate", "100g", "stew"))

    assert result.multiplier == 1.0
    assert result.method == "default"
    assert result.degraded


def test_generation_failure_defaults_to_one() -> None:
    scaler = PortionScaler(generative=make_generative(RuntimeError("down")))

    result = asyncio.run(scaler.scale("1 plate", "100g", "stew"))

    assert result.multiplier == 1.0
    assert result.degraded


def test_parse_multiplier() -> None:
    assert parse_multiplier("2.5 servings") == 2.5
    assert parse_multiplier("0") is None
    assert parse_multiplier("no idea") is None
    assert parse_multiplier(None) is None


def test_scale_nutrients_rounds_and_keeps_unreported() -> None:
    nutrients = NutrientProfile(
        calories=165, protein_g=31, carbs_g=0, fat_total_g=3.6, sodium_mg=74
    )

    scaled = scale_nutrients(nutrients, 2)

    assert scaled.calories == 330
    assert scaled.protein_g == 62
    assert scaled.fat_total_g == 7.2
    assert scaled.sodium_mg == 148
    assert scaled.fiber_g is None
    assert scale_nutrients(nutrients, 1) is nutrients
