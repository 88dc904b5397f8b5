"""Tests for fallback matching and name normalization."""

import json

from nutrition_engine.services.fallbacks import (
    FallbackTable,
    is_zero_calorie_food,
    load_fallback_table,
    matching_name,
    normalize_food_name,
    strip_modifiers,
)


def test_normalize_food_name_drops_stop_words_and_punctuation() -> None:
    assert normalize_food_name("The Chicken, with Rice!") == "chicken rice"


def test_strip_modifiers_removes_longest_first() -> None:
    assert strip_modifiers("Organic Low-Sodium Black Beans") == "black beans"
    assert matching_name("Fresh Organic Spinach") == "spinach"


def test_zero_calorie_foods() -> None:
    assert is_zero_calorie_food("sea salt")
    assert is_zero_calorie_food("black coffee")
    assert is_zero_calorie_food("herbs")
    assert is_zero_calorie_food("Plain Water")
    assert is_zero_calorie_food("green tea")
    assert not is_zero_calorie_food("chicken")


def test_dishes_named_after_zero_calorie_foods_are_caloric() -> None:
    for name in (
        "coffee cake",
        "salt and vinegar chips",
        "bubble tea",
        "herb crusted salmon",
        "pepper steak",
    ):
        assert not is_zero_calorie_food(name), name


def test_match_exact() -> None:
    match = load_fallback_table().match("Chicken Breast")

    assert match is not None
    assert match.key == "chicken breast"
    assert match.reason == "exact"


def test_match_after_stripping_modifiers() -> None:
    match = load_fallback_table().match("fresh spinach")

    assert match is not None
    assert match.key == "spinach"
    assert match.reason == "modifier_stripped"


def test_match_prefers_longest_partial_key() -> None:
    match = load_fallback_table().match("grilled chicken breast")

    assert match is not None
    assert match.key == "chicken breast"
    assert match.reason == "partial"


def test_no_match() -> None:
    assert load_fallback_table().match("dragonfruit") is None


def test_match_builds_fallback_record() -> None:
    match = load_fallback_table().match("banana")

    assert match is not None
    record = match.to_record("Banana")
    assert record.source == "fallback"
    assert record.serving_size == "1 banana (118g)"
    assert record.nutrients.calories == 105


def test_from_mapping_normalizes_keys() -> None:
    table = FallbackTable.from_mapping({" Kimchi ": {"calories": 15}})

    match = table.match("kimchi")
    assert match is not None
    assert match.entry.serving_size == "100g"
    assert match.entry.nutrients.calories == 15
    assert match.entry.nutrients.protein_g == 0


def test_load_fallback_table_from_file(tmp_path) -> None:
    path = tmp_path / "fallbacks.json"
    path.write_text(
        json.dumps({"natto": {"serving_size": "1 pack (45g)", "calories": 90}}),
        encoding="utf-8",
    )

    table = load_fallback_table(str(path))

    assert set(table.entries) == {"natto"}
    assert table.match("rice") is None


def test_partial_match_respects_word_boundaries() -> None:
    table = load_fallback_table()

    assert table.match("ice") is None
    assert table.match("nut") is None
    assert table.match("pea") is None

    match = table.match("chickpea")
    assert match is not None
    assert match.key == "chickpeas"
