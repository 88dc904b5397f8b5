"""Tests for saved recipe lookups."""

from nutrition_engine.domain.nutrition import NutrientProfile
from nutrition_engine.domain.recipes import RecipeDetails, RecipeIngredient
from nutrition_engine.services.recipes import RecipeService
from tests.conftest import InMemoryRecipeRepository

CURRY = RecipeDetails(
    id="recipe-1",
    name="Chicken Curry",
    servings=4,
    batch_nutrients=NutrientProfile(
        calories=2000, protein_g=160, carbs_g=120, fat_total_g=80
    ),
    ingredients=(
        RecipeIngredient(name="chicken thigh", quantity=600, unit="g", calories=1250),
        RecipeIngredient(name="coconut milk", quantity=1, unit="can", calories=None),
    ),
)


def _service() -> RecipeService:
    return RecipeService(InMemoryRecipeRepository(recipes={CURRY.id: CURRY}))


def test_find_matches_words_in_order() -> None:
    service = _service()

    [summary] = service.find("user-1", "chicken curry")

    assert summary.id == "recipe-1"
    assert summary.calories_per_serving == 500
    assert service.repository.patterns == ["%chicken%curry%"]
    assert service.find("user-1", "curry chicken") == []


def test_find_ignores_single_letters() -> None:
    service = _service()

    service.find("user-1", "a curry")
    service.find("user-1", "x")

    assert service.repository.patterns == ["%curry%", "%x%"]


def test_details_include_per_serving_and_batch() -> None:
    details = _service().details("recipe-1")

    assert details is not None
    assert details["nutrition_per_serving"] == {
        "calories": 500,
        "protein_g": 40.0,
        "carbs_g": 30.0,
        "fat_total_g": 20.0,
    }
    assert details["total_batch"]["calories"] == 2000
    assert details["ingredients"][0] == {
        "name": "chicken thigh",
        "quantity": 600,
        "unit": "g",
        "calories": 1250,
    }


def test_calculate_serving_scales_per_serving_values() -> None:
    result = _service().calculate_serving("recipe-1", 1.5)

    assert result == {
        "recipe_id": "recipe-1",
        "recipe_name": "Chicken Curry",
        "servings_calculated": 1.5,
        "nutrition": {
            "calories": 750,
            "protein_g": 60.0,
            "carbs_g": 45.0,
            "fat_total_g": 30.0,
        },
    }


def test_missing_recipe() -> None:
    service = _service()

    assert service.details("nope") is None
    assert service.calculate_serving("nope", 1) is None
