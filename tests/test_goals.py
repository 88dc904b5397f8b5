"""Tests for goal drafting and recommendations."""

from nutrition_engine.domain.goals import UserProfile
from nutrition_engine.services.goals import (
    GoalService,
    default_unit,
    normalize_nutrient,
    recommended_goals,
)
from tests.conftest import InMemoryGoalRepository, InMemoryProfileRepository

PROFILE = UserProfile(
    user_id="user-1",
    height_cm=180,
    weight_kg=80,
    age=30,
    gender="male",
    activity_level="moderate",
    health_goal="lose weight",
)


def _service(profile: UserProfile | None = None) -> GoalService:
    profiles = InMemoryProfileRepository()
    if profile is not None:
        profiles.profiles[profile.user_id] = profile
    return GoalService(
        goal_repository=InMemoryGoalRepository(), profile_repository=profiles
    )


def test_normalize_nutrient_and_units() -> None:
    assert normalize_nutrient(" Protein ") == "protein_g"
    assert normalize_nutrient("kcal") == "calories"
    assert normalize_nutrient("potassium_mg") == "potassium_mg"
    assert default_unit("calories") == "kcal"
    assert default_unit("sodium_mg") == "mg"
    assert default_unit("vitamin_d_mcg") == "mcg"
    assert default_unit("fiber_g") == "g"


def test_draft_goal_normalizes_and_validates() -> None:
    draft = _service().draft_goal("protein", 150)

    assert draft.goal.nutrient == "protein_g"
    assert draft.goal.unit == "g"
    assert draft.validation.passed
    assert draft.payload()["target_value"] == 150.0


def test_draft_goal_keeps_limit_and_thresholds() -> None:
    draft = _service().draft_goal(
        "sodium", 2300, goal_type="limit", yellow_min=1800, red_min=2300
    )

    payload = draft.payload()
    assert payload["nutrient"] == "sodium_mg"
    assert payload["unit"] == "mg"
    assert payload["goal_type"] == "limit"
    assert payload["yellow_min"] == 1800
    assert payload["green_min"] is None


def test_draft_goal_warns_on_low_calories() -> None:
    draft = _service().draft_goal("calories", 800)

    assert draft.validation.passed
    assert draft.validation.warnings


def test_recommended_goals_for_weight_loss() -> None:
    recommended = recommended_goals(PROFILE)

    assert recommended is not None
    assert recommended.bmr == 1780
    assert recommended.tdee == 2759
    assert recommended.targets == {
        "calories": 2259,
        "protein_g": 128,
        "carbs_g": 295,
        "fat_total_g": 63,
        "fiber_g": 38,
        "sugar_g": 50,
    }


def test_recommended_goals_need_profile_numbers() -> None:
    profile = UserProfile(user_id="user-2", height_cm=165, weight_kg=60)

    assert recommended_goals(profile) is None
    assert _service(profile).recommend("user-2") is None
    assert _service().recommend("missing") is None


def test_recommend_reads_profile() -> None:
    recommended = _service(PROFILE).recommend("user-1")

    assert recommended is not None
    assert recommended.health_goal == "lose weight"
    assert recommended.activity_level == "moderate"
