"""Tests for insight reports."""

import asyncio
import json
from datetime import UTC, date, datetime, timedelta

from nutrition_engine.domain.goals import DayClassification, Goal
from nutrition_engine.domain.insights import DailyTotals
from nutrition_engine.domain.logs import FoodLogRow
from nutrition_engine.domain.nutrition import NutrientProfile
from nutrition_engine.services.generative import GenerativeService
from nutrition_engine.services.insights import (
    InsightService,
    biggest_lever,
    categorize_entry,
    compliance_label,
    goal_progress,
    weekend_skew,
)
from tests.conftest import (
    InMemoryDayClassificationRepository,
    InMemoryFoodLogRepository,
    InMemoryGoalRepository,
    fixed_clock,
    make_generative,
)

# A Wednesday.
NOW = datetime(2024, 5, 15, 18, 0, tzinfo=UTC)
TODAY = NOW.date()


def _log(  # noqa: PLR0913
    when: datetime,
    food_name: str,
    calories: float,
    protein_g: float = 0.0,
    meal_type: str | None = None,
    **extra: float,
) -> FoodLogRow:
    return FoodLogRow(
        id=None,
        logged_at=when,
        food_name=food_name,
        portion=None,
        nutrients=NutrientProfile(calories=calories, protein_g=protein_g, **extra),
        meal_type=meal_type,
    )


def _days_ago(days: int, hour: int = 12) -> datetime:
    return datetime(2024, 5, 15, hour, 0, tzinfo=UTC) - timedelta(days=days)


def _service(
    rows: list[FoodLogRow] | None = None,
    goals: list[Goal] | None = None,
    generative: GenerativeService | None = None,
) -> InsightService:
    goal_repository = InMemoryGoalRepository()
    for goal in goals or []:
        goal_repository.upsert_goal("user-1", goal)
    return InsightService(
        food_logs=InMemoryFoodLogRepository(rows=list(rows or [])),
        goals=goal_repository,
        day_classifications=InMemoryDayClassificationRepository(),
        generative=generative,
        clock=fixed_clock(NOW),
    )


def test_today_totals_only_include_today() -> None:
    service = _service(
        [
            _log(_days_ago(0, 8), "oatmeal", 500, protein_g=20),
            _log(_days_ago(0, 13), "salad", 300, protein_g=10),
            _log(_days_ago(1), "pizza", 1000),
        ]
    )

    today = service.today_totals("user-1", "UTC")

    assert today.day == TODAY
    assert today.totals["calories"] == 800
    assert today.totals["protein_g"] == 30
    assert today.entries == 2
    assert service.today_progress("user-1", "UTC")["items_logged"] == 2


def test_today_uses_local_calendar_day() -> None:
    # 03:00 UTC on the 15th is the evening of the 14th in Los Angeles.
    service = _service(
        [
            _log(datetime(2024, 5, 15, 3, 0, tzinfo=UTC), "late snack", 400),
            _log(datetime(2024, 5, 15, 17, 0, tzinfo=UTC), "lunch", 600),
        ]
    )

    today = service.today_totals("user-1", "America/Los_Angeles")

    assert today.day == date(2024, 5, 15)
    assert today.totals["calories"] == 600


def test_food_history_groups_by_date_and_caps_days() -> None:
    service = _service(
        [
            _log(_days_ago(2), "eggs", 150),
            _log(_days_ago(0, 8), "toast", 80),
            _log(_days_ago(0, 9), "coffee", 5),
        ]
    )

    history = service.food_history("user-1", "UTC", days=100)

    assert history["days_requested"] == 30
    assert history["total_items"] == 3
    assert list(history["history"]) == ["2024-05-13", "2024-05-15"]
    assert [item["food_name"] for item in history["history"]["2024-05-15"]] == [
        "toast",
        "coffee",
    ]


def test_weekly_summary_reports_compliance() -> None:
    service = _service(
        [_log(_days_ago(0), "dinner", 1800), _log(_days_ago(1), "dinner", 1000)],
        goals=[Goal(nutrient="calories", target_value=2000, unit="kcal")],
    )

    summary = service.weekly_summary("user-1", "UTC")

    assert summary["daily_averages"]["calories"] == 400
    assert summary["today_totals"]["calories"] == 1800
    assert summary["goal_progress"] == {"calories": 90.0}
    assert summary["compliance_summary"] == "On track"


def test_weekly_summary_tracks_goal_only_nutrients() -> None:
    service = _service(
        [_log(_days_ago(0), "banana", 105, potassium_mg=400)],
        goals=[Goal(nutrient="potassium_mg", target_value=3500, unit="mg")],
    )

    summary = service.weekly_summary("user-1", "UTC")

    assert summary["goal_progress"] == {"potassium_mg": 11.4}
    assert summary["today_totals"]["potassium_mg"] == 400
    assert summary["compliance_summary"] == "Under targets"


def test_audit_categorizes_and_flags_undercounting() -> None:
    service = _service(
        [
            _log(_days_ago(0, 8), "oatmeal", 300),
            _log(_days_ago(0, 12), "Chipotle burrito bowl", 900),
            _log(_days_ago(0, 15), "apple", 95),
        ]
    )
    service.classify_day("user-1", "UTC", "travel")

    report = asyncio.run(service.audit("user-1", "UTC"))

    assert report.categories == {
        "meals": ["oatmeal", "Chipotle burrito bowl"],
        "snacks": ["apple"],
        "drinks": [],
        "unclassified": [],
    }
    assert report.undercount_flags == ["restaurant_items", "no_drinks_logged"]
    assert report.totals["calories"] == 1295
    assert report.day_type == "travel"
    assert report.narrative is None


def test_audit_flags_missing_snacks() -> None:
    service = _service(
        [
            _log(_days_ago(0, 8), "eggs", 200, meal_type="breakfast"),
            _log(_days_ago(0, 12), "tuna sandwich", 250),
            _log(_days_ago(0, 13), "sparkling water", 0),
        ]
    )

    report = asyncio.run(service.audit("user-1", "UTC"))

    assert report.categories["drinks"] == ["sparkling water"]
    assert report.undercount_flags == ["no_snacks_logged"]


def test_categorize_entry_prefers_meal_type() -> None:
    row = _log(NOW, "chocolate milk", 200, meal_type="snack")

    assert categorize_entry(row) == "snacks"
    assert categorize_entry(_log(NOW, "chocolate milk", 200)) == "drinks"
    assert categorize_entry(_log(NOW, "mystery item", 200)) == "unclassified"


def test_patterns_detect_variance_and_weekend_skew() -> None:
    rows = [
        _log(_days_ago(days), "food", 3000 if days in (3, 4) else 2000)
        for days in range(7)
    ]
    service = _service(rows, generative=make_generative("- Plan weekend meals"))

    report = asyncio.run(service.patterns("user-1", "UTC"))

    assert [entry.day for entry in report.days][0] == date(2024, 5, 9)
    assert report.calorie_range == 1000
    assert report.high_variance
    assert report.weekend_average_calories == 3000
    assert report.weekday_average_calories == 2000
    assert report.weekend_skew
    assert report.by_weekday["Saturday"]["calories"] == 3000
    assert report.averages["calories"] == 2285.7
    assert report.narrative == "- Plan weekend meals"


def test_narrative_failure_keeps_numbers() -> None:
    service = _service(
        [_log(_days_ago(0), "food", 2000)],
        generative=make_generative(RuntimeError("down")),
    )

    report = asyncio.run(service.patterns("user-1", "UTC"))

    assert report.narrative is None
    assert report.days[-1].totals["calories"] == 2000
    assert report.calorie_range == 2000


def test_narrative_receives_only_numbers() -> None:
    generative = make_generative("ok")
    service = _service(
        [_log(_days_ago(0), "Secret Recipe", 500)], generative=generative
    )

    asyncio.run(service.summary("user-1", "UTC"))

    call = generative.client.calls[0]
    assert call["schema_name"] == "summary_narrative"
    assert "Secret Recipe" not in call["messages"][0]["content"]
    assert json.loads(call["messages"][0]["content"])["today"]["calories"] == 500


def test_summary_includes_today_in_rolling_average() -> None:
    service = _service(
        [
            _log(_days_ago(0), "lunch", 700, potassium_mg=400),
            _log(_days_ago(3), "lunch", 1400),
        ],
        goals=[
            Goal(nutrient="potassium_mg", target_value=3500, unit="mg"),
            Goal(nutrient="fiber_g", target_value=0, unit="g"),
        ],
    )

    report = asyncio.run(service.summary("user-1", "UTC"))

    assert report.today.totals["potassium_mg"] == 400
    assert report.rolling_average["calories"] == 300
    progress = {item.nutrient: item.percent for item in report.goal_progress}
    assert progress == {"potassium_mg": 11.4, "fiber_g": None}


def test_reflect_compares_with_previous_week() -> None:
    service = _service(
        [
            _log(_days_ago(0), "dinner", 700, protein_g=10),
            _log(_days_ago(1), "dinner", 1400, protein_g=70),
        ]
    )
    service.classify_day("user-1", "UTC", "social", "birthday dinner")

    report = asyncio.run(service.reflect("user-1", "UTC"))

    assert report.baseline["calories"] == 200
    assert report.deltas["calories"] == 500
    assert report.deltas["protein_g"] == 0
    assert report.lever == "calories"
    assert report.notes == ["social day: shifts from baseline are expected"]


def test_classify_day_stores_today() -> None:
    service = _service()

    classification = service.classify_day("user-1", "UTC", "sick", "flu")

    assert classification == DayClassification(
        day=TODAY, day_type="sick", notes="flu"
    )
    stored = service.day_classifications.get_classification("user-1", TODAY)
    assert stored == classification


def test_recommendations_need_goals() -> None:
    result = asyncio.run(_service().recommendations("user-1", "UTC"))

    assert result == {"message": "Need goals set to provide recommendations"}


def test_recommendations_floor_remaining_at_zero() -> None:
    generative = make_generative(
        json.dumps({"suggestions": [{"food": "Greek yogurt", "reason": "protein"}]})
    )
    service = _service(
        [_log(_days_ago(0), "pasta", 2500, protein_g=50)],
        goals=[
            Goal(nutrient="calories", target_value=2000, unit="kcal"),
            Goal(nutrient="protein_g", target_value=150, unit="g"),
            Goal(
                nutrient="sodium_mg", target_value=2300, unit="mg", goal_type="limit"
            ),
        ],
        generative=generative,
    )

    result = asyncio.run(service.recommendations("user-1", "UTC", focus="protein"))

    assert result["remaining"] == {"calories": 0.0, "protein_g": 100.0}
    assert result["suggestions"] == [{"food": "Greek yogurt", "reason": "protein"}]


def test_recommendations_survive_bad_output() -> None:
    service = _service(
        goals=[Goal(nutrient="calories", target_value=2000, unit="kcal")],
        generative=make_generative("not json"),
    )

    result = asyncio.run(service.recommendations("user-1", "UTC"))

    assert result == {"remaining": {"calories": 2000.0}, "suggestions": []}


def test_goal_progress_and_labels() -> None:
    today = DailyTotals(day=TODAY, totals={"calories": 1500.0}, entries=1)

    [progress] = goal_progress(
        today, [Goal(nutrient="calories", target_value=2000, unit="kcal")]
    )

    assert progress.percent == 75.0
    assert compliance_label([75.0]) == "Under targets"
    assert compliance_label([120.0, 130.0]) == "Above targets"
    assert compliance_label([]) == "No goals to track"


def test_weekend_skew_and_lever_edge_cases() -> None:
    assert not weekend_skew(None, 2000)
    assert not weekend_skew(2100, 2000)
    assert biggest_lever({"calories": 100.0}, {"calories": 0.0}) is None
