"""Read-only reports over logged food."""

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from nutrition_engine.domain.goals import DayClassification, Goal
from nutrition_engine.domain.insights import (
    AuditReport,
    DailyTotals,
    GoalProgress,
    PatternReport,
    ReflectionReport,
    SummaryReport,
)
from nutrition_engine.domain.logs import FoodLogRow
from nutrition_engine.domain.nutrition import NUTRIENT_FIELDS
from nutrition_engine.errors import ContractViolationError, GenerationError
from nutrition_engine.services.generative import GenerativeService
from nutrition_engine.services.goals import GoalRepository

TRACKED_NUTRIENTS = (
    "calories",
    "protein_g",
    "carbs_g",
    "fat_total_g",
    "fiber_g",
    "sugar_g",
    "sodium_mg",
)
WINDOW_DAYS = 7
MAX_HISTORY_DAYS = 30
HIGH_VARIANCE_KCAL = 800
WEEKEND_SKEW_RATIO = 0.2
NONTRIVIAL_CALORIES = 500
WEEKEND = (5, 6)
CONTEXT_DAY_TYPES = ("travel", "social", "sick")

MEALS = "meals"
SNACKS = "snacks"
DRINKS = "drinks"
UNCLASSIFIED = "unclassified"

_MEAL_TYPES = {
    "breakfast": MEALS,
    "lunch": MEALS,
    "dinner": MEALS,
    "meal": MEALS,
    "snack": SNACKS,
    "drink": DRINKS,
    "beverage": DRINKS,
}


def _keywords(*words: str) -> re.Pattern[str]:
    return re.compile(
        r"\b(?:" + "|".join(re.escape(word) for word in words) + r")s?\b",
        re.IGNORECASE,
    )


_DRINK_WORDS = _keywords(
    "coffee",
    "tea",
    "latte",
    "cappuccino",
    "espresso",
    "juice",
    "soda",
    "water",
    "milk",
    "smoothie",
    "beer",
    "wine",
    "cocktail",
    "shake",
    "cola",
    "kombucha",
    "lemonade",
)
_SNACK_WORDS = _keywords(
    "snack",
    "bar",
    "chip",
    "cookie",
    "cracker",
    "nut",
    "almond",
    "popcorn",
    "candy",
    "chocolate",
    "pretzel",
    "granola",
    "yogurt",
    "apple",
    "banana",
    "fruit",
    "muffin",
)
_MEAL_WORDS = _keywords(
    "breakfast",
    "lunch",
    "dinner",
    "salad",
    "sandwich",
    "burger",
    "pizza",
    "pasta",
    "rice",
    "bowl",
    "chicken",
    "steak",
    "salmon",
    "soup",
    "curry",
    "taco",
    "burrito",
    "omelette",
    "stir fry",
    "noodle",
    "sushi",
    "oatmeal",
    "eggs",
)
_RESTAURANT_WORDS = _keywords(
    "restaurant",
    "takeout",
    "take-out",
    "delivery",
    "fast food",
    "drive thru",
    "mcdonald's",
    "mcdonalds",
    "chipotle",
    "starbucks",
    "subway",
    "burger king",
    "kfc",
    "taco bell",
    "domino's",
    "pizza hut",
    "wendy's",
    "panera",
    "chick-fil-a",
    "five guys",
    "eating out",
)

NARRATIVE_PROMPTS = {
    "audit": (
        "You review a food log audit. Given category counts, totals and "
        "undercount flags, write 3 short bullets about what may be missing. "
        "Debug the log, do not lecture the user."
    ),
    "patterns": (
        "You are a data analyst. Given daily totals, weekday buckets and "
        "variance signals, write 3 short bullets with one structural fix."
    ),
    "summary": (
        "Summarize today against the rolling average and goals. Bullets only, "
        "3 at most, one adjustment, no moral tone."
    ),
    "reflect": (
        "Compare today to the baseline and explain the one lever named in the "
        "data in two sentences. Respect any day type context."
    ),
}
RECOMMENDATIONS_PROMPT = (
    "You are a nutrition advisor. Suggest 3 foods or meals that fit the "
    "remaining daily needs. Return JSON with suggestions: a list of objects "
    "with food, reason and approximate_nutrition (calories, protein_g)."
)

_logger = logging.getLogger(__name__)


class FoodLogReader(Protocol):
    """Range reads over the food log."""

    def list_logs(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[FoodLogRow]:
        """Return logs with start <= logged_at < end."""


class DayClassificationRepository(Protocol):
    """Storage for user-declared day types."""

    def get_classification(
        self, user_id: str, day: date
    ) -> DayClassification | None:
        """Return the classification for a day, if any."""

    def save_classification(
        self, user_id: str, classification: DayClassification
    ) -> None:
        """Insert or replace the classification for its day."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class InsightService:
    """Computes deterministic reports and optional prose over them.

    Every report groups raw log rows by calendar day in the user's timezone.
    Prose is produced from the computed numbers only, so a generative
    failure leaves the numbers intact and the narrative empty.
    """

    food_logs: FoodLogReader
    goals: GoalRepository
    day_classifications: DayClassificationRepository
    generative: GenerativeService | None = None
    clock: Callable[[], datetime] = field(default=_utcnow)

    def today_totals(self, user_id: str, timezone_name: str) -> DailyTotals:
        """Return today's totals in the user's timezone."""
        return self._window(user_id, timezone_name, 1)[-1]

    def today_progress(self, user_id: str, timezone_name: str) -> dict[str, int]:
        today = self.today_totals(user_id, timezone_name)
        progress = {name: round(value) for name, value in today.totals.items()}
        progress["items_logged"] = today.entries
        return progress

    def food_history(
        self, user_id: str, timezone_name: str, days: int = WINDOW_DAYS
    ) -> dict[str, object]:
        """Group recent logs by local date, at most 30 days back."""
        days = min(max(days, 1), MAX_HISTORY_DAYS)
        tz = ZoneInfo(timezone_name)
        logs = self._logs(user_id, tz, days)
        history: dict[str, list[dict[str, object]]] = {}
        for log in sorted(logs, key=lambda row: row.logged_at):
            key = log.logged_at.astimezone(tz).date().isoformat()
            history.setdefault(key, []).append(
                {
                    "food_name": log.food_name,
                    "calories": log.nutrients.calories,
                    "protein_g": log.nutrients.protein_g,
                    "portion": log.portion,
                }
            )
        return {
            "days_requested": days,
            "history": history,
            "total_items": len(logs),
        }

    def weekly_summary(self, user_id: str, timezone_name: str) -> dict[str, object]:
        goals = self.goals.list_goals(user_id)
        daily = self._window(
            user_id, timezone_name, WINDOW_DAYS, _goal_nutrients(goals)
        )
        today = daily[-1]
        progress = goal_progress(today, goals)
        percents = [item.percent for item in progress if item.percent is not None]
        averages = average_totals(daily)
        return {
            "daily_averages": {name: round(value) for name, value in averages.items()},
            "today_totals": {
                name: round(value) for name, value in today.totals.items()
            },
            "goal_progress": {item.nutrient: item.percent for item in progress},
            "compliance_summary": compliance_label(percents),
        }

    async def audit(self, user_id: str, timezone_name: str) -> AuditReport:
        """Categorize today's entries and flag likely undercounting."""
        tz = ZoneInfo(timezone_name)
        logs = self._logs(user_id, tz, 1)
        day = self.clock().astimezone(tz).date()
        categories: dict[str, list[str]] = {
            MEALS: [],
            SNACKS: [],
            DRINKS: [],
            UNCLASSIFIED: [],
        }
        for log in logs:
            categories[categorize_entry(log)].append(log.food_name)

        today = _aggregate_day(day, logs, tz)
        flags = undercount_flags(logs, categories, today.totals["calories"])
        classification = self.day_classifications.get_classification(user_id, day)
        day_type = classification.day_type if classification else None
        narrative = await self._narrate(
            "audit",
            {
                "category_counts": {
                    key: len(value) for key, value in categories.items()
                },
                "totals": today.totals,
                "undercount_flags": flags,
                "day_type": day_type or "normal",
            },
        )
        return AuditReport(
            day=day,
            categories=categories,
            totals=today.totals,
            undercount_flags=flags,
            entries=today.entries,
            day_type=day_type,
            narrative=narrative,
        )

    async def patterns(
        self, user_id: str, timezone_name: str, days: int = WINDOW_DAYS
    ) -> PatternReport:
        """Bucket a window by weekday and flag variance and weekend skew."""
        daily = self._window(user_id, timezone_name, max(days, 1))
        calories = [entry.totals["calories"] for entry in daily]
        calorie_range = max(calories) - min(calories)
        weekend_avg = _mean(
            [e.totals["calories"] for e in daily if e.day.weekday() in WEEKEND]
        )
        weekday_avg = _mean(
            [e.totals["calories"] for e in daily if e.day.weekday() not in WEEKEND]
        )
        report = PatternReport(
            days=daily,
            by_weekday=_by_weekday(daily),
            averages=average_totals(daily),
            calorie_range=calorie_range,
            high_variance=calorie_range > HIGH_VARIANCE_KCAL,
            weekend_average_calories=weekend_avg,
            weekday_average_calories=weekday_avg,
            weekend_skew=weekend_skew(weekend_avg, weekday_avg),
        )
        narrative = await self._narrate(
            "patterns",
            {
                "daily_calories": calories,
                "by_weekday": report.by_weekday,
                "averages": report.averages,
                "calorie_range": calorie_range,
                "high_variance": report.high_variance,
                "weekend_average_calories": weekend_avg,
                "weekday_average_calories": weekday_avg,
            },
        )
        return replace(report, narrative=narrative)

    async def summary(self, user_id: str, timezone_name: str) -> SummaryReport:
        """Today's totals, the 7-day rolling average and goal progress."""
        goals = self.goals.list_goals(user_id)
        daily = self._window(
            user_id, timezone_name, WINDOW_DAYS, _goal_nutrients(goals)
        )
        today = daily[-1]
        rolling = average_totals(daily)
        progress = goal_progress(today, goals)
        narrative = await self._narrate(
            "summary",
            {
                "today": today.totals,
                "rolling_average": rolling,
                "goal_progress": {item.nutrient: item.percent for item in progress},
            },
        )
        return SummaryReport(
            today=today,
            rolling_average=rolling,
            goal_progress=progress,
            narrative=narrative,
        )

    async def reflect(self, user_id: str, timezone_name: str) -> ReflectionReport:
        """Compare today with the average of the previous seven days."""
        daily = self._window(user_id, timezone_name, WINDOW_DAYS + 1)
        today, previous = daily[-1], daily[:-1]
        baseline = average_totals(previous)
        deltas = {
            name: round(today.totals[name] - baseline[name], 1)
            for name in TRACKED_NUTRIENTS
        }
        lever = biggest_lever(today.totals, baseline)
        classification = self.day_classifications.get_classification(
            user_id, today.day
        )
        day_type = classification.day_type if classification else "normal"
        notes = []
        if day_type in CONTEXT_DAY_TYPES:
            notes.append(f"{day_type} day: shifts from baseline are expected")
        narrative = await self._narrate(
            "reflect",
            {
                "today": today.totals,
                "baseline": baseline,
                "deltas": deltas,
                "lever": lever,
                "day_type": day_type,
            },
        )
        return ReflectionReport(
            today=today,
            baseline=baseline,
            deltas=deltas,
            lever=lever,
            narrative=narrative,
            notes=notes,
        )

    def classify_day(
        self,
        user_id: str,
        timezone_name: str,
        day_type: str,
        notes: str | None = None,
    ) -> DayClassification:
        """Record the user's day type for today."""
        today = self.clock().astimezone(ZoneInfo(timezone_name)).date()
        classification = DayClassification(day=today, day_type=day_type, notes=notes)
        self.day_classifications.save_classification(user_id, classification)
        _logger.info("Classified %s as %s for %s", today, day_type, user_id)
        return classification

    async def recommendations(
        self,
        user_id: str,
        timezone_name: str,
        focus: str | None = None,
        preferences: str | None = None,
    ) -> dict[str, object]:
        """Remaining needs for today plus optional suggested foods."""
        goals = [
            goal
            for goal in self.goals.list_goals(user_id)
            if goal.goal_type == "goal"
        ]
        if not goals:
            return {"message": "Need goals set to provide recommendations"}
        today = self.today_totals(user_id, timezone_name)
        remaining = {
            goal.nutrient: round(
                max(0.0, goal.target_value - today.totals.get(goal.nutrient, 0.0)), 1
            )
            for goal in goals
        }
        result: dict[str, object] = {"remaining": remaining, "suggestions": []}
        if self.generative is None:
            return result
        request = {
            "remaining": remaining,
            "focus": focus or "balanced",
            "preferences": preferences or "none specified",
        }
        try:
            payload = await self.generative.complete_json(
                system=RECOMMENDATIONS_PROMPT,
                messages=[{"role": "user", "content": json.dumps(request)}],
                schema_name="food_recommendations",
            )
        except (GenerationError, ContractViolationError) as exc:
            _logger.warning("Recommendations unavailable: %s", exc)
            return result
        suggestions = (payload or {}).get("suggestions")
        if isinstance(suggestions, list):
            result["suggestions"] = suggestions
        return result

    def _bounds(self, tz: ZoneInfo, days: int) -> tuple[datetime, datetime]:
        now = self.clock().astimezone(tz)
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return today_start - timedelta(days=days - 1), today_start + timedelta(days=1)

    def _logs(self, user_id: str, tz: ZoneInfo, days: int) -> list[FoodLogRow]:
        start, end = self._bounds(tz, days)
        return self.food_logs.list_logs(
            user_id, start.astimezone(UTC), end.astimezone(UTC)
        )

    def _window(
        self,
        user_id: str,
        timezone_name: str,
        days: int,
        nutrients: tuple[str, ...] = TRACKED_NUTRIENTS,
    ) -> list[DailyTotals]:
        tz = ZoneInfo(timezone_name)
        start, _ = self._bounds(tz, days)
        logs = self._logs(user_id, tz, days)
        return [
            _aggregate_day((start + timedelta(days=offset)).date(), logs, tz, nutrients)
            for offset in range(days)
        ]

    async def _narrate(self, kind: str, numbers: dict[str, object]) -> str | None:
        if self.generative is None:
            return None
        try:
            text = await self.generative.complete(
                system=NARRATIVE_PROMPTS[kind],
                messages=[
                    {"role": "user", "content": json.dumps(numbers, default=str)}
                ],
                schema_name=f"{kind}_narrative",
            )
        except GenerationError as exc:
            _logger.warning("Narrative for %s unavailable: %s", kind, exc)
            return None
        return text.strip() if text else None


def categorize_entry(log: FoodLogRow) -> str:
    """Sort an entry into meals, snacks, drinks or unclassified."""
    if log.meal_type and log.meal_type.lower() in _MEAL_TYPES:
        return _MEAL_TYPES[log.meal_type.lower()]
    name = log.food_name
    if _DRINK_WORDS.search(name):
        return DRINKS
    if _MEAL_WORDS.search(name):
        return MEALS
    if _SNACK_WORDS.search(name):
        return SNACKS
    return UNCLASSIFIED


def undercount_flags(
    logs: list[FoodLogRow], categories: dict[str, list[str]], calories: float
) -> list[str]:
    flags = []
    if any(_RESTAURANT_WORDS.search(log.food_name) for log in logs):
        flags.append("restaurant_items")
    if not categories[DRINKS] and calories >= NONTRIVIAL_CALORIES:
        flags.append("no_drinks_logged")
    if not categories[SNACKS] and len(categories[MEALS]) > 1:
        flags.append("no_snacks_logged")
    return flags


def goal_progress(today: DailyTotals, goals: list[Goal]) -> list[GoalProgress]:
    """Percent of each goal reached; None when the target is 0."""
    progress = []
    for goal in goals:
        consumed = today.totals.get(goal.nutrient, 0.0)
        percent = (
            round(consumed / goal.target_value * 100, 1) if goal.target_value else None
        )
        progress.append(
            GoalProgress(
                nutrient=goal.nutrient,
                consumed=consumed,
                target=goal.target_value,
                unit=goal.unit,
                percent=percent,
            )
        )
    return progress


def compliance_label(percents: list[float]) -> str:
    if not percents:
        return "No goals to track"
    average = sum(percents) / len(percents)
    if 90 <= average <= 110:
        return "On track"
    if average < 90:
        return "Under targets"
    return "Above targets"


def average_totals(daily: list[DailyTotals]) -> dict[str, float]:
    """Arithmetic mean of each nutrient across the given days."""
    if not daily:
        return {name: 0.0 for name in TRACKED_NUTRIENTS}
    return {
        name: round(sum(entry.totals[name] for entry in daily) / len(daily), 1)
        for name in daily[0].totals
    }


def weekend_skew(weekend_avg: float | None, weekday_avg: float | None) -> bool:
    if weekend_avg is None or not weekday_avg:
        return False
    return abs(weekend_avg - weekday_avg) / weekday_avg > WEEKEND_SKEW_RATIO


def biggest_lever(today: dict[str, float], baseline: dict[str, float]) -> str | None:
    """Nutrient with the largest relative gap from baseline."""
    gaps = {
        name: abs(today[name] - baseline[name]) / baseline[name]
        for name in TRACKED_NUTRIENTS
        if baseline.get(name)
    }
    if not gaps:
        return None
    return max(gaps, key=gaps.__getitem__)


def _goal_nutrients(goals: list[Goal]) -> tuple[str, ...]:
    """Tracked nutrients plus any other nutrient a goal targets."""
    extra = tuple(
        dict.fromkeys(
            goal.nutrient
            for goal in goals
            if goal.nutrient in NUTRIENT_FIELDS
            and goal.nutrient not in TRACKED_NUTRIENTS
        )
    )
    return TRACKED_NUTRIENTS + extra


def _mean(values: list[float]) -> float | None:
    return round(sum(values) / len(values), 1) if values else None


def _aggregate_day(
    day: date,
    logs: list[FoodLogRow],
    tz: ZoneInfo,
    nutrients: tuple[str, ...] = TRACKED_NUTRIENTS,
) -> DailyTotals:
    totals = dict.fromkeys(nutrients, 0.0)
    entries = 0
    for log in logs:
        if log.logged_at.astimezone(tz).date() != day:
            continue
        entries += 1
        for name in nutrients:
            totals[name] += getattr(log.nutrients, name) or 0.0
    return DailyTotals(
        day=day,
        totals={name: round(value, 1) for name, value in totals.items()},
        entries=entries,
    )


def _by_weekday(daily: list[DailyTotals]) -> dict[str, dict[str, float]]:
    buckets: dict[str, list[DailyTotals]] = {}
    for entry in daily:
        buckets.setdefault(entry.day.strftime("%A"), []).append(entry)
    return {name: average_totals(days) for name, days in buckets.items()}
