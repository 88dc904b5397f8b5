"""Shared test fixtures."""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime

import pytest

from nutrition_engine.config import Settings
from nutrition_engine.containers import AppContainer
from nutrition_engine.domain.goals import DayClassification, Goal, UserProfile
from nutrition_engine.domain.logs import FoodLogRow, NewFoodLog
from nutrition_engine.domain.nutrition import FailedLookup, NutritionRecord
from nutrition_engine.domain.proposals import Proposal
from nutrition_engine.domain.recipes import RecipeDetails, RecipeSummary
from nutrition_engine.errors import PersistenceError
from nutrition_engine.services.analytics import (
    AnalyticsRecorder,
    AnalyticsSink,
    InMemoryFailedLookupCounter,
)
from nutrition_engine.services.fallbacks import load_fallback_table
from nutrition_engine.services.generative import CompletionClient, GenerativeService
from nutrition_engine.services.goals import (
    GoalRepository,
    GoalService,
    ProfileRepository,
)
from nutrition_engine.services.insights import (
    DayClassificationRepository,
    FoodLogReader,
    InsightService,
)
from nutrition_engine.services.intents import IntentClassifier
from nutrition_engine.services.lookup import ExternalLookup
from nutrition_engine.services.proposals import (
    FoodLogWriter,
    GoalWriter,
    ProposalService,
    ProposalStateRepository,
)
from nutrition_engine.services.recipes import RecipeRepository, RecipeService
from nutrition_engine.services.resolution import (
    ProductCacheRepository,
    ResolutionPipeline,
)
from nutrition_engine.services.scaling import LearnedMultiplierRepository, PortionScaler
from nutrition_engine.services.tools import ToolExecutor
from nutrition_engine.services.validation import NutritionValidator


@dataclass
class FakeCompletionClient(CompletionClient):
    """Completion client that replays queued responses.

    Exceptions in the queue are raised instead of returned. An empty queue
    yields ``None``, like an empty completion.
    """

    responses: list[object] = field(default_factory=list)
    calls: list[dict[str, object]] = field(default_factory=list)

    async def complete(
        self,
        *,
        system: str,
        messages: list[dict[str, str]],
        schema: dict[str, object] | None = None,
        schema_name: str = "response",
    ) -> str | None:
        self.calls.append(
            {
                "system": system,
                "messages": messages,
                "schema": schema,
                "schema_name": schema_name,
            }
        )
        if not self.responses:
            return None
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_generative(*responses: object) -> GenerativeService:
    return GenerativeService(
        client=FakeCompletionClient(list(responses)),
        timeout_seconds=1.0,
        retry_attempts=0,
        retry_delay_seconds=0.0,
    )


def fixed_clock(moment: datetime) -> Callable[[], datetime]:
    return lambda: moment


@dataclass
class InMemoryProductCache(ProductCacheRepository):
    """In-memory product cache keyed by search term."""

    products: dict[str, NutritionRecord] = field(default_factory=dict)
    saved: list[str] = field(default_factory=list)
    fail_reads: bool = False

    def get_product(self, search_term: str) -> NutritionRecord | None:
        if self.fail_reads:
            raise PersistenceError("cache offline")
        return self.products.get(search_term)

    def save_product(self, search_term: str, record: NutritionRecord) -> None:
        self.saved.append(search_term)
        self.products[search_term] = record


@dataclass
class InMemoryLearnedMultipliers(LearnedMultiplierRepository):
    """In-memory learned conversions."""

    values: dict[tuple[str, str, str], float] = field(default_factory=dict)

    def get_multiplier(
        self, food_name: str, from_unit: str, to_unit: str
    ) -> float | None:
        return self.values.get((food_name, from_unit, to_unit))

    def save_multiplier(
        self, food_name: str, from_unit: str, to_unit: str, multiplier: float
    ) -> None:
        self.values[(food_name, from_unit, to_unit)] = multiplier


@dataclass
class FakeExternalLookup(ExternalLookup):
    """External lookup returning fixed records by food name."""

    records: dict[str, NutritionRecord] = field(default_factory=dict)
    error: Exception | None = None
    calls: list[str] = field(default_factory=list)

    async def lookup(self, food_name: str) -> NutritionRecord | None:
        self.calls.append(food_name)
        if self.error is not None:
            raise self.error
        return self.records.get(food_name)


@dataclass
class RecordingAnalyticsSink(AnalyticsSink):
    """Analytics sink that keeps everything it receives."""

    failed_lookups: list[FailedLookup] = field(default_factory=list)
    validation_failures: list[dict[str, object]] = field(default_factory=list)

    def record_failed_lookup(self, observation: FailedLookup) -> None:
        self.failed_lookups.append(observation)

    def record_validation_failure(
        self,
        user_id: str,
        query: str,
        portion: str,
        details: dict[str, object],
    ) -> None:
        self.validation_failures.append(
            {"user_id": user_id, "query": query, "portion": portion, **details}
        )


@dataclass
class InMemoryProposalState(ProposalStateRepository):
    """Pending proposals per conversation."""

    pending: dict[str, Proposal] = field(default_factory=dict)
    writes: int = 0
    failing_clears: int = 0

    def get_pending(self, conversation_id: str) -> Proposal | None:
        return self.pending.get(conversation_id)

    def set_pending(
        self, conversation_id: str, user_id: str, proposal: Proposal | None
    ) -> None:
        self.writes += 1
        if proposal is None and self.failing_clears:
            self.failing_clears -= 1
            raise PersistenceError("Failed to clear pending action")
        if proposal is None:
            self.pending.pop(conversation_id, None)
        else:
            self.pending[conversation_id] = proposal


@dataclass
class InMemoryFoodLogRepository(FoodLogWriter, FoodLogReader):
    """Food log that records inserts and serves range reads."""

    rows: list[FoodLogRow] = field(default_factory=list)
    inserted: list[NewFoodLog] = field(default_factory=list)
    fail_writes: bool = False

    def insert_log(self, log: NewFoodLog) -> str:
        if self.fail_writes:
            raise PersistenceError("Failed to insert food log")
        for index, earlier in enumerate(self.inserted):
            if log.proposal_id and earlier.proposal_id == log.proposal_id:
                return f"log-{index + 1}"
        self.inserted.append(log)
        record_id = f"log-{len(self.inserted)}"
        self.rows.append(
            FoodLogRow(
                id=record_id,
                logged_at=log.logged_at,
                food_name=log.food_name,
                portion=log.portion,
                nutrients=log.nutrients,
            )
        )
        return record_id

    def list_logs(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[FoodLogRow]:
        return [row for row in self.rows if start <= row.logged_at < end]


@dataclass
class InMemoryGoalRepository(GoalRepository, GoalWriter):
    """Goals keyed by user and nutrient."""

    goals: dict[str, dict[str, Goal]] = field(default_factory=dict)

    def list_goals(self, user_id: str) -> list[Goal]:
        return list(self.goals.get(user_id, {}).values())

    def upsert_goal(self, user_id: str, goal: Goal) -> None:
        self.goals.setdefault(user_id, {})[goal.nutrient] = goal


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """Profiles keyed by user id."""

    profiles: dict[str, UserProfile] = field(default_factory=dict)

    def get_profile(self, user_id: str) -> UserProfile | None:
        return self.profiles.get(user_id)


@dataclass
class InMemoryDayClassificationRepository(DayClassificationRepository):
    """Day classifications keyed by user and date."""

    classifications: dict[tuple[str, date], DayClassification] = field(
        default_factory=dict
    )

    def get_classification(
        self, user_id: str, day: date
    ) -> DayClassification | None:
        return self.classifications.get((user_id, day))

    def save_classification(
        self, user_id: str, classification: DayClassification
    ) -> None:
        self.classifications[(user_id, classification.day)] = classification


@dataclass
class InMemoryRecipeRepository(RecipeRepository):
    """Recipes matched with ilike-style patterns."""

    recipes: dict[str, RecipeDetails] = field(default_factory=dict)
    patterns: list[str] = field(default_factory=list)

    def search_recipes(
        self, user_id: str, pattern: str, limit: int
    ) -> list[RecipeSummary]:
        self.patterns.append(pattern)
        regex = re.compile(
            ".*".join(re.escape(part) for part in pattern.split("%")),
            re.IGNORECASE,
        )
        return [
            RecipeSummary(
                id=recipe.id,
                name=recipe.name,
                servings=recipe.servings,
                calories_per_serving=round(
                    recipe.batch_nutrients.calories / recipe.servings
                ),
            )
            for recipe in self.recipes.values()
            if regex.fullmatch(recipe.name)
        ][:limit]

    def get_recipe(self, recipe_id: str) -> RecipeDetails | None:
        return self.recipes.get(recipe_id)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        api_token="api-token",
        openai_api_key="openai-key",
        fdc_api_key="fdc-key",
    )


@pytest.fixture
def container(settings: Settings) -> AppContainer:
    generative = make_generative()
    analytics = AnalyticsRecorder(RecordingAnalyticsSink())
    validator = NutritionValidator(analytics)
    food_logs = InMemoryFoodLogRepository()
    goals = InMemoryGoalRepository()
    resolution_pipeline = ResolutionPipeline(
        product_cache=InMemoryProductCache(),
        external_lookup=FakeExternalLookup(),
        fallback_table=load_fallback_table(),
        scaler=PortionScaler(learned_multipliers=InMemoryLearnedMultipliers()),
        failed_lookups=InMemoryFailedLookupCounter(),
        generative=generative,
        analytics=analytics,
    )
    proposal_service = ProposalService(
        state_repository=InMemoryProposalState(),
        food_log_writer=food_logs,
        goal_writer=goals,
    )
    insight_service = InsightService(
        food_logs=food_logs,
        goals=goals,
        day_classifications=InMemoryDayClassificationRepository(),
    )
    tool_executor = ToolExecutor(
        resolution=resolution_pipeline,
        validator=validator,
        recipes=RecipeService(InMemoryRecipeRepository()),
        goals=GoalService(
            goal_repository=goals,
            profile_repository=InMemoryProfileRepository(),
            validator=validator,
        ),
        insights=insight_service,
        proposals=proposal_service,
        default_timezone=settings.default_timezone,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        resolution_pipeline=resolution_pipeline,
        intent_classifier=IntentClassifier(generative),
        proposal_service=proposal_service,
        insight_service=insight_service,
        tool_executor=tool_executor,
        close_resources=close_resources,
    )
