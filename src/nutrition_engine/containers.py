"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from nutrition_engine.adapters.fdc_client import HttpxFdcClient
from nutrition_engine.adapters.openai_completion_client import OpenAICompletionClient
from nutrition_engine.adapters.supabase_analytics_repository import (
    SupabaseAnalyticsRepository,
)
from nutrition_engine.adapters.supabase_chat_session_repository import (
    SupabaseChatSessionRepository,
)
from nutrition_engine.adapters.supabase_day_classification_repository import (
    SupabaseDayClassificationRepository,
)
from nutrition_engine.adapters.supabase_food_log_repository import (
    SupabaseFoodLogRepository,
)
from nutrition_engine.adapters.supabase_goal_repository import SupabaseGoalRepository
from nutrition_engine.adapters.supabase_product_cache_repository import (
    SupabaseProductCacheRepository,
)
from nutrition_engine.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from nutrition_engine.adapters.supabase_recipe_repository import (
    SupabaseRecipeRepository,
)
from nutrition_engine.adapters.supabase_unit_conversion_repository import (
    SupabaseUnitConversionRepository,
)
from nutrition_engine.config import Settings
from nutrition_engine.services.analytics import (
    AnalyticsRecorder,
    InMemoryFailedLookupCounter,
)
from nutrition_engine.services.fallbacks import load_fallback_table
from nutrition_engine.services.generative import GenerativeService
from nutrition_engine.services.goals import GoalService
from nutrition_engine.services.insights import InsightService
from nutrition_engine.services.intents import IntentClassifier
from nutrition_engine.services.lookup import FdcNutritionLookup
from nutrition_engine.services.proposals import ProposalService
from nutrition_engine.services.recipes import RecipeService
from nutrition_engine.services.resolution import ResolutionPipeline
from nutrition_engine.services.scaling import PortionScaler
from nutrition_engine.services.tools import ToolExecutor
from nutrition_engine.services.validation import NutritionValidator


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    resolution_pipeline: ResolutionPipeline
    intent_classifier: IntentClassifier
    proposal_service: ProposalService
    insight_service: InsightService
    tool_executor: ToolExecutor
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    food_log_repository = SupabaseFoodLogRepository(supabase_client)
    goal_repository = SupabaseGoalRepository(supabase_client)
    analytics = AnalyticsRecorder(SupabaseAnalyticsRepository(supabase_client))

    completion_client = OpenAICompletionClient.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    generative = GenerativeService(
        client=completion_client,
        timeout_seconds=resolved_settings.generation_timeout_seconds,
        retry_attempts=resolved_settings.generation_retry_attempts,
        retry_delay_seconds=resolved_settings.generation_retry_delay_seconds,
    )
    fdc_client = HttpxFdcClient.create(
        api_key=resolved_settings.fdc_api_key,
        base_url=resolved_settings.fdc_base_url,
    )
    resolution_pipeline = ResolutionPipeline(
        product_cache=SupabaseProductCacheRepository(supabase_client),
        external_lookup=FdcNutritionLookup(
            fdc_client, retry_attempts=resolved_settings.lookup_retry_attempts
        ),
        fallback_table=load_fallback_table(resolved_settings.fallback_table_path),
        scaler=PortionScaler(
            learned_multipliers=SupabaseUnitConversionRepository(supabase_client),
            generative=generative,
        ),
        failed_lookups=InMemoryFailedLookupCounter(),
        generative=generative,
        analytics=analytics,
    )
    validator = NutritionValidator(analytics)
    proposal_service = ProposalService(
        state_repository=SupabaseChatSessionRepository(supabase_client),
        food_log_writer=food_log_repository,
        goal_writer=goal_repository,
    )
    insight_service = InsightService(
        food_logs=food_log_repository,
        goals=goal_repository,
        day_classifications=SupabaseDayClassificationRepository(supabase_client),
        generative=generative,
    )
    tool_executor = ToolExecutor(
        resolution=resolution_pipeline,
        validator=validator,
        recipes=RecipeService(SupabaseRecipeRepository(supabase_client)),
        goals=GoalService(
            goal_repository=goal_repository,
            profile_repository=SupabaseProfileRepository(supabase_client),
            validator=validator,
        ),
        insights=insight_service,
        proposals=proposal_service,
        default_timezone=resolved_settings.default_timezone,
    )

    async def close_resources() -> None:
        await fdc_client.close()
        await completion_client.close()

    return AppContainer(
        settings=resolved_settings,
        resolution_pipeline=resolution_pipeline,
        intent_classifier=IntentClassifier(generative),
        proposal_service=proposal_service,
        insight_service=insight_service,
        tool_executor=tool_executor,
        close_resources=close_resources,
    )
