"""Tool catalog and executor for the orchestration caller."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from nutrition_engine.domain.intents import DayType
from nutrition_engine.domain.nutrition import Confidence, ResolvedFood
from nutrition_engine.domain.proposals import PROPOSED, ProposalOutcome
from nutrition_engine.errors import ToolError
from nutrition_engine.services.goals import GoalService
from nutrition_engine.services.insights import InsightService
from nutrition_engine.services.proposals import ProposalService
from nutrition_engine.services.recipes import RecipeService
from nutrition_engine.services.resolution import ResolutionPipeline
from nutrition_engine.services.validation import NutritionCheck, NutritionValidator

MAX_COMPARE_FOODS = 5

_logger = logging.getLogger(__name__)


class _Arguments(BaseModel):
    model_config = ConfigDict(extra="ignore")


class NoArguments(_Arguments):
    pass


class FoodHistoryArguments(_Arguments):
    days: int = Field(default=7, ge=1, description="Days of history, max 30")


class NutritionQueryArguments(_Arguments):
    query_type: Literal["lookup", "estimate", "compare"]
    items: list[str] = Field(min_length=1, description="Food items to analyze")
    portions: list[str] = Field(
        default_factory=list, description="Optional portion for each item"
    )


class RecipeQueryArguments(_Arguments):
    action: Literal["find", "details", "calculate_serving"]
    query: str | None = Field(default=None, description="Search text for find")
    recipe_id: str | None = None
    servings: float | None = Field(default=None, gt=0)


class InsightQueryArguments(_Arguments):
    action: Literal["audit", "patterns", "summary", "reflect", "classify_day"]
    days: int | None = Field(default=None, ge=1, le=90)
    day_type: DayType | None = None
    notes: str | None = None


class ValidateNutritionArguments(_Arguments):
    food_name: str
    calories: float
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0
    sodium_mg: float | None = None
    serving_size: str | None = None


class CompareFoodsArguments(_Arguments):
    foods: list[str] = Field(min_length=1, description="Foods to compare, up to 5")


class ProposeFoodLogArguments(_Arguments):
    food_name: str
    portion: str | None = None
    calories: float = Field(ge=0)
    protein_g: float = Field(ge=0)
    carbs_g: float = Field(ge=0)
    fat_total_g: float = Field(ge=0)
    sugar_g: float | None = Field(default=None, ge=0)
    fiber_g: float | None = Field(default=None, ge=0)
    sodium_mg: float | None = Field(default=None, ge=0)
    fat_saturated_g: float | None = Field(default=None, ge=0)
    cholesterol_mg: float | None = Field(default=None, ge=0)
    potassium_mg: float | None = Field(default=None, ge=0)
    confidence: Confidence | None = None
    error_sources: list[str] = Field(default_factory=list)


class ProposeRecipeLogArguments(_Arguments):
    recipe_id: str
    recipe_name: str
    servings: float = Field(gt=0)
    calories: float = Field(ge=0)
    protein_g: float | None = Field(default=None, ge=0)
    carbs_g: float | None = Field(default=None, ge=0)
    fat_total_g: float | None = Field(default=None, ge=0)
    sugar_g: float | None = Field(default=None, ge=0)
    fiber_g: float | None = Field(default=None, ge=0)
    sodium_mg: float | None = Field(default=None, ge=0)


class ConfirmArguments(_Arguments):
    proposal_id: str


class GoalUpdateArguments(_Arguments):
    nutrient: str
    target_value: float
    unit: str | None = None
    goal_type: Literal["goal", "limit"] = "goal"
    yellow_min: float | None = None
    green_min: float | None = None
    red_min: float | None = None


class RecommendationArguments(_Arguments):
    focus: str | None = None
    preferences: str | None = None


@dataclass(frozen=True)
class ToolSpec:
    """A named operation with its argument model."""

    name: str
    description: str
    arguments: type[BaseModel]
    mutating: bool = False

    def definition(self) -> dict[str, object]:
        schema = self.arguments.model_json_schema()
        schema.pop("title", None)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": schema,
            },
        }


TOOL_SPECS = (
    ToolSpec(
        "get_user_profile",
        "Profile facts: height, weight, age, activity level, dietary "
        "preferences, allergies and health goal.",
        NoArguments,
    ),
    ToolSpec("get_user_goals", "Daily nutrition targets with units.", NoArguments),
    ToolSpec(
        "get_today_progress",
        "Totals of everything logged today in the user's timezone.",
        NoArguments,
    ),
    ToolSpec(
        "get_weekly_summary",
        "7-day daily averages, today's totals and goal compliance.",
        NoArguments,
    ),
    ToolSpec(
        "get_food_history",
        "Logged foods grouped by date, up to 30 days back.",
        FoodHistoryArguments,
    ),
    ToolSpec(
        "ask_nutrition_agent",
        "Resolve nutrition for food items and portions with confidence levels, "
        "or compare foods.",
        NutritionQueryArguments,
    ),
    ToolSpec(
        "ask_recipe_agent",
        "Search saved recipes, read a recipe or calculate nutrition for servings.",
        RecipeQueryArguments,
    ),
    ToolSpec(
        "ask_insight_agent",
        "Audit today's numbers, find patterns, summarize progress, reflect on "
        "today against the week, or record today's day type.",
        InsightQueryArguments,
    ),
    ToolSpec(
        "validate_nutrition",
        "Check nutrition numbers for obviously wrong values such as "
        "0-calorie chicken.",
        ValidateNutritionArguments,
    ),
    ToolSpec(
        "compare_foods",
        "Compare nutrition of up to 5 foods side by side.",
        CompareFoodsArguments,
    ),
    ToolSpec(
        "propose_food_log",
        "Propose logging a food. Nothing is saved until the user confirms.",
        ProposeFoodLogArguments,
        mutating=True,
    ),
    ToolSpec(
        "propose_recipe_log",
        "Propose logging servings of a saved recipe. Requires confirmation.",
        ProposeRecipeLogArguments,
        mutating=True,
    ),
    ToolSpec(
        "confirm_pending_log",
        "Commit the pending proposal once the user has confirmed it.",
        ConfirmArguments,
        mutating=True,
    ),
    ToolSpec(
        "update_user_goal",
        "Propose a change to a daily goal. Requires confirmation.",
        GoalUpdateArguments,
        mutating=True,
    ),
    ToolSpec(
        "calculate_recommended_goals",
        "Recommended calorie and macro targets from the user's profile.",
        NoArguments,
    ),
    ToolSpec(
        "get_food_recommendations",
        "Remaining needs for today and foods that would fit them.",
        RecommendationArguments,
    ),
)
TOOLS_BY_NAME = {spec.name: spec for spec in TOOL_SPECS}
TOOL_DEFINITIONS = [spec.definition() for spec in TOOL_SPECS]


@dataclass(frozen=True)
class ToolContext:
    """Who is calling and from which conversation."""

    user_id: str
    conversation_id: str
    timezone: str | None = None


@dataclass
class ToolExecutor:
    """Validates arguments and dispatches a tool call to its service."""

    resolution: ResolutionPipeline
    validator: NutritionValidator
    recipes: RecipeService
    goals: GoalService
    insights: InsightService
    proposals: ProposalService
    default_timezone: str = "UTC"

    async def execute(
        self, name: str, arguments: dict[str, object], context: ToolContext
    ) -> dict[str, object]:
        """Run one tool.

        Raises ToolError for unknown tools or invalid arguments. Proposal
        and persistence errors propagate to the caller.
        """
        spec = TOOLS_BY_NAME.get(name)
        if spec is None:
            raise ToolError(f"Unknown tool: {name}")
        try:
            args = spec.arguments.model_validate(arguments or {})
        except ValidationError as exc:
            raise ToolError(f"Invalid arguments for {name}: {exc}") from exc

        handler: Callable[[BaseModel, ToolContext], Awaitable[dict[str, object]]]
        handler = getattr(self, f"_{name}")
        _logger.info("Executing tool %s for user %s", name, context.user_id)
        return await handler(args, context)

    def _timezone(self, context: ToolContext) -> str:
        name = context.timezone or self.default_timezone
        try:
            ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ToolError(f"Unknown timezone: {name}") from exc
        return name

    async def _get_user_profile(
        self, _: NoArguments, context: ToolContext
    ) -> dict[str, object]:
        profile = self.goals.get_profile(context.user_id)
        if profile is None:
            return {"message": "No profile found. The user has not set one up yet."}
        data = asdict(profile)
        data.pop("user_id")
        return data

    async def _get_user_goals(
        self, _: NoArguments, context: ToolContext
    ) -> dict[str, object]:
        goals = self.goals.get_goals(context.user_id)
        if not goals:
            return {"message": "No goals set yet."}
        return {
            goal.nutrient: {
                "target": goal.target_value,
                "unit": goal.unit,
                "goal_type": goal.goal_type,
            }
            for goal in goals
        }

    async def _get_today_progress(
        self, _: NoArguments, context: ToolContext
    ) -> dict[str, object]:
        return dict(
            self.insights.today_progress(context.user_id, self._timezone(context))
        )

    async def _get_weekly_summary(
        self, _: NoArguments, context: ToolContext
    ) -> dict[str, object]:
        return self.insights.weekly_summary(context.user_id, self._timezone(context))

    async def _get_food_history(
        self, args: FoodHistoryArguments, context: ToolContext
    ) -> dict[str, object]:
        return self.insights.food_history(
            context.user_id, self._timezone(context), args.days
        )

    async def _ask_nutrition_agent(
        self, args: NutritionQueryArguments, context: ToolContext
    ) -> dict[str, object]:
        if args.query_type == "compare":
            return await self._compare(args.items, context)
        resolved = await self.resolution.resolve(
            args.items, args.portions, user_id=context.user_id
        )
        return resolution_payload(args.items, resolved)

    async def _ask_recipe_agent(
        self, args: RecipeQueryArguments, context: ToolContext
    ) -> dict[str, object]:
        if args.action == "find":
            if not args.query:
                raise ToolError("find requires a query")
            recipes = self.recipes.find(context.user_id, args.query)
            if not recipes:
                return {"message": f'No recipes found matching "{args.query}"'}
            return {"recipes": [asdict(recipe) for recipe in recipes]}

        if not args.recipe_id:
            raise ToolError(f"{args.action} requires a recipe_id")
        if args.action == "details":
            result = self.recipes.details(args.recipe_id)
        else:
            result = self.recipes.calculate_serving(args.recipe_id, args.servings or 1)
        return result or {"error": True, "message": "Recipe not found"}

    async def _ask_insight_agent(
        self, args: InsightQueryArguments, context: ToolContext
    ) -> dict[str, object]:
        timezone = self._timezone(context)
        if args.action == "audit":
            report = await self.insights.audit(context.user_id, timezone)
        elif args.action == "patterns":
            report = await self.insights.patterns(
                context.user_id, timezone, args.days or 7
            )
        elif args.action == "reflect":
            report = await self.insights.reflect(context.user_id, timezone)
        elif args.action == "classify_day":
            if args.day_type is None:
                raise ToolError("classify_day requires a day_type")
            report = self.insights.classify_day(
                context.user_id, timezone, args.day_type, args.notes
            )
        else:
            report = await self.insights.summary(context.user_id, timezone)
        return {"action": args.action, **asdict(report)}

    async def _validate_nutrition(
        self, args: ValidateNutritionArguments, context: ToolContext
    ) -> dict[str, object]:
        check = NutritionCheck(
            food_name=args.food_name,
            calories=args.calories,
            protein_g=args.protein_g,
            carbs_g=args.carbs_g,
            fat_total_g=args.fat_g,
            sodium_mg=args.sodium_mg,
            serving_size=args.serving_size,
        )
        return self.validator.validate_items([check], context.user_id).as_dict()

    async def _compare_foods(
        self, args: CompareFoodsArguments, context: ToolContext
    ) -> dict[str, object]:
        return await self._compare(args.foods, context)

    async def _propose_food_log(
        self, args: ProposeFoodLogArguments, context: ToolContext
    ) -> dict[str, object]:
        validation = self.validator.validate_items(
            [
                NutritionCheck(
                    food_name=args.food_name,
                    calories=args.calories,
                    protein_g=args.protein_g,
                    carbs_g=args.carbs_g,
                    fat_total_g=args.fat_total_g,
                    sodium_mg=args.sodium_mg,
                    serving_size=args.portion,
                )
            ],
            context.user_id,
        )
        if not validation.passed:
            return {"error": True, "validation": validation.as_dict()}

        data = _rounded(args.model_dump(exclude={"error_sources", "confidence"}))
        data["portion"] = args.portion or "serving"
        if args.confidence:
            data["confidence"] = args.confidence
        if args.error_sources:
            data["error_sources"] = list(args.error_sources)
        message = (
            f"Ready to log {args.food_name} ({round(args.calories)} cal). "
            "Please confirm."
        )
        outcome = self.proposals.propose(
            context.conversation_id, context.user_id, "food_log", data, message
        )
        return {**proposal_payload(outcome), "warnings": validation.warnings}

    async def _propose_recipe_log(
        self, args: ProposeRecipeLogArguments, context: ToolContext
    ) -> dict[str, object]:
        data = _rounded(args.model_dump())
        message = (
            f"Ready to log {args.servings:g} serving(s) of {args.recipe_name} "
            f"({round(args.calories)} cal). Please confirm."
        )
        outcome = self.proposals.propose(
            context.conversation_id, context.user_id, "recipe_log", data, message
        )
        return proposal_payload(outcome)

    async def _confirm_pending_log(
        self, args: ConfirmArguments, context: ToolContext
    ) -> dict[str, object]:
        outcome = self.proposals.confirm(
            context.conversation_id, context.user_id, args.proposal_id
        )
        return proposal_payload(outcome)

    async def _update_user_goal(
        self, args: GoalUpdateArguments, context: ToolContext
    ) -> dict[str, object]:
        draft = self.goals.draft_goal(
            args.nutrient,
            args.target_value,
            unit=args.unit,
            goal_type=args.goal_type,
            yellow_min=args.yellow_min,
            green_min=args.green_min,
            red_min=args.red_min,
        )
        if not draft.validation.passed:
            return {"error": True, "validation": draft.validation.as_dict()}
        goal = draft.goal
        message = (
            f"Ready to update {goal.nutrient} goal to "
            f"{goal.target_value:g}{goal.unit}. Please confirm."
        )
        outcome = self.proposals.propose(
            context.conversation_id,
            context.user_id,
            "goal_update",
            draft.payload(),
            message,
        )
        return {**proposal_payload(outcome), "warnings": draft.validation.warnings}

    async def _calculate_recommended_goals(
        self, _: NoArguments, context: ToolContext
    ) -> dict[str, object]:
        recommended = self.goals.recommend(context.user_id)
        if recommended is None:
            return {
                "error": True,
                "message": "Need profile data to calculate recommended goals",
            }
        return {
            "recommended": recommended.targets,
            "calculation_basis": {
                "bmr": recommended.bmr,
                "tdee": recommended.tdee,
                "goal": recommended.health_goal,
                "activity_level": recommended.activity_level,
            },
        }

    async def _get_food_recommendations(
        self, args: RecommendationArguments, context: ToolContext
    ) -> dict[str, object]:
        return await self.insights.recommendations(
            context.user_id, self._timezone(context), args.focus, args.preferences
        )

    async def _compare(
        self, foods: list[str], context: ToolContext
    ) -> dict[str, object]:
        foods = foods[:MAX_COMPARE_FOODS]
        resolved = await self.resolution.resolve(foods, user_id=context.user_id)
        found = [food for food in resolved if food is not None]
        result = resolution_payload(foods, resolved)
        if found:
            result["best_protein"] = max(
                found, key=lambda food: food.nutrients.protein_g
            ).name
            result["lowest_calories"] = min(
                found, key=lambda food: food.nutrients.calories
            ).name
        return result


def food_payload(food: ResolvedFood) -> dict[str, object]:
    """Flatten a resolved food for JSON responses."""
    nutrients = {
        name: value
        for name, value in asdict(food.nutrients).items()
        if value is not None
    }
    return {
        "name": food.name,
        "portion": food.portion,
        **nutrients,
        "serving_size": food.serving_size,
        "multiplier": food.multiplier,
        "source": food.source,
        "confidence": food.confidence,
        "confidence_details": dict(food.confidence_details),
        "error_sources": list(food.error_sources),
    }


def resolution_payload(
    items: list[str], resolved: list[ResolvedFood | None]
) -> dict[str, object]:
    """Resolved items in input order, with unresolved names listed."""
    return {
        "items": [None if food is None else food_payload(food) for food in resolved],
        "unresolved": [
            item for item, food in zip(items, resolved, strict=True) if food is None
        ],
    }


def proposal_payload(outcome: ProposalOutcome) -> dict[str, object]:
    proposal = outcome.proposal
    payload: dict[str, object] = {
        "status": outcome.status,
        "message": outcome.message,
    }
    if proposal is not None:
        payload.update(
            {
                "proposal_type": proposal.kind,
                "proposal_id": proposal.id,
                "pending": outcome.status == PROPOSED,
                "data": dict(proposal.payload),
            }
        )
    if outcome.record_id is not None:
        payload["record_id"] = outcome.record_id
    if outcome.superseded is not None:
        payload["superseded_proposal_id"] = outcome.superseded.id
    return payload


def _rounded(values: dict[str, object]) -> dict[str, object]:
    """Whole calories, one decimal elsewhere; unset optional values dropped."""
    rounded: dict[str, object] = {}
    for key, value in values.items():
        if value is None:
            continue
        if key == "calories":
            rounded[key] = round(float(value))
        elif isinstance(value, float) and key.endswith(("_g", "_mg")):
            rounded[key] = round(value, 1)
        else:
            rounded[key] = value
    return rounded
