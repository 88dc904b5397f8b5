"""Validated intent records produced by the classifier."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

AmbiguityLevel = Literal["none", "low", "medium", "high"]
DayType = Literal["travel", "sick", "social", "workout", "normal"]

FOOD_CATEGORIES = (
    "log_food",
    "query_nutrition",
    "plan_scenario",
    "clarify",
    "modify",
)
RECIPE_CATEGORIES = ("log_recipe", "save_recipe")
GOAL_CATEGORIES = ("update_goals", "suggest_goals")
PROFILE_CATEGORIES = ("update_profile", "store_memory")
INSIGHT_CATEGORIES = ("audit", "patterns", "reflect", "classify_day", "summary")
CONVERSATION_CATEGORIES = ("confirm", "decline", "greet", "off_topic")
ALL_CATEGORIES = (
    FOOD_CATEGORIES
    + RECIPE_CATEGORIES
    + GOAL_CATEGORIES
    + PROFILE_CATEGORIES
    + INSIGHT_CATEGORIES
    + CONVERSATION_CATEGORIES
)


class _IntentBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ambiguity_level: AmbiguityLevel = "none"
    ambiguity_reasons: list[str] = Field(default_factory=list)
    query_focus: str | None = None
    notes: str | None = None


class Macros(BaseModel):
    """Macros the user stated explicitly."""

    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None


class ModifiedItem(BaseModel):
    """A correction to a pending item."""

    item: str
    portion: str | None = None


class FoodIntent(_IntentBase):
    """Messages about specific foods."""

    intent: Literal[
        "log_food", "query_nutrition", "plan_scenario", "clarify", "modify"
    ]
    food_items: list[str] = Field(default_factory=list)
    portions: list[str] = Field(default_factory=list)
    calories: float | None = None
    macros: Macros | None = None
    modification_details: str | None = None
    modified_items: list[ModifiedItem] = Field(default_factory=list)


class RecipeIntent(_IntentBase):
    """Messages about saved or new recipes."""

    intent: Literal["log_recipe", "save_recipe"]
    recipe_text: str | None = None
    recipe_portion: str | None = None
    food_items: list[str] = Field(default_factory=list)


class GoalEdit(BaseModel):
    """One requested goal change."""

    nutrient: str
    value: float | None = None
    unit: str | None = None
    yellow_min: float | None = None
    green_min: float | None = None
    red_min: float | None = None


class GoalIntent(_IntentBase):
    """Messages that edit or ask about goals."""

    intent: Literal["update_goals", "suggest_goals"]
    goal_action: Literal["add", "remove", "update", "recommend"] | None = None
    goals: list[GoalEdit] = Field(default_factory=list)


class ProfileUpdates(BaseModel):
    """Profile facts extracted from a message."""

    dietary_preferences: list[str] = Field(default_factory=list)
    health_goal: str | None = None
    allergies: list[str] = Field(default_factory=list)
    notes: str | None = None


class MemoryContent(BaseModel):
    """A fact the user asked to be remembered."""

    category: Literal["food", "health", "habits", "preferences"]
    fact: str


class ProfileIntent(_IntentBase):
    """Messages carrying profile facts or preferences."""

    intent: Literal["update_profile", "store_memory"]
    profile_updates: ProfileUpdates | None = None
    memory_content: MemoryContent | None = None


class FlexibleRange(BaseModel):
    """Date window requested for an analysis."""

    days: int | None = Field(default=None, ge=1, le=90)
    start: str | None = None
    end: str | None = None


class InsightIntent(_IntentBase):
    """Requests for reports over logged data."""

    intent: Literal["audit", "patterns", "reflect", "classify_day", "summary"]
    flexible_range: FlexibleRange | None = None
    day_type: DayType | None = None


class ConversationIntent(_IntentBase):
    """Confirmations, declines and small talk."""

    intent: Literal["confirm", "decline", "greet", "off_topic"]


Intent = Annotated[
    FoodIntent
    | RecipeIntent
    | GoalIntent
    | ProfileIntent
    | InsightIntent
    | ConversationIntent,
    Field(discriminator="intent"),
]

INTENT_ADAPTER: TypeAdapter[Intent] = TypeAdapter(Intent)
