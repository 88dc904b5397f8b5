"""Domain models for goals and user profiles."""

from dataclasses import dataclass
from datetime import date
from typing import Literal

GoalType = Literal["goal", "limit"]


@dataclass(frozen=True)
class Goal:
    """A daily nutrient target."""

    nutrient: str
    target_value: float
    unit: str
    goal_type: GoalType = "goal"
    yellow_min: float | None = None
    green_min: float | None = None
    red_min: float | None = None


@dataclass(frozen=True)
class UserProfile:
    """Profile facts used for recommendations."""

    user_id: str
    height_cm: float | None = None
    weight_kg: float | None = None
    age: int | None = None
    gender: str | None = None
    activity_level: str | None = None
    health_goal: str | None = None
    dietary_preferences: tuple[str, ...] = ()
    allergies: tuple[str, ...] = ()
    timezone: str | None = None


@dataclass(frozen=True)
class DayClassification:
    """User-declared context for a calendar day."""

    day: date
    day_type: str
    notes: str | None = None
