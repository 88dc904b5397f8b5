"""Domain models for insight reports."""

from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class DailyTotals:
    """Summed nutrients for one local calendar day."""

    day: date
    totals: dict[str, float]
    entries: int


@dataclass(frozen=True)
class GoalProgress:
    """Progress toward a single goal; ``percent`` is None when target is 0."""

    nutrient: str
    consumed: float
    target: float
    unit: str
    percent: float | None


@dataclass(frozen=True)
class AuditReport:
    """Categorized view of today's entries with undercount flags."""

    day: date
    categories: dict[str, list[str]]
    totals: dict[str, float]
    undercount_flags: list[str]
    entries: int
    day_type: str | None = None
    narrative: str | None = None


@dataclass(frozen=True)
class PatternReport:
    """Weekday buckets and variance signals over a window."""

    days: list[DailyTotals]
    by_weekday: dict[str, dict[str, float]]
    averages: dict[str, float]
    calorie_range: float
    high_variance: bool
    weekend_average_calories: float | None
    weekday_average_calories: float | None
    weekend_skew: bool
    narrative: str | None = None


@dataclass(frozen=True)
class SummaryReport:
    """Today's totals against a rolling average and goals."""

    today: DailyTotals
    rolling_average: dict[str, float]
    goal_progress: list[GoalProgress]
    narrative: str | None = None


@dataclass(frozen=True)
class ReflectionReport:
    """Today compared to the prior days' baseline."""

    today: DailyTotals
    baseline: dict[str, float]
    deltas: dict[str, float]
    lever: str | None
    narrative: str | None = None
    notes: list[str] = field(default_factory=list)
