"""Supabase repository for user goals."""

from dataclasses import dataclass

from supabase import Client

from nutrition_engine.adapters.supabase_rows import execute
from nutrition_engine.domain.goals import Goal
from nutrition_engine.services.goals import GoalRepository, default_unit
from nutrition_engine.services.proposals import GoalWriter


@dataclass
class SupabaseGoalRepository(GoalRepository, GoalWriter):
    """Reads and upserts rows in ``user_goals``."""

    client: Client

    def list_goals(self, user_id: str) -> list[Goal]:
        response = execute(
            self.client.table("user_goals")
            .select(
                "nutrient, target_value, unit, goal_type, "
                "yellow_min, green_min, red_min"
            )
            .eq("user_id", user_id),
            "read goals",
        )
        return [_parse_goal(row) for row in response.data or []]

    def upsert_goal(self, user_id: str, goal: Goal) -> None:
        """Insert or replace the goal for its nutrient."""
        execute(
            self.client.table("user_goals").upsert(
                {
                    "user_id": user_id,
                    "nutrient": goal.nutrient,
                    "target_value": goal.target_value,
                    "unit": goal.unit,
                    "goal_type": goal.goal_type,
                    "yellow_min": goal.yellow_min,
                    "green_min": goal.green_min,
                    "red_min": goal.red_min,
                },
                on_conflict="user_id,nutrient",
            ),
            "update goal",
        )


def _parse_goal(row: dict[str, object]) -> Goal:
    nutrient = str(row["nutrient"])
    return Goal(
        nutrient=nutrient,
        target_value=float(row.get("target_value") or 0.0),
        unit=row.get("unit") or default_unit(nutrient),
        goal_type="limit" if row.get("goal_type") == "limit" else "goal",
        yellow_min=_optional_float(row.get("yellow_min")),
        green_min=_optional_float(row.get("green_min")),
        red_min=_optional_float(row.get("red_min")),
    )


def _optional_float(value: object) -> float | None:
    return float(value) if isinstance(value, int | float) else None
