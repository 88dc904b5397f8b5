"""Supabase repository for food log rows."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from nutrition_engine.adapters.supabase_rows import (
    execute,
    nutrient_columns,
    nutrients_from_row,
    parse_timestamp,
)
from nutrition_engine.domain.logs import FoodLogRow, NewFoodLog
from nutrition_engine.domain.nutrition import NUTRIENT_FIELDS
from nutrition_engine.errors import PersistenceError
from nutrition_engine.services.insights import FoodLogReader
from nutrition_engine.services.proposals import FoodLogWriter

_COLUMNS = ", ".join(
    ("id", "log_time", "food_name", "portion", "meal_type", *NUTRIENT_FIELDS)
)


@dataclass
class SupabaseFoodLogRepository(FoodLogWriter, FoodLogReader):
    """Reads and writes the ``food_log`` table."""

    client: Client

    def insert_log(self, log: NewFoodLog) -> str:
        """Insert a confirmed log row and return its id.

        Rows from a proposal are upserted on ``proposal_id`` so a repeated
        confirmation returns the existing row.
        """
        row = {
            "user_id": log.user_id,
            "log_time": log.logged_at.isoformat(),
            "food_name": log.food_name,
            "portion": log.portion,
            **nutrient_columns(log.nutrients),
            "confidence": log.confidence,
            "confidence_details": log.confidence_details,
            "error_sources": list(log.error_sources),
            "recipe_id": log.recipe_id,
        }
        table = self.client.table("food_log")
        if log.proposal_id is None:
            query = table.insert(row)
        else:
            query = table.upsert(
                {**row, "proposal_id": log.proposal_id}, on_conflict="proposal_id"
            )
        response = execute(query, "insert food log")
        if not response.data:
            raise PersistenceError("Failed to insert food log")
        return str(response.data[0]["id"])

    def list_logs(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[FoodLogRow]:
        """Return logs in the time range, oldest first."""
        response = execute(
            self.client.table("food_log")
            .select(_COLUMNS)
            .eq("user_id", user_id)
            .gte("log_time", start.isoformat())
            .lt("log_time", end.isoformat())
            .order("log_time", desc=False),
            "read food logs",
        )
        return [_parse_row(row) for row in response.data or []]


def _parse_row(row: dict[str, object]) -> FoodLogRow:
    return FoodLogRow(
        id=str(row["id"]) if row.get("id") is not None else None,
        logged_at=parse_timestamp(row.get("log_time")),
        food_name=str(row.get("food_name") or ""),
        portion=row.get("portion"),
        nutrients=nutrients_from_row(row),
        meal_type=row.get("meal_type"),
    )
