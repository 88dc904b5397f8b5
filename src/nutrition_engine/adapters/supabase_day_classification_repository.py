"""Supabase repository for day classifications."""

from dataclasses import dataclass
from datetime import date

from supabase import Client

from nutrition_engine.adapters.supabase_rows import execute
from nutrition_engine.domain.goals import DayClassification
from nutrition_engine.services.insights import DayClassificationRepository


@dataclass
class SupabaseDayClassificationRepository(DayClassificationRepository):
    """Rows in ``daily_classification`` keyed by user and date."""

    client: Client

    def get_classification(
        self, user_id: str, day: date
    ) -> DayClassification | None:
        response = execute(
            self.client.table("daily_classification")
            .select("date, day_type, notes")
            .eq("user_id", user_id)
            .eq("date", day.isoformat())
            .limit(1),
            "read day classification",
        )
        if not response.data:
            return None
        row = response.data[0]
        return DayClassification(
            day=day, day_type=str(row["day_type"]), notes=row.get("notes")
        )

    def save_classification(
        self, user_id: str, classification: DayClassification
    ) -> None:
        execute(
            self.client.table("daily_classification").upsert(
                {
                    "user_id": user_id,
                    "date": classification.day.isoformat(),
                    "day_type": classification.day_type,
                    "notes": classification.notes,
                },
                on_conflict="user_id,date",
            ),
            "save day classification",
        )
