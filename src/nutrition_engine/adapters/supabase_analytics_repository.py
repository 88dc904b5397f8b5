"""Supabase sink for lookup analytics."""

from dataclasses import dataclass

from supabase import Client

from nutrition_engine.adapters.supabase_rows import execute
from nutrition_engine.domain.nutrition import FailedLookup
from nutrition_engine.services.analytics import AnalyticsSink


@dataclass
class SupabaseAnalyticsRepository(AnalyticsSink):
    """Writes ``analytics_failed_lookups`` rows."""

    client: Client

    def record_failed_lookup(self, observation: FailedLookup) -> None:
        self._insert(
            {
                "user_id": observation.user_id,
                "query": observation.name,
                "portion": observation.portion,
                "failure_type": "no_data",
                "details": {
                    "normalized_name": observation.normalized_name,
                    "attempt": observation.attempt,
                    "reason": observation.reason,
                },
            }
        )

    def record_validation_failure(
        self,
        user_id: str,
        query: str,
        portion: str,
        details: dict[str, object],
    ) -> None:
        self._insert(
            {
                "user_id": user_id,
                "query": query,
                "portion": portion,
                "failure_type": "validation_error",
                "details": details,
            }
        )

    def _insert(self, row: dict[str, object]) -> None:
        execute(
            self.client.table("analytics_failed_lookups").insert(row),
            "record analytics",
        )
