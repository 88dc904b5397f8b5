"""Failed lookup counting and best-effort analytics."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Protocol

from nutrition_engine.domain.nutrition import FailedLookup

_logger = logging.getLogger(__name__)


class FailedLookupCounter(Protocol):
    """Counts failed lookups per normalized food name."""

    def increment(self, normalized_name: str) -> int:
        """Record one more failure and return the attempt number."""


class AnalyticsSink(Protocol):
    """Write-only sink for offline analysis."""

    def record_failed_lookup(self, observation: FailedLookup) -> None:
        """Store a failed lookup observation."""

    def record_validation_failure(
        self,
        user_id: str,
        query: str,
        portion: str,
        details: dict[str, object],
    ) -> None:
        """Store a nutrition validation failure."""


@dataclass
class InMemoryFailedLookupCounter(FailedLookupCounter):
    """Counter held by one container instance."""

    counts: Counter[str] = field(default_factory=Counter)

    def increment(self, normalized_name: str) -> int:
        self.counts[normalized_name] += 1
        return self.counts[normalized_name]


@dataclass
class AnalyticsRecorder:
    """Forwards observations to a sink without ever failing the caller."""

    sink: AnalyticsSink | None = None

    def failed_lookup(self, observation: FailedLookup) -> None:
        _logger.warning(
            "Failed lookup %r (attempt %s): %s",
            observation.name,
            observation.attempt,
            observation.reason,
        )
        if self.sink is None:
            return
        try:
            self.sink.record_failed_lookup(observation)
        except Exception:
            _logger.exception("Failed to record failed lookup analytics")

    def validation_failure(
        self,
        user_id: str | None,
        query: str,
        portion: str,
        details: dict[str, object],
    ) -> None:
        if self.sink is None or user_id is None:
            return
        try:
            self.sink.record_validation_failure(user_id, query, portion, details)
        except Exception:
            _logger.exception("Failed to record validation analytics")
