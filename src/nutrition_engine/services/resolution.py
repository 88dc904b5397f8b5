"""Tiered nutrition resolution for free-text food items."""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Protocol

from pydantic import ValidationError

from nutrition_engine.domain.estimates import EstimatedNutrition
from nutrition_engine.domain.nutrition import (
    MACRO_FIELDS,
    NUTRIENT_FIELDS,
    Confidence,
    FailedLookup,
    NutrientProfile,
    NutritionRecord,
    ResolvedFood,
)
from nutrition_engine.errors import ContractViolationError, GenerationError
from nutrition_engine.services.analytics import AnalyticsRecorder, FailedLookupCounter
from nutrition_engine.services.fallbacks import (
    FallbackTable,
    is_zero_calorie_food,
    matching_name,
    normalize_food_name,
)
from nutrition_engine.services.generative import GenerativeService
from nutrition_engine.services.lookup import ExternalLookup
from nutrition_engine.services.scaling import PortionScaler, scale_nutrients

DEFAULT_PORTION = "1 serving"
CALCULATED_FROM_MACROS = "calculated_from_macros"

ESTIMATE_PROMPT = (
    "You are a nutrition expert. Estimate nutrition for one food item.\n"
    "Precision hierarchy: a specific weight (e.g. 200g) beats a count "
    "(e.g. 2 eggs), which beats a vague description. When the user gives a "
    "weight or count, serving_size MUST be exactly that quantity and the "
    "nutrients MUST be for that quantity; otherwise use '1 standard serving' "
    "and include 'vague_portion' in error_sources.\n"
    "If the user corrects a number, the newest number wins.\n"
    "Return only a JSON object with food_name, calories, protein_g, carbs_g, "
    "fat_total_g, optional micronutrients, serving_size, confidence "
    "(low|medium|high), confidence_details (per macro) and error_sources."
)

_LEVEL = {"low": 0, "medium": 1, "high": 2}
_CONFIDENCE_VALUES = {"type": "string", "enum": ["low", "medium", "high"]}
ESTIMATE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "food_name": {"type": "string"},
        **{name: {"type": "number", "minimum": 0} for name in NUTRIENT_FIELDS},
        "serving_size": {"type": "string"},
        "confidence": _CONFIDENCE_VALUES,
        "confidence_details": {
            "type": "object",
            "properties": {name: _CONFIDENCE_VALUES for name in MACRO_FIELDS},
        },
        "error_sources": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["food_name", "calories", "serving_size", "confidence"],
}

_logger = logging.getLogger(__name__)


class ProductCacheRepository(Protocol):
    """Persistence interface for cached product nutrition."""

    def get_product(self, search_term: str) -> NutritionRecord | None:
        """Return cached nutrition for a normalized search term."""

    def save_product(self, search_term: str, record: NutritionRecord) -> None:
        """Store nutrition for a normalized search term, replacing any entry."""


@dataclass(frozen=True)
class _TierHit:
    record: NutritionRecord
    confidence: Confidence
    confidence_details: dict[str, Confidence]
    error_sources: tuple[str, ...] = ()


@dataclass
class ResolutionPipeline:
    """Resolves food names through cache, lookup, fallback and estimation."""

    product_cache: ProductCacheRepository
    external_lookup: ExternalLookup
    fallback_table: FallbackTable
    scaler: PortionScaler
    failed_lookups: FailedLookupCounter
    generative: GenerativeService | None = None
    analytics: AnalyticsRecorder = field(default_factory=AnalyticsRecorder)

    async def resolve(
        self,
        items: list[str],
        portions: list[str] | None = None,
        user_id: str | None = None,
    ) -> list[ResolvedFood | None]:
        """Resolve items concurrently; output order matches input order.

        Items that no tier can resolve come back as None.
        """
        portions = portions or []
        tasks = [
            self._resolve_item(
                item,
                portions[index] if index < len(portions) and portions[index] else "",
                user_id,
            )
            for index, item in enumerate(items)
        ]
        return list(await asyncio.gather(*tasks))

    async def _resolve_item(
        self, name: str, portion: str, user_id: str | None
    ) -> ResolvedFood | None:
        portion = portion.strip() or DEFAULT_PORTION
        normalized = normalize_food_name(name)
        notes: list[str] = []
        hit = await self._first_valid_hit(name, normalized, portion, notes)
        if hit is None:
            self._record_failure(name, normalized, portion, user_id, notes)
            return None

        scale = await self.scaler.scale(portion, hit.record.serving_size, name)
        _logger.info(
            "Scaling %r by %s via %s (portion=%s serving=%s)",
            name,
            scale.multiplier,
            scale.method,
            portion,
            hit.record.serving_size,
        )
        error_sources = [*notes, *hit.error_sources]
        if scale.degraded:
            error_sources.append("scaling_defaulted")
        resolved = ResolvedFood(
            name=name,
            portion=portion,
            nutrients=scale_nutrients(hit.record.nutrients, scale.multiplier),
            serving_size=hit.record.serving_size,
            multiplier=scale.multiplier,
            source=hit.record.source,
            confidence=hit.confidence,
            confidence_details=dict(hit.confidence_details),
            error_sources=tuple(error_sources),
        )
        return correct_zero_calories(resolved)

    async def _first_valid_hit(
        self, name: str, normalized: str, portion: str, notes: list[str]
    ) -> _TierHit | None:
        tiers = (
            ("cache", lambda: self._from_cache(normalized, name)),
            ("external", lambda: self._from_external(name, normalized, notes)),
            ("fallback", lambda: self._from_fallback(name)),
            ("estimate", lambda: self._from_estimate(name, portion, notes)),
        )
        for tier, load in tiers:
            hit = await load()
            if hit is None:
                continue
            if not is_valid_nutrition(hit.record.nutrients, name):
                _logger.warning("%s result for %r has 0 calories, skipping", tier, name)
                notes.append(f"invalid_{tier}_zero_calories")
                continue
            return hit
        return None

    async def _from_cache(self, normalized: str, name: str) -> _TierHit | None:
        candidates = [normalized]
        stripped = matching_name(name)
        if stripped and stripped != normalized:
            candidates.append(stripped)
        for term in candidates:
            try:
                record = self.product_cache.get_product(term)
            except Exception:
                _logger.warning("Product cache read failed for %r", term, exc_info=True)
                return None
            if record is not None:
                _logger.info("Cache hit for %r (term=%r)", name, term)
                return _uniform_hit(record, "high")
        return None

    async def _from_external(
        self, name: str, normalized: str, notes: list[str]
    ) -> _TierHit | None:
        try:
            record = await self.external_lookup.lookup(name)
        except Exception:
            _logger.warning("External lookup failed for %r", name, exc_info=True)
            notes.append("external_lookup_error")
            return None
        if record is None:
            notes.append("external_lookup_no_data")
            return None
        if is_valid_nutrition(record.nutrients, name):
            try:
                self.product_cache.save_product(normalized, record)
            except Exception:
                _logger.warning(
                    "Product cache write failed for %r", name, exc_info=True
                )
        return _uniform_hit(record, "high")

    async def _from_fallback(self, name: str) -> _TierHit | None:
        match = self.fallback_table.match(name)
        if match is None:
            return None
        _logger.info("Fallback %s match for %r -> %r", match.reason, name, match.key)
        return _uniform_hit(
            match.to_record(name), "medium", error_sources=(f"fallback_{match.reason}",)
        )

    async def _from_estimate(
        self, name: str, portion: str, notes: list[str]
    ) -> _TierHit | None:
        if self.generative is None:
            return None
        try:
            raw = await self.generative.complete_json(
                system=ESTIMATE_PROMPT,
                messages=[
                    {
                        "role": "user",
                        "content": f'Estimate nutrition for: "{name}". '
                        f'User portion: "{portion}".',
                    }
                ],
                schema=ESTIMATE_SCHEMA,
                schema_name="nutrition_estimate",
            )
            if raw is None:
                notes.append("estimate_unavailable")
                return None
            estimate = EstimatedNutrition.model_validate(raw)
        except (GenerationError, ContractViolationError, ValidationError) as exc:
            _logger.warning("Estimation failed for %r: %s", name, exc)
            notes.append("estimate_failed")
            return None
        return _estimate_hit(name, estimate)

    def _record_failure(
        self,
        name: str,
        normalized: str,
        portion: str,
        user_id: str | None,
        notes: list[str],
    ) -> None:
        attempt = self.failed_lookups.increment(normalized)
        reason = ", ".join(notes) or "no data from any source"
        self.analytics.failed_lookup(
            FailedLookup(
                name=name,
                normalized_name=normalized,
                portion=portion,
                attempt=attempt,
                reason=reason,
                user_id=user_id,
            )
        )


def is_valid_nutrition(nutrients: NutrientProfile, name: str) -> bool:
    """Reject zero calories unless the food is inherently calorie free."""
    return nutrients.calories > 0 or is_zero_calorie_food(name)


def correct_zero_calories(food: ResolvedFood) -> ResolvedFood:
    """Recompute calories from macros when they are zero but macros exist."""
    nutrients = food.nutrients
    if nutrients.calories > 0:
        return food
    calculated = (
        4 * nutrients.protein_g + 4 * nutrients.carbs_g + 9 * nutrients.fat_total_g
    )
    if calculated <= 0:
        return food

    _logger.info("0 calories with macros for %r, using %s", food.name, calculated)
    details = dict(food.confidence_details)
    if details.get("calories", food.confidence) == "high":
        details["calories"] = "medium"
    error_sources = food.error_sources
    if CALCULATED_FROM_MACROS not in error_sources:
        error_sources = (*error_sources, CALCULATED_FROM_MACROS)
    return replace(
        food,
        nutrients=replace(nutrients, calories=float(round(calculated))),
        confidence="medium" if food.confidence == "high" else food.confidence,
        confidence_details=details,
        error_sources=error_sources,
    )


def _uniform_hit(
    record: NutritionRecord,
    confidence: Confidence,
    error_sources: tuple[str, ...] = (),
) -> _TierHit:
    return _TierHit(
        record=record,
        confidence=confidence,
        confidence_details={name: confidence for name in MACRO_FIELDS},
        error_sources=error_sources,
    )


def _estimate_hit(name: str, estimate: EstimatedNutrition) -> _TierHit:
    values = estimate.model_dump()
    nutrients = NutrientProfile(
        **{
            field_name: values[field_name]
            for field_name in NUTRIENT_FIELDS
            if values.get(field_name) is not None
        }
    )
    details: dict[str, Confidence] = {
        key: value
        for key, value in estimate.confidence_details.model_dump().items()
        if value in _LEVEL
    }
    return _TierHit(
        record=NutritionRecord(
            food_name=estimate.food_name or name,
            nutrients=nutrients,
            serving_size=estimate.serving_size,
            source="estimate",
        ),
        confidence=estimate.confidence,
        confidence_details=details,
        error_sources=tuple(estimate.error_sources),
    )
