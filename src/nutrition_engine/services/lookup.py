"""External nutrition lookup backed by USDA FDC."""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from nutrition_engine.adapters.fdc_client import FdcClient
from nutrition_engine.domain.nutrition import NutrientProfile, NutritionRecord
from nutrition_engine.services.generative import status_code_from_exception

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_NUTRIENT_IDS = {
    1008: "calories",
    1003: "protein_g",
    1004: "fat_total_g",
    1005: "carbs_g",
    1079: "fiber_g",
    2000: "sugar_g",
    1235: "sugar_added_g",
    1093: "sodium_mg",
    1258: "fat_saturated_g",
    1257: "fat_trans_g",
    1253: "cholesterol_mg",
    1092: "potassium_mg",
    1087: "calcium_mg",
    1089: "iron_mg",
    1090: "magnesium_mg",
    1106: "vitamin_a_mcg",
    1162: "vitamin_c_mg",
    1114: "vitamin_d_mcg",
}
_ENERGY_KJ_ID = 1062
_KJ_PER_KCAL = 4.184

_logger = logging.getLogger(__name__)


class ExternalLookup(Protocol):
    """Interface for a pluggable external nutrition source."""

    async def lookup(self, food_name: str) -> NutritionRecord | None:
        """Return nutrition for a food, or None when the source has no data."""


@dataclass
class FdcNutritionLookup(ExternalLookup):
    """Looks up the best FDC match and reads its nutrients."""

    fdc_client: FdcClient
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def lookup(self, food_name: str) -> NutritionRecord | None:
        """Search FDC and return the first hit's nutrition."""
        payload = await self._call_with_retry(
            lambda: self.fdc_client.search_foods(food_name, page_size=5),
            action="search",
        )
        foods = payload.get("foods") or []
        if not foods:
            _logger.info("FDC returned no foods for %r", food_name)
            return None

        hit = foods[0]
        details = hit
        if not hit.get("foodNutrients"):
            details = await self._call_with_retry(
                lambda: self.fdc_client.get_food(int(hit["fdcId"])),
                action=f"get_food:{hit['fdcId']}",
            )
        return NutritionRecord(
            food_name=str(details.get("description") or food_name),
            nutrients=extract_nutrients(details.get("foodNutrients") or []),
            serving_size=_serving_size(details),
            source="fdc",
            brand=details.get("brandName") or details.get("brandOwner"),
        )

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[dict[str, object]]]", *, action: str
    ) -> dict[str, object]:
        """Call an async function with a short retry."""
        attempt = 0
        while True:
            try:
                return await func()
            except Exception as exc:
                attempt += 1
                _logger.warning(
                    "FDC %s failed (attempt %s/%s, status=%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    status_code_from_exception(exc),
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise
                await asyncio.sleep(self.retry_delay_seconds)


def extract_nutrients(food_nutrients: list[dict[str, object]]) -> NutrientProfile:
    """Map FDC nutrient rows onto a nutrient profile.

    Search results carry ``nutrientId``/``value`` while detail payloads nest
    ``nutrient.id`` with ``amount``; both shapes are accepted.
    """
    values: dict[str, float] = {}
    energy_kj: float | None = None
    for nutrient in food_nutrients:
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient_info.get("id") or nutrient.get("nutrientId")
        amount = nutrient.get("amount", nutrient.get("value"))
        if amount is None:
            continue
        if nutrient_id == _ENERGY_KJ_ID:
            energy_kj = float(amount)
            continue
        name = _NUTRIENT_IDS.get(nutrient_id)
        if name is not None:
            values[name] = float(amount)

    if "calories" not in values and energy_kj is not None:
        values["calories"] = round(energy_kj / _KJ_PER_KCAL, 1)
    return NutrientProfile(**values)


def _serving_size(payload: dict[str, object]) -> str:
    """FDC nutrient amounts are per 100 g, or per 100 ml for liquids."""
    unit = payload.get("servingSizeUnit")
    if isinstance(unit, str) and unit.lower() == "ml":
        return "100ml"
    return "100g"
