"""Intent classification through the generative service."""

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from nutrition_engine.domain.intents import ALL_CATEGORIES, INTENT_ADAPTER, Intent
from nutrition_engine.errors import ContractViolationError
from nutrition_engine.services.fallbacks import normalize_food_name
from nutrition_engine.services.generative import GenerativeService

HISTORY_TURNS = 5

SYSTEM_PROMPT = f"""
You classify messages for a nutrition logging assistant.

Categories: {", ".join(ALL_CATEGORIES)}.
- log_food: log a specific food or meal. log_recipe: log a saved recipe.
- save_recipe: save a new recipe. query_nutrition: ask about nutrition.
- update_goals / suggest_goals: edit goals or ask for recommendations.
- update_profile: health considerations, dietary preferences, medical info.
- audit: check or verify today's numbers. patterns: trends over days.
- reflect: compare today with the baseline. classify_day: travel, sick,
  social, workout or normal day. summary: progress report.
- plan_scenario: hypothetical "what if" questions without logging.
- clarify / modify: add or correct details of a pending item.
- confirm: explicit agreement with the PREVIOUSLY proposed item.
- decline: rejecting the current proposal. greet: hello.
- store_memory: a preference or habit to remember. off_topic: unrelated.

Be robust to typos. Combine any "[Context: ...]" prefix with the new message.

CRITICAL: if the message names a food that was not part of the previous turn,
classify it as log_food even when a confirmation is pending. Never classify a
message with new food names as confirm.

Ambiguity is about what is missing to estimate nutrition:
- none: fully quantified and prepared ("100g grilled chicken breast").
- low: minor gaps that can be safely defaulted ("1 apple").
- medium: meaningful gap such as a vague but standardizable portion
  ("a bowl of cereal").
- high: estimation would be unreliable, no portion or preparation ("chicken").
Reasons: portion_unclear, preparation_unknown, missing_quantity, brand_missing.

Return a JSON object with "intent", "ambiguity_level", "ambiguity_reasons"
and the entities that apply: food_items, portions, calories, macros,
recipe_text, recipe_portion, goal_action, goals, profile_updates,
modification_details, modified_items, memory_content, day_type,
flexible_range, query_focus, notes.
""".strip()

INTENT_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "intent": {"type": "string", "enum": list(ALL_CATEGORIES)},
        "ambiguity_level": {
            "type": "string",
            "enum": ["none", "low", "medium", "high"],
        },
        "ambiguity_reasons": {"type": "array", "items": {"type": "string"}},
        "food_items": {"type": "array", "items": {"type": "string"}},
        "portions": {"type": "array", "items": {"type": "string"}},
        "goals": {"type": "array", "items": {"type": "object"}},
    },
    "required": ["intent", "ambiguity_level", "ambiguity_reasons"],
}

_logger = logging.getLogger(__name__)


@dataclass
class IntentClassifier:
    """Turns a user message and short history into a validated intent."""

    generative: GenerativeService

    async def classify(
        self, message: str, history: list[dict[str, str]] | None = None
    ) -> Intent:
        """Classify a message.

        Raises ContractViolationError when the output is not a valid intent,
        and GenerationError when the service cannot be reached.
        """
        recent = list(history or [])[-HISTORY_TURNS:]
        raw = await self.generative.complete_json(
            system=SYSTEM_PROMPT,
            messages=[*recent, {"role": "user", "content": message}],
            schema=INTENT_SCHEMA,
            schema_name="intent",
        )
        if raw is None:
            raise ContractViolationError("intent returned an empty response")

        raw = enforce_new_food_rule(raw, recent)
        try:
            intent = INTENT_ADAPTER.validate_python(raw)
        except ValidationError as exc:
            raise ContractViolationError(f"intent failed validation: {exc}") from exc
        _logger.info(
            "Classified intent=%s ambiguity=%s", intent.intent, intent.ambiguity_level
        )
        return intent


def _mentions(text: str, food: str) -> bool:
    """Whole-word match, allowing a plural in the earlier turn."""
    padded = f" {text} "
    return f" {food} " in padded or f" {food}s " in padded


def enforce_new_food_rule(
    raw: dict[str, object], history: list[dict[str, str]]
) -> dict[str, object]:
    """Re-tag a confirm that names foods missing from the previous turn."""
    if raw.get("intent") != "confirm":
        return raw
    foods = raw.get("food_items")
    if not isinstance(foods, list) or not foods:
        return raw

    previous = normalize_food_name(history[-1]["content"]) if history else ""
    new_foods = [
        food
        for food in foods
        if isinstance(food, str)
        and normalize_food_name(food)
        and not _mentions(previous, normalize_food_name(food))
    ]
    if not new_foods:
        return raw
    _logger.info("Confirm carried new foods %s, treating as log_food", new_foods)
    return {**raw, "intent": "log_food"}
