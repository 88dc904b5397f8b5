"""Tests for intent classification."""

import asyncio
import json

import pytest

from nutrition_engine.domain.intents import ConversationIntent, FoodIntent, GoalIntent
from nutrition_engine.errors import ContractViolationError
from nutrition_engine.services.intents import (
    HISTORY_TURNS,
    IntentClassifier,
    enforce_new_food_rule,
)
from tests.conftest import make_generative

PENDING_TURN = {
    "role": "assistant",
    "content": "Ready to log Banana (105 cal). Please confirm.",
}


def _classifier(payload: dict[str, object]) -> IntentClassifier:
    return IntentClassifier(make_generative(json.dumps(payload)))


def test_classify_food_message() -> None:
    classifier = _classifier(
        {
            "intent": "log_food",
            "ambiguity_level": "low",
            "ambiguity_reasons": ["portion_unclear"],
            "food_items": ["apple"],
            "portions": ["1 medium"],
        }
    )

    intent = asyncio.run(classifier.classify("I had an apple"))

    assert isinstance(intent, FoodIntent)
    assert intent.food_items == ["apple"]
    assert intent.ambiguity_level == "low"
    assert intent.ambiguity_reasons == ["portion_unclear"]


def test_classify_sends_recent_history_only() -> None:
    classifier = _classifier({"intent": "greet"})
    history = [
        {"role": "user", "content": f"message {index}"} for index in range(8)
    ]

    asyncio.run(classifier.classify("hello", history))

    call = classifier.generative.client.calls[0]
    messages = call["messages"]
    assert len(messages) == HISTORY_TURNS + 1
    assert messages[0]["content"] == "message 3"
    assert messages[-1] == {"role": "user", "content": "hello"}
    assert call["schema_name"] == "intent"


def test_confirm_with_new_food_becomes_log_food() -> None:
    classifier = _classifier(
        {"intent": "confirm", "ambiguity_level": "none", "food_items": ["apple"]}
    )

    intent = asyncio.run(classifier.classify("yes and an apple", [PENDING_TURN]))

    assert intent.intent == "log_food"
    assert isinstance(intent, FoodIntent)


def test_confirm_of_proposed_food_stays_confirm() -> None:
    classifier = _classifier(
        {"intent": "confirm", "ambiguity_level": "none", "food_items": ["banana"]}
    )

    intent = asyncio.run(classifier.classify("yes log the banana", [PENDING_TURN]))

    assert isinstance(intent, ConversationIntent)
    assert intent.intent == "confirm"


def test_goal_intent_entities() -> None:
    classifier = _classifier(
        {
            "intent": "update_goals",
            "goal_action": "update",
            "goals": [{"nutrient": "protein", "value": 150, "unit": "g"}],
        }
    )

    intent = asyncio.run(classifier.classify("set protein to 150g"))

    assert isinstance(intent, GoalIntent)
    assert intent.goals[0].nutrient == "protein"
    assert intent.goals[0].value == 150


def test_unknown_category_is_contract_violation() -> None:
    with pytest.raises(ContractViolationError):
        asyncio.run(_classifier({"intent": "dance"}).classify("let's dance"))


def test_empty_response_is_contract_violation() -> None:
    classifier = IntentClassifier(make_generative())

    with pytest.raises(ContractViolationError):
        asyncio.run(classifier.classify("hello"))


def test_enforce_new_food_rule_leaves_other_intents() -> None:
    raw = {"intent": "log_food", "food_items": ["apple"]}

    assert enforce_new_food_rule(raw, [PENDING_TURN]) is raw
    assert enforce_new_food_rule({"intent": "confirm"}, []) == {"intent": "confirm"}


def test_enforce_new_food_rule_without_history() -> None:
    raw = {"intent": "confirm", "food_items": ["toast"]}

    assert enforce_new_food_rule(raw, [])["intent"] == "log_food"


def test_enforce_new_food_rule_matches_whole_words() -> None:
    history = [{"role": "assistant", "content": "The price is right. Log eggs?"}]

    rice = enforce_new_food_rule({"intent": "confirm", "food_items": ["rice"]}, history)
    egg = enforce_new_food_rule({"intent": "confirm", "food_items": ["egg"]}, history)

    assert rice["intent"] == "log_food"
    assert egg["intent"] == "confirm"
