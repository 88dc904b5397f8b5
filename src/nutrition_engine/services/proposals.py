"""Propose, confirm and commit workflow for mutating actions."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

from nutrition_engine.domain.goals import Goal
from nutrition_engine.domain.intents import FoodIntent, GoalIntent, Intent, RecipeIntent
from nutrition_engine.domain.logs import NewFoodLog
from nutrition_engine.domain.nutrition import NUTRIENT_FIELDS, NutrientProfile
from nutrition_engine.domain.proposals import (
    CONFIRMED,
    DECLINED,
    IDLE,
    PROPOSED,
    SUPERSEDED,
    Proposal,
    ProposalKind,
    ProposalOutcome,
)
from nutrition_engine.errors import ProposalError

_logger = logging.getLogger(__name__)

_ENTITY_CATEGORIES = {"log_food", "modify", "clarify", "log_recipe", "update_goals"}


class ProposalStateRepository(Protocol):
    """Short-lived per-conversation storage for the pending proposal."""

    def get_pending(self, conversation_id: str) -> Proposal | None:
        """Return the pending proposal for a conversation, if any."""

    def set_pending(
        self, conversation_id: str, user_id: str, proposal: Proposal | None
    ) -> None:
        """Replace or clear the pending proposal."""


class FoodLogWriter(Protocol):
    """Durable write for food log rows."""

    def insert_log(self, log: NewFoodLog) -> str:
        """Insert a food log row and return its id."""


class GoalWriter(Protocol):
    """Durable write for goals."""

    def upsert_goal(self, user_id: str, goal: Goal) -> None:
        """Insert or replace a goal for its nutrient."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class ProposalService:
    """State machine: Idle -> Proposed -> Confirmed, Superseded or Declined.

    Nothing reaches the food log or goals unless ``confirm`` is called with
    the id of the proposal that is still pending for the conversation.
    """

    state_repository: ProposalStateRepository
    food_log_writer: FoodLogWriter
    goal_writer: GoalWriter
    clock: Callable[[], datetime] = field(default=_utcnow)

    def pending(self, conversation_id: str) -> Proposal | None:
        """Return the pending proposal, if any."""
        return self.state_repository.get_pending(conversation_id)

    def status(self, conversation_id: str) -> str:
        """Return the current state for a conversation."""
        return PROPOSED if self.pending(conversation_id) else IDLE

    def propose(
        self,
        conversation_id: str,
        user_id: str,
        kind: ProposalKind,
        payload: dict[str, object],
        message: str = "",
    ) -> ProposalOutcome:
        """Create a proposal, superseding whatever was pending."""
        previous = self.state_repository.get_pending(conversation_id)
        proposal = Proposal(
            id=f"{kind}_{uuid4().hex[:12]}",
            kind=kind,
            payload=dict(payload),
            created_at=self.clock(),
            message=message,
            user_id=user_id,
        )
        self.state_repository.set_pending(conversation_id, user_id, proposal)
        if previous is not None:
            _logger.info(
                "Proposal %s superseded by %s in %s",
                previous.id,
                proposal.id,
                conversation_id,
            )
        return ProposalOutcome(
            status=PROPOSED,
            proposal=proposal,
            message=message,
            superseded=previous,
        )

    def confirm(
        self, conversation_id: str, user_id: str, proposal_id: str
    ) -> ProposalOutcome:
        """Commit the pending proposal with a single write.

        Raises ProposalError when nothing is pending, the id differs or the
        proposal belongs to another user, and lets PersistenceError through so
        the caller can report it. The proposal stays pending when the write
        fails. The row is keyed by the proposal id, so confirming again after
        a failed clear does not write a second row.
        """
        pending = self.state_repository.get_pending(conversation_id)
        if pending is None:
            raise ProposalError("There is nothing waiting for confirmation.")
        if pending.id != proposal_id:
            raise ProposalError(
                f"Proposal {proposal_id} is no longer pending; "
                f"the current proposal is {pending.id}."
            )
        _check_owner(pending, user_id)

        record_id = self._commit(user_id, pending)
        self.state_repository.set_pending(conversation_id, user_id, None)
        _logger.info("Proposal %s confirmed in %s", pending.id, conversation_id)
        return ProposalOutcome(
            status=CONFIRMED,
            proposal=pending,
            message=_confirmation_message(pending),
            record_id=record_id,
        )

    def decline(self, conversation_id: str, user_id: str) -> ProposalOutcome:
        """Drop the pending proposal without writing anything."""
        pending = self.state_repository.get_pending(conversation_id)
        if pending is not None:
            _check_owner(pending, user_id)
            self.state_repository.set_pending(conversation_id, user_id, None)
        return ProposalOutcome(
            status=DECLINED,
            proposal=pending,
            message="Okay, I won't save that." if pending else "Nothing to cancel.",
        )

    def observe_intent(
        self, conversation_id: str, user_id: str, intent: Intent
    ) -> ProposalOutcome | None:
        """Apply a classified message to the pending proposal.

        Declines clear it. Messages with new foods, recipes or goal edits
        supersede it. Anything else leaves it pending and inert.
        """
        pending = self.state_repository.get_pending(conversation_id)
        if pending is None or intent.intent == "confirm":
            return None
        if pending.user_id is not None and pending.user_id != user_id:
            return None
        if intent.intent == "decline":
            return self.decline(conversation_id, user_id)
        if not _carries_new_entities(intent):
            return None
        self.state_repository.set_pending(conversation_id, user_id, None)
        _logger.info("Proposal %s superseded by new %s", pending.id, intent.intent)
        return ProposalOutcome(
            status=SUPERSEDED,
            proposal=None,
            message=f"Dropped the pending {pending.kind.replace('_', ' ')}.",
            superseded=pending,
        )

    def _commit(self, user_id: str, proposal: Proposal) -> str | None:
        payload = proposal.payload
        if proposal.kind == "goal_update":
            self.goal_writer.upsert_goal(user_id, goal_from_payload(payload))
            return None
        return self.food_log_writer.insert_log(
            food_log_from_payload(user_id, proposal, self.clock())
        )


def food_log_from_payload(
    user_id: str, proposal: Proposal, logged_at: datetime
) -> NewFoodLog:
    """Build the food log row for a food or recipe proposal."""
    payload = proposal.payload
    nutrients = NutrientProfile(
        **{
            name: float(payload[name])
            for name in NUTRIENT_FIELDS
            if isinstance(payload.get(name), int | float)
        }
    )
    if proposal.kind == "recipe_log":
        servings = payload.get("servings", 1)
        return NewFoodLog(
            user_id=user_id,
            logged_at=logged_at,
            food_name=str(payload.get("recipe_name", "Recipe")),
            portion=f"{servings:g} serving(s)"
            if isinstance(servings, int | float)
            else str(servings),
            nutrients=nutrients,
            recipe_id=str(payload["recipe_id"]) if payload.get("recipe_id") else None,
            proposal_id=proposal.id,
        )
    details = payload.get("confidence_details")
    sources = payload.get("error_sources")
    return NewFoodLog(
        user_id=user_id,
        logged_at=logged_at,
        food_name=str(payload.get("food_name", "Food")),
        portion=str(payload["portion"]) if payload.get("portion") else None,
        nutrients=nutrients,
        confidence=str(payload["confidence"]) if payload.get("confidence") else None,
        confidence_details=details if isinstance(details, dict) else None,
        error_sources=tuple(sources) if isinstance(sources, list) else (),
        proposal_id=proposal.id,
    )


def goal_from_payload(payload: dict[str, object]) -> Goal:
    """Build a goal from a goal_update proposal payload."""

    def _optional(key: str) -> float | None:
        value = payload.get(key)
        return float(value) if isinstance(value, int | float) else None

    goal_type = payload.get("goal_type")
    return Goal(
        nutrient=str(payload["nutrient"]),
        target_value=float(payload["target_value"]),
        unit=str(payload.get("unit") or ""),
        goal_type="limit" if goal_type == "limit" else "goal",
        yellow_min=_optional("yellow_min"),
        green_min=_optional("green_min"),
        red_min=_optional("red_min"),
    )


def _check_owner(proposal: Proposal, user_id: str) -> None:
    if proposal.user_id is not None and proposal.user_id != user_id:
        raise ProposalError(f"Proposal {proposal.id} belongs to another user.")


def _carries_new_entities(intent: Intent) -> bool:
    if intent.intent not in _ENTITY_CATEGORIES:
        return False
    if isinstance(intent, FoodIntent):
        return bool(intent.food_items or intent.modified_items)
    if isinstance(intent, RecipeIntent):
        return bool(intent.recipe_text or intent.food_items)
    if isinstance(intent, GoalIntent):
        return bool(intent.goals)
    return False


def _confirmation_message(proposal: Proposal) -> str:
    payload = proposal.payload
    if proposal.kind == "goal_update":
        return (
            f"Updated your {payload.get('nutrient')} goal to "
            f"{payload.get('target_value')}{payload.get('unit', '')}."
        )
    if proposal.kind == "recipe_log":
        return f"Logged {payload.get('recipe_name', 'your recipe')}."
    return f"Logged {payload.get('food_name', 'your food')}."
