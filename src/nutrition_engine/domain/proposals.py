"""Domain models for proposed mutations."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

ProposalKind = Literal["food_log", "recipe_log", "goal_update"]

IDLE = "IDLE"
PROPOSED = "PROPOSED"
CONFIRMED = "CONFIRMED"
SUPERSEDED = "SUPERSEDED"
DECLINED = "DECLINED"


@dataclass(frozen=True)
class Proposal:
    """A pending mutation awaiting explicit confirmation."""

    id: str
    kind: ProposalKind
    payload: dict[str, object]
    created_at: datetime
    message: str = ""
    user_id: str | None = None


@dataclass(frozen=True)
class ProposalOutcome:
    """Result of a transition in the confirmation workflow."""

    status: str
    proposal: Proposal | None
    message: str
    record_id: str | None = None
    superseded: Proposal | None = None
