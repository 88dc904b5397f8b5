"""Supabase-backed pending proposal storage."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from nutrition_engine.adapters.supabase_rows import execute, parse_timestamp
from nutrition_engine.domain.proposals import Proposal
from nutrition_engine.services.proposals import ProposalStateRepository

_KINDS = {"food_log", "recipe_log", "goal_update"}


@dataclass
class SupabaseChatSessionRepository(ProposalStateRepository):
    """Keeps the pending proposal in ``chat_sessions.pending_action``."""

    client: Client

    def get_pending(self, conversation_id: str) -> Proposal | None:
        response = execute(
            self.client.table("chat_sessions")
            .select("pending_action")
            .eq("id", conversation_id)
            .limit(1),
            "read chat session",
        )
        if not response.data:
            return None
        return _parse_pending(response.data[0].get("pending_action"))

    def set_pending(
        self, conversation_id: str, user_id: str, proposal: Proposal | None
    ) -> None:
        pending = None
        if proposal is not None:
            pending = {
                "id": proposal.id,
                "type": proposal.kind,
                "data": proposal.payload,
                "message": proposal.message,
                "created_at": proposal.created_at.isoformat(),
                "user_id": proposal.user_id,
            }
        execute(
            self.client.table("chat_sessions").upsert(
                {
                    "id": conversation_id,
                    "user_id": user_id,
                    "pending_action": pending,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict="id",
            ),
            "update chat session",
        )


def _parse_pending(raw: object) -> Proposal | None:
    if not isinstance(raw, dict) or raw.get("type") not in _KINDS or not raw.get("id"):
        return None
    data = raw.get("data")
    return Proposal(
        id=str(raw["id"]),
        kind=raw["type"],
        payload=data if isinstance(data, dict) else {},
        created_at=parse_timestamp(raw.get("created_at")),
        message=str(raw.get("message") or ""),
        user_id=str(raw["user_id"]) if raw.get("user_id") else None,
    )
