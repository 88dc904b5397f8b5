"""Supabase repository for user profiles."""

from dataclasses import dataclass

from supabase import Client

from nutrition_engine.adapters.supabase_rows import execute
from nutrition_engine.domain.goals import UserProfile
from nutrition_engine.services.goals import ProfileRepository


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Reads ``user_profiles`` rows."""

    client: Client

    def get_profile(self, user_id: str) -> UserProfile | None:
        response = execute(
            self.client.table("user_profiles")
            .select("*")
            .eq("user_id", user_id)
            .limit(1),
            "read profile",
        )
        if not response.data:
            return None
        row = response.data[0]
        return UserProfile(
            user_id=user_id,
            height_cm=_number(row.get("height_cm", row.get("height"))),
            weight_kg=_number(row.get("weight_kg", row.get("weight"))),
            age=int(row["age"]) if isinstance(row.get("age"), int | float) else None,
            gender=row.get("gender"),
            activity_level=row.get("activity_level"),
            health_goal=row.get("health_goal") or row.get("goal"),
            dietary_preferences=tuple(row.get("dietary_preferences") or ()),
            allergies=tuple(row.get("allergies") or ()),
            timezone=row.get("timezone"),
        )


def _number(value: object) -> float | None:
    return float(value) if isinstance(value, int | float) else None
