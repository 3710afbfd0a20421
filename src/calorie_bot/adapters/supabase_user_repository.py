"""Supabase-backed user repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from calorie_bot.domain.models import UserRecord
from calorie_bot.services.users import UserRepository

_USER_COLUMNS = "id, telegram_user_id, username, first_name, daily_calories"


@dataclass
class SupabaseUserRepository(UserRepository):
    """Users table access for identity and profile fields."""

    client: Client

    def get_by_telegram_id(self, telegram_user_id: int) -> UserRecord | None:
        rows = (
            self.client.table("users")
            .select(_USER_COLUMNS)
            .eq("telegram_user_id", telegram_user_id)
            .limit(1)
            .execute()
        ).data
        return _parse_user(rows[0]) if rows else None

    def create_user(
        self,
        telegram_user_id: int,
        username: str | None,
        first_name: str | None,
        free_credits: int,
    ) -> UserRecord:
        """Insert a user together with the trial credits."""
        payload = {
            "telegram_user_id": telegram_user_id,
            "username": username,
            "first_name": first_name,
            "free_credits": free_credits,
        }
        rows = self.client.table("users").insert(payload).execute().data
        if not rows:
            raise RuntimeError("Failed to create user in Supabase")
        return _parse_user(rows[0])

    def touch_user(
        self, user_id: UUID, username: str | None, first_name: str | None
    ) -> None:
        """Bump last_active_at and refresh the Telegram profile names."""
        payload: dict[str, object] = {
            "last_active_at": datetime.now(tz=UTC).isoformat()
        }
        if username is not None:
            payload["username"] = username
        if first_name is not None:
            payload["first_name"] = first_name
        self.client.table("users").update(payload).eq("id", str(user_id)).execute()

    def set_daily_calories(self, user_id: UUID, daily_calories: int) -> None:
        self.client.table("users").update({"daily_calories": daily_calories}).eq(
            "id", str(user_id)
        ).execute()


def _parse_user(row: dict) -> UserRecord:
    return UserRecord(
        id=UUID(row["id"]),
        telegram_user_id=row["telegram_user_id"],
        username=row.get("username"),
        first_name=row.get("first_name"),
        daily_calories=row.get("daily_calories"),
    )
