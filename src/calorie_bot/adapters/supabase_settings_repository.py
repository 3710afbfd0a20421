"""Supabase repository for the settings table."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from calorie_bot.services.billing_settings import SettingsRepository


@dataclass
class SupabaseSettingsRepository(SettingsRepository):
    """Supabase implementation for key/value settings."""

    client: Client

    def get_values(self) -> dict[str, str]:
        """Return all stored settings."""
        response = self.client.table("settings").select("key, value").execute()
        return {
            str(row["key"]): str(row["value"])
            for row in response.data or []
            if row.get("value") is not None
        }

    def upsert_value(self, key: str, value: str) -> None:
        """Insert or update a setting."""
        self.client.table("settings").upsert(
            {
                "key": key,
                "value": value,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            }
        ).execute()
