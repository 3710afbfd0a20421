"""Supabase admin data access."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from calorie_bot.adapters.supabase_support import parse_timestamp, rpc_row
from calorie_bot.domain.admin import AdminTotals, TopUser
from calorie_bot.domain.ledger import PaymentRecord
from calorie_bot.services.admin import AdminRepository


@dataclass
class SupabaseAdminRepository(AdminRepository):
    """Supabase implementation for admin queries."""

    client: Client

    def count_users(self, created_since: datetime | None = None) -> int:
        """Return the number of users."""
        query = self.client.table("users").select("id", count="exact")
        if created_since is not None:
            query = query.gte("created_at", created_since.isoformat())
        return query.execute().count or 0

    def count_active_subscriptions(self, now: datetime) -> int:
        """Return users whose subscription ends after now."""
        response = (
            self.client.table("users")
            .select("id", count="exact")
            .gt("subscription_expires_at", now.isoformat())
            .execute()
        )
        return response.count or 0

    def count_meals(self, created_since: datetime | None = None) -> int:
        """Return the number of meals."""
        query = self.client.table("meals").select("id", count="exact")
        if created_since is not None:
            query = query.gte("created_at", created_since.isoformat())
        return query.execute().count or 0

    def get_totals(self) -> AdminTotals:
        """Return table-wide sums computed by the admin_totals function."""
        row = rpc_row(self.client.rpc("admin_totals", {}).execute().data)
        return AdminTotals(
            payments_count=int(row.get("payments_count") or 0),
            stars_earned=int(row.get("stars_earned") or 0),
            analyses_used=int(row.get("analyses_used") or 0),
        )

    def list_top_users(self, limit: int) -> list[TopUser]:
        """Return the heaviest users."""
        response = (
            self.client.table("users")
            .select(
                "id, telegram_user_id, username, total_analyses_used, "
                "subscription_expires_at"
            )
            .order("total_analyses_used", desc=True)
            .limit(limit)
            .execute()
        )
        return [
            TopUser(
                id=UUID(str(row["id"])),
                telegram_user_id=int(row["telegram_user_id"]),
                username=row.get("username"),
                total_analyses_used=int(row.get("total_analyses_used") or 0),
                subscription_expires_at=parse_timestamp(
                    row.get("subscription_expires_at")
                ),
            )
            for row in response.data or []
        ]

    def list_recent_payments(self, limit: int) -> list[PaymentRecord]:
        """Return the newest payments."""
        response = (
            self.client.table("payments")
            .select("id, user_id, external_payment_ref, stars, months, created_at")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [
            PaymentRecord(
                id=UUID(str(row["id"])),
                user_id=UUID(str(row["user_id"])),
                external_payment_ref=str(row["external_payment_ref"]),
                stars=int(row.get("stars") or 0),
                months=int(row.get("months") or 0),
                created_at=datetime.fromisoformat(str(row["created_at"])),
            )
            for row in response.data or []
        ]
