"""Supabase repository for user credit pools and subscriptions."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from calorie_bot.adapters.supabase_support import parse_timestamp, rpc_row
from calorie_bot.domain.ledger import ActivationStatus, CreditState, UserAccount
from calorie_bot.services.ledger import LedgerRepository


@dataclass
class SupabaseLedgerRepository(LedgerRepository):
    """Supabase implementation for the entitlement ledger."""

    client: Client

    def get_account(self, user_id: UUID) -> UserAccount | None:
        """Return the credit columns of a user row."""
        response = (
            self.client.table("users")
            .select(
                "id, subscription_expires_at, bonus_credits, free_credits, "
                "total_analyses_used"
            )
            .eq("id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return UserAccount(
            user_id=UUID(row["id"]),
            subscription_expires_at=parse_timestamp(row.get("subscription_expires_at")),
            bonus_credits=int(row.get("bonus_credits") or 0),
            free_credits=int(row.get("free_credits") or 0),
            total_analyses_used=int(row.get("total_analyses_used") or 0),
        )

    def compare_and_set_credits(
        self, user_id: UUID, expected: CreditState, updated: CreditState
    ) -> bool:
        """Update counters with a conditional UPDATE keyed on the old values."""
        response = (
            self.client.table("users")
            .update(
                {
                    "bonus_credits": updated.bonus_credits,
                    "free_credits": updated.free_credits,
                    "total_analyses_used": updated.total_analyses_used,
                }
            )
            .eq("id", str(user_id))
            .eq("bonus_credits", expected.bonus_credits)
            .eq("free_credits", expected.free_credits)
            .eq("total_analyses_used", expected.total_analyses_used)
            .execute()
        )
        return bool(response.data)

    def record_payment_and_extend(  # noqa: PLR0913
        self,
        user_id: UUID,
        external_payment_ref: str,
        stars: int,
        months: int,
        expected_expires_at: datetime | None,
        new_expires_at: datetime,
    ) -> ActivationStatus:
        """Call the activate_subscription function, which runs in one transaction."""
        response = self.client.rpc(
            "activate_subscription",
            {
                "p_user_id": str(user_id),
                "p_payment_ref": external_payment_ref,
                "p_stars": stars,
                "p_months": months,
                "p_expected_expires_at": expected_expires_at.isoformat()
                if expected_expires_at
                else None,
                "p_new_expires_at": new_expires_at.isoformat(),
            },
        ).execute()
        row = rpc_row(response.data)
        return ActivationStatus(str(row.get("status")))
