"""Supabase repository for promo codes."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import Client

from calorie_bot.adapters.supabase_support import (
    FOREIGN_KEY_VIOLATION,
    UNIQUE_VIOLATION,
    is_violation,
    parse_timestamp,
    rpc_row,
)
from calorie_bot.domain.promos import Promo, RedemptionAttempt, RedemptionStatus
from calorie_bot.errors import DuplicateKeyError
from calorie_bot.services.promos import PromoRepository

_PROMO_COLUMNS = (
    "id, code, analyses_count, max_uses, used_count, expires_at, is_active, created_at"
)


@dataclass
class SupabasePromoRepository(PromoRepository):
    """Supabase implementation for promos and activations."""

    client: Client

    def get_promo(self, code: str) -> Promo | None:
        """Return a promo by code."""
        response = (
            self.client.table("promos")
            .select(_PROMO_COLUMNS)
            .eq("code", code)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_promo(response.data[0])

    def has_activation(self, promo_id: UUID, user_id: UUID) -> bool:
        """Return True if an activation row exists for the pair."""
        response = (
            self.client.table("promo_activations")
            .select("id")
            .eq("promo_id", str(promo_id))
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        return bool(response.data)

    def redeem(self, code: str, user_id: UUID, now: datetime) -> RedemptionAttempt:
        """Call the redeem_promo function, which locks the promo row."""
        response = self.client.rpc(
            "redeem_promo",
            {"p_code": code, "p_user_id": str(user_id), "p_now": now.isoformat()},
        ).execute()
        row = rpc_row(response.data)
        return RedemptionAttempt(
            status=RedemptionStatus(str(row.get("status"))),
            credits_granted=int(row.get("credits") or 0),
        )

    def create_promo(
        self,
        code: str,
        analyses_count: int,
        max_uses: int | None,
        expires_at: datetime | None,
    ) -> Promo:
        """Insert a promo row."""
        try:
            response = (
                self.client.table("promos")
                .insert(
                    {
                        "code": code,
                        "analyses_count": analyses_count,
                        "max_uses": max_uses,
                        "expires_at": expires_at.isoformat() if expires_at else None,
                    }
                )
                .execute()
            )
        except APIError as exc:
            if is_violation(exc, UNIQUE_VIOLATION):
                raise DuplicateKeyError(f"Promo code {code} already exists") from exc
            raise
        if not response.data:
            raise RuntimeError("Failed to create promo")
        return _parse_promo(response.data[0])

    def list_promos(self) -> list[Promo]:
        """Return all promos, newest first."""
        response = (
            self.client.table("promos")
            .select(_PROMO_COLUMNS)
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_promo(row) for row in response.data or []]

    def set_active(self, code: str, is_active: bool) -> bool:
        """Toggle the is_active flag of a promo."""
        response = (
            self.client.table("promos")
            .update({"is_active": is_active})
            .eq("code", code)
            .execute()
        )
        return bool(response.data)

    def delete_promo(self, code: str) -> bool:
        """Delete a promo that has never been redeemed."""
        try:
            response = self.client.table("promos").delete().eq("code", code).execute()
        except APIError as exc:
            if is_violation(exc, FOREIGN_KEY_VIOLATION):
                return False
            raise
        return bool(response.data)


def _parse_promo(row: dict[str, object]) -> Promo:
    max_uses = row.get("max_uses")
    return Promo(
        id=UUID(str(row["id"])),
        code=str(row["code"]),
        analyses_count=int(row.get("analyses_count") or 0),
        max_uses=int(max_uses) if max_uses is not None else None,
        used_count=int(row.get("used_count") or 0),
        expires_at=parse_timestamp(row.get("expires_at")),
        is_active=bool(row.get("is_active", True)),
        created_at=parse_timestamp(row.get("created_at")),
    )
