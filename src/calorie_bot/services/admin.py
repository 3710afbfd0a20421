"""Admin service for reporting."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, time
from typing import Protocol
from zoneinfo import ZoneInfo

from calorie_bot.domain.admin import AdminTotals, BotStats, TopUser
from calorie_bot.domain.ledger import PaymentRecord


class AdminRepository(Protocol):
    """Persistence interface for admin data."""

    def count_users(self, created_since: datetime | None = None) -> int:
        """Return the number of users, optionally created after a moment."""

    def count_active_subscriptions(self, now: datetime) -> int:
        """Return the number of users with an open subscription."""

    def count_meals(self, created_since: datetime | None = None) -> int:
        """Return the number of meals, optionally created after a moment."""

    def get_totals(self) -> AdminTotals:
        """Return payment count, stars earned and analyses used overall."""

    def list_top_users(self, limit: int) -> list[TopUser]:
        """Return users ordered by analyses used, descending."""

    def list_recent_payments(self, limit: int) -> list[PaymentRecord]:
        """Return the newest payments."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class AdminService:
    """Service for admin dashboards."""

    admin_repository: AdminRepository
    clock: Callable[[], datetime] = field(default=_utc_now)
    timezone: str = "UTC"

    def get_stats(self) -> BotStats:
        """Return headline bot statistics."""
        now = self.clock()
        today_start = self._local_day_start(now)
        totals = self.admin_repository.get_totals()
        return BotStats(
            total_users=self.admin_repository.count_users(),
            active_subscriptions=self.admin_repository.count_active_subscriptions(now),
            total_payments=totals.payments_count,
            total_stars_earned=totals.stars_earned,
            total_meals=self.admin_repository.count_meals(),
            total_analyses=totals.analyses_used,
            today_users=self.admin_repository.count_users(created_since=today_start),
            today_meals=self.admin_repository.count_meals(created_since=today_start),
        )

    def _local_day_start(self, now: datetime) -> datetime:
        tz = ZoneInfo(self.timezone)
        local_day = now.astimezone(tz).date()
        return datetime.combine(local_day, time.min, tzinfo=tz).astimezone(UTC)

    def list_top_users(self, limit: int = 10) -> list[dict[str, object]]:
        """Return users with the most analyses."""
        now = self.clock()
        return [
            {
                "id": str(user.id),
                "telegram_user_id": user.telegram_user_id,
                "username": user.username,
                "total_analyses_used": user.total_analyses_used,
                "has_subscription": user.subscription_expires_at is not None
                and user.subscription_expires_at > now,
            }
            for user in self.admin_repository.list_top_users(limit)
        ]

    def list_recent_payments(self, limit: int = 10) -> list[dict[str, object]]:
        """Return the latest payments."""
        return [
            _serialize_payment(payment)
            for payment in self.admin_repository.list_recent_payments(limit)
        ]


def _serialize_payment(payment: PaymentRecord) -> dict[str, object]:
    return {
        "id": str(payment.id),
        "user_id": str(payment.user_id),
        "external_payment_ref": payment.external_payment_ref,
        "stars": payment.stars,
        "months": payment.months,
        "created_at": payment.created_at.isoformat(),
    }
