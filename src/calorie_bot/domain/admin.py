"""Admin domain models."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class BotStats:
    """Headline numbers for the admin dashboard."""

    total_users: int
    active_subscriptions: int
    total_payments: int
    total_stars_earned: int
    total_meals: int
    total_analyses: int
    today_users: int
    today_meals: int


@dataclass(frozen=True)
class TopUser:
    """User ranked by analyses consumed."""

    id: UUID
    telegram_user_id: int
    username: str | None
    total_analyses_used: int
    subscription_expires_at: datetime | None


@dataclass(frozen=True)
class AdminTotals:
    """Table-wide sums computed by the store."""

    payments_count: int
    stars_earned: int
    analyses_used: int
