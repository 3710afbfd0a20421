"""Domain models and rules for the usage-entitlement ledger."""

import calendar
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from uuid import UUID


class CreditPool(str, Enum):
    """Pool that pays for an analysis."""

    SUBSCRIPTION = "SUBSCRIPTION"
    BONUS = "BONUS"
    FREE = "FREE"
    NONE = "NONE"


class ActivationStatus(str, Enum):
    """Outcome reported by the store for a payment-and-extend transaction."""

    APPLIED = "applied"
    DUPLICATE_PAYMENT = "duplicate_payment"
    STALE = "stale"
    USER_NOT_FOUND = "user_not_found"


@dataclass(frozen=True)
class CreditState:
    """Mutable counters on a user row, used as a compare-and-set key."""

    bonus_credits: int
    free_credits: int
    total_analyses_used: int


@dataclass(frozen=True)
class UserAccount:
    """Credit view of a user."""

    user_id: UUID
    subscription_expires_at: datetime | None
    bonus_credits: int
    free_credits: int
    total_analyses_used: int

    @property
    def credits(self) -> CreditState:
        return CreditState(
            bonus_credits=self.bonus_credits,
            free_credits=self.free_credits,
            total_analyses_used=self.total_analyses_used,
        )

    def has_subscription(self, now: datetime) -> bool:
        """Return True while the paid window is open."""
        return (
            self.subscription_expires_at is not None
            and self.subscription_expires_at > now
        )


@dataclass(frozen=True)
class AccessDecision:
    """Advisory answer to "may this user run an analysis now?"."""

    allowed: bool
    pool: CreditPool
    remaining: int | None = None


@dataclass(frozen=True)
class SubscriptionInfo:
    """Balance summary shown to users."""

    has_subscription: bool
    expires_at: datetime | None
    free_credits: int
    bonus_credits: int
    total_used: int


@dataclass(frozen=True)
class SubscriptionActivation:
    """Result of applying a confirmed payment."""

    success: bool
    reason: str
    expires_at: datetime | None = None


@dataclass(frozen=True)
class PaymentRecord:
    """Append-only payment audit row."""

    id: UUID
    user_id: UUID
    external_payment_ref: str
    stars: int
    months: int
    created_at: datetime


def select_pool(account: UserAccount, now: datetime) -> AccessDecision:
    """Pick the pool that would pay for the next analysis."""
    if account.has_subscription(now):
        return AccessDecision(allowed=True, pool=CreditPool.SUBSCRIPTION)
    if account.bonus_credits > 0:
        return AccessDecision(
            allowed=True, pool=CreditPool.BONUS, remaining=account.bonus_credits
        )
    if account.free_credits > 0:
        return AccessDecision(
            allowed=True, pool=CreditPool.FREE, remaining=account.free_credits
        )
    return AccessDecision(allowed=False, pool=CreditPool.NONE, remaining=0)


def apply_consumption(
    account: UserAccount, now: datetime
) -> tuple[CreditPool, CreditState | None]:
    """Return the paying pool and the counters after one analysis.

    The state is None when no pool can pay.
    """
    current = account.credits
    pool = select_pool(account, now).pool
    used = current.total_analyses_used + 1
    if pool is CreditPool.SUBSCRIPTION:
        return pool, replace(current, total_analyses_used=used)
    if pool is CreditPool.BONUS:
        return pool, replace(
            current, bonus_credits=current.bonus_credits - 1, total_analyses_used=used
        )
    if pool is CreditPool.FREE:
        return pool, replace(
            current, free_credits=current.free_credits - 1, total_analyses_used=used
        )
    return pool, None


def add_months(moment: datetime, months: int) -> datetime:
    """Shift a timestamp by calendar months, clamping the day of month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def extend_subscription(
    current_expiry: datetime | None, now: datetime, months: int
) -> datetime:
    """Extend from the later of now and the current expiry."""
    start = current_expiry if current_expiry and current_expiry > now else now
    return add_months(start, months)
