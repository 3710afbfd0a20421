"""Domain models for promo codes."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class RedemptionStatus(str, Enum):
    """Outcome of a promo redemption check."""

    REDEEMED = "redeemed"
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"
    ALREADY_USED = "already_used"
    USER_NOT_FOUND = "user_not_found"


REJECTION_REASONS: dict[RedemptionStatus, str] = {
    RedemptionStatus.NOT_FOUND: "Promo code not found",
    RedemptionStatus.INACTIVE: "Promo code is inactive",
    RedemptionStatus.EXPIRED: "Promo code has expired",
    RedemptionStatus.EXHAUSTED: "Promo code has reached its usage limit",
    RedemptionStatus.ALREADY_USED: "You have already used this promo code",
    RedemptionStatus.USER_NOT_FOUND: "User not found",
}


@dataclass(frozen=True)
class Promo:
    """Shared code granting bonus analyses."""

    id: UUID
    code: str
    analyses_count: int
    max_uses: int | None
    used_count: int
    expires_at: datetime | None
    is_active: bool
    created_at: datetime | None = None


@dataclass(frozen=True)
class RedemptionAttempt:
    """Raw outcome returned by the store for a redemption transaction."""

    status: RedemptionStatus
    credits_granted: int = 0


@dataclass(frozen=True)
class PromoRedemption:
    """User-facing redemption result."""

    success: bool
    reason: str
    credits_granted: int = 0


@dataclass(frozen=True)
class PromoCreateResult:
    """Result of creating a promo code."""

    success: bool
    reason: str
    promo: Promo | None = None


def normalize_code(code: str) -> str:
    """Return the canonical form of a promo code."""
    return code.strip().upper()


def check_redemption(
    promo: Promo | None, already_redeemed: bool, now: datetime
) -> RedemptionStatus:
    """Run the redemption rules in their fixed order."""
    if promo is None:
        return RedemptionStatus.NOT_FOUND
    if not promo.is_active:
        return RedemptionStatus.INACTIVE
    if promo.expires_at is not None and promo.expires_at < now:
        return RedemptionStatus.EXPIRED
    if promo.max_uses is not None and promo.used_count >= promo.max_uses:
        return RedemptionStatus.EXHAUSTED
    if already_redeemed:
        return RedemptionStatus.ALREADY_USED
    return RedemptionStatus.REDEEMED
