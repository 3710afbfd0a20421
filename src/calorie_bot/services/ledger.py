"""Usage-entitlement ledger: access checks, consumption and subscriptions."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from calorie_bot.domain.ledger import (
    AccessDecision,
    ActivationStatus,
    CreditPool,
    CreditState,
    SubscriptionActivation,
    SubscriptionInfo,
    UserAccount,
    apply_consumption,
    extend_subscription,
    select_pool,
)
from calorie_bot.errors import LedgerConflictError
from calorie_bot.services.billing_settings import BillingSettingsService

logger = logging.getLogger(__name__)

MAX_UPDATE_ATTEMPTS = 5


class LedgerRepository(Protocol):
    """Persistence interface for user credit pools."""

    def get_account(self, user_id: UUID) -> UserAccount | None:
        """Return the credit view of a user."""

    def compare_and_set_credits(
        self, user_id: UUID, expected: CreditState, updated: CreditState
    ) -> bool:
        """Write updated counters only if the row still holds expected ones."""

    def record_payment_and_extend(  # noqa: PLR0913
        self,
        user_id: UUID,
        external_payment_ref: str,
        stars: int,
        months: int,
        expected_expires_at: datetime | None,
        new_expires_at: datetime,
    ) -> ActivationStatus:
        """Insert a payment and move the expiry in one transaction."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class LedgerService:
    """Service deciding who may run an analysis and which pool pays."""

    repository: LedgerRepository
    settings_service: BillingSettingsService
    clock: Callable[[], datetime] = field(default=_utc_now)

    def check_access(self, user_id: UUID) -> AccessDecision:
        """Return which pool would pay for the next analysis.

        Advisory only: the answer may be stale by the time consume runs.
        """
        account = self.repository.get_account(user_id)
        if account is None:
            return AccessDecision(allowed=False, pool=CreditPool.NONE, remaining=0)
        return select_pool(account, self.clock())

    def consume(self, user_id: UUID) -> CreditPool:
        """Charge one successful analysis to the right pool."""
        for _ in range(MAX_UPDATE_ATTEMPTS):
            account = self.repository.get_account(user_id)
            if account is None:
                return CreditPool.NONE
            pool, updated = apply_consumption(account, self.clock())
            if updated is None:
                logger.info(
                    "No credits left to consume", extra={"user_id": str(user_id)}
                )
                return CreditPool.NONE
            if self.repository.compare_and_set_credits(
                user_id, account.credits, updated
            ):
                logger.info(
                    "Consumed analysis",
                    extra={"user_id": str(user_id), "pool": pool.value},
                )
                return pool
        raise LedgerConflictError(f"Could not update credits for user {user_id}")

    def activate_subscription(
        self,
        user_id: UUID,
        external_payment_ref: str,
        amount: int,
        months: int | None = None,
    ) -> SubscriptionActivation:
        """Record a confirmed payment and extend the subscription window."""
        resolved_months = months or self.settings_service.load().subscription_months
        for _ in range(MAX_UPDATE_ATTEMPTS):
            account = self.repository.get_account(user_id)
            if account is None:
                return SubscriptionActivation(success=False, reason="user not found")
            new_expiry = extend_subscription(
                account.subscription_expires_at, self.clock(), resolved_months
            )
            status = self.repository.record_payment_and_extend(
                user_id,
                external_payment_ref=external_payment_ref,
                stars=amount,
                months=resolved_months,
                expected_expires_at=account.subscription_expires_at,
                new_expires_at=new_expiry,
            )
            if status is ActivationStatus.APPLIED:
                logger.info(
                    "Subscription extended",
                    extra={
                        "user_id": str(user_id),
                        "payment_ref": external_payment_ref,
                        "expires_at": new_expiry.isoformat(),
                    },
                )
                return SubscriptionActivation(
                    success=True, reason="activated", expires_at=new_expiry
                )
            if status is ActivationStatus.DUPLICATE_PAYMENT:
                logger.info(
                    "Duplicate payment ignored",
                    extra={"payment_ref": external_payment_ref},
                )
                return SubscriptionActivation(
                    success=False,
                    reason="duplicate payment",
                    expires_at=account.subscription_expires_at,
                )
            if status is ActivationStatus.USER_NOT_FOUND:
                return SubscriptionActivation(success=False, reason="user not found")
        raise LedgerConflictError(f"Could not extend subscription for user {user_id}")

    def get_subscription_info(self, user_id: UUID) -> SubscriptionInfo:
        """Return the user's balance across all pools."""
        account = self.repository.get_account(user_id)
        if account is None:
            return SubscriptionInfo(
                has_subscription=False,
                expires_at=None,
                free_credits=0,
                bonus_credits=0,
                total_used=0,
            )
        return SubscriptionInfo(
            has_subscription=account.has_subscription(self.clock()),
            expires_at=account.subscription_expires_at,
            free_credits=account.free_credits,
            bonus_credits=account.bonus_credits,
            total_used=account.total_analyses_used,
        )
