"""Promo code management and redemption."""

import logging
import secrets
import string
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from calorie_bot.domain.promos import (
    REJECTION_REASONS,
    Promo,
    PromoCreateResult,
    PromoRedemption,
    RedemptionAttempt,
    RedemptionStatus,
    check_redemption,
    normalize_code,
)
from calorie_bot.errors import DuplicateKeyError
from calorie_bot.services.ledger import LedgerRepository

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
GENERATED_CODE_LENGTH = 8


class PromoRepository(Protocol):
    """Persistence interface for promo codes and their activations."""

    def get_promo(self, code: str) -> Promo | None:
        """Return a promo by its canonical code."""

    def has_activation(self, promo_id: UUID, user_id: UUID) -> bool:
        """Return True if the user already redeemed the promo."""

    def redeem(self, code: str, user_id: UUID, now: datetime) -> RedemptionAttempt:
        """Re-check and apply a redemption in a single transaction."""

    def create_promo(
        self,
        code: str,
        analyses_count: int,
        max_uses: int | None,
        expires_at: datetime | None,
    ) -> Promo:
        """Insert a promo; raises DuplicateKeyError if the code exists."""

    def list_promos(self) -> list[Promo]:
        """Return all promos, newest first."""

    def set_active(self, code: str, is_active: bool) -> bool:
        """Toggle a promo; return False when no promo matched."""

    def delete_promo(self, code: str) -> bool:
        """Delete a promo; return False when nothing was deleted."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def generate_code(length: int = GENERATED_CODE_LENGTH) -> str:
    """Return a random promo code."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


@dataclass
class PromoService:
    """Service for creating and redeeming promo codes."""

    repository: PromoRepository
    ledger_repository: LedgerRepository
    clock: Callable[[], datetime] = field(default=_utc_now)

    def redeem(self, user_id: UUID, code: str) -> PromoRedemption:
        """Grant a promo's bonus analyses to a user, at most once."""
        canonical = normalize_code(code)
        if self.ledger_repository.get_account(user_id) is None:
            return _rejection(RedemptionStatus.USER_NOT_FOUND)

        now = self.clock()
        promo = self.repository.get_promo(canonical)
        already_redeemed = promo is not None and self.repository.has_activation(
            promo.id, user_id
        )
        precheck = check_redemption(promo, already_redeemed, now)
        if precheck is not RedemptionStatus.REDEEMED:
            return _rejection(precheck)

        attempt = self.repository.redeem(canonical, user_id, now)
        if attempt.status is not RedemptionStatus.REDEEMED:
            logger.info(
                "Promo rejected at commit",
                extra={"code": canonical, "status": attempt.status.value},
            )
            return _rejection(attempt.status)

        logger.info(
            "Promo redeemed",
            extra={
                "code": canonical,
                "user_id": str(user_id),
                "credits": attempt.credits_granted,
            },
        )
        return PromoRedemption(
            success=True,
            reason=f"Promo code activated! Added {attempt.credits_granted} analyses",
            credits_granted=attempt.credits_granted,
        )

    def create_promo(
        self,
        analyses_count: int,
        code: str | None = None,
        max_uses: int | None = None,
        expires_at: datetime | None = None,
    ) -> PromoCreateResult:
        """Create a promo code, generating one when none is given."""
        if analyses_count <= 0:
            return PromoCreateResult(
                success=False, reason="analyses count must be positive"
            )
        canonical = normalize_code(code) if code and code.strip() else generate_code()
        try:
            promo = self.repository.create_promo(
                canonical,
                analyses_count=analyses_count,
                max_uses=max_uses if max_uses and max_uses > 0 else None,
                expires_at=expires_at,
            )
        except DuplicateKeyError:
            return PromoCreateResult(success=False, reason="duplicate code")
        return PromoCreateResult(success=True, reason="created", promo=promo)

    def list_promos(self) -> list[Promo]:
        """Return all promos."""
        return self.repository.list_promos()

    def deactivate_promo(self, code: str) -> bool:
        """Stop a promo from being redeemed."""
        return self.repository.set_active(normalize_code(code), False)

    def delete_promo(self, code: str) -> bool:
        """Remove a promo code."""
        return self.repository.delete_promo(normalize_code(code))


def _rejection(status: RedemptionStatus) -> PromoRedemption:
    return PromoRedemption(success=False, reason=REJECTION_REASONS[status])
