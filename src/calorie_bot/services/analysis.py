"""Entry points used by the conversational layer."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID
from zoneinfo import ZoneInfo

from calorie_bot.domain.ledger import (
    CreditPool,
    SubscriptionActivation,
    SubscriptionInfo,
)
from calorie_bot.domain.meals import (
    DayReport,
    MealRecord,
    MealSource,
    RangeReport,
    classify_meal_type,
)
from calorie_bot.domain.promos import PromoRedemption
from calorie_bot.errors import EstimatorError, LedgerConflictError, RecognitionFailure
from calorie_bot.services.ledger import LedgerService
from calorie_bot.services.meals import MealService
from calorie_bot.services.promos import PromoService
from calorie_bot.services.users import UserService

logger = logging.getLogger(__name__)


class AnalysisStatus(str, Enum):
    """Outcome of a metered meal analysis."""

    OK = "OK"
    ACCESS_DENIED = "ACCESS_DENIED"
    RECOGNITION_FAILED = "RECOGNITION_FAILED"
    NO_FOOD = "NO_FOOD"


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result of one analysis request."""

    status: AnalysisStatus
    meal: MealRecord | None = None
    pool: CreditPool | None = None
    balance: SubscriptionInfo | None = None


@dataclass
class AnalysisService:
    """Façade that meters analyses and routes reports and payments."""

    user_service: UserService
    ledger_service: LedgerService
    promo_service: PromoService
    meal_service: MealService
    timezone: str = "UTC"

    async def request_text_analysis(
        self, telegram_user_id: int, description: str, when: datetime
    ) -> AnalysisOutcome:
        """Analyze a free-text meal description for a user."""
        user = self.user_service.ensure_user(telegram_user_id)
        denied = self._deny_if_needed(user.id)
        if denied:
            return denied
        category = classify_meal_type(self._local(when).hour)
        try:
            meal = await self.meal_service.create_meal_from_text(
                user.id, when, category, description
            )
        except (EstimatorError, RecognitionFailure):
            logger.exception("Text analysis failed", extra={"user_id": str(user.id)})
            return AnalysisOutcome(status=AnalysisStatus.RECOGNITION_FAILED)
        return self._settle(user.id, meal)

    def request_photo_analysis(
        self, telegram_user_id: int, raw_model_response: str, when: datetime
    ) -> AnalysisOutcome:
        """Record a photo analysis from a raw model response."""
        user = self.user_service.ensure_user(telegram_user_id)
        denied = self._deny_if_needed(user.id)
        if denied:
            return denied
        try:
            meal = self.meal_service.create_meal_from_response(
                user.id, when, raw_model_response, MealSource.PHOTO
            )
        except RecognitionFailure:
            logger.exception("Photo analysis failed", extra={"user_id": str(user.id)})
            return AnalysisOutcome(status=AnalysisStatus.RECOGNITION_FAILED)
        return self._settle(user.id, meal)

    async def request_photo_upload(
        self, telegram_user_id: int, image_bytes: bytes, when: datetime
    ) -> AnalysisOutcome:
        """Send a meal photo to the estimator and record the result."""
        user = self.user_service.ensure_user(telegram_user_id)
        denied = self._deny_if_needed(user.id)
        if denied:
            return denied
        try:
            meal = await self.meal_service.create_meal_from_image(
                user.id, when, image_bytes
            )
        except (EstimatorError, RecognitionFailure):
            logger.exception("Photo analysis failed", extra={"user_id": str(user.id)})
            return AnalysisOutcome(status=AnalysisStatus.RECOGNITION_FAILED)
        return self._settle(user.id, meal)

    def request_day_report(
        self, telegram_user_id: int, day: date | None = None
    ) -> DayReport:
        """Return one local day's meals and totals."""
        user = self.user_service.ensure_user(telegram_user_id)
        resolved_day = day or self.local_today()
        return self.meal_service.get_day_report(
            user.id, resolved_day, self.timezone, daily_calories=user.daily_calories
        )

    def request_range_report(
        self, telegram_user_id: int, start_day: date, end_day: date
    ) -> RangeReport:
        """Return per-day totals for an inclusive range of local days."""
        user = self.user_service.ensure_user(telegram_user_id)
        return self.meal_service.get_range_report(
            user.id, start_day, end_day, self.timezone
        )

    def request_daily_goal(self, telegram_user_id: int) -> int | None:
        """Return the user's daily calorie goal, if one is set."""
        return self.user_service.ensure_user(telegram_user_id).daily_calories

    def request_set_daily_goal(
        self, telegram_user_id: int, daily_calories: int
    ) -> bool:
        """Set the daily calorie goal; False when the value is out of range."""
        user = self.user_service.ensure_user(telegram_user_id)
        return self.user_service.set_daily_calories(user.id, daily_calories)

    def request_promo_redeem(self, telegram_user_id: int, code: str) -> PromoRedemption:
        """Redeem a promo code for a user."""
        user = self.user_service.ensure_user(telegram_user_id)
        return self.promo_service.redeem(user.id, code)

    def request_subscription_purchase_confirmed(
        self, telegram_user_id: int, external_payment_ref: str, amount: int
    ) -> SubscriptionActivation:
        """Apply a confirmed payment to a user's subscription."""
        user = self.user_service.ensure_user(telegram_user_id)
        return self.ledger_service.activate_subscription(
            user.id, external_payment_ref, amount
        )

    def request_delete_meal(self, telegram_user_id: int, meal_id: UUID) -> bool:
        """Delete a meal if the requesting user owns it."""
        user = self.user_service.find_user(telegram_user_id)
        if user is None:
            return False
        return self.meal_service.delete_meal(meal_id, user.id)

    def request_balance(self, telegram_user_id: int) -> SubscriptionInfo:
        """Return the user's subscription and credit balance."""
        user = self.user_service.ensure_user(telegram_user_id)
        return self.ledger_service.get_subscription_info(user.id)

    def local_today(self) -> date:
        """Return today's date in the configured timezone."""
        return self._local(self.ledger_service.clock()).date()

    def _local(self, moment: datetime) -> datetime:
        return moment.astimezone(ZoneInfo(self.timezone))

    def _deny_if_needed(self, user_id: UUID) -> AnalysisOutcome | None:
        decision = self.ledger_service.check_access(user_id)
        if decision.allowed:
            return None
        return AnalysisOutcome(
            status=AnalysisStatus.ACCESS_DENIED,
            balance=self.ledger_service.get_subscription_info(user_id),
        )

    def _settle(self, user_id: UUID, meal: MealRecord | None) -> AnalysisOutcome:
        if meal is None:
            return AnalysisOutcome(status=AnalysisStatus.NO_FOOD)
        try:
            pool: CreditPool | None = self.ledger_service.consume(user_id)
        except LedgerConflictError:
            # The meal is already stored; report it without a paying pool.
            logger.exception(
                "Meal saved but not charged",
                extra={"user_id": str(user_id), "meal_id": str(meal.id)},
            )
            pool = None
        return AnalysisOutcome(status=AnalysisStatus.OK, meal=meal, pool=pool)
