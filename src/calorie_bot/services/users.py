"""User-related business logic."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from calorie_bot.domain.models import UserRecord
from calorie_bot.services.billing_settings import BillingSettingsService

logger = logging.getLogger(__name__)

MIN_DAILY_CALORIES = 1000
MAX_DAILY_CALORIES = 5000


class UserRepository(Protocol):
    """Persistence interface for user data."""

    def get_by_telegram_id(self, telegram_user_id: int) -> UserRecord | None:
        """Return the user for a Telegram user id, if present."""

    def create_user(
        self,
        telegram_user_id: int,
        username: str | None,
        first_name: str | None,
        free_credits: int,
    ) -> UserRecord:
        """Create and return a new user record with its trial credits."""

    def touch_user(
        self, user_id: UUID, username: str | None, first_name: str | None
    ) -> None:
        """Record activity and refresh profile names for the user."""

    def set_daily_calories(self, user_id: UUID, daily_calories: int) -> None:
        """Store the user's daily calorie goal."""


@dataclass
class UserService:
    """Application service for user lifecycle actions."""

    repository: UserRepository
    settings_service: BillingSettingsService

    def ensure_user(
        self,
        telegram_user_id: int,
        username: str | None = None,
        first_name: str | None = None,
    ) -> UserRecord:
        """Ensure a user exists for the Telegram id and return it."""
        existing = self.repository.get_by_telegram_id(telegram_user_id)
        if existing:
            self.repository.touch_user(existing.id, username, first_name)
            return existing

        free_credits = self.settings_service.load().free_analyses_count
        created = self.repository.create_user(
            telegram_user_id,
            username=username,
            first_name=first_name,
            free_credits=free_credits,
        )
        logger.info(
            "Created user",
            extra={
                "user_id": str(created.id),
                "display_name": created.display_name,
                "free_credits": free_credits,
            },
        )
        return created

    def find_user(self, telegram_user_id: int) -> UserRecord | None:
        """Return the user for a Telegram id without creating one."""
        return self.repository.get_by_telegram_id(telegram_user_id)

    def set_daily_calories(self, user_id: UUID, daily_calories: int) -> bool:
        """Store a daily calorie goal; False when it is outside the allowed range."""
        if not MIN_DAILY_CALORIES <= daily_calories <= MAX_DAILY_CALORIES:
            return False
        self.repository.set_daily_calories(user_id, daily_calories)
        logger.info(
            "Daily calorie goal set",
            extra={"user_id": str(user_id), "daily_calories": daily_calories},
        )
        return True
