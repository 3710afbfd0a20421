"""Meal logging and reporting service."""

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Protocol
from uuid import UUID
from zoneinfo import ZoneInfo

from calorie_bot.domain.meals import (
    DailyTotals,
    DayReport,
    FoodItem,
    MacroTotals,
    MealCategory,
    MealRange,
    MealRecord,
    MealSource,
    RangeReport,
    sum_items,
    sum_meals,
)
from calorie_bot.services.estimator import EstimatorService
from calorie_bot.services.recognition import normalize_response


class MealRepository(Protocol):
    """Persistence interface for meals."""

    def create_meal(  # noqa: PLR0913
        self,
        user_id: UUID,
        eaten_at: datetime,
        category: MealCategory,
        source: MealSource,
        items: list[FoodItem],
        totals: MacroTotals,
    ) -> MealRecord:
        """Insert a meal with its items atomically and return it."""

    def list_meals(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MealRecord]:
        """Return meals with start <= eaten_at < end, oldest first."""

    def list_recent_meals(self, user_id: UUID, limit: int) -> list[MealRecord]:
        """Return the most recent meals, newest first."""

    def delete_meal(self, meal_id: UUID, owner_id: UUID) -> bool:
        """Delete a meal owned by owner_id; return False if none matched."""


@dataclass
class MealService:
    """Service that persists normalized meals and aggregates totals."""

    repository: MealRepository
    estimator: EstimatorService

    def create_meal(
        self,
        user_id: UUID,
        eaten_at: datetime,
        category: MealCategory,
        items: list[FoodItem],
        source: MealSource,
    ) -> MealRecord:
        """Compute totals from items and persist the meal."""
        return self.repository.create_meal(
            user_id,
            eaten_at=eaten_at,
            category=category,
            source=source,
            items=items,
            totals=sum_items(items),
        )

    def create_meal_from_response(
        self,
        user_id: UUID,
        eaten_at: datetime,
        raw_text: str,
        source: MealSource,
        category: MealCategory | None = None,
    ) -> MealRecord | None:
        """Normalize a raw estimator reply and persist it.

        Returns None when the reply holds no food items. The category comes
        from the reply unless the caller supplies one.
        """
        result = normalize_response(raw_text, expect_category=category is None)
        if not result.items:
            return None
        resolved = category or result.category or MealCategory.SNACK
        return self.create_meal(user_id, eaten_at, resolved, result.items, source)

    async def create_meal_from_text(
        self,
        user_id: UUID,
        eaten_at: datetime,
        category: MealCategory,
        description: str,
    ) -> MealRecord | None:
        """Estimate a text description and persist the meal."""
        raw_text = await self.estimator.estimate_text(description)
        return self.create_meal_from_response(
            user_id, eaten_at, raw_text, MealSource.TEXT, category=category
        )

    async def create_meal_from_image(
        self, user_id: UUID, eaten_at: datetime, image_bytes: bytes
    ) -> MealRecord | None:
        """Estimate a meal photo and persist it with the detected category."""
        raw_text = await self.estimator.estimate_image(image_bytes)
        return self.create_meal_from_response(
            user_id, eaten_at, raw_text, MealSource.PHOTO
        )

    def get_meals_for_range(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> MealRange:
        """Return meals in [start, end) and the sum of their stored totals."""
        meals = self.repository.list_meals(user_id, start, end)
        return MealRange(meals=meals, totals=sum_meals(meals))

    def get_day_report(
        self,
        user_id: UUID,
        day: date,
        timezone_name: str,
        daily_calories: int | None = None,
    ) -> DayReport:
        """Return meals and totals for a local calendar day, with the goal if set."""
        tz = ZoneInfo(timezone_name)
        start, end = _day_bounds(day, tz)
        meal_range = self.get_meals_for_range(user_id, start, end)
        return DayReport(
            day=day,
            meals=meal_range.meals,
            totals=meal_range.totals,
            daily_calories=daily_calories,
        )

    def get_range_report(
        self, user_id: UUID, start_day: date, end_day: date, timezone_name: str
    ) -> RangeReport:
        """Return per-day totals and averages for an inclusive day range."""
        if end_day < start_day:
            start_day, end_day = end_day, start_day
        tz = ZoneInfo(timezone_name)
        start, _ = _day_bounds(start_day, tz)
        _, end = _day_bounds(end_day, tz)
        meal_range = self.get_meals_for_range(user_id, start, end)

        days = (end_day - start_day).days + 1
        daily = []
        for offset in range(days):
            day = start_day + timedelta(days=offset)
            meals = [
                meal
                for meal in meal_range.meals
                if meal.eaten_at.astimezone(tz).date() == day
            ]
            daily.append(
                DailyTotals(day=day, meal_count=len(meals), totals=sum_meals(meals))
            )

        totals = meal_range.totals
        return RangeReport(
            start_day=start_day,
            end_day=end_day,
            daily=daily,
            totals=totals,
            averages=MacroTotals(
                calories=totals.calories / days,
                protein=totals.protein / days,
                fat=totals.fat / days,
                carbs=totals.carbs / days,
            ),
        )

    def get_history(self, user_id: UUID, limit: int = 10) -> list[MealRecord]:
        """Return recent meals."""
        return self.repository.list_recent_meals(user_id, limit)

    def delete_meal(self, meal_id: UUID, owner_id: UUID) -> bool:
        """Delete a meal if owner_id owns it."""
        return self.repository.delete_meal(meal_id, owner_id)


def _day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)
