"""Domain models for meal logging."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID

BREAKFAST_START_HOUR = 5
LUNCH_START_HOUR = 11
DINNER_START_HOUR = 16
SNACK_START_HOUR = 22


class MealCategory(str, Enum):
    """Kind of meal a log entry belongs to."""

    BREAKFAST = "BREAKFAST"
    LUNCH = "LUNCH"
    DINNER = "DINNER"
    SNACK = "SNACK"


class MealSource(str, Enum):
    """Channel a meal was reported through."""

    TEXT = "TEXT"
    PHOTO = "PHOTO"


@dataclass(frozen=True)
class FoodItem:
    """Normalized food item with portion macros."""

    name: str
    grams: float
    calories: int
    protein: float
    fat: float
    carbs: float


@dataclass(frozen=True)
class MacroTotals:
    """Summed macros for one or more food items or meals."""

    calories: float
    protein: float
    fat: float
    carbs: float

    @classmethod
    def zero(cls) -> "MacroTotals":
        return cls(calories=0, protein=0.0, fat=0.0, carbs=0.0)

    def __add__(self, other: "MacroTotals") -> "MacroTotals":
        return MacroTotals(
            calories=self.calories + other.calories,
            protein=self.protein + other.protein,
            fat=self.fat + other.fat,
            carbs=self.carbs + other.carbs,
        )


@dataclass(frozen=True)
class MealRecord:
    """Persisted meal with its items and stored totals."""

    id: UUID
    user_id: UUID
    eaten_at: datetime
    category: MealCategory
    source: MealSource
    items: list[FoodItem]
    totals: MacroTotals


@dataclass(frozen=True)
class MealRange:
    """Meals in a half-open time window with their rolled-up totals."""

    meals: list[MealRecord]
    totals: MacroTotals


@dataclass(frozen=True)
class DayReport:
    """Meals and totals for one local calendar day."""

    day: date
    meals: list[MealRecord]
    totals: MacroTotals
    daily_calories: int | None = None

    @property
    def goal_percent(self) -> int | None:
        """Share of the daily calorie goal eaten so far, in percent."""
        if not self.daily_calories:
            return None
        return round(self.totals.calories / self.daily_calories * 100)


@dataclass(frozen=True)
class DailyTotals:
    """Totals for a single day inside a range report."""

    day: date
    meal_count: int
    totals: MacroTotals


@dataclass(frozen=True)
class RangeReport:
    """Per-day totals, grand totals and daily averages for a date range."""

    start_day: date
    end_day: date
    daily: list[DailyTotals]
    totals: MacroTotals
    averages: MacroTotals


def sum_items(items: list[FoodItem]) -> MacroTotals:
    """Return the macro totals for a list of items."""
    total = MacroTotals.zero()
    for item in items:
        total = total + MacroTotals(
            calories=item.calories,
            protein=item.protein,
            fat=item.fat,
            carbs=item.carbs,
        )
    return total


def sum_meals(meals: list[MealRecord]) -> MacroTotals:
    """Return the sum of the stored totals of meals."""
    total = MacroTotals.zero()
    for meal in meals:
        total = total + meal.totals
    return total


def classify_meal_type(hour: int) -> MealCategory:
    """Map an hour of the day to the meal usually eaten then."""
    hour = hour % 24
    if BREAKFAST_START_HOUR <= hour < LUNCH_START_HOUR:
        return MealCategory.BREAKFAST
    if LUNCH_START_HOUR <= hour < DINNER_START_HOUR:
        return MealCategory.LUNCH
    if DINNER_START_HOUR <= hour < SNACK_START_HOUR:
        return MealCategory.DINNER
    return MealCategory.SNACK
