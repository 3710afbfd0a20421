"""Models for estimator responses."""

import math
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, field_validator

from calorie_bot.domain.meals import FoodItem, MealCategory

UNKNOWN_FOOD_NAME = "Unknown food"
DEFAULT_PORTION_GRAMS = 100.0
# Upper bound for one item; stored calorie columns are 32-bit integers.
MAX_ITEM_CALORIES = 100_000


def coerce_text(value: object, default: str) -> str:
    """Return a stripped string or the default."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def coerce_number(value: object, default: float) -> float:
    """Return a finite non-negative float or the default."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not math.isfinite(number) or number < 0:
        return default
    return number


def coerce_positive(value: object, default: float) -> float:
    """Return a finite positive float or the default."""
    number = coerce_number(value, default)
    return number if number > 0 else default


def coerce_whole(value: object, default: int) -> int:
    """Return a non-negative integer rounded half up, or the default."""
    number = coerce_number(value, float(default))
    return int(math.floor(number + 0.5))


def coerce_category(value: object) -> MealCategory:
    """Return the matching meal category, or SNACK."""
    if isinstance(value, str):
        try:
            return MealCategory(value.strip().upper())
        except ValueError:
            return MealCategory.SNACK
    return MealCategory.SNACK


class RecognizedItem(BaseModel):
    """One food item as reported by the estimator, coerced on input."""

    model_config = ConfigDict(extra="ignore")

    name: str = UNKNOWN_FOOD_NAME
    grams: float = DEFAULT_PORTION_GRAMS
    calories: int = 0
    protein: float = 0.0
    fat: float = 0.0
    carbs: float = 0.0

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: object) -> str:
        return coerce_text(value, UNKNOWN_FOOD_NAME)

    @field_validator("grams", mode="before")
    @classmethod
    def _grams(cls, value: object) -> float:
        return coerce_positive(value, DEFAULT_PORTION_GRAMS)

    @field_validator("calories", mode="before")
    @classmethod
    def _calories(cls, value: object) -> int:
        return min(coerce_whole(value, 0), MAX_ITEM_CALORIES)

    @field_validator("protein", "fat", "carbs", mode="before")
    @classmethod
    def _macro(cls, value: object) -> float:
        return coerce_number(value, 0.0)

    def to_food_item(self) -> FoodItem:
        return FoodItem(
            name=self.name,
            grams=self.grams,
            calories=self.calories,
            protein=self.protein,
            fat=self.fat,
            carbs=self.carbs,
        )


@dataclass(frozen=True)
class RecognitionResult:
    """Normalized items and, for photos, the meal category."""

    items: list[FoodItem]
    category: MealCategory | None = None
