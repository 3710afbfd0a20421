"""Tests for hour-based meal classification and totals."""

from calorie_bot.domain.meals import (
    FoodItem,
    MealCategory,
    classify_meal_type,
    sum_items,
)


def test_classify_meal_type_boundaries() -> None:
    assert classify_meal_type(4) is MealCategory.SNACK
    assert classify_meal_type(5) is MealCategory.BREAKFAST
    assert classify_meal_type(10) is MealCategory.BREAKFAST
    assert classify_meal_type(11) is MealCategory.LUNCH
    assert classify_meal_type(15) is MealCategory.LUNCH
    assert classify_meal_type(16) is MealCategory.DINNER
    assert classify_meal_type(21) is MealCategory.DINNER
    assert classify_meal_type(22) is MealCategory.SNACK
    assert classify_meal_type(0) is MealCategory.SNACK


def test_classify_meal_type_covers_every_hour() -> None:
    counts: dict[MealCategory, int] = {}
    for hour in range(24):
        category = classify_meal_type(hour)
        counts[category] = counts.get(category, 0) + 1

    assert counts == {
        MealCategory.SNACK: 7,
        MealCategory.BREAKFAST: 6,
        MealCategory.LUNCH: 5,
        MealCategory.DINNER: 6,
    }


def test_sum_items_adds_every_field() -> None:
    totals = sum_items(
        [
            FoodItem("Egg", 50, 78, 6.3, 5.3, 0.6),
            FoodItem("Toast", 30, 80, 2.7, 1.0, 14.0),
        ]
    )

    assert totals.calories == 158
    assert round(totals.protein, 6) == 9.0
    assert round(totals.fat, 6) == 6.3
    assert round(totals.carbs, 6) == 14.6
