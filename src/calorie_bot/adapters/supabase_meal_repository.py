"""Supabase repository for meals."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from calorie_bot.adapters.supabase_support import rpc_row
from calorie_bot.domain.meals import (
    FoodItem,
    MacroTotals,
    MealCategory,
    MealRecord,
    MealSource,
)
from calorie_bot.services.meals import MealRepository

_MEAL_COLUMNS = (
    "id, user_id, eaten_at, category, source, total_calories, total_protein, "
    "total_fat, total_carbs, meal_items(position, name, grams, calories, protein, "
    "fat, carbs)"
)


@dataclass
class SupabaseMealRepository(MealRepository):
    """Supabase implementation for meals and meal items."""

    client: Client

    def create_meal(  # noqa: PLR0913
        self,
        user_id: UUID,
        eaten_at: datetime,
        category: MealCategory,
        source: MealSource,
        items: list[FoodItem],
        totals: MacroTotals,
    ) -> MealRecord:
        """Insert a meal and its items through create_meal_with_items."""
        response = self.client.rpc(
            "create_meal_with_items",
            {
                "p_user_id": str(user_id),
                "p_eaten_at": eaten_at.isoformat(),
                "p_category": category.value,
                "p_source": source.value,
                "p_total_calories": totals.calories,
                "p_total_protein": totals.protein,
                "p_total_fat": totals.fat,
                "p_total_carbs": totals.carbs,
                "p_items": [
                    {
                        "position": index,
                        "name": item.name,
                        "grams": item.grams,
                        "calories": item.calories,
                        "protein": item.protein,
                        "fat": item.fat,
                        "carbs": item.carbs,
                    }
                    for index, item in enumerate(items)
                ],
            },
        ).execute()
        row = rpc_row(response.data)
        return MealRecord(
            id=UUID(str(row["id"])),
            user_id=user_id,
            eaten_at=eaten_at,
            category=category,
            source=source,
            items=list(items),
            totals=totals,
        )

    def list_meals(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MealRecord]:
        """Return meals in [start, end) with their items."""
        response = (
            self.client.table("meals")
            .select(_MEAL_COLUMNS)
            .eq("user_id", str(user_id))
            .gte("eaten_at", start.isoformat())
            .lt("eaten_at", end.isoformat())
            .order("eaten_at", desc=False)
            .execute()
        )
        return [_parse_meal(row) for row in response.data or []]

    def list_recent_meals(self, user_id: UUID, limit: int) -> list[MealRecord]:
        """Return the latest meals for a user."""
        response = (
            self.client.table("meals")
            .select(_MEAL_COLUMNS)
            .eq("user_id", str(user_id))
            .order("eaten_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_meal(row) for row in response.data or []]

    def delete_meal(self, meal_id: UUID, owner_id: UUID) -> bool:
        """Delete a meal only when it belongs to owner_id."""
        response = (
            self.client.table("meals")
            .delete()
            .eq("id", str(meal_id))
            .eq("user_id", str(owner_id))
            .execute()
        )
        return bool(response.data)


def _parse_meal(row: dict[str, object]) -> MealRecord:
    raw_items = row.get("meal_items") or []
    ordered = sorted(raw_items, key=lambda item: int(item.get("position") or 0))
    return MealRecord(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        eaten_at=datetime.fromisoformat(str(row["eaten_at"])),
        category=MealCategory(str(row["category"])),
        source=MealSource(str(row["source"])),
        items=[_parse_item(item) for item in ordered],
        totals=MacroTotals(
            calories=float(row.get("total_calories") or 0),
            protein=float(row.get("total_protein") or 0.0),
            fat=float(row.get("total_fat") or 0.0),
            carbs=float(row.get("total_carbs") or 0.0),
        ),
    )


def _parse_item(row: dict[str, object]) -> FoodItem:
    return FoodItem(
        name=str(row.get("name", "")),
        grams=float(row.get("grams") or 0.0),
        calories=int(row.get("calories") or 0),
        protein=float(row.get("protein") or 0.0),
        fat=float(row.get("fat") or 0.0),
        carbs=float(row.get("carbs") or 0.0),
    )
