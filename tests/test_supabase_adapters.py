"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

import pytest
from postgrest.exceptions import APIError

from calorie_bot.adapters.supabase_admin_repository import SupabaseAdminRepository
from calorie_bot.adapters.supabase_ledger_repository import SupabaseLedgerRepository
from calorie_bot.adapters.supabase_meal_repository import SupabaseMealRepository
from calorie_bot.adapters.supabase_promo_repository import SupabasePromoRepository
from calorie_bot.adapters.supabase_settings_repository import (
    SupabaseSettingsRepository,
)
from calorie_bot.adapters.supabase_user_repository import SupabaseUserRepository
from calorie_bot.domain.ledger import ActivationStatus, CreditState
from calorie_bot.domain.meals import FoodItem, MacroTotals, MealCategory, MealSource
from calorie_bot.domain.promos import RedemptionStatus
from calorie_bot.errors import DuplicateKeyError


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | dict[str, object] | None
    count: int | None = None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {
            "select": [],
            "insert": [],
            "update": [],
            "upsert": [],
            "delete": [],
        }
    )
    count: int | None = None
    error: APIError | None = None
    last_payload: object | None = None
    last_filters: list[tuple[str, str, object]] = field(default_factory=list)

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args, count: str | None = None) -> "FakeTable":
        self._action = "select"
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "update"
        self.last_payload = payload
        return self

    def upsert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "upsert"
        self.last_payload = payload
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("eq", column, value))
        return self

    def gte(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("gte", column, value))
        return self

    def gt(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("gt", column, value))
        return self

    def lt(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("lt", column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def order(self, _column: str, desc: bool = False) -> "FakeTable":
        return self

    def execute(self) -> FakeResponse:
        if self.error is not None:
            raise self.error
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data, count=self.count)


@dataclass
class FakeRpc:
    data: object

    def execute(self) -> FakeResponse:
        return FakeResponse(data=self.data)  # type: ignore[arg-type]


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)
    rpc_results: dict[str, object] = field(default_factory=dict)
    rpc_calls: list[tuple[str, dict[str, object]]] = field(default_factory=list)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]

    def rpc(self, name: str, params: dict[str, object]) -> FakeRpc:
        self.rpc_calls.append((name, params))
        return FakeRpc(self.rpc_results.get(name))


def _api_error(code: str) -> APIError:
    return APIError(
        {"message": "violation", "code": code, "hint": None, "details": None}
    )


def test_supabase_user_repository_roundtrip() -> None:
    client = FakeSupabaseClient()
    users_table = client.table("users")
    user_id = str(uuid4())
    users_table.queue("insert", [{"id": user_id, "telegram_user_id": 123}])
    users_table.queue("select", [{"id": user_id, "telegram_user_id": 123}])

    repository = SupabaseUserRepository(client)
    created = repository.create_user(123, "eater", "Test", free_credits=3)
    fetched = repository.get_by_telegram_id(123)

    assert str(created.id) == user_id
    assert fetched is not None
    assert fetched.telegram_user_id == 123
    assert users_table.last_payload == {
        "telegram_user_id": 123,
        "username": "eater",
        "first_name": "Test",
        "free_credits": 3,
    }


def test_supabase_ledger_repository_compare_and_set() -> None:
    client = FakeSupabaseClient()
    users_table = client.table("users")
    user_id = uuid4()
    users_table.queue(
        "select",
        [
            {
                "id": str(user_id),
                "subscription_expires_at": "2024-04-01T00:00:00+00:00",
                "bonus_credits": 1,
                "free_credits": 2,
                "total_analyses_used": 7,
            }
        ],
    )
    users_table.queue("update", [])

    repository = SupabaseLedgerRepository(client)
    account = repository.get_account(user_id)
    applied = repository.compare_and_set_credits(
        user_id, CreditState(1, 2, 7), CreditState(0, 2, 8)
    )

    assert account is not None
    assert account.subscription_expires_at == datetime(2024, 4, 1, tzinfo=UTC)
    assert applied is False
    assert ("eq", "bonus_credits", 1) in users_table.last_filters
    assert ("eq", "total_analyses_used", 7) in users_table.last_filters
    assert users_table.last_payload == {
        "bonus_credits": 0,
        "free_credits": 2,
        "total_analyses_used": 8,
    }


def test_supabase_ledger_repository_activation_rpc() -> None:
    client = FakeSupabaseClient(
        rpc_results={"activate_subscription": {"status": "stale"}}
    )
    new_expiry = datetime(2024, 5, 1, tzinfo=UTC)

    status = SupabaseLedgerRepository(client).record_payment_and_extend(
        uuid4(),
        external_payment_ref="charge-1",
        stars=100,
        months=1,
        expected_expires_at=None,
        new_expires_at=new_expiry,
    )

    name, params = client.rpc_calls[0]
    assert status is ActivationStatus.STALE
    assert name == "activate_subscription"
    assert params["p_expected_expires_at"] is None
    assert params["p_new_expires_at"] == new_expiry.isoformat()


def test_supabase_promo_repository_redeem_and_duplicates() -> None:
    client = FakeSupabaseClient(
        rpc_results={"redeem_promo": [{"status": "redeemed", "credits": 5}]}
    )
    promos_table = client.table("promos")
    promos_table.error = _api_error("23505")

    repository = SupabasePromoRepository(client)
    attempt = repository.redeem("SPRING", uuid4(), datetime.now(tz=UTC))

    assert attempt.status is RedemptionStatus.REDEEMED
    assert attempt.credits_granted == 5
    with pytest.raises(DuplicateKeyError):
        repository.create_promo("SPRING", 5, None, None)


def test_supabase_promo_repository_delete_in_use() -> None:
    client = FakeSupabaseClient()
    client.table("promos").error = _api_error("23503")

    assert SupabasePromoRepository(client).delete_promo("USED") is False


def test_supabase_promo_repository_parses_rows() -> None:
    client = FakeSupabaseClient()
    promos_table = client.table("promos")
    promos_table.queue(
        "select",
        [
            {
                "id": str(uuid4()),
                "code": "SPRING",
                "analyses_count": 5,
                "max_uses": None,
                "used_count": 2,
                "expires_at": None,
                "is_active": True,
                "created_at": "2024-03-01T10:00:00+00:00",
            }
        ],
    )

    promo = SupabasePromoRepository(client).get_promo("SPRING")

    assert promo is not None
    assert promo.max_uses is None
    assert promo.used_count == 2


def test_supabase_meal_repository_create_and_list() -> None:
    meal_id = str(uuid4())
    user_id = uuid4()
    client = FakeSupabaseClient(
        rpc_results={"create_meal_with_items": {"id": meal_id}}
    )
    meals_table = client.table("meals")
    meals_table.queue(
        "select",
        [
            {
                "id": meal_id,
                "user_id": str(user_id),
                "eaten_at": "2024-03-15T12:00:00+00:00",
                "category": "LUNCH",
                "source": "TEXT",
                "total_calories": 273,
                "total_protein": 13.0,
                "total_fat": 5.5,
                "total_carbs": 42.0,
                "meal_items": [
                    {
                        "position": 1,
                        "name": "Egg",
                        "grams": 50,
                        "calories": 78,
                        "protein": 6,
                        "fat": 5,
                        "carbs": 0,
                    },
                    {
                        "position": 0,
                        "name": "Rice",
                        "grams": 150,
                        "calories": 195,
                        "protein": 4,
                        "fat": 0.5,
                        "carbs": 42,
                    },
                ],
            }
        ],
    )
    items = [FoodItem("Rice", 150, 195, 4, 0.5, 42)]

    repository = SupabaseMealRepository(client)
    created = repository.create_meal(
        user_id,
        eaten_at=datetime(2024, 3, 15, 12, tzinfo=UTC),
        category=MealCategory.LUNCH,
        source=MealSource.TEXT,
        items=items,
        totals=MacroTotals(195, 4, 0.5, 42),
    )
    listed = repository.list_meals(
        user_id,
        datetime(2024, 3, 15, tzinfo=UTC),
        datetime(2024, 3, 16, tzinfo=UTC),
    )

    _, params = client.rpc_calls[0]
    assert str(created.id) == meal_id
    assert params["p_category"] == "LUNCH"
    assert params["p_items"][0]["position"] == 0
    assert [item.name for item in listed[0].items] == ["Rice", "Egg"]
    assert listed[0].totals.calories == 273
    assert ("lt", "eaten_at", "2024-03-16T00:00:00+00:00") in meals_table.last_filters


def test_supabase_meal_repository_delete_is_owner_scoped() -> None:
    client = FakeSupabaseClient()
    meals_table = client.table("meals")
    meals_table.queue("delete", [])
    owner = uuid4()

    deleted = SupabaseMealRepository(client).delete_meal(uuid4(), owner)

    assert deleted is False
    assert ("eq", "user_id", str(owner)) in meals_table.last_filters


def test_supabase_settings_repository() -> None:
    client = FakeSupabaseClient()
    settings_table = client.table("settings")
    settings_table.queue("select", [{"key": "SUBSCRIPTION_MONTHS", "value": "2"}])

    repository = SupabaseSettingsRepository(client)
    values = repository.get_values()
    repository.upsert_value("FREE_ANALYSES_COUNT", "5")

    assert values == {"SUBSCRIPTION_MONTHS": "2"}
    assert isinstance(settings_table.last_payload, dict)
    assert settings_table.last_payload["value"] == "5"


def test_supabase_admin_repository() -> None:
    client = FakeSupabaseClient()
    users_table = client.table("users")
    payments_table = client.table("payments")
    users_table.count = 4
    payments_table.queue(
        "select",
        [
            {
                "id": str(uuid4()),
                "user_id": str(uuid4()),
                "external_payment_ref": "charge-1",
                "stars": 100,
                "months": 1,
                "created_at": "2024-03-15T12:00:00+00:00",
            }
        ],
    )

    repository = SupabaseAdminRepository(client)
    total = repository.count_users()
    active = repository.count_active_subscriptions(datetime(2024, 3, 15, tzinfo=UTC))
    payments = repository.list_recent_payments(limit=5)

    assert total == 4
    assert active == 4
    assert ("gt", "subscription_expires_at", "2024-03-15T00:00:00+00:00") in (
        users_table.last_filters
    )
    assert payments[0].external_payment_ref == "charge-1"


def test_supabase_admin_repository_totals_come_from_rpc() -> None:
    client = FakeSupabaseClient(
        rpc_results={
            "admin_totals": {
                "payments_count": 1500,
                "stars_earned": 150000,
                "analyses_used": 42,
            }
        }
    )

    totals = SupabaseAdminRepository(client).get_totals()

    assert client.rpc_calls == [("admin_totals", {})]
    assert totals.payments_count == 1500
    assert totals.stars_earned == 150000
    assert totals.analyses_used == 42
    assert "payments" not in client.tables


def test_supabase_user_repository_reads_and_sets_daily_goal() -> None:
    client = FakeSupabaseClient()
    users_table = client.table("users")
    user_id = uuid4()
    users_table.queue(
        "select",
        [{"id": str(user_id), "telegram_user_id": 9, "daily_calories": 2100}],
    )

    repository = SupabaseUserRepository(client)
    fetched = repository.get_by_telegram_id(9)
    repository.set_daily_calories(user_id, 1800)

    assert fetched is not None
    assert fetched.daily_calories == 2100
    assert users_table.last_payload == {"daily_calories": 1800}
    assert ("eq", "id", str(user_id)) in users_table.last_filters
