"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from calorie_bot.adapters.openai_estimator_client import OpenAIEstimatorClient
from calorie_bot.adapters.supabase_admin_repository import SupabaseAdminRepository
from calorie_bot.adapters.supabase_ledger_repository import SupabaseLedgerRepository
from calorie_bot.adapters.supabase_meal_repository import SupabaseMealRepository
from calorie_bot.adapters.supabase_promo_repository import SupabasePromoRepository
from calorie_bot.adapters.supabase_settings_repository import (
    SupabaseSettingsRepository,
)
from calorie_bot.adapters.supabase_user_repository import SupabaseUserRepository
from calorie_bot.adapters.telegram_client import HttpxTelegramClient, TelegramClient
from calorie_bot.adapters.telegram_file_client import (
    HttpxTelegramFileClient,
    TelegramFileClient,
)
from calorie_bot.config import Settings
from calorie_bot.services.admin import AdminService
from calorie_bot.services.analysis import AnalysisService
from calorie_bot.services.billing_settings import BillingSettingsService
from calorie_bot.services.estimator import EstimatorService
from calorie_bot.services.ledger import LedgerService
from calorie_bot.services.meals import MealService
from calorie_bot.services.promos import PromoService
from calorie_bot.services.users import UserService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    telegram_client: TelegramClient
    telegram_file_client: TelegramFileClient
    user_service: UserService
    settings_service: BillingSettingsService
    ledger_service: LedgerService
    promo_service: PromoService
    meal_service: MealService
    analysis_service: AnalysisService
    admin_service: AdminService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    ledger_repository = SupabaseLedgerRepository(supabase_client)
    settings_service = BillingSettingsService(
        SupabaseSettingsRepository(supabase_client)
    )
    user_service = UserService(
        SupabaseUserRepository(supabase_client), settings_service
    )
    ledger_service = LedgerService(ledger_repository, settings_service)
    promo_service = PromoService(
        SupabasePromoRepository(supabase_client), ledger_repository
    )
    estimator_client = OpenAIEstimatorClient.create(
        resolved_settings.openai_api_key, base_url=resolved_settings.openai_base_url
    )
    meal_service = MealService(
        repository=SupabaseMealRepository(supabase_client),
        estimator=EstimatorService(
            client=estimator_client,
            text_model=resolved_settings.openai_model_text,
            vision_model=resolved_settings.openai_model_vision,
        ),
    )
    analysis_service = AnalysisService(
        user_service=user_service,
        ledger_service=ledger_service,
        promo_service=promo_service,
        meal_service=meal_service,
        timezone=resolved_settings.timezone,
    )
    admin_service = AdminService(
        SupabaseAdminRepository(supabase_client), timezone=resolved_settings.timezone
    )
    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)
    telegram_file_client = HttpxTelegramFileClient.create(
        resolved_settings.telegram_bot_token
    )

    async def close_resources() -> None:
        await telegram_client.close()
        await telegram_file_client.close()
        await estimator_client.client.close()

    return AppContainer(
        settings=resolved_settings,
        telegram_client=telegram_client,
        telegram_file_client=telegram_file_client,
        user_service=user_service,
        settings_service=settings_service,
        ledger_service=ledger_service,
        promo_service=promo_service,
        meal_service=meal_service,
        analysis_service=analysis_service,
        admin_service=admin_service,
        close_resources=close_resources,
    )
