"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from uuid import UUID

from fastapi import FastAPI, Request

from calorie_bot.api.admin import router as admin_router
from calorie_bot.api.telegram_models import (
    TelegramCallbackQuery,
    TelegramMessage,
    TelegramPhotoSize,
    TelegramUpdate,
)
from calorie_bot.app_logging import configure_logging
from calorie_bot.config import parse_allowed_user_ids
from calorie_bot.containers import AppContainer
from calorie_bot.domain.ledger import (
    CreditPool,
    SubscriptionActivation,
    SubscriptionInfo,
)
from calorie_bot.domain.meals import DayReport, MacroTotals, MealRecord, RangeReport
from calorie_bot.services.analysis import (
    AnalysisOutcome,
    AnalysisService,
    AnalysisStatus,
)
from calorie_bot.services.users import MAX_DAILY_CALORIES, MIN_DAILY_CALORIES
from calorie_bot.telegram_commands import parse_command, telegram_commands

logger = logging.getLogger(__name__)

WEEK_DAYS = 7
DELETE_CALLBACK_PREFIX = "del:"

HELP_TEXT = (
    "Send me a photo of your meal or describe it in words, "
    "for example: 'two eggs and a slice of toast'.\n"
    "/today - meals and totals for today\n"
    "/week - daily totals for the last 7 days\n"
    "/balance - subscription and remaining analyses\n"
    "/goal 2000 - set a daily calorie goal\n"
    "/promo CODE - redeem a promo code"
)

_POOL_LABELS = {
    CreditPool.SUBSCRIPTION: "subscription",
    CreditPool.BONUS: "bonus analyses",
    CreditPool.FREE: "free analyses",
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    allowed_user_ids = parse_allowed_user_ids(
        container.settings.telegram_allowed_user_ids
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await app.state.container.telegram_client.set_my_commands(
                telegram_commands()
            )
        except Exception:
            logger.exception("Failed to sync Telegram bot commands")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/telegram/webhook")
    async def telegram_webhook(
        update: TelegramUpdate, request: Request
    ) -> dict[str, str]:
        """Handle Telegram webhook updates."""
        state_container: AppContainer = request.app.state.container
        user_id = _extract_user_id(update)
        if user_id is not None and not _is_user_allowed(user_id, allowed_user_ids):
            if update.callback_query:
                await state_container.telegram_client.answer_callback_query(
                    update.callback_query.id,
                    text="Not authorized.",
                )
            elif update.message:
                await state_container.telegram_client.send_message(
                    chat_id=update.message.chat.id,
                    text="This bot is private.",
                )
            return {"status": "ok"}

        if update.pre_checkout_query:
            await state_container.telegram_client.answer_pre_checkout_query(
                update.pre_checkout_query.id, ok=True
            )
            return {"status": "ok"}

        if update.callback_query:
            await _handle_callback(state_container, update.callback_query)
            return {"status": "ok"}

        message = update.message
        if message is None:
            return {"status": "ok"}
        try:
            await _handle_message(state_container, message)
        except Exception as exc:
            logger.exception(
                "Failed to handle Telegram message",
                extra={"telegram_user_id": message.from_user.id},
            )
            await state_container.telegram_client.send_message(
                chat_id=message.chat.id,
                text=_format_error(
                    state_container, exc, "Something went wrong. Please try again."
                ),
            )
        return {"status": "ok"}

    return app


async def _handle_message(container: AppContainer, message: TelegramMessage) -> None:
    """Route one incoming message to the matching analysis operation."""
    sender = message.from_user
    container.user_service.ensure_user(
        sender.id, username=sender.username, first_name=sender.first_name
    )
    analysis = container.analysis_service
    when = datetime.fromtimestamp(message.date, tz=UTC)

    if message.successful_payment:
        payment = message.successful_payment
        activation = analysis.request_subscription_purchase_confirmed(
            sender.id, payment.telegram_payment_charge_id, payment.total_amount
        )
        await container.telegram_client.send_message(
            chat_id=message.chat.id, text=_format_activation(activation)
        )
        return

    if message.photo:
        await _handle_photo(container, message, when)
        return

    if not message.text:
        return

    command = parse_command(message.text)
    if command is None:
        outcome = await analysis.request_text_analysis(sender.id, message.text, when)
        await _send_outcome(container, message.chat.id, outcome)
        return

    name, argument = command
    if name == "start":
        balance = analysis.request_balance(sender.id)
        text = (
            f"Hi{', ' + sender.first_name if sender.first_name else ''}! "
            "I count calories and macros from meal photos and descriptions.\n\n"
            f"{_format_balance(balance)}\n\n{HELP_TEXT}"
        )
    elif name == "today":
        text = _format_day_report(analysis.request_day_report(sender.id))
    elif name == "week":
        today = analysis.local_today()
        report = analysis.request_range_report(
            sender.id, today - timedelta(days=WEEK_DAYS - 1), today
        )
        text = _format_range_report(report)
    elif name == "balance":
        text = _format_balance(analysis.request_balance(sender.id))
    elif name == "goal":
        text = _handle_goal(analysis, sender.id, argument)
    elif name == "promo":
        if argument:
            text = analysis.request_promo_redeem(sender.id, argument).reason
        else:
            text = "Send the code after the command, for example: /promo WELCOME"
    else:
        text = HELP_TEXT
    await container.telegram_client.send_message(chat_id=message.chat.id, text=text)


def _handle_goal(
    analysis: AnalysisService, telegram_user_id: int, argument: str
) -> str:
    if not argument:
        current = analysis.request_daily_goal(telegram_user_id)
        if current is None:
            return "No daily goal yet. Set one with /goal 2000"
        return f"Daily goal: {current} kcal"
    value = argument.split()[0]
    if value.isdecimal() and analysis.request_set_daily_goal(
        telegram_user_id, int(value)
    ):
        return f"Daily goal set: {int(value)} kcal"
    return (
        f"Send a goal between {MIN_DAILY_CALORIES} and {MAX_DAILY_CALORIES} kcal, "
        "for example: /goal 2000"
    )


async def _handle_photo(
    container: AppContainer, message: TelegramMessage, when: datetime
) -> None:
    photo = _select_largest_photo(message.photo or [])
    try:
        image_bytes = await container.telegram_file_client.download_file_bytes(
            photo.file_id
        )
    except Exception as exc:
        logger.exception(
            "Failed to download Telegram photo", extra={"file_id": photo.file_id}
        )
        await container.telegram_client.send_message(
            chat_id=message.chat.id,
            text=_format_error(container, exc, "Couldn't download that photo."),
        )
        return
    outcome = await container.analysis_service.request_photo_upload(
        message.from_user.id, image_bytes, when
    )
    await _send_outcome(container, message.chat.id, outcome)


async def _handle_callback(
    container: AppContainer, callback: TelegramCallbackQuery
) -> None:
    meal_id = _parse_delete_callback(callback.data or "")
    if meal_id is None:
        await container.telegram_client.answer_callback_query(callback.id)
        return
    deleted = container.analysis_service.request_delete_meal(
        callback.from_user.id, meal_id
    )
    text = "Meal deleted." if deleted else "Meal not found."
    await container.telegram_client.answer_callback_query(callback.id, text=text)
    if callback.message:
        await container.telegram_client.send_message(
            chat_id=callback.message.chat.id, text=text
        )


async def _send_outcome(
    container: AppContainer, chat_id: int, outcome: AnalysisOutcome
) -> None:
    reply_markup = None
    if outcome.status is AnalysisStatus.OK and outcome.meal is not None:
        text = _format_meal(outcome.meal, outcome.pool)
        reply_markup = _delete_keyboard(outcome.meal.id)
    elif outcome.status is AnalysisStatus.ACCESS_DENIED:
        text = _format_access_denied(outcome.balance)
    elif outcome.status is AnalysisStatus.NO_FOOD:
        text = "I couldn't find any food there. No analysis was used."
    else:
        text = "Sorry, I couldn't recognize the meal. Please try again."
    await container.telegram_client.send_message(
        chat_id=chat_id, text=text, reply_markup=reply_markup
    )


def _select_largest_photo(photos: list[TelegramPhotoSize]) -> TelegramPhotoSize:
    """Select the largest photo size from the Telegram payload."""
    return max(photos, key=lambda photo: (photo.width * photo.height))


def _extract_user_id(update: TelegramUpdate) -> int | None:
    """Extract Telegram user id from update, if present."""
    if update.callback_query:
        return update.callback_query.from_user.id
    if update.message:
        return update.message.from_user.id
    if update.pre_checkout_query:
        return update.pre_checkout_query.from_user.id
    return None


def _is_user_allowed(user_id: int, allowed: set[int] | None) -> bool:
    """Return true when the user is allowed to interact with the bot."""
    return allowed is None or user_id in allowed


def _format_error(container: AppContainer, exc: Exception, fallback: str) -> str:
    """Return a user-facing error message with local debug info."""
    if container.settings.environment == "local":
        detail = f"{type(exc).__name__}: {exc}".strip()
        if detail:
            return f"{fallback} (debug: {detail})"
    return fallback


def _parse_delete_callback(data: str) -> UUID | None:
    if not data.startswith(DELETE_CALLBACK_PREFIX):
        return None
    try:
        return UUID(data.removeprefix(DELETE_CALLBACK_PREFIX))
    except ValueError:
        return None


def _delete_keyboard(meal_id: UUID) -> dict:
    return {
        "inline_keyboard": [
            [{"text": "Delete", "callback_data": f"{DELETE_CALLBACK_PREFIX}{meal_id}"}]
        ]
    }


def _format_totals(totals: MacroTotals) -> str:
    return (
        f"{totals.calories:.0f} kcal, "
        f"{totals.protein:.1f}P / {totals.fat:.1f}F / {totals.carbs:.1f}C"
    )


def _format_meal(meal: MealRecord, pool: CreditPool | None) -> str:
    """Format a saved meal for Telegram messages."""
    lines = [
        f"{meal.category.value.title()} saved!",
        f"Total: {_format_totals(meal.totals)}",
        "Items:",
    ]
    for item in meal.items:
        lines.append(
            f"- {item.name}: {item.grams:.0f}g, {item.calories} kcal "
            f"({item.protein:.1f}P/{item.fat:.1f}F/{item.carbs:.1f}C)"
        )
    if pool in _POOL_LABELS:
        lines.append(f"Paid with: {_POOL_LABELS[pool]}")
    return "\n".join(lines)


def _format_day_report(report: DayReport) -> str:
    if not report.meals:
        return f"No meals logged on {report.day}."
    lines = [f"{report.day}: {_format_totals(report.totals)}", "Meals:"]
    for meal in report.meals:
        lines.append(
            f"- {meal.category.value.title()}: {meal.totals.calories:.0f} kcal"
        )
    if report.goal_percent is not None:
        lines.append(
            f"Goal: {report.totals.calories:.0f}/{report.daily_calories} kcal "
            f"({report.goal_percent}%)"
        )
    return "\n".join(lines)


def _format_range_report(report: RangeReport) -> str:
    lines = [
        f"{report.start_day} to {report.end_day}",
        f"Daily average: {_format_totals(report.averages)}",
        "Daily totals:",
    ]
    for day in report.daily:
        lines.append(f"- {day.day}: {day.totals.calories:.0f} kcal")
    return "\n".join(lines)


def _format_balance(info: SubscriptionInfo) -> str:
    if info.has_subscription and info.expires_at is not None:
        subscription = f"Subscription active until {info.expires_at.date()}"
    else:
        subscription = "No active subscription"
    return (
        f"{subscription}\n"
        f"Bonus analyses: {info.bonus_credits}\n"
        f"Free analyses: {info.free_credits}\n"
        f"Analyses used: {info.total_used}"
    )


def _format_access_denied(info: SubscriptionInfo | None) -> str:
    text = (
        "You have no analyses left. Buy a subscription "
        "or redeem a promo code with /promo CODE."
    )
    if info is None:
        return text
    return f"{text}\n\n{_format_balance(info)}"


def _format_activation(activation: SubscriptionActivation) -> str:
    if activation.success and activation.expires_at is not None:
        return f"Thank you! Subscription active until {activation.expires_at.date()}."
    if activation.reason == "duplicate payment":
        return "This payment was already applied."
    return "We couldn't apply your payment. Please contact support."
