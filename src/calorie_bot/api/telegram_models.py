"""Pydantic models for Telegram webhook payloads."""

from pydantic import BaseModel, Field


class TelegramUser(BaseModel):
    """Telegram user payload."""

    id: int
    is_bot: bool | None = None
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None


class TelegramChat(BaseModel):
    """Telegram chat payload."""

    id: int
    type: str
    username: str | None = None
    first_name: str | None = None


class TelegramPhotoSize(BaseModel):
    """Telegram photo size payload."""

    file_id: str
    file_unique_id: str
    width: int
    height: int
    file_size: int | None = None


class TelegramSuccessfulPayment(BaseModel):
    """Confirmed payment attached to a service message."""

    currency: str
    total_amount: int
    invoice_payload: str | None = None
    telegram_payment_charge_id: str
    provider_payment_charge_id: str | None = None


class TelegramMessage(BaseModel):
    """Telegram message payload."""

    message_id: int
    date: int
    chat: TelegramChat
    from_user: TelegramUser = Field(alias="from")
    text: str | None = None
    caption: str | None = None
    photo: list[TelegramPhotoSize] | None = None
    successful_payment: TelegramSuccessfulPayment | None = None


class TelegramCallbackQuery(BaseModel):
    """Telegram callback query payload."""

    id: str
    from_user: TelegramUser = Field(alias="from")
    message: TelegramMessage | None = None
    data: str | None = None


class TelegramPreCheckoutQuery(BaseModel):
    """Checkout that must be confirmed before Telegram charges the user."""

    id: str
    from_user: TelegramUser = Field(alias="from")
    currency: str
    total_amount: int
    invoice_payload: str | None = None


class TelegramUpdate(BaseModel):
    """Telegram update payload."""

    update_id: int
    message: TelegramMessage | None = None
    callback_query: TelegramCallbackQuery | None = None
    pre_checkout_query: TelegramPreCheckoutQuery | None = None
