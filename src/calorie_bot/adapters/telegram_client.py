"""Telegram Bot API client adapter."""

from dataclasses import dataclass
from typing import Protocol

import httpx

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramClient(Protocol):
    """Interface for Telegram API interactions."""

    async def send_message(
        self, chat_id: int, text: str, reply_markup: dict | None = None
    ) -> None:
        """Send a text message to a Telegram chat."""

    async def answer_callback_query(
        self, callback_query_id: str, text: str | None = None
    ) -> None:
        """Answer a Telegram callback query."""

    async def answer_pre_checkout_query(
        self, pre_checkout_query_id: str, ok: bool, error_message: str | None = None
    ) -> None:
        """Approve or reject a pending Stars payment."""

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""


@dataclass
class HttpxTelegramClient:
    """Telegram client implemented with httpx."""

    bot_token: str
    http_client: httpx.AsyncClient
    base_url: str = TELEGRAM_API_URL

    @classmethod
    def create(cls, bot_token: str) -> "HttpxTelegramClient":
        """Create a Telegram client with a managed httpx session."""
        return cls(bot_token=bot_token, http_client=httpx.AsyncClient())

    async def send_message(
        self, chat_id: int, text: str, reply_markup: dict | None = None
    ) -> None:
        """Send a message using sendMessage."""
        payload: dict[str, object] = {"chat_id": chat_id, "text": text}
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        await self._call("sendMessage", payload)

    async def answer_callback_query(
        self, callback_query_id: str, text: str | None = None
    ) -> None:
        """Answer a callback query using answerCallbackQuery."""
        payload: dict[str, object] = {"callback_query_id": callback_query_id}
        if text is not None:
            payload["text"] = text
        await self._call("answerCallbackQuery", payload)

    async def answer_pre_checkout_query(
        self, pre_checkout_query_id: str, ok: bool, error_message: str | None = None
    ) -> None:
        """Confirm a checkout so Telegram can charge the user."""
        payload: dict[str, object] = {
            "pre_checkout_query_id": pre_checkout_query_id,
            "ok": ok,
        }
        if error_message is not None:
            payload["error_message"] = error_message
        await self._call("answerPreCheckoutQuery", payload)

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""
        await self._call("setMyCommands", {"commands": commands})

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()

    async def _call(self, method: str, payload: dict[str, object]) -> None:
        url = f"{self.base_url}/bot{self.bot_token}/{method}"
        response = await self.http_client.post(url, json=payload, timeout=10)
        response.raise_for_status()
