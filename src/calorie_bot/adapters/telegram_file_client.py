"""Telegram file download client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from calorie_bot.adapters.telegram_client import TELEGRAM_API_URL

MAX_PHOTO_BYTES = 20 * 1024 * 1024


class TelegramFileClient(Protocol):
    """Interface for downloading Telegram files."""

    async def download_file_bytes(self, file_id: str) -> bytes:
        """Download a Telegram file and return its bytes."""


@dataclass
class HttpxTelegramFileClient(TelegramFileClient):
    """Telegram file client using httpx."""

    bot_token: str
    http_client: httpx.AsyncClient
    base_url: str = TELEGRAM_API_URL

    @classmethod
    def create(cls, bot_token: str) -> "HttpxTelegramFileClient":
        """Create a Telegram file client with a managed httpx session."""
        return cls(bot_token=bot_token, http_client=httpx.AsyncClient())

    async def download_file_bytes(self, file_id: str) -> bytes:
        """Resolve a file path with getFile and download the bytes."""
        response = await self.http_client.get(
            f"{self.base_url}/bot{self.bot_token}/getFile",
            params={"file_id": file_id},
            timeout=10,
        )
        response.raise_for_status()
        payload = response.json()
        if not payload.get("ok"):
            raise RuntimeError("Telegram getFile failed")
        result = payload["result"]
        if int(result.get("file_size") or 0) > MAX_PHOTO_BYTES:
            raise RuntimeError("Telegram file is too large")
        file_response = await self.http_client.get(
            f"{self.base_url}/file/bot{self.bot_token}/{result['file_path']}",
            timeout=20,
        )
        file_response.raise_for_status()
        return file_response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
