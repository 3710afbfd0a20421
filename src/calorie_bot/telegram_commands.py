"""Telegram bot command configuration."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class TelegramCommand:
    """Declarative bot command definition."""

    command: str
    description: str


class BotCommand(Enum):
    """Enum of bot commands (single source of truth)."""

    START = TelegramCommand("start", "Welcome and free analyses")
    TODAY = TelegramCommand("today", "Meals and totals for today")
    WEEK = TelegramCommand("week", "Daily totals for the last 7 days")
    BALANCE = TelegramCommand("balance", "Subscription and remaining analyses")
    GOAL = TelegramCommand("goal", "Daily calorie goal: /goal 2000")
    PROMO = TelegramCommand("promo", "Redeem a promo code: /promo CODE")
    HELP = TelegramCommand("help", "How to log meals")


def telegram_commands() -> list[dict[str, str]]:
    """Return commands formatted for Telegram API."""
    return [
        {"command": entry.value.command, "description": entry.value.description}
        for entry in BotCommand
    ]


def parse_command(text: str) -> tuple[str, str] | None:
    """Split '/name@bot args' into ('name', 'args'); None for plain text."""
    if not text.startswith("/"):
        return None
    head, _, rest = text.strip().partition(" ")
    name = head[1:].split("@", maxsplit=1)[0].lower()
    return name, rest.strip()
