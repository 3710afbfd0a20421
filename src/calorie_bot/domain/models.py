"""User identity as stored by the bot."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class UserRecord:
    """A Telegram user known to the bot."""

    id: UUID
    telegram_user_id: int
    username: str | None = None
    first_name: str | None = None
    daily_calories: int | None = None

    @property
    def display_name(self) -> str:
        if self.username:
            return f"@{self.username}"
        return self.first_name or str(self.telegram_user_id)
