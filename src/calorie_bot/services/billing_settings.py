"""Billing parameters stored in the settings table."""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class SettingKey(str, Enum):
    """Known keys of the settings table."""

    SUBSCRIPTION_PRICE_STARS = "SUBSCRIPTION_PRICE_STARS"
    SUBSCRIPTION_MONTHS = "SUBSCRIPTION_MONTHS"
    FREE_ANALYSES_COUNT = "FREE_ANALYSES_COUNT"


@dataclass(frozen=True)
class BillingSettings:
    """Typed view of the settings table.

    Missing, non-integer or non-positive values fall back to these defaults.
    """

    subscription_price_stars: int = 100
    subscription_months: int = 1
    free_analyses_count: int = 3


_FIELDS: dict[SettingKey, str] = {
    SettingKey.SUBSCRIPTION_PRICE_STARS: "subscription_price_stars",
    SettingKey.SUBSCRIPTION_MONTHS: "subscription_months",
    SettingKey.FREE_ANALYSES_COUNT: "free_analyses_count",
}


class SettingsRepository(Protocol):
    """Persistence interface for the settings table."""

    def get_values(self) -> dict[str, str]:
        """Return all stored settings by key."""

    def upsert_value(self, key: str, value: str) -> None:
        """Insert or replace a setting value."""


@dataclass
class BillingSettingsService:
    """Service that reads and updates billing settings."""

    repository: SettingsRepository

    def load(self) -> BillingSettings:
        """Return current settings with defaults applied."""
        stored = self.repository.get_values()
        defaults = BillingSettings()
        values = {
            field: _parse_positive_int(stored.get(key.value), getattr(defaults, field))
            for key, field in _FIELDS.items()
        }
        return BillingSettings(**values)

    def update(self, key: SettingKey, value: int) -> BillingSettings:
        """Persist a new value for a known key."""
        if value <= 0:
            raise ValueError(f"{key.value} must be a positive integer")
        self.repository.upsert_value(key.value, str(value))
        return self.load()

    def as_dict(self) -> dict[str, int]:
        """Return settings keyed by their table key."""
        current = self.load()
        return {key.value: getattr(current, field) for key, field in _FIELDS.items()}


def _parse_positive_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default
