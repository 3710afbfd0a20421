"""Helpers shared by the Supabase repositories."""

from datetime import datetime

from postgrest.exceptions import APIError

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO timestamp column, treating blanks as NULL."""
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None


def rpc_row(data: object) -> dict[str, object]:
    """Return the single row produced by a Postgres function call."""
    if isinstance(data, list):
        if not data:
            raise RuntimeError("Supabase function returned no rows")
        data = data[0]
    if not isinstance(data, dict):
        raise RuntimeError("Supabase function returned an unexpected payload")
    return data


def is_violation(error: APIError, code: str) -> bool:
    """Return True if a PostgREST error carries the given SQLSTATE."""
    return str(getattr(error, "code", "")) == code
