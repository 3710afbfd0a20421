"""Vercel entrypoint for the calorie bot webhook."""

import sys
from pathlib import Path

_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from calorie_bot.api.asgi import app  # noqa: E402

__all__ = ["app"]
