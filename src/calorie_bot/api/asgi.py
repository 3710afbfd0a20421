"""ASGI entrypoint for the calorie bot API."""

from calorie_bot.api.app import create_app
from calorie_bot.containers import build_container

app = create_app(build_container())
