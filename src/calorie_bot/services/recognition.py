"""Normalization of raw estimator responses into food items."""

import json
import logging
import re

from calorie_bot.domain.meals import FoodItem
from calorie_bot.domain.recognition import (
    RecognitionResult,
    RecognizedItem,
    coerce_category,
)
from calorie_bot.errors import RecognitionFailure

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def strip_code_fence(raw_text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    text = raw_text.strip()
    if not text.startswith("```"):
        return text
    text = _FENCE_OPEN.sub("", text, count=1)
    text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def normalize_response(raw_text: str, expect_category: bool) -> RecognitionResult:
    """Decode a model response and coerce its items.

    Accepts a bare array of items or an object with an ``items`` array. Any
    other JSON shape yields no items. Raises RecognitionFailure when the text
    is not JSON at all.
    """
    text = strip_code_fence(raw_text or "")
    if not text:
        raise RecognitionFailure("Empty model response")
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as exc:
        logger.info("Model response is not JSON", extra={"preview": text[:200]})
        raise RecognitionFailure("Model response is not valid JSON") from exc

    raw_items: object = []
    raw_category: object = None
    if isinstance(payload, list):
        raw_items = payload
    elif isinstance(payload, dict):
        raw_items = payload.get("items", [])
        raw_category = payload.get("mealType")

    items = _normalize_items(raw_items)
    category = coerce_category(raw_category) if expect_category else None
    return RecognitionResult(items=items, category=category)


def _normalize_items(raw_items: object) -> list[FoodItem]:
    if not isinstance(raw_items, list):
        return []
    return [
        RecognizedItem.model_validate(entry).to_food_item()
        for entry in raw_items
        if isinstance(entry, dict)
    ]
