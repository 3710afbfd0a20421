"""Prompting of the external nutrition estimator."""

import base64
from dataclasses import dataclass
from typing import Protocol

TEXT_SYSTEM_PROMPT = (
    'You are a nutrition assistant. Return ONLY valid JSON with an "items" array. '
    "Each item must have: name, grams, calories, protein, fat, carbs.\n"
    'Example: {"items":[{"name":"Egg","grams":50,"calories":78,'
    '"protein":6,"fat":5,"carbs":0.6}]}'
)

VISION_PROMPT = (
    "Analyze this food image. Return ONLY valid JSON.\n"
    'Format: {"mealType":"SNACK","items":[{"name":"Apple","grams":180,'
    '"calories":95,"protein":0.5,"fat":0.3,"carbs":25}]}\n'
    "mealType must be: BREAKFAST, LUNCH, DINNER, or SNACK"
)


class EstimatorClient(Protocol):
    """Interface for chat-completion style model calls."""

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, object]],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Return the raw text of the model's reply."""


@dataclass
class EstimatorService:
    """Service that builds estimator prompts and returns raw replies."""

    client: EstimatorClient
    text_model: str
    vision_model: str

    async def estimate_text(self, description: str) -> str:
        """Ask the estimator to itemize a free-text meal description."""
        return await self.client.complete(
            model=self.text_model,
            messages=[
                {"role": "system", "content": TEXT_SYSTEM_PROMPT},
                {"role": "user", "content": f"Parse this meal: {description}"},
            ],
            temperature=0.3,
        )

    async def estimate_image(self, image_bytes: bytes) -> str:
        """Ask the estimator to itemize and classify a meal photo."""
        return await self.client.complete(
            model=self.vision_model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": VISION_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": _to_data_url(image_bytes)},
                        },
                    ],
                }
            ],
            max_tokens=500,
        )


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
