"""OpenAI Chat Completions client for nutrition estimates."""

from dataclasses import dataclass

from openai import AsyncOpenAI, OpenAIError

from calorie_bot.errors import EstimatorError
from calorie_bot.services.estimator import EstimatorClient


@dataclass
class OpenAIEstimatorClient(EstimatorClient):
    """Estimator client backed by OpenAI chat completions."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, base_url: str | None = None
    ) -> "OpenAIEstimatorClient":
        """Create an OpenAI estimator client, optionally behind a proxy."""
        return cls(client=AsyncOpenAI(api_key=api_key, base_url=base_url))

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, object]],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Call the chat completions endpoint and return the reply text."""
        request_payload: dict[str, object] = {"model": model, "messages": messages}
        if temperature is not None:
            request_payload["temperature"] = temperature
        if max_tokens is not None:
            request_payload["max_tokens"] = max_tokens

        try:
            response = await self.client.chat.completions.create(**request_payload)
        except OpenAIError as exc:
            raise EstimatorError(f"OpenAI request failed: {exc}") from exc
        if not response.choices:
            raise EstimatorError("OpenAI returned no choices")
        message = response.choices[0].message
        refusal = getattr(message, "refusal", None)
        if refusal:
            raise EstimatorError(f"OpenAI refused the request: {refusal}")
        if not message.content:
            raise EstimatorError("OpenAI returned an empty response")
        return message.content
