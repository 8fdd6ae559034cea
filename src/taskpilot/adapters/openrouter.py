"""OpenRouter adapter - HTTP client for structured generation."""

import asyncio
import json
import logging

import requests

from taskpilot.ports.structured_generator import (
    GenerationError,
    GenerationOptions,
    GenerationResult,
    TokenUsage,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "openai/gpt-4o-mini"
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

# Approximate USD per 1M tokens (input, output)
TOKEN_COSTS = {
    "openai/gpt-4o": (5.0, 15.0),
    "openai/gpt-4o-mini": (0.15, 0.6),
    "google/gemini-2.5-pro": (1.25, 5.0),
    "google/gemini-2.5-flash": (0.075, 0.3),
    "anthropic/claude-3.5-sonnet": (3.0, 15.0),
}


def estimate_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    """Estimated USD cost of a call, 0.0 for models without a price."""
    prices = TOKEN_COSTS.get(model)
    if not prices:
        return 0.0
    return prompt_tokens / 1_000_000 * prices[0] + completion_tokens / 1_000_000 * prices[1]


class OpenRouterGenerator:
    """
    OpenRouter chat-completions adapter.

    Implements StructuredGenerator protocol. Requests a json_schema response
    format and tracks cumulative token usage. No business logic - just I/O.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "",
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 60,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.model = model or DEFAULT_MODEL
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self.total_tokens = 0
        self.total_cost = 0.0

    async def generate_structured(
        self,
        schema: dict,
        prompt: str,
        options: GenerationOptions,
    ) -> GenerationResult:
        """Generate JSON matching the schema. Raises GenerationError."""
        return await asyncio.to_thread(self._generate, schema, prompt, options)

    def usage_stats(self) -> dict:
        return {"total_tokens": self.total_tokens, "total_cost": self.total_cost}

    def _payload(self, schema: dict, prompt: str, options: GenerationOptions) -> dict:
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "system",
                    "content": "Return ONLY valid JSON matching the requested schema.",
                },
                {"role": "user", "content": prompt},
            ],
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": options.context.replace("-", "_"), "strict": True, "schema": schema},
            },
        }

    def _generate(self, schema: dict, prompt: str, options: GenerationOptions) -> GenerationResult:
        if not self.api_key:
            raise GenerationError("OpenRouter API key is not configured", retryable=False)

        try:
            resp = self._session.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=self._payload(schema, prompt, options),
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning(f"OpenRouter request failed: {e}")
            raise GenerationError(f"OpenRouter request failed: {e}")

        if resp.status_code != 200:
            retryable = resp.status_code in RETRYABLE_STATUS_CODES
            logger.error(f"OpenRouter API error {resp.status_code}: {resp.text[:200]}")
            raise GenerationError(f"OpenRouter API error (status {resp.status_code})", retryable=retryable)

        try:
            body = resp.json()
            choice = body["choices"][0]
            data = json.loads(choice["message"]["content"] or "")
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"OpenRouter returned an unusable response: {e}")
            raise GenerationError(f"OpenRouter returned an unusable response: {e}")

        raw_usage = body.get("usage") or {}
        usage = TokenUsage(
            prompt_tokens=raw_usage.get("prompt_tokens", 0),
            completion_tokens=raw_usage.get("completion_tokens", 0),
            total_tokens=raw_usage.get("total_tokens", 0),
        )
        usage.cost = estimate_cost(self.model, usage.prompt_tokens, usage.completion_tokens)
        self.total_tokens += usage.total_tokens
        self.total_cost += usage.cost

        logger.debug(f"OpenRouter usage: {usage} (cumulative tokens {self.total_tokens})")

        return GenerationResult(
            data=data,
            usage=usage,
            finish_reason=choice.get("finish_reason") or "stop",
            model=body.get("model", self.model),
        )
