"""Tests for OpenRouter adapter."""

import asyncio
import json
from unittest.mock import MagicMock

import pytest
import requests

from taskpilot.adapters.openrouter import DEFAULT_MODEL, OpenRouterGenerator, estimate_cost
from taskpilot.ports.structured_generator import GenerationError, GenerationOptions

SCHEMA = {"type": "object"}


def _response(status: int = 200, body: dict | None = None) -> MagicMock:
    resp = MagicMock(status_code=status, text=json.dumps(body or {}))
    resp.json.return_value = body or {}
    return resp


def _completion(content: dict, usage: dict | None = None) -> dict:
    return {
        "model": "openai/gpt-4o-mini",
        "choices": [{"message": {"content": json.dumps(content)}, "finish_reason": "stop"}],
        "usage": usage or {"prompt_tokens": 1000, "completion_tokens": 500, "total_tokens": 1500},
    }


def _generate(generator: OpenRouterGenerator):
    options = GenerationOptions(context="task-planning", temperature=0.2, max_tokens=100)
    return asyncio.run(generator.generate_structured(SCHEMA, "Rank these", options))


class TestOpenRouterGenerator:
    def test_posts_schema_request(self):
        session = MagicMock()
        session.post.return_value = _response(body=_completion({"ok": True}))
        generator = OpenRouterGenerator("key", base_url="https://example.test/api/", session=session)

        result = _generate(generator)

        assert result.data == {"ok": True}
        assert result.finish_reason == "stop"
        url = session.post.call_args.args[0]
        assert url == "https://example.test/api/chat/completions"
        kwargs = session.post.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == "Bearer key"
        payload = kwargs["json"]
        assert payload["model"] == DEFAULT_MODEL
        assert payload["temperature"] == 0.2
        assert payload["max_tokens"] == 100
        assert payload["response_format"]["json_schema"]["name"] == "task_planning"
        assert payload["response_format"]["json_schema"]["schema"] == SCHEMA

    def test_tracks_usage_and_cost(self):
        session = MagicMock()
        session.post.return_value = _response(body=_completion({}))
        generator = OpenRouterGenerator("key", session=session)

        result = _generate(generator)
        _generate(generator)

        assert result.usage.total_tokens == 1500
        assert result.usage.cost == pytest.approx(estimate_cost(DEFAULT_MODEL, 1000, 500))
        assert generator.usage_stats()["total_tokens"] == 3000

    def test_missing_key_not_retryable(self):
        session = MagicMock()
        with pytest.raises(GenerationError) as exc:
            _generate(OpenRouterGenerator("", session=session))
        assert exc.value.retryable is False
        session.post.assert_not_called()

    @pytest.mark.parametrize("status,retryable", [(429, True), (503, True), (401, False), (400, False)])
    def test_http_errors(self, status, retryable):
        session = MagicMock()
        session.post.return_value = _response(status=status, body={"error": "nope"})
        with pytest.raises(GenerationError) as exc:
            _generate(OpenRouterGenerator("key", session=session))
        assert exc.value.retryable is retryable

    def test_connection_error_retryable(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(GenerationError) as exc:
            _generate(OpenRouterGenerator("key", session=session))
        assert exc.value.retryable is True

    def test_malformed_body(self):
        session = MagicMock()
        session.post.return_value = _response(body={"choices": []})
        with pytest.raises(GenerationError, match="unusable response"):
            _generate(OpenRouterGenerator("key", session=session))


def test_estimate_cost_unknown_model():
    assert estimate_cost("some/model", 1000, 1000) == 0.0
