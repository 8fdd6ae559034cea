"""Tests for Claude CLI adapter."""

import asyncio
import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from taskpilot.adapters.claude_cli import ClaudeCLIGenerator, extract_json
from taskpilot.ports.structured_generator import GenerationError, GenerationOptions

SCHEMA = {"type": "object", "properties": {"ok": {"type": "boolean"}}}


def _generate(generator: ClaudeCLIGenerator):
    return asyncio.run(generator.generate_structured(SCHEMA, "Rank these", GenerationOptions()))


class TestExtractJson:
    def test_plain(self):
        assert extract_json('{"ok": true}') == {"ok": True}

    def test_code_fence(self):
        assert extract_json('```json\n{"ok": true}\n```') == {"ok": True}

    def test_leading_chatter(self):
        assert extract_json('Here you go: {"ok": false}') == {"ok": False}

    def test_invalid(self):
        with pytest.raises(json.JSONDecodeError):
            extract_json("not json")


class TestClaudeCLIGenerator:
    @patch("taskpilot.adapters.claude_cli.subprocess.run")
    def test_parses_output(self, mock_run):
        mock_run.return_value = MagicMock(stdout='{"ok": true}', stderr="", returncode=0)
        result = _generate(ClaudeCLIGenerator())

        assert result.data == {"ok": True}
        assert result.model == "claude-cli"
        prompt = mock_run.call_args.kwargs["input"]
        assert prompt.startswith("Rank these")
        assert json.dumps(SCHEMA) in prompt

    @patch("taskpilot.adapters.claude_cli.subprocess.run")
    def test_model_flag(self, mock_run):
        mock_run.return_value = MagicMock(stdout="{}", stderr="", returncode=0)
        _generate(ClaudeCLIGenerator(model="sonnet"))

        cmd = mock_run.call_args[0][0]
        assert cmd[:3] == ["claude", "-p", "-"]
        assert cmd[-2:] == ["--model", "sonnet"]

    @patch("taskpilot.adapters.claude_cli.subprocess.run")
    def test_no_model_flag_by_default(self, mock_run):
        mock_run.return_value = MagicMock(stdout="{}", stderr="", returncode=0)
        _generate(ClaudeCLIGenerator())
        assert "--model" not in mock_run.call_args[0][0]

    @patch("taskpilot.adapters.claude_cli.subprocess.run")
    def test_missing_cli_not_retryable(self, mock_run):
        mock_run.side_effect = FileNotFoundError()
        with pytest.raises(GenerationError) as exc:
            _generate(ClaudeCLIGenerator())
        assert exc.value.retryable is False

    @patch("taskpilot.adapters.claude_cli.subprocess.run")
    def test_timeout_retryable(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="claude", timeout=5)
        with pytest.raises(GenerationError) as exc:
            _generate(ClaudeCLIGenerator(timeout=5))
        assert exc.value.retryable is True
        assert "timed out after 5s" in str(exc.value)

    @patch("taskpilot.adapters.claude_cli.subprocess.run")
    def test_non_zero_exit(self, mock_run):
        mock_run.return_value = MagicMock(stdout="", stderr="rate limited", returncode=1)
        with pytest.raises(GenerationError, match="rate limited"):
            _generate(ClaudeCLIGenerator())

    @patch("taskpilot.adapters.claude_cli.subprocess.run")
    def test_invalid_json(self, mock_run):
        mock_run.return_value = MagicMock(stdout="Sorry, I can't help", stderr="", returncode=0)
        with pytest.raises(GenerationError, match="invalid JSON"):
            _generate(ClaudeCLIGenerator())
