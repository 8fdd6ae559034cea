"""Claude CLI adapter - subprocess wrapper for structured generation."""

import asyncio
import json
import logging
import subprocess
from pathlib import Path

from taskpilot.ports.structured_generator import (
    GenerationError,
    GenerationOptions,
    GenerationResult,
)

logger = logging.getLogger(__name__)


def extract_json(text: str):
    """Parse JSON from CLI output, tolerating markdown code fences."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    start = min((i for i in (text.find("{"), text.find("[")) if i != -1), default=-1)
    if start > 0:
        text = text[start:]
    return json.loads(text)


class ClaudeCLIGenerator:
    """
    Claude CLI subprocess adapter.

    Implements StructuredGenerator protocol. The schema is appended to the
    prompt and the reply is parsed as JSON.
    """

    def __init__(
        self,
        cwd: Path | str | None = None,
        timeout: int = 120,
        model: str = "",
    ):
        self.cwd = Path(cwd) if cwd else None
        self.timeout = timeout
        self.model = model

    async def generate_structured(
        self,
        schema: dict,
        prompt: str,
        options: GenerationOptions,
    ) -> GenerationResult:
        """Generate JSON matching the schema. Raises GenerationError."""
        full_prompt = (
            f"{prompt}\n\n"
            "Respond with ONLY a JSON object, no markdown and no commentary, "
            f"matching this JSON schema:\n{json.dumps(schema)}"
        )
        output = await asyncio.to_thread(self._run, full_prompt)
        try:
            data = extract_json(output)
        except json.JSONDecodeError as e:
            logger.error(f"Claude CLI returned invalid JSON: {e}")
            raise GenerationError(f"Claude CLI returned invalid JSON: {e}")
        return GenerationResult(data=data, finish_reason="stop", model=self.model or "claude-cli")

    def _command(self) -> list[str]:
        command = ["claude", "-p", "-"]
        if self.model:
            command.extend(["--model", self.model])
        return command

    def _run(self, prompt: str) -> str:
        try:
            proc = subprocess.run(
                self._command(),
                input=prompt,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise GenerationError(
                "Claude CLI not found. Install with: npm install -g @anthropic-ai/claude-code",
                retryable=False,
            )
        except subprocess.TimeoutExpired:
            raise GenerationError(f"Claude CLI timed out after {self.timeout}s")

        if proc.returncode != 0:
            logger.error(f"Claude CLI failed: {proc.stderr}")
            raise GenerationError(f"Claude CLI failed: {proc.stderr.strip()}")
        return proc.stdout
