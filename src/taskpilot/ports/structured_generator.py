"""Structured-output generation interface."""

from dataclasses import dataclass, field
from typing import Any, Protocol


class GenerationError(RuntimeError):
    """Raised when structured generation fails. Retryable unless told otherwise."""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


@dataclass
class GenerationOptions:
    context: str = "analysis"
    temperature: float = 0.3
    max_tokens: int = 2500


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost: float | None = None


@dataclass
class GenerationResult:
    data: Any
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: str = "stop"
    model: str = "unknown"


class StructuredGenerator(Protocol):
    """Interface for generating JSON that follows a schema."""

    async def generate_structured(
        self,
        schema: dict,
        prompt: str,
        options: GenerationOptions,
    ) -> GenerationResult:
        """Generate a response matching the JSON schema. Raises GenerationError."""
        ...
