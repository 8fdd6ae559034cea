"""Ports - interfaces/protocols for external dependencies."""

from .item_repo import ItemRepository
from .analysis_store import AnalysisStore
from .structured_generator import (
    GenerationError,
    GenerationOptions,
    GenerationResult,
    StructuredGenerator,
    TokenUsage,
)

__all__ = [
    "ItemRepository",
    "AnalysisStore",
    "StructuredGenerator",
    "GenerationError",
    "GenerationOptions",
    "GenerationResult",
    "TokenUsage",
]
