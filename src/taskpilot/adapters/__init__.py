"""Adapters - I/O implementations of ports."""

from .claude_cli import ClaudeCLIGenerator
from .openrouter import OpenRouterGenerator
from .file_store import FileAnalysisStore
from .file_items import FileItemRepository, load_items_file

__all__ = [
    "ClaudeCLIGenerator",
    "OpenRouterGenerator",
    "FileAnalysisStore",
    "FileItemRepository",
    "load_items_file",
]
