"""Analysis result storage interface."""

from typing import Protocol

from taskpilot.core.conflicts import DetectedConflict
from taskpilot.core.patterns import PatternSuggestion
from taskpilot.core.priority import TaskAnalysis


class AnalysisStore(Protocol):
    """Interface for archiving analysis results.

    Writes are fire-and-forget from the engine's point of view: callers
    log and swallow any exception raised here.
    """

    def store_analysis(self, analysis: TaskAnalysis) -> None:
        """Append the analysis of one prioritized item."""
        ...

    def upsert_pattern(self, user_id: str, pattern_type: str, data: dict) -> None:
        """Insert or replace the aggregate pattern record for (user, type)."""
        ...

    def store_suggestion(self, suggestion: PatternSuggestion) -> None:
        """Append a pattern suggestion."""
        ...

    def store_conflict(self, user_id: str, conflict: DetectedConflict) -> None:
        """Append a detected conflict."""
        ...

    def list_active_suggestions(self, user_id: str) -> list[PatternSuggestion]:
        """Suggestions neither accepted nor dismissed, newest first."""
        ...

    def mark_suggestion(self, suggestion_id: str, accepted: bool) -> bool:
        """Accept (True) or dismiss (False) a suggestion. False if not found."""
        ...

    def list_unresolved_conflicts(self, user_id: str) -> list[dict]:
        """Stored conflicts not yet resolved, newest first."""
        ...

    def resolve_conflict(self, conflict_id: str) -> bool:
        """Mark a conflict resolved. False if unknown or already resolved."""
        ...
