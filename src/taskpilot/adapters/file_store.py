"""File-based analysis storage adapter."""

import json
from pathlib import Path

from taskpilot.core.conflicts import DetectedConflict
from taskpilot.core.patterns import PatternSuggestion
from taskpilot.core.priority import TaskAnalysis

ANALYSES_FILE = "analyses.json"
PATTERNS_FILE = "patterns.json"
SUGGESTIONS_FILE = "suggestions.json"
CONFLICTS_FILE = "conflicts.json"


class FileAnalysisStore:
    """
    File-based analysis storage.

    Implements AnalysisStore protocol. Each user gets a directory of JSON
    files: append-only lists for analyses, suggestions and conflicts, and a
    mapping keyed by pattern type for the aggregate pattern records.
    """

    def __init__(self, root_dir: Path | str):
        self.root_dir = Path(root_dir).expanduser()
        self.root_dir.mkdir(parents=True, exist_ok=True)

    def _user_dir(self, user_id: str) -> Path:
        path = self.root_dir / user_id
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _read(self, path: Path, default):
        if not path.exists():
            return default
        return json.loads(path.read_text())

    def _write(self, path: Path, data) -> None:
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, indent=2))
        tmp.replace(path)

    def _append(self, user_id: str, filename: str, record: dict) -> None:
        path = self._user_dir(user_id) / filename
        records = self._read(path, [])
        records.append(record)
        self._write(path, records)

    def store_analysis(self, analysis: TaskAnalysis) -> None:
        """Append the analysis of one prioritized item."""
        self._append(analysis.user_id, ANALYSES_FILE, analysis.to_dict())

    def upsert_pattern(self, user_id: str, pattern_type: str, data: dict) -> None:
        """Insert or replace the aggregate pattern record for (user, type)."""
        path = self._user_dir(user_id) / PATTERNS_FILE
        patterns = self._read(path, {})
        patterns[pattern_type] = {"user_id": user_id, "pattern_type": pattern_type, **data}
        self._write(path, patterns)

    def store_suggestion(self, suggestion: PatternSuggestion) -> None:
        """Append a pattern suggestion."""
        self._append(suggestion.user_id, SUGGESTIONS_FILE, suggestion.to_dict())

    def store_conflict(self, user_id: str, conflict: DetectedConflict) -> None:
        """Append a detected conflict."""
        record = conflict.to_dict()
        record["user_id"] = user_id
        self._append(user_id, CONFLICTS_FILE, record)

    def read_analyses(self, user_id: str) -> list[dict]:
        return self._read(self.root_dir / user_id / ANALYSES_FILE, [])

    def read_patterns(self, user_id: str) -> dict[str, dict]:
        return self._read(self.root_dir / user_id / PATTERNS_FILE, {})

    def list_active_suggestions(self, user_id: str) -> list[PatternSuggestion]:
        """Suggestions neither accepted nor dismissed, newest first."""
        records = self._read(self.root_dir / user_id / SUGGESTIONS_FILE, [])
        suggestions = [PatternSuggestion.from_dict(r) for r in records]
        active = [s for s in suggestions if s.is_active]
        return sorted(active, key=lambda s: s.created_at, reverse=True)

    def mark_suggestion(self, suggestion_id: str, accepted: bool) -> bool:
        """Accept (True) or dismiss (False) a suggestion. False if not found."""
        for path in self.root_dir.glob(f"*/{SUGGESTIONS_FILE}"):
            records = self._read(path, [])
            for record in records:
                if record.get("id") == suggestion_id:
                    record["is_accepted" if accepted else "is_dismissed"] = True
                    self._write(path, records)
                    return True
        return False

    def list_unresolved_conflicts(self, user_id: str) -> list[dict]:
        """Stored conflicts not yet resolved, newest first."""
        records = self._read(self.root_dir / user_id / CONFLICTS_FILE, [])
        unresolved = [r for r in records if not r.get("is_resolved")]
        return sorted(unresolved, key=lambda r: r.get("detected_at", ""), reverse=True)

    def resolve_conflict(self, conflict_id: str) -> bool:
        """Mark a conflict resolved. False if unknown or already resolved."""
        for path in self.root_dir.glob(f"*/{CONFLICTS_FILE}"):
            records = self._read(path, [])
            for record in records:
                if record.get("id") == conflict_id:
                    if record.get("is_resolved"):
                        return False
                    record["is_resolved"] = True
                    self._write(path, records)
                    return True
        return False
