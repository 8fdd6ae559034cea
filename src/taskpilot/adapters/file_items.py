"""File-based item repository adapter."""

import json
import logging
from pathlib import Path

from taskpilot.core.items import Item

logger = logging.getLogger(__name__)


def load_items_file(path: Path | str) -> list[Item]:
    """Read a JSON list of items (or {"items": [...]}) from a file."""
    data = json.loads(Path(path).expanduser().read_text())
    if isinstance(data, dict):
        data = data.get("items", [])
    items = []
    for entry in data:
        try:
            items.append(Item.from_dict(entry))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed item in {path}: {e}")
    return items


class FileItemRepository:
    """
    File-based item repository.

    Implements ItemRepository protocol. Each user's items live in
    <items_dir>/<user_id>.json.
    """

    def __init__(self, items_dir: Path | str):
        self.items_dir = Path(items_dir).expanduser()

    def fetch_items(self, user_id: str) -> list[Item]:
        """Fetch every item owned by a user. Missing file means no items."""
        path = self.items_dir / f"{user_id}.json"
        if not path.exists():
            return []
        return load_items_file(path)

    def list_users(self) -> list[str]:
        """List users that have an items file."""
        if not self.items_dir.exists():
            return []
        return sorted(p.stem for p in self.items_dir.glob("*.json"))
