"""Item repository interface."""

from typing import Protocol

from taskpilot.core.items import Item


class ItemRepository(Protocol):
    """Interface for loading a user's items from any backend."""

    def fetch_items(self, user_id: str) -> list[Item]:
        """Fetch every item owned by a user."""
        ...

    def list_users(self) -> list[str]:
        """List users that have items."""
        ...
