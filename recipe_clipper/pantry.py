"""Pantry items: ingredient names the user has on hand.

Names are unique under case-insensitive comparison and listed in
case-insensitive alphabetical order.
"""

import logging
from collections.abc import Iterable
from typing import Any

logger = logging.getLogger(__name__)


class PantryStore:
    def __init__(self, items: Iterable[str] = ()):
        self._items: list[str] = []
        for item in items:
            self.add(item)

    @classmethod
    def from_json(cls, raw: Any) -> "PantryStore":
        if not isinstance(raw, list):
            if raw:
                logger.warning("Stored pantry is not a list, starting empty")
            return cls()
        return cls(item for item in raw if isinstance(item, str))

    def to_json(self) -> list[str]:
        return self.list()

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, str):
            return False
        key = item.strip().casefold()
        return any(existing.casefold() == key for existing in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item: str) -> bool:
        """Add ``item``; returns False for blanks and case-insensitive duplicates."""
        name = item.strip()
        if not name or name in self:
            logger.debug("Pantry add ignored", extra={"item": item})
            return False
        self._items.append(name)
        return True

    def remove(self, item: str) -> bool:
        """Remove the item with exactly this name; returns False if absent."""
        try:
            self._items.remove(item)
        except ValueError:
            return False
        return True

    def list(self) -> list[str]:
        return sorted(self._items, key=str.casefold)
