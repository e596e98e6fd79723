"""Weekly meal plan: weekday name -> ordered recipe IDs.

The plan only ever holds IDs of recipes that exist, and a day with no recipes
is dropped from the mapping rather than kept as an empty list.
"""

import logging
from collections.abc import Collection, Mapping
from typing import Any

from recipe_clipper import config

logger = logging.getLogger(__name__)


def _sanitize(raw: Any, valid_ids: Collection[str]) -> tuple[dict[str, list[str]], int]:
    """Return ``(plan, dropped)`` keeping only valid days and existing recipe IDs."""
    plan: dict[str, list[str]] = {}
    dropped = 0
    if not isinstance(raw, Mapping):
        return plan, 1 if raw else 0

    for day, recipe_ids in raw.items():
        if day not in config.DAYS_OF_WEEK or not isinstance(recipe_ids, (list, tuple)):
            dropped += len(recipe_ids) if isinstance(recipe_ids, (list, tuple)) else 1
            continue
        kept: list[str] = []
        for recipe_id in recipe_ids:
            if isinstance(recipe_id, str) and recipe_id in valid_ids and recipe_id not in kept:
                kept.append(recipe_id)
            else:
                dropped += 1
        if kept:
            plan[day] = kept
    return plan, dropped


class MealPlanStore:
    def __init__(self):
        self._plan: dict[str, list[str]] = {}

    @classmethod
    def from_json(cls, raw: Any, valid_ids: Collection[str]) -> "MealPlanStore":
        store = cls()
        store._plan, dropped = _sanitize(raw, valid_ids)
        if dropped:
            logger.warning("Dropped invalid meal plan entries on load", extra={"dropped": dropped})
        return store

    def to_json(self) -> dict[str, list[str]]:
        return self.as_dict()

    def as_dict(self) -> dict[str, list[str]]:
        """Copy of the plan in weekday order."""
        return {day: list(self._plan[day]) for day in config.DAYS_OF_WEEK if day in self._plan}

    def recipes_for(self, day: str) -> list[str]:
        return list(self._plan.get(day, []))

    def assign(self, day: str, recipe_id: str) -> bool:
        """Append ``recipe_id`` to ``day``; False for unknown days or a repeat on the same day.

        The caller guarantees ``recipe_id`` exists.
        """
        if day not in config.DAYS_OF_WEEK:
            logger.debug("Meal plan assign ignored: unknown day", extra={"day": day})
            return False
        recipe_ids = self._plan.setdefault(day, [])
        if recipe_id in recipe_ids:
            return False
        recipe_ids.append(recipe_id)
        return True

    def unassign(self, day: str, recipe_id: str) -> bool:
        recipe_ids = self._plan.get(day)
        if not recipe_ids or recipe_id not in recipe_ids:
            return False
        recipe_ids.remove(recipe_id)
        if not recipe_ids:
            del self._plan[day]
        return True

    def replace_all(self, new_plan: Any, valid_ids: Collection[str]) -> dict[str, list[str]]:
        """Swap in ``new_plan``, dropping entries that break the plan's invariants."""
        self._plan, dropped = _sanitize(new_plan, valid_ids)
        if dropped:
            logger.info("Dropped invalid entries from replacement meal plan", extra={"dropped": dropped})
        return self.as_dict()

    def remove_recipe(self, recipe_id: str) -> int:
        """Remove every occurrence of ``recipe_id``; returns how many were removed."""
        removed = 0
        for day in list(self._plan):
            before = len(self._plan[day])
            self._plan[day] = [rid for rid in self._plan[day] if rid != recipe_id]
            removed += before - len(self._plan[day])
            if not self._plan[day]:
                del self._plan[day]
        return removed

    def clear(self) -> None:
        self._plan = {}
