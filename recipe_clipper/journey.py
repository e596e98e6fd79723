import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Missing required field: {key}")
    return value.strip()


@dataclass
class SkillChallenge:
    skill_name: str
    description: str
    suggested_recipe_title: str


@dataclass
class CuisineTour:
    cuisine_name: str
    description: str
    suggested_first_recipe_title: str


@dataclass
class Journey:
    """A generated snapshot of the user's cooking journey, replaced wholesale."""
    flavor_profile: str
    skill_challenge: SkillChallenge
    cuisine_tour: CuisineTour

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Journey":
        """Create a Journey from its camelCase JSON form.

        Raises:
            ValueError: If any section or field is missing
        """
        if not isinstance(data, Mapping):
            raise ValueError("Journey must be an object")
        skill = data.get("skillChallenge")
        tour = data.get("cuisineTour")
        if not isinstance(skill, Mapping) or not isinstance(tour, Mapping):
            raise ValueError("Journey requires skillChallenge and cuisineTour objects")

        return cls(
            flavor_profile=_text(data, "flavorProfile"),
            skill_challenge=SkillChallenge(
                skill_name=_text(skill, "skillName"),
                description=_text(skill, "description"),
                suggested_recipe_title=_text(skill, "suggestedRecipeTitle"),
            ),
            cuisine_tour=CuisineTour(
                cuisine_name=_text(tour, "cuisineName"),
                description=_text(tour, "description"),
                suggested_first_recipe_title=_text(tour, "suggestedFirstRecipeTitle"),
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "flavorProfile": self.flavor_profile,
            "skillChallenge": {
                "skillName": self.skill_challenge.skill_name,
                "description": self.skill_challenge.description,
                "suggestedRecipeTitle": self.skill_challenge.suggested_recipe_title,
            },
            "cuisineTour": {
                "cuisineName": self.cuisine_tour.cuisine_name,
                "description": self.cuisine_tour.description,
                "suggestedFirstRecipeTitle": self.cuisine_tour.suggested_first_recipe_title,
            },
        }


class JourneyStore:
    def __init__(self, journey: Journey | None = None):
        self._journey = journey

    @classmethod
    def from_json(cls, raw: Any) -> "JourneyStore":
        if not raw:
            return cls()
        try:
            return cls(Journey.from_dict(raw))
        except ValueError as e:
            logger.warning("Ignoring invalid stored journey", extra={"reason": str(e)})
            return cls()

    def to_json(self) -> dict[str, Any] | None:
        return self._journey.to_dict() if self._journey else None

    def set(self, journey: Journey) -> None:
        self._journey = journey

    def get(self) -> Journey | None:
        return self._journey

    def clear(self) -> None:
        self._journey = None
