"""AI helpers around the collection: pantry ideas, meal plans, journeys and unit conversion."""

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from recipe_clipper import config
from recipe_clipper.ai_client import GenerationError, GenerativeClient
from recipe_clipper.journey import Journey
from recipe_clipper.recipes import Recipe

logger = logging.getLogger(__name__)

MAX_PLAN_DAYS = len(config.DAYS_OF_WEEK)

SUGGESTIONS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "suggestions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "recipeName": {"type": "string"},
                    "description": {"type": "string"},
                    "requiredPantryIngredients": {"type": "array", "items": {"type": "string"}},
                    "optionalExtraIngredients": {"type": "array", "items": {"type": "string"}},
                },
                "required": ["recipeName", "description"],
            },
        },
    },
    "required": ["suggestions"],
}


def _plan_schema(days: Sequence[str], description: str) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            day: {"type": "array", "description": description, "items": {"type": "string"}}
            for day in days
        },
        "required": list(days),
    }


JOURNEY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "flavorProfile": {"type": "string", "description": "A short summary of the flavors the user gravitates to."},
        "skillChallenge": {
            "type": "object",
            "properties": {
                "skillName": {"type": "string"},
                "description": {"type": "string"},
                "suggestedRecipeTitle": {"type": "string"},
            },
            "required": ["skillName", "description", "suggestedRecipeTitle"],
        },
        "cuisineTour": {
            "type": "object",
            "properties": {
                "cuisineName": {"type": "string"},
                "description": {"type": "string"},
                "suggestedFirstRecipeTitle": {"type": "string"},
            },
            "required": ["cuisineName", "description", "suggestedFirstRecipeTitle"],
        },
    },
    "required": ["flavorProfile", "skillChallenge", "cuisineTour"],
}

CONVERSION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "convertedValue": {"type": "number", "description": "The numeric result of the conversion."},
    },
    "required": ["convertedValue"],
}


@dataclass
class RecipeSuggestion:
    recipe_name: str
    description: str
    required_pantry_ingredients: list[str] = field(default_factory=list)
    optional_extra_ingredients: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipeName": self.recipe_name,
            "description": self.description,
            "requiredPantryIngredients": list(self.required_pantry_ingredients),
            "optionalExtraIngredients": list(self.optional_extra_ingredients),
        }


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


def plan_days(num_days: int) -> list[str]:
    """First ``num_days`` weekdays, with ``num_days`` clamped to 1..7."""
    try:
        num_days = int(num_days)
    except (TypeError, ValueError):
        num_days = 5
    num_days = max(1, min(MAX_PLAN_DAYS, num_days))
    return config.DAYS_OF_WEEK[:num_days]


def _pantry_clause(pantry_items: Sequence[str] | None) -> str:
    if not pantry_items:
        return ""
    return f"\nPrefer dishes that use what is already in the pantry: {', '.join(pantry_items)}."


class KitchenAssistant:
    def __init__(self, client: GenerativeClient):
        self.client = client

    def suggest_recipes_from_pantry(self, pantry_items: Sequence[str]) -> list[RecipeSuggestion]:
        """Ask for new dish ideas built mostly from the pantry."""
        if not pantry_items:
            raise GenerationError("Add some pantry items first.")

        prompt = (
            "You are a creative chef. Suggest 3-5 dishes that can be made mainly from these pantry "
            f"ingredients: {', '.join(pantry_items)}.\n"
            "For each, list which pantry ingredients it needs and any optional extras worth buying."
        )
        data = self.client.request_structured_generation(prompt, SUGGESTIONS_SCHEMA, schema_name="pantry_suggestions")

        suggestions = []
        for entry in data.get("suggestions") or []:
            if not isinstance(entry, dict) or not str(entry.get("recipeName", "")).strip():
                continue
            suggestions.append(RecipeSuggestion(
                recipe_name=str(entry["recipeName"]).strip(),
                description=str(entry.get("description", "")).strip(),
                required_pantry_ingredients=_strings(entry.get("requiredPantryIngredients")),
                optional_extra_ingredients=_strings(entry.get("optionalExtraIngredients")),
            ))
        logger.info("Pantry suggestions generated", extra={"count": len(suggestions)})
        return suggestions

    def plan_from_saved_recipes(
        self,
        recipes: Sequence[Recipe],
        goal: str,
        num_days: int,
        pantry_items: Sequence[str] | None = None,
    ) -> dict[str, list[str]]:
        """Build a plan of saved recipe IDs. IDs are not checked here; the collection sanitizes them."""
        if not recipes:
            raise GenerationError("Save some recipes before generating a plan from them.")
        days = plan_days(num_days)

        catalogue = [
            {"id": r.id, "recipeName": r.recipe_name, "cuisine": r.cuisine, "prepTime": r.prep_time}
            for r in recipes
        ]
        prompt = (
            f"You are a meal planner. Plan dinners for {', '.join(days)} using ONLY the saved recipes below, "
            "referring to each by its id. Avoid repeating a recipe unless there are too few.\n"
            f"Goal: {goal.strip() or 'a balanced, varied week'}.{_pantry_clause(pantry_items)}\n\n"
            f"Saved recipes:\n{json.dumps(catalogue, indent=2, ensure_ascii=False)}"
        )
        data = self.client.request_structured_generation(
            prompt, _plan_schema(days, "Recipe ids for this day."), schema_name="meal_plan"
        )
        return {day: _strings(data.get(day)) for day in days if _strings(data.get(day))}

    def plan_new_recipes(
        self,
        goal: str,
        num_days: int,
        pantry_items: Sequence[str] | None = None,
    ) -> dict[str, list[str]]:
        """Return new dish titles per day; the caller generates and saves each one."""
        days = plan_days(num_days)
        prompt = (
            f"You are a meal planner. Propose one new dinner for each of {', '.join(days)}, "
            "given as a dish title.\n"
            f"Goal: {goal.strip() or 'a balanced, varied week'}.{_pantry_clause(pantry_items)}"
        )
        data = self.client.request_structured_generation(
            prompt, _plan_schema(days, "Dish titles for this day."), schema_name="meal_plan_titles"
        )
        return {day: _strings(data.get(day)) for day in days if _strings(data.get(day))}

    def generate_journey(self, recipes: Sequence[Recipe]) -> Journey:
        if not recipes:
            raise GenerationError("Save at least one recipe to start your culinary journey.")

        summary = [
            {"recipeName": r.recipe_name, "cuisine": r.cuisine, "ingredients": r.ingredients[:10]}
            for r in recipes
        ]
        prompt = (
            "You are a culinary coach. From the user's saved recipes, describe their flavor profile, "
            "propose one cooking skill to learn next with a recipe that practises it, and one cuisine "
            "to explore with a first recipe to try.\n\n"
            f"Saved recipes:\n{json.dumps(summary, indent=2, ensure_ascii=False)}"
        )
        data = self.client.request_structured_generation(prompt, JOURNEY_SCHEMA, schema_name="journey")
        try:
            return Journey.from_dict(data)
        except ValueError as e:
            raise GenerationError(f"AI returned an incomplete journey: {e}") from e

    def convert_units(self, value: float, from_unit: str, to_unit: str) -> float:
        prompt = (
            f"You are a precise unit conversion tool for cooking. Convert {value} {from_unit} to {to_unit}. "
            "Return only the numeric value."
        )
        data = self.client.request_structured_generation(
            prompt, CONVERSION_SCHEMA, schema_name="conversion", temperature=0
        )
        result = data.get("convertedValue")
        if isinstance(result, bool) or not isinstance(result, (int, float)):
            raise GenerationError(f"The AI could not perform the conversion from {from_unit} to {to_unit}.")
        return float(result)
