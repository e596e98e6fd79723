"""Derived, read-only views over the recipe collection.

Everything here is a pure function of the current store contents and is
recomputed on every read; collections are small enough that no caching is needed.
"""

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from rapidfuzz import fuzz

from recipe_clipper import config
from recipe_clipper.ingredients import COMPOUND_INGREDIENTS, parse_ingredient_line
from recipe_clipper.recipes import Recipe

logger = logging.getLogger(__name__)

ALL = "All"
PREP_TIME_BUCKETS = ("<15", "15-30", ">30")

# Assumed to be in every kitchen, never reported as missing
ALWAYS_ON_HAND = ("water", "salt")


@dataclass
class Filters:
    search_term: str = ""
    cuisine: str = ALL
    dietary: str = ALL
    prep_time: str = ALL

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Filters":
        """Build filters from request-style keys (``search``/``searchTerm``, ``prepTime``...)."""
        def pick(*keys: str, default: str) -> str:
            for key in keys:
                value = data.get(key)
                if value:
                    return str(value)
            return default

        return cls(
            search_term=pick("searchTerm", "search", "search_term", default=""),
            cuisine=pick("cuisine", default=ALL),
            dietary=pick("dietary", default=ALL),
            prep_time=pick("prepTime", "prep_time", default=ALL),
        )


def parse_prep_minutes(prep_time: str | None) -> int:
    """First integer in the prep time text; 0 when there is none (e.g. "N/A")."""
    match = re.search(r"\d+", prep_time or "")
    return int(match.group()) if match else 0


def prep_time_bucket(prep_time: str | None) -> str:
    minutes = parse_prep_minutes(prep_time)
    if minutes < 15:
        return "<15"
    if minutes <= 30:
        return "15-30"
    return ">30"


def _matches_search(recipe: Recipe, term: str) -> bool:
    if not term:
        return True
    term = term.casefold()
    return term in recipe.recipe_name.casefold() or term in (recipe.description or "").casefold()


def filtered_recipes(
    recipes: Iterable[Recipe],
    filters: Filters | None = None,
    show_favorites_only: bool = False,
) -> list[Recipe]:
    """Apply favorites, search, cuisine, dietary and prep-time filters in that order,
    then move favorites ahead of the rest without disturbing either group's order.
    """
    filters = filters or Filters()
    term = filters.search_term.strip()

    result = [
        recipe for recipe in recipes
        if (not show_favorites_only or recipe.is_favorite)
        and _matches_search(recipe, term)
        and (filters.cuisine == ALL or recipe.cuisine == filters.cuisine)
        and (filters.dietary == ALL or filters.dietary in recipe.dietary_restrictions)
        and (filters.prep_time == ALL or prep_time_bucket(recipe.prep_time) == filters.prep_time)
    ]

    # Stable partition, not a re-sort
    return [r for r in result if r.is_favorite] + [r for r in result if not r.is_favorite]


def _facet(values: Iterable[str | None]) -> list[str]:
    distinct = {value.strip() for value in values if value and value.strip()}
    distinct.discard(ALL)
    return [ALL] + sorted(distinct, key=str.casefold)


def available_cuisines(recipes: Iterable[Recipe]) -> list[str]:
    return _facet(recipe.cuisine for recipe in recipes)


def available_diets(recipes: Iterable[Recipe]) -> list[str]:
    return _facet(diet for recipe in recipes for diet in recipe.dietary_restrictions)


def planned_recipe_count(meal_plan: Mapping[str, Sequence[str]]) -> int:
    """Number of planned slots; a recipe on two days counts twice."""
    return sum(len(recipe_ids) for recipe_ids in meal_plan.values())


def planned_recipes(recipes: Iterable[Recipe], meal_plan: Mapping[str, Sequence[str]]) -> list[tuple[str, Recipe]]:
    """Resolve the plan to ``(day, recipe)`` pairs in weekday order."""
    by_id = {recipe.id: recipe for recipe in recipes}
    resolved = []
    for day in config.DAYS_OF_WEEK:
        for recipe_id in meal_plan.get(day, []):
            recipe = by_id.get(recipe_id)
            if recipe is not None:
                resolved.append((day, recipe))
    return resolved


# ---------------------------------------------------------------------------
# Pantry availability
# ---------------------------------------------------------------------------

@dataclass
class RecipeAvailability:
    recipe_id: str
    recipe_name: str
    matched_count: int
    total_count: int
    missing_ingredients: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipeId": self.recipe_id,
            "recipeName": self.recipe_name,
            "matchedCount": self.matched_count,
            "totalCount": self.total_count,
            "missingIngredients": list(self.missing_ingredients),
        }


@dataclass
class PantryAnalysis:
    ready_to_cook: list[RecipeAvailability]
    nearly_there: list[RecipeAvailability]

    def to_dict(self) -> dict[str, Any]:
        return {
            "readyToCook": [r.to_dict() for r in self.ready_to_cook],
            "nearlyThere": [r.to_dict() for r in self.nearly_there],
        }


def _words(text: str) -> list[str]:
    return re.findall(r"[^\W\d_]+", text.casefold())


def _same_name(name: str, candidate: str) -> bool:
    if candidate in (name, name + "s", name + "es"):
        return True
    return len(name) > 3 and fuzz.ratio(name, candidate) >= config.PANTRY_MATCH_THRESHOLD


def _head_size(item_words: list[str]) -> int:
    """Number of trailing words naming the ingredient: 2 for "... peanut butter", else 1."""
    size = 1
    for compound in COMPOUND_INGREDIENTS:
        length = len(compound.split())
        if length > size and _same_name(compound, " ".join(item_words[-length:])):
            size = length
    return size


def ingredient_in_pantry(ingredient: str, pantry_items: Iterable[str]) -> bool:
    """True if any pantry item (or an always-on-hand staple) names this ingredient line.

    The pantry name must cover the head of the parsed item: its last words,
    including the whole of a compound such as "peanut butter". Those words count
    when they equal the name or a simple plural of it, or, for names longer than
    three letters, when they score at least PANTRY_MATCH_THRESHOLD. So "tomato"
    matches "2 ripe tomatoes" but "rice" doesn't match "ricotta", and "butter"
    doesn't match "peanut butter".
    """
    item_words = _words(parse_ingredient_line(ingredient).item)
    if not item_words:
        return False
    head_size = _head_size(item_words)
    for pantry_item in [*pantry_items, *ALWAYS_ON_HAND]:
        name_words = _words(pantry_item)
        size = len(name_words)
        if not name_words or size < head_size or size > len(item_words):
            continue
        if _same_name(" ".join(name_words), " ".join(item_words[-size:])):
            return True
    return False


def recipe_availability(recipe: Recipe, pantry_items: Sequence[str]) -> RecipeAvailability:
    missing = [line for line in recipe.ingredients if not ingredient_in_pantry(line, pantry_items)]
    return RecipeAvailability(
        recipe_id=recipe.id,
        recipe_name=recipe.recipe_name,
        matched_count=len(recipe.ingredients) - len(missing),
        total_count=len(recipe.ingredients),
        missing_ingredients=missing,
    )


def pantry_availability(
    recipes: Iterable[Recipe],
    pantry_items: Sequence[str],
    max_missing: int = config.NEARLY_THERE_MAX_MISSING,
) -> PantryAnalysis:
    """Split saved recipes into ready-to-cook and nearly-there given the pantry.

    Recipes without ingredients can't be judged and are left out. Nearly-there
    recipes are ordered by fewest missing ingredients, then collection order.
    """
    ready: list[RecipeAvailability] = []
    nearly: list[RecipeAvailability] = []
    for recipe in recipes:
        if not recipe.ingredients:
            continue
        availability = recipe_availability(recipe, pantry_items)
        missing = len(availability.missing_ingredients)
        if missing == 0:
            ready.append(availability)
        elif missing <= max_missing:
            nearly.append(availability)

    nearly.sort(key=lambda a: len(a.missing_ingredients))
    logger.debug(
        "Pantry availability computed",
        extra={"ready_count": len(ready), "nearly_count": len(nearly), "pantry_size": len(pantry_items)},
    )
    return PantryAnalysis(ready_to_cook=ready, nearly_there=nearly)
