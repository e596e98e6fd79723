"""The recipe collection: every store plus the rules that tie them together.

All state changes go through ``RecipeCollection``. Each mutation updates the
in-memory stores, persists the keys it touched, and only then returns, so a
read that follows a mutation always sees its effect.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from recipe_clipper import config, views
from recipe_clipper.journey import Journey, JourneyStore
from recipe_clipper.meal_plan import MealPlanStore
from recipe_clipper.pantry import PantryStore
from recipe_clipper.recipes import NotFound, Recipe, RecipeNotFoundError, RecipeStore, Removed
from recipe_clipper.shopping_list import ShoppingList, generate_shopping_list
from recipe_clipper.storage import KeyValueStore

logger = logging.getLogger(__name__)


class RecipeCollection:
    def __init__(
        self,
        backing: KeyValueStore,
        recipes: RecipeStore | None = None,
        pantry: PantryStore | None = None,
        meal_plan: MealPlanStore | None = None,
        journey: JourneyStore | None = None,
    ):
        self._backing = backing
        self._recipes = recipes if recipes is not None else RecipeStore()
        self._pantry = pantry if pantry is not None else PantryStore()
        self._meal_plan = meal_plan if meal_plan is not None else MealPlanStore()
        self._journey = journey if journey is not None else JourneyStore()
        first = self._recipes.list()[:1]
        self._selected_id: str | None = first[0].id if first else None

    @classmethod
    def load(cls, backing: KeyValueStore) -> "RecipeCollection":
        """Read every key from ``backing``; a bad key only empties its own store."""
        recipes = RecipeStore.from_json(backing.load(config.RECIPES_KEY))
        collection = cls(
            backing,
            recipes=recipes,
            pantry=PantryStore.from_json(backing.load(config.PANTRY_KEY)),
            meal_plan=MealPlanStore.from_json(backing.load(config.MEAL_PLAN_KEY), recipes.ids()),
            journey=JourneyStore.from_json(backing.load(config.JOURNEY_KEY)),
        )
        logger.info(
            "Loaded recipe collection",
            extra={"recipe_count": len(recipes), "pantry_count": len(collection._pantry)},
        )
        return collection

    def _persist(self, *keys: str) -> None:
        snapshots = {
            config.RECIPES_KEY: self._recipes.to_json,
            config.PANTRY_KEY: self._pantry.to_json,
            config.MEAL_PLAN_KEY: self._meal_plan.to_json,
            config.JOURNEY_KEY: self._journey.to_json,
        }
        for key in keys:
            # Failures are logged by the backing store; memory stays authoritative
            self._backing.save(key, snapshots[key]())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def recipes(self) -> list[Recipe]:
        return self._recipes.list()

    def get_recipe(self, recipe_id: str) -> Recipe | NotFound:
        recipe = self._recipes.get(recipe_id)
        return recipe if recipe is not None else NotFound(recipe_id)

    @property
    def selected_recipe_id(self) -> str | None:
        return self._selected_id

    @property
    def selected_recipe(self) -> Recipe | None:
        return self._recipes.get(self._selected_id) if self._selected_id else None

    @property
    def pantry_items(self) -> list[str]:
        return self._pantry.list()

    @property
    def meal_plan(self) -> dict[str, list[str]]:
        return self._meal_plan.as_dict()

    @property
    def journey(self) -> Journey | None:
        return self._journey.get()

    def filtered_recipes(self, filters: views.Filters | None = None, show_favorites_only: bool = False) -> list[Recipe]:
        return views.filtered_recipes(self._recipes.list(), filters, show_favorites_only)

    def cuisines(self) -> list[str]:
        return views.available_cuisines(self._recipes.list())

    def diets(self) -> list[str]:
        return views.available_diets(self._recipes.list())

    def planned_recipe_count(self) -> int:
        return views.planned_recipe_count(self._meal_plan.as_dict())

    def planned_recipes(self) -> list[tuple[str, Recipe]]:
        return views.planned_recipes(self._recipes.list(), self._meal_plan.as_dict())

    def pantry_availability(self) -> views.PantryAnalysis:
        return views.pantry_availability(self._recipes.list(), self._pantry.list())

    def shopping_list(self) -> ShoppingList:
        return generate_shopping_list(self.planned_recipes(), self._pantry.list())

    # ------------------------------------------------------------------
    # Recipes
    # ------------------------------------------------------------------

    def add_recipe(self, data: Mapping[str, Any]) -> Recipe:
        """Insert a new recipe at the top of the collection and select it.

        Raises:
            ValueError: If ``data`` has no recipe name or a malformed field
        """
        recipe = self._recipes.insert(data)
        self._selected_id = recipe.id
        self._persist(config.RECIPES_KEY)
        logger.info("Added recipe", extra={"recipe_id": recipe.id, "source": recipe.source})
        return recipe

    def update_recipe(self, recipe_id: str, changes: Mapping[str, Any]) -> Recipe | NotFound:
        try:
            recipe = self._recipes.update_by_id(recipe_id, changes)
        except RecipeNotFoundError:
            return NotFound(recipe_id)
        self._persist(config.RECIPES_KEY)
        return recipe

    def set_favorite(self, recipe_id: str, is_favorite: bool) -> Recipe | NotFound:
        return self.update_recipe(recipe_id, {"is_favorite": bool(is_favorite)})

    def toggle_favorite(self, recipe_id: str) -> Recipe | NotFound:
        recipe = self._recipes.get(recipe_id)
        if recipe is None:
            return NotFound(recipe_id)
        return self.set_favorite(recipe_id, not recipe.is_favorite)

    def remix_recipe(self, recipe_id: str, content: Mapping[str, Any]) -> Recipe | NotFound:
        """Replace the recipe's content with a remixed version, keeping its ID and favorite flag.

        The content is applied as-is even if the recipe was edited after the
        remix was requested.
        """
        try:
            recipe = self._recipes.replace_content(recipe_id, content)
        except RecipeNotFoundError:
            logger.info("Remix result discarded, recipe no longer exists", extra={"recipe_id": recipe_id})
            return NotFound(recipe_id)
        self._persist(config.RECIPES_KEY)
        logger.info("Remixed recipe", extra={"recipe_id": recipe_id})
        return recipe

    def delete_recipe(self, recipe_id: str) -> Removed | NotFound:
        """Delete the recipe and every meal plan reference to it.

        If it was selected, selection moves to the first remaining recipe.
        """
        try:
            removed = self._recipes.delete_by_id(recipe_id)
        except RecipeNotFoundError:
            return NotFound(recipe_id)

        occurrences = self._meal_plan.remove_recipe(recipe_id)
        if self._selected_id == recipe_id:
            remaining = self._recipes.list()
            self._selected_id = remaining[0].id if remaining else None

        self._persist(config.RECIPES_KEY, config.MEAL_PLAN_KEY)
        logger.info("Deleted recipe", extra={"recipe_id": recipe_id, "plan_occurrences": occurrences})
        return Removed(removed)

    def select_recipe(self, recipe_id: str | None) -> Recipe | NotFound | None:
        if recipe_id is None:
            self._selected_id = None
            return None
        recipe = self._recipes.get(recipe_id)
        if recipe is None:
            return NotFound(recipe_id)
        self._selected_id = recipe_id
        return recipe

    # ------------------------------------------------------------------
    # Pantry
    # ------------------------------------------------------------------

    def add_pantry_item(self, item: str) -> bool:
        if not self._pantry.add(item):
            return False
        self._persist(config.PANTRY_KEY)
        return True

    def remove_pantry_item(self, item: str) -> bool:
        if not self._pantry.remove(item):
            return False
        self._persist(config.PANTRY_KEY)
        return True

    # ------------------------------------------------------------------
    # Meal plan
    # ------------------------------------------------------------------

    def assign_meal(self, day: str, recipe_id: str) -> bool | NotFound:
        """Add a recipe to a day. False for an unknown day or a repeat on the same day."""
        if self._recipes.get(recipe_id) is None:
            return NotFound(recipe_id)
        if not self._meal_plan.assign(day, recipe_id):
            return False
        self._persist(config.MEAL_PLAN_KEY)
        return True

    def unassign_meal(self, day: str, recipe_id: str) -> bool:
        if not self._meal_plan.unassign(day, recipe_id):
            return False
        self._persist(config.MEAL_PLAN_KEY)
        return True

    def replace_meal_plan(self, plan: Mapping[str, Sequence[str]]) -> dict[str, list[str]]:
        """Swap in a whole plan; entries naming unknown days or recipes are dropped."""
        result = self._meal_plan.replace_all(plan, self._recipes.ids())
        self._persist(config.MEAL_PLAN_KEY)
        return result

    def clear_meal_plan(self) -> None:
        self._meal_plan.clear()
        self._persist(config.MEAL_PLAN_KEY)

    # ------------------------------------------------------------------
    # Journey
    # ------------------------------------------------------------------

    def set_journey(self, journey: Journey) -> Journey:
        self._journey.set(journey)
        self._persist(config.JOURNEY_KEY)
        return journey

    def clear_journey(self) -> None:
        self._journey.clear()
        self._persist(config.JOURNEY_KEY)
