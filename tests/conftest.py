"""Pytest configuration and fixtures."""

# Tests automatically get a test API key from config.py when pytest is detected

import pytest

from recipe_clipper.collection import RecipeCollection
from recipe_clipper.recipes import Instruction, Recipe
from recipe_clipper.storage import MemoryStore


def create_test_recipe(
    recipe_id: str,
    name: str,
    description: str = "A test dish",
    prep_time: str = "10 minutes",
    cook_time: str = "20 minutes",
    servings: str = "4 servings",
    ingredients: list | None = None,
    instructions: list | None = None,
    is_favorite: bool = False,
    cuisine: str | None = None,
    dietary_restrictions: list | None = None,
) -> Recipe:
    """Helper to create a test Recipe; instructions may be given as plain strings."""
    return Recipe(
        id=recipe_id,
        recipe_name=name,
        description=description,
        prep_time=prep_time,
        cook_time=cook_time,
        servings=servings,
        ingredients=ingredients or [],
        instructions=[Instruction(text=step) if isinstance(step, str) else step for step in instructions or []],
        is_favorite=is_favorite,
        cuisine=cuisine,
        dietary_restrictions=dietary_restrictions or [],
    )


def recipe_data(name: str, **fields) -> dict:
    """Content dict as a collaborator would return it (camelCase keys, no id)."""
    data = {
        "recipeName": name,
        "description": f"{name} description",
        "prepTime": "10 minutes",
        "cookTime": "20 minutes",
        "servings": "4 servings",
        "ingredients": ["1 onion", "2 cups rice"],
        "instructions": [{"text": "Cook everything"}],
    }
    data.update(fields)
    return data


@pytest.fixture
def backing():
    return MemoryStore()


@pytest.fixture
def collection(backing):
    return RecipeCollection.load(backing)
