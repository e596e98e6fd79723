import dataclasses
import logging
import re
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

# Placeholder for free-text fields the source did not provide
DEFAULT_TEXT = "N/A"


class RecipeNotFoundError(Exception):
    """Raised when no recipe in the store has the requested ID."""
    pass


@dataclass
class Instruction:
    text: str
    timer_in_seconds: int | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | str) -> "Instruction":
        """Build an instruction from ``{"text", "timerInSeconds"}`` or a bare string."""
        if isinstance(data, str):
            return cls(text=data.strip())
        if not isinstance(data, Mapping) or not isinstance(data.get("text"), str):
            raise ValueError(f"Invalid instruction: {data!r}")

        timer = data.get("timerInSeconds", data.get("timer_in_seconds"))
        try:
            timer = int(timer) if timer is not None else None
        except (TypeError, ValueError):
            timer = None
        if timer is not None and timer <= 0:
            timer = None

        return cls(text=data["text"].strip(), timer_in_seconds=timer)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"text": self.text}
        if self.timer_in_seconds is not None:
            result["timerInSeconds"] = self.timer_in_seconds
        return result


# Attribute name -> stored JSON key
_JSON_KEYS = {
    "id": "id",
    "recipe_name": "recipeName",
    "description": "description",
    "prep_time": "prepTime",
    "cook_time": "cookTime",
    "servings": "servings",
    "ingredients": "ingredients",
    "instructions": "instructions",
    "notes": "notes",
    "recipe_image": "recipeImage",
    "is_favorite": "isFavorite",
    "source": "source",
    "cuisine": "cuisine",
    "dietary_restrictions": "dietaryRestrictions",
    "cost_analysis": "costAnalysis",
    "sustainability_score": "sustainabilityScore",
    "micronutrients": "micronutrients",
    "health_nudge": "healthNudge",
}
_ATTRIBUTES = {key: attr for attr, key in _JSON_KEYS.items()}

_TEXT_FIELDS = ("description", "prep_time", "cook_time", "servings")
_OPTIONAL_TEXT_FIELDS = ("notes", "recipe_image", "source", "cuisine", "health_nudge")

# Everything a remix replaces
CONTENT_FIELDS = tuple(attr for attr in _JSON_KEYS if attr not in ("id", "is_favorite"))


@dataclass
class Recipe:
    id: str
    recipe_name: str
    description: str = DEFAULT_TEXT
    prep_time: str = DEFAULT_TEXT
    cook_time: str = DEFAULT_TEXT
    servings: str = DEFAULT_TEXT
    ingredients: list[str] = field(default_factory=list)
    instructions: list[Instruction] = field(default_factory=list)
    notes: str | None = None
    recipe_image: str | None = None
    is_favorite: bool = False
    source: str | None = None
    cuisine: str | None = None
    dietary_restrictions: list[str] = field(default_factory=list)
    cost_analysis: Any = None
    sustainability_score: Any = None
    micronutrients: Any = None
    health_nudge: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Recipe":
        """Create a Recipe from its stored form (camelCase keys).

        Unknown keys are ignored so records written by newer versions still load.
        """
        fields = coerce_fields(data, strict=False)
        missing = [key for key in ("id", "recipe_name") if not fields.get(key)]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(_JSON_KEYS[m] for m in missing)}")
        return cls(**fields)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the stored camelCase keys, omitting unset optionals."""
        result: dict[str, Any] = {}
        for attr, key in _JSON_KEYS.items():
            value = getattr(self, attr)
            if attr == "instructions":
                value = [step.to_dict() for step in value]
            elif attr in ("ingredients", "dietary_restrictions"):
                value = list(value)
            elif value is None:
                continue
            result[key] = value
        return result


def _coerce_value(attr: str, value: Any) -> Any:
    if attr == "recipe_name":
        name = str(value).strip() if value is not None else ""
        if not name:
            raise ValueError("recipeName cannot be blank")
        return name
    if attr == "id":
        return str(value)
    if attr in _TEXT_FIELDS:
        text = str(value).strip() if value is not None else ""
        return text or DEFAULT_TEXT
    if attr in _OPTIONAL_TEXT_FIELDS:
        if value is None:
            return None
        return str(value).strip() or None
    if attr == "is_favorite":
        if not isinstance(value, bool):
            raise ValueError("isFavorite must be a boolean")
        return value
    if attr == "ingredients":
        if not isinstance(value, (list, tuple)):
            raise ValueError("ingredients must be a list of strings")
        return [str(line).strip() for line in value if str(line).strip()]
    if attr == "instructions":
        if not isinstance(value, (list, tuple)):
            raise ValueError("instructions must be a list")
        steps = [Instruction.from_dict(step) for step in value]
        return [step for step in steps if step.text]
    if attr == "dietary_restrictions":
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple, set, frozenset)):
            raise ValueError("dietaryRestrictions must be a list of strings")
        unique: list[str] = []
        for diet in value:
            diet = str(diet).strip()
            if diet and diet not in unique:
                unique.append(diet)
        return unique
    # Enrichment blocks pass through unmodified
    return value


def coerce_fields(data: Mapping[str, Any], strict: bool = True) -> dict[str, Any]:
    """Map camelCase or snake_case keys to Recipe attributes and normalise values.

    Args:
        data: Field values keyed by stored key or attribute name
        strict: Raise on unknown keys instead of ignoring them

    Raises:
        ValueError: If a value has the wrong shape, or an unknown key is given in strict mode
    """
    fields: dict[str, Any] = {}
    for key, value in data.items():
        attr = _ATTRIBUTES.get(key, key if key in _JSON_KEYS else None)
        if attr is None:
            if strict:
                raise ValueError(f"Unknown recipe field: {key}")
            continue
        fields[attr] = _coerce_value(attr, value)
    return fields


@dataclass(frozen=True)
class NotFound:
    """Result of an operation that referenced a recipe ID the store doesn't hold."""
    recipe_id: str


@dataclass(frozen=True)
class Removed:
    """Result of a successful delete, carrying the record that was removed."""
    recipe: Recipe


def generate_recipe_id(name: str, existing_ids: set[str]) -> str:
    """Generate a unique ID from the recipe name plus a random suffix."""
    slug = re.sub(r'[^\w\s-]', '', name.lower())
    slug = re.sub(r'[-\s_]+', '-', slug).strip('-')[:40].strip('-') or "recipe"

    while True:
        candidate = f"{slug}-{uuid.uuid4().hex[:8]}"
        if candidate not in existing_ids:
            return candidate


class RecipeStore:
    """Authoritative, ordered collection of recipes (newest first)."""

    def __init__(self, recipes: Iterable[Recipe] = ()):
        self._recipes: list[Recipe] = []
        for recipe in recipes:
            if self.get(recipe.id) is not None:
                raise ValueError(f"Duplicate recipe ID '{recipe.id}'")
            self._recipes.append(recipe)

    @classmethod
    def from_json(cls, raw: Any) -> "RecipeStore":
        """Rebuild a store from its stored list, skipping unusable records."""
        if not isinstance(raw, list):
            if raw:
                logger.warning("Stored recipes are not a list, starting empty")
            return cls()

        recipes: list[Recipe] = []
        seen: set[str] = set()
        for position, record in enumerate(raw):
            if not isinstance(record, Mapping):
                logger.warning("Skipping non-object recipe record", extra={"position": position})
                continue
            try:
                recipe = Recipe.from_dict(record)
            except ValueError as e:
                logger.warning("Skipping invalid recipe record", extra={"position": position, "reason": str(e)})
                continue
            if recipe.id in seen:
                logger.warning("Skipping recipe with duplicate ID", extra={"recipe_id": recipe.id})
                continue
            seen.add(recipe.id)
            recipes.append(recipe)
        return cls(recipes)

    def to_json(self) -> list[dict[str, Any]]:
        return [recipe.to_dict() for recipe in self._recipes]

    def __len__(self) -> int:
        return len(self._recipes)

    def list(self) -> list[Recipe]:
        return list(self._recipes)

    def ids(self) -> set[str]:
        return {recipe.id for recipe in self._recipes}

    def get(self, recipe_id: str) -> Recipe | None:
        for recipe in self._recipes:
            if recipe.id == recipe_id:
                return recipe
        return None

    def _index_of(self, recipe_id: str) -> int:
        for i, recipe in enumerate(self._recipes):
            if recipe.id == recipe_id:
                return i
        raise RecipeNotFoundError(f"Recipe with ID '{recipe_id}' not found")

    def insert(self, data: Mapping[str, Any]) -> Recipe:
        """Add a new recipe at the front of the collection under a fresh ID.

        Any ``id`` in ``data`` is ignored; IDs are only ever assigned here.

        Raises:
            ValueError: If ``recipeName`` is missing or a field is malformed
        """
        fields = coerce_fields({k: v for k, v in data.items() if k != "id"})
        if "recipe_name" not in fields:
            raise ValueError("Missing required fields: recipeName")

        recipe = Recipe(id=generate_recipe_id(fields["recipe_name"], self.ids()), **fields)
        self._recipes.insert(0, recipe)
        return recipe

    def update_by_id(self, recipe_id: str, changes: Mapping[str, Any]) -> Recipe:
        """Merge ``changes`` into the recipe, leaving unspecified fields as they are.

        Raises:
            RecipeNotFoundError: If no recipe has this ID
            ValueError: For unknown fields or an attempt to change the ID
        """
        index = self._index_of(recipe_id)
        fields = coerce_fields(changes)
        if fields.pop("id", recipe_id) != recipe_id:
            raise ValueError("Recipe ID cannot be changed")

        updated = dataclasses.replace(self._recipes[index], **fields)
        self._recipes[index] = updated
        return updated

    def replace_content(self, recipe_id: str, content: Mapping[str, Any]) -> Recipe:
        """Replace every content field, keeping the ID and favorite flag.

        Fields absent from ``content`` fall back to their defaults.

        Raises:
            RecipeNotFoundError: If no recipe has this ID
            ValueError: If ``recipeName`` is missing or a field is malformed
        """
        index = self._index_of(recipe_id)
        current = self._recipes[index]
        fields = {
            attr: value for attr, value in coerce_fields(content, strict=False).items() if attr in CONTENT_FIELDS
        }
        if "recipe_name" not in fields:
            raise ValueError("Missing required fields: recipeName")

        replaced = Recipe(id=current.id, is_favorite=current.is_favorite, **fields)
        self._recipes[index] = replaced
        return replaced

    def delete_by_id(self, recipe_id: str) -> Recipe:
        """Remove and return the recipe.

        Raises:
            RecipeNotFoundError: If no recipe has this ID
        """
        return self._recipes.pop(self._index_of(recipe_id))
