import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from rapidfuzz import fuzz

from recipe_clipper.ingredients import normalize_name, parse_ingredient_line
from recipe_clipper.recipes import Recipe
from recipe_clipper.unit_converter import best_volume_unit, best_weight_unit, unit_info
from recipe_clipper.views import ingredient_in_pantry

# Similarity threshold (0-100) for merging near-identical item names that
# survive normalize_name, e.g. spelling slips like "zuchini" / "zucchini".
_FUZZY_THRESHOLD = 90

logger = logging.getLogger(__name__)

# Shorthands and plurals -> display spelling
_UNIT_DISPLAY: dict[str, str] = {
    "t": "tsp", "teaspoon": "tsp", "teaspoons": "tsp",
    "T": "tbsp", "Tbsp": "tbsp", "tablespoon": "tbsp", "tablespoons": "tbsp",
    "c": "cup", "cups": "cup",
    "milliliter": "ml", "milliliters": "ml", "millilitre": "ml", "millilitres": "ml",
    "fluid ounce": "fl oz", "fluid ounces": "fl oz",
    "pint": "pt", "pints": "pt", "quart": "qt", "quarts": "qt",
    "liter": "l", "liters": "l", "litre": "l", "litres": "l", "L": "l",
    "gallon": "gal", "gallons": "gal",
    "gram": "g", "grams": "g", "kilogram": "kg", "kilograms": "kg",
    "ounce": "oz", "ounces": "oz", "pound": "lb", "pounds": "lb", "lbs": "lb",
    "pieces": "piece", "cloves": "clove", "slices": "slice", "cans": "can",
    "packages": "package", "bunches": "bunch", "heads": "head", "stalks": "stalk",
}


def _normalize_unit(unit: str) -> str:
    stripped = unit.strip()
    # Case-sensitive first so 't' and 'T' stay distinct
    if stripped in _UNIT_DISPLAY:
        return _UNIT_DISPLAY[stripped]
    return _UNIT_DISPLAY.get(stripped.lower(), stripped.lower())


def _combine_entries(entries: list[tuple[float, str]]) -> list[tuple[float, str]]:
    """Merge (quantity, unit) pairs for one ingredient into as few lines as possible.

    - Entries with the same unit are summed.
    - Entries in one measurement family (volume or weight) are converted to the
      base unit, summed, and expressed in the most readable unit.
    - Unitless and unrecognised units stay on their own lines.
    """
    by_unit: dict[str, float] = defaultdict(float)
    for qty, unit in entries:
        by_unit[unit] += qty

    if len(by_unit) == 1:
        unit, qty = next(iter(by_unit.items()))
        return [(qty, unit)]

    result: list[tuple[float, str]] = []
    family_buckets: dict[str, list[tuple[float, float]]] = defaultdict(list)
    for unit, qty in by_unit.items():
        info = unit_info(unit) if unit else None
        if info is None:
            result.append((qty, unit))
        else:
            family, mult = info
            family_buckets[family].append((qty, mult))

    for family, group in family_buckets.items():
        total_base = sum(qty * mult for qty, mult in group)
        result.append(best_volume_unit(total_base) if family == "volume" else best_weight_unit(total_base))

    return result


def _format_quantity(quantity: float) -> str:
    rounded = round(quantity, 2)
    return str(int(rounded)) if rounded == int(rounded) else f"{rounded:g}"


@dataclass
class ShoppingListItem:
    item: str
    quantity: float | None  # None = buy it, no meaningful quantity
    unit: str
    category: str

    @property
    def display(self) -> str:
        parts = []
        if self.quantity is not None:
            parts.append(_format_quantity(self.quantity))
        if self.unit:
            parts.append(self.unit)
        parts.append(self.item)
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "item": self.item,
            "quantity": round(self.quantity, 2) if self.quantity is not None else None,
            "unit": self.unit,
            "display": self.display,
        }


@dataclass
class ShoppingList:
    items: list[ShoppingListItem]

    @property
    def items_by_category(self) -> dict[str, list[ShoppingListItem]]:
        grouped = defaultdict(list)
        for item in self.items:
            grouped[item.category].append(item)
        return dict(grouped)

    def categories(self) -> list[dict[str, Any]]:
        """``[{"category": ..., "items": [...]}]`` sorted by category."""
        return [
            {"category": category, "items": [item.to_dict() for item in items]}
            for category, items in sorted(self.items_by_category.items())
        ]


def _fuzzy_merge_items(item_data: dict[str, dict]) -> dict[str, dict]:
    """Fold entries whose keys score >= _FUZZY_THRESHOLD into the first one seen."""
    if len(item_data) <= 1:
        return item_data

    keys = list(item_data)
    canonical_for: dict[str, str] = {}
    for i, key in enumerate(keys):
        if key in canonical_for:
            continue
        canonical_for[key] = key
        for other in keys[i + 1:]:
            if other not in canonical_for and fuzz.ratio(key, other) >= _FUZZY_THRESHOLD:
                canonical_for[other] = key

    merged: dict[str, dict] = {}
    for key, canonical in canonical_for.items():
        src = item_data[key]
        if canonical not in merged:
            merged[canonical] = {
                "display_name": item_data[canonical]["display_name"],
                "category": src["category"],
                "entries": list(src["entries"]),
                "quantityless": src["quantityless"],
            }
        else:
            merged[canonical]["entries"].extend(src["entries"])
            merged[canonical]["quantityless"] |= src["quantityless"]
    return merged


def generate_shopping_list(planned: Sequence[tuple[str, Recipe]], pantry_items: Sequence[str]) -> ShoppingList:
    """Build the shopping list for the planned meals, leaving out what the pantry covers.

    ``planned`` is a sequence of ``(day, recipe)`` pairs; a recipe planned on
    two days contributes its ingredients twice.
    """
    item_data: dict[str, dict] = {}
    skipped = 0

    for _day, recipe in planned:
        for line in recipe.ingredients:
            if ingredient_in_pantry(line, pantry_items):
                skipped += 1
                continue
            parsed = parse_ingredient_line(line)
            key = normalize_name(parsed.item)
            if key not in item_data:
                item_data[key] = {
                    "display_name": parsed.item,
                    "category": parsed.category,
                    "entries": [],
                    "quantityless": False,
                }
            if parsed.quantity is None:
                item_data[key]["quantityless"] = True
            else:
                item_data[key]["entries"].append((parsed.quantity, _normalize_unit(parsed.unit)))

    item_data = _fuzzy_merge_items(item_data)

    items: list[ShoppingListItem] = []
    for data in item_data.values():
        if not data["entries"]:
            items.append(ShoppingListItem(data["display_name"], None, "", data["category"]))
            continue
        for qty, unit in _combine_entries(data["entries"]):
            items.append(ShoppingListItem(data["display_name"], qty, unit, data["category"]))

    items.sort(key=lambda x: (x.category, x.item.casefold()))
    logger.info(
        "Shopping list generated",
        extra={"item_count": len(items), "covered_by_pantry": skipped, "meal_count": len(planned)},
    )
    return ShoppingList(items=items)
