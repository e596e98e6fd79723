"""Split free-text ingredient lines into quantity, unit, item and category."""

import re
import unicodedata
from dataclasses import dataclass

from recipe_clipper.unit_converter import unit_info

_UNICODE_FRACTIONS = {
    "¼": 0.25, "½": 0.5, "¾": 0.75,
    "⅓": 0.333, "⅔": 0.667,
    "⅛": 0.125, "⅜": 0.375, "⅝": 0.625, "⅞": 0.875,
}
_FRACTION_CHARS = "".join(_UNICODE_FRACTIONS)

# "1 1/2", "1/2", "1.5", "2", "1½", "½"
_LEADING_QUANTITY = re.compile(
    rf"^\s*(\d+\s+\d+/\d+|\d+/\d+|\d*\.?\d+\s*[{_FRACTION_CHARS}]?|[{_FRACTION_CHARS}])\s*(.*)$"
)

COUNT_UNITS = {
    "whole", "piece", "pieces", "clove", "cloves", "slice", "slices", "can", "cans",
    "package", "packages", "bunch", "bunches", "head", "heads", "stalk", "stalks",
}

_FILLER_PHRASES = re.compile(
    r"\b(to taste|as needed|for garnish|for serving|if desired|optional|plus more)\b",
    re.IGNORECASE,
)

INGREDIENT_CATEGORIES = {
    "meat": [
        "beef", "chicken", "pork", "turkey", "lamb", "veal", "duck", "bacon",
        "sausage", "ham", "steak", "meat", "fish", "salmon", "shrimp", "tuna",
    ],
    "produce": [
        "onion", "garlic", "tomato", "potato", "carrot", "celery", "bell pepper",
        "broccoli", "spinach", "lettuce", "cucumber", "zucchini", "mushroom",
        "corn", "peas", "cabbage", "kale", "apple", "banana", "lemon", "lime",
        "avocado", "parsley", "cilantro", "scallion", "shallot", "leek",
        "eggplant", "squash", "cauliflower", "jalapeno",
    ],
    "dairy": [
        "milk", "cream", "butter", "cheese", "yogurt", "ricotta", "mozzarella",
        "parmesan", "cheddar", "feta", "egg",
    ],
    "grains": [
        "flour", "bread", "pasta", "rice", "oat", "quinoa", "couscous", "noodle",
        "spaghetti", "penne", "tortilla", "breadcrumb", "cornstarch",
    ],
    "spices": [
        "cumin", "paprika", "chili powder", "cayenne", "turmeric", "coriander",
        "cinnamon", "nutmeg", "oregano", "basil", "thyme", "rosemary", "sage",
        "bay leaf", "curry", "garam masala", "black pepper", "peppercorn",
    ],
    "pantry": [
        "oil", "vinegar", "soy sauce", "ketchup", "mustard", "mayonnaise", "honey",
        "syrup", "sugar", "salt", "stock", "broth", "tomato paste", "beans",
        "chickpea", "lentil", "peanut butter", "nut", "seed", "vanilla",
        "baking powder", "baking soda", "yeast", "chocolate",
    ],
}


# Names whose last word is also an ingredient on its own ("peanut butter" is not
# butter). A pantry item has to cover the whole compound to match it.
COMPOUND_INGREDIENTS = (
    "peanut butter", "ice cream", "sour cream", "cream cheese", "olive oil",
    "coconut milk", "almond milk", "bell pepper", "black pepper", "chili powder",
    "baking powder", "baking soda", "soy sauce", "fish sauce", "hot sauce",
    "tomato paste", "brown sugar", "powdered sugar", "bay leaf", "garam masala",
)


@dataclass
class IngredientLine:
    """One parsed ingredient line. ``quantity`` is None when the line has none."""
    item: str
    quantity: float | None
    unit: str
    category: str


def parse_quantity(text: str) -> float | None:
    """Parse "1", "1.5", "1/4", "1 1/2", "¼" or "1½" into a float."""
    text = text.strip()
    for char, value in _UNICODE_FRACTIONS.items():
        if char in text:
            whole = text.split(char)[0].strip()
            try:
                return float(whole) + value if whole else value
            except ValueError:
                return None

    if " " in text and "/" in text:
        whole, fraction = text.split(None, 1)
        fraction_value = parse_quantity(fraction)
        try:
            return float(whole) + (fraction_value or 0)
        except ValueError:
            return None

    if "/" in text:
        try:
            numerator, denominator = text.split("/")
            return float(numerator) / float(denominator)
        except (ValueError, ZeroDivisionError):
            return None

    try:
        return float(text)
    except ValueError:
        return None


def _split_unit(rest: str) -> tuple[str, str]:
    """Peel a recognised unit off the front of ``rest``."""
    fluid = re.match(r"^(fl\.?\s*oz|fluid ounces?)\.?\s+(.*)$", rest, re.IGNORECASE)
    if fluid:
        return "fl oz", fluid.group(2)

    match = re.match(r"^([A-Za-z]+)\.?(?:\s+(.*))?$", rest)
    if not match:
        return "", rest
    word, remainder = match.group(1), match.group(2) or ""
    if unit_info(word) is not None or word.lower() in COUNT_UNITS:
        # Single-letter units are only trusted when something follows them
        if len(word) == 1 and not remainder:
            return "", rest
        return word, remainder
    return "", rest


def _clean_item(text: str) -> str:
    text = re.sub(r"\([^)]*\)", "", text)
    text = text.split(",", 1)[0]
    text = _FILLER_PHRASES.sub("", text)
    text = re.sub(r"^\s*of\s+", "", text, flags=re.IGNORECASE)
    return re.sub(r"\s+", " ", text).strip(" -.")


def categorize(item: str) -> str:
    item_lower = item.lower()
    for category, keywords in INGREDIENT_CATEGORIES.items():
        if any(keyword in item_lower for keyword in keywords):
            return category
    return "other"


def parse_ingredient_line(line: str) -> IngredientLine:
    """Parse a line such as "2 cups diced tomatoes, drained".

    Examples:
        "2 cups flour" → 2.0 cups flour
        "1½ tbsp olive oil" → 1.5 tbsp olive oil
        "Salt to taste" → Salt, no quantity
    """
    text = line.strip()
    quantity = None
    unit = ""

    match = _LEADING_QUANTITY.match(text)
    if match:
        quantity = parse_quantity(match.group(1))
        if quantity is not None:
            unit, text = _split_unit(match.group(2))

    item = _clean_item(text) or line.strip()
    return IngredientLine(item=item, quantity=quantity, unit=unit, category=categorize(item))


def normalize_name(name: str) -> str:
    """Grouping key for an ingredient name.

    Strips diacritics, lowercases, and drops a simple plural ending
    (tomatoes → tomato, peppers → pepper).
    """
    nfkd = unicodedata.normalize("NFKD", name.strip())
    s = "".join(c for c in nfkd if not unicodedata.combining(c)).lower()
    s = re.sub(r"\s+", " ", s)
    if len(s) > 4 and s.endswith("oes"):
        return s[:-2]
    if len(s) > 4 and s.endswith("s") and not s.endswith("ss"):
        return s[:-1]
    return s
