"""
Turn pasted text, a dish title, or a photo into recipe content using OpenAI.

Results are normalised into the stored recipe shape (camelCase keys) but not
inserted anywhere; the caller hands them to the recipe collection.
"""

import json
import logging
import random
from dataclasses import dataclass
from typing import Any

from recipe_clipper.ai_client import GenerationError, GenerativeClient, image_data_url
from recipe_clipper.recipes import DEFAULT_TEXT, Recipe

logger = logging.getLogger(__name__)

_MICRONUTRIENT = {
    "type": "object",
    "properties": {
        "amount": {"type": "string", "description": 'Estimated amount, e.g. "5mg"'},
        "percentOfDV": {"type": "integer", "description": "Estimated percentage of Daily Value, e.g. 28 for 28%"},
    },
}

RECIPE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "recipeName": {"type": "string", "description": "The title of the recipe."},
        "description": {"type": "string", "description": "A brief, engaging description of the dish."},
        "prepTime": {"type": "string", "description": 'Estimated preparation time, e.g. "15 minutes".'},
        "cookTime": {"type": "string", "description": 'Estimated cooking time, e.g. "30 minutes".'},
        "servings": {"type": "string", "description": 'How many people the recipe serves, e.g. "4 servings".'},
        "ingredients": {
            "type": "array",
            "description": "All ingredients with their quantities, one per line.",
            "items": {"type": "string"},
        },
        "instructions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "text": {"type": "string"},
                    "timerInSeconds": {
                        "type": "integer",
                        "description": "Duration mentioned in the step, in seconds. Omit if none.",
                    },
                },
                "required": ["text"],
            },
        },
        "notes": {"type": "string", "description": "Empty unless the source includes personal notes."},
        "cuisine": {"type": "string", "description": 'Cuisine of the dish, e.g. "Italian", "Mexican".'},
        "dietaryRestrictions": {
            "type": "array",
            "description": 'Diets the dish fits, e.g. "Vegetarian", "Vegan", "Gluten-Free".',
            "items": {"type": "string"},
        },
        "costAnalysis": {
            "type": "object",
            "properties": {
                "rating": {"type": "string", "description": '"$", "$$" or "$$$"'},
                "justification": {"type": "string"},
            },
        },
        "sustainabilityScore": {
            "type": "object",
            "properties": {
                "score": {"type": "string", "description": '"Low Impact", "Medium Impact" or "High Impact"'},
                "justification": {"type": "string"},
            },
        },
        "micronutrients": {
            "type": "object",
            "properties": {
                nutrient: _MICRONUTRIENT
                for nutrient in ("iron", "calcium", "fiber", "vitaminD", "potassium")
            },
        },
        "healthNudge": {"type": "string", "description": "A friendly, actionable health tip for this dish."},
    },
    "required": ["recipeName", "ingredients", "instructions", "description", "prepTime", "cookTime", "servings"],
}

SUBSTITUTES_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "substitutes": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "notes": {"type": "string", "description": "How to use it: quantity, preparation, flavor impact."},
                },
                "required": ["name", "notes"],
            },
        },
    },
    "required": ["substitutes"],
}

IMAGE_PROMPT_TEMPLATES = [
    "A bright and airy food photograph of: {dish}. Natural side lighting, minimalist styling with fresh "
    "garnishes, shot from a 45-degree angle on a clean, light background.",
    "A dark and moody food photograph of: {dish}. Dramatic low-key lighting, rustic dark wood and linen, "
    "shallow depth of field.",
    "A modern, minimalist food photograph of: {dish}. Geometric plating on a solid neutral background, "
    "top-down flat lay.",
    "A rustic, homestyle food photograph of: {dish}. Served on a wooden table in warm, gentle light.",
    "A vibrant and bold food photograph of: {dish}. Colorful ingredients scattered around, strong direct light.",
    "An extreme close-up macro food photograph of: {dish}. Highlighting textures, glazes and details.",
]

_ENRICHMENT_INSTRUCTIONS = """In addition to the basic recipe details, provide:
1. 'costAnalysis': a rating ('$', '$$' or '$$$') and a justification.
2. 'sustainabilityScore': a score ('Low Impact', 'Medium Impact', 'High Impact') and a justification.
3. 'micronutrients': an estimated per-serving snapshot for iron, calcium, fiber, vitaminD and potassium,
   each with an amount (e.g. "5mg") and percentOfDV as an integer.
4. 'healthNudge': a friendly, actionable health tip.
5. 'cuisine' and 'dietaryRestrictions' when they can be inferred."""

_TIMER_INSTRUCTIONS = (
    "For each instruction step that mentions a duration (e.g. 'simmer for 10 minutes'), "
    "set 'timerInSeconds' to that duration in seconds."
)


@dataclass
class Substitute:
    name: str
    notes: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "notes": self.notes}


def _normalize(data: dict[str, Any], source: str) -> dict[str, Any]:
    """Coerce a generated payload into recipe content ready for insertion.

    Raises:
        GenerationError: If the payload has no usable recipe name, or its
            ingredients or instructions are not shaped as the schema asks
    """
    name = data.get("recipeName")
    if not isinstance(name, str) or not name.strip():
        raise GenerationError("AI response did not include a recipe name")

    content: dict[str, Any] = {"recipeName": name.strip(), "source": source}
    for key in ("description", "prepTime", "cookTime", "servings"):
        value = data.get(key)
        content[key] = str(value).strip() if value not in (None, "") else DEFAULT_TEXT

    ingredients = data.get("ingredients")
    if ingredients is None:
        ingredients = []
    if not isinstance(ingredients, list):
        raise GenerationError("AI response ingredients must be a list")
    content["ingredients"] = [str(line).strip() for line in ingredients if str(line).strip()]

    instructions = data.get("instructions")
    if instructions is None:
        instructions = []
    if not isinstance(instructions, list):
        raise GenerationError("AI response instructions must be a list")
    steps = []
    for step in instructions:
        if isinstance(step, str):
            step = {"text": step}
        if not isinstance(step, dict) or not isinstance(step.get("text"), str):
            raise GenerationError(f"AI response has an invalid instruction step: {step!r}")
        if step["text"].strip():
            steps.append(step)
    content["instructions"] = steps

    diets = data.get("dietaryRestrictions")
    if isinstance(diets, list):
        content["dietaryRestrictions"] = [str(d) for d in diets if str(d).strip()]

    for key in ("notes", "cuisine", "healthNudge"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            content[key] = value.strip()

    for key in ("costAnalysis", "sustainabilityScore", "micronutrients"):
        if isinstance(data.get(key), dict):
            content[key] = data[key]

    return content


class RecipeClipper:
    """Clips, generates and remixes recipes through a GenerativeClient."""

    def __init__(self, client: GenerativeClient):
        self.client = client

    def _generate(self, prompt: str, source: str, image: tuple[bytes, str] | None = None) -> dict[str, Any]:
        data = self.client.request_structured_generation(
            prompt, RECIPE_SCHEMA, schema_name="recipe", image=image, temperature=0.3
        )
        return _normalize(data, source)

    def _photo_for(self, recipe_name: str) -> str | None:
        template = random.choice(IMAGE_PROMPT_TEMPLATES)
        image = self.client.request_image(template.format(dish=recipe_name))
        if image is None:
            logger.info("Continuing without a recipe photo", extra={"recipe_name": recipe_name})
            return None
        return image_data_url(image, "image/png")

    def extract_recipe(self, text: str) -> dict[str, Any]:
        """Extract a recipe from pasted text.

        Raises:
            GenerationError: If the text is blank or generation fails
        """
        if not text or not text.strip():
            raise GenerationError("Recipe text cannot be empty.")

        prompt = (
            "You are an expert recipe parsing AI. Extract the recipe in the text below into "
            f"structured JSON.\n\n{_TIMER_INSTRUCTIONS}\n\n{_ENRICHMENT_INSTRUCTIONS}\n\n"
            "If prepTime, cookTime or servings are not available, use \"N/A\".\n\n"
            f"Here is the recipe text:\n---\n{text.strip()}"
        )
        content = self._generate(prompt, "text")
        content["recipeImage"] = self._photo_for(content["recipeName"])
        logger.info("Recipe extracted from text", extra={"recipe_name": content["recipeName"]})
        return content

    def generate_recipe_from_title(self, title: str) -> dict[str, Any]:
        """Write a complete recipe for a dish title; the name is kept as given."""
        if not title or not title.strip():
            raise GenerationError("Recipe title cannot be empty.")
        title = title.strip()

        prompt = (
            f'You are an expert chef and recipe writer. Write a complete, easy to follow recipe for "{title}" '
            f"as structured JSON.\n\n{_TIMER_INSTRUCTIONS}\n\n{_ENRICHMENT_INSTRUCTIONS}\n\n"
            "Use the provided title as recipeName."
        )
        content = self._generate(prompt, "title")
        content["recipeName"] = title
        content["recipeImage"] = self._photo_for(title)
        logger.info("Recipe generated from title", extra={"recipe_name": title})
        return content

    def extract_recipe_from_image(self, image_data: bytes, mime_type: str = "image/jpeg") -> dict[str, Any]:
        """Read a recipe from a photo; the photo itself becomes the recipe image."""
        if not image_data:
            raise GenerationError("Recipe image cannot be empty.")

        logger.info("Starting image recipe extraction", extra={"size_bytes": len(image_data), "mime_type": mime_type})
        prompt = (
            "You are an expert recipe parsing AI. The image shows a recipe. Extract it into structured JSON. "
            "If handwritten, do your best to read it.\n\n"
            f"{_TIMER_INSTRUCTIONS}\n\n{_ENRICHMENT_INSTRUCTIONS}\n\n"
            "If prepTime, cookTime or servings are not visible, use \"N/A\"."
        )
        content = self._generate(prompt, "image", image=(image_data, mime_type))
        content["recipeImage"] = image_data_url(image_data, mime_type)
        logger.info("Recipe extracted from image", extra={"recipe_name": content["recipeName"]})
        return content

    def remix_recipe(self, recipe: Recipe, request: str) -> dict[str, Any]:
        """Return the full replacement content for ``recipe`` modified per ``request``."""
        if not request or not request.strip():
            raise GenerationError("Remix request cannot be empty.")

        original = recipe.to_dict()
        for key in ("id", "isFavorite", "recipeImage"):
            original.pop(key, None)

        prompt = (
            "You are an expert culinary AI that modifies recipes. Apply the user's request and return the "
            "ENTIRE modified recipe as one JSON object, not just the changes. Keep fields the change does not "
            "affect. The recipeName should reflect the change (e.g. \"Vegetarian Chili\" instead of \"Beef Chili\").\n\n"
            f'User\'s request: "{request.strip()}"\n\n'
            f"Original recipe:\n---\n{json.dumps(original, indent=2, ensure_ascii=False)}\n---"
        )
        content = self._generate(prompt, recipe.source or "text")
        content["recipeImage"] = self._photo_for(content["recipeName"]) or recipe.recipe_image
        logger.info("Recipe remixed", extra={"recipe_id": recipe.id, "recipe_name": content["recipeName"]})
        return content

    def find_substitutes(self, ingredient: str, recipe: Recipe) -> list[Substitute]:
        if not ingredient or not ingredient.strip():
            raise GenerationError("Ingredient cannot be empty.")

        prompt = (
            "You are a culinary assistant. Suggest 3-4 creative, practical substitutes for an ingredient, "
            "and for each explain briefly how to use it (quantity, preparation, flavor impact).\n\n"
            f'Recipe: "{recipe.recipe_name}"\n'
            f'Ingredient to substitute: "{ingredient.strip()}"\n'
            f"Other ingredients: {', '.join(recipe.ingredients)}"
        )
        data = self.client.request_structured_generation(prompt, SUBSTITUTES_SCHEMA, schema_name="substitutes")

        substitutes = []
        for entry in data.get("substitutes") or []:
            if isinstance(entry, dict) and str(entry.get("name", "")).strip():
                substitutes.append(Substitute(name=str(entry["name"]).strip(), notes=str(entry.get("notes", "")).strip()))
        if not substitutes:
            raise GenerationError("The AI could not find substitutes for this ingredient.")
        return substitutes
