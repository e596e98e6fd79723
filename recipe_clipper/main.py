import logging
from collections.abc import Mapping
from typing import Any

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_wtf.csrf import CSRFProtect, generate_csrf

from recipe_clipper import config
from recipe_clipper.ai_client import GenerationError, GenerativeClient
from recipe_clipper.collection import RecipeCollection
from recipe_clipper.kitchen_assistant import KitchenAssistant
from recipe_clipper.logging_config import configure_logging
from recipe_clipper.recipe_extractor import RecipeClipper
from recipe_clipper.recipes import NotFound
from recipe_clipper.storage import JSONFileStore
from recipe_clipper.unit_converter import UnitConversionError, convert_units
from recipe_clipper.views import Filters

configure_logging(config.LOG_LEVEL)
logger = logging.getLogger(__name__)

csrf = CSRFProtect()
limiter = Limiter(
    get_remote_address,
    default_limits=[],          # no global limit; apply per-route only
    storage_uri="memory://",
)
AI_RATE_LIMIT = "10 per minute"

api = Blueprint("api", __name__)

# ---------------------------------------------------------------------------
# Image magic-bytes validation
# ---------------------------------------------------------------------------

_IMAGE_MAGIC: list[tuple[bytes, bytes | None, int, str]] = [
    # (prefix, suffix_at_offset, suffix_offset, mime_type)
    (b"\x89PNG\r\n\x1a\n", None, 0, "image/png"),
    (b"\xff\xd8\xff", None, 0, "image/jpeg"),
    (b"GIF87a", None, 0, "image/gif"),
    (b"GIF89a", None, 0, "image/gif"),
    (b"RIFF", b"WEBP", 8, "image/webp"),  # RIFF????WEBP
]


def _detect_image_mime(data: bytes) -> str | None:
    for prefix, suffix, suffix_offset, mime_type in _IMAGE_MAGIC:
        if data[: len(prefix)] == prefix:
            if suffix is None or data[suffix_offset: suffix_offset + len(suffix)] == suffix:
                return mime_type
    return None


def _is_valid_image_bytes(data: bytes) -> bool:
    """Return True if *data* starts with magic bytes for a supported image format."""
    return _detect_image_mime(data) is not None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _collection() -> RecipeCollection:
    return current_app.extensions["recipe_collection"]


def _clipper() -> RecipeClipper:
    return current_app.extensions["recipe_clipper"]


def _assistant() -> KitchenAssistant:
    return current_app.extensions["kitchen_assistant"]


def _error(error: str, message: str, status: int):
    return jsonify({"error": error, "message": message}), status


def _json_body() -> dict[str, Any] | None:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _invalid_body():
    return _error("Invalid request", "Request body must be a JSON object", 400)


def _not_found(result: NotFound):
    return _error("Recipe not found", f"No recipe found with ID '{result.recipe_id}'", 404)


def _generation_failed(message: str, e: GenerationError):
    logger.warning("Generation failed", extra={"endpoint": request.endpoint, "reason": str(e)})
    return _error("Generation failed", f"{message} {e}", 502)


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _meal_plan_payload(collection: RecipeCollection) -> dict[str, Any]:
    return {
        "mealPlan": collection.meal_plan,
        "plannedRecipeCount": collection.planned_recipe_count(),
    }


# ---------------------------------------------------------------------------
# Recipes
# ---------------------------------------------------------------------------

@api.route("/csrf-token", methods=["GET"])
def csrf_token():
    """Token for the X-CSRFToken header on state-changing requests."""
    return jsonify({"csrfToken": generate_csrf()})


@api.route("/recipes", methods=["GET"])
def list_recipes():
    """Filtered recipe list plus the facet values for the filter dropdowns.

    Query parameters: search, cuisine, dietary, prepTime, favorites
    """
    collection = _collection()
    filters = Filters.from_mapping(request.args)
    recipes = collection.filtered_recipes(filters, show_favorites_only=_truthy(request.args.get("favorites")))
    return jsonify({
        "recipes": [recipe.to_dict() for recipe in recipes],
        "cuisines": collection.cuisines(),
        "diets": collection.diets(),
        "selectedRecipeId": collection.selected_recipe_id,
        "plannedRecipeCount": collection.planned_recipe_count(),
    })


@api.route("/recipes/clip", methods=["POST"])
@limiter.limit(AI_RATE_LIMIT)
def clip_recipe():
    """Clip a recipe from pasted text or generate one from a title."""
    data = _json_body()
    if data is None:
        return _invalid_body()

    clip_type = data.get("type", "paste")
    content = data.get("content")
    if clip_type not in ("paste", "title"):
        return _error("Invalid request", "type must be 'paste' or 'title'", 400)
    if not isinstance(content, str) or not content.strip():
        return _error("Invalid request", "content is required", 400)

    logger.info("Clipping recipe", extra={"clip_type": clip_type, "content_length": len(content)})
    try:
        if clip_type == "paste":
            recipe_data = _clipper().extract_recipe(content)
        else:
            recipe_data = _clipper().generate_recipe_from_title(content)
    except GenerationError as e:
        return _generation_failed("We couldn't clip that recipe.", e)

    recipe = _collection().add_recipe(recipe_data)
    return jsonify(recipe.to_dict()), 201


@api.route("/recipes/clip-image", methods=["POST"])
@limiter.limit(AI_RATE_LIMIT)
def clip_recipe_image():
    """Clip a recipe from an uploaded photo (multipart field ``image``)."""
    if "image" not in request.files:
        return _error("No image provided", "Image file is required", 400)

    image_data = request.files["image"].read()
    if not image_data:
        return _error("Empty file", "The uploaded image file is empty", 400)
    if len(image_data) > config.MAX_IMAGE_BYTES:
        logger.warning("Image upload rejected: too large", extra={"size_bytes": len(image_data)})
        return _error("File too large", f"Images must be under {config.MAX_IMAGE_BYTES // (1024 * 1024)} MB", 400)

    mime_type = _detect_image_mime(image_data)
    if mime_type is None:
        logger.warning("Image upload rejected: magic bytes do not match any supported format",
                       extra={"size_bytes": len(image_data)})
        return _error("Invalid file content", "File does not appear to be a valid image", 400)

    try:
        recipe_data = _clipper().extract_recipe_from_image(image_data, mime_type)
    except GenerationError as e:
        return _generation_failed("We couldn't read a recipe from that photo.", e)

    recipe = _collection().add_recipe(recipe_data)
    return jsonify(recipe.to_dict()), 201


@api.route("/recipes/<recipe_id>", methods=["GET"])
def get_recipe(recipe_id: str):
    result = _collection().get_recipe(recipe_id)
    if isinstance(result, NotFound):
        return _not_found(result)
    return jsonify(result.to_dict())


@api.route("/recipes/<recipe_id>", methods=["PUT"])
def update_recipe(recipe_id: str):
    """Partially update a recipe; only the given fields change."""
    data = _json_body()
    if data is None:
        return _invalid_body()
    try:
        result = _collection().update_recipe(recipe_id, data)
    except ValueError as e:
        return _error("Validation error", str(e), 400)
    if isinstance(result, NotFound):
        return _not_found(result)
    return jsonify(result.to_dict())


@api.route("/recipes/<recipe_id>", methods=["DELETE"])
def delete_recipe(recipe_id: str):
    collection = _collection()
    result = collection.delete_recipe(recipe_id)
    if isinstance(result, NotFound):
        return _not_found(result)
    return jsonify({
        "deleted": result.recipe.id,
        "selectedRecipeId": collection.selected_recipe_id,
        **_meal_plan_payload(collection),
    })


@api.route("/recipes/<recipe_id>/favorite", methods=["POST"])
def favorite_recipe(recipe_id: str):
    """Set ``isFavorite`` when given, otherwise toggle it."""
    data = request.get_json(silent=True) or {}
    collection = _collection()
    if isinstance(data, Mapping) and "isFavorite" in data:
        if not isinstance(data["isFavorite"], bool):
            return _error("Validation error", "isFavorite must be a boolean", 400)
        result = collection.set_favorite(recipe_id, data["isFavorite"])
    else:
        result = collection.toggle_favorite(recipe_id)
    if isinstance(result, NotFound):
        return _not_found(result)
    return jsonify(result.to_dict())


@api.route("/recipes/<recipe_id>/select", methods=["POST"])
def select_recipe(recipe_id: str):
    result = _collection().select_recipe(recipe_id)
    if isinstance(result, NotFound):
        return _not_found(result)
    return jsonify({"selectedRecipeId": recipe_id})


@api.route("/recipes/<recipe_id>/remix", methods=["POST"])
@limiter.limit(AI_RATE_LIMIT)
def remix_recipe(recipe_id: str):
    data = _json_body()
    if data is None:
        return _invalid_body()
    prompt = data.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        return _error("Invalid request", "prompt is required", 400)

    collection = _collection()
    recipe = collection.get_recipe(recipe_id)
    if isinstance(recipe, NotFound):
        return _not_found(recipe)

    try:
        content = _clipper().remix_recipe(recipe, prompt)
    except GenerationError as e:
        return _generation_failed("We couldn't remix that recipe.", e)

    result = collection.remix_recipe(recipe_id, content)
    if isinstance(result, NotFound):
        return _not_found(result)
    return jsonify(result.to_dict())


@api.route("/recipes/<recipe_id>/substitutes", methods=["POST"])
@limiter.limit(AI_RATE_LIMIT)
def find_substitutes(recipe_id: str):
    data = _json_body()
    if data is None:
        return _invalid_body()
    ingredient = data.get("ingredient")
    if not isinstance(ingredient, str) or not ingredient.strip():
        return _error("Invalid request", "ingredient is required", 400)

    recipe = _collection().get_recipe(recipe_id)
    if isinstance(recipe, NotFound):
        return _not_found(recipe)

    try:
        substitutes = _clipper().find_substitutes(ingredient, recipe)
    except GenerationError as e:
        return _generation_failed("We couldn't find substitutes.", e)
    return jsonify({"ingredient": ingredient.strip(), "substitutes": [s.to_dict() for s in substitutes]})


# ---------------------------------------------------------------------------
# Pantry
# ---------------------------------------------------------------------------

@api.route("/pantry", methods=["GET"])
def get_pantry():
    return jsonify({"pantryItems": _collection().pantry_items})


@api.route("/pantry", methods=["POST"])
def add_pantry_item():
    data = _json_body()
    if data is None:
        return _invalid_body()
    item = data.get("item")
    if not isinstance(item, str):
        return _error("Invalid request", "item must be a string", 400)
    collection = _collection()
    added = collection.add_pantry_item(item)
    return jsonify({"added": added, "pantryItems": collection.pantry_items}), 201 if added else 200


@api.route("/pantry/<path:item>", methods=["DELETE"])
def remove_pantry_item(item: str):
    collection = _collection()
    if not collection.remove_pantry_item(item):
        return _error("Pantry item not found", f"'{item}' is not in the pantry", 404)
    return jsonify({"pantryItems": collection.pantry_items})


@api.route("/pantry/analyze", methods=["POST"])
@limiter.limit(AI_RATE_LIMIT)
def analyze_pantry():
    """``type=saved`` matches saved recipes locally; ``type=ai`` asks for new dish ideas."""
    data = request.get_json(silent=True) or {}
    analysis_type = data.get("type", "saved") if isinstance(data, Mapping) else "saved"
    collection = _collection()

    if analysis_type == "saved":
        return jsonify({"type": "saved", **collection.pantry_availability().to_dict()})
    if analysis_type != "ai":
        return _error("Invalid request", "type must be 'saved' or 'ai'", 400)

    try:
        suggestions = _assistant().suggest_recipes_from_pantry(collection.pantry_items)
    except GenerationError as e:
        return _generation_failed("We couldn't come up with ideas from your pantry.", e)
    return jsonify({"type": "ai", "suggestions": [s.to_dict() for s in suggestions]})


# ---------------------------------------------------------------------------
# Meal plan
# ---------------------------------------------------------------------------

@api.route("/meal-plan", methods=["GET"])
def get_meal_plan():
    return jsonify(_meal_plan_payload(_collection()))


@api.route("/meal-plan", methods=["PUT"])
def replace_meal_plan():
    data = _json_body()
    if data is None:
        return _invalid_body()
    plan = data.get("mealPlan", data)
    if not isinstance(plan, Mapping):
        return _error("Invalid request", "mealPlan must be an object", 400)
    collection = _collection()
    collection.replace_meal_plan(plan)
    return jsonify(_meal_plan_payload(collection))


@api.route("/meal-plan", methods=["DELETE"])
def clear_meal_plan():
    collection = _collection()
    collection.clear_meal_plan()
    return jsonify(_meal_plan_payload(collection))


def _day_and_recipe(data: Mapping[str, Any]) -> tuple[str, str] | None:
    day, recipe_id = data.get("day"), data.get("recipeId")
    if not isinstance(day, str) or not isinstance(recipe_id, str):
        return None
    return day, recipe_id


@api.route("/meal-plan/assign", methods=["POST"])
def assign_meal():
    data = _json_body()
    fields = _day_and_recipe(data) if data is not None else None
    if fields is None:
        return _error("Invalid request", "day and recipeId are required", 400)
    day, recipe_id = fields
    if day not in config.DAYS_OF_WEEK:
        return _error("Invalid day", f"day must be one of {', '.join(config.DAYS_OF_WEEK)}", 400)

    collection = _collection()
    result = collection.assign_meal(day, recipe_id)
    if isinstance(result, NotFound):
        return _not_found(result)
    return jsonify({"assigned": result, **_meal_plan_payload(collection)})


@api.route("/meal-plan/unassign", methods=["POST"])
def unassign_meal():
    data = _json_body()
    fields = _day_and_recipe(data) if data is not None else None
    if fields is None:
        return _error("Invalid request", "day and recipeId are required", 400)
    collection = _collection()
    removed = collection.unassign_meal(*fields)
    return jsonify({"removed": removed, **_meal_plan_payload(collection)})


@api.route("/meal-plan/generate", methods=["POST"])
@limiter.limit(AI_RATE_LIMIT)
def generate_meal_plan():
    """Generate a plan from saved recipes (``mode=saved``) or brand-new ones (``mode=new``)."""
    data = _json_body()
    if data is None:
        return _invalid_body()
    mode = data.get("mode", "saved")
    goal = data.get("goal") or ""
    num_days = data.get("numDays", 5)
    if mode not in ("saved", "new"):
        return _error("Invalid request", "mode must be 'saved' or 'new'", 400)
    if not isinstance(goal, str) or isinstance(num_days, bool) or not isinstance(num_days, int):
        return _error("Invalid request", "goal must be a string and numDays an integer", 400)

    collection = _collection()
    pantry_items = collection.pantry_items if data.get("usePantry", True) else None

    try:
        if mode == "saved":
            plan = _assistant().plan_from_saved_recipes(collection.recipes, goal, num_days, pantry_items)
        else:
            titles = _assistant().plan_new_recipes(goal, num_days, pantry_items)
            plan = {}
            for day, day_titles in titles.items():
                for title in day_titles:
                    recipe_data = _clipper().generate_recipe_from_title(title)
                    recipe_data["source"] = "plan"
                    plan.setdefault(day, []).append(collection.add_recipe(recipe_data).id)
    except GenerationError as e:
        return _generation_failed("We couldn't generate a meal plan.", e)

    collection.replace_meal_plan(plan)
    logger.info("Meal plan generated", extra={"mode": mode, "planned": collection.planned_recipe_count()})
    return jsonify(_meal_plan_payload(collection))


@api.route("/shopping-list", methods=["GET"])
def shopping_list():
    shopping = _collection().shopping_list()
    return jsonify({"categories": shopping.categories(), "itemCount": len(shopping.items)})


# ---------------------------------------------------------------------------
# Journey
# ---------------------------------------------------------------------------

@api.route("/journey", methods=["GET"])
def get_journey():
    journey = _collection().journey
    return jsonify({"journey": journey.to_dict() if journey else None})


@api.route("/journey", methods=["DELETE"])
def clear_journey():
    _collection().clear_journey()
    return jsonify({"journey": None})


@api.route("/journey/generate", methods=["POST"])
@limiter.limit(AI_RATE_LIMIT)
def generate_journey():
    collection = _collection()
    try:
        journey = _assistant().generate_journey(collection.recipes)
    except GenerationError as e:
        return _generation_failed("We couldn't plan your culinary journey.", e)
    collection.set_journey(journey)
    return jsonify({"journey": journey.to_dict()})


# ---------------------------------------------------------------------------
# Unit conversion
# ---------------------------------------------------------------------------

@api.route("/convert-units", methods=["POST"])
@limiter.limit(AI_RATE_LIMIT)
def convert_units_endpoint():
    data = _json_body()
    if data is None:
        return _invalid_body()
    value, from_unit, to_unit = data.get("value"), data.get("fromUnit"), data.get("toUnit")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return _error("Invalid request", "value must be a number", 400)
    if not isinstance(from_unit, str) or not isinstance(to_unit, str):
        return _error("Invalid request", "fromUnit and toUnit are required", 400)

    try:
        converted = convert_units(value, from_unit, to_unit, assistant=_assistant())
    except UnitConversionError as e:
        return _error("Invalid conversion", str(e), 400)
    except GenerationError as e:
        return _generation_failed(f"We couldn't convert {from_unit} to {to_unit}.", e)
    return jsonify({"value": value, "fromUnit": from_unit, "toUnit": to_unit, "convertedValue": converted})


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    collection: RecipeCollection | None = None,
    clipper: RecipeClipper | None = None,
    assistant: KitchenAssistant | None = None,
    test_config: Mapping[str, Any] | None = None,
) -> Flask:
    """Build the app around one recipe collection and its AI collaborators.

    Missing pieces are built from ``config``: the collection is loaded from
    JSON files in ``DATA_DIR`` and both collaborators share one OpenAI client.
    """
    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.SECRET_KEY
    app.config["MAX_CONTENT_LENGTH"] = config.MAX_IMAGE_BYTES + 1024 * 1024
    if test_config:
        app.config.update(test_config)

    if collection is None:
        collection = RecipeCollection.load(JSONFileStore(config.DATA_DIR))
    if clipper is None or assistant is None:
        client = GenerativeClient()
        clipper = clipper or RecipeClipper(client)
        assistant = assistant or KitchenAssistant(client)

    app.extensions["recipe_collection"] = collection
    app.extensions["recipe_clipper"] = clipper
    app.extensions["kitchen_assistant"] = assistant

    csrf.init_app(app)
    limiter.init_app(app)
    app.register_blueprint(api)

    @app.errorhandler(429)
    def rate_limited(e):
        logger.warning("Rate limit exceeded", extra={"path": request.path, "limit": str(e.description)})
        return _error("Too many requests", f"Rate limit exceeded: {e.description}", 429)

    @app.errorhandler(413)
    def too_large(e):
        return _error("File too large", "The upload exceeds the maximum allowed size", 413)

    logger.info("App created", extra={"recipe_count": len(collection.recipes)})
    return app


if __name__ == "__main__":
    # One collection per process; requests must not interleave
    create_app().run(threaded=False)
