import os
import secrets
import sys

# Flask secret key, used to sign the session holding the CSRF token.
# Set SECRET_KEY in the environment for production; a random key is
# generated on startup as a fallback (tokens won't survive restarts).
SECRET_KEY = os.environ.get("SECRET_KEY", secrets.token_hex(32))


# Check if we're running in a test environment
def _is_testing():
    """Check if code is running under pytest."""
    return "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ


# OpenAI API key (REQUIRED for clipping, remixing, planning and journeys)
# Get your API key at: https://platform.openai.com/api-keys
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "test-key" if _is_testing() else None)

if not OPENAI_API_KEY and not _is_testing():
    print("\n" + "=" * 70, file=sys.stderr)
    print("ERROR: OPENAI_API_KEY environment variable is required", file=sys.stderr)
    print("=" * 70, file=sys.stderr)
    print("\nThe OpenAI API key is required to clip and generate recipes.", file=sys.stderr)
    print("Get your API key at: https://platform.openai.com/api-keys", file=sys.stderr)
    print("\nThen set the environment variable:", file=sys.stderr)
    print("  export OPENAI_API_KEY='sk-...'", file=sys.stderr)
    print("\nOr add it to a .env file and load it before starting the app.", file=sys.stderr)
    print("=" * 70 + "\n", file=sys.stderr)
    sys.exit(1)

OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o")
OPENAI_IMAGE_MODEL = os.environ.get("OPENAI_IMAGE_MODEL", "gpt-image-1")
OPENAI_TIMEOUT = float(os.environ.get("OPENAI_TIMEOUT", "90"))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Persistence: one JSON file per key inside DATA_DIR
DATA_DIR = os.environ.get("RECIPE_CLIPPER_DATA_DIR", "data")
RECIPES_KEY = "userRecipes"
PANTRY_KEY = "pantryItems"
MEAL_PLAN_KEY = "mealPlan"
JOURNEY_KEY = "culinaryJourney"

DAYS_OF_WEEK = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Similarity threshold (0-100) for matching a pantry item against words of
# an ingredient line. 85 tolerates small spelling variants ("tomatoe") but
# not a different word sharing a prefix ("rice" vs "ricotta").
PANTRY_MATCH_THRESHOLD = 85

# A recipe missing at most this many ingredients is "nearly there".
NEARLY_THERE_MAX_MISSING = 2

# Uploaded recipe photos larger than this are rejected.
MAX_IMAGE_BYTES = 10 * 1024 * 1024
