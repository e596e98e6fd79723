from unittest.mock import Mock

import pytest

from recipe_clipper.ai_client import GenerationError, GenerativeClient
from recipe_clipper.journey import Journey
from recipe_clipper.kitchen_assistant import JOURNEY_SCHEMA, KitchenAssistant, RecipeSuggestion, plan_days
from tests.conftest import create_test_recipe
from tests.test_journey import JOURNEY_DATA


@pytest.fixture
def ai():
    return Mock(spec=GenerativeClient)


@pytest.fixture
def assistant(ai):
    return KitchenAssistant(ai)


@pytest.fixture
def saved():
    return [
        create_test_recipe("chili-1", "Chili", cuisine="Mexican", ingredients=["1 lb beef"]),
        create_test_recipe("soup-2", "Soup", ingredients=["4 tomatoes"]),
    ]


class TestPlanDays:
    @pytest.mark.parametrize("num_days,expected", [
        (3, ["Monday", "Tuesday", "Wednesday"]),
        (0, ["Monday"]),
        (12, ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]),
        ("2", ["Monday", "Tuesday"]),
        ("lots", ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]),
    ])
    def test_clamped(self, num_days, expected):
        assert plan_days(num_days) == expected


class TestPantrySuggestions:
    def test_parses_suggestions(self, assistant, ai):
        ai.request_structured_generation.return_value = {
            "suggestions": [
                {
                    "recipeName": "Fried Rice",
                    "description": "Quick and crispy.",
                    "requiredPantryIngredients": ["rice", "eggs"],
                    "optionalExtraIngredients": ["scallions"],
                },
                {"recipeName": "", "description": "nameless"},
                "junk",
            ]
        }

        result = assistant.suggest_recipes_from_pantry(["rice", "eggs"])

        assert result == [RecipeSuggestion("Fried Rice", "Quick and crispy.", ["rice", "eggs"], ["scallions"])]
        assert result[0].to_dict()["requiredPantryIngredients"] == ["rice", "eggs"]
        assert "rice, eggs" in ai.request_structured_generation.call_args.args[0]

    def test_empty_pantry_rejected(self, assistant, ai):
        with pytest.raises(GenerationError):
            assistant.suggest_recipes_from_pantry([])
        ai.request_structured_generation.assert_not_called()


class TestMealPlans:
    def test_plan_from_saved_drops_empty_days(self, assistant, ai, saved):
        ai.request_structured_generation.return_value = {
            "Monday": ["chili-1"],
            "Tuesday": [],
            "Wednesday": ["soup-2", "made-up"],
        }

        plan = assistant.plan_from_saved_recipes(saved, "cheap dinners", 3)

        assert plan == {"Monday": ["chili-1"], "Wednesday": ["soup-2", "made-up"]}
        prompt, schema = ai.request_structured_generation.call_args.args[:2]
        assert "chili-1" in prompt
        assert "cheap dinners" in prompt
        assert schema["required"] == ["Monday", "Tuesday", "Wednesday"]

    def test_plan_from_saved_requires_recipes(self, assistant):
        with pytest.raises(GenerationError):
            assistant.plan_from_saved_recipes([], "", 5)

    def test_pantry_items_included_in_prompt(self, assistant, ai, saved):
        ai.request_structured_generation.return_value = {}
        assistant.plan_from_saved_recipes(saved, "", 2, pantry_items=["lentils"])
        assert "lentils" in ai.request_structured_generation.call_args.args[0]

    def test_plan_new_recipes_returns_titles(self, assistant, ai):
        ai.request_structured_generation.return_value = {"Monday": ["Shakshuka"], "Tuesday": ["  "]}

        assert assistant.plan_new_recipes("vegetarian", 2) == {"Monday": ["Shakshuka"]}


class TestJourney:
    def test_generates_journey(self, assistant, ai, saved):
        ai.request_structured_generation.return_value = JOURNEY_DATA

        journey = assistant.generate_journey(saved)

        assert journey == Journey.from_dict(JOURNEY_DATA)
        assert ai.request_structured_generation.call_args.args[1] is JOURNEY_SCHEMA

    def test_incomplete_journey_is_generation_error(self, assistant, ai, saved):
        ai.request_structured_generation.return_value = {**JOURNEY_DATA, "cuisineTour": {"cuisineName": "Thai"}}
        with pytest.raises(GenerationError, match="incomplete journey"):
            assistant.generate_journey(saved)

    def test_requires_recipes(self, assistant):
        with pytest.raises(GenerationError):
            assistant.generate_journey([])


class TestConvertUnits:
    def test_returns_number(self, assistant, ai):
        ai.request_structured_generation.return_value = {"convertedValue": 125}

        assert assistant.convert_units(1, "cup", "g") == 125.0
        assert ai.request_structured_generation.call_args.kwargs["temperature"] == 0

    @pytest.mark.parametrize("value", ["125", None, True])
    def test_non_numeric_result_rejected(self, assistant, ai, value):
        ai.request_structured_generation.return_value = {"convertedValue": value}
        with pytest.raises(GenerationError):
            assistant.convert_units(1, "cup", "g")
