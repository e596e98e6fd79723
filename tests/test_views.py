import pytest

from recipe_clipper.views import (
    ALL,
    Filters,
    available_cuisines,
    available_diets,
    filtered_recipes,
    ingredient_in_pantry,
    pantry_availability,
    parse_prep_minutes,
    planned_recipe_count,
    planned_recipes,
    prep_time_bucket,
)
from tests.conftest import create_test_recipe


@pytest.fixture
def recipes():
    return [
        create_test_recipe("tacos", "Fish Tacos", description="Crispy and fresh", prep_time="20 minutes",
                           cuisine="Mexican", dietary_restrictions=["Pescatarian"]),
        create_test_recipe("pasta", "Pasta Primavera", description="Spring vegetables", prep_time="10 mins",
                           cuisine="Italian", dietary_restrictions=["Vegetarian"], is_favorite=True),
        create_test_recipe("curry", "Chickpea Curry", description="Warming TACO-free stew", prep_time="45 minutes",
                           cuisine="indian", dietary_restrictions=["Vegan", "Vegetarian"]),
        create_test_recipe("salad", "Greek Salad", prep_time="N/A"),
    ]


class TestPrepTime:
    @pytest.mark.parametrize("text,minutes", [
        ("15 minutes", 15),
        ("About 1 hour 20 minutes", 1),
        ("N/A", 0),
        ("", 0),
        (None, 0),
    ])
    def test_parse_first_integer(self, text, minutes):
        assert parse_prep_minutes(text) == minutes

    @pytest.mark.parametrize("text,bucket", [
        ("N/A", "<15"),
        ("14 minutes", "<15"),
        ("15 minutes", "15-30"),
        ("30 minutes", "15-30"),
        ("31 minutes", ">30"),
    ])
    def test_buckets_inclusive_at_both_ends(self, text, bucket):
        assert prep_time_bucket(text) == bucket


class TestFilteredRecipes:
    def test_favorites_first_stable(self):
        a = create_test_recipe("a", "A")
        b = create_test_recipe("b", "B", is_favorite=True)
        c = create_test_recipe("c", "C")
        d = create_test_recipe("d", "D", is_favorite=True)

        assert [r.id for r in filtered_recipes([a, b, c, d])] == ["b", "d", "a", "c"]

    def test_no_filters_returns_everything(self, recipes):
        assert len(filtered_recipes(recipes)) == 4

    def test_favorites_only(self, recipes):
        assert [r.id for r in filtered_recipes(recipes, show_favorites_only=True)] == ["pasta"]

    def test_search_name_and_description_case_insensitive(self, recipes):
        result = filtered_recipes(recipes, Filters(search_term="taco"))
        assert [r.id for r in result] == ["tacos", "curry"]

    def test_search_whitespace_matches_all(self, recipes):
        assert len(filtered_recipes(recipes, Filters(search_term="   "))) == 4

    def test_cuisine_exact(self, recipes):
        assert [r.id for r in filtered_recipes(recipes, Filters(cuisine="Italian"))] == ["pasta"]
        assert filtered_recipes(recipes, Filters(cuisine="italian")) == []

    def test_dietary_membership(self, recipes):
        result = filtered_recipes(recipes, Filters(dietary="Vegetarian"))
        assert [r.id for r in result] == ["pasta", "curry"]

    def test_prep_time_bucket(self, recipes):
        assert [r.id for r in filtered_recipes(recipes, Filters(prep_time="<15"))] == ["pasta", "salad"]
        assert [r.id for r in filtered_recipes(recipes, Filters(prep_time="15-30"))] == ["tacos"]
        assert [r.id for r in filtered_recipes(recipes, Filters(prep_time=">30"))] == ["curry"]

    def test_filters_combine(self, recipes):
        result = filtered_recipes(recipes, Filters(dietary="Vegetarian", prep_time=">30"))
        assert [r.id for r in result] == ["curry"]

    def test_does_not_mutate_input(self, recipes):
        before = [r.id for r in recipes]
        filtered_recipes(recipes)
        assert [r.id for r in recipes] == before


class TestFiltersFromMapping:
    def test_defaults(self):
        assert Filters.from_mapping({}) == Filters("", ALL, ALL, ALL)

    def test_request_keys(self):
        filters = Filters.from_mapping({"search": "soup", "cuisine": "Thai", "dietary": "Vegan", "prepTime": "<15"})
        assert filters == Filters("soup", "Thai", "Vegan", "<15")


class TestFacets:
    def test_cuisines_all_first_then_sorted(self, recipes):
        assert available_cuisines(recipes) == ["All", "indian", "Italian", "Mexican"]

    def test_diets_distinct(self, recipes):
        assert available_diets(recipes) == ["All", "Pescatarian", "Vegan", "Vegetarian"]

    def test_empty_collection(self):
        assert available_cuisines([]) == ["All"]
        assert available_diets([]) == ["All"]


class TestPlanned:
    def test_count_counts_every_occurrence(self):
        assert planned_recipe_count({"Monday": ["a", "b"], "Friday": ["a"]}) == 3
        assert planned_recipe_count({}) == 0

    def test_planned_recipes_weekday_order(self, recipes):
        pairs = planned_recipes(recipes, {"Friday": ["curry"], "Monday": ["tacos", "ghost"]})
        assert [(day, r.id) for day, r in pairs] == [("Monday", "tacos"), ("Friday", "curry")]


class TestPantryMatching:
    def test_whole_word_match(self):
        assert ingredient_in_pantry("2 cups basmati rice", ["Rice"])

    def test_plural_matches(self):
        assert ingredient_in_pantry("3 ripe tomatoes, diced", ["tomato"])

    def test_prefix_of_longer_word_does_not_match(self):
        assert not ingredient_in_pantry("250g ricotta", ["rice"])
        assert not ingredient_in_pantry("1 cup rice", ["ric"])

    def test_short_name_plural(self):
        assert ingredient_in_pantry("2 large eggs", ["egg"])
        assert not ingredient_in_pantry("1 cup rice", [])

    def test_multi_word_pantry_item(self):
        assert ingredient_in_pantry("2 tbsp extra virgin olive oil", ["Olive Oil"])

    def test_unrelated_item_does_not_match(self):
        assert not ingredient_in_pantry("1 lb chicken thighs", ["rice", "beans"])

    def test_staples_always_on_hand(self):
        assert ingredient_in_pantry("1 tsp salt", [])
        assert ingredient_in_pantry("2 cups water", [])

    def test_staple_inside_another_name_does_not_match(self):
        assert not ingredient_in_pantry("1 pint vanilla ice cream", [])
        assert not ingredient_in_pantry("2 tbsp salted butter", [])

    def test_pantry_word_must_name_the_ingredient(self):
        assert not ingredient_in_pantry("3 tbsp olive oil", ["olive"])
        assert not ingredient_in_pantry("1 cup tomato sauce", ["tomato"])

    def test_compound_needs_whole_name(self):
        assert not ingredient_in_pantry("2 tbsp peanut butter", ["Butter"])
        assert ingredient_in_pantry("2 tbsp peanut butter", ["Peanut Butter"])
        assert ingredient_in_pantry("1 pint vanilla ice cream", ["ice cream"])
        assert ingredient_in_pantry("2 tbsp unsalted butter", ["Butter"])

    def test_availability_split(self):
        ready = create_test_recipe("ready", "Rice and Beans", ingredients=["1 cup rice", "1 can beans", "salt"])
        nearly = create_test_recipe("nearly", "Burrito", ingredients=["1 cup rice", "1 tortilla", "1 avocado"])
        far = create_test_recipe("far", "Lasagna", ingredients=["pasta sheets", "ricotta", "spinach", "beef"])
        empty = create_test_recipe("empty", "Mystery")

        analysis = pantry_availability([ready, nearly, far, empty], ["rice", "beans"])

        assert [r.recipe_id for r in analysis.ready_to_cook] == ["ready"]
        assert [r.recipe_id for r in analysis.nearly_there] == ["nearly"]
        assert analysis.nearly_there[0].missing_ingredients == ["1 tortilla", "1 avocado"]
        assert analysis.nearly_there[0].matched_count == 1
        assert analysis.nearly_there[0].total_count == 3

    def test_nearly_there_ordered_by_fewest_missing(self):
        two = create_test_recipe("two", "Two", ingredients=["rice", "kale", "tofu"])
        one = create_test_recipe("one", "One", ingredients=["rice", "kale"])

        analysis = pantry_availability([two, one], ["rice"])
        assert [r.recipe_id for r in analysis.nearly_there] == ["one", "two"]

    def test_to_dict_shape(self):
        recipe = create_test_recipe("r", "R", ingredients=["rice"])
        data = pantry_availability([recipe], ["rice"]).to_dict()
        assert data["readyToCook"][0]["recipeId"] == "r"
        assert data["nearlyThere"] == []
