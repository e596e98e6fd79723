import pytest

from recipe_clipper.ingredients import categorize, normalize_name, parse_ingredient_line, parse_quantity


class TestParseQuantity:
    @pytest.mark.parametrize("text,expected", [
        ("2", 2.0),
        ("1.5", 1.5),
        ("1/4", 0.25),
        ("1 1/2", 1.5),
        ("½", 0.5),
        ("1½", 1.5),
        ("1/0", None),
        ("abc", None),
    ])
    def test_formats(self, text, expected):
        assert parse_quantity(text) == expected


class TestParseIngredientLine:
    def test_quantity_unit_item(self):
        line = parse_ingredient_line("2 cups flour")
        assert (line.quantity, line.unit, line.item, line.category) == (2.0, "cups", "flour", "grains")

    def test_attached_unit(self):
        line = parse_ingredient_line("120g flour")
        assert (line.quantity, line.unit, line.item) == (120.0, "g", "flour")

    def test_fluid_ounces(self):
        line = parse_ingredient_line("4 fl oz milk")
        assert (line.unit, line.item) == ("fl oz", "milk")

    def test_no_unit(self):
        line = parse_ingredient_line("2 large eggs")
        assert (line.quantity, line.unit, line.item, line.category) == (2.0, "", "large eggs", "dairy")

    def test_count_unit(self):
        line = parse_ingredient_line("3 cloves garlic, minced")
        assert (line.quantity, line.unit, line.item) == (3.0, "cloves", "garlic")

    def test_no_quantity(self):
        line = parse_ingredient_line("Salt to taste")
        assert line.quantity is None
        assert line.item == "Salt"

    def test_strips_parentheses_and_of(self):
        line = parse_ingredient_line("1 cup of rice (uncooked)")
        assert (line.unit, line.item) == ("cup", "rice")

    def test_single_letter_unit_needs_item(self):
        line = parse_ingredient_line("2 T butter")
        assert (line.unit, line.item) == ("T", "butter")


class TestCategorize:
    @pytest.mark.parametrize("item,category", [
        ("chicken thighs", "meat"),
        ("red onion", "produce"),
        ("cheddar", "dairy"),
        ("basmati rice", "grains"),
        ("smoked paprika", "spices"),
        ("olive oil", "pantry"),
        ("tofu", "other"),
    ])
    def test_categories(self, item, category):
        assert categorize(item) == category


class TestNormalizeName:
    @pytest.mark.parametrize("name,expected", [
        ("Tomatoes", "tomato"),
        ("carrots", "carrot"),
        ("Jalapeño", "jalapeno"),
        ("swiss", "swiss"),
        ("peas", "peas"),
    ])
    def test_normalizes(self, name, expected):
        assert normalize_name(name) == expected
