from unittest.mock import Mock

import pytest

from recipe_clipper.ai_client import GenerationError
from recipe_clipper.unit_converter import (
    UnitConversionError,
    best_volume_unit,
    best_weight_unit,
    convert_locally,
    convert_units,
    unit_info,
)


class TestUnitInfo:
    def test_case_sensitive_spoons(self):
        assert unit_info("t") == ("volume", 4.92892)
        assert unit_info("T") == ("volume", 14.7868)

    def test_falls_back_to_lowercase(self):
        assert unit_info("Cups") == ("volume", 236.588)
        assert unit_info("KG") == ("weight", 1000)

    def test_unknown(self):
        assert unit_info("pinch") is None


class TestBestUnit:
    def test_volume(self):
        assert best_volume_unit(2000) == (2, "l")
        assert best_volume_unit(236.588) == (1, "cup")
        quantity, unit = best_volume_unit(29.5736)
        assert unit == "tbsp"
        assert quantity == pytest.approx(2, rel=1e-3)

    def test_weight(self):
        assert best_weight_unit(1500) == (1.5, "kg")
        assert best_weight_unit(10) == (10, "g")


class TestConvert:
    def test_volume_locally(self):
        assert convert_locally(1, "cup", "ml") == 236.59
        assert convert_locally(3, "tsp", "tbsp") == 1.0

    def test_weight_locally(self):
        assert convert_locally(1, "lb", "g") == 453.59

    def test_across_families_not_local(self):
        assert convert_locally(1, "cup", "g") is None
        assert convert_locally(1, "pinch", "g") is None

    def test_local_conversion_skips_assistant(self):
        assistant = Mock()
        assert convert_units(2, "cups", "ml", assistant) == 473.18
        assistant.convert_units.assert_not_called()

    def test_delegates_to_assistant(self):
        assistant = Mock()
        assistant.convert_units.return_value = 120.0

        assert convert_units(1, " cup ", "g", assistant) == 120.0
        assistant.convert_units.assert_called_once_with(1, "cup", "g")

    def test_without_assistant_raises(self):
        with pytest.raises(UnitConversionError):
            convert_units(1, "cup", "g")

    def test_blank_units_rejected(self):
        with pytest.raises(UnitConversionError):
            convert_units(1, "", "g", Mock())

    def test_assistant_failure_propagates(self):
        assistant = Mock()
        assistant.convert_units.side_effect = GenerationError("API timeout")
        with pytest.raises(GenerationError):
            convert_units(1, "cup", "g", assistant)
