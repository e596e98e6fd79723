"""Cooking unit conversion.

Volume and weight conversions are done locally from fixed tables. Anything
else (cups of flour to grams, say) needs ingredient knowledge and is handed to
the kitchen assistant when one is available.
"""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class UnitConversionError(ValueError):
    """Raised when a conversion can't be done locally and no assistant is available."""
    pass


class _Converter(Protocol):
    def convert_units(self, value: float, from_unit: str, to_unit: str) -> float: ...


# ---------------------------------------------------------------------------
# Conversion tables
# All volume units are expressed in ml; all weight units in grams.
# ---------------------------------------------------------------------------

VOLUME_TO_ML: dict[str, float] = {
    "ml": 1, "milliliter": 1, "milliliters": 1, "millilitre": 1, "millilitres": 1,
    "t": 4.92892, "tsp": 4.92892, "teaspoon": 4.92892, "teaspoons": 4.92892,
    "T": 14.7868, "tbsp": 14.7868, "Tbsp": 14.7868, "tablespoon": 14.7868, "tablespoons": 14.7868,
    "fl oz": 29.5735, "fluid ounce": 29.5735, "fluid ounces": 29.5735,
    "c": 236.588, "cup": 236.588, "cups": 236.588,
    "pt": 473.176, "pint": 473.176, "pints": 473.176,
    "qt": 946.353, "quart": 946.353, "quarts": 946.353,
    "l": 1000, "liter": 1000, "liters": 1000, "litre": 1000, "litres": 1000,
    "gal": 3785.41, "gallon": 3785.41, "gallons": 3785.41,
}

WEIGHT_TO_G: dict[str, float] = {
    "g": 1, "gram": 1, "grams": 1,
    "kg": 1000, "kilogram": 1000, "kilograms": 1000,
    "oz": 28.3495, "ounce": 28.3495, "ounces": 28.3495,
    "lb": 453.592, "pound": 453.592, "pounds": 453.592, "lbs": 453.592,
}


def unit_info(unit: str) -> tuple[str, float] | None:
    """Return ``(family, base_equivalent)`` or None if the unit is unrecognised.

    family is 'volume' (base=ml) or 'weight' (base=g). Lookup is case-sensitive
    first so 't' (tsp) and 'T' (tbsp) stay distinct, then case-insensitive.
    """
    stripped = unit.strip()
    for candidate in (stripped, stripped.lower()):
        if candidate in VOLUME_TO_ML:
            return ("volume", VOLUME_TO_ML[candidate])
        if candidate in WEIGHT_TO_G:
            return ("weight", WEIGHT_TO_G[candidate])
    return None


def best_volume_unit(total_ml: float) -> tuple[float, str]:
    """Return (quantity, unit) in the most readable volume unit for total_ml."""
    if total_ml >= 1000:
        return total_ml / 1000, "l"
    if total_ml >= 59.1471:   # ≥ ¼ cup
        return total_ml / 236.588, "cup"
    if total_ml >= 14.7868:   # ≥ 1 tbsp
        return total_ml / 14.7868, "tbsp"
    return total_ml / 4.92892, "tsp"


def best_weight_unit(total_g: float) -> tuple[float, str]:
    """Return (quantity, unit) in the most readable weight unit for total_g."""
    if total_g >= 1000:
        return total_g / 1000, "kg"
    if total_g >= 453.592:
        return total_g / 453.592, "lb"
    if total_g >= 28.3495:
        return total_g / 28.3495, "oz"
    return total_g, "g"


def convert_locally(value: float, from_unit: str, to_unit: str) -> float | None:
    """Convert within one family; None when either unit is unknown or the families differ."""
    source = unit_info(from_unit)
    target = unit_info(to_unit)
    if source is None or target is None or source[0] != target[0]:
        return None
    return round(value * source[1] / target[1], 2)


def convert_units(value: float, from_unit: str, to_unit: str, assistant: _Converter | None = None) -> float:
    """Convert ``value`` between cooking units.

    Raises:
        UnitConversionError: If the units are blank, or the conversion is not
            local and no assistant was given
        GenerationError: If the assistant is asked and fails
    """
    if not from_unit or not from_unit.strip() or not to_unit or not to_unit.strip():
        raise UnitConversionError("Both units are required")

    local = convert_locally(value, from_unit, to_unit)
    if local is not None:
        return local

    if assistant is None:
        raise UnitConversionError(f"Cannot convert {from_unit} to {to_unit} without the AI assistant")

    logger.info("Asking assistant for unit conversion", extra={"from_unit": from_unit, "to_unit": to_unit})
    return assistant.convert_units(value, from_unit.strip(), to_unit.strip())
