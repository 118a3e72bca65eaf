"""
Closed unit table for mass balance arithmetic.

Every quantity is converted to the base unit of its dimension with exact
Decimal factors. Units of different dimensions never convert into each other:
60 l of water is not 60 kg, and 12 loaves is not a weight. An unknown unit or
a cross-dimension pairing raises UnitMismatchError.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Iterable

from shared.utils.exceptions import UnitMismatchError


class Dimension(str, Enum):
    MASS = "mass"
    VOLUME = "volume"
    COUNT = "count"


class Unit(str, Enum):
    MILLIGRAM = "mg"
    GRAM = "g"
    KILOGRAM = "kg"
    TONNE = "t"
    OUNCE = "oz"
    POUND = "lb"
    MILLILITRE = "ml"
    CENTILITRE = "cl"
    DECILITRE = "dl"
    LITRE = "l"
    UNIT = "unit"


# unit -> (dimension, factor to the dimension's base unit)
CONVERSIONS: dict[Unit, tuple[Dimension, Decimal]] = {
    Unit.MILLIGRAM: (Dimension.MASS, Decimal("0.000001")),
    Unit.GRAM: (Dimension.MASS, Decimal("0.001")),
    Unit.KILOGRAM: (Dimension.MASS, Decimal("1")),
    Unit.TONNE: (Dimension.MASS, Decimal("1000")),
    Unit.OUNCE: (Dimension.MASS, Decimal("0.028349523125")),
    Unit.POUND: (Dimension.MASS, Decimal("0.45359237")),
    Unit.MILLILITRE: (Dimension.VOLUME, Decimal("0.001")),
    Unit.CENTILITRE: (Dimension.VOLUME, Decimal("0.01")),
    Unit.DECILITRE: (Dimension.VOLUME, Decimal("0.1")),
    Unit.LITRE: (Dimension.VOLUME, Decimal("1")),
    Unit.UNIT: (Dimension.COUNT, Decimal("1")),
}

BASE_UNITS: dict[Dimension, Unit] = {
    Dimension.MASS: Unit.KILOGRAM,
    Dimension.VOLUME: Unit.LITRE,
    Dimension.COUNT: Unit.UNIT,
}

# Lower-cased spellings seen on delivery notes and production logs
ALIASES: dict[str, Unit] = {
    "milligram": Unit.MILLIGRAM,
    "milligrams": Unit.MILLIGRAM,
    "gram": Unit.GRAM,
    "grams": Unit.GRAM,
    "gr": Unit.GRAM,
    "kilogram": Unit.KILOGRAM,
    "kilograms": Unit.KILOGRAM,
    "kgs": Unit.KILOGRAM,
    "kilo": Unit.KILOGRAM,
    "tonne": Unit.TONNE,
    "tonnes": Unit.TONNE,
    "ounce": Unit.OUNCE,
    "ounces": Unit.OUNCE,
    "pound": Unit.POUND,
    "pounds": Unit.POUND,
    "lbs": Unit.POUND,
    "millilitre": Unit.MILLILITRE,
    "milliliter": Unit.MILLILITRE,
    "millilitres": Unit.MILLILITRE,
    "centilitre": Unit.CENTILITRE,
    "centiliter": Unit.CENTILITRE,
    "decilitre": Unit.DECILITRE,
    "litre": Unit.LITRE,
    "liter": Unit.LITRE,
    "litres": Unit.LITRE,
    "liters": Unit.LITRE,
    "ltr": Unit.LITRE,
    "units": Unit.UNIT,
    "each": Unit.UNIT,
    "ea": Unit.UNIT,
    "pc": Unit.UNIT,
    "pcs": Unit.UNIT,
    "piece": Unit.UNIT,
    "pieces": Unit.UNIT,
    "portion": Unit.UNIT,
    "portions": Unit.UNIT,
}


def parse_unit(raw: str | Unit) -> Unit:
    """
    Resolve a unit string ("KG", "Litre", "each") to a Unit.

    Raises:
        UnitMismatchError: If the spelling is not in the table.
    """
    if isinstance(raw, Unit):
        return raw
    key = (raw or "").strip().lower()
    try:
        return Unit(key)
    except ValueError:
        pass
    unit = ALIASES.get(key)
    if unit is None:
        raise UnitMismatchError([raw or ""], reason="unknown unit")
    return unit


def dimension_of(unit: str | Unit) -> Dimension:
    return CONVERSIONS[parse_unit(unit)][0]


def to_base(quantity: Decimal, unit: str | Unit) -> tuple[Decimal, Unit]:
    """Convert a quantity to its dimension's base unit."""
    dimension, factor = CONVERSIONS[parse_unit(unit)]
    return quantity * factor, BASE_UNITS[dimension]


def convert(quantity: Decimal, from_unit: str | Unit, to_unit: str | Unit) -> Decimal:
    """
    Convert between two units of the same dimension.

    Raises:
        UnitMismatchError: If either unit is unknown or the dimensions differ.
    """
    source, target = parse_unit(from_unit), parse_unit(to_unit)
    source_dim, source_factor = CONVERSIONS[source]
    target_dim, target_factor = CONVERSIONS[target]
    if source_dim is not target_dim:
        raise UnitMismatchError(
            [source.value, target.value],
            reason=f"cannot convert {source_dim.value} to {target_dim.value}",
        )
    if source is target:
        return quantity
    return quantity * source_factor / target_factor


def common_base_unit(units: Iterable[str | Unit]) -> Unit | None:
    """
    Base unit shared by all given units, or None for an empty input.

    Raises:
        UnitMismatchError: If any unit is unknown or the units span more
            than one dimension.
    """
    raw_units = list(units)
    dimensions: set[Dimension] = set()
    for raw in raw_units:
        dimensions.add(dimension_of(raw))
    if not dimensions:
        return None
    if len(dimensions) > 1:
        names = sorted({str(u.value if isinstance(u, Unit) else u) for u in raw_units})
        raise UnitMismatchError(
            names,
            reason="mixed dimensions: " + ", ".join(sorted(d.value for d in dimensions)),
        )
    return BASE_UNITS[dimensions.pop()]
