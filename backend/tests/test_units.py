"""
Tests for the unit table.
"""

from decimal import Decimal

import pytest

from rest_api.services.traceability.units import (
    Dimension,
    Unit,
    common_base_unit,
    convert,
    dimension_of,
    parse_unit,
    to_base,
)
from shared.utils.exceptions import UnitMismatchError


class TestParseUnit:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("kg", Unit.KILOGRAM),
            ("KG", Unit.KILOGRAM),
            (" Kilograms ", Unit.KILOGRAM),
            ("L", Unit.LITRE),
            ("liter", Unit.LITRE),
            ("each", Unit.UNIT),
            ("pcs", Unit.UNIT),
            ("lbs", Unit.POUND),
        ],
    )
    def test_known_spellings(self, raw, expected):
        assert parse_unit(raw) is expected

    def test_unknown_unit_raises(self):
        with pytest.raises(UnitMismatchError) as exc_info:
            parse_unit("bushel")
        assert exc_info.value.reason == "unknown unit"
        assert exc_info.value.units == ["bushel"]

    def test_blank_unit_raises(self):
        with pytest.raises(UnitMismatchError):
            parse_unit("")


class TestConvert:
    def test_grams_to_kilograms(self):
        assert convert(Decimal("1500"), "g", "kg") == Decimal("1.5")

    def test_tonnes_to_kilograms(self):
        assert convert(Decimal("0.25"), "t", "kg") == Decimal("250")

    def test_pounds_are_exact(self):
        assert convert(Decimal("1"), "lb", "g") == Decimal("453.59237")

    def test_millilitres_to_litres(self):
        assert to_base(Decimal("330"), "ml") == (Decimal("0.33"), Unit.LITRE)

    def test_same_unit_is_identity(self):
        quantity = Decimal("12.345678")
        assert convert(quantity, "kg", "KG") is quantity

    def test_volume_to_mass_is_refused(self):
        # 60 l of water is not assumed to weigh 60 kg
        with pytest.raises(UnitMismatchError) as exc_info:
            convert(Decimal("60"), "l", "kg")
        assert "volume" in exc_info.value.reason

    def test_count_to_mass_is_refused(self):
        with pytest.raises(UnitMismatchError):
            convert(Decimal("12"), "unit", "kg")


class TestCommonBaseUnit:
    def test_mixed_mass_units(self):
        assert common_base_unit(["g", "kg", "lb"]) is Unit.KILOGRAM

    def test_empty(self):
        assert common_base_unit([]) is None

    def test_mixed_dimensions(self):
        with pytest.raises(UnitMismatchError) as exc_info:
            common_base_unit(["kg", "unit"])
        assert exc_info.value.reason == "mixed dimensions: count, mass"

    def test_dimension_of(self):
        assert dimension_of("cl") is Dimension.VOLUME
