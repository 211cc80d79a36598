"""
Tests for money helpers.

Covers:
- Flooring to the currency minor unit
- Commission calculation per level rate
- Float rejection
"""

from decimal import Decimal

import pytest

from earnhub.utils.money import (
    calculate_commission,
    floor_to_minor_unit,
    to_decimal,
)


class TestFloorToMinorUnit:
    """Test rounding down to the minor unit."""

    def test_floor_drops_fraction_below_unit(self):
        """Test 2.999 floors to 2.99, never rounds up."""
        assert floor_to_minor_unit(Decimal("2.999")) == Decimal("2.99")

    def test_exact_amount_unchanged(self):
        """Test amount already on the unit is kept."""
        assert floor_to_minor_unit(Decimal("6.00")) == Decimal("6.00")

    def test_custom_minor_unit(self):
        """Test whole-unit currency."""
        assert floor_to_minor_unit(
            Decimal("6.75"), minor_unit=Decimal("1")
        ) == Decimal("6")


class TestCalculateCommission:
    """Test per-ancestor commission amounts."""

    @pytest.mark.parametrize(
        "percent, expected",
        [
            (Decimal("3.0"), Decimal("6.00")),
            (Decimal("1.5"), Decimal("3.00")),
            (Decimal("0.75"), Decimal("1.50")),
            (Decimal("0.25"), Decimal("0.50")),
        ],
    )
    def test_video_rates_on_200(self, percent, expected):
        """Test the default video rates applied to a 200 reward."""
        assert calculate_commission(Decimal("200"), percent) == expected

    def test_commission_is_floored_independently(self):
        """Test 0.25% of 33.33 is 0.0833 -> 0.08 (remainder dropped)."""
        assert calculate_commission(
            Decimal("33.33"), Decimal("0.25")
        ) == Decimal("0.08")

    def test_tiny_base_floors_to_zero(self):
        """Test commission below the minor unit becomes zero."""
        assert calculate_commission(
            Decimal("1"), Decimal("0.25")
        ) == Decimal("0.00")

    def test_no_float_drift(self):
        """Test 10% of 0.3 is exactly 0.03."""
        assert calculate_commission(
            Decimal("0.30"), Decimal("10")
        ) == Decimal("0.03")


class TestToDecimal:
    """Test conversion to Decimal."""

    def test_string_and_int(self):
        """Test str and int inputs."""
        assert to_decimal("12.50") == Decimal("12.50")
        assert to_decimal(7) == Decimal("7")

    def test_decimal_passthrough(self):
        """Test Decimal returned as-is."""
        value = Decimal("1.23")
        assert to_decimal(value) is value

    def test_float_rejected(self):
        """Test floats are refused."""
        with pytest.raises(TypeError):
            to_decimal(0.1)
