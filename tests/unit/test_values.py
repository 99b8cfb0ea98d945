"""
Unit tests for money/date value helpers and the clock.

Money is Decimal end to end; floats enter through str() and rounding is
half-up to the cent.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from rental_kernel.domain.clock import DeterministicClock, SystemClock
from rental_kernel.domain.values import (
    fraction_digits,
    format_money,
    round_money,
    to_date,
    to_decimal,
)


class TestToDecimal:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (Decimal("1.50"), Decimal("1.50")),
            (300, Decimal("300")),
            ("  12.34 ", Decimal("12.34")),
            (0.1, Decimal("0.1")),
        ],
    )
    def test_accepted(self, value, expected):
        assert to_decimal(value) == expected

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal(0.1) != Decimal(0.1)

    @pytest.mark.parametrize("value", ["abc", "", "NaN", "Infinity", float("nan"), True, None])
    def test_rejected(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)


class TestRounding:
    def test_half_up(self):
        assert round_money(Decimal("0.025")) == Decimal("0.03")
        assert round_money(Decimal("-0.025")) == Decimal("-0.03")

    def test_pads_to_two_places(self):
        assert str(round_money(Decimal("5"))) == "5.00"

    def test_custom_places(self):
        assert round_money(Decimal("1.2345"), 3) == Decimal("1.235")

    def test_format_money(self):
        assert format_money(Decimal("1350")) == "1350.00"

    @pytest.mark.parametrize(
        "value, digits",
        [("10", 0), ("10.5", 1), ("10.50", 1), ("10.05", 2), ("0.001", 3), ("1E+2", 0)],
    )
    def test_fraction_digits(self, value, digits):
        assert fraction_digits(Decimal(value)) == digits


class TestToDate:
    def test_date_passthrough(self):
        assert to_date(date(2024, 2, 29)) == date(2024, 2, 29)

    def test_datetime_drops_time(self):
        assert to_date(datetime(2024, 1, 1, 23, 59, tzinfo=timezone.utc)) == date(2024, 1, 1)

    def test_iso_strings(self):
        assert to_date("2024-01-31") == date(2024, 1, 31)
        assert to_date("2024-01-31T18:30:00") == date(2024, 1, 31)

    def test_bad_string(self):
        with pytest.raises(ValueError):
            to_date("31/01/2024")

    def test_wrong_type(self):
        with pytest.raises(TypeError):
            to_date(20240131)


class TestClock:
    def test_deterministic_clock_is_fixed(self):
        clock = DeterministicClock.on(date(2024, 1, 15))
        assert clock.now() == clock.now()
        assert clock.today() == date(2024, 1, 15)

    def test_advance_days(self):
        clock = DeterministicClock.on(date(2024, 2, 28))
        clock.advance_days(2)
        assert clock.today() == date(2024, 3, 1)

    def test_set_time(self):
        clock = DeterministicClock()
        clock.set_time(datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc))
        assert clock.today() == date(2025, 6, 1)

    def test_system_clock_is_aware(self):
        assert SystemClock().now().tzinfo is not None
