"""Tests for peso rounding and formatting."""

from __future__ import annotations

from decimal import Decimal

from fbms.backend.core.utils.money import format_peso, money, rate, to_decimal


class TestMoney:
    def test_rounds_half_up(self) -> None:
        assert money("2.345") == Decimal("2.35")
        assert money("2.344") == Decimal("2.34")
        assert money(Decimal("-1.005")) == Decimal("-1.01")

    def test_floats_go_through_str(self) -> None:
        assert money(0.1 + 0.2) == Decimal("0.30")

    def test_unparseable_is_zero(self) -> None:
        assert money(None) == Decimal("0.00")
        assert money("abc") == Decimal("0.00")
        assert to_decimal("x", default="5") == Decimal("5")

    def test_non_finite_is_zero(self) -> None:
        for value in ("inf", "-Infinity", "nan", float("inf"), Decimal("NaN")):
            assert money(value) == Decimal("0.00")
        assert rate("inf") == Decimal("0.0000")
        assert format_peso(float("nan")) == "₱0.00"

    def test_rate_places(self) -> None:
        assert rate("0.123456") == Decimal("0.1235")


class TestFormatPeso:
    def test_thousands_separator(self) -> None:
        assert format_peso(1234567.5) == "₱1,234,567.50"

    def test_negative(self) -> None:
        assert format_peso(-20) == "-₱20.00"
