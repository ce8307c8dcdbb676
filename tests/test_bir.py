"""Tests for VAT, receipts, withholding and BIR period reports."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from fbms.backend.core.compliance.bir import (
    BIRReceipt,
    BIRReceiptItem,
    ReportPeriod,
    calculate_vat,
    calculate_withholding_tax,
    format_or_number,
    generate_alphalist,
    generate_bir_report,
    generate_form_2550m,
    graduated_income_tax,
    validate_bir_receipt,
    validate_tin,
)


def _receipt(**overrides) -> BIRReceipt:
    values = dict(
        or_number="0000000001",
        tin="123-456-789-000",
        business_name="Tindahan",
        business_address="Makati City",
        date=datetime(2024, 3, 5, 10, 0),
        items=[BIRReceiptItem("Ligo Sardines", 2, Decimal("50.00"), Decimal("100.00"))],
        vatable_amount=Decimal("100.00"),
        vat_amount=Decimal("12.00"),
        total_amount=Decimal("112.00"),
    )
    values.update(overrides)
    return BIRReceipt(**values)


class TestCalculateVAT:
    def test_exclusive(self) -> None:
        vat = calculate_vat(1000)
        assert vat.vat_amount == Decimal("120.00")
        assert vat.total_amount == Decimal("1120.00")

    def test_inclusive(self) -> None:
        vat = calculate_vat(1120, inclusive=True)
        assert vat.vatable_amount == Decimal("1000.00")
        assert vat.vat_amount == Decimal("120.00")

    def test_exempt(self) -> None:
        vat = calculate_vat(500, exempt=True)
        assert vat.vat_amount == Decimal("0.00")
        assert vat.exempt_amount == Decimal("500.00")

    def test_zero_rated(self) -> None:
        vat = calculate_vat(500, zero_rated=True)
        assert vat.zero_rated_amount == Decimal("500.00")
        assert vat.total_amount == Decimal("500.00")

    def test_custom_rate(self) -> None:
        assert calculate_vat(100, rate="0.10").vat_amount == Decimal("10.00")


class TestNumbersAndTIN:
    def test_or_number_is_zero_padded(self) -> None:
        assert format_or_number(42) == "0000000042"

    def test_or_number_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            format_or_number(0)

    @pytest.mark.parametrize(
        "tin, valid",
        [("123-456-789-000", True), ("123-456-789-001", True), ("123456789000", False), (None, False)],
    )
    def test_validate_tin(self, tin, valid: bool) -> None:
        assert validate_tin(tin) is valid


class TestReceiptValidation:
    def test_valid_receipt(self) -> None:
        result = validate_bir_receipt(_receipt())
        assert result.is_valid, result.errors

    def test_vat_mismatch(self) -> None:
        result = validate_bir_receipt(_receipt(vat_amount=Decimal("10.00")))
        assert "VAT calculation mismatch" in result.errors

    def test_missing_fields_and_bad_tin(self) -> None:
        result = validate_bir_receipt(_receipt(or_number="", tin="12-34", items=[]))
        assert not result.is_valid
        assert "OR Number is required" in result.errors
        assert "Invalid TIN format" in result.errors
        assert "At least one item is required" in result.errors

    def test_exempt_amount_counts_towards_total(self) -> None:
        receipt = _receipt(exempt_amount=Decimal("50.00"), total_amount=Decimal("162.00"))
        assert validate_bir_receipt(receipt).is_valid


class TestWithholdingTax:
    def test_goods_over_threshold(self) -> None:
        result = calculate_withholding_tax(5000, "goods")
        assert result.amount == Decimal("50.00")
        assert result.net_amount == Decimal("4950.00")

    def test_goods_under_threshold(self) -> None:
        assert calculate_withholding_tax(500, "goods").amount == Decimal("0.00")

    def test_professional_has_no_threshold(self) -> None:
        assert calculate_withholding_tax(1000, "professional").amount == Decimal("100.00")

    def test_unknown_kind_withholds_nothing(self) -> None:
        assert calculate_withholding_tax(1000, "gifts").amount == Decimal("0.00")


class TestReports:
    def test_period_contains_and_label(self) -> None:
        q2 = ReportPeriod(2024, quarter=2)
        assert q2.contains(datetime(2024, 5, 1))
        assert not q2.contains(datetime(2024, 7, 1))
        assert q2.label == "Q2/2024"
        assert ReportPeriod(2024, month=3).label == "03/2024"

    def test_graduated_income_tax(self) -> None:
        assert graduated_income_tax(250000) == Decimal("0.00")
        assert graduated_income_tax(500000) == Decimal("55000.00")

    def test_vat_report_filters_by_period(self) -> None:
        rows = [
            {"date": datetime(2024, 3, 2), "amount": 1120, "vat": 120},
            {"date": datetime(2024, 3, 9), "amount": 560, "vat": 60, "exempt": 0},
            {"date": datetime(2024, 4, 1), "amount": 9999, "vat": 999},
        ]
        report = generate_bir_report("VAT", rows, ReportPeriod(2024, month=3))
        assert report["total_sales"] == Decimal("1680.00")
        assert report["total_vat"] == Decimal("180.00")
        assert report["period"] == "03/2024"

    def test_income_tax_report(self) -> None:
        rows = [
            {"date": datetime(2024, 1, 5), "revenue": 1_000_000},
            {"date": datetime(2024, 2, 5), "expenses": 200_000},
        ]
        report = generate_bir_report("INCOME_TAX", rows, ReportPeriod(2024))
        assert report["taxable_income"] == Decimal("800000.00")
        assert report["income_tax"] == Decimal("130000.00")

    def test_unknown_report_type(self) -> None:
        with pytest.raises(ValueError):
            generate_bir_report("PERCENTAGE", [], ReportPeriod(2024))

    def test_form_2550m(self) -> None:
        def sale(day: int, subtotal: str, tax: str, total: str, exempt: bool = False, status: str = "completed"):
            return SimpleNamespace(
                created_at=datetime(2024, 3, day),
                subtotal=Decimal(subtotal),
                discount_amount=Decimal("0"),
                tax_amount=Decimal(tax),
                total_amount=Decimal(total),
                vat_exempt=exempt,
                status=status,
            )

        sales = [
            sale(1, "1000", "120", "1120"),
            sale(2, "500", "0", "500", exempt=True),
            sale(3, "800", "96", "896", status="voided"),
        ]
        form = generate_form_2550m(sales, ReportPeriod(2024, month=3), {"name": "Tindahan", "tin": "123-456-789-000"})
        assert form["gross_sales"] == Decimal("1620.00")
        assert form["exempt_sales"] == Decimal("500.00")
        assert form["vatable_amount"] == Decimal("1000.00")
        assert form["vat_amount"] == Decimal("120.00")
        assert form["tax_period"] == "03/2024"

    def test_alphalist(self) -> None:
        employee = SimpleNamespace(
            tin="111-222-333-000", last_name="Reyes", first_name="Ana", middle_name=None, basic_salary=Decimal("25000")
        )
        (row,) = generate_alphalist([employee], 2024)
        assert row["gross_compensation"] == Decimal("300000.00")
        assert row["non_taxable_compensation"] == Decimal("19500.00")
        assert row["taxable_compensation"] == Decimal("280500.00")
        assert row["withholding_tax"] == Decimal("4575.60")
