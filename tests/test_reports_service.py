"""Tests for database-backed reports and BIR compliance output."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from fbms.backend.core.analysis.reporter import ReportWriter
from fbms.backend.core.errors import ValidationError
from fbms.backend.core.pos.cart import CartRegister
from fbms.backend.db.models import utcnow
from fbms.backend.schemas.finance import EmployeeIn
from fbms.backend.schemas.sales import CheckoutIn
from fbms.backend.services import compliance, payroll, reports, sales


@pytest.fixture
def sold(session, product, admin, config):
    """One cash sale of two Ligo Sardines (₱53.76)."""
    register = CartRegister()
    sales.add_to_cart(session, register, product.id, 2)
    return sales.checkout(session, register, CheckoutIn(payment_method="cash", cash_received=Decimal("60")), admin, config)


class TestSalesReports:
    def test_inventory_value_of_seed_catalog(self, session) -> None:
        report = reports.inventory_report(session)
        assert report["totals"]["products"] == 10
        assert report["totals"]["cost_value"] == Decimal("22426.00")

    def test_dashboard(self, session, sold) -> None:
        board = reports.dashboard(session)
        assert board["today_sales"] == Decimal("53.76")
        assert board["today_transactions"] == 1
        assert board["items_sold_today"] == 2
        assert board["inventory_value"] == Decimal("22388.00")
        assert board["low_stock_count"] == 0

    def test_sales_report(self, session, sold) -> None:
        today = utcnow().date()
        report = reports.sales_report(session, today, today)
        assert report["summary"]["transactions"] == 1
        assert report["by_payment_method"][0]["payment_method"] == "cash"
        assert report["top_products"][0]["quantity"] == 2

    def test_voided_sales_are_excluded(self, session, sold, admin, config) -> None:
        sales.void_sale(session, sold.id, "Test", admin, config)
        assert reports.net_sales(session) == Decimal("0.00")

    def test_low_stock(self, session, product) -> None:
        product.stock = 5
        rows = reports.low_stock_report(session)
        assert [r["sku"] for r in rows] == ["CAN-LIGO-155"]
        assert rows[0]["shortfall"] == 19

    def test_export(self, session, sold, tmp_path) -> None:
        writer = ReportWriter(tmp_path)
        frame = reports.sales_frame(session)
        path = reports.export_report(writer, frame, "sales", "json")
        assert path.name == "sales.json"
        assert reports.export_report(writer, frame, "sales").suffix == ".csv"


class TestCompliance:
    def test_make_period_rejects_bad_values(self) -> None:
        with pytest.raises(ValidationError) as exc:
            compliance.make_period(2024, month=13, quarter=2)
        assert len(exc.value.errors) == 2

    def test_vat_report(self, session, sold) -> None:
        now = utcnow()
        report = compliance.bir_report(session, "vat", compliance.make_period(now.year, month=now.month))
        assert report["total_sales"] == Decimal("53.76")
        assert report["total_vat"] == Decimal("5.76")

    def test_income_tax_report(self, session, sold) -> None:
        report = compliance.bir_report(session, "INCOME_TAX", compliance.make_period(utcnow().year))
        assert report["total_revenue"] == Decimal("48.00")

    def test_unknown_report(self, session) -> None:
        with pytest.raises(ValidationError):
            compliance.bir_report(session, "PERCENTAGE", compliance.make_period(2024))

    def test_form_2550m(self, session, sold, config) -> None:
        now = utcnow()
        form = compliance.form_2550m(session, now.year, now.month, config)
        assert form["vatable_amount"] == Decimal("48.00")
        assert form["vat_amount"] == Decimal("5.76")
        assert form["tin"] == "123-456-789-000"

    def test_alphalist_skips_terminated(self, session) -> None:
        kept = payroll.create_employee(
            session,
            EmployeeIn(employee_code="E1", first_name="Ana", last_name="Reyes", basic_salary=Decimal("25000"),
                       tin="111-222-333-000", hire_date=date(2020, 1, 6)),
        )
        gone = payroll.create_employee(
            session, EmployeeIn(employee_code="E2", first_name="Ben", last_name="Cruz", basic_salary=Decimal("15000"))
        )
        payroll.delete_employee(session, gone.id)

        (row,) = compliance.alphalist(session, 2024)
        assert row["tin"] == kept.tin
        assert row["withholding_tax"] == Decimal("4575.60")
