"""
Unit tests for the business reports module.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

from fbms.backend.core.analysis import reporter
from fbms.backend.core.analysis.reporter import ReportWriter


@pytest.fixture
def writer(tmp_path: Path) -> ReportWriter:
    return ReportWriter(output_dir=tmp_path)


@pytest.fixture
def sales():
    def sale(n: int, day: int, method: str, subtotal: str, customer: str | None = None) -> dict:
        sub = Decimal(subtotal)
        tax = (sub * Decimal("0.12")).quantize(Decimal("0.01"))
        return {
            "id": f"s-{n}",
            "invoice_number": f"INV24030{day}{n:04d}",
            "created_at": datetime(2024, 3, day, 9 + n),
            "customer_id": customer,
            "customer_name": "Juan Dela Cruz" if customer else "Walk-in Customer",
            "payment_method": method,
            "subtotal": sub,
            "discount_amount": Decimal("0"),
            "tax_amount": tax,
            "total_amount": sub + tax,
        }

    rows = [
        sale(1, 1, "cash", "100.00", "c-1"),
        sale(2, 1, "gcash", "200.00"),
        sale(3, 2, "cash", "50.00", "c-1"),
    ]
    return reporter.to_frame(rows, reporter.SALES_COLUMNS)


@pytest.fixture
def products():
    rows = [
        {"id": "p-1", "sku": "CAN-LIGO-155", "name": "Ligo", "category": "Canned", "stock": 100,
         "min_stock": 24, "cost": Decimal("19.00"), "price": Decimal("24.00")},
        {"id": "p-2", "sku": "RIC-DINO-5", "name": "Dinorado", "category": "Rice", "stock": 3,
         "min_stock": 5, "cost": Decimal("270.00"), "price": Decimal("320.00")},
        {"id": "p-3", "sku": "SNK-PIAT-85", "name": "Piattos", "category": "Snacks", "stock": 0,
         "min_stock": 15, "cost": Decimal("30.00"), "price": Decimal("38.00")},
    ]
    return reporter.to_frame(rows, reporter.PRODUCT_COLUMNS)


class TestSalesFrames:
    def test_decimals_become_floats(self, sales) -> None:
        assert sales["total_amount"].dtype == float

    def test_summary(self, sales) -> None:
        summary = reporter.sales_summary(sales)
        assert summary["transactions"] == 3
        assert summary["gross_sales"] == Decimal("350.00")
        assert summary["vat"] == Decimal("42.00")
        assert summary["net_sales"] == Decimal("392.00")
        assert summary["average_ticket"] == Decimal("130.67")

    def test_empty_summary(self) -> None:
        empty = reporter.to_frame([], reporter.SALES_COLUMNS)
        assert reporter.sales_summary(empty)["net_sales"] == Decimal("0.00")

    def test_by_day_and_method(self, sales) -> None:
        daily = reporter.sales_by_day(sales)
        assert daily["transactions"].tolist() == [2, 1]
        methods = reporter.sales_by_payment_method(sales)
        assert methods["payment_method"].tolist() == ["gcash", "cash"]
        assert methods.iloc[1]["total_amount"] == pytest.approx(168.0)

    def test_top_products(self) -> None:
        items = reporter.to_frame(
            [
                {"product_id": "a", "product_name": "A", "quantity": 2, "total_price": Decimal("48"), "unit_cost": Decimal("19")},
                {"product_id": "a", "product_name": "A", "quantity": 1, "total_price": Decimal("24"), "unit_cost": Decimal("19")},
                {"product_id": "b", "product_name": "B", "quantity": 1, "total_price": Decimal("320"), "unit_cost": Decimal("270")},
            ],
            reporter.ITEM_COLUMNS,
        )
        top = reporter.top_products(items, limit=1)
        assert top.to_dict("records") == [
            {"product_id": "a", "product_name": "A", "quantity": 3, "revenue": 72.0, "profit": 15.0}
        ]

    def test_customer_ranking_skips_walk_ins(self, sales) -> None:
        ranking = reporter.customer_ranking(sales)
        assert ranking["customer_id"].tolist() == ["c-1"]
        assert ranking.iloc[0]["orders"] == 2


class TestInventoryFrames:
    def test_valuation(self, products) -> None:
        frame, totals = reporter.inventory_valuation(products)
        assert totals["units"] == 103
        assert totals["cost_value"] == Decimal("2710.00")
        assert totals["retail_value"] == Decimal("3360.00")
        assert frame.iloc[0]["sku"] == "CAN-LIGO-155"

    def test_low_stock(self, products) -> None:
        low = reporter.low_stock(products)
        assert low["sku"].tolist() == ["SNK-PIAT-85", "RIC-DINO-5"]
        assert low["shortfall"].tolist() == [15, 2]

    def test_frame_records_are_json_friendly(self, sales) -> None:
        records = reporter.frame_records(reporter.customer_ranking(sales))
        assert records == [{"customer_id": "c-1", "customer_name": "Juan Dela Cruz", "orders": 2, "total_spent": 168.0}]


class TestReportWriter:
    def test_sales_report_text(self, writer: ReportWriter, sales) -> None:
        text = writer.sales_report(
            reporter.sales_summary(sales),
            reporter.sales_by_day(sales),
            reporter.sales_by_payment_method(sales),
            "March 2024",
            "sales.txt",
        )
        assert "SALES REPORT: March 2024" in text
        assert "₱392.00" in text
        assert (writer.output_dir / "sales.txt").exists()

    def test_inventory_report_text(self, writer: ReportWriter, products) -> None:
        frame, totals = reporter.inventory_valuation(products)
        text = writer.inventory_report(frame, totals)
        assert "INVENTORY VALUATION" in text
        assert "RIC-DINO-5" in text

    def test_export_csv(self, writer: ReportWriter, sales) -> None:
        path = writer.export_csv(sales, "sales.csv")
        lines = path.read_text(encoding="utf-8").strip().split("\n")
        assert len(lines) == 4  # header + 3 rows

    def test_export_json(self, writer: ReportWriter) -> None:
        path = writer.export_json({"rows": [{"total": Decimal("1.50")}]}, "report.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert "timestamp" in data
        assert data["rows"] == [{"total": "1.50"}]
