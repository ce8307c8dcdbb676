"""
Business Reports Module.

Turns plain record rows into pandas frames and summaries:
- Sales summary, daily sales, payment-method mix and top products
- Inventory valuation and low-stock listing
- Expense summary and customer ranking

``ReportWriter`` renders the summaries as text and exports frames to CSV or
JSON.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import pandas as pd

from fbms.backend.core.utils.money import format_peso, money

SALES_COLUMNS = [
    "id",
    "invoice_number",
    "created_at",
    "customer_id",
    "customer_name",
    "payment_method",
    "subtotal",
    "discount_amount",
    "tax_amount",
    "total_amount",
]
ITEM_COLUMNS = ["product_id", "product_name", "quantity", "total_price", "unit_cost"]
PRODUCT_COLUMNS = ["id", "sku", "name", "category", "stock", "min_stock", "cost", "price"]
EXPENSE_COLUMNS = ["expense_date", "category", "amount", "tax_amount", "status"]


def to_frame(rows: list[dict[str, Any]], columns: list[str]) -> pd.DataFrame:
    """Build a frame with fixed columns; Decimal values become floats."""
    frame = pd.DataFrame(rows, columns=columns)
    for column in frame.columns:
        if frame[column].map(lambda v: isinstance(v, Decimal)).any():
            frame[column] = frame[column].astype(float)
    return frame


def _peso(value) -> Decimal:
    return money(round(float(value), 2))


# ── Sales ───────────────────────────────────────────────────────────────────


def sales_summary(sales: pd.DataFrame) -> dict[str, Any]:
    if sales.empty:
        return {
            "transactions": 0,
            "gross_sales": money(0),
            "discounts": money(0),
            "vat": money(0),
            "net_sales": money(0),
            "average_ticket": money(0),
        }
    count = int(len(sales))
    net = float(sales["total_amount"].sum())
    return {
        "transactions": count,
        "gross_sales": _peso(sales["subtotal"].sum()),
        "discounts": _peso(sales["discount_amount"].sum()),
        "vat": _peso(sales["tax_amount"].sum()),
        "net_sales": _peso(net),
        "average_ticket": _peso(net / count),
    }


def sales_by_day(sales: pd.DataFrame) -> pd.DataFrame:
    if sales.empty:
        return pd.DataFrame(columns=["date", "transactions", "total_amount"])
    frame = sales.assign(date=pd.to_datetime(sales["created_at"]).dt.date)
    grouped = (
        frame.groupby("date")
        .agg(transactions=("id", "count"), total_amount=("total_amount", "sum"))
        .reset_index()
        .sort_values("date")
    )
    grouped["total_amount"] = grouped["total_amount"].round(2)
    return grouped


def sales_by_payment_method(sales: pd.DataFrame) -> pd.DataFrame:
    if sales.empty:
        return pd.DataFrame(columns=["payment_method", "transactions", "total_amount"])
    grouped = (
        sales.groupby("payment_method")
        .agg(transactions=("id", "count"), total_amount=("total_amount", "sum"))
        .reset_index()
        .sort_values("total_amount", ascending=False)
    )
    grouped["total_amount"] = grouped["total_amount"].round(2)
    return grouped


def top_products(items: pd.DataFrame, limit: int = 10) -> pd.DataFrame:
    if items.empty:
        return pd.DataFrame(columns=["product_id", "product_name", "quantity", "revenue", "profit"])
    frame = items.assign(cost_total=items["quantity"] * items["unit_cost"])
    grouped = (
        frame.groupby(["product_id", "product_name"])
        .agg(quantity=("quantity", "sum"), revenue=("total_price", "sum"), cost=("cost_total", "sum"))
        .reset_index()
    )
    grouped["profit"] = (grouped["revenue"] - grouped["cost"]).round(2)
    grouped["revenue"] = grouped["revenue"].round(2)
    return (
        grouped.drop(columns=["cost"])
        .sort_values(["quantity", "revenue"], ascending=False)
        .head(limit)
        .reset_index(drop=True)
    )


# ── Inventory ───────────────────────────────────────────────────────────────


def inventory_valuation(products: pd.DataFrame) -> tuple[pd.DataFrame, dict[str, Any]]:
    if products.empty:
        frame = products.assign(cost_value=[], retail_value=[])
        return frame, {"products": 0, "units": 0, "cost_value": money(0), "retail_value": money(0)}
    frame = products.assign(
        cost_value=(products["stock"] * products["cost"]).round(2),
        retail_value=(products["stock"] * products["price"]).round(2),
    )
    totals = {
        "products": int(len(frame)),
        "units": int(frame["stock"].sum()),
        "cost_value": _peso(frame["cost_value"].sum()),
        "retail_value": _peso(frame["retail_value"].sum()),
    }
    return frame.sort_values("cost_value", ascending=False).reset_index(drop=True), totals


def low_stock(products: pd.DataFrame) -> pd.DataFrame:
    if products.empty:
        return products
    mask = products["stock"] <= products["min_stock"]
    frame = products[mask].assign(shortfall=products["min_stock"] - products["stock"])
    return frame.sort_values(["stock", "shortfall"], ascending=[True, False]).reset_index(drop=True)


# ── Expenses & customers ────────────────────────────────────────────────────


def expense_summary(expenses: pd.DataFrame) -> dict[str, Any]:
    if expenses.empty:
        return {"total": money(0), "by_category": [], "by_month": []}
    frame = expenses.assign(month=pd.to_datetime(expenses["expense_date"]).dt.strftime("%Y-%m"))
    by_category = (
        frame.groupby("category")
        .agg(entries=("amount", "count"), total=("amount", "sum"))
        .reset_index()
        .sort_values("total", ascending=False)
    )
    by_month = (
        frame.groupby("month")
        .agg(entries=("amount", "count"), total=("amount", "sum"))
        .reset_index()
        .sort_values("month")
    )
    return {
        "total": _peso(frame["amount"].sum()),
        "by_category": [
            {"category": r.category, "count": int(r.entries), "total": _peso(r.total)}
            for r in by_category.itertuples(index=False)
        ],
        "by_month": [
            {"month": r.month, "count": int(r.entries), "total": _peso(r.total)}
            for r in by_month.itertuples(index=False)
        ],
    }


def customer_ranking(sales: pd.DataFrame, limit: int = 10) -> pd.DataFrame:
    named = sales[sales["customer_id"].notna()] if "customer_id" in sales else sales.iloc[0:0]
    if named.empty:
        return pd.DataFrame(columns=["customer_id", "customer_name", "orders", "total_spent"])
    grouped = (
        named.groupby(["customer_id", "customer_name"])
        .agg(orders=("id", "count"), total_spent=("total_amount", "sum"))
        .reset_index()
        .sort_values("total_spent", ascending=False)
        .head(limit)
        .reset_index(drop=True)
    )
    grouped["total_spent"] = grouped["total_spent"].round(2)
    return grouped


def frame_records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    """JSON-friendly records (dates as ISO strings)."""
    return json.loads(frame.to_json(orient="records", date_format="iso"))


# ── Output ──────────────────────────────────────────────────────────────────


class ReportWriter:
    """
    Render and export reports.

    Args:
        output_dir: Directory for report files
    """

    def __init__(self, output_dir: Path = Path("outputs/reports")):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def sales_report(
        self,
        summary: dict[str, Any],
        daily: pd.DataFrame,
        methods: pd.DataFrame,
        period: str,
        filename: str | None = None,
    ) -> str:
        report = []
        report.append("=" * 60)
        report.append(f"SALES REPORT: {period}")
        report.append("=" * 60)
        report.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        report.append("")

        report.append("SUMMARY")
        report.append("-" * 40)
        report.append(f"Transactions:   {summary['transactions']}")
        report.append(f"Gross sales:    {format_peso(summary['gross_sales'])}")
        report.append(f"Discounts:      {format_peso(summary['discounts'])}")
        report.append(f"VAT:            {format_peso(summary['vat'])}")
        report.append(f"Net sales:      {format_peso(summary['net_sales'])}")
        report.append(f"Average ticket: {format_peso(summary['average_ticket'])}")
        report.append("")

        if not daily.empty:
            report.append("DAILY SALES")
            report.append("-" * 40)
            report.append(f"{'Date':<12}{'Count':>8}{'Total':>20}")
            for row in daily.itertuples(index=False):
                report.append(f"{str(row.date):<12}{row.transactions:>8}{format_peso(row.total_amount):>20}")
            report.append("")

        if not methods.empty:
            report.append("PAYMENT METHODS")
            report.append("-" * 40)
            for row in methods.itertuples(index=False):
                report.append(f"{row.payment_method:<14}{row.transactions:>6}{format_peso(row.total_amount):>20}")

        report_text = "\n".join(report)
        if filename:
            (self.output_dir / filename).write_text(report_text, encoding="utf-8")
        return report_text

    def inventory_report(
        self, valuation: pd.DataFrame, totals: dict[str, Any], filename: str | None = None
    ) -> str:
        report = []
        report.append("=" * 60)
        report.append("INVENTORY VALUATION")
        report.append("=" * 60)
        report.append(f"Products: {totals['products']}    Units: {totals['units']}")
        report.append(f"Cost value:   {format_peso(totals['cost_value'])}")
        report.append(f"Retail value: {format_peso(totals['retail_value'])}")
        report.append("")
        report.append(f"{'SKU':<16}{'Stock':>8}{'Cost value':>18}")
        report.append("-" * 42)
        for row in valuation.itertuples(index=False):
            report.append(f"{row.sku:<16}{row.stock:>8}{format_peso(row.cost_value):>18}")

        report_text = "\n".join(report)
        if filename:
            (self.output_dir / filename).write_text(report_text, encoding="utf-8")
        return report_text

    def export_csv(self, frame: pd.DataFrame, filename: str) -> Path:
        filepath = self.output_dir / filename
        frame.to_csv(filepath, index=False)
        return filepath

    def export_json(self, data: dict[str, Any], filename: str) -> Path:
        export_data = {"timestamp": datetime.now().isoformat(), **data}
        filepath = self.output_dir / filename
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(export_data, f, indent=2, default=str)
        return filepath
