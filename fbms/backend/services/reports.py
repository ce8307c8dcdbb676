"""
Report data pulled from the database and shaped with pandas.

Each function loads plain rows and hands them to
:mod:`fbms.backend.core.analysis.reporter`; the API returns the resulting
dicts and the CLI renders them through ``ReportWriter``.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any

import pandas as pd
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fbms.backend.core.analysis import reporter
from fbms.backend.core.purchasing import state_machine as sm
from fbms.backend.core.utils.money import money
from fbms.backend.db.models import Expense, Product, PurchaseOrder, Sale, SaleItem, utcnow
from fbms.backend.services import inventory


def _bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    lower = datetime.combine(start, time.min) if start else None
    upper = datetime.combine(end + timedelta(days=1), time.min) if end else None
    return lower, upper


def _sales(session: Session, start: date | None, end: date | None) -> list[Sale]:
    lower, upper = _bounds(start, end)
    stmt = select(Sale).where(Sale.status == "completed")
    if lower:
        stmt = stmt.where(Sale.created_at >= lower)
    if upper:
        stmt = stmt.where(Sale.created_at < upper)
    return list(session.scalars(stmt.order_by(Sale.created_at)))


def sales_frame(session: Session, start: date | None = None, end: date | None = None) -> pd.DataFrame:
    rows = [{c: getattr(s, c) for c in reporter.SALES_COLUMNS} for s in _sales(session, start, end)]
    return reporter.to_frame(rows, reporter.SALES_COLUMNS)


def items_frame(session: Session, start: date | None = None, end: date | None = None) -> pd.DataFrame:
    rows = [
        {c: getattr(item, c) for c in reporter.ITEM_COLUMNS}
        for sale in _sales(session, start, end)
        for item in sale.items
    ]
    return reporter.to_frame(rows, reporter.ITEM_COLUMNS)


def products_frame(session: Session) -> pd.DataFrame:
    rows = [
        {
            "id": p.id,
            "sku": p.sku,
            "name": p.name,
            "category": p.category.name if p.category else None,
            "stock": p.stock,
            "min_stock": p.min_stock,
            "cost": p.cost,
            "price": p.price,
        }
        for p in inventory.list_products(session)
    ]
    return reporter.to_frame(rows, reporter.PRODUCT_COLUMNS)


def sales_report(
    session: Session, start: date | None = None, end: date | None = None, top: int = 10
) -> dict[str, Any]:
    sales = sales_frame(session, start, end)
    return {
        "start": start,
        "end": end,
        "summary": reporter.sales_summary(sales),
        "by_day": reporter.frame_records(reporter.sales_by_day(sales)),
        "by_payment_method": reporter.frame_records(reporter.sales_by_payment_method(sales)),
        "top_products": reporter.frame_records(reporter.top_products(items_frame(session, start, end), top)),
    }


def inventory_report(session: Session) -> dict[str, Any]:
    valuation, totals = reporter.inventory_valuation(products_frame(session))
    return {"totals": totals, "products": reporter.frame_records(valuation)}


def low_stock_report(session: Session) -> list[dict[str, Any]]:
    return reporter.frame_records(reporter.low_stock(products_frame(session)))


def customer_ranking(
    session: Session, start: date | None = None, end: date | None = None, limit: int = 10
) -> list[dict[str, Any]]:
    return reporter.frame_records(reporter.customer_ranking(sales_frame(session, start, end), limit))


def dashboard(session: Session, today: date | None = None) -> dict[str, Any]:
    """Headline numbers for the current day and month."""
    today = today or utcnow().date()
    day_sales = reporter.sales_summary(sales_frame(session, today, today))
    month_sales = reporter.sales_summary(sales_frame(session, today.replace(day=1), today))
    low = session.scalar(
        select(func.count(Product.id)).where(Product.is_active.is_(True), Product.stock <= Product.min_stock)
    )
    pending_pos = session.scalar(
        select(func.count(PurchaseOrder.id)).where(PurchaseOrder.status == sm.PENDING_APPROVAL)
    )
    pending_expenses = session.scalar(select(func.count(Expense.id)).where(Expense.status == "pending"))
    sold_today = session.scalar(
        select(func.coalesce(func.sum(SaleItem.quantity), 0))
        .join(Sale, SaleItem.sale_id == Sale.id)
        .where(Sale.status == "completed", Sale.created_at >= datetime.combine(today, time.min))
    )
    return {
        "date": today,
        "today_sales": day_sales["net_sales"],
        "today_transactions": day_sales["transactions"],
        "items_sold_today": int(sold_today or 0),
        "month_sales": month_sales["net_sales"],
        "month_transactions": month_sales["transactions"],
        "average_ticket": month_sales["average_ticket"],
        "low_stock_count": int(low or 0),
        "pending_purchase_orders": int(pending_pos or 0),
        "pending_expenses": int(pending_expenses or 0),
        "inventory_value": inventory.stock_value(inventory.list_products(session)),
    }


def export_report(
    writer: reporter.ReportWriter, frame: pd.DataFrame, name: str, fmt: str = "csv"
):
    """Write ``frame`` as CSV, or as JSON records under a ``rows`` key."""
    if fmt == "json":
        return writer.export_json({"rows": reporter.frame_records(frame)}, f"{name}.json")
    return writer.export_csv(frame, f"{name}.csv")


def net_sales(session: Session, start: date | None = None, end: date | None = None):
    return money(reporter.sales_summary(sales_frame(session, start, end))["net_sales"])
