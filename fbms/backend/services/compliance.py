"""BIR reports built from stored sales, expenses and employees."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from fbms.backend.core.compliance.bir import (
    ReportPeriod,
    generate_alphalist,
    generate_bir_report,
    generate_form_2550m,
)
from fbms.backend.core.errors import Issue, ValidationError
from fbms.backend.db.models import Employee, Expense, Sale
from fbms.backend.services import settings

REPORT_TYPES = ("VAT", "INCOME_TAX")


def make_period(year: int, month: int | None = None, quarter: int | None = None) -> ReportPeriod:
    issues = []
    if month is not None and not 1 <= month <= 12:
        issues.append(Issue("month", "Month must be 1-12", "INVALID_PERIOD"))
    if quarter is not None and not 1 <= quarter <= 4:
        issues.append(Issue("quarter", "Quarter must be 1-4", "INVALID_PERIOD"))
    if month is not None and quarter is not None:
        issues.append(Issue("period", "Give a month or a quarter, not both", "INVALID_PERIOD"))
    if issues:
        raise ValidationError("Invalid report period", issues)
    return ReportPeriod(year=year, month=month, quarter=quarter)


def _year_bounds(year: int) -> tuple[datetime, datetime]:
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)


def _completed_sales(session: Session, year: int) -> list[Sale]:
    start, end = _year_bounds(year)
    stmt = select(Sale).where(Sale.status == "completed", Sale.created_at >= start, Sale.created_at < end)
    return list(session.scalars(stmt))


def vat_rows(session: Session, year: int) -> list[dict[str, Any]]:
    rows = []
    for sale in _completed_sales(session, year):
        net = sale.subtotal - sale.discount_amount
        rows.append(
            {
                "date": sale.created_at,
                "amount": sale.total_amount,
                "vat": sale.tax_amount,
                "exempt": net if sale.vat_exempt else 0,
            }
        )
    return rows


def income_rows(session: Session, year: int) -> list[dict[str, Any]]:
    rows = [
        {"date": sale.created_at, "revenue": sale.subtotal - sale.discount_amount}
        for sale in _completed_sales(session, year)
    ]
    paid = session.scalars(
        select(Expense).where(
            Expense.status == "paid",
            Expense.expense_date >= date(year, 1, 1),
            Expense.expense_date <= date(year, 12, 31),
        )
    )
    rows.extend({"date": e.expense_date, "expenses": e.amount} for e in paid)
    return rows


def bir_report(session: Session, report_type: str, period: ReportPeriod) -> dict[str, Any]:
    report_type = report_type.upper()
    if report_type not in REPORT_TYPES:
        raise ValidationError(
            f"Unknown report type: {report_type}", [Issue("report_type", "Use VAT or INCOME_TAX", "INVALID_REPORT")]
        )
    rows = vat_rows(session, period.year) if report_type == "VAT" else income_rows(session, period.year)
    return generate_bir_report(report_type, rows, period)


def form_2550m(session: Session, year: int, month: int, config: dict[str, Any]) -> dict[str, Any]:
    period = make_period(year, month=month)
    return generate_form_2550m(_completed_sales(session, year), period, settings.business_profile(session, config))


def alphalist(session: Session, year: int) -> list[dict[str, Any]]:
    employees = session.scalars(
        select(Employee).where(Employee.status != "terminated").order_by(Employee.last_name, Employee.first_name)
    )
    return generate_alphalist(employees, year)
