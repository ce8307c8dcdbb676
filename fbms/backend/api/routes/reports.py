"""Business reports, financial statements and BIR compliance."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fbms.backend.api.deps import get_config, get_session, require
from fbms.backend.core.compliance.bir import WITHHOLDING_TAX_RATES, calculate_vat, calculate_withholding_tax
from fbms.backend.db.models import User
from fbms.backend.services import accounting, compliance, expenses, reports, settings

router = APIRouter()

_reader = require("reports", "read")


def _day_start(day: date | None) -> datetime | None:
    return datetime.combine(day, time.min) if day else None


def _day_end(day: date | None) -> datetime | None:
    # statements include the whole of the end day
    return datetime.combine(day + timedelta(days=1), time.min) - timedelta(microseconds=1) if day else None


# ── Business reports ───────────────────────────────────────────────────────


@router.get("/reports/dashboard", tags=["reports"])
def dashboard(session: Session = Depends(get_session), _: User = Depends(_reader)) -> dict[str, Any]:
    return reports.dashboard(session)


@router.get("/reports/sales", tags=["reports"])
def sales_report(
    start: date | None = None,
    end: date | None = None,
    top: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    _: User = Depends(_reader),
) -> dict[str, Any]:
    return reports.sales_report(session, start, end, top)


@router.get("/reports/inventory", tags=["reports"])
def inventory_report(session: Session = Depends(get_session), _: User = Depends(_reader)) -> dict[str, Any]:
    return reports.inventory_report(session)


@router.get("/reports/low-stock", tags=["reports"])
def low_stock_report(session: Session = Depends(get_session), _: User = Depends(_reader)) -> list[dict[str, Any]]:
    return reports.low_stock_report(session)


@router.get("/reports/expenses", tags=["reports"])
def expense_report(
    start: date | None = None,
    end: date | None = None,
    session: Session = Depends(get_session),
    _: User = Depends(_reader),
) -> dict[str, Any]:
    return expenses.expense_summary(session, start, end)


@router.get("/reports/customers", tags=["reports"])
def customer_report(
    start: date | None = None,
    end: date | None = None,
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    _: User = Depends(_reader),
) -> list[dict[str, Any]]:
    return reports.customer_ranking(session, start, end, limit)


# ── Financial statements ───────────────────────────────────────────────────


@router.get("/reports/trial-balance", tags=["reports"])
def trial_balance(
    as_of: date | None = None, session: Session = Depends(get_session), _: User = Depends(_reader)
) -> dict[str, Any]:
    return accounting.trial_balance(session, _day_end(as_of))


@router.get("/reports/income-statement", tags=["reports"])
def income_statement(
    start: date | None = None,
    end: date | None = None,
    session: Session = Depends(get_session),
    _: User = Depends(_reader),
) -> dict[str, Any]:
    return accounting.income_statement(session, _day_start(start), _day_end(end))


@router.get("/reports/balance-sheet", tags=["reports"])
def balance_sheet(
    as_of: date | None = None, session: Session = Depends(get_session), _: User = Depends(_reader)
) -> dict[str, Any]:
    return accounting.balance_sheet(session, _day_end(as_of))


# ── BIR compliance ─────────────────────────────────────────────────────────


@router.get("/compliance/vat", tags=["compliance"])
def vat_report(
    year: int = Query(..., ge=2000, le=2100),
    month: int | None = None,
    quarter: int | None = None,
    session: Session = Depends(get_session),
    _: User = Depends(_reader),
) -> dict[str, Any]:
    return compliance.bir_report(session, "VAT", compliance.make_period(year, month, quarter))


@router.get("/compliance/income-tax", tags=["compliance"])
def income_tax_report(
    year: int = Query(..., ge=2000, le=2100),
    month: int | None = None,
    quarter: int | None = None,
    session: Session = Depends(get_session),
    _: User = Depends(_reader),
) -> dict[str, Any]:
    return compliance.bir_report(session, "INCOME_TAX", compliance.make_period(year, month, quarter))


@router.get("/compliance/2550m", tags=["compliance"])
def form_2550m(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    _: User = Depends(_reader),
) -> dict[str, Any]:
    return compliance.form_2550m(session, year, month, config)


@router.get("/compliance/alphalist", tags=["compliance"])
def alphalist(
    year: int = Query(..., ge=2000, le=2100),
    session: Session = Depends(get_session),
    _: User = Depends(_reader),
) -> list[dict[str, Any]]:
    return compliance.alphalist(session, year)


@router.get("/compliance/withholding-tax", tags=["compliance"])
def withholding_tax(
    amount: Decimal = Query(..., ge=0),
    kind: str = Query("goods", pattern="^(" + "|".join(WITHHOLDING_TAX_RATES) + ")$"),
    _: User = Depends(_reader),
) -> dict[str, Any]:
    return asdict(calculate_withholding_tax(amount, kind))


@router.get("/compliance/vat-calc", tags=["compliance"])
def vat_calculation(
    amount: Decimal = Query(..., ge=0),
    inclusive: bool = False,
    exempt: bool = False,
    zero_rated: bool = False,
    config: dict = Depends(get_config),
    _: User = Depends(_reader),
) -> dict[str, Any]:
    result = calculate_vat(amount, inclusive, exempt, zero_rated, rate=settings.vat_rate(config))
    return asdict(result)
