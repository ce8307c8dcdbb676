"""Expenses, employees and payroll."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from fbms.backend.api.deps import get_session, require
from fbms.backend.db.models import User
from fbms.backend.schemas import (
    ComputePayrollIn,
    EmployeeIn,
    EmployeeOut,
    EmployeeUpdate,
    ExpenseCategoryIn,
    ExpenseCategoryOut,
    ExpenseIn,
    ExpenseOut,
    ExpenseUpdate,
    PayrollEntryOut,
    PayrollPeriodIn,
    PayrollPeriodOut,
    RejectIn,
)
from fbms.backend.services import expenses, payroll

router = APIRouter()


# ── Expense categories ─────────────────────────────────────────────────────
# Declared before /expenses/{expense_id} so "categories" is not taken as an id.


@router.get("/expenses/categories", response_model=list[ExpenseCategoryOut], tags=["expenses"])
def list_expense_categories(
    active_only: bool = False,
    session: Session = Depends(get_session),
    _: User = Depends(require("expenses", "read")),
):
    return expenses.list_expense_categories(session, active_only)


@router.post("/expenses/categories", response_model=ExpenseCategoryOut, status_code=201, tags=["expenses"])
def create_expense_category(
    data: ExpenseCategoryIn,
    session: Session = Depends(get_session),
    user: User = Depends(require("expenses", "write")),
):
    return expenses.create_expense_category(session, data, user.id)


@router.put("/expenses/categories/{category_id}", response_model=ExpenseCategoryOut, tags=["expenses"])
def update_expense_category(
    category_id: str,
    data: ExpenseCategoryIn,
    session: Session = Depends(get_session),
    user: User = Depends(require("expenses", "write")),
):
    return expenses.update_expense_category(session, category_id, data, user.id)


@router.delete("/expenses/categories/{category_id}", status_code=204, tags=["expenses"])
def delete_expense_category(
    category_id: str, session: Session = Depends(get_session), user: User = Depends(require("expenses", "write"))
) -> Response:
    expenses.delete_expense_category(session, category_id, user.id)
    return Response(status_code=204)


# ── Expenses ───────────────────────────────────────────────────────────────


@router.get("/expenses/summary", tags=["expenses"])
def expense_summary(
    start: date | None = None,
    end: date | None = None,
    include_rejected: bool = False,
    session: Session = Depends(get_session),
    _: User = Depends(require("expenses", "read")),
) -> dict[str, Any]:
    return expenses.expense_summary(session, start, end, include_rejected)


@router.get("/expenses", response_model=list[ExpenseOut], tags=["expenses"])
def list_expenses(
    status: str | None = None,
    category_id: str | None = None,
    start: date | None = None,
    end: date | None = None,
    session: Session = Depends(get_session),
    _: User = Depends(require("expenses", "read")),
):
    return expenses.list_expenses(session, status, category_id, start, end)


@router.post("/expenses", response_model=ExpenseOut, status_code=201, tags=["expenses"])
def create_expense(
    data: ExpenseIn, session: Session = Depends(get_session), user: User = Depends(require("expenses", "write"))
):
    return expenses.create_expense(session, data, user.id)


@router.get("/expenses/{expense_id}", response_model=ExpenseOut, tags=["expenses"])
def get_expense(
    expense_id: str, session: Session = Depends(get_session), _: User = Depends(require("expenses", "read"))
):
    return expenses.get_expense(session, expense_id)


@router.patch("/expenses/{expense_id}", response_model=ExpenseOut, tags=["expenses"])
def update_expense(
    expense_id: str,
    data: ExpenseUpdate,
    session: Session = Depends(get_session),
    user: User = Depends(require("expenses", "write")),
):
    return expenses.update_expense(session, expense_id, data, user.id)


@router.delete("/expenses/{expense_id}", status_code=204, tags=["expenses"])
def delete_expense(
    expense_id: str, session: Session = Depends(get_session), user: User = Depends(require("expenses", "write"))
) -> Response:
    expenses.delete_expense(session, expense_id, user.id)
    return Response(status_code=204)


@router.post("/expenses/{expense_id}/approve", response_model=ExpenseOut, tags=["expenses"])
def approve_expense(
    expense_id: str, session: Session = Depends(get_session), user: User = Depends(require("expenses", "approve"))
):
    return expenses.approve_expense(session, expense_id, user.id)


@router.post("/expenses/{expense_id}/reject", response_model=ExpenseOut, tags=["expenses"])
def reject_expense(
    expense_id: str,
    data: RejectIn,
    session: Session = Depends(get_session),
    user: User = Depends(require("expenses", "approve")),
):
    return expenses.reject_expense(session, expense_id, data.reason, user.id)


@router.post("/expenses/{expense_id}/pay", response_model=ExpenseOut, tags=["expenses"])
def pay_expense(
    expense_id: str, session: Session = Depends(get_session), user: User = Depends(require("expenses", "approve"))
):
    return expenses.pay_expense(session, expense_id, user.id)


# ── Employees ──────────────────────────────────────────────────────────────


@router.get("/employees", response_model=list[EmployeeOut], tags=["payroll"])
def list_employees(
    status: str | None = None,
    session: Session = Depends(get_session),
    _: User = Depends(require("payroll", "read")),
):
    return payroll.list_employees(session, status)


@router.post("/employees", response_model=EmployeeOut, status_code=201, tags=["payroll"])
def create_employee(
    data: EmployeeIn, session: Session = Depends(get_session), user: User = Depends(require("payroll", "write"))
):
    return payroll.create_employee(session, data, user.id)


@router.get("/employees/{employee_id}", response_model=EmployeeOut, tags=["payroll"])
def get_employee(
    employee_id: str, session: Session = Depends(get_session), _: User = Depends(require("payroll", "read"))
):
    return payroll.get_employee(session, employee_id)


@router.patch("/employees/{employee_id}", response_model=EmployeeOut, tags=["payroll"])
def update_employee(
    employee_id: str,
    data: EmployeeUpdate,
    session: Session = Depends(get_session),
    user: User = Depends(require("payroll", "write")),
):
    return payroll.update_employee(session, employee_id, data, user.id)


@router.delete("/employees/{employee_id}", response_model=EmployeeOut, tags=["payroll"])
def delete_employee(
    employee_id: str, session: Session = Depends(get_session), user: User = Depends(require("payroll", "write"))
):
    return payroll.delete_employee(session, employee_id, user.id)


# ── Payroll ────────────────────────────────────────────────────────────────


@router.get("/payroll/summary", tags=["payroll"])
def payroll_summary(
    year: int = Query(..., ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
    session: Session = Depends(get_session),
    _: User = Depends(require("payroll", "read")),
) -> dict[str, Any]:
    return payroll.payroll_summary(session, year, month)


@router.post("/payroll/13th-month/{year}", tags=["payroll"])
def thirteenth_month(
    year: int, session: Session = Depends(get_session), user: User = Depends(require("payroll", "write"))
) -> list[dict[str, Any]]:
    return payroll.thirteenth_month(session, year, user.id)


@router.get("/payroll/periods", response_model=list[PayrollPeriodOut], tags=["payroll"])
def list_periods(
    status: str | None = None,
    session: Session = Depends(get_session),
    _: User = Depends(require("payroll", "read")),
):
    return payroll.list_periods(session, status)


@router.post("/payroll/periods", response_model=PayrollPeriodOut, status_code=201, tags=["payroll"])
def create_period(
    data: PayrollPeriodIn, session: Session = Depends(get_session), user: User = Depends(require("payroll", "write"))
):
    return payroll.create_period(session, data, user.id)


@router.get("/payroll/periods/{period_id}", response_model=PayrollPeriodOut, tags=["payroll"])
def get_period(
    period_id: str, session: Session = Depends(get_session), _: User = Depends(require("payroll", "read"))
):
    return payroll.get_period(session, period_id)


@router.post("/payroll/periods/{period_id}/compute", response_model=list[PayrollEntryOut], tags=["payroll"])
def compute_period(
    period_id: str,
    data: ComputePayrollIn | None = None,
    session: Session = Depends(get_session),
    user: User = Depends(require("payroll", "write")),
):
    return payroll.compute_period(session, period_id, data, user.id)


@router.post("/payroll/periods/{period_id}/reopen", response_model=PayrollPeriodOut, tags=["payroll"])
def reopen_period(
    period_id: str, session: Session = Depends(get_session), user: User = Depends(require("payroll", "write"))
):
    return payroll.reopen_period(session, period_id, user.id)


@router.post("/payroll/periods/{period_id}/close", response_model=PayrollPeriodOut, tags=["payroll"])
def close_period(
    period_id: str, session: Session = Depends(get_session), user: User = Depends(require("payroll", "write"))
):
    return payroll.close_period(session, period_id, user.id)


@router.get("/payroll/periods/{period_id}/entries", response_model=list[PayrollEntryOut], tags=["payroll"])
def list_entries(
    period_id: str, session: Session = Depends(get_session), _: User = Depends(require("payroll", "read"))
):
    return payroll.list_entries(session, period_id)
