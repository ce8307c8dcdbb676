"""Schemas for expenses, payroll and the general ledger."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from fbms.backend.schemas.base import ORMModel

# ── Expenses ────────────────────────────────────────────────────────────────


class ExpenseCategoryIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    bir_classification: str = "Operating Expenses"
    account_code: str | None = None
    is_active: bool = True


class ExpenseCategoryOut(ORMModel):
    id: str
    name: str
    description: str | None = None
    bir_classification: str
    account_code: str | None = None
    is_active: bool


class ExpenseIn(BaseModel):
    category_id: str
    description: str = Field(min_length=1)
    amount: Decimal
    tax_amount: Decimal = Decimal("0")
    expense_date: date
    vendor: str | None = None
    payment_method: str | None = None
    receipt_number: str | None = None


class ExpenseUpdate(BaseModel):
    category_id: str | None = None
    description: str | None = None
    amount: Decimal | None = None
    tax_amount: Decimal | None = None
    expense_date: date | None = None
    vendor: str | None = None
    payment_method: str | None = None
    receipt_number: str | None = None


class ExpenseOut(ORMModel):
    id: str
    category_id: str
    description: str
    amount: Decimal
    tax_amount: Decimal
    expense_date: date
    vendor: str | None = None
    payment_method: str | None = None
    receipt_number: str | None = None
    status: str
    created_by: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    paid_at: datetime | None = None
    rejection_reason: str | None = None


class RejectIn(BaseModel):
    reason: str = Field(min_length=1)


# ── Payroll ─────────────────────────────────────────────────────────────────


class EmployeeIn(BaseModel):
    employee_code: str = Field(min_length=1, max_length=50)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    middle_name: str | None = None
    email: str | None = None
    phone: str | None = None
    position: str | None = None
    department: str | None = None
    hire_date: date | None = None
    basic_salary: Decimal = Decimal("0")
    hourly_rate: Decimal | None = None
    allowances: Decimal = Decimal("0")
    employment_type: Literal["regular", "contractual", "part_time", "probationary"] = "regular"
    status: Literal["active", "inactive", "terminated"] = "active"
    sss_number: str | None = None
    philhealth_number: str | None = None
    pagibig_number: str | None = None
    tin: str | None = None
    bank_account: str | None = None


class EmployeeUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    middle_name: str | None = None
    email: str | None = None
    phone: str | None = None
    position: str | None = None
    department: str | None = None
    basic_salary: Decimal | None = None
    hourly_rate: Decimal | None = None
    allowances: Decimal | None = None
    employment_type: Literal["regular", "contractual", "part_time", "probationary"] | None = None
    status: Literal["active", "inactive", "terminated"] | None = None
    sss_number: str | None = None
    philhealth_number: str | None = None
    pagibig_number: str | None = None
    tin: str | None = None
    bank_account: str | None = None


class EmployeeOut(ORMModel):
    id: str
    employee_code: str
    first_name: str
    last_name: str
    middle_name: str | None = None
    position: str | None = None
    department: str | None = None
    hire_date: date | None = None
    basic_salary: Decimal
    hourly_rate: Decimal | None = None
    allowances: Decimal
    employment_type: str
    status: str
    tin: str | None = None


class PayrollPeriodIn(BaseModel):
    name: str = Field(min_length=1)
    start_date: date
    end_date: date
    pay_date: date


class PayrollPeriodOut(ORMModel):
    id: str
    name: str
    start_date: date
    end_date: date
    pay_date: date
    status: str
    closed_at: datetime | None = None


class PayrollInputIn(BaseModel):
    employee_id: str
    overtime_hours: Decimal = Field(default=Decimal("0"), ge=0)
    other_deductions: Decimal = Field(default=Decimal("0"), ge=0)


class ComputePayrollIn(BaseModel):
    inputs: list[PayrollInputIn] = []


class PayrollEntryOut(ORMModel):
    id: str
    period_id: str
    employee_id: str
    basic_pay: Decimal
    allowances: Decimal
    overtime_hours: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal
    sss_employee: Decimal
    sss_employer: Decimal
    philhealth_employee: Decimal
    philhealth_employer: Decimal
    pagibig_employee: Decimal
    pagibig_employer: Decimal
    withholding_tax: Decimal
    other_deductions: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    thirteenth_month_pay: Decimal


# ── Accounting ──────────────────────────────────────────────────────────────


class AccountIn(BaseModel):
    code: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1)
    account_type: Literal["Asset", "Liability", "Equity", "Income", "Expense"]
    parent_code: str | None = None
    description: str | None = None


class AccountOut(ORMModel):
    id: str
    code: str
    name: str
    account_type: str
    parent_id: str | None = None
    description: str | None = None
    is_active: bool


class JournalLineIn(BaseModel):
    account_code: str
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    description: str | None = None


class JournalEntryIn(BaseModel):
    description: str = Field(min_length=1)
    reference: str | None = None
    entry_date: datetime | None = None
    lines: list[JournalLineIn]


class JournalLineOut(BaseModel):
    account_code: str
    account_name: str
    debit: Decimal
    credit: Decimal
    description: str | None = None


class JournalEntryOut(BaseModel):
    id: str
    entry_number: str
    entry_date: datetime
    reference: str | None = None
    description: str
    source: str
    created_by: str | None = None
    lines: list[JournalLineOut]
