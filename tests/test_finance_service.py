"""Tests for expenses and payroll processing."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from fbms.backend.core.errors import ConflictError, TransitionError, ValidationError
from fbms.backend.schemas.finance import (
    ComputePayrollIn,
    EmployeeIn,
    ExpenseIn,
    ExpenseUpdate,
    PayrollInputIn,
    PayrollPeriodIn,
)
from fbms.backend.services import accounting, expenses, payroll


@pytest.fixture
def rent(session):
    return next(c for c in expenses.list_expense_categories(session) if c.name == "Rent")


@pytest.fixture
def expense(session, rent, admin):
    data = ExpenseIn(
        category_id=rent.id,
        description="March store rent",
        amount=Decimal("10000"),
        tax_amount=Decimal("1200"),
        expense_date=date(2024, 3, 1),
        vendor="Ayala Land",
    )
    return expenses.create_expense(session, data, admin.id)


@pytest.fixture
def employee(session, admin):
    data = EmployeeIn(
        employee_code="EMP-001",
        first_name="Ana",
        last_name="Reyes",
        basic_salary=Decimal("25000"),
        tin="111-222-333-000",
    )
    return payroll.create_employee(session, data, admin.id)


@pytest.fixture
def period(session, admin):
    data = PayrollPeriodIn(
        name="January 2024",
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 31),
        pay_date=date(2024, 1, 31),
    )
    return payroll.create_period(session, data, admin.id)


class TestExpenses:
    def test_created_pending(self, expense) -> None:
        assert expense.status == "pending"
        assert expense.amount == Decimal("10000.00")

    def test_non_positive_amount(self, session, rent) -> None:
        data = ExpenseIn(category_id=rent.id, description="x", amount=Decimal("0"), expense_date=date(2024, 3, 1))
        with pytest.raises(ValidationError):
            expenses.create_expense(session, data)

    def test_approve_then_pay_posts_to_ledger(self, session, expense, admin) -> None:
        expenses.approve_expense(session, expense.id, admin.id)
        expenses.pay_expense(session, expense.id, admin.id)

        assert expense.status == "paid"
        assert accounting.account_balance(session, accounting.CASH) == Decimal("-11200.00")
        assert accounting.account_balance(session, accounting.INPUT_VAT) == Decimal("1200.00")
        assert accounting.account_balance(session, accounting.OPERATING_EXPENSES) == Decimal("10000.00")
        assert expenses.total_paid(session) == Decimal("11200.00")

    def test_pending_cannot_be_paid(self, session, expense, admin) -> None:
        with pytest.raises(TransitionError):
            expenses.pay_expense(session, expense.id, admin.id)

    def test_only_pending_can_be_edited(self, session, expense, admin) -> None:
        expenses.update_expense(session, expense.id, ExpenseUpdate(amount=Decimal("9500")), admin.id)
        assert expense.amount == Decimal("9500.00")
        expenses.reject_expense(session, expense.id, "Duplicate", admin.id)
        assert expense.rejection_reason == "Duplicate"
        with pytest.raises(TransitionError):
            expenses.update_expense(session, expense.id, ExpenseUpdate(amount=Decimal("1")), admin.id)

    def test_optional_fields_can_be_cleared(self, session, expense, admin) -> None:
        expenses.update_expense(session, expense.id, ExpenseUpdate(vendor=None, receipt_number=None), admin.id)
        assert expense.vendor is None
        assert expense.description == "March store rent"
        assert expense.amount == Decimal("10000.00")

    def test_required_fields_cannot_be_cleared(self, session, expense, admin) -> None:
        with pytest.raises(ValidationError) as exc:
            expenses.update_expense(session, expense.id, ExpenseUpdate(description=None, tax_amount=None), admin.id)
        assert {e["field"] for e in exc.value.errors} == {"description", "tax_amount"}
        assert expense.description == "March store rent"

    def test_category_in_use_cannot_be_deleted(self, session, expense, rent) -> None:
        with pytest.raises(ConflictError):
            expenses.delete_expense_category(session, rent.id)

    def test_summary_skips_rejected(self, session, expense, rent, admin) -> None:
        other = ExpenseIn(
            category_id=rent.id, description="Wrong entry", amount=Decimal("500"), expense_date=date(2024, 3, 2)
        )
        wrong = expenses.create_expense(session, other, admin.id)
        expenses.reject_expense(session, wrong.id, "Typo", admin.id)

        summary = expenses.expense_summary(session)
        assert summary["total"] == Decimal("10000.00")
        assert summary["pending"] == 1
        assert summary["by_month"] == [{"month": "2024-03", "count": 1, "total": Decimal("10000.00")}]


class TestEmployees:
    def test_duplicate_code(self, session, employee) -> None:
        data = EmployeeIn(employee_code="EMP-001", first_name="Ben", last_name="Cruz")
        with pytest.raises(ConflictError):
            payroll.create_employee(session, data)

    def test_bad_tin(self, session) -> None:
        data = EmployeeIn(employee_code="EMP-002", first_name="Ben", last_name="Cruz", tin="123")
        with pytest.raises(ValidationError):
            payroll.create_employee(session, data)

    def test_delete_terminates(self, session, employee) -> None:
        payroll.delete_employee(session, employee.id)
        assert employee.status == "terminated"
        assert payroll.list_employees(session, status="active") == []


class TestPayrollPeriods:
    def test_compute_entries(self, session, employee, period) -> None:
        (entry,) = payroll.compute_period(session, period.id)
        assert period.status == "processing"
        assert entry.gross_pay == Decimal("25000.00")
        assert entry.withholding_tax == Decimal("381.30")
        assert entry.net_pay == Decimal("22993.70")

    def test_overtime_and_deduction_inputs(self, session, employee, period) -> None:
        employee.basic_salary = Decimal("17600")
        data = ComputePayrollIn(
            inputs=[PayrollInputIn(employee_id=employee.id, overtime_hours=Decimal("10"), other_deductions=Decimal("500"))]
        )
        (entry,) = payroll.compute_period(session, period.id, data)
        assert entry.overtime_pay == Decimal("1250.00")
        assert entry.other_deductions == Decimal("500.00")

    def test_recompute_replaces_entries(self, session, employee, period) -> None:
        payroll.compute_period(session, period.id)
        payroll.compute_period(session, period.id)
        assert len(payroll.list_entries(session, period.id)) == 1

    def test_unknown_input_employee(self, session, employee, period) -> None:
        data = ComputePayrollIn(inputs=[PayrollInputIn(employee_id="ghost")])
        with pytest.raises(ValidationError):
            payroll.compute_period(session, period.id, data)

    def test_close_posts_payroll(self, session, employee, period, admin) -> None:
        payroll.compute_period(session, period.id)
        payroll.close_period(session, period.id, admin.id)

        assert period.status == "closed"
        assert period.closed_at is not None
        assert accounting.account_balance(session, accounting.CASH) == Decimal("-22993.70")
        assert accounting.account_balance(session, accounting.WITHHOLDING_PAYABLE) == Decimal("-381.30")
        assert accounting.trial_balance(session)["balanced"]

        with pytest.raises(TransitionError):
            payroll.compute_period(session, period.id)
        with pytest.raises(TransitionError):
            payroll.reopen_period(session, period.id)

    def test_close_requires_entries(self, session, period) -> None:
        with pytest.raises(ValidationError):
            payroll.close_period(session, period.id)

    def test_reopen_from_processing(self, session, employee, period) -> None:
        payroll.compute_period(session, period.id)
        payroll.reopen_period(session, period.id)
        assert period.status == "open"

    def test_period_dates(self, session) -> None:
        data = PayrollPeriodIn(
            name="Backwards", start_date=date(2024, 2, 1), end_date=date(2024, 1, 1), pay_date=date(2024, 2, 1)
        )
        with pytest.raises(ValidationError):
            payroll.create_period(session, data)


class TestPayrollSummaries:
    def test_summary_and_thirteenth_month(self, session, employee, period, admin) -> None:
        payroll.compute_period(session, period.id)
        payroll.close_period(session, period.id, admin.id)

        summary = payroll.payroll_summary(session, 2024, 1)
        assert summary["entries"] == 1
        assert summary["total_net"] == Decimal("22993.70")
        assert payroll.payroll_summary(session, 2024, 2)["entries"] == 0

        (row,) = payroll.thirteenth_month(session, 2024)
        assert row["total_basic"] == Decimal("25000.00")
        assert row["thirteenth_month_pay"] == Decimal("2083.33")
