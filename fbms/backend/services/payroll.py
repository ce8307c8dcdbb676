"""Employees, payroll periods and pay computation."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import extract, func, select
from sqlalchemy.orm import Session

from fbms.backend.core.compliance.bir import validate_tin
from fbms.backend.core.errors import ConflictError, Issue, NotFoundError, TransitionError, ValidationError
from fbms.backend.core.payroll.contributions import compute_pay, thirteenth_month_pay
from fbms.backend.core.utils.money import money, to_decimal
from fbms.backend.db.models import Employee, PayrollEntry, PayrollPeriod, utcnow
from fbms.backend.schemas.finance import ComputePayrollIn, EmployeeIn, EmployeeUpdate, PayrollPeriodIn
from fbms.backend.services import accounting, audit

logger = logging.getLogger(__name__)

PERIOD_TRANSITIONS = {"open": ("processing",), "processing": ("open", "closed"), "closed": ()}
_EMPLOYEE_FIELDS = ("employee_code", "first_name", "last_name", "basic_salary", "allowances", "status")


# ── Employees ───────────────────────────────────────────────────────────────


def _validate_employee(values: dict[str, Any]) -> None:
    issues = []
    for key in ("basic_salary", "allowances", "hourly_rate"):
        if values.get(key) is not None and values[key] < 0:
            issues.append(Issue(key, f"{key.replace('_', ' ').capitalize()} cannot be negative", "NEGATIVE_VALUE"))
    if values.get("tin") and not validate_tin(values["tin"]):
        issues.append(Issue("tin", "TIN must look like XXX-XXX-XXX-XXX", "INVALID_TIN"))
    if issues:
        raise ValidationError("Invalid employee", issues)


def get_employee(session: Session, employee_id: str) -> Employee:
    employee = session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee", employee_id)
    return employee


def list_employees(session: Session, status: str | None = None) -> list[Employee]:
    stmt = select(Employee).order_by(Employee.last_name, Employee.first_name)
    if status:
        stmt = stmt.where(Employee.status == status)
    return list(session.scalars(stmt))


def create_employee(session: Session, data: EmployeeIn, user_id: str | None = None) -> Employee:
    values = data.model_dump()
    _validate_employee(values)
    if session.scalar(select(Employee.id).where(Employee.employee_code == values["employee_code"])):
        raise ConflictError(f"Employee code {values['employee_code']} already exists")
    employee = Employee(**values)
    session.add(employee)
    session.flush()
    audit.record(session, user_id, "create", "employee", employee.id, None, audit.snapshot(employee, _EMPLOYEE_FIELDS))
    return employee


def update_employee(session: Session, employee_id: str, data: EmployeeUpdate, user_id: str | None = None) -> Employee:
    employee = get_employee(session, employee_id)
    changes = data.model_dump(exclude_unset=True)
    _validate_employee(changes)
    old = audit.snapshot(employee, _EMPLOYEE_FIELDS)
    for key, value in changes.items():
        setattr(employee, key, value)
    session.flush()
    audit.record(session, user_id, "update", "employee", employee.id, old, audit.snapshot(employee, _EMPLOYEE_FIELDS))
    return employee


def delete_employee(session: Session, employee_id: str, user_id: str | None = None) -> Employee:
    """Terminated employees keep their payroll history."""
    employee = get_employee(session, employee_id)
    employee.status = "terminated"
    session.flush()
    audit.record(session, user_id, "delete", "employee", employee.id)
    return employee


# ── Periods ─────────────────────────────────────────────────────────────────


def get_period(session: Session, period_id: str) -> PayrollPeriod:
    period = session.get(PayrollPeriod, period_id)
    if period is None:
        raise NotFoundError("Payroll period", period_id)
    return period


def list_periods(session: Session, status: str | None = None) -> list[PayrollPeriod]:
    stmt = select(PayrollPeriod).order_by(PayrollPeriod.start_date.desc())
    if status:
        stmt = stmt.where(PayrollPeriod.status == status)
    return list(session.scalars(stmt))


def create_period(session: Session, data: PayrollPeriodIn, user_id: str | None = None) -> PayrollPeriod:
    if data.end_date < data.start_date:
        raise ValidationError(
            "Period ends before it starts", [Issue("end_date", "Must be on or after start date", "INVALID_RANGE")]
        )
    period = PayrollPeriod(**data.model_dump(), status="open")
    session.add(period)
    session.flush()
    audit.record(session, user_id, "create", "payroll_period", period.id, None, {"name": period.name})
    return period


def _move(session: Session, period: PayrollPeriod, status: str, user_id: str | None) -> None:
    if status not in PERIOD_TRANSITIONS.get(period.status, ()):
        raise TransitionError(f"Payroll period cannot move from {period.status} to {status}")
    old = period.status
    period.status = status
    session.flush()
    audit.record(session, user_id, "status_change", "payroll_period", period.id, {"status": old}, {"status": status})


def compute_period(
    session: Session, period_id: str, data: ComputePayrollIn | None = None, user_id: str | None = None
) -> list[PayrollEntry]:
    """
    (Re)compute entries for every active employee in an open period.

    Overtime hours and other deductions come from ``data.inputs``; employees
    without an input get neither. Existing entries for the period are
    replaced, so there is always one entry per employee.
    """
    period = get_period(session, period_id)
    if period.status not in ("open", "processing"):
        raise TransitionError(f"Payroll period is {period.status}; entries can no longer be computed")

    inputs = {i.employee_id: i for i in (data.inputs if data else [])}
    employees = list_employees(session, status="active")
    known = {e.id for e in employees}
    unknown = [eid for eid in inputs if eid not in known]
    if unknown:
        raise ValidationError(
            "Inputs reference inactive or unknown employees",
            [Issue("employee_id", eid, "UNKNOWN_EMPLOYEE") for eid in unknown],
        )

    period.entries.clear()
    session.flush()

    for employee in employees:
        extra = inputs.get(employee.id)
        pay = compute_pay(
            employee.basic_salary,
            allowances=employee.allowances,
            overtime_hours=extra.overtime_hours if extra else 0,
            explicit_hourly_rate=employee.hourly_rate,
            other_deductions=extra.other_deductions if extra else 0,
        )
        period.entries.append(
            PayrollEntry(
                employee_id=employee.id,
                basic_pay=pay.basic_pay,
                allowances=pay.allowances,
                overtime_hours=pay.overtime_hours,
                overtime_pay=pay.overtime_pay,
                gross_pay=pay.gross_pay,
                sss_employee=pay.sss.employee,
                sss_employer=pay.sss.employer,
                philhealth_employee=pay.philhealth.employee,
                philhealth_employer=pay.philhealth.employer,
                pagibig_employee=pay.pagibig.employee,
                pagibig_employer=pay.pagibig.employer,
                withholding_tax=pay.withholding_tax,
                other_deductions=pay.other_deductions,
                total_deductions=pay.total_deductions,
                net_pay=pay.net_pay,
            )
        )
    if period.status == "open":
        period.status = "processing"
    session.flush()
    audit.record(session, user_id, "compute", "payroll_period", period.id, None, {"entries": len(period.entries)})
    logger.info("Computed %d payroll entries for %s", len(period.entries), period.name)
    return list(period.entries)


def reopen_period(session: Session, period_id: str, user_id: str | None = None) -> PayrollPeriod:
    period = get_period(session, period_id)
    _move(session, period, "open", user_id)
    return period


def close_period(session: Session, period_id: str, user_id: str | None = None) -> PayrollPeriod:
    period = get_period(session, period_id)
    if not period.entries:
        raise ValidationError("Nothing to close", [Issue("entries", "Compute payroll first", "NO_ENTRIES")])
    _move(session, period, "closed", user_id)
    period.closed_at = utcnow()
    session.flush()
    accounting.post_payroll(session, period, user_id)
    logger.info("Payroll period %s closed", period.name)
    return period


def list_entries(session: Session, period_id: str) -> list[PayrollEntry]:
    return list(get_period(session, period_id).entries)


# ── Summaries ───────────────────────────────────────────────────────────────


def payroll_summary(session: Session, year: int, month: int | None = None) -> dict[str, Any]:
    stmt = (
        select(
            func.count(PayrollEntry.id),
            func.coalesce(func.sum(PayrollEntry.gross_pay), 0),
            func.coalesce(func.sum(PayrollEntry.total_deductions), 0),
            func.coalesce(func.sum(PayrollEntry.net_pay), 0),
        )
        .join(PayrollPeriod, PayrollEntry.period_id == PayrollPeriod.id)
        .where(extract("year", PayrollPeriod.end_date) == year)
    )
    if month is not None:
        stmt = stmt.where(extract("month", PayrollPeriod.end_date) == month)
    count, gross, deductions, net = session.execute(stmt).one()
    return {
        "year": year,
        "month": month,
        "entries": int(count),
        "total_gross": money(gross),
        "total_deductions": money(deductions),
        "total_net": money(net),
    }


def thirteenth_month(session: Session, year: int, user_id: str | None = None) -> list[dict[str, Any]]:
    """
    13th month pay per employee: basic pay earned in ``year`` divided by 12.

    The amount is stored on each employee's latest entry of the year.
    """
    rows = []
    for employee in list_employees(session):
        entries = list(
            session.scalars(
                select(PayrollEntry)
                .join(PayrollPeriod, PayrollEntry.period_id == PayrollPeriod.id)
                .where(
                    PayrollEntry.employee_id == employee.id,
                    PayrollPeriod.end_date >= date(year, 1, 1),
                    PayrollPeriod.end_date <= date(year, 12, 31),
                )
                .order_by(PayrollPeriod.end_date)
            )
        )
        if not entries:
            continue
        total_basic = sum((to_decimal(e.basic_pay) for e in entries), Decimal(0))
        amount = thirteenth_month_pay(total_basic)
        entries[-1].thirteenth_month_pay = amount
        rows.append(
            {
                "employee_id": employee.id,
                "employee_code": employee.employee_code,
                "name": f"{employee.first_name} {employee.last_name}",
                "total_basic": money(total_basic),
                "thirteenth_month_pay": amount,
            }
        )
    session.flush()
    audit.record(session, user_id, "compute_13th_month", "payroll", None, None, {"year": year, "employees": len(rows)})
    return rows
