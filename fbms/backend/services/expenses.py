"""Expense categories and the expense approval / payment flow."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from fbms.backend.core.analysis import reporter
from fbms.backend.core.errors import ConflictError, Issue, NotFoundError, TransitionError, ValidationError
from fbms.backend.core.utils.money import money
from fbms.backend.db.models import Expense, ExpenseCategory, utcnow
from fbms.backend.schemas.finance import ExpenseCategoryIn, ExpenseIn, ExpenseUpdate
from fbms.backend.services import accounting, audit

logger = logging.getLogger(__name__)

EXPENSE_STATUSES = ("pending", "approved", "rejected", "paid")
_FIELDS = ("category_id", "description", "amount", "tax_amount", "expense_date", "vendor", "status")
_REQUIRED = ("category_id", "description", "tax_amount", "expense_date")


# ── Categories ──────────────────────────────────────────────────────────────


def list_expense_categories(session: Session, active_only: bool = False) -> list[ExpenseCategory]:
    stmt = select(ExpenseCategory).order_by(ExpenseCategory.name)
    if active_only:
        stmt = stmt.where(ExpenseCategory.is_active.is_(True))
    return list(session.scalars(stmt))


def get_expense_category(session: Session, category_id: str) -> ExpenseCategory:
    category = session.get(ExpenseCategory, category_id)
    if category is None:
        raise NotFoundError("Expense category", category_id)
    return category


def _check_category_name(session: Session, name: str, exclude_id: str | None = None) -> None:
    stmt = select(ExpenseCategory.id).where(ExpenseCategory.name == name)
    if exclude_id:
        stmt = stmt.where(ExpenseCategory.id != exclude_id)
    if session.scalar(stmt):
        raise ConflictError(f"Expense category '{name}' already exists")


def create_expense_category(session: Session, data: ExpenseCategoryIn, user_id: str | None = None) -> ExpenseCategory:
    _check_category_name(session, data.name)
    category = ExpenseCategory(**data.model_dump())
    session.add(category)
    session.flush()
    audit.record(session, user_id, "create", "expense_category", category.id, None, {"name": category.name})
    return category


def update_expense_category(
    session: Session, category_id: str, data: ExpenseCategoryIn, user_id: str | None = None
) -> ExpenseCategory:
    category = get_expense_category(session, category_id)
    _check_category_name(session, data.name, exclude_id=category.id)
    for key, value in data.model_dump().items():
        setattr(category, key, value)
    session.flush()
    audit.record(session, user_id, "update", "expense_category", category.id, None, {"name": category.name})
    return category


def delete_expense_category(session: Session, category_id: str, user_id: str | None = None) -> None:
    category = get_expense_category(session, category_id)
    in_use = session.scalar(select(Expense.id).where(Expense.category_id == category.id).limit(1))
    if in_use:
        raise ConflictError(f"Expense category '{category.name}' has expenses and cannot be deleted")
    session.delete(category)
    session.flush()
    audit.record(session, user_id, "delete", "expense_category", category_id)


# ── Expenses ────────────────────────────────────────────────────────────────


def _validate_amounts(values: dict[str, Any]) -> None:
    issues = []
    if "amount" in values and (values["amount"] is None or values["amount"] <= 0):
        issues.append(Issue("amount", "Amount must be greater than zero", "INVALID_AMOUNT"))
    if values.get("tax_amount") is not None and values["tax_amount"] < 0:
        issues.append(Issue("tax_amount", "Tax amount cannot be negative", "NEGATIVE_VALUE"))
    if issues:
        raise ValidationError("Invalid expense", issues)


def get_expense(session: Session, expense_id: str) -> Expense:
    expense = session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("Expense", expense_id)
    return expense


def list_expenses(
    session: Session,
    status: str | None = None,
    category_id: str | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[Expense]:
    stmt = select(Expense)
    if status:
        stmt = stmt.where(Expense.status == status)
    if category_id:
        stmt = stmt.where(Expense.category_id == category_id)
    if start:
        stmt = stmt.where(Expense.expense_date >= start)
    if end:
        stmt = stmt.where(Expense.expense_date <= end)
    return list(session.scalars(stmt.order_by(Expense.expense_date.desc(), Expense.created_at.desc())))


def create_expense(session: Session, data: ExpenseIn, user_id: str | None = None) -> Expense:
    values = data.model_dump()
    _validate_amounts(values)
    get_expense_category(session, values["category_id"])
    values["amount"] = money(values["amount"])
    values["tax_amount"] = money(values["tax_amount"])
    expense = Expense(**values, status="pending", created_by=user_id)
    session.add(expense)
    session.flush()
    audit.record(session, user_id, "create", "expense", expense.id, None, audit.snapshot(expense, _FIELDS))
    return expense


def _pending(expense: Expense, action: str) -> None:
    if expense.status != "pending":
        raise TransitionError(f"Only pending expenses can be {action} (expense is {expense.status})")


def update_expense(session: Session, expense_id: str, data: ExpenseUpdate, user_id: str | None = None) -> Expense:
    expense = get_expense(session, expense_id)
    _pending(expense, "edited")
    changes = data.model_dump(exclude_unset=True)
    missing = [key for key in _REQUIRED if key in changes and changes[key] in (None, "")]
    if missing:
        raise ValidationError(
            "Invalid expense", [Issue(key, f"{key} cannot be cleared", "REQUIRED") for key in missing]
        )
    _validate_amounts(changes)
    if "category_id" in changes:
        get_expense_category(session, changes["category_id"])
    old = audit.snapshot(expense, _FIELDS)
    for key, value in changes.items():
        setattr(expense, key, money(value) if key in ("amount", "tax_amount") else value)
    session.flush()
    audit.record(session, user_id, "update", "expense", expense.id, old, audit.snapshot(expense, _FIELDS))
    return expense


def delete_expense(session: Session, expense_id: str, user_id: str | None = None) -> None:
    expense = get_expense(session, expense_id)
    _pending(expense, "deleted")
    old = audit.snapshot(expense, _FIELDS)
    session.delete(expense)
    session.flush()
    audit.record(session, user_id, "delete", "expense", expense_id, old)


def approve_expense(session: Session, expense_id: str, user_id: str | None = None) -> Expense:
    expense = get_expense(session, expense_id)
    _pending(expense, "approved")
    expense.status = "approved"
    expense.approved_by = user_id
    expense.approved_at = utcnow()
    session.flush()
    audit.record(session, user_id, "approve", "expense", expense.id, {"status": "pending"}, {"status": "approved"})
    return expense


def reject_expense(session: Session, expense_id: str, reason: str, user_id: str | None = None) -> Expense:
    expense = get_expense(session, expense_id)
    _pending(expense, "rejected")
    expense.status = "rejected"
    expense.rejection_reason = reason
    session.flush()
    audit.record(
        session, user_id, "reject", "expense", expense.id,
        {"status": "pending"}, {"status": "rejected", "reason": reason},
    )
    return expense


def pay_expense(session: Session, expense_id: str, user_id: str | None = None) -> Expense:
    """Mark an approved expense as paid and post it to the ledger."""
    expense = get_expense(session, expense_id)
    if expense.status != "approved":
        raise TransitionError(f"Only approved expenses can be paid (expense is {expense.status})")
    expense.status = "paid"
    expense.paid_at = utcnow()
    session.flush()
    accounting.post_expense_payment(session, expense, user_id)
    audit.record(session, user_id, "pay", "expense", expense.id, {"status": "approved"}, {"status": "paid"})
    logger.info("Expense %s paid: %s", expense.id, money(expense.amount + expense.tax_amount))
    return expense


def expense_summary(
    session: Session, start: date | None = None, end: date | None = None, include_rejected: bool = False
) -> dict[str, Any]:
    rows = []
    for expense in list_expenses(session, start=start, end=end):
        if expense.status == "rejected" and not include_rejected:
            continue
        rows.append(
            {
                "id": expense.id,
                "expense_date": expense.expense_date,
                "category": expense.category.name,
                "description": expense.description,
                "amount": expense.amount,
                "tax_amount": expense.tax_amount,
                "status": expense.status,
            }
        )
    summary = reporter.expense_summary(reporter.to_frame(rows, reporter.EXPENSE_COLUMNS))
    summary["pending"] = sum(1 for r in rows if r["status"] == "pending")
    summary["start"] = start
    summary["end"] = end
    return summary


def total_paid(session: Session, start: date | None = None, end: date | None = None) -> Decimal:
    return money(sum((e.amount + e.tax_amount for e in list_expenses(session, "paid", start=start, end=end)), Decimal(0)))
