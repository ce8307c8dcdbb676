"""
General ledger: chart of accounts, journal entries, statements and the
automatic postings made by sales, expenses, payroll and purchasing.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fbms.backend.core.accounting import ledger
from fbms.backend.core.accounting.ledger import AccountBalance, LineInput
from fbms.backend.core.errors import ConflictError, Issue, NotFoundError, ValidationError
from fbms.backend.core.utils.money import money, to_decimal
from fbms.backend.db.models import Account, JournalEntry, JournalLine
from fbms.backend.db.session import next_sequence
from fbms.backend.schemas.finance import AccountIn, JournalEntryIn

logger = logging.getLogger(__name__)

CASH = "1000"
CARD_RECEIVABLES = "1010"
ACCOUNTS_RECEIVABLE = "1100"
INVENTORY = "1200"
INPUT_VAT = "1300"
ACCOUNTS_PAYABLE = "2000"
VAT_PAYABLE = "2100"
SSS_PAYABLE = "2200"
PHILHEALTH_PAYABLE = "2210"
PAGIBIG_PAYABLE = "2220"
WITHHOLDING_PAYABLE = "2230"
OWNERS_CAPITAL = "3000"
SALES_REVENUE = "4000"
SALES_RETURNS = "4100"
COST_OF_GOODS_SOLD = "5000"
SALARIES_EXPENSE = "6000"
OPERATING_EXPENSES = "6100"
INVENTORY_ADJUSTMENTS = "6200"

DEFAULT_CHART: tuple[tuple[str, str, str], ...] = (
    (CASH, "Cash on Hand", "Asset"),
    (CARD_RECEIVABLES, "Card and E-Wallet Receivables", "Asset"),
    (ACCOUNTS_RECEIVABLE, "Accounts Receivable", "Asset"),
    (INVENTORY, "Merchandise Inventory", "Asset"),
    (INPUT_VAT, "Input VAT", "Asset"),
    (ACCOUNTS_PAYABLE, "Accounts Payable", "Liability"),
    (VAT_PAYABLE, "Output VAT Payable", "Liability"),
    (SSS_PAYABLE, "SSS Contributions Payable", "Liability"),
    (PHILHEALTH_PAYABLE, "PhilHealth Contributions Payable", "Liability"),
    (PAGIBIG_PAYABLE, "Pag-IBIG Contributions Payable", "Liability"),
    (WITHHOLDING_PAYABLE, "Withholding Tax Payable", "Liability"),
    (OWNERS_CAPITAL, "Owner's Capital", "Equity"),
    (SALES_REVENUE, "Sales Revenue", "Income"),
    (SALES_RETURNS, "Sales Returns and Allowances", "Income"),
    (COST_OF_GOODS_SOLD, "Cost of Goods Sold", "Expense"),
    (SALARIES_EXPENSE, "Salaries and Wages", "Expense"),
    (OPERATING_EXPENSES, "Operating Expenses", "Expense"),
    (INVENTORY_ADJUSTMENTS, "Inventory Adjustments", "Expense"),
)

# Payment methods that settle in cash; the rest go through receivables.
_CASH_METHODS = ("cash",)


# ── Chart of accounts ───────────────────────────────────────────────────────


def get_account(session: Session, code: str) -> Account:
    account = session.scalar(select(Account).where(Account.code == code))
    if account is None:
        raise NotFoundError("Account", code)
    return account


def list_accounts(session: Session, account_type: str | None = None) -> list[Account]:
    stmt = select(Account).order_by(Account.code)
    if account_type:
        stmt = stmt.where(Account.account_type == account_type)
    return list(session.scalars(stmt))


def create_account(session: Session, data: AccountIn) -> Account:
    if session.scalar(select(Account.id).where(Account.code == data.code)):
        raise ConflictError(f"Account code {data.code} already exists")
    parent_id = get_account(session, data.parent_code).id if data.parent_code else None
    account = Account(
        code=data.code,
        name=data.name,
        account_type=data.account_type,
        parent_id=parent_id,
        description=data.description,
    )
    session.add(account)
    session.flush()
    return account


def ensure_default_chart(session: Session) -> int:
    """Create any missing default accounts; returns how many were added."""
    existing = set(session.scalars(select(Account.code)))
    added = 0
    for code, name, account_type in DEFAULT_CHART:
        if code not in existing:
            session.add(Account(code=code, name=name, account_type=account_type))
            added += 1
    session.flush()
    return added


# ── Journal ─────────────────────────────────────────────────────────────────


def post_journal_entry(
    session: Session,
    description: str,
    lines: list[LineInput],
    reference: str | None = None,
    source: str = "manual",
    user_id: str | None = None,
    entry_date: datetime | None = None,
) -> JournalEntry:
    """
    Validate and persist a balanced journal entry.

    Raises:
        ValidationError: Fewer than two lines, one-sided lines, imbalance,
            or unknown/inactive accounts
    """
    if source != "manual":
        # automatic postings drop zero lines, e.g. VAT on an exempt sale
        lines = [line for line in lines if money(line.debit) or money(line.credit)]
    issues = ledger.validate_journal_lines(lines)

    accounts: dict[str, Account] = {}
    for index, line in enumerate(lines):
        account = session.scalar(select(Account).where(Account.code == line.account_code))
        if account is None or not account.is_active:
            issues.append(
                Issue(f"lines.{index}.account_code", f"Unknown or inactive account {line.account_code}", "INVALID_ACCOUNT")
            )
        else:
            accounts[line.account_code] = account
    if issues:
        raise ValidationError("Invalid journal entry", issues)

    number = next_sequence(session, "journal_entry")
    entry = JournalEntry(
        entry_number=f"JE-{number:06d}",
        description=description,
        reference=reference,
        source=source,
        created_by=user_id,
    )
    if entry_date is not None:
        entry.entry_date = entry_date
    for position, line in enumerate(lines):
        entry.lines.append(
            JournalLine(
                position=position,
                account_id=accounts[line.account_code].id,
                description=line.description,
                debit=money(line.debit),
                credit=money(line.credit),
            )
        )
    session.add(entry)
    session.flush()
    logger.debug("Posted %s (%s)", entry.entry_number, description)
    return entry


def create_journal_entry(session: Session, data: JournalEntryIn, user_id: str | None = None) -> JournalEntry:
    lines = [
        LineInput(account_code=l.account_code, debit=l.debit, credit=l.credit, description=l.description)
        for l in data.lines
    ]
    return post_journal_entry(
        session, data.description, lines, reference=data.reference,
        source="manual", user_id=user_id, entry_date=data.entry_date,
    )


def get_journal_entry(session: Session, entry_id: str) -> JournalEntry:
    entry = session.get(JournalEntry, entry_id)
    if entry is None:
        raise NotFoundError("Journal entry", entry_id)
    return entry


def list_journal_entries(
    session: Session,
    start: datetime | None = None,
    end: datetime | None = None,
    source: str | None = None,
    reference: str | None = None,
) -> list[JournalEntry]:
    stmt = select(JournalEntry)
    if start:
        stmt = stmt.where(JournalEntry.entry_date >= start)
    if end:
        stmt = stmt.where(JournalEntry.entry_date <= end)
    if source:
        stmt = stmt.where(JournalEntry.source == source)
    if reference:
        stmt = stmt.where(JournalEntry.reference == reference)
    return list(session.scalars(stmt.order_by(JournalEntry.entry_date, JournalEntry.entry_number)))


def entry_to_dict(entry: JournalEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "entry_number": entry.entry_number,
        "entry_date": entry.entry_date,
        "reference": entry.reference,
        "description": entry.description,
        "source": entry.source,
        "created_by": entry.created_by,
        "lines": [
            {
                "account_code": line.account.code,
                "account_name": line.account.name,
                "debit": line.debit,
                "credit": line.credit,
                "description": line.description,
            }
            for line in entry.lines
        ],
    }


# ── Balances & statements ───────────────────────────────────────────────────


def account_balances(
    session: Session, start: datetime | None = None, end: datetime | None = None
) -> list[AccountBalance]:
    stmt = (
        select(
            Account.code,
            Account.name,
            Account.account_type,
            func.coalesce(func.sum(JournalLine.debit), 0),
            func.coalesce(func.sum(JournalLine.credit), 0),
        )
        .join(JournalLine, JournalLine.account_id == Account.id)
        .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
        .group_by(Account.id)
        .order_by(Account.code)
    )
    if start:
        stmt = stmt.where(JournalEntry.entry_date >= start)
    if end:
        stmt = stmt.where(JournalEntry.entry_date <= end)
    return [
        AccountBalance(code=code, name=name, account_type=kind, debit=money(dr), credit=money(cr))
        for code, name, kind, dr, cr in session.execute(stmt)
    ]


def account_balance(session: Session, code: str, as_of: datetime | None = None) -> Decimal:
    """Debit minus credit for one account."""
    account = get_account(session, code)
    stmt = (
        select(
            func.coalesce(func.sum(JournalLine.debit), 0),
            func.coalesce(func.sum(JournalLine.credit), 0),
        )
        .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
        .where(JournalLine.account_id == account.id)
    )
    if as_of:
        stmt = stmt.where(JournalEntry.entry_date <= as_of)
    debit, credit = session.execute(stmt).one()
    return money(to_decimal(debit) - to_decimal(credit))


def trial_balance(session: Session, as_of: datetime | None = None) -> dict[str, Any]:
    return ledger.trial_balance(account_balances(session, end=as_of))


def general_ledger(
    session: Session, code: str, start: datetime | None = None, end: datetime | None = None
) -> dict[str, Any]:
    account = get_account(session, code)
    opening = Decimal("0")
    if start:
        debit, credit = session.execute(
            select(
                func.coalesce(func.sum(JournalLine.debit), 0),
                func.coalesce(func.sum(JournalLine.credit), 0),
            )
            .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
            .where(JournalLine.account_id == account.id, JournalEntry.entry_date < start)
        ).one()
        opening = ledger.normal_balance(account.account_type, debit, credit)

    stmt = (
        select(JournalLine, JournalEntry)
        .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
        .where(JournalLine.account_id == account.id)
        .order_by(JournalEntry.entry_date, JournalEntry.entry_number, JournalLine.position)
    )
    if start:
        stmt = stmt.where(JournalEntry.entry_date >= start)
    if end:
        stmt = stmt.where(JournalEntry.entry_date <= end)

    running = opening
    rows = []
    for line, entry in session.execute(stmt):
        running = money(running + ledger.normal_balance(account.account_type, line.debit, line.credit))
        rows.append(
            {
                "entry_number": entry.entry_number,
                "entry_date": entry.entry_date,
                "description": line.description or entry.description,
                "debit": line.debit,
                "credit": line.credit,
                "balance": running,
            }
        )
    return {
        "account_code": account.code,
        "account_name": account.name,
        "opening_balance": money(opening),
        "closing_balance": money(running),
        "rows": rows,
    }


def income_statement(session: Session, start: datetime | None = None, end: datetime | None = None) -> dict[str, Any]:
    return ledger.income_statement(account_balances(session, start, end))


def balance_sheet(session: Session, as_of: datetime | None = None) -> dict[str, Any]:
    return ledger.balance_sheet(account_balances(session, end=as_of))


# ── Automatic postings ──────────────────────────────────────────────────────


def _settlement_account(payment_method: str) -> str:
    return CASH if payment_method in _CASH_METHODS else CARD_RECEIVABLES


def _sale_cost(sale) -> Decimal:
    return money(sum((to_decimal(i.unit_cost) * i.quantity for i in sale.items), Decimal(0)))


def post_sale(session: Session, sale, user_id: str | None = None) -> JournalEntry:
    revenue = money(sale.subtotal - sale.discount_amount)
    cost = _sale_cost(sale)
    lines = [
        LineInput(_settlement_account(sale.payment_method), debit=money(sale.total_amount)),
        LineInput(SALES_REVENUE, credit=revenue),
        LineInput(VAT_PAYABLE, credit=money(sale.tax_amount)),
        LineInput(COST_OF_GOODS_SOLD, debit=cost),
        LineInput(INVENTORY, credit=cost),
    ]
    return post_journal_entry(
        session, f"Sale {sale.invoice_number}", lines, reference=sale.invoice_number,
        source="sale", user_id=user_id, entry_date=sale.created_at,
    )


def post_sale_void(session: Session, sale, user_id: str | None = None) -> JournalEntry:
    revenue = money(sale.subtotal - sale.discount_amount)
    cost = _sale_cost(sale)
    lines = [
        LineInput(SALES_RETURNS, debit=revenue),
        LineInput(VAT_PAYABLE, debit=money(sale.tax_amount)),
        LineInput(_settlement_account(sale.payment_method), credit=money(sale.total_amount)),
        LineInput(INVENTORY, debit=cost),
        LineInput(COST_OF_GOODS_SOLD, credit=cost),
    ]
    return post_journal_entry(
        session, f"Void of sale {sale.invoice_number}", lines, reference=sale.invoice_number,
        source="sale_void", user_id=user_id,
    )


def post_expense_payment(session: Session, expense, user_id: str | None = None) -> JournalEntry:
    account_code = expense.category.account_code or OPERATING_EXPENSES
    if not session.scalar(select(Account.id).where(Account.code == account_code)):
        account_code = OPERATING_EXPENSES
    amount, tax = money(expense.amount), money(expense.tax_amount)
    lines = [
        LineInput(account_code, debit=amount, description=expense.description),
        LineInput(INPUT_VAT, debit=tax),
        LineInput(CASH, credit=money(amount + tax)),
    ]
    return post_journal_entry(
        session, f"Expense: {expense.description}", lines, reference=expense.id,
        source="expense", user_id=user_id,
    )


def post_payroll(session: Session, period, user_id: str | None = None) -> JournalEntry:
    def total(attr: str) -> Decimal:
        return money(sum((to_decimal(getattr(e, attr)) for e in period.entries), Decimal(0)))

    employer = total("sss_employer") + total("philhealth_employer") + total("pagibig_employer")
    lines = [
        LineInput(SALARIES_EXPENSE, debit=money(total("gross_pay") + employer)),
        LineInput(SSS_PAYABLE, credit=total("sss_employee") + total("sss_employer")),
        LineInput(PHILHEALTH_PAYABLE, credit=total("philhealth_employee") + total("philhealth_employer")),
        LineInput(PAGIBIG_PAYABLE, credit=total("pagibig_employee") + total("pagibig_employer")),
        LineInput(WITHHOLDING_PAYABLE, credit=total("withholding_tax")),
        LineInput(ACCOUNTS_RECEIVABLE, credit=total("other_deductions")),
        LineInput(CASH, credit=total("net_pay")),
    ]
    return post_journal_entry(
        session, f"Payroll {period.name}", lines, reference=period.id,
        source="payroll", user_id=user_id,
    )


def post_inventory_receipt(session: Session, order, value, user_id: str | None = None) -> JournalEntry:
    amount = money(value)
    lines = [
        LineInput(INVENTORY, debit=amount),
        LineInput(ACCOUNTS_PAYABLE, credit=amount),
    ]
    return post_journal_entry(
        session, f"Goods received on {order.po_number}", lines, reference=order.po_number,
        source="purchase", user_id=user_id,
    )
