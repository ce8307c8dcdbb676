"""
Double-entry rules and financial statement arithmetic.

Works on plain line tuples and balance maps so the same code serves the
persisted journal and ad-hoc checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from fbms.backend.core.errors import Issue
from fbms.backend.core.utils.money import money, to_decimal

ACCOUNT_TYPES = ("Asset", "Liability", "Equity", "Income", "Expense")
DEBIT_NORMAL = ("Asset", "Expense")


@dataclass(frozen=True)
class LineInput:
    account_code: str
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    description: str | None = None


def validate_journal_lines(lines: list[LineInput]) -> list[Issue]:
    """Every line carries exactly one positive side and the entry balances."""
    issues: list[Issue] = []
    if len(lines) < 2:
        issues.append(Issue("lines", "A journal entry needs at least two lines", "TOO_FEW_LINES"))

    for index, line in enumerate(lines):
        debit, credit = money(line.debit), money(line.credit)
        if debit < 0 or credit < 0:
            issues.append(
                Issue(f"lines.{index}", "Debit and credit cannot be negative", "NEGATIVE_AMOUNT")
            )
        elif (debit > 0) == (credit > 0):
            issues.append(
                Issue(
                    f"lines.{index}",
                    "Each line must have either a debit or a credit amount",
                    "ONE_SIDED_LINE",
                )
            )

    total_debit, total_credit = totals(lines)
    if total_debit != total_credit:
        issues.append(
            Issue(
                "lines",
                f"Entry is not balanced: debits {total_debit} != credits {total_credit}",
                "UNBALANCED",
            )
        )
    return issues


def totals(lines: Iterable[LineInput]) -> tuple[Decimal, Decimal]:
    debit = credit = Decimal("0")
    for line in lines:
        debit += money(line.debit)
        credit += money(line.credit)
    return money(debit), money(credit)


def normal_balance(account_type: str, debit, credit) -> Decimal:
    """Balance in the account's natural direction (positive when normal)."""
    net = money(to_decimal(debit) - to_decimal(credit))
    return net if account_type in DEBIT_NORMAL else -net


@dataclass(frozen=True)
class AccountBalance:
    code: str
    name: str
    account_type: str
    debit: Decimal
    credit: Decimal

    @property
    def balance(self) -> Decimal:
        return normal_balance(self.account_type, self.debit, self.credit)


def trial_balance(balances: list[AccountBalance]) -> dict:
    rows = []
    total_debit = total_credit = Decimal("0")
    for acct in balances:
        net = money(acct.debit - acct.credit)
        if net == 0:
            continue
        row_debit = net if net > 0 else money(0)
        row_credit = -net if net < 0 else money(0)
        total_debit += row_debit
        total_credit += row_credit
        rows.append(
            {
                "code": acct.code,
                "name": acct.name,
                "account_type": acct.account_type,
                "debit": row_debit,
                "credit": row_credit,
            }
        )
    return {
        "rows": rows,
        "total_debit": money(total_debit),
        "total_credit": money(total_credit),
        "balanced": money(total_debit) == money(total_credit),
    }


def _section(balances: list[AccountBalance], account_type: str) -> tuple[list[dict], Decimal]:
    rows = [
        {"code": a.code, "name": a.name, "amount": a.balance}
        for a in balances
        if a.account_type == account_type and a.balance != 0
    ]
    return rows, money(sum((r["amount"] for r in rows), Decimal(0)))


def income_statement(balances: list[AccountBalance]) -> dict:
    income, total_income = _section(balances, "Income")
    expenses, total_expenses = _section(balances, "Expense")
    return {
        "income": income,
        "expenses": expenses,
        "total_income": total_income,
        "total_expenses": total_expenses,
        "net_income": money(total_income - total_expenses),
    }


def balance_sheet(balances: list[AccountBalance]) -> dict:
    """Assets against liabilities and equity, with period earnings folded into equity."""
    assets, total_assets = _section(balances, "Asset")
    liabilities, total_liabilities = _section(balances, "Liability")
    equity, total_equity = _section(balances, "Equity")
    earnings = income_statement(balances)["net_income"]
    total_equity = money(total_equity + earnings)
    return {
        "assets": assets,
        "liabilities": liabilities,
        "equity": equity,
        "current_earnings": earnings,
        "total_assets": total_assets,
        "total_liabilities": total_liabilities,
        "total_equity": total_equity,
        "balanced": total_assets == money(total_liabilities + total_equity),
    }
