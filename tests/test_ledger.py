"""Tests for double-entry validation and financial statements."""

from __future__ import annotations

from decimal import Decimal

from fbms.backend.core.accounting.ledger import (
    AccountBalance,
    LineInput,
    balance_sheet,
    income_statement,
    normal_balance,
    trial_balance,
    validate_journal_lines,
)

D = Decimal


def _balances() -> list[AccountBalance]:
    # Owner puts in 10,000, buys 4,000 stock on credit, sells 1,500 cash, pays 300 rent.
    return [
        AccountBalance("1000", "Cash", "Asset", D("11500"), D("300")),
        AccountBalance("1200", "Inventory", "Asset", D("4000"), D("0")),
        AccountBalance("2000", "Accounts Payable", "Liability", D("0"), D("4000")),
        AccountBalance("3000", "Owner's Capital", "Equity", D("0"), D("10000")),
        AccountBalance("4000", "Sales Revenue", "Income", D("0"), D("1500")),
        AccountBalance("6000", "Rent Expense", "Expense", D("300"), D("0")),
        AccountBalance("6100", "Utilities Expense", "Expense", D("0"), D("0")),
    ]


class TestJournalValidation:
    def test_balanced_entry(self) -> None:
        lines = [LineInput("1000", debit=D("500")), LineInput("4000", credit=D("500"))]
        assert validate_journal_lines(lines) == []

    def test_unbalanced(self) -> None:
        lines = [LineInput("1000", debit=D("500")), LineInput("4000", credit=D("400"))]
        assert [i.code for i in validate_journal_lines(lines)] == ["UNBALANCED"]

    def test_single_line(self) -> None:
        codes = [i.code for i in validate_journal_lines([LineInput("1000", debit=D("1"))])]
        assert codes == ["TOO_FEW_LINES", "UNBALANCED"]

    def test_line_with_both_sides(self) -> None:
        lines = [
            LineInput("1000", debit=D("5"), credit=D("5")),
            LineInput("4000"),
        ]
        codes = [i.code for i in validate_journal_lines(lines)]
        assert codes.count("ONE_SIDED_LINE") == 2

    def test_negative_amount(self) -> None:
        lines = [LineInput("1000", debit=D("-5")), LineInput("4000", credit=D("-5"))]
        assert "NEGATIVE_AMOUNT" in [i.code for i in validate_journal_lines(lines)]


class TestStatements:
    def test_normal_balance_direction(self) -> None:
        assert normal_balance("Asset", 100, 40) == D("60.00")
        assert normal_balance("Liability", 0, 250) == D("250.00")

    def test_trial_balance_skips_zero_accounts(self) -> None:
        tb = trial_balance(_balances())
        assert tb["balanced"]
        assert tb["total_debit"] == D("15500.00")
        assert "6100" not in [row["code"] for row in tb["rows"]]

    def test_income_statement(self) -> None:
        statement = income_statement(_balances())
        assert statement["total_income"] == D("1500.00")
        assert statement["total_expenses"] == D("300.00")
        assert statement["net_income"] == D("1200.00")

    def test_balance_sheet_includes_current_earnings(self) -> None:
        sheet = balance_sheet(_balances())
        assert sheet["total_assets"] == D("15200.00")
        assert sheet["current_earnings"] == D("1200.00")
        assert sheet["total_equity"] == D("11200.00")
        assert sheet["balanced"]
