"""
BIR (Bureau of Internal Revenue) Compliance Helpers.

Covers:
- VAT computation (exclusive, inclusive, exempt, zero-rated)
- Official Receipt (OR) numbering and receipt validation
- TIN format validation
- Expanded withholding tax on supplier payments
- VAT / income-tax period reports, Form 2550M and the employee alphalist
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

from fbms.backend.core.payroll.contributions import (
    pagibig_contribution,
    philhealth_contribution,
    sss_contribution,
    withholding_tax,
)
from fbms.backend.core.utils.money import money, to_decimal

PHILIPPINE_VAT_RATE = Decimal("0.12")
OR_NUMBER_DIGITS = 10
OR_NUMBER_MAX = 10**OR_NUMBER_DIGITS - 1
TOLERANCE = Decimal("0.01")

WITHHOLDING_TAX_RATES = {
    "goods": Decimal("0.01"),
    "services": Decimal("0.02"),
    "professional": Decimal("0.10"),
    "compensation": Decimal("0"),
}
WITHHOLDING_TAX_THRESHOLDS = {
    "goods": Decimal("1000"),
    "services": Decimal("1000"),
    "professional": Decimal("0"),
    "compensation": Decimal("0"),
}

_TIN_RE = re.compile(r"^\d{3}-\d{3}-\d{3}-\d{3}$")


# ── VAT ─────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class VATCalculation:
    vatable_amount: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    vat_rate: Decimal
    exempt_amount: Decimal = Decimal("0.00")
    zero_rated_amount: Decimal = Decimal("0.00")


def calculate_vat(
    amount,
    inclusive: bool = False,
    exempt: bool = False,
    zero_rated: bool = False,
    rate=None,
) -> VATCalculation:
    """
    Calculate Philippine VAT on an amount.

    Args:
        amount: Base amount (VAT-exclusive unless ``inclusive``)
        inclusive: Treat ``amount`` as already containing VAT
        exempt: VAT-exempt sale (e.g. senior citizen / PWD)
        zero_rated: Zero-rated sale (e.g. export)
        rate: Override the 12 % standard rate

    Returns:
        VATCalculation
    """
    value = money(amount)
    vat_rate = to_decimal(rate) if rate is not None else PHILIPPINE_VAT_RATE

    if exempt:
        return VATCalculation(
            vatable_amount=money(0),
            vat_amount=money(0),
            total_amount=value,
            vat_rate=Decimal("0"),
            exempt_amount=value,
        )
    if zero_rated:
        return VATCalculation(
            vatable_amount=value,
            vat_amount=money(0),
            total_amount=value,
            vat_rate=Decimal("0"),
            zero_rated_amount=value,
        )
    if inclusive:
        vatable = money(value / (1 + vat_rate))
        return VATCalculation(
            vatable_amount=vatable,
            vat_amount=money(value - vatable),
            total_amount=value,
            vat_rate=vat_rate,
        )

    vat = money(value * vat_rate)
    return VATCalculation(
        vatable_amount=value,
        vat_amount=vat,
        total_amount=money(value + vat),
        vat_rate=vat_rate,
    )


# ── OR numbers & TIN ────────────────────────────────────────────────────────


def format_or_number(counter: int) -> str:
    """Zero-pad a counter value into a 10-digit OR number."""
    if counter < 1 or counter > OR_NUMBER_MAX:
        raise ValueError(f"OR counter out of range: {counter}")
    return str(counter).zfill(OR_NUMBER_DIGITS)


def validate_tin(tin: str | None) -> bool:
    """Philippine TIN: ``XXX-XXX-XXX-XXX`` where the last group is the branch code."""
    if not tin or not _TIN_RE.match(tin):
        return False
    branch = int(tin.split("-")[3])
    return 0 <= branch <= 999


# ── Receipts ────────────────────────────────────────────────────────────────


@dataclass
class BIRReceiptItem:
    description: str
    quantity: int
    unit_price: Decimal
    amount: Decimal


@dataclass
class BIRReceipt:
    or_number: str
    tin: str
    business_name: str
    business_address: str
    date: datetime | None
    items: list[BIRReceiptItem]
    vatable_amount: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    customer_name: str | None = None
    customer_tin: str | None = None
    cashier: str | None = None
    payment_method: str | None = None
    exempt_amount: Decimal = Decimal("0.00")
    discount_amount: Decimal = Decimal("0.00")


@dataclass
class ReceiptValidation:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


def validate_bir_receipt(receipt: BIRReceipt, rate=None) -> ReceiptValidation:
    """Check required fields and that VAT, totals and line amounts add up."""
    errors: list[str] = []

    if not receipt.or_number:
        errors.append("OR Number is required")
    if not receipt.tin:
        errors.append("TIN is required")
    elif not validate_tin(receipt.tin):
        errors.append("Invalid TIN format")
    if not receipt.business_name:
        errors.append("Business name is required")
    if not receipt.business_address:
        errors.append("Business address is required")
    if not receipt.date:
        errors.append("Date is required")
    if not receipt.items:
        errors.append("At least one item is required")

    expected = calculate_vat(receipt.vatable_amount, rate=rate)
    if abs(money(receipt.vat_amount) - expected.vat_amount) > TOLERANCE:
        errors.append("VAT calculation mismatch")
    expected_total = expected.total_amount + money(receipt.exempt_amount)
    if abs(money(receipt.total_amount) - expected_total) > TOLERANCE:
        errors.append("Total amount calculation mismatch")

    for index, item in enumerate(receipt.items, start=1):
        if not item.description:
            errors.append(f"Item {index}: Description is required")
        if item.quantity <= 0:
            errors.append(f"Item {index}: Quantity must be greater than 0")
        if to_decimal(item.unit_price) <= 0:
            errors.append(f"Item {index}: Unit price must be greater than 0")
        if abs(money(item.amount) - money(item.quantity * to_decimal(item.unit_price))) > TOLERANCE:
            errors.append(f"Item {index}: Amount calculation mismatch")

    return ReceiptValidation(is_valid=not errors, errors=errors)


# ── Withholding tax ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class WithholdingTaxResult:
    kind: str
    rate: Decimal
    amount: Decimal
    net_amount: Decimal


def calculate_withholding_tax(amount, kind: str) -> WithholdingTaxResult:
    """Expanded withholding tax on a payment; unknown kinds withhold nothing."""
    value = money(amount)
    rate = WITHHOLDING_TAX_RATES.get(kind, Decimal("0"))
    threshold = WITHHOLDING_TAX_THRESHOLDS.get(kind, Decimal("0"))
    withheld = money(value * rate) if value >= threshold else money(0)
    return WithholdingTaxResult(kind=kind, rate=rate, amount=withheld, net_amount=value - withheld)


# ── Reports ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ReportPeriod:
    year: int
    month: int | None = None
    quarter: int | None = None

    def contains(self, when: date | datetime) -> bool:
        if when.year != self.year:
            return False
        if self.month is not None:
            return when.month == self.month
        if self.quarter is not None:
            return (when.month - 1) // 3 + 1 == self.quarter
        return True

    @property
    def label(self) -> str:
        if self.month is not None:
            return f"{self.month:02d}/{self.year}"
        if self.quarter is not None:
            return f"Q{self.quarter}/{self.year}"
        return str(self.year)


def graduated_income_tax(taxable_income) -> Decimal:
    """Annual graduated income tax used for the INCOME_TAX report."""
    income = to_decimal(taxable_income)
    if income <= 250000:
        return money(0)
    if income <= 400000:
        return money((income - 250000) * Decimal("0.20"))
    if income <= 800000:
        return money(30000 + (income - 400000) * Decimal("0.25"))
    if income <= 2000000:
        return money(130000 + (income - 800000) * Decimal("0.30"))
    return money(490000 + (income - 2000000) * Decimal("0.35"))


def generate_bir_report(
    report_type: str, rows: Iterable[dict[str, Any]], period: ReportPeriod
) -> dict[str, Any]:
    """
    Build a VAT or income-tax summary for a period.

    ``VAT`` rows carry ``date``, ``amount``, ``vat`` and optionally
    ``exempt``/``zero_rated`` amounts. ``INCOME_TAX`` rows carry ``date``,
    ``revenue`` and ``expenses``.
    """
    rows = [r for r in rows if period.contains(r["date"])]
    report: dict[str, Any] = {
        "report_type": report_type,
        "period": period.label,
        "total_sales": money(0),
        "total_vat": money(0),
        "exempt_sales": money(0),
        "zero_rated_sales": money(0),
        "generated_at": datetime.now(),
    }

    if report_type == "VAT":
        report["total_sales"] = money(sum((to_decimal(r.get("amount", 0)) for r in rows), Decimal(0)))
        report["total_vat"] = money(sum((to_decimal(r.get("vat", 0)) for r in rows), Decimal(0)))
        report["exempt_sales"] = money(sum((to_decimal(r.get("exempt", 0)) for r in rows), Decimal(0)))
        report["zero_rated_sales"] = money(
            sum((to_decimal(r.get("zero_rated", 0)) for r in rows), Decimal(0))
        )
    elif report_type == "INCOME_TAX":
        revenue = money(sum((to_decimal(r.get("revenue", 0)) for r in rows), Decimal(0)))
        expenses = money(sum((to_decimal(r.get("expenses", 0)) for r in rows), Decimal(0)))
        report["total_revenue"] = revenue
        report["total_expenses"] = expenses
        report["taxable_income"] = revenue - expenses
        report["income_tax"] = graduated_income_tax(revenue - expenses)
    else:
        raise ValueError(f"Unknown BIR report type: {report_type}")

    return report


def generate_form_2550m(
    sales: Iterable[Any], period: ReportPeriod, business: dict[str, Any]
) -> dict[str, Any]:
    """Monthly VAT declaration figures from completed sales."""
    selected = [
        s for s in sales if getattr(s, "status", "completed") == "completed" and period.contains(s.created_at)
    ]
    gross = money(sum((to_decimal(s.total_amount) for s in selected), Decimal(0)))
    exempt = money(sum((to_decimal(s.total_amount) for s in selected if s.vat_exempt), Decimal(0)))
    vatable = money(
        sum(
            (to_decimal(s.subtotal) - to_decimal(s.discount_amount) for s in selected if not s.vat_exempt),
            Decimal(0),
        )
    )
    vat = money(sum((to_decimal(s.tax_amount) for s in selected), Decimal(0)))

    return {
        "business_name": business.get("name", ""),
        "business_address": business.get("address", ""),
        "tin": business.get("tin", ""),
        "rdo_code": business.get("rdo_code", ""),
        "tax_period": period.label,
        "gross_sales": gross,
        "exempt_sales": exempt,
        "zero_rated_sales": money(0),
        "vatable_amount": vatable,
        "vat_amount": vat,
        "total_sales": gross,
    }


def generate_alphalist(employees: Iterable[Any], year: int) -> list[dict[str, Any]]:
    """Annual compensation and tax per employee, projected from basic salary."""
    rows = []
    for emp in employees:
        monthly = money(emp.basic_salary)
        contributions = (
            sss_contribution(monthly).employee
            + philhealth_contribution(monthly).employee
            + pagibig_contribution(monthly).employee
        )
        annual = monthly * 12
        non_taxable = money(contributions * 12)
        rows.append(
            {
                "tin": emp.tin or "",
                "last_name": emp.last_name,
                "first_name": emp.first_name,
                "middle_name": emp.middle_name or "",
                "gross_compensation": money(annual),
                "non_taxable_compensation": non_taxable,
                "taxable_compensation": money(annual - non_taxable),
                "withholding_tax": money(withholding_tax(monthly - contributions) * 12),
                "year": year,
            }
        )
    return rows
