"""
Philippine statutory payroll contributions.

Tables follow the 2024 schedules:

* SSS       – salary-bracket table, employee and employer shares
* PhilHealth – 5 % premium split evenly, floor ₱500 and cap ₱5,000
* Pag-IBIG  – 2 % each side, capped at ₱100 per side
* Withholding tax – monthly graduated table on taxable compensation
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from fbms.backend.core.utils.money import money, to_decimal

OVERTIME_MULTIPLIER = Decimal("1.25")
WORK_DAYS_PER_MONTH = Decimal("22")
HOURS_PER_DAY = Decimal("8")


@dataclass(frozen=True)
class Contribution:
    employee: Decimal
    employer: Decimal

    @property
    def total(self) -> Decimal:
        return self.employee + self.employer


# (upper bound of bracket, employee share, employer share); first bracket starts at 0
_SSS_TABLE: list[tuple[Decimal, Decimal, Decimal]] = [
    (Decimal(upper), Decimal(ee), Decimal(er))
    for upper, ee, er in [
        ("3250", "135", "292.5"),
        ("3750", "157.5", "337.5"),
        ("4250", "180", "382.5"),
        ("4750", "202.5", "427.5"),
        ("5250", "225", "472.5"),
        ("5750", "247.5", "517.5"),
        ("6250", "270", "562.5"),
        ("6750", "292.5", "607.5"),
        ("7250", "315", "652.5"),
        ("7750", "337.5", "697.5"),
        ("8250", "360", "742.5"),
        ("8750", "382.5", "787.5"),
        ("9250", "405", "832.5"),
        ("9750", "427.5", "877.5"),
        ("10250", "450", "922.5"),
        ("10750", "472.5", "967.5"),
        ("11250", "495", "1012.5"),
        ("11750", "517.5", "1057.5"),
        ("12250", "540", "1102.5"),
        ("12750", "562.5", "1147.5"),
        ("13250", "585", "1192.5"),
        ("13750", "607.5", "1237.5"),
        ("14250", "630", "1282.5"),
        ("14750", "652.5", "1327.5"),
        ("15250", "675", "1372.5"),
        ("15750", "697.5", "1417.5"),
        ("16250", "720", "1462.5"),
        ("16750", "742.5", "1507.5"),
        ("17250", "765", "1552.5"),
        ("17750", "787.5", "1597.5"),
        ("18250", "810", "1642.5"),
        ("18750", "832.5", "1687.5"),
        ("19250", "855", "1732.5"),
        ("19750", "877.5", "1777.5"),
        ("30000", "900", "1822.5"),
    ]
]
_SSS_MAX = Contribution(employee=money(1800), employer=money(3600))

# (lower bound, rate over lower bound, base tax)
_WITHHOLDING_TABLE: list[tuple[Decimal, Decimal, Decimal]] = [
    (Decimal("666667"), Decimal("0.35"), Decimal("183541.80")),
    (Decimal("166667"), Decimal("0.30"), Decimal("33541.80")),
    (Decimal("66667"), Decimal("0.25"), Decimal("8541.80")),
    (Decimal("33333"), Decimal("0.20"), Decimal("1875")),
    (Decimal("20833"), Decimal("0.15"), Decimal("0")),
]


def sss_contribution(monthly_salary) -> Contribution:
    salary = to_decimal(monthly_salary)
    if salary < 0:
        return Contribution(money(0), money(0))
    if salary >= Decimal("30000"):
        return _SSS_MAX
    for upper, employee, employer in _SSS_TABLE:
        if salary < upper:
            return Contribution(money(employee), money(employer))
    return _SSS_MAX


def philhealth_contribution(monthly_salary) -> Contribution:
    salary = max(to_decimal(monthly_salary), Decimal("0"))
    premium = min(max(salary * Decimal("0.05"), Decimal("500")), Decimal("5000"))
    half = money(premium / 2)
    return Contribution(employee=half, employer=half)


def pagibig_contribution(monthly_salary) -> Contribution:
    salary = max(to_decimal(monthly_salary), Decimal("0"))
    share = money(min(salary * Decimal("0.02"), Decimal("100")))
    return Contribution(employee=share, employer=share)


def withholding_tax(monthly_taxable_income) -> Decimal:
    """Monthly withholding on compensation after mandatory contributions."""
    income = to_decimal(monthly_taxable_income)
    for lower, pct, base in _WITHHOLDING_TABLE:
        if income >= lower:
            return money(base + (income - lower) * pct)
    return money(0)


def hourly_rate(basic_salary, explicit_rate=None) -> Decimal:
    if explicit_rate is not None and to_decimal(explicit_rate) > 0:
        return to_decimal(explicit_rate)
    return to_decimal(basic_salary) / WORK_DAYS_PER_MONTH / HOURS_PER_DAY


def overtime_pay(hours, rate) -> Decimal:
    return money(to_decimal(hours) * to_decimal(rate) * OVERTIME_MULTIPLIER)


def thirteenth_month_pay(total_basic_for_year) -> Decimal:
    return money(to_decimal(total_basic_for_year) / 12)


@dataclass
class PayComputation:
    basic_pay: Decimal
    allowances: Decimal
    overtime_hours: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal
    sss: Contribution
    philhealth: Contribution
    pagibig: Contribution
    withholding_tax: Decimal
    other_deductions: Decimal
    total_deductions: Decimal
    net_pay: Decimal


def compute_pay(
    basic_salary,
    allowances=0,
    overtime_hours=0,
    explicit_hourly_rate=None,
    other_deductions=0,
) -> PayComputation:
    """
    Compute one month of pay for an employee.

    Contributions are based on the basic salary; withholding tax applies to
    gross pay less the employee's share of mandatory contributions.

    Args:
        basic_salary: Monthly basic salary
        allowances: Taxable allowances for the period
        overtime_hours: Overtime hours worked
        explicit_hourly_rate: Employee's own hourly rate, if set
        other_deductions: Loans, cash advances and the like

    Returns:
        PayComputation with every component rounded to centavos
    """
    basic = money(basic_salary)
    allow = money(allowances)
    ot_hours = to_decimal(overtime_hours)
    if basic < 0 or allow < 0 or ot_hours < 0:
        raise ValueError("Salary, allowances and overtime hours must not be negative")

    ot_pay = overtime_pay(ot_hours, hourly_rate(basic, explicit_hourly_rate))
    gross = money(basic + allow + ot_pay)

    sss = sss_contribution(basic)
    philhealth = philhealth_contribution(basic)
    pagibig = pagibig_contribution(basic)
    mandatory = sss.employee + philhealth.employee + pagibig.employee

    tax = withholding_tax(max(gross - mandatory, Decimal("0")))
    others = money(other_deductions)
    total_deductions = money(mandatory + tax + others)

    return PayComputation(
        basic_pay=basic,
        allowances=allow,
        overtime_hours=ot_hours,
        overtime_pay=ot_pay,
        gross_pay=gross,
        sss=sss,
        philhealth=philhealth,
        pagibig=pagibig,
        withholding_tax=tax,
        other_deductions=others,
        total_deductions=total_deductions,
        net_pay=money(gross - total_deductions),
    )
