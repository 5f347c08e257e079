"""
HRMS Multi-Country Payroll - Shared Calculation Helpers

Numeric building blocks shared by every country calculator:
- Percentage, cap and threshold arithmetic
- Service months from joining date
- Two-pass gross salary from compensation components
- Basic salary extraction and allowance totals
- Biennial air ticket accrual and hourly overtime
- Statutory component and gratuity building blocks

All money is Decimal, rounded ROUND_HALF_UP.
"""

import math
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from app.services.payroll_calculators.types import (
    AttendanceSummary,
    CompensationLine,
    EmployeeProfile,
    StatutoryComponent,
    StatutoryDeductionResult,
)


# ===========================================
# CONSTANTS
# ===========================================

ZERO = Decimal("0")

# Proration month and service-month divisor
STANDARD_MONTH_DAYS = Decimal("30")
AVERAGE_MONTH_DAYS = 30.44

# Hourly rate basis: 8 hours x 26 working days
HOURS_PER_DAY = 8
WORKING_DAYS_PER_MONTH = 26
MONTHLY_WORKING_HOURS = Decimal(HOURS_PER_DAY * WORKING_DAYS_PER_MONTH)

# Air tickets are a biennial entitlement
AIR_TICKET_CYCLE_MONTHS = Decimal("24")

DEFAULT_BASIC_RATIO = Decimal("0.5")

EARNING_TYPES = ("EARNING", "ALLOWANCE")

# Default ticket cost per country and segment, in local currency
DEFAULT_AIR_TICKET_COSTS: Dict[str, Dict[str, Decimal]] = {
    "IND": {"ECONOMY": Decimal("50000"), "BUSINESS": Decimal("150000"), "FIRST": Decimal("250000")},
    "UAE": {"ECONOMY": Decimal("3000"), "BUSINESS": Decimal("9000"), "FIRST": Decimal("15000")},
    "SAU": {"ECONOMY": Decimal("2000"), "BUSINESS": Decimal("6000"), "FIRST": Decimal("10000")},
    "OMN": {"ECONOMY": Decimal("400"), "BUSINESS": Decimal("1200"), "FIRST": Decimal("2000")},
    "BHR": {"ECONOMY": Decimal("200"), "BUSINESS": Decimal("600"), "FIRST": Decimal("1000")},
    "QAT": {"ECONOMY": Decimal("1500"), "BUSINESS": Decimal("4500"), "FIRST": Decimal("7500")},
    "EGY": {"ECONOMY": Decimal("15000"), "BUSINESS": Decimal("45000"), "FIRST": Decimal("75000")},
}


# ===========================================
# ARITHMETIC
# ===========================================

def to_decimal(value: Any) -> Decimal:
    """Coerce numbers and numeric strings to Decimal; None becomes 0."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(amount: Any, decimals: int = 2) -> Decimal:
    """Round to the given number of decimal places, half up."""
    quantum = Decimal(1).scaleb(-decimals)
    return to_decimal(amount).quantize(quantum, rounding=ROUND_HALF_UP)


def calculate_percentage(amount: Any, percentage: Any, precision: int = 2) -> Decimal:
    """amount x percentage / 100, rounded. Zero amount or percentage gives 0."""
    amount = to_decimal(amount)
    percentage = to_decimal(percentage)
    if not amount or not percentage:
        return round_money(ZERO, precision)
    return round_money(amount * percentage / Decimal("100"), precision)


def apply_cap(amount: Any, cap: Optional[Any]) -> Decimal:
    """min(amount, cap) when a cap is defined."""
    amount = to_decimal(amount)
    if cap is None:
        return amount
    return min(amount, to_decimal(cap))


def apply_threshold(
    amount: Any,
    min_threshold: Optional[Any] = None,
    max_threshold: Optional[Any] = None,
) -> Decimal:
    """
    Gate an amount by eligibility thresholds.

    Returns 0 when the amount is below `min_threshold` or above
    `max_threshold`; otherwise the amount unchanged. This gates, it never
    clamps.
    """
    amount = to_decimal(amount)
    if min_threshold is not None and amount < to_decimal(min_threshold):
        return ZERO
    if max_threshold is not None and amount > to_decimal(max_threshold):
        return ZERO
    return amount


# ===========================================
# SERVICE AND COMPENSATION
# ===========================================

def calculate_service_months(joining_date: Optional[date], as_of: Optional[date] = None) -> int:
    """Whole service months, using an average month of 30.44 days."""
    if joining_date is None:
        return 0
    as_of = as_of or date.today()
    days = abs((as_of - joining_date).days)
    return math.floor(days / AVERAGE_MONTH_DAYS)


def _is_earning(line: CompensationLine) -> bool:
    return (line.component_type or "").upper() in EARNING_TYPES


def fixed_earnings_total(compensation: Iterable[CompensationLine]) -> Decimal:
    """Literal sum of fixed EARNING and ALLOWANCE amounts, no proration."""
    total = ZERO
    for line in compensation:
        if _is_earning(line) and not line.is_percentage:
            total += to_decimal(line.amount)
    return round_money(total)


def calculate_gross_from_compensation(
    compensation: Iterable[CompensationLine],
    attendance: Optional[AttendanceSummary] = None,
) -> Decimal:
    """
    Gross salary from compensation components, two passes.

    Pass 1 sums fixed EARNING/ALLOWANCE amounts prorated by
    present_days / 30. Pass 2 resolves percentage components against the
    pass-1 subtotal only, so percentages never compound.
    """
    lines = list(compensation)
    present_days = attendance.present_days if attendance is not None else STANDARD_MONTH_DAYS
    ratio = to_decimal(present_days) / STANDARD_MONTH_DAYS

    fixed_subtotal = ZERO
    for line in lines:
        if _is_earning(line) and not line.is_percentage:
            fixed_subtotal += to_decimal(line.amount) * ratio

    percentage_total = ZERO
    for line in lines:
        if _is_earning(line) and line.is_percentage:
            percentage_total += calculate_percentage(fixed_subtotal, line.percentage)

    return round_money(fixed_subtotal + percentage_total)


def extract_basic_salary(
    compensation: Iterable[CompensationLine],
    gross_salary: Any,
    default_ratio: Decimal = DEFAULT_BASIC_RATIO,
) -> Decimal:
    """
    Basic salary from the BASIC component.

    Matches component code BASIC or a name containing "basic"
    (case-insensitive). A missing BASIC line, or one without a fixed
    amount, falls back to default_ratio of `gross_salary` as computed by
    the caller.
    """
    for line in compensation:
        if line.component_code == "BASIC" or "BASIC" in (line.component_name or "").upper():
            amount = to_decimal(line.amount)
            if amount > ZERO:
                return round_money(amount)
            break

    return round_money(to_decimal(gross_salary) * to_decimal(default_ratio))


def allowances_total(compensation: Iterable[CompensationLine]) -> Decimal:
    """Sum of fixed ALLOWANCE components."""
    total = ZERO
    for line in compensation:
        if (line.component_type or "").upper() == "ALLOWANCE" and not line.is_percentage:
            total += to_decimal(line.amount)
    return round_money(total)


def categorize_compensation(compensation: Iterable[CompensationLine]) -> Dict[str, List[Dict[str, Any]]]:
    """Group components by type for display."""
    groups: Dict[str, List[Dict[str, Any]]] = {"EARNING": [], "ALLOWANCE": [], "DEDUCTION": []}
    for line in compensation:
        groups.setdefault((line.component_type or "").upper(), []).append({
            "code": line.component_code,
            "name": line.component_name,
            "amount": to_decimal(line.amount) if not line.is_percentage else None,
            "percentage": to_decimal(line.percentage) if line.is_percentage else None,
        })
    return groups


# ===========================================
# AIR TICKET AND OVERTIME
# ===========================================

def resolve_ticket_cost(
    country_code: str,
    segment: Optional[str],
    estimated_cost: Optional[Any] = None,
) -> Decimal:
    """
    Ticket cost for accrual.

    The employee's own estimate wins; otherwise the country default for the
    segment, then the country ECONOMY fare. Unknown countries use the UAE
    table.
    """
    if estimated_cost:
        return to_decimal(estimated_cost)
    table = DEFAULT_AIR_TICKET_COSTS.get(country_code, DEFAULT_AIR_TICKET_COSTS["UAE"])
    segment = (segment or "ECONOMY").upper()
    return table.get(segment, table["ECONOMY"])


def biennial_air_ticket_accrual(
    country_code: str,
    employee: EmployeeProfile,
    decimals: int = 2,
) -> Decimal:
    """Monthly accrual of a ticket earned every 24 months."""
    cost = resolve_ticket_cost(country_code, employee.ticket_segment, employee.estimated_ticket_cost)
    return round_money(cost / AIR_TICKET_CYCLE_MONTHS, decimals)


def hourly_premium_pay(
    basic_salary: Any,
    hours: Any,
    multiplier: Any,
    decimals: int = 2,
) -> Decimal:
    """basic / (8 x 26) x multiplier x hours. Non-positive hours give 0."""
    hours = to_decimal(hours)
    if hours <= 0:
        return round_money(ZERO, decimals)
    hourly_rate = to_decimal(basic_salary) / MONTHLY_WORKING_HOURS
    return round_money(hourly_rate * to_decimal(multiplier) * hours, decimals)


# ===========================================
# STATUTORY BUILDING BLOCKS
# ===========================================

def format_rate(rate: Any) -> str:
    """Display a percentage without trailing zeros: 12.5000 -> '12.5'."""
    value = to_decimal(rate).normalize()
    return f"{value:f}"


def is_national(employee: EmployeeProfile, nationality: str) -> bool:
    """National schemes cover the country's nationals and LOCAL-type employees."""
    return (
        (employee.nationality or "").upper() == nationality
        or (employee.employee_type or "").upper() == "LOCAL"
    )


def contribution_component(
    calculation_base: Any,
    employee_rate: Any,
    employer_rate: Any,
    policy_tag: str,
    decimals: int = 2,
    is_pension: bool = False,
    note: Optional[str] = None,
) -> StatutoryComponent:
    """Employee and employer percentages of the same base."""
    base = round_money(calculation_base, decimals)
    employee_rate = to_decimal(employee_rate)
    employer_rate = to_decimal(employer_rate)
    if employee_rate and employer_rate:
        effective_rate = f"{format_rate(employee_rate)}% / {format_rate(employer_rate)}%"
    else:
        effective_rate = f"{format_rate(employee_rate or employer_rate)}%"
    return StatutoryComponent(
        employee=calculate_percentage(base, employee_rate, decimals),
        employer=calculate_percentage(base, employer_rate, decimals),
        calculation_base=base,
        effective_rate=effective_rate,
        policy_tag=policy_tag,
        note=note,
        is_pension=is_pension,
    )


def exempt_component(policy_tag: str, reason: str, note: Optional[str] = None) -> StatutoryComponent:
    """Zero-amount component explaining why a scheme does not apply."""
    return StatutoryComponent(
        employee=ZERO,
        employer=ZERO,
        calculation_base=ZERO,
        effective_rate=f"Not Applicable ({reason})",
        policy_tag=policy_tag,
        note=note,
    )


def summarize_statutory(
    breakdown: Dict[str, StatutoryComponent],
    decimals: int = 2,
) -> StatutoryDeductionResult:
    """Total the employee and employer sides of a breakdown."""
    employee_share = round_money(sum((c.employee for c in breakdown.values()), ZERO), decimals)
    employer_share = round_money(sum((c.employer for c in breakdown.values()), ZERO), decimals)
    return StatutoryDeductionResult(
        employee_share=employee_share,
        employer_share=employer_share,
        total=round_money(employee_share + employer_share, decimals),
        breakdown=breakdown,
    )


# ===========================================
# GRATUITY
# ===========================================

def entitlement_days(policy_type: Optional[str], rate: Any) -> Decimal:
    """Gratuity entitlement per service year, in days of wage."""
    rate = to_decimal(rate)
    unit = (policy_type or "DAYS").upper()
    if unit == "MONTHS":
        return rate * STANDARD_MONTH_DAYS
    if unit == "WEEKS":
        return rate * Decimal("7")
    return rate


def monthly_gratuity(basic_salary: Any, days_per_year: Any, daily_divisor: Any = STANDARD_MONTH_DAYS,
                     decimals: int = 2) -> Decimal:
    """(basic / daily_divisor) x days_per_year / 12."""
    daily_wage = to_decimal(basic_salary) / to_decimal(daily_divisor)
    return round_money(daily_wage * to_decimal(days_per_year) / Decimal("12"), decimals)
