"""
HRMS Multi-Country Payroll - Bahrain Payroll Calculator

Bahrain calculations (BHD, 3 decimals):
- SIO/GOSI: 6% employee + 12% employer on gross capped at 5,000, Bahraini
  nationals only (nationality BAHRAINI or employee type LOCAL)
- End of service gratuity: nothing under 36 months, 15 days per year up to
  60 months, 30 after (daily = basic / 30)
- Biennial air ticket accrual
- Overtime at 125%
"""

from decimal import Decimal
from typing import List, Optional

from app.services.payroll_calculators.helpers import (
    ZERO,
    apply_cap,
    biennial_air_ticket_accrual,
    calculate_gross_from_compensation,
    contribution_component,
    exempt_component,
    hourly_premium_pay,
    is_national,
    monthly_gratuity,
    round_money,
    summarize_statutory,
    to_decimal,
)
from app.services.payroll_calculators.policies import PolicyBook, PolicySource
from app.services.payroll_calculators.types import (
    AttendanceSummary,
    CalculatorCapabilities,
    CompensationLine,
    CountryCode,
    EmployeeProfile,
    StatutoryComponent,
    StatutoryDeductionResult,
)


NATIONALITY = "BAHRAINI"

# Gratuity tiers: (upper service months inclusive, days per year)
MIN_GRATUITY_SERVICE_MONTHS = 36
GRATUITY_TIERS = [
    (60, Decimal("15")),
    (None, Decimal("30")),
]

OVERTIME_MULTIPLIER = Decimal("1.25")


def gratuity_days_per_year(service_months: int) -> Decimal:
    """Days of basic accrued per service year for a given tenure."""
    if service_months < MIN_GRATUITY_SERVICE_MONTHS:
        return ZERO
    for upper, days in GRATUITY_TIERS:
        if upper is None or service_months <= upper:
            return days
    return ZERO


class BahrainPayrollCalculator:
    """Bahrain (BHD) payroll calculator."""

    country_code = CountryCode.BHR.value
    currency_code = "BHD"
    currency_decimals = 3
    capabilities = CalculatorCapabilities(
        supports_social_security=True,
        supports_pension=True,
        supports_gratuity=True,
        supports_air_ticket=True,
        supports_overtime=True,
        supports_wps=True,
        nationality_required=True,
        employee_type_required=True,
    )

    def __init__(self, policy_source: Optional[PolicySource] = None):
        self.policies = PolicyBook(self.country_code, policy_source)

    async def initialize(self) -> None:
        await self.policies.load()

    def calculate_gross_salary(
        self,
        employee: EmployeeProfile,
        compensation: List[CompensationLine],
        attendance: Optional[AttendanceSummary],
    ) -> Decimal:
        return calculate_gross_from_compensation(compensation, attendance)

    def calculate_statutory_deductions(
        self,
        employee: EmployeeProfile,
        gross_salary: Decimal,
        basic_salary: Decimal,
    ) -> StatutoryDeductionResult:
        breakdown = {"gosi": self.calculate_gosi(employee, to_decimal(gross_salary))}
        return summarize_statutory(breakdown, self.currency_decimals)

    def calculate_gosi(self, employee: EmployeeProfile, gross_salary: Decimal) -> StatutoryComponent:
        if not is_national(employee, NATIONALITY):
            return exempt_component(
                "SIO_EXEMPTION", "Expatriate", note="Social insurance pension only applies to Bahraini nationals",
            )
        cap = self.policies.value("SOCIAL_SECURITY", "GOSI_EMPLOYEE", "cap_amount", Decimal("5000"))
        return contribution_component(
            apply_cap(gross_salary, cap),
            self.policies.value("SOCIAL_SECURITY", "GOSI_EMPLOYEE", "employee_rate", Decimal("6")),
            self.policies.value("SOCIAL_SECURITY", "GOSI_EMPLOYER", "employer_rate", Decimal("12")),
            "GOSI_EMPLOYEE / GOSI_EMPLOYER",
            decimals=self.currency_decimals,
        )

    def calculate_gratuity_accrual(
        self,
        employee: EmployeeProfile,
        basic_salary: Decimal,
        service_months: int,
    ) -> Decimal:
        days = gratuity_days_per_year(service_months)
        if not days:
            return round_money(ZERO, self.currency_decimals)
        return monthly_gratuity(basic_salary, days, decimals=self.currency_decimals)

    def calculate_air_ticket_accrual(self, employee: EmployeeProfile) -> Decimal:
        if not self.policies.allows_air_ticket(employee):
            return round_money(ZERO, self.currency_decimals)
        return biennial_air_ticket_accrual(self.country_code, employee, self.currency_decimals)

    def calculate_overtime_pay(
        self,
        employee: EmployeeProfile,
        overtime_hours: Decimal,
        basic_salary: Decimal,
    ) -> Decimal:
        return hourly_premium_pay(basic_salary, overtime_hours, OVERTIME_MULTIPLIER, self.currency_decimals)
