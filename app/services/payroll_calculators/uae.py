"""
HRMS Multi-Country Payroll - UAE Payroll Calculator

UAE calculations:
- GPSSA pension: 5% employee + 12.5% employer on gross capped at 50,000,
  UAE nationals only (nationality EMIRATI or employee type LOCAL)
- End of service gratuity: 21 days per year up to 60 months, 30 after
  (daily wage = basic / 30)
- Biennial air ticket accrual
- Overtime at 125%, night shift premium 25%, holiday work 150%
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
    TerminationType,
)


NATIONALITY = "EMIRATI"

# Gratuity tier boundary
FIRST_TIER_MONTHS = 60
FIRST_TIER_YEARS = Decimal("5")

OVERTIME_MULTIPLIER = Decimal("1.25")
NIGHT_SHIFT_PREMIUM = Decimal("0.25")
HOLIDAY_MULTIPLIER = Decimal("1.5")


class UAEPayrollCalculator:
    """United Arab Emirates (AED) payroll calculator."""

    country_code = CountryCode.UAE.value
    currency_code = "AED"
    currency_decimals = 2
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
        breakdown = {"gpssa": self.calculate_gpssa(employee, to_decimal(gross_salary))}
        return summarize_statutory(breakdown, self.currency_decimals)

    def calculate_gpssa(self, employee: EmployeeProfile, gross_salary: Decimal) -> StatutoryComponent:
        if not is_national(employee, NATIONALITY):
            return exempt_component(
                "GPSSA_EXEMPTION", "Expatriate", note="GPSSA only applies to UAE nationals",
            )
        cap = self.policies.value("SOCIAL_SECURITY", "GPSSA_EMPLOYEE", "cap_amount", Decimal("50000"))
        return contribution_component(
            apply_cap(gross_salary, cap),
            self.policies.value("SOCIAL_SECURITY", "GPSSA_EMPLOYEE", "employee_rate", Decimal("5")),
            self.policies.value("SOCIAL_SECURITY", "GPSSA_EMPLOYER", "employer_rate", Decimal("12.5")),
            "GPSSA_EMPLOYEE / GPSSA_EMPLOYER",
            is_pension=True,
        )

    def gratuity_days_per_year(self, service_months: int) -> Decimal:
        if service_months <= FIRST_TIER_MONTHS:
            return self.policies.value("GRATUITY", "EOSB_FIRST_5_YEARS", "employer_rate", Decimal("21"))
        return self.policies.value("GRATUITY", "EOSB_AFTER_5_YEARS", "employer_rate", Decimal("30"))

    def calculate_gratuity_accrual(
        self,
        employee: EmployeeProfile,
        basic_salary: Decimal,
        service_months: int,
    ) -> Decimal:
        days = self.gratuity_days_per_year(service_months)
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

    def calculate_night_shift_allowance(
        self,
        employee: EmployeeProfile,
        night_hours: Decimal,
        basic_salary: Decimal,
    ) -> Decimal:
        """Additional 25% of the hourly rate for night hours."""
        return hourly_premium_pay(basic_salary, night_hours, NIGHT_SHIFT_PREMIUM, self.currency_decimals)

    def calculate_holiday_pay(
        self,
        employee: EmployeeProfile,
        holiday_hours: Decimal,
        basic_salary: Decimal,
    ) -> Decimal:
        return hourly_premium_pay(basic_salary, holiday_hours, HOLIDAY_MULTIPLIER, self.currency_decimals)

    def calculate_end_of_service_gratuity(
        self,
        employee: EmployeeProfile,
        basic_salary: Decimal,
        total_service_months: int,
        termination_type: TerminationType = TerminationType.RESIGNATION,
    ) -> Decimal:
        """
        Lump-sum gratuity due at the end of service.

        21 days of wage for each of the first five years and 30 days for
        each year after. Resignation before one year forfeits the gratuity,
        before five years pays one third. Termination for cause pays nothing.
        """
        termination_type = TerminationType(termination_type)
        service_years = Decimal(total_service_months) / Decimal("12")
        daily_wage = to_decimal(basic_salary) / Decimal("30")

        if termination_type == TerminationType.TERMINATION_FOR_CAUSE:
            return round_money(ZERO, self.currency_decimals)
        if termination_type == TerminationType.RESIGNATION and service_years < 1:
            return round_money(ZERO, self.currency_decimals)

        first_tier_days = self.gratuity_days_per_year(FIRST_TIER_MONTHS)
        later_tier_days = self.gratuity_days_per_year(FIRST_TIER_MONTHS + 1)

        total = min(service_years, FIRST_TIER_YEARS) * first_tier_days * daily_wage
        if service_years > FIRST_TIER_YEARS:
            total += (service_years - FIRST_TIER_YEARS) * later_tier_days * daily_wage

        if termination_type == TerminationType.RESIGNATION and service_years < FIRST_TIER_YEARS:
            total = total / 3

        return round_money(total, self.currency_decimals)
