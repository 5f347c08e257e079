"""
HRMS Multi-Country Payroll - Saudi Arabia Payroll Calculator

Saudi calculations:
- GOSI: Saudi nationals (or LOCAL) 10% employee + 12% employer,
  expatriates 2% + 2%, on gross capped at 45,000
- End of service benefit: half a month per year up to 60 months, a full
  month after, on basic + allowances
- Biennial air ticket accrual
- Overtime at 150%, and on Ramadan hours beyond 6 a day
- Expatriate housing allowance, 25% of basic by default
"""

from decimal import Decimal
from typing import Dict, List, Optional

from app.services.payroll_calculators.helpers import (
    ZERO,
    apply_cap,
    biennial_air_ticket_accrual,
    calculate_gross_from_compensation,
    calculate_percentage,
    contribution_component,
    hourly_premium_pay,
    is_national,
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


NATIONALITY = "SAUDI"

FIRST_TIER_MONTHS = 60
FIRST_TIER_YEARS = Decimal("5")

OVERTIME_MULTIPLIER = Decimal("1.5")

# Reduced Ramadan schedule: 6 hours a day over 26 working days
RAMADAN_MONTHLY_HOURS = Decimal(6 * 26)

DEFAULT_HOUSING_ALLOWANCE_RATE = Decimal("25")

# Notice period owed when not served, in days of basic
NOTICE_PERIOD_DAYS = Decimal("60")


class SaudiPayrollCalculator:
    """Saudi Arabia (SAR) payroll calculator."""

    country_code = CountryCode.SAU.value
    currency_code = "SAR"
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
        breakdown = {"gosi": self.calculate_gosi(employee, to_decimal(gross_salary))}
        return summarize_statutory(breakdown, self.currency_decimals)

    def calculate_gosi(self, employee: EmployeeProfile, gross_salary: Decimal) -> StatutoryComponent:
        """GOSI at national or expatriate rates; both capped."""
        if is_national(employee, NATIONALITY):
            employee_policy, employer_policy = "GOSI_EMPLOYEE_SAUDI", "GOSI_EMPLOYER_SAUDI"
            defaults = (Decimal("10"), Decimal("12"))
            tag, note = "GOSI_SAUDI_NATIONAL", "Saudi National"
        else:
            employee_policy, employer_policy = "GOSI_EMPLOYEE_EXPAT", "GOSI_EMPLOYER_EXPAT"
            defaults = (Decimal("2"), Decimal("2"))
            tag, note = "GOSI_EXPATRIATE", "Expatriate"

        cap = self.policies.value("SOCIAL_SECURITY", employee_policy, "cap_amount", Decimal("45000"))
        return contribution_component(
            apply_cap(gross_salary, cap),
            self.policies.value("SOCIAL_SECURITY", employee_policy, "employee_rate", defaults[0]),
            self.policies.value("SOCIAL_SECURITY", employer_policy, "employer_rate", defaults[1]),
            tag,
            note=note,
        )

    def months_per_year(self, service_months: int) -> Decimal:
        if service_months <= FIRST_TIER_MONTHS:
            return self.policies.value("GRATUITY", "EOSB_FIRST_5_YEARS", "employer_rate", Decimal("0.5"))
        return self.policies.value("GRATUITY", "EOSB_AFTER_5_YEARS", "employer_rate", Decimal("1.0"))

    def calculate_gratuity_accrual(
        self,
        employee: EmployeeProfile,
        basic_salary: Decimal,
        service_months: int,
    ) -> Decimal:
        calculation_base = to_decimal(basic_salary) + to_decimal(employee.allowances)
        monthly = calculation_base * self.months_per_year(service_months) / Decimal("12")
        return round_money(monthly, self.currency_decimals)

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

    def calculate_ramadan_hours_adjustment(
        self,
        employee: EmployeeProfile,
        ramadan_hours: Decimal,
        basic_salary: Decimal,
    ) -> Decimal:
        """
        Overtime for hours worked in Ramadan beyond the reduced schedule.

        Ramadan days are 6 hours on unchanged pay, so hours above
        6 x 26 in the month are paid at the overtime rate.
        """
        extra_hours = to_decimal(ramadan_hours) - RAMADAN_MONTHLY_HOURS
        if extra_hours <= 0:
            return round_money(ZERO, self.currency_decimals)
        return self.calculate_overtime_pay(employee, extra_hours, basic_salary)

    def calculate_housing_allowance(self, employee: EmployeeProfile, basic_salary: Decimal) -> Decimal:
        """Expatriate housing allowance as a share of basic, 25% unless the employee has a rate."""
        if is_national(employee, NATIONALITY) or not employee.housing_allowance_eligible:
            return round_money(ZERO, self.currency_decimals)
        rate = employee.housing_allowance_rate or DEFAULT_HOUSING_ALLOWANCE_RATE
        return calculate_percentage(basic_salary, rate, self.currency_decimals)

    def calculate_end_of_service_benefits(
        self,
        employee: EmployeeProfile,
        basic_salary: Decimal,
        total_service_months: int,
        termination_type: TerminationType = TerminationType.RESIGNATION,
    ) -> Decimal:
        """
        Lump-sum EOSB due at the end of service, on basic + allowances.

        Half a month per year for the first five years, a full month for
        each year after. Termination for cause pays nothing. Resignation
        pays nothing before two years, one third before five, two thirds
        before ten and the full amount after.
        """
        termination_type = TerminationType(termination_type)
        service_years = Decimal(total_service_months) / Decimal("12")
        calculation_base = to_decimal(basic_salary) + to_decimal(employee.allowances)

        if termination_type == TerminationType.TERMINATION_FOR_CAUSE:
            return round_money(ZERO, self.currency_decimals)

        total = min(service_years, FIRST_TIER_YEARS) * self.months_per_year(FIRST_TIER_MONTHS) * calculation_base
        if service_years > FIRST_TIER_YEARS:
            total += (
                (service_years - FIRST_TIER_YEARS)
                * self.months_per_year(FIRST_TIER_MONTHS + 1)
                * calculation_base
            )

        if termination_type == TerminationType.RESIGNATION:
            if service_years < 2:
                return round_money(ZERO, self.currency_decimals)
            if service_years < 5:
                total = total / 3
            elif service_years < 10:
                total = total * 2 / 3

        return round_money(total, self.currency_decimals)

    def calculate_final_settlement(
        self,
        employee: EmployeeProfile,
        basic_salary: Decimal,
        total_service_months: int,
        termination_type: TerminationType = TerminationType.RESIGNATION,
        unused_leave_days: Decimal = ZERO,
    ) -> Dict[str, Decimal]:
        """EOSB plus unserved notice pay and unused leave encashment."""
        daily_wage = to_decimal(basic_salary) / Decimal("30")
        eosb = self.calculate_end_of_service_benefits(
            employee, basic_salary, total_service_months, termination_type,
        )
        notice_pay = round_money(daily_wage * NOTICE_PERIOD_DAYS, self.currency_decimals)
        leave_encashment = round_money(daily_wage * to_decimal(unused_leave_days), self.currency_decimals)

        return {
            "eosb": eosb,
            "notice_pay": notice_pay,
            "leave_encashment": leave_encashment,
            "total": eosb + notice_pay + leave_encashment,
        }
