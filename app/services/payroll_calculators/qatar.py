"""
HRMS Multi-Country Payroll - Qatar Payroll Calculator

Qatar calculations:
- GRSIA pension: 7% employee + 14% employer on gross, Qatari nationals
  only (nationality QATARI or employee type LOCAL), no ceiling
- End of service gratuity: three weeks (21 days) of basic per year once
  the EOSB_ACCRUAL policy conditions hold (one year of service)
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
    entitlement_days,
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


NATIONALITY = "QATARI"
OVERTIME_MULTIPLIER = Decimal("1.25")


class QatarPayrollCalculator:
    """Qatar (QAR) payroll calculator."""

    country_code = CountryCode.QAT.value
    currency_code = "QAR"
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
        breakdown = {"grsia": self.calculate_grsia(employee, to_decimal(gross_salary))}
        return summarize_statutory(breakdown, self.currency_decimals)

    def calculate_grsia(self, employee: EmployeeProfile, gross_salary: Decimal) -> StatutoryComponent:
        if not is_national(employee, NATIONALITY):
            return exempt_component("GRSIA_EXEMPTION", "Expatriate", note="GRSIA only applies to Qatari nationals")
        cap = self.policies.value("SOCIAL_SECURITY", "GRSIA_EMPLOYEE", "cap_amount")
        return contribution_component(
            apply_cap(gross_salary, cap),
            self.policies.value("SOCIAL_SECURITY", "GRSIA_EMPLOYEE", "employee_rate", Decimal("7")),
            self.policies.value("SOCIAL_SECURITY", "GRSIA_EMPLOYER", "employer_rate", Decimal("14")),
            "GRSIA_EMPLOYEE / GRSIA_EMPLOYER",
            is_pension=True,
        )

    def calculate_gratuity_accrual(
        self,
        employee: EmployeeProfile,
        basic_salary: Decimal,
        service_months: int,
    ) -> Decimal:
        rule = self.policies.get("GRATUITY", "EOSB_ACCRUAL")
        if rule is None or not rule.applies_to(employee, service_months):
            return round_money(ZERO, self.currency_decimals)
        days = entitlement_days(rule.policy_type, rule.employer_rate)
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
