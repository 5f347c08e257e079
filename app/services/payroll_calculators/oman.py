"""
HRMS Multi-Country Payroll - Oman Payroll Calculator

Oman calculations (OMR, 3 decimals):
- PASI: 7% employee + 10.5% employer on gross capped at 6,000, Omani
  nationals only (nationality OMANI or employee type LOCAL)
- End of service gratuity: 30 days of basic per year (daily = basic / 30)
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


NATIONALITY = "OMANI"
OVERTIME_MULTIPLIER = Decimal("1.25")


class OmanPayrollCalculator:
    """Oman (OMR) payroll calculator."""

    country_code = CountryCode.OMN.value
    currency_code = "OMR"
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
        breakdown = {"pasi": self.calculate_pasi(employee, to_decimal(gross_salary))}
        return summarize_statutory(breakdown, self.currency_decimals)

    def calculate_pasi(self, employee: EmployeeProfile, gross_salary: Decimal) -> StatutoryComponent:
        if not is_national(employee, NATIONALITY):
            return exempt_component("PASI_EXEMPTION", "Expatriate", note="PASI only applies to Omani nationals")
        cap = self.policies.value("SOCIAL_SECURITY", "PASI_EMPLOYEE", "cap_amount", Decimal("6000"))
        return contribution_component(
            apply_cap(gross_salary, cap),
            self.policies.value("SOCIAL_SECURITY", "PASI_EMPLOYEE", "employee_rate", Decimal("7")),
            self.policies.value("SOCIAL_SECURITY", "PASI_EMPLOYER", "employer_rate", Decimal("10.5")),
            "PASI_EMPLOYEE / PASI_EMPLOYER",
            decimals=self.currency_decimals,
            is_pension=True,
        )

    def calculate_gratuity_accrual(
        self,
        employee: EmployeeProfile,
        basic_salary: Decimal,
        service_months: int,
    ) -> Decimal:
        rule = self.policies.get("GRATUITY", "EOSB_ACCRUAL")
        days = entitlement_days(rule.policy_type, rule.employer_rate) if rule else Decimal("30")
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
