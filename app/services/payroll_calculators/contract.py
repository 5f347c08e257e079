"""
HRMS Multi-Country Payroll - Calculator Contract

Every country calculator satisfies `PayrollCalculator`. Calculators are
plain classes; the factory dispatches on `CountryCode`.
"""

from decimal import Decimal
from typing import List, Optional, Protocol, runtime_checkable

from app.services.payroll_calculators.types import (
    AttendanceSummary,
    CalculatorCapabilities,
    CompensationLine,
    EmployeeProfile,
    StatutoryDeductionResult,
)


@runtime_checkable
class PayrollCalculator(Protocol):
    """Country payroll calculator."""

    country_code: str
    currency_code: str
    currency_decimals: int
    capabilities: CalculatorCapabilities

    async def initialize(self) -> None:
        """Load country policies once. Repeated calls are no-ops."""
        ...

    def calculate_gross_salary(
        self,
        employee: EmployeeProfile,
        compensation: List[CompensationLine],
        attendance: Optional[AttendanceSummary],
    ) -> Decimal:
        ...

    def calculate_statutory_deductions(
        self,
        employee: EmployeeProfile,
        gross_salary: Decimal,
        basic_salary: Decimal,
    ) -> StatutoryDeductionResult:
        ...

    def calculate_gratuity_accrual(
        self,
        employee: EmployeeProfile,
        basic_salary: Decimal,
        service_months: int,
    ) -> Decimal:
        """Monthly gratuity accrual (annual entitlement / 12)."""
        ...

    def calculate_air_ticket_accrual(self, employee: EmployeeProfile) -> Decimal:
        ...

    def calculate_overtime_pay(
        self,
        employee: EmployeeProfile,
        overtime_hours: Decimal,
        basic_salary: Decimal,
    ) -> Decimal:
        ...
