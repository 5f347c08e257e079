"""
HRMS Multi-Country Payroll - India Payroll Calculator

Indian statutory calculations:
- PF (Provident Fund): 12% employee + 12% employer on basic, capped at 15,000
- ESI (Employee State Insurance): 0.75% employee + 3.25% employer on gross,
  only while gross <= 21,000
- EPS (Employee Pension Scheme): 8.33% employer, same wage cap as PF
- EDLI (Employee Deposit Linked Insurance): 0.5% employer, same wage cap
- Professional Tax: Maharashtra slabs on gross
- Gratuity: 15 days of basic per service year, only after 60 months
  (daily wage = basic / 26)
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from app.services.payroll_calculators.helpers import (
    ZERO,
    apply_cap,
    apply_threshold,
    calculate_gross_from_compensation,
    contribution_component,
    exempt_component,
    hourly_premium_pay,
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


# Gratuity becomes payable after five years of service
MIN_GRATUITY_SERVICE_MONTHS = 60
GRATUITY_DAILY_DIVISOR = Decimal("26")

OVERTIME_MULTIPLIER = Decimal("2.0")

# Maharashtra professional tax: (upper bound of monthly gross, amount, label)
PROFESSIONAL_TAX_SLABS = [
    (Decimal("10000"), Decimal("0"), "Exempted"),
    (Decimal("15000"), Decimal("110"), "Slab 1"),
    (Decimal("20000"), Decimal("130"), "Slab 2"),
    (None, Decimal("200"), "Slab 3"),
]


@dataclass
class IncomeTaxSlab:
    """Income tax slab definition."""
    lower: Decimal
    upper: Optional[Decimal]
    rate: Decimal

    def calculate_tax(self, taxable_income: Decimal) -> Decimal:
        """Tax for the part of income falling inside this slab."""
        if taxable_income <= self.lower:
            return Decimal("0")
        top = taxable_income if self.upper is None else min(taxable_income, self.upper)
        return (top - self.lower) * self.rate / 100


# Illustrative old-regime slabs (FY 2024-25)
INDIA_TAX_SLABS = [
    IncomeTaxSlab(Decimal("0"), Decimal("250000"), Decimal("0")),
    IncomeTaxSlab(Decimal("250000"), Decimal("500000"), Decimal("5")),
    IncomeTaxSlab(Decimal("500000"), Decimal("750000"), Decimal("10")),
    IncomeTaxSlab(Decimal("750000"), Decimal("1000000"), Decimal("15")),
    IncomeTaxSlab(Decimal("1000000"), Decimal("1250000"), Decimal("20")),
    IncomeTaxSlab(Decimal("1250000"), Decimal("1500000"), Decimal("25")),
    IncomeTaxSlab(Decimal("1500000"), None, Decimal("30")),
]

STANDARD_DEDUCTION = Decimal("50000")
BASIC_EXEMPTION = Decimal("250000")
EDUCATION_CESS_RATE = Decimal("4")


class IndiaPayrollCalculator:
    """India (INR) payroll calculator."""

    country_code = CountryCode.IND.value
    currency_code = "INR"
    currency_decimals = 2
    capabilities = CalculatorCapabilities(
        supports_social_security=True,
        supports_pension=True,
        supports_gratuity=True,
        supports_air_ticket=False,
        supports_overtime=True,
        supports_wps=False,
        nationality_required=False,
        employee_type_required=False,
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
        gross_salary = to_decimal(gross_salary)
        basic_salary = to_decimal(basic_salary)

        breakdown: Dict[str, StatutoryComponent] = {
            "pf": self.calculate_pf(basic_salary),
            "esi": self.calculate_esi(gross_salary),
            "eps": self.calculate_eps(basic_salary),
            "edli": self.calculate_edli(basic_salary),
            "professional_tax": self.calculate_professional_tax(gross_salary),
        }
        return summarize_statutory(breakdown, self.currency_decimals)

    def calculate_pf(self, basic_salary: Decimal) -> StatutoryComponent:
        """Provident Fund on basic, wage capped."""
        cap = self.policies.value("SOCIAL_SECURITY", "PF_EMPLOYEE", "cap_amount", Decimal("15000"))
        return contribution_component(
            apply_cap(basic_salary, cap),
            self.policies.value("SOCIAL_SECURITY", "PF_EMPLOYEE", "employee_rate", Decimal("12")),
            self.policies.value("SOCIAL_SECURITY", "PF_EMPLOYER", "employer_rate", Decimal("12")),
            "PF_EMPLOYEE / PF_EMPLOYER",
        )

    def calculate_esi(self, gross_salary: Decimal) -> StatutoryComponent:
        """ESI on gross, only while gross is within the threshold."""
        threshold = self.policies.value("SOCIAL_SECURITY", "ESI_EMPLOYEE", "max_threshold", Decimal("21000"))
        esi_base = apply_threshold(gross_salary, max_threshold=threshold)
        if gross_salary > 0 and esi_base == 0:
            return exempt_component("ESI_EXEMPTION", f"Salary > ₹{threshold:,.0f}")
        return contribution_component(
            esi_base,
            self.policies.value("SOCIAL_SECURITY", "ESI_EMPLOYEE", "employee_rate", Decimal("0.75")),
            self.policies.value("SOCIAL_SECURITY", "ESI_EMPLOYER", "employer_rate", Decimal("3.25")),
            "ESI_EMPLOYEE / ESI_EMPLOYER",
        )

    def calculate_eps(self, basic_salary: Decimal) -> StatutoryComponent:
        """Employer pension contribution."""
        cap = self.policies.value("SOCIAL_SECURITY", "EPS_EMPLOYER", "cap_amount", Decimal("15000"))
        return contribution_component(
            apply_cap(basic_salary, cap),
            ZERO,
            self.policies.value("SOCIAL_SECURITY", "EPS_EMPLOYER", "employer_rate", Decimal("8.33")),
            "EPS_EMPLOYER",
            is_pension=True,
        )

    def calculate_edli(self, basic_salary: Decimal) -> StatutoryComponent:
        cap = self.policies.value("SOCIAL_SECURITY", "EDLI_EMPLOYER", "cap_amount", Decimal("15000"))
        return contribution_component(
            apply_cap(basic_salary, cap),
            ZERO,
            self.policies.value("SOCIAL_SECURITY", "EDLI_EMPLOYER", "employer_rate", Decimal("0.5")),
            "EDLI_EMPLOYER",
        )

    def calculate_professional_tax(self, gross_salary: Decimal) -> StatutoryComponent:
        """Flat monthly amount by gross salary slab; borne by the employee."""
        for upper, amount, label in PROFESSIONAL_TAX_SLABS:
            if upper is None or gross_salary <= upper:
                return StatutoryComponent(
                    employee=round_money(amount, self.currency_decimals),
                    employer=ZERO,
                    calculation_base=round_money(gross_salary, self.currency_decimals),
                    effective_rate=label,
                    policy_tag="PROFESSIONAL_TAX",
                )
        raise AssertionError("professional tax slabs must end with an open slab")

    def calculate_gratuity_accrual(
        self,
        employee: EmployeeProfile,
        basic_salary: Decimal,
        service_months: int,
    ) -> Decimal:
        if service_months < MIN_GRATUITY_SERVICE_MONTHS:
            return round_money(ZERO, self.currency_decimals)
        days = self.policies.value("GRATUITY", "GRATUITY_ACCRUAL", "employer_rate", Decimal("15"))
        return monthly_gratuity(basic_salary, days, GRATUITY_DAILY_DIVISOR, self.currency_decimals)

    def calculate_air_ticket_accrual(self, employee: EmployeeProfile) -> Decimal:
        # Not a statutory benefit in India
        return round_money(ZERO, self.currency_decimals)

    def calculate_overtime_pay(
        self,
        employee: EmployeeProfile,
        overtime_hours: Decimal,
        basic_salary: Decimal,
    ) -> Decimal:
        return hourly_premium_pay(basic_salary, overtime_hours, OVERTIME_MULTIPLIER, self.currency_decimals)

    # ===========================================
    # INCOME TAX (REFERENCE)
    # ===========================================

    def get_tax_slabs(self) -> List[IncomeTaxSlab]:
        return list(INDIA_TAX_SLABS)

    def calculate_annual_tax(
        self,
        annual_income: Decimal,
        deductions: Optional[Dict[str, Decimal]] = None,
    ) -> Dict[str, Decimal]:
        """
        Annual income tax liability for reference.

        Taxable income is income less the standard deduction, any declared
        deductions and the basic exemption. A 4% cess applies on the tax.
        """
        total_deductions = sum((to_decimal(v) for v in (deductions or {}).values()), ZERO)
        taxable_income = max(
            ZERO,
            to_decimal(annual_income) - STANDARD_DEDUCTION - total_deductions - BASIC_EXEMPTION,
        )
        base_tax = sum((slab.calculate_tax(taxable_income) for slab in INDIA_TAX_SLABS), ZERO)
        cess = base_tax * EDUCATION_CESS_RATE / 100

        return {
            "taxable_income": round_money(taxable_income),
            "base_tax": round_money(base_tax),
            "education_cess": round_money(cess),
            "total_tax": round_money(base_tax + cess),
        }

    def get_contribution_limits(self) -> Dict[str, Dict[str, Decimal]]:
        """Current wage ceilings and rates, as resolved from policies."""
        value = self.policies.value
        return {
            "pf": {
                "max_wage": value("SOCIAL_SECURITY", "PF_EMPLOYEE", "cap_amount", Decimal("15000")),
                "employee_rate": value("SOCIAL_SECURITY", "PF_EMPLOYEE", "employee_rate", Decimal("12")),
                "employer_rate": value("SOCIAL_SECURITY", "PF_EMPLOYER", "employer_rate", Decimal("12")),
            },
            "esi": {
                "max_wage": value("SOCIAL_SECURITY", "ESI_EMPLOYEE", "max_threshold", Decimal("21000")),
                "employee_rate": value("SOCIAL_SECURITY", "ESI_EMPLOYEE", "employee_rate", Decimal("0.75")),
                "employer_rate": value("SOCIAL_SECURITY", "ESI_EMPLOYER", "employer_rate", Decimal("3.25")),
            },
            "eps": {
                "max_wage": value("SOCIAL_SECURITY", "EPS_EMPLOYER", "cap_amount", Decimal("15000")),
                "employer_rate": value("SOCIAL_SECURITY", "EPS_EMPLOYER", "employer_rate", Decimal("8.33")),
            },
            "edli": {
                "max_wage": value("SOCIAL_SECURITY", "EDLI_EMPLOYER", "cap_amount", Decimal("15000")),
                "employer_rate": value("SOCIAL_SECURITY", "EDLI_EMPLOYER", "employer_rate", Decimal("0.5")),
            },
            "gratuity": {
                "days_per_year": value("GRATUITY", "GRATUITY_ACCRUAL", "employer_rate", Decimal("15")),
                "minimum_service_months": Decimal(MIN_GRATUITY_SERVICE_MONTHS),
            },
        }
