"""
HRMS Multi-Country Payroll - Calculator Factory

Maps a country code to its calculator and offers the introspection and
diagnostic helpers built on top of the calculators:
- supported countries and capability flags
- a per-operation calculator smoke test
- a side-by-side comparison of one employee across all countries
"""

import dataclasses
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Type

from app.services.payroll_calculators.bahrain import BahrainPayrollCalculator
from app.services.payroll_calculators.contract import PayrollCalculator
from app.services.payroll_calculators.egypt import EgyptPayrollCalculator
from app.services.payroll_calculators.helpers import (
    allowances_total,
    calculate_service_months,
    extract_basic_salary,
    fixed_earnings_total,
    round_money,
    to_decimal,
)
from app.services.payroll_calculators.india import IndiaPayrollCalculator
from app.services.payroll_calculators.oman import OmanPayrollCalculator
from app.services.payroll_calculators.policies import PolicySource
from app.services.payroll_calculators.qatar import QatarPayrollCalculator
from app.services.payroll_calculators.saudi import SaudiPayrollCalculator
from app.services.payroll_calculators.types import (
    CompensationLine,
    CountryCode,
    CountryInfo,
    EmployeeProfile,
)
from app.services.payroll_calculators.uae import UAEPayrollCalculator
from app.utils.error_handling import UnsupportedCountryException

logger = logging.getLogger(__name__)

EMPLOYEE_FIELDS = {f.name for f in dataclasses.fields(EmployeeProfile)}


CALCULATORS: Dict[CountryCode, Type] = {
    CountryCode.IND: IndiaPayrollCalculator,
    CountryCode.UAE: UAEPayrollCalculator,
    CountryCode.SAU: SaudiPayrollCalculator,
    CountryCode.OMN: OmanPayrollCalculator,
    CountryCode.BHR: BahrainPayrollCalculator,
    CountryCode.QAT: QatarPayrollCalculator,
    CountryCode.EGY: EgyptPayrollCalculator,
}

SUPPORTED_COUNTRIES: Dict[CountryCode, CountryInfo] = {
    CountryCode.IND: CountryInfo("IND", "India", "INR", "₹", 2, False),
    CountryCode.UAE: CountryInfo("UAE", "United Arab Emirates", "AED", "د.إ", 2, True),
    CountryCode.SAU: CountryInfo("SAU", "Saudi Arabia", "SAR", "ر.س", 2, True),
    CountryCode.OMN: CountryInfo("OMN", "Oman", "OMR", "ر.ع.", 3, True),
    CountryCode.BHR: CountryInfo("BHR", "Bahrain", "BHD", "د.ب", 3, True),
    CountryCode.QAT: CountryInfo("QAT", "Qatar", "QAR", "ر.ق", 2, True),
    CountryCode.EGY: CountryInfo("EGY", "Egypt", "EGP", "£", 2, False),
}

# Nationality given to LOCAL employees when comparing across countries
NATIONAL_NATIONALITY: Dict[CountryCode, str] = {
    CountryCode.IND: "INDIAN",
    CountryCode.UAE: "EMIRATI",
    CountryCode.SAU: "SAUDI",
    CountryCode.OMN: "OMANI",
    CountryCode.BHR: "BAHRAINI",
    CountryCode.QAT: "QATARI",
    CountryCode.EGY: "EGYPTIAN",
}


def default_nationality(country_code: CountryCode, employee_type: Optional[str]) -> str:
    if (employee_type or "").upper() == "LOCAL":
        return NATIONAL_NATIONALITY.get(country_code, "LOCAL")
    return "EXPATRIATE"


class PayrollCalculatorFactory:
    """
    Creates country calculators.

    `policy_source` is handed to every calculator for tier-1 policy
    loading; `today` supplies the as-of date for service months.
    """

    def __init__(
        self,
        policy_source: Optional[PolicySource] = None,
        today: Callable[[], date] = date.today,
    ):
        self.policy_source = policy_source
        self.today = today

    @staticmethod
    def resolve_country(country_code: Optional[str]) -> CountryCode:
        code = CountryCode.parse(country_code)
        if code is None:
            raise UnsupportedCountryException(
                country_code, supported=[c.value for c in CountryCode],
            )
        return code

    def get_calculator(
        self,
        country_code: str,
        policy_source: Optional[PolicySource] = None,
    ) -> PayrollCalculator:
        """New, uninitialized calculator for the country (case-insensitive)."""
        code = self.resolve_country(country_code)
        return CALCULATORS[code](policy_source or self.policy_source)

    @staticmethod
    def get_supported_countries() -> List[Dict[str, Any]]:
        return [info.to_dict() for info in SUPPORTED_COUNTRIES.values()]

    @staticmethod
    def get_country_info(country_code: str) -> CountryInfo:
        return SUPPORTED_COUNTRIES[PayrollCalculatorFactory.resolve_country(country_code)]

    @staticmethod
    def is_country_supported(country_code: Optional[str]) -> bool:
        return CountryCode.parse(country_code) is not None

    async def get_calculator_capabilities(self, country_code: str) -> Dict[str, Any]:
        calculator = self.get_calculator(country_code)
        await calculator.initialize()
        return {"country_code": calculator.country_code, **calculator.capabilities.to_dict()}

    async def get_all_calculator_capabilities(self) -> List[Dict[str, Any]]:
        results = []
        for code, info in SUPPORTED_COUNTRIES.items():
            results.append({
                **info.to_dict(),
                "capabilities": await self.get_calculator_capabilities(code.value),
            })
        return results

    # ===========================================
    # DIAGNOSTICS
    # ===========================================

    async def test_calculator(self, country_code: str, test_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run every calculator operation on sample data.

        Each operation reports {"success": True, "result": ...} or
        {"success": False, "error": ...} independently of the others.
        """
        try:
            calculator = self.get_calculator(country_code)
            await calculator.initialize()
        except Exception as e:
            logger.warning(f"Calculator test for {country_code} could not start: {e}")
            return {"country_code": country_code, "test_data": test_data, "error": str(e)}

        profile_fields = {
            "nationality": test_data.get("nationality") or "EXPATRIATE",
            "employee_type": test_data.get("employee_type") or "EXPATRIATE",
            "country_code": calculator.country_code,
            **(test_data.get("employee") or {}),
        }
        employee = EmployeeProfile(**{
            key: value for key, value in profile_fields.items() if key in EMPLOYEE_FIELDS
        })
        compensation = [
            line if isinstance(line, CompensationLine) else CompensationLine(**line)
            for line in test_data.get("compensation") or []
        ]
        gross_salary = to_decimal(test_data.get("gross_salary") or 5000)
        basic_salary = to_decimal(test_data.get("basic_salary") or 3000)
        service_months = int(test_data.get("service_months") or 12)
        overtime_hours = to_decimal(test_data.get("overtime_hours") or 10)

        operations = {
            "gross_salary": lambda: calculator.calculate_gross_salary(employee, compensation, None),
            "statutory_deductions": lambda: calculator.calculate_statutory_deductions(
                employee, gross_salary, basic_salary,
            ).to_dict(),
            "gratuity_accrual": lambda: calculator.calculate_gratuity_accrual(
                employee, basic_salary, service_months,
            ),
            "air_ticket_accrual": lambda: calculator.calculate_air_ticket_accrual(employee),
            "overtime_pay": lambda: calculator.calculate_overtime_pay(employee, overtime_hours, basic_salary),
        }

        calculations: Dict[str, Dict[str, Any]] = {}
        for name, operation in operations.items():
            try:
                calculations[name] = {"success": True, "result": operation()}
            except Exception as e:
                logger.warning(f"Calculator test {country_code}/{name} failed: {e}")
                calculations[name] = {"success": False, "error": str(e)}

        return {
            "country_code": calculator.country_code,
            "test_data": test_data,
            "calculations": calculations,
        }

    async def compare_calculations(
        self,
        employee: EmployeeProfile,
        compensation: List[CompensationLine],
    ) -> Dict[str, Dict[str, Any]]:
        """
        Run one employee through every country calculator.

        Gross is the literal sum of fixed EARNING and ALLOWANCE amounts.
        LOCAL employees take each country's national nationality. A failing
        country reports its error without stopping the others.
        """
        gross_salary = fixed_earnings_total(compensation)
        basic_salary = extract_basic_salary(compensation, gross_salary)
        service_months = calculate_service_months(employee.joining_date or self.today(), self.today())
        comparisons: Dict[str, Dict[str, Any]] = {}

        for code, info in SUPPORTED_COUNTRIES.items():
            try:
                calculator = self.get_calculator(code.value)
                await calculator.initialize()
                decimals = calculator.currency_decimals

                profile = dataclasses.replace(
                    employee,
                    country_code=code.value,
                    nationality=default_nationality(code, employee.employee_type),
                    allowances=allowances_total(compensation),
                )
                statutory = calculator.calculate_statutory_deductions(profile, gross_salary, basic_salary)
                gratuity = calculator.calculate_gratuity_accrual(profile, basic_salary, service_months)
                air_ticket = calculator.calculate_air_ticket_accrual(profile)

                net_salary = round_money(gross_salary - statutory.employee_share, decimals)
                total_employer_cost = round_money(
                    gross_salary + statutory.employer_share + gratuity + air_ticket, decimals,
                )

                comparisons[code.value] = {
                    "country": info.name,
                    "currency": info.currency_code,
                    "gross_salary": gross_salary,
                    "net_salary": net_salary,
                    "employee_deductions": statutory.employee_share,
                    "employer_contributions": statutory.employer_share,
                    "gratuity_accrual": gratuity,
                    "air_ticket_accrual": air_ticket,
                    "total_employer_cost": total_employer_cost,
                    "annual_ctc": total_employer_cost * 12,
                    "statutory": statutory.to_dict(),
                }
            except Exception as e:
                logger.warning(f"Comparison for {code.value} failed: {e}")
                comparisons[code.value] = {
                    "country": info.name,
                    "currency": info.currency_code,
                    "error": str(e),
                }

        return comparisons
