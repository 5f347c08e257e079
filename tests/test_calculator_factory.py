"""
HRMS Multi-Country Payroll - Calculator Factory Tests

Tests for country dispatch, capabilities and the diagnostic helpers.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.services.payroll_calculators.factory import PayrollCalculatorFactory, default_nationality
from app.services.payroll_calculators.qatar import QatarPayrollCalculator
from app.services.payroll_calculators.types import CountryCode, EmployeeProfile
from app.services.payroll_calculators.uae import UAEPayrollCalculator
from app.utils.error_handling import ErrorCode, UnsupportedCountryException
from tests.conftest import TODAY, allowance_line, basic_line, today


@pytest.fixture
def factory():
    return PayrollCalculatorFactory(today=today)


class TestCountryDispatch:
    """Country code to calculator."""

    def test_lookup_is_case_insensitive(self, factory):
        assert isinstance(factory.get_calculator("uae"), UAEPayrollCalculator)
        assert isinstance(factory.get_calculator(" UAE "), UAEPayrollCalculator)

    def test_each_call_returns_a_new_calculator(self, factory):
        assert factory.get_calculator("QAT") is not factory.get_calculator("QAT")

    def test_unsupported_country(self, factory):
        with pytest.raises(UnsupportedCountryException) as exc_info:
            factory.get_calculator("USA")

        assert exc_info.value.status_code == 400
        assert exc_info.value.code == ErrorCode.UNSUPPORTED_COUNTRY

    def test_supported_countries(self, factory):
        countries = {c["code"]: c for c in factory.get_supported_countries()}

        assert set(countries) == {code.value for code in CountryCode}
        assert countries["OMN"]["currency_decimals"] == 3
        assert countries["BHR"]["currency_decimals"] == 3
        assert countries["IND"]["wps_enabled"] is False

    def test_is_country_supported(self, factory):
        assert factory.is_country_supported("egy") is True
        assert factory.is_country_supported("GBR") is False
        assert factory.is_country_supported(None) is False

    def test_default_nationality(self):
        assert default_nationality(CountryCode.SAU, "LOCAL") == "SAUDI"
        assert default_nationality(CountryCode.SAU, "EXPATRIATE") == "EXPATRIATE"


class TestCapabilities:
    """Capability introspection."""

    @pytest.mark.asyncio
    async def test_single_country(self, factory):
        capabilities = await factory.get_calculator_capabilities("ind")

        assert capabilities["country_code"] == "IND"
        assert capabilities["supports_air_ticket"] is False

    @pytest.mark.asyncio
    async def test_all_countries(self, factory):
        everything = await factory.get_all_calculator_capabilities()

        assert len(everything) == 7
        assert all("capabilities" in entry for entry in everything)


class TestCalculatorSmokeTest:
    """Per-operation diagnostic run."""

    @pytest.mark.asyncio
    async def test_all_operations_succeed(self, factory):
        result = await factory.test_calculator("UAE", {
            "gross_salary": Decimal("5000"),
            "basic_salary": Decimal("3000"),
            "service_months": 12,
            "overtime_hours": Decimal("10"),
            "compensation": [basic_line("3000")],
        })
        calculations = result["calculations"]

        assert result["country_code"] == "UAE"
        assert all(entry["success"] for entry in calculations.values())
        assert calculations["gross_salary"]["result"] == Decimal("3000.00")
        assert calculations["gratuity_accrual"]["result"] == Decimal("175.00")

    @pytest.mark.asyncio
    async def test_defaults_for_missing_sample_data(self, factory):
        result = await factory.test_calculator("EGY", {})

        assert result["calculations"]["statutory_deductions"]["result"]["employee"] == Decimal("700.00")

    @pytest.mark.asyncio
    async def test_failing_operation_is_reported(self, factory, monkeypatch):
        def broken(self, *args):
            raise ValueError("broken gratuity table")

        monkeypatch.setattr(QatarPayrollCalculator, "calculate_gratuity_accrual", broken)
        result = await factory.test_calculator("QAT", {})

        assert result["calculations"]["gratuity_accrual"] == {"success": False, "error": "broken gratuity table"}
        assert result["calculations"]["statutory_deductions"]["success"] is True

    @pytest.mark.asyncio
    async def test_unsupported_country_returns_error(self, factory):
        result = await factory.test_calculator("XYZ", {})

        assert "error" in result
        assert "calculations" not in result


class TestCompareCalculations:
    """One employee across every country."""

    @pytest.fixture
    def compensation(self):
        return [basic_line("10000"), allowance_line("HOUSING", "5000")]

    @pytest.mark.asyncio
    async def test_every_country_compared(self, factory, compensation):
        employee = EmployeeProfile(employee_type="EXPATRIATE", joining_date=TODAY - timedelta(days=400))

        comparisons = await factory.compare_calculations(employee, compensation)
        uae = comparisons["UAE"]

        assert set(comparisons) == {code.value for code in CountryCode}
        assert uae["gross_salary"] == Decimal("15000.00")
        assert uae["employee_deductions"] == Decimal("0.00")
        assert uae["gratuity_accrual"] == Decimal("583.33")
        assert uae["total_employer_cost"] == Decimal("15583.33")
        assert uae["annual_ctc"] == Decimal("186999.96")

    @pytest.mark.asyncio
    async def test_local_employee_takes_national_schemes(self, factory, compensation):
        employee = EmployeeProfile(employee_type="LOCAL", joining_date=TODAY - timedelta(days=400))

        comparisons = await factory.compare_calculations(employee, compensation)

        assert comparisons["UAE"]["employee_deductions"] == Decimal("750.00")
        assert comparisons["SAU"]["statutory"]["breakdown"]["gosi"]["policy"] == "GOSI_SAUDI_NATIONAL"

    @pytest.mark.asyncio
    async def test_failing_country_does_not_stop_others(self, factory, compensation, monkeypatch):
        def broken(self, *args):
            raise RuntimeError("calculator offline")

        monkeypatch.setattr(QatarPayrollCalculator, "calculate_statutory_deductions", broken)

        comparisons = await factory.compare_calculations(EmployeeProfile(), compensation)

        assert comparisons["QAT"]["error"] == "calculator offline"
        assert comparisons["QAT"]["currency"] == "QAR"
        assert "net_salary" in comparisons["EGY"]
