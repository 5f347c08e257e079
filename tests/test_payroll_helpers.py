"""
HRMS Multi-Country Payroll - Calculation Helper Tests

Unit tests for the shared money, proration, gratuity and overtime math.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.services.payroll_calculators.helpers import (
    allowances_total,
    apply_cap,
    apply_threshold,
    biennial_air_ticket_accrual,
    calculate_gross_from_compensation,
    calculate_percentage,
    calculate_service_months,
    categorize_compensation,
    contribution_component,
    entitlement_days,
    exempt_component,
    extract_basic_salary,
    fixed_earnings_total,
    format_rate,
    hourly_premium_pay,
    monthly_gratuity,
    resolve_ticket_cost,
    round_money,
    summarize_statutory,
)
from app.services.payroll_calculators.types import AttendanceSummary, CompensationLine, EmployeeProfile
from tests.conftest import TODAY, allowance_line, basic_line


class TestRounding:
    """Test half-up rounding and percentages."""

    def test_round_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("2.344")) == Decimal("2.34")

    def test_three_decimal_currency(self):
        assert round_money(Decimal("1.0005"), 3) == Decimal("1.001")

    def test_round_accepts_strings_and_floats(self):
        assert round_money("10.005") == Decimal("10.01")
        assert round_money(0.1) == Decimal("0.10")

    def test_percentage(self):
        assert calculate_percentage(Decimal("15000"), Decimal("12")) == Decimal("1800.00")

    def test_percentage_of_zero_is_zero(self):
        assert calculate_percentage(Decimal("0"), Decimal("12")) == Decimal("0.00")
        assert calculate_percentage(Decimal("5000"), None) == Decimal("0.00")


class TestCapsAndThresholds:
    """Caps clamp, thresholds gate."""

    def test_cap_applies(self):
        assert apply_cap(Decimal("20000"), Decimal("15000")) == Decimal("15000")

    def test_no_cap(self):
        assert apply_cap(Decimal("20000"), None) == Decimal("20000")

    def test_amount_above_max_threshold_is_gated_to_zero(self):
        assert apply_threshold(Decimal("22000"), max_threshold=Decimal("21000")) == Decimal("0")

    def test_amount_at_max_threshold_passes(self):
        assert apply_threshold(Decimal("21000"), max_threshold=Decimal("21000")) == Decimal("21000")

    def test_amount_below_min_threshold_is_gated_to_zero(self):
        assert apply_threshold(Decimal("500"), min_threshold=Decimal("1000")) == Decimal("0")


class TestServiceMonths:
    """Service months use an average month of 30.44 days."""

    def test_no_joining_date(self):
        assert calculate_service_months(None, TODAY) == 0

    def test_six_years(self):
        assert calculate_service_months(TODAY - timedelta(days=2200), TODAY) == 72

    def test_partial_month_is_floored(self):
        assert calculate_service_months(TODAY - timedelta(days=30), TODAY) == 0
        assert calculate_service_months(TODAY - timedelta(days=31), TODAY) == 1

    def test_future_joining_date_counts_absolute_difference(self):
        assert calculate_service_months(TODAY + timedelta(days=62), TODAY) == 2


class TestGrossFromCompensation:
    """Two-pass gross: fixed components prorated, then percentages."""

    @pytest.fixture
    def compensation(self):
        return [
            basic_line("10000"),
            allowance_line("HOUSING", "5000"),
            CompensationLine(
                "TRANSPORT", "Transport Allowance", "ALLOWANCE",
                percentage=Decimal("10"), is_percentage=True,
            ),
            CompensationLine("LOAN", "Loan Recovery", "DEDUCTION", amount=Decimal("700")),
        ]

    def test_full_month(self, compensation):
        assert calculate_gross_from_compensation(compensation) == Decimal("16500.00")

    def test_prorated_by_present_days(self, compensation):
        attendance = AttendanceSummary(present_days=Decimal("15"))
        assert calculate_gross_from_compensation(compensation, attendance) == Decimal("8250.00")

    def test_percentages_do_not_compound(self):
        compensation = [
            basic_line("10000"),
            CompensationLine("A", "A", "ALLOWANCE", percentage=Decimal("10"), is_percentage=True),
            CompensationLine("B", "B", "ALLOWANCE", percentage=Decimal("10"), is_percentage=True),
        ]
        assert calculate_gross_from_compensation(compensation) == Decimal("12000.00")

    def test_same_input_gives_same_gross(self, compensation):
        first = calculate_gross_from_compensation(compensation)
        assert calculate_gross_from_compensation(compensation) == first

    def test_fixed_earnings_total_ignores_percentages_and_deductions(self, compensation):
        assert fixed_earnings_total(compensation) == Decimal("15000.00")

    def test_allowances_total(self, compensation):
        assert allowances_total(compensation) == Decimal("5000.00")

    def test_categorize(self, compensation):
        groups = categorize_compensation(compensation)

        assert [item["code"] for item in groups["EARNING"]] == ["BASIC"]
        assert len(groups["ALLOWANCE"]) == 2
        assert groups["DEDUCTION"][0]["amount"] == Decimal("700")


class TestBasicSalary:
    """Basic salary extraction and its fallback."""

    def test_basic_component(self):
        compensation = [basic_line("8000"), allowance_line("HOUSING", "2000")]
        assert extract_basic_salary(compensation, Decimal("10000")) == Decimal("8000.00")

    def test_basic_matched_by_name(self):
        line = CompensationLine("BP", "Monthly basic pay", "EARNING", amount=Decimal("7000"))
        assert extract_basic_salary([line], Decimal("7000")) == Decimal("7000.00")

    def test_fallback_to_half_of_gross(self):
        compensation = [CompensationLine("SAL", "Salary", "EARNING", amount=Decimal("12000"))]
        assert extract_basic_salary(compensation, Decimal("12000")) == Decimal("6000.00")

    def test_fallback_uses_given_gross_not_component_sum(self):
        compensation = [
            CompensationLine("SAL", "Salary", "EARNING", amount=Decimal("20000")),
            CompensationLine("HRA", "House Rent", "ALLOWANCE", percentage=Decimal("40"), is_percentage=True),
        ]
        # Prorated gross for 15 of 30 days
        assert extract_basic_salary(compensation, Decimal("10000")) == Decimal("5000.00")

    def test_fallback_with_configured_ratio(self):
        compensation = [CompensationLine("SAL", "Salary", "EARNING", amount=Decimal("12000"))]
        assert extract_basic_salary(compensation, Decimal("12000"), Decimal("0.6")) == Decimal("7200.00")

    @pytest.mark.parametrize("amount", [None, Decimal("0")])
    def test_basic_without_fixed_amount_falls_back(self, amount):
        line = CompensationLine(
            "BASIC", "Basic Salary", "EARNING",
            amount=amount, percentage=Decimal("50"), is_percentage=True,
        )
        assert extract_basic_salary([line], Decimal("9000")) == Decimal("4500.00")


class TestAirTicketAndOvertime:
    """Biennial ticket accrual and hourly premiums."""

    def test_economy_default_cost(self):
        employee = EmployeeProfile(air_ticket_eligible=True, ticket_segment="ECONOMY")
        assert biennial_air_ticket_accrual("UAE", employee) == Decimal("125.00")

    def test_estimated_cost_wins(self):
        employee = EmployeeProfile(ticket_segment="ECONOMY", estimated_ticket_cost=Decimal("4800"))
        assert biennial_air_ticket_accrual("UAE", employee) == Decimal("200.00")

    def test_three_decimal_accrual(self):
        employee = EmployeeProfile(ticket_segment="ECONOMY")
        assert biennial_air_ticket_accrual("OMN", employee, 3) == Decimal("16.667")

    def test_unknown_country_uses_uae_fares(self):
        assert resolve_ticket_cost("XXX", "BUSINESS") == Decimal("9000")

    def test_unknown_segment_uses_economy(self):
        assert resolve_ticket_cost("SAU", "PREMIUM") == Decimal("2000")

    def test_hourly_premium(self):
        # 10400 / 208 = 50 per hour
        assert hourly_premium_pay(Decimal("10400"), Decimal("10"), Decimal("1.25")) == Decimal("625.00")

    def test_no_hours_no_premium(self):
        assert hourly_premium_pay(Decimal("10400"), Decimal("0"), Decimal("1.25")) == Decimal("0.00")
        assert hourly_premium_pay(Decimal("10400"), Decimal("-2"), Decimal("1.25")) == Decimal("0.00")


class TestStatutoryBuildingBlocks:
    """Components, exemptions and totals."""

    def test_format_rate(self):
        assert format_rate(Decimal("12.5000")) == "12.5"
        assert format_rate(Decimal("12")) == "12"

    def test_contribution_component(self):
        component = contribution_component(Decimal("15000"), Decimal("12"), Decimal("12"), "PF")

        assert component.employee == Decimal("1800.00")
        assert component.employer == Decimal("1800.00")
        assert component.total == Decimal("3600.00")
        assert component.effective_rate == "12% / 12%"

    def test_employer_only_component(self):
        component = contribution_component(Decimal("15000"), Decimal("0"), Decimal("8.33"), "EPS")

        assert component.employee == Decimal("0.00")
        assert component.effective_rate == "8.33%"

    def test_exempt_component(self):
        component = exempt_component("GPSSA_EXEMPTION", "Expatriate", note="nationals only")

        assert component.total == Decimal("0")
        assert component.effective_rate == "Not Applicable (Expatriate)"
        assert component.to_dict()["note"] == "nationals only"

    def test_summary_totals(self):
        result = summarize_statutory({
            "a": contribution_component(Decimal("1000"), Decimal("5"), Decimal("10"), "A"),
            "b": exempt_component("B_EXEMPTION", "Expatriate"),
        })

        assert result.employee_share == Decimal("50.00")
        assert result.employer_share == Decimal("100.00")
        assert result.total == Decimal("150.00")
        assert set(result.to_dict()["breakdown"]) == {"a", "b"}


class TestGratuityMath:
    """Entitlement units and monthly accrual."""

    def test_entitlement_units(self):
        assert entitlement_days("WEEKS", Decimal("3")) == Decimal("21")
        assert entitlement_days("MONTHS", Decimal("1.0")) == Decimal("30")
        assert entitlement_days("DAYS", Decimal("15")) == Decimal("15")

    def test_monthly_gratuity(self):
        assert monthly_gratuity(Decimal("10000"), Decimal("21")) == Decimal("583.33")

    def test_monthly_gratuity_with_working_day_divisor(self):
        assert monthly_gratuity(Decimal("20000"), Decimal("15"), Decimal("26")) == Decimal("961.54")
