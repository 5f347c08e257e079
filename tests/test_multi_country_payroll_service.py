"""
HRMS Multi-Country Payroll - Payroll Orchestration Tests

Tests for country payroll runs, real-time CTC and summaries, run against
the in-memory record store from conftest.
"""

import uuid
from decimal import Decimal

import pytest

from app.services.multi_country_payroll_service import (
    MultiCountryPayrollService,
    get_gratuity_rate_days,
    get_overtime_rate,
)
from app.services.payroll_calculators.policies import PolicyRule
from app.services.payroll_calculators.types import AttendanceSummary, CompensationLine, CountryInfo
from app.utils.error_handling import (
    NoEligibleEmployeesException,
    PeriodNotDraftException,
    PeriodNotFoundException,
    UnknownCountryException,
    UnsupportedCountryException,
)
from tests.conftest import (
    FakePayrollRepository,
    allowance_line,
    basic_line,
    country_info,
    make_employee,
    make_period,
    today,
)


class TestCountryPayrollRun:
    """End-to-end runs over the fake record store."""

    @pytest.mark.asyncio
    async def test_india_run(self, build_service, statutory_service, air_ticket_service):
        period = make_period()
        employee = make_employee("IND", service_days=2200)
        repository = FakePayrollRepository(
            period=period,
            country=country_info("IND"),
            employees=[employee],
            compensation={employee.id: [basic_line("20000")]},
        )

        result = await build_service(repository).process_country_payroll(period.id, "IND")

        assert result["status"] == "COMPLETED"
        assert result["total_employees"] == 1
        assert result["processed_employees"] == 1
        assert result["failed_employees"] == 0
        assert result["totals"] == {
            "gross_salary": Decimal("20000.00"),
            "net_salary": Decimal("17920.00"),
            "statutory_deductions": Decimal("2080.00"),
            "employer_contributions": Decimal("3774.50"),
            "gratuity_accrual": Decimal("961.54"),
            "air_ticket_accrual": Decimal("0"),
        }

        detail = repository.details[0]
        assert detail.run_id == result["run_id"]
        assert detail.gross_salary == Decimal("20000.00")
        assert detail.total_deductions == Decimal("2080.00")
        assert detail.net_salary == Decimal("17920.00")
        assert detail.social_security_employer == Decimal("3774.50")
        assert detail.pension_employer == Decimal("1249.50")
        assert detail.overtime_rate == Decimal("2.0")

        accrual = repository.gratuity_accruals[0]
        assert (accrual.accrual_year, accrual.accrual_month) == (2026, 1)
        assert (accrual.service_years, accrual.service_months) == (6, 0)
        assert accrual.gratuity_rate_days == Decimal("15")
        assert accrual.monthly_accrual_amount == Decimal("961.54")

        run = repository.runs[result["run_id"]]
        assert run["run_name"] == "India Payroll - January 2026"
        assert run["status"] == "COMPLETED"
        assert run["processed"] == 1
        assert repository.commits == 1
        assert repository.policy_loads == ["IND"]

        statutory_service.create_statutory_records.assert_awaited_once()
        args = statutory_service.create_statutory_records.await_args.args
        assert args[:3] == (employee.id, period.id, "IND")
        assert args[4] == Decimal("20000.00")
        air_ticket_service.create_monthly_accrual.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_employee_does_not_stop_the_run(self, build_service):
        period = make_period()
        employees = [make_employee("UAE", code=f"EMP00{i}") for i in range(1, 4)]
        compensation = {e.id: [basic_line("10000")] for e in employees}
        compensation[employees[1].id] = RuntimeError("compensation missing")
        repository = FakePayrollRepository(
            period=period, country=country_info("UAE"), employees=employees, compensation=compensation,
        )

        result = await build_service(repository).process_country_payroll(period.id, "UAE")

        assert result["status"] == "COMPLETED_WITH_ERRORS"
        assert result["processed_employees"] == 2
        assert result["failed_employees"] == 1
        assert result["errors"] == [{
            "employee_id": employees[1].id,
            "employee_code": "EMP002",
            "error": "compensation missing",
        }]
        assert result["totals"]["gross_salary"] == Decimal("20000.00")
        assert len(repository.details) == 2
        assert repository.runs[result["run_id"]]["failed"] == 1

    @pytest.mark.asyncio
    async def test_failure_after_detail_rolls_back_that_employee(self, build_service, statutory_service):
        period = make_period()
        employees = [make_employee("IND", code="EMP001"), make_employee("IND", code="EMP002")]
        repository = FakePayrollRepository(
            period=period,
            country=country_info("IND"),
            employees=employees,
            compensation={e.id: [basic_line("20000")] for e in employees},
        )
        statutory_service.create_statutory_records.side_effect = [
            [uuid.uuid4()],
            RuntimeError("statutory store unavailable"),
        ]

        result = await build_service(repository).process_country_payroll(period.id, "IND")

        assert result["processed_employees"] == 1
        assert [d.employee_id for d in repository.details] == [employees[0].id]
        assert repository.rolled_back_scopes == 1

    @pytest.mark.asyncio
    async def test_country_code_is_case_insensitive(self, build_service):
        period = make_period()
        employee = make_employee("UAE")
        repository = FakePayrollRepository(
            period=period,
            country=country_info("UAE"),
            employees=[employee],
            compensation={employee.id: [basic_line("10000")]},
        )

        result = await build_service(repository).process_country_payroll(period.id, "uae")

        assert result["country_code"] == "UAE"
        assert result["processed_employees"] == 1

    @pytest.mark.asyncio
    async def test_attendance_and_overtime(self, build_service):
        period = make_period()
        employee = make_employee("UAE")
        repository = FakePayrollRepository(
            period=period,
            country=country_info("UAE"),
            employees=[employee],
            compensation={employee.id: [basic_line("10400")]},
            attendance={employee.id: AttendanceSummary(
                present_days=Decimal("15"), absent_days=Decimal("15"), overtime_hours=Decimal("10"),
            )},
        )

        result = await build_service(repository).process_country_payroll(period.id, "UAE")
        detail = repository.details[0]

        # Basic stays at full month for overtime and gratuity
        assert detail.basic_salary == Decimal("10400.00")
        assert detail.overtime_amount == Decimal("625.00")
        assert detail.overtime_rate == Decimal("1.25")
        assert detail.gross_salary == Decimal("5825.00")
        assert detail.net_salary == Decimal("5825.00")
        assert result["processing_details"][0]["overtime_pay"] == Decimal("625.00")

    @pytest.mark.asyncio
    async def test_basic_fallback_follows_prorated_gross(self, build_service):
        period = make_period()
        employee = make_employee("IND")
        repository = FakePayrollRepository(
            period=period,
            country=country_info("IND"),
            employees=[employee],
            compensation={employee.id: [CompensationLine("SAL", "Salary", "EARNING", amount=Decimal("20000"))]},
            attendance={employee.id: AttendanceSummary(present_days=Decimal("15"), absent_days=Decimal("15"))},
        )

        await build_service(repository).process_country_payroll(period.id, "IND")
        detail = repository.details[0]

        assert detail.gross_salary == Decimal("10000.00")
        assert detail.basic_salary == Decimal("5000.00")
        # PF 600 on basic, ESI 75 on gross, no professional tax at 10,000
        assert detail.total_deductions == Decimal("675.00")
        assert detail.net_salary == Decimal("9325.00")

    @pytest.mark.asyncio
    async def test_air_ticket_accrual_recorded(self, build_service, air_ticket_service):
        period = make_period()
        employee = make_employee("UAE", air_ticket_eligible=True, ticket_segment="ECONOMY")
        repository = FakePayrollRepository(
            period=period,
            country=country_info("UAE"),
            employees=[employee],
            compensation={employee.id: [basic_line("10000")]},
        )

        result = await build_service(repository).process_country_payroll(period.id, "UAE")

        air_ticket_service.create_monthly_accrual.assert_awaited_once_with(
            employee.id, 2026, 1, Decimal("125.00"), "ECONOMY", Decimal("0"),
        )
        assert result["totals"]["air_ticket_accrual"] == Decimal("125.00")

    @pytest.mark.asyncio
    async def test_saudi_gratuity_uses_allowances(self, build_service):
        period = make_period()
        employee = make_employee("SAU")
        repository = FakePayrollRepository(
            period=period,
            country=country_info("SAU"),
            employees=[employee],
            compensation={employee.id: [basic_line("6000"), allowance_line("HOUSING", "1500")]},
        )

        await build_service(repository).process_country_payroll(period.id, "SAU")

        accrual = repository.gratuity_accruals[0]
        assert accrual.monthly_accrual_amount == Decimal("312.50")
        assert accrual.gratuity_rate_days == Decimal("15")

    @pytest.mark.asyncio
    async def test_policy_table_overrides_rate(self, build_service):
        period = make_period()
        employee = make_employee("UAE", nationality="EMIRATI", employee_type="LOCAL")
        repository = FakePayrollRepository(
            period=period,
            country=country_info("UAE"),
            employees=[employee],
            compensation={employee.id: [basic_line("10000")]},
            policies=[PolicyRule(
                "SOCIAL_SECURITY", "GPSSA_EMPLOYEE", employee_rate=Decimal("6"), cap_amount=Decimal("50000"),
            )],
        )

        result = await build_service(repository).process_country_payroll(period.id, "UAE")

        assert result["totals"]["statutory_deductions"] == Decimal("600.00")
        assert result["totals"]["employer_contributions"] == Decimal("1250.00")

    @pytest.mark.asyncio
    async def test_employee_filter(self, build_service):
        period = make_period()
        employees = [make_employee("EGY", code="EMP001"), make_employee("EGY", code="EMP002")]
        repository = FakePayrollRepository(
            period=period,
            country=country_info("EGY"),
            employees=employees,
            compensation={e.id: [basic_line("8000")] for e in employees},
        )

        result = await build_service(repository).process_country_payroll(
            period.id, "EGY", employee_ids=[employees[1].id],
        )

        assert result["total_employees"] == 1
        assert result["processing_details"][0]["employee_code"] == "EMP002"

    @pytest.mark.asyncio
    async def test_processed_employees_are_not_run_twice(self, build_service):
        period = make_period()
        employee = make_employee("QAT")
        repository = FakePayrollRepository(
            period=period,
            country=country_info("QAT"),
            employees=[employee],
            compensation={employee.id: [basic_line("9000")]},
        )
        service = build_service(repository)

        await service.process_country_payroll(period.id, "QAT")

        with pytest.raises(NoEligibleEmployeesException):
            await service.process_country_payroll(period.id, "QAT")
        assert len(repository.runs) == 1

    @pytest.mark.asyncio
    async def test_default_factory_reads_policy_table(self, air_ticket_service, statutory_service):
        period = make_period()
        employee = make_employee("OMN")
        repository = FakePayrollRepository(
            period=period,
            country=country_info("OMN"),
            employees=[employee],
            compensation={employee.id: [basic_line("1000")]},
        )
        service = MultiCountryPayrollService(repository, air_ticket_service, statutory_service, today=today)

        result = await service.process_country_payroll(period.id, "OMN")

        assert repository.policy_loads == ["OMN"]
        assert result["totals"]["gratuity_accrual"] == Decimal("83.333")

    @pytest.mark.asyncio
    async def test_policy_table_failure_falls_back_to_defaults(self, air_ticket_service, statutory_service):
        period = make_period()
        employee = make_employee("IND")
        repository = FakePayrollRepository(
            period=period,
            country=country_info("IND"),
            employees=[employee],
            compensation={employee.id: [basic_line("20000")]},
            policies=RuntimeError("relation hrms_payroll_country_policies does not exist"),
        )
        service = MultiCountryPayrollService(repository, air_ticket_service, statutory_service, today=today)

        result = await service.process_country_payroll(period.id, "IND")

        assert repository.policy_loads == ["IND"]
        assert result["status"] == "COMPLETED"
        assert repository.runs[result["run_id"]]["status"] == "COMPLETED"
        assert repository.details[0].social_security_employee == Decimal("2080.00")
        assert repository.details[0].social_security_employer == Decimal("3774.50")
        assert repository.commits == 1


class TestRunPreconditions:
    """Precondition failures raise before a run exists."""

    @pytest.mark.asyncio
    async def test_period_not_found(self, build_service):
        repository = FakePayrollRepository(country=country_info("IND"))

        with pytest.raises(PeriodNotFoundException):
            await build_service(repository).process_country_payroll(uuid.uuid4(), "IND")
        assert repository.runs == {}

    @pytest.mark.asyncio
    async def test_period_must_be_draft(self, build_service):
        period = make_period(status="APPROVED")
        repository = FakePayrollRepository(period=period, country=country_info("IND"))

        with pytest.raises(PeriodNotDraftException) as exc_info:
            await build_service(repository).process_country_payroll(period.id, "IND")

        assert exc_info.value.status_code == 422
        assert exc_info.value.details["status"] == "APPROVED"
        assert repository.runs == {}

    @pytest.mark.asyncio
    async def test_inactive_country(self, build_service):
        period = make_period()
        repository = FakePayrollRepository(period=period, country=None)

        with pytest.raises(UnknownCountryException):
            await build_service(repository).process_country_payroll(period.id, "IND")

    @pytest.mark.asyncio
    async def test_no_eligible_employees(self, build_service):
        period = make_period()
        repository = FakePayrollRepository(period=period, country=country_info("BHR"))

        with pytest.raises(NoEligibleEmployeesException):
            await build_service(repository).process_country_payroll(period.id, "BHR")
        assert repository.runs == {}

    @pytest.mark.asyncio
    async def test_active_country_without_calculator(self, build_service):
        period = make_period()
        country = CountryInfo("KWT", "Kuwait", "KWD", "KD", 3, True)
        employee = make_employee("KWT")
        repository = FakePayrollRepository(period=period, country=country, employees=[employee])

        with pytest.raises(UnsupportedCountryException):
            await build_service(repository).process_country_payroll(period.id, "KWT")
        assert repository.runs == {}


class TestRealTimeCTC:
    """Cost-to-company preview."""

    @pytest.mark.asyncio
    async def test_uae_expatriate(self, build_service):
        repository = FakePayrollRepository()
        employee = make_employee("uae", service_days=1100)

        ctc = await build_service(repository).calculate_real_time_ctc(
            employee, [basic_line("10000"), allowance_line("HOUSING", "5000")],
        )

        assert ctc["country_code"] == "UAE"
        assert ctc["currency"] == {"code": "AED", "symbol": "د.إ", "decimals": 2}
        assert ctc["earnings"]["gross"] == Decimal("15000.00")
        assert ctc["earnings"]["basic"] == Decimal("10000.00")
        assert ctc["earnings"]["allowances"] == Decimal("5000.00")
        assert ctc["deductions"]["net"] == Decimal("15000.00")
        assert ctc["employer_costs"]["gratuity"] == Decimal("583.33")
        assert ctc["totals"]["monthly_ctc"] == Decimal("15583.33")
        assert ctc["totals"]["annual_ctc"] == Decimal("186999.96")
        assert ctc["service_info"]["service_years"] == 3
        assert repository.details == []

    @pytest.mark.asyncio
    async def test_percentage_components_are_ignored(self, build_service, statutory_service):
        employee = make_employee("IND")
        compensation = [
            basic_line("20000"),
            CompensationLine("HRA", "House Rent", "ALLOWANCE", percentage=Decimal("40"), is_percentage=True),
        ]

        ctc = await build_service(FakePayrollRepository()).calculate_real_time_ctc(employee, compensation)

        assert ctc["totals"]["monthly_gross"] == Decimal("20000.00")
        assert ctc["deductions"]["employee"] == Decimal("2080.00")
        assert ctc["employer_costs"]["statutory"] == Decimal("3774.50")
        assert set(ctc["deductions"]["statutory"]) == {"pf", "esi", "eps", "edli", "professional_tax"}
        statutory_service.create_statutory_records.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_basic_fallback_uses_fixed_gross(self, build_service):
        employee = make_employee("IND")
        compensation = [
            CompensationLine("SAL", "Salary", "EARNING", amount=Decimal("20000")),
            CompensationLine("HRA", "House Rent", "ALLOWANCE", percentage=Decimal("40"), is_percentage=True),
        ]

        ctc = await build_service(FakePayrollRepository()).calculate_real_time_ctc(employee, compensation)

        assert ctc["earnings"]["gross"] == Decimal("20000.00")
        assert ctc["earnings"]["basic"] == Decimal("10000.00")
        # PF 1200 + ESI 150 + PT 130
        assert ctc["deductions"]["employee"] == Decimal("1480.00")
        # PF 1200 + ESI 650 + EPS 833 + EDLI 50
        assert ctc["employer_costs"]["statutory"] == Decimal("2733.00")

    @pytest.mark.asyncio
    async def test_unsupported_country(self, build_service):
        with pytest.raises(UnsupportedCountryException):
            await build_service(FakePayrollRepository()).calculate_real_time_ctc(
                make_employee("FRA"), [basic_line("1000")],
            )


class TestPayrollSummary:
    """Per-country totals for a period."""

    @pytest.mark.asyncio
    async def test_summary_after_run(self, build_service):
        period = make_period()
        employee = make_employee("IND", service_days=2200)
        repository = FakePayrollRepository(
            period=period,
            country=country_info("IND"),
            employees=[employee],
            compensation={employee.id: [basic_line("20000")]},
        )
        service = build_service(repository)
        await service.process_country_payroll(period.id, "IND")

        summary = await service.get_country_payroll_summary(period.id, "ind")

        assert summary["country_code"] == "IND"
        assert summary["currency_code"] == "INR"
        assert summary["employee_count"] == 1
        assert summary["total_net_salary"] == Decimal("17920.00")

    @pytest.mark.asyncio
    async def test_summary_without_details(self, build_service):
        assert await build_service(FakePayrollRepository()).get_country_payroll_summary(uuid.uuid4(), "UAE") is None

    @pytest.mark.asyncio
    async def test_available_countries(self, build_service):
        repository = FakePayrollRepository(country=country_info("OMN"), employees=[make_employee("OMN")])

        countries = await build_service(repository).get_available_countries()

        assert countries[0]["code"] == "OMN"
        assert countries[0]["employee_count"] == 1


class TestCountryRateTables:
    """Rates recorded on details and accrual rows."""

    def test_overtime_rates(self):
        assert get_overtime_rate("IND") == Decimal("2.0")
        assert get_overtime_rate("EGY") == Decimal("1.35")
        assert get_overtime_rate("XXX") == Decimal("1.5")

    @pytest.mark.parametrize("country, months, days", [
        ("IND", 12, 15),
        ("UAE", 60, 21),
        ("UAE", 61, 30),
        ("SAU", 72, 30),
        ("BHR", 24, 0),
        ("BHR", 48, 15),
        ("QAT", 12, 21),
        ("EGY", 12, 30),
    ])
    def test_gratuity_rate_days(self, country, months, days):
        assert get_gratuity_rate_days(country, months) == days
