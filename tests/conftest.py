"""
HRMS Multi-Country Payroll - Test Configuration

Pytest fixtures and configuration.

The payroll orchestrator is exercised against an in-memory record store
that mirrors SqlAlchemyPayrollRepository, including the per-employee
savepoint rollback.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator, Dict, List, Optional, Sequence
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.dependencies import get_payroll_service
from app.services.multi_country_payroll_service import MultiCountryPayrollService
from app.services.payroll_calculators.factory import PayrollCalculatorFactory, SUPPORTED_COUNTRIES
from app.services.payroll_calculators.types import (
    AttendanceSummary,
    CompensationLine,
    CountryCode,
    CountryInfo,
    EmployeeProfile,
    PeriodInfo,
)
from app.services.payroll_repository import GratuityAccrualRecord, PayrollDetailRecord, RunTotals
from main import app


# Fixed as-of date so service months are deterministic
TODAY = date(2026, 1, 31)


def today() -> date:
    return TODAY


# ===========================================
# BUILDERS
# ===========================================

def basic_line(amount: str) -> CompensationLine:
    return CompensationLine("BASIC", "Basic Salary", "EARNING", amount=Decimal(amount))


def allowance_line(code: str, amount: str) -> CompensationLine:
    return CompensationLine(code, code.title() + " Allowance", "ALLOWANCE", amount=Decimal(amount))


def make_employee(
    country_code: str,
    code: str = "EMP001",
    service_days: int = 400,
    **fields,
) -> EmployeeProfile:
    """Employee who joined `service_days` before TODAY."""
    return EmployeeProfile(
        id=uuid.uuid4(),
        code=code,
        country_code=country_code,
        joining_date=TODAY - timedelta(days=service_days),
        **fields,
    )


def make_period(status: str = "DRAFT") -> PeriodInfo:
    return PeriodInfo(
        id=uuid.uuid4(),
        name="January 2026",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 1, 31),
        pay_date=date(2026, 2, 1),
        status=status,
    )


def country_info(code: str) -> CountryInfo:
    return SUPPORTED_COUNTRIES[CountryCode(code)]


# ===========================================
# IN-MEMORY RECORD STORE
# ===========================================

class FakePayrollRepository:
    """
    PayrollRepository kept in dictionaries.

    A compensation entry that is an exception instance is raised when
    read, which is how tests make a single employee fail.
    """

    def __init__(
        self,
        period: Optional[PeriodInfo] = None,
        country: Optional[CountryInfo] = None,
        employees: Sequence[EmployeeProfile] = (),
        compensation: Optional[Dict[uuid.UUID, object]] = None,
        attendance: Optional[Dict[uuid.UUID, AttendanceSummary]] = None,
        policies: Optional[object] = None,
    ):
        self.period = period
        self.country = country
        self.employees = list(employees)
        self.compensation = compensation or {}
        self.attendance = attendance or {}
        self.policies = policies or []
        self.runs: Dict[uuid.UUID, dict] = {}
        self.details: List[PayrollDetailRecord] = []
        self.gratuity_accruals: List[GratuityAccrualRecord] = []
        self.rolled_back_scopes = 0
        self.commits = 0
        self.policy_loads: List[str] = []

    async def get_period(self, period_id):
        if self.period is not None and self.period.id == period_id:
            return self.period
        return None

    async def get_active_country(self, country_code):
        if self.country is not None and self.country.code == country_code:
            return self.country
        return None

    async def get_eligible_employees(self, period_id, country_code, employee_ids=None):
        processed = {detail.employee_id for detail in self.details}
        return [
            employee for employee in self.employees
            if employee.country_code == country_code
            and employee.id not in processed
            and (employee_ids is None or employee.id in employee_ids)
        ]

    async def get_employee_compensation(self, employee_id, as_of):
        lines = self.compensation.get(employee_id, [])
        if isinstance(lines, Exception):
            raise lines
        return list(lines)

    async def get_attendance_summary(self, employee_id, start_date, end_date):
        return self.attendance.get(employee_id, AttendanceSummary())

    async def load_country_policies(self, country_code):
        self.policy_loads.append(country_code)
        if isinstance(self.policies, Exception):
            raise self.policies
        return list(self.policies)

    async def create_run(self, period, country, total_employees, created_by=None):
        run_id = uuid.uuid4()
        self.runs[run_id] = {
            "run_name": f"{country.name} Payroll - {period.name}",
            "total_employees": total_employees,
            "status": "PROCESSING",
            "created_by": created_by,
        }
        return run_id

    async def update_run_totals(self, run_id, processed, failed, totals: RunTotals):
        self.runs[run_id].update(processed=processed, failed=failed, totals=totals.to_dict())

    async def update_run_status(self, run_id, status):
        self.runs[run_id]["status"] = status.value

    async def create_detail(self, record):
        self.details.append(record)
        return uuid.uuid4()

    async def create_gratuity_accrual(self, record):
        self.gratuity_accruals.append(record)
        return uuid.uuid4()

    @asynccontextmanager
    async def employee_scope(self):
        details, accruals = len(self.details), len(self.gratuity_accruals)
        try:
            yield
        except Exception:
            del self.details[details:]
            del self.gratuity_accruals[accruals:]
            self.rolled_back_scopes += 1
            raise

    async def commit(self):
        self.commits += 1

    async def get_country_payroll_summary(self, period_id, country_code):
        details = [
            d for d in self.details
            if d.period_id == period_id and d.payroll_country == country_code
        ]
        if not details:
            return None
        total_gross = sum((d.gross_salary for d in details), Decimal("0"))
        return {
            "employee_count": len(details),
            "total_gross_salary": total_gross,
            "total_net_salary": sum((d.net_salary for d in details), Decimal("0")),
            "total_deductions": sum((d.total_deductions for d in details), Decimal("0")),
            "total_overtime": sum((d.overtime_amount for d in details), Decimal("0")),
            "total_employer_contributions": sum((d.social_security_employer for d in details), Decimal("0")),
            "total_gratuity_accrual": sum((d.gratuity_accrual for d in details), Decimal("0")),
            "total_air_ticket_accrual": sum((d.air_ticket_accrual for d in details), Decimal("0")),
            "average_gross_salary": total_gross / len(details),
        }

    async def get_available_countries(self):
        countries = [self.country] if self.country is not None else []
        return [
            {**country.to_dict(), "employee_count": sum(1 for e in self.employees if e.country_code == country.code)}
            for country in countries
        ]


# ===========================================
# SERVICE FIXTURES
# ===========================================

@pytest.fixture
def air_ticket_service() -> AsyncMock:
    service = AsyncMock()
    service.create_monthly_accrual.return_value = uuid.uuid4()
    return service


@pytest.fixture
def statutory_service() -> AsyncMock:
    service = AsyncMock()
    service.create_statutory_records.return_value = [uuid.uuid4()]
    return service


@pytest.fixture
def build_service(air_ticket_service, statutory_service):
    """Service over a fake repository, with the as-of date pinned to TODAY."""

    def _build(repository: FakePayrollRepository, factory: Optional[PayrollCalculatorFactory] = None):
        return MultiCountryPayrollService(
            repository=repository,
            air_ticket_service=air_ticket_service,
            statutory_service=statutory_service,
            factory=factory or PayrollCalculatorFactory(policy_source=repository, today=today),
            today=today,
        )

    return _build


# ===========================================
# API CLIENT
# ===========================================

@pytest.fixture
def api_repository() -> FakePayrollRepository:
    """Repository behind the API client; tests fill it in before calling."""
    return FakePayrollRepository()


@pytest_asyncio.fixture(scope="function")
async def client(api_repository, build_service) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with the payroll service override."""

    async def override_get_payroll_service():
        return build_service(api_repository)

    app.dependency_overrides[get_payroll_service] = override_get_payroll_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
