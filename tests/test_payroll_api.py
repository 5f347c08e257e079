"""
HRMS Multi-Country Payroll - API Endpoint Tests

Integration tests for the payroll router and the error response format.
"""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from httpx import AsyncClient

from tests.conftest import basic_line, country_info, make_employee, make_period


def amount(value) -> Decimal:
    """JSON money values arrive as numbers or strings depending on the endpoint."""
    return Decimal(str(value))


CTC_PAYLOAD = {
    "employee": {
        "country_code": "uae",
        "joining_date": "2023-01-01",
        "employee_type": "EXPATRIATE",
        "air_ticket_eligible": True,
        "ticket_segment": "ECONOMY",
    },
    "compensation": [
        {"component_code": "BASIC", "component_name": "Basic Salary", "component_type": "EARNING", "amount": "10000"},
        {"component_code": "HOUSING", "component_name": "Housing", "component_type": "ALLOWANCE", "amount": "5000"},
    ],
}


@pytest.fixture
def seeded_repository(api_repository):
    """One India employee with a DRAFT January period."""
    employee = make_employee("IND", service_days=2200)
    api_repository.period = make_period()
    api_repository.country = country_info("IND")
    api_repository.employees = [employee]
    api_repository.compensation = {employee.id: [basic_line("20000")]}
    return api_repository


class TestHealthEndpoints:
    """Test basic application endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_api_info(self, client: AsyncClient):
        response = await client.get("/api")

        assert response.status_code == 200
        assert response.json()["status"] == "running"


class TestCountryEndpoints:
    """Country listing and calculator introspection."""

    @pytest.mark.asyncio
    async def test_supported_countries(self, client: AsyncClient):
        response = await client.get("/api/v1/payroll/countries/supported")

        assert response.status_code == 200
        codes = {c["code"] for c in response.json()}
        assert codes == {"IND", "UAE", "SAU", "OMN", "BHR", "QAT", "EGY"}

    @pytest.mark.asyncio
    async def test_configured_countries(self, client: AsyncClient, seeded_repository):
        response = await client.get("/api/v1/payroll/countries")

        assert response.status_code == 200
        assert response.json() == [{
            "code": "IND",
            "name": "India",
            "currency": "INR",
            "currency_symbol": "₹",
            "currency_decimals": 2,
            "wps_enabled": False,
            "employee_count": 1,
        }]

    @pytest.mark.asyncio
    async def test_capabilities(self, client: AsyncClient):
        response = await client.get("/api/v1/payroll/countries/omn/capabilities")

        assert response.status_code == 200
        assert response.json()["country_code"] == "OMN"
        assert response.json()["supports_air_ticket"] is True

    @pytest.mark.asyncio
    async def test_all_capabilities(self, client: AsyncClient):
        response = await client.get("/api/v1/payroll/capabilities")

        assert response.status_code == 200
        assert len(response.json()) == 7

    @pytest.mark.asyncio
    async def test_unsupported_country(self, client: AsyncClient):
        response = await client.get("/api/v1/payroll/countries/USA/capabilities")

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "UNSUPPORTED_COUNTRY"
        assert "IND" in detail["details"]["supported_countries"]

    @pytest.mark.asyncio
    async def test_calculator_smoke_test(self, client: AsyncClient):
        response = await client.post("/api/v1/payroll/countries/EGY/test", json={"gross_salary": "10000"})

        assert response.status_code == 200
        calculations = response.json()["calculations"]
        assert calculations["statutory_deductions"]["success"] is True
        assert amount(calculations["statutory_deductions"]["result"]["employee"]) == Decimal("1400")


class TestPreviewEndpoints:
    """CTC preview and cross-country comparison."""

    @pytest.mark.asyncio
    async def test_ctc(self, client: AsyncClient, seeded_repository):
        response = await client.post("/api/v1/payroll/ctc", json=CTC_PAYLOAD)

        assert response.status_code == 200
        data = response.json()
        assert data["country_code"] == "UAE"
        assert amount(data["earnings"]["gross"]) == Decimal("15000")
        assert amount(data["employer_costs"]["air_ticket"]) == Decimal("125")
        assert seeded_repository.details == []

    @pytest.mark.asyncio
    async def test_ctc_requires_compensation(self, client: AsyncClient):
        payload = {**CTC_PAYLOAD, "compensation": []}

        response = await client.post("/api/v1/payroll/ctc", json=payload)

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_ctc_unsupported_country(self, client: AsyncClient):
        payload = {**CTC_PAYLOAD, "employee": {**CTC_PAYLOAD["employee"], "country_code": "GBR"}}

        response = await client.post("/api/v1/payroll/ctc", json=payload)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_compare(self, client: AsyncClient):
        response = await client.post("/api/v1/payroll/compare", json=CTC_PAYLOAD)

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 7
        assert amount(data["SAU"]["employee_deductions"]) == Decimal("300")


class TestPayrollRunEndpoints:
    """Inline and background country payroll runs."""

    @pytest.mark.asyncio
    async def test_inline_run(self, client: AsyncClient, seeded_repository):
        response = await client.post("/api/v1/payroll/runs", json={
            "period_id": str(seeded_repository.period.id),
            "country_code": "ind",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "COMPLETED"
        assert data["processed_employees"] == 1
        assert amount(data["totals"]["net_salary"]) == Decimal("17920")
        assert len(seeded_repository.details) == 1

    @pytest.mark.asyncio
    async def test_background_run(self, client: AsyncClient, seeded_repository):
        from app.tasks.payroll_tasks import process_country_payroll_task

        period_id = str(seeded_repository.period.id)
        with patch.object(process_country_payroll_task, "delay", MagicMock(return_value=MagicMock(id="task-1"))) as delay:
            response = await client.post("/api/v1/payroll/runs", json={
                "period_id": period_id,
                "country_code": "IND",
                "run_in_background": True,
            })

        assert response.status_code == 202
        assert response.json() == {
            "task_id": "task-1",
            "status": "QUEUED",
            "country_code": "IND",
            "period_id": period_id,
        }
        delay.assert_called_once_with(period_id, "IND", None)
        assert seeded_repository.details == []

    @pytest.mark.asyncio
    async def test_missing_period(self, client: AsyncClient, seeded_repository):
        response = await client.post("/api/v1/payroll/runs", json={
            "period_id": "00000000-0000-0000-0000-000000000000",
            "country_code": "IND",
        })

        assert response.status_code == 404
        detail = response.json()["detail"]
        assert detail["code"] == "PERIOD_NOT_FOUND"
        assert "timestamp" in detail

    @pytest.mark.asyncio
    async def test_period_not_draft(self, client: AsyncClient, seeded_repository):
        seeded_repository.period = make_period(status="PROCESSED")

        response = await client.post("/api/v1/payroll/runs", json={
            "period_id": str(seeded_repository.period.id),
            "country_code": "IND",
        })

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "PERIOD_NOT_DRAFT"


class TestSummaryEndpoint:
    """Per-country period summary."""

    @pytest.mark.asyncio
    async def test_summary_after_run(self, client: AsyncClient, seeded_repository):
        period_id = str(seeded_repository.period.id)
        await client.post("/api/v1/payroll/runs", json={"period_id": period_id, "country_code": "IND"})

        response = await client.get(f"/api/v1/payroll/periods/{period_id}/countries/IND/summary")

        assert response.status_code == 200
        data = response.json()
        assert data["employee_count"] == 1
        assert data["currency_code"] == "INR"
        assert amount(data["total_gross_salary"]) == Decimal("20000")

    @pytest.mark.asyncio
    async def test_summary_not_found(self, client: AsyncClient, seeded_repository):
        period_id = str(seeded_repository.period.id)

        response = await client.get(f"/api/v1/payroll/periods/{period_id}/countries/IND/summary")

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"
