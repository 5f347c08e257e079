"""
HRMS Multi-Country Payroll - Payroll Router

API endpoints for multi-country payroll processing, CTC previews and
calculator diagnostics.
"""

import uuid
from typing import Any, Dict, List, Union

from fastapi import APIRouter, Depends, Path, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from app.dependencies import get_calculator_factory, get_payroll_service
from app.schemas.payroll import (
    CalculatorTestRequest,
    CompareCalculationsRequest,
    CountryPayrollRunRequest,
    CountryPayrollRunResponse,
    CountryPayrollSummaryResponse,
    CountryResponse,
    PayrollTaskQueuedResponse,
    RealTimeCTCRequest,
)
from app.services.multi_country_payroll_service import MultiCountryPayrollService
from app.services.payroll_calculators.factory import PayrollCalculatorFactory
from app.utils.error_handling import NotFoundException


router = APIRouter(prefix="/payroll", tags=["Multi-Country Payroll"])


# ===========================================
# COUNTRIES
# ===========================================

@router.get(
    "/countries",
    response_model=List[CountryResponse],
    summary="List payroll countries",
    description="Active payroll countries with their active employee headcount.",
)
async def list_countries(
    service: MultiCountryPayrollService = Depends(get_payroll_service),
):
    return await service.get_available_countries()


@router.get(
    "/countries/supported",
    response_model=List[CountryResponse],
    summary="List supported countries",
    description="Countries with a payroll calculator, independent of configuration.",
)
async def list_supported_countries(
    factory: PayrollCalculatorFactory = Depends(get_calculator_factory),
):
    return factory.get_supported_countries()


@router.get(
    "/capabilities",
    response_model=List[Dict[str, Any]],
    summary="Capabilities of every calculator",
)
async def get_all_capabilities(
    factory: PayrollCalculatorFactory = Depends(get_calculator_factory),
):
    return await factory.get_all_calculator_capabilities()


@router.get(
    "/countries/{country_code}/capabilities",
    response_model=Dict[str, Any],
    summary="Capabilities of one calculator",
)
async def get_capabilities(
    country_code: str = Path(..., min_length=3, max_length=3),
    factory: PayrollCalculatorFactory = Depends(get_calculator_factory),
):
    return await factory.get_calculator_capabilities(country_code)


@router.post(
    "/countries/{country_code}/test",
    response_model=Dict[str, Any],
    summary="Smoke test a calculator",
    description="Runs every calculator operation on sample data and reports each outcome separately.",
)
async def test_calculator(
    data: CalculatorTestRequest,
    country_code: str = Path(..., min_length=3, max_length=3),
    factory: PayrollCalculatorFactory = Depends(get_calculator_factory),
):
    result = await factory.test_calculator(country_code, data.to_test_data())
    return jsonable_encoder(result)


# ===========================================
# PREVIEWS
# ===========================================

@router.post(
    "/ctc",
    response_model=Dict[str, Any],
    summary="Real-time CTC preview",
    description="Monthly and annual cost to company for a draft compensation package. Nothing is stored.",
)
async def calculate_ctc(
    data: RealTimeCTCRequest,
    service: MultiCountryPayrollService = Depends(get_payroll_service),
):
    result = await service.calculate_real_time_ctc(
        data.employee.to_profile(),
        [line.to_line() for line in data.compensation],
    )
    return jsonable_encoder(result)


@router.post(
    "/compare",
    response_model=Dict[str, Any],
    summary="Compare an employee across countries",
)
async def compare_calculations(
    data: CompareCalculationsRequest,
    factory: PayrollCalculatorFactory = Depends(get_calculator_factory),
):
    result = await factory.compare_calculations(
        data.employee.to_profile(),
        [line.to_line() for line in data.compensation],
    )
    return jsonable_encoder(result)


# ===========================================
# PAYROLL RUNS
# ===========================================

@router.post(
    "/runs",
    response_model=Union[CountryPayrollRunResponse, PayrollTaskQueuedResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Run country payroll",
    description="Processes payroll for one country and one DRAFT period, inline or as a background task.",
)
async def run_country_payroll(
    data: CountryPayrollRunRequest,
    service: MultiCountryPayrollService = Depends(get_payroll_service),
):
    if data.run_in_background:
        from app.tasks.payroll_tasks import process_country_payroll_task

        task = process_country_payroll_task.delay(
            str(data.period_id),
            data.country_code,
            [str(e) for e in data.employee_ids] if data.employee_ids else None,
        )
        queued = PayrollTaskQueuedResponse(
            task_id=task.id,
            country_code=data.country_code,
            period_id=data.period_id,
        )
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content=jsonable_encoder(queued),
        )

    return await service.process_country_payroll(
        data.period_id,
        data.country_code,
        employee_ids=data.employee_ids,
    )


@router.get(
    "/periods/{period_id}/countries/{country_code}/summary",
    response_model=CountryPayrollSummaryResponse,
    summary="Country payroll summary for a period",
)
async def get_country_payroll_summary(
    period_id: uuid.UUID,
    country_code: str = Path(..., min_length=3, max_length=3),
    service: MultiCountryPayrollService = Depends(get_payroll_service),
):
    summary = await service.get_country_payroll_summary(period_id, country_code)
    if summary is None:
        raise NotFoundException(
            message=f"No processed payroll for {country_code.upper()} in this period",
            resource_type="PayrollSummary",
            resource_id=str(period_id),
        )
    return summary
