"""
HRMS Multi-Country Payroll - Schemas Package

Pydantic schemas for request/response validation.
"""

from app.schemas.payroll import (
    CalculatorTestRequest,
    CompareCalculationsRequest,
    CompensationLineSchema,
    CountryPayrollRunRequest,
    CountryPayrollRunResponse,
    CountryPayrollSummaryResponse,
    CountryResponse,
    EmployeeDraftSchema,
    PayrollTaskQueuedResponse,
    RealTimeCTCRequest,
)

__all__ = [
    "CalculatorTestRequest",
    "CompareCalculationsRequest",
    "CompensationLineSchema",
    "CountryPayrollRunRequest",
    "CountryPayrollRunResponse",
    "CountryPayrollSummaryResponse",
    "CountryResponse",
    "EmployeeDraftSchema",
    "PayrollTaskQueuedResponse",
    "RealTimeCTCRequest",
]
