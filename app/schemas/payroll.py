"""
HRMS Multi-Country Payroll - Payroll Schemas

Pydantic schemas for the multi-country payroll API.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, List, Dict, Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.services.payroll_calculators.types import CompensationLine, EmployeeProfile


# ===========================================
# ENUMS AS LITERALS
# ===========================================

ComponentTypeEnum = Literal["EARNING", "ALLOWANCE", "DEDUCTION"]
EmployeeTypeEnum = Literal["LOCAL", "EXPATRIATE"]
TicketSegmentEnum = Literal["ECONOMY", "BUSINESS", "FIRST"]


# ===========================================
# COMPENSATION AND EMPLOYEE DRAFTS
# ===========================================

class CompensationLineSchema(BaseModel):
    """One pay component of a draft compensation package."""
    component_code: str = Field(..., min_length=1, max_length=30)
    component_name: str = Field(..., min_length=1, max_length=100)
    component_type: ComponentTypeEnum
    amount: Optional[Decimal] = Field(None, ge=0)
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    is_percentage: bool = False
    calculation_base: Optional[str] = None

    def to_line(self) -> CompensationLine:
        return CompensationLine(**self.model_dump())


class EmployeeDraftSchema(BaseModel):
    """Employee attributes needed to preview payroll figures."""
    country_code: str = Field(..., min_length=3, max_length=3)
    joining_date: Optional[date] = None
    nationality: Optional[str] = Field(None, max_length=50)
    employee_type: EmployeeTypeEnum = "EXPATRIATE"
    air_ticket_eligible: bool = False
    ticket_segment: Optional[TicketSegmentEnum] = None
    estimated_ticket_cost: Optional[Decimal] = Field(None, ge=0)

    @field_validator("country_code", "nationality")
    @classmethod
    def upper_case(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v

    def to_profile(self) -> EmployeeProfile:
        return EmployeeProfile(**self.model_dump())


class RealTimeCTCRequest(BaseModel):
    """Real-time CTC preview request."""
    employee: EmployeeDraftSchema
    compensation: List[CompensationLineSchema] = Field(..., min_length=1)


class CompareCalculationsRequest(BaseModel):
    """Run one draft employee through every country calculator."""
    employee: EmployeeDraftSchema
    compensation: List[CompensationLineSchema] = Field(..., min_length=1)


class CalculatorTestRequest(BaseModel):
    """Sample data for a calculator smoke test."""
    gross_salary: Decimal = Decimal("5000")
    basic_salary: Decimal = Decimal("3000")
    service_months: int = Field(12, ge=0)
    overtime_hours: Decimal = Decimal("10")
    nationality: Optional[str] = None
    employee_type: EmployeeTypeEnum = "EXPATRIATE"
    employee: Optional[Dict[str, Any]] = None
    compensation: List[CompensationLineSchema] = []

    def to_test_data(self) -> Dict[str, Any]:
        data = self.model_dump(exclude={"compensation"})
        data["compensation"] = [line.to_line() for line in self.compensation]
        return data


# ===========================================
# PAYROLL RUN
# ===========================================

class CountryPayrollRunRequest(BaseModel):
    """Start a country payroll run."""
    period_id: UUID
    country_code: str = Field(..., min_length=3, max_length=3)
    employee_ids: Optional[List[UUID]] = None
    run_in_background: bool = False

    @field_validator("country_code")
    @classmethod
    def upper_case(cls, v: str) -> str:
        return v.strip().upper()


class PayrollRunTotalsSchema(BaseModel):
    gross_salary: Decimal
    net_salary: Decimal
    statutory_deductions: Decimal
    employer_contributions: Decimal
    gratuity_accrual: Decimal
    air_ticket_accrual: Decimal


class PayrollRunErrorSchema(BaseModel):
    employee_id: UUID
    employee_code: str
    error: str


class CountryPayrollRunResponse(BaseModel):
    """Outcome of a country payroll run."""
    country_code: str
    run_id: UUID
    period_id: UUID
    status: str
    total_employees: int
    processed_employees: int
    failed_employees: int
    totals: PayrollRunTotalsSchema
    errors: List[PayrollRunErrorSchema] = []
    processing_details: List[Dict[str, Any]] = []


class PayrollTaskQueuedResponse(BaseModel):
    """Background payroll run accepted."""
    task_id: str
    status: str = "QUEUED"
    country_code: str
    period_id: UUID


# ===========================================
# COUNTRIES AND SUMMARIES
# ===========================================

class CountryResponse(BaseModel):
    """Payroll country with currency settings."""
    code: str
    name: str
    currency: str
    currency_symbol: str
    currency_decimals: int
    wps_enabled: bool
    employee_count: Optional[int] = None


class CountryPayrollSummaryResponse(BaseModel):
    """Totals over processed payroll details for one period and country."""
    country_code: str
    period_id: UUID
    currency_code: str
    currency_symbol: str
    employee_count: int
    total_gross_salary: Decimal
    total_net_salary: Decimal
    total_deductions: Decimal
    total_overtime: Decimal
    total_employer_contributions: Decimal
    total_gratuity_accrual: Decimal
    total_air_ticket_accrual: Decimal
    average_gross_salary: Decimal
