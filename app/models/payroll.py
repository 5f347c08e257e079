"""
HRMS Multi-Country Payroll - Payroll Models

Persistence for the multi-country payroll engine:
- Country master data (currency, WPS flag)
- Country payroll policies (rates, caps, thresholds, conditions)
- Employees, compensation components and daily attendance
- Payroll periods, country payroll runs and per-employee details
- Gratuity (EOSB), air ticket and statutory deduction accrual records

Supported payroll countries: IND, UAE, SAU, OMN, BHR, QAT, EGY.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text,
    Enum as SQLEnum, UniqueConstraint, Index
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel, AuditMixin, money_column


# ===========================================
# ENUMS
# ===========================================

class EmployeeStatus(str, Enum):
    """Employment status."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TERMINATED = "TERMINATED"
    RESIGNED = "RESIGNED"


class EmployeeType(str, Enum):
    """Local nationals vs expatriates; drives national social-insurance schemes."""
    LOCAL = "LOCAL"
    EXPATRIATE = "EXPATRIATE"


class TicketSegment(str, Enum):
    """Air ticket class."""
    ECONOMY = "ECONOMY"
    BUSINESS = "BUSINESS"
    FIRST = "FIRST"


class ComponentType(str, Enum):
    """Type of pay component."""
    EARNING = "EARNING"
    ALLOWANCE = "ALLOWANCE"
    DEDUCTION = "DEDUCTION"


class CompensationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LEAVE = "LEAVE"
    HOLIDAY = "HOLIDAY"


class PeriodStatus(str, Enum):
    """Payroll period status. Runs can only be created on DRAFT periods."""
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    LOCKED = "LOCKED"
    PAID = "PAID"
    CLOSED = "CLOSED"


class RunStatus(str, Enum):
    """Country payroll run status."""
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    COMPLETED_WITH_ERRORS = "COMPLETED_WITH_ERRORS"


class DetailStatus(str, Enum):
    """Per-employee payroll detail status."""
    CALCULATED = "CALCULATED"
    APPROVED = "APPROVED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


# Detail statuses that exclude an employee from a new run in the same period
PROCESSED_DETAIL_STATUSES = (DetailStatus.CALCULATED, DetailStatus.APPROVED, DetailStatus.PAID)


class AirTicketAccrualStatus(str, Enum):
    ACCRUED = "ACCRUED"
    PARTIALLY_UTILIZED = "PARTIALLY_UTILIZED"
    FULLY_UTILIZED = "FULLY_UTILIZED"
    EXPIRED = "EXPIRED"


class RemittanceStatus(str, Enum):
    PENDING = "PENDING"
    REMITTED = "REMITTED"


# ===========================================
# COUNTRY MASTER DATA
# ===========================================

class Country(BaseModel):
    """Payroll country with currency settings."""

    __tablename__ = "hrms_countries"

    country_code: Mapped[str] = mapped_column(String(3), unique=True, nullable=False)
    country_name: Mapped[str] = mapped_column(String(100), nullable=False)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)
    currency_symbol: Mapped[str] = mapped_column(String(10), nullable=False)
    currency_decimals: Mapped[int] = mapped_column(Integer, default=2, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    wps_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<Country(code={self.country_code}, currency={self.currency_code})>"


class CountryPayrollPolicy(BaseModel):
    """
    Country payroll policy row.

    Keyed by (country_code, policy_category, policy_name). Rates are
    percentages except for GRATUITY, where employer_rate is the entitlement
    per service year in the unit named by policy_type (DAYS, MONTHS, WEEKS).
    """

    __tablename__ = "hrms_payroll_country_policies"

    country_code: Mapped[str] = mapped_column(String(3), nullable=False, index=True)
    policy_category: Mapped[str] = mapped_column(String(50), nullable=False)
    policy_name: Mapped[str] = mapped_column(String(100), nullable=False)
    policy_type: Mapped[str] = mapped_column(String(30), nullable=False)

    employee_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(7, 4), nullable=True)
    employer_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(7, 4), nullable=True)
    fixed_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    cap_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    min_threshold: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    max_threshold: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    calculation_base: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    formula_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    conditions: Mapped[Optional[str]] = mapped_column(
        String(1000), nullable=True,
        comment="e.g. 'NATIONALITY=SAUDI AND SERVICE_YEARS>=5'",
    )

    is_mandatory: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, default=date.today, nullable=False)
    effective_to: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    __table_args__ = (
        Index("ix_policy_country_category_name", "country_code", "policy_category", "policy_name"),
    )


# ===========================================
# EMPLOYEE
# ===========================================

class PayrollEmployee(BaseModel, AuditMixin):
    """Employee as seen by the payroll engine."""

    __tablename__ = "hrms_employees"

    employee_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    payroll_country: Mapped[str] = mapped_column(String(3), nullable=False, index=True)
    status: Mapped[EmployeeStatus] = mapped_column(
        SQLEnum(EmployeeStatus), default=EmployeeStatus.ACTIVE, nullable=False,
    )
    employee_type: Mapped[EmployeeType] = mapped_column(
        SQLEnum(EmployeeType), default=EmployeeType.EXPATRIATE, nullable=False,
    )
    nationality: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True,
        comment="Upper-case nationality, e.g. EMIRATI, SAUDI, INDIAN",
    )
    joining_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    basic_salary: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2), default=Decimal("0.00"), nullable=False,
    )

    # Air ticket entitlement
    air_ticket_eligible: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ticket_segment: Mapped[Optional[TicketSegment]] = mapped_column(
        SQLEnum(TicketSegment), nullable=True,
    )
    estimated_ticket_cost: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=15, scale=2), nullable=True,
    )

    # Wage Protection System
    wps_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    primary_bank_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    compensation: Mapped[List["EmployeeCompensation"]] = relationship(
        "EmployeeCompensation",
        back_populates="employee",
        cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<PayrollEmployee(code={self.employee_code}, country={self.payroll_country})>"


class EmployeeCompensation(BaseModel):
    """One pay component assigned to an employee."""

    __tablename__ = "hrms_employee_compensation"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("hrms_employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    component_code: Mapped[str] = mapped_column(String(30), nullable=False)
    component_name: Mapped[str] = mapped_column(String(100), nullable=False)
    component_type: Mapped[ComponentType] = mapped_column(SQLEnum(ComponentType), nullable=False)
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(precision=15, scale=2), nullable=True)
    percentage: Mapped[Optional[Decimal]] = mapped_column(Numeric(precision=7, scale=4), nullable=True)
    is_percentage: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    calculation_base: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    status: Mapped[CompensationStatus] = mapped_column(
        SQLEnum(CompensationStatus), default=CompensationStatus.ACTIVE, nullable=False,
    )
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    employee: Mapped["PayrollEmployee"] = relationship(
        "PayrollEmployee", back_populates="compensation",
    )


class AttendanceRecord(BaseModel):
    """Daily attendance entry."""

    __tablename__ = "hrms_attendance"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("hrms_employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    attendance_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[AttendanceStatus] = mapped_column(SQLEnum(AttendanceStatus), nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(
        Numeric(precision=6, scale=2), default=Decimal("0"), nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("employee_id", "attendance_date", name="uq_attendance_employee_date"),
    )


# ===========================================
# PERIODS AND RUNS
# ===========================================

class PayrollPeriod(BaseModel, AuditMixin):
    """Payroll period. Immutable once approved."""

    __tablename__ = "hrms_payroll_periods"

    period_name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[PeriodStatus] = mapped_column(
        SQLEnum(PeriodStatus), default=PeriodStatus.DRAFT, nullable=False,
    )


class CountryPayrollRun(BaseModel, AuditMixin):
    """
    One payroll run per (period, country) invocation.

    Created IN_PROGRESS and updated in place until it reaches
    COMPLETED or COMPLETED_WITH_ERRORS.
    """

    __tablename__ = "hrms_payroll_runs"

    period_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("hrms_payroll_periods.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    run_name: Mapped[str] = mapped_column(String(200), nullable=False)
    run_type: Mapped[str] = mapped_column(String(20), default="FULL", nullable=False)
    status: Mapped[RunStatus] = mapped_column(
        SQLEnum(RunStatus), default=RunStatus.IN_PROGRESS, nullable=False,
    )
    country_code: Mapped[str] = mapped_column(String(3), nullable=False)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)

    total_employees: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_employees_processed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_employees_failed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    total_gross_salary: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=3), default=Decimal("0"), nullable=False,
    )
    total_net_salary: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=3), default=Decimal("0"), nullable=False,
    )
    total_statutory_deductions: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=3), default=Decimal("0"), nullable=False,
    )
    total_employer_contributions: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=3), default=Decimal("0"), nullable=False,
    )
    total_gratuity_accrual: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=3), default=Decimal("0"), nullable=False,
    )
    total_air_ticket_accrual: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=3), default=Decimal("0"), nullable=False,
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    details: Mapped[List["CountryPayrollDetail"]] = relationship(
        "CountryPayrollDetail",
        back_populates="run",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<CountryPayrollRun(id={self.id}, country={self.country_code}, status={self.status})>"


class CountryPayrollDetail(BaseModel):
    """Computed payroll snapshot for one employee in one run."""

    __tablename__ = "hrms_payroll_details"

    period_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("hrms_payroll_periods.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("hrms_employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("hrms_payroll_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    payroll_country: Mapped[str] = mapped_column(String(3), nullable=False)

    # Earnings
    basic_salary: Mapped[Decimal] = money_column()
    gross_salary: Mapped[Decimal] = money_column()
    total_earnings: Mapped[Decimal] = money_column()
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("0"), nullable=False)
    overtime_amount: Mapped[Decimal] = money_column(default=Decimal("0"))
    overtime_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    # Deductions
    total_deductions: Mapped[Decimal] = money_column()
    total_taxes: Mapped[Decimal] = money_column(default=Decimal("0"))
    net_salary: Mapped[Decimal] = money_column()

    # Attendance
    work_days: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    present_days: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("30"), nullable=False)
    absent_days: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"), nullable=False)
    leave_days: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"), nullable=False)

    # Statutory and accruals
    social_security_employee: Mapped[Decimal] = money_column(default=Decimal("0"))
    social_security_employer: Mapped[Decimal] = money_column(default=Decimal("0"))
    pension_employee: Mapped[Decimal] = money_column(default=Decimal("0"))
    pension_employer: Mapped[Decimal] = money_column(default=Decimal("0"))
    gratuity_accrual: Mapped[Decimal] = money_column(default=Decimal("0"))
    air_ticket_accrual: Mapped[Decimal] = money_column(default=Decimal("0"))

    status: Mapped[DetailStatus] = mapped_column(
        SQLEnum(DetailStatus), default=DetailStatus.CALCULATED, nullable=False,
    )
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)

    run: Mapped["CountryPayrollRun"] = relationship("CountryPayrollRun", back_populates="details")

    __table_args__ = (
        UniqueConstraint("run_id", "employee_id", name="uq_payroll_detail_run_employee"),
        Index("ix_payroll_detail_period_employee", "period_id", "employee_id"),
    )


# ===========================================
# ACCRUAL AND STATUTORY RECORDS
# ===========================================

class GratuityAccrual(BaseModel):
    """Monthly end-of-service gratuity accrual row."""

    __tablename__ = "hrms_gratuity_accruals"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("hrms_employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    accrual_year: Mapped[int] = mapped_column(Integer, nullable=False)
    accrual_month: Mapped[int] = mapped_column(Integer, nullable=False)
    service_years: Mapped[int] = mapped_column(Integer, nullable=False)
    service_months: Mapped[int] = mapped_column(
        Integer, nullable=False,
        comment="Months past the last full service year (0-11)",
    )
    monthly_accrual_amount: Mapped[Decimal] = money_column()
    total_accrued_amount: Mapped[Decimal] = money_column()
    calculation_base_salary: Mapped[Decimal] = money_column()
    gratuity_rate_days: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    country_code: Mapped[str] = mapped_column(String(3), nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), default="ACCRUED", nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "accrual_year", "accrual_month", name="uq_gratuity_period"),
    )


class AirTicketAccrual(BaseModel):
    """Monthly biennial air ticket accrual row."""

    __tablename__ = "hrms_air_ticket_accruals"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("hrms_employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    accrual_year: Mapped[int] = mapped_column(Integer, nullable=False)
    accrual_month: Mapped[int] = mapped_column(Integer, nullable=False)
    monthly_accrual_amount: Mapped[Decimal] = money_column()
    total_accrued_amount: Mapped[Decimal] = money_column()
    ticket_segment: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    estimated_ticket_cost: Mapped[Optional[Decimal]] = money_column(nullable=True)
    utilized_amount: Mapped[Decimal] = money_column(default=Decimal("0"))
    status: Mapped[AirTicketAccrualStatus] = mapped_column(
        SQLEnum(AirTicketAccrualStatus), default=AirTicketAccrualStatus.ACCRUED, nullable=False,
    )
    fifo_sequence: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "accrual_year", "accrual_month", name="uq_air_ticket_period"),
    )


class StatutoryDeduction(BaseModel):
    """Itemized statutory contribution for one employee in one period."""

    __tablename__ = "hrms_statutory_deductions"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("hrms_employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    payroll_period_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("hrms_payroll_periods.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    country_code: Mapped[str] = mapped_column(String(3), nullable=False)
    deduction_type: Mapped[str] = mapped_column(
        String(50), nullable=False,
        comment="Breakdown key, e.g. pf, esi, gosi",
    )
    deduction_name: Mapped[str] = mapped_column(
        String(100), nullable=False,
        comment="Policy tag, e.g. GOSI_SAUDI_NATIONAL",
    )
    calculation_base: Mapped[Decimal] = money_column()
    gross_salary: Mapped[Decimal] = money_column()
    effective_rate: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    employee_amount: Mapped[Decimal] = money_column(default=Decimal("0"))
    employer_amount: Mapped[Decimal] = money_column(default=Decimal("0"))
    total_amount: Mapped[Decimal] = money_column()
    payment_status: Mapped[RemittanceStatus] = mapped_column(
        SQLEnum(RemittanceStatus), default=RemittanceStatus.PENDING, nullable=False,
    )
    payment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
