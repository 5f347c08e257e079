"""
HRMS Multi-Country Payroll - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from app.models.base import BaseModel, TimestampMixin, AuditMixin
from app.models.payroll import (
    # Enums
    EmployeeStatus,
    EmployeeType,
    TicketSegment,
    ComponentType,
    CompensationStatus,
    AttendanceStatus,
    PeriodStatus,
    RunStatus,
    DetailStatus,
    AirTicketAccrualStatus,
    RemittanceStatus,
    PROCESSED_DETAIL_STATUSES,
    # Models
    Country,
    CountryPayrollPolicy,
    PayrollEmployee,
    EmployeeCompensation,
    AttendanceRecord,
    PayrollPeriod,
    CountryPayrollRun,
    CountryPayrollDetail,
    GratuityAccrual,
    AirTicketAccrual,
    StatutoryDeduction,
)

__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    "AuditMixin",
    # Payroll enums
    "EmployeeStatus",
    "EmployeeType",
    "TicketSegment",
    "ComponentType",
    "CompensationStatus",
    "AttendanceStatus",
    "PeriodStatus",
    "RunStatus",
    "DetailStatus",
    "AirTicketAccrualStatus",
    "RemittanceStatus",
    "PROCESSED_DETAIL_STATUSES",
    # Payroll models
    "Country",
    "CountryPayrollPolicy",
    "PayrollEmployee",
    "EmployeeCompensation",
    "AttendanceRecord",
    "PayrollPeriod",
    "CountryPayrollRun",
    "CountryPayrollDetail",
    "GratuityAccrual",
    "AirTicketAccrual",
    "StatutoryDeduction",
]
