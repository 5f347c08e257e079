"""
HRMS Multi-Country Payroll - Services Package

Business logic services.
"""

from app.services.payroll_repository import PayrollRepository, SqlAlchemyPayrollRepository
from app.services.air_ticket_service import AirTicketService
from app.services.statutory_record_service import StatutoryRecordService
from app.services.multi_country_payroll_service import MultiCountryPayrollService

__all__ = [
    "PayrollRepository",
    "SqlAlchemyPayrollRepository",
    "AirTicketService",
    "StatutoryRecordService",
    "MultiCountryPayrollService",
]
