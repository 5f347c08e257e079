"""
HRMS Multi-Country Payroll - FastAPI Dependencies

Shared dependencies for database sessions and payroll services.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.services.multi_country_payroll_service import (
    MultiCountryPayrollService,
    create_payroll_service,
)
from app.services.payroll_calculators.factory import PayrollCalculatorFactory


async def get_payroll_service(
    db: AsyncSession = Depends(get_async_session),
) -> MultiCountryPayrollService:
    """Payroll service bound to the request's database session."""
    return create_payroll_service(db)


def get_calculator_factory() -> PayrollCalculatorFactory:
    """Factory with built-in country policies; no database access."""
    return PayrollCalculatorFactory()
