"""
HRMS Multi-Country Payroll - Payroll Record Store

All SQL used by the payroll orchestrator lives here. The orchestrator and
the calculators only see the value types from payroll_calculators.types
and the record dataclasses below.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Sequence

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payroll import (
    AttendanceRecord,
    AttendanceStatus,
    CompensationStatus,
    Country,
    CountryPayrollDetail,
    CountryPayrollPolicy,
    CountryPayrollRun,
    DetailStatus,
    EmployeeCompensation,
    EmployeeStatus,
    GratuityAccrual,
    PayrollEmployee,
    PayrollPeriod,
    PROCESSED_DETAIL_STATUSES,
    RunStatus,
)
from app.services.payroll_calculators.policies import PolicyRule
from app.services.payroll_calculators.types import (
    AttendanceSummary,
    CompensationLine,
    CountryInfo,
    EmployeeProfile,
    PeriodInfo,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


# ===========================================
# RECORDS
# ===========================================

@dataclass
class RunTotals:
    """Running totals of a payroll run, accumulated from successful employees only."""
    gross_salary: Decimal = ZERO
    net_salary: Decimal = ZERO
    statutory_deductions: Decimal = ZERO
    employer_contributions: Decimal = ZERO
    gratuity_accrual: Decimal = ZERO
    air_ticket_accrual: Decimal = ZERO

    def to_dict(self) -> Dict[str, Decimal]:
        return {
            "gross_salary": self.gross_salary,
            "net_salary": self.net_salary,
            "statutory_deductions": self.statutory_deductions,
            "employer_contributions": self.employer_contributions,
            "gratuity_accrual": self.gratuity_accrual,
            "air_ticket_accrual": self.air_ticket_accrual,
        }


@dataclass(frozen=True)
class PayrollDetailRecord:
    """Computed payroll snapshot for one employee, written once per run."""
    period_id: uuid.UUID
    employee_id: uuid.UUID
    run_id: uuid.UUID
    payroll_country: str
    basic_salary: Decimal
    gross_salary: Decimal
    total_earnings: Decimal
    overtime_hours: Decimal
    overtime_amount: Decimal
    overtime_rate: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    attendance: AttendanceSummary = field(default_factory=AttendanceSummary)
    social_security_employee: Decimal = ZERO
    social_security_employer: Decimal = ZERO
    pension_employee: Decimal = ZERO
    pension_employer: Decimal = ZERO
    gratuity_accrual: Decimal = ZERO
    air_ticket_accrual: Decimal = ZERO
    created_by: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class GratuityAccrualRecord:
    """One month of end-of-service gratuity accrual."""
    employee_id: uuid.UUID
    accrual_year: int
    accrual_month: int
    service_years: int
    service_months: int
    monthly_accrual_amount: Decimal
    calculation_base_salary: Decimal
    gratuity_rate_days: Decimal
    country_code: str


# ===========================================
# PROTOCOL
# ===========================================

class PayrollRepository(Protocol):
    """Record store consumed by MultiCountryPayrollService."""

    async def get_period(self, period_id: uuid.UUID) -> Optional[PeriodInfo]:
        ...

    async def get_active_country(self, country_code: str) -> Optional[CountryInfo]:
        ...

    async def get_eligible_employees(
        self,
        period_id: uuid.UUID,
        country_code: str,
        employee_ids: Optional[Sequence[uuid.UUID]] = None,
    ) -> List[EmployeeProfile]:
        ...

    async def get_employee_compensation(self, employee_id: uuid.UUID, as_of: date) -> List[CompensationLine]:
        ...

    async def get_attendance_summary(
        self, employee_id: uuid.UUID, start_date: date, end_date: date,
    ) -> AttendanceSummary:
        ...

    async def load_country_policies(self, country_code: str) -> List[PolicyRule]:
        ...

    async def create_run(
        self,
        period: PeriodInfo,
        country: CountryInfo,
        total_employees: int,
        created_by: Optional[uuid.UUID] = None,
    ) -> uuid.UUID:
        ...

    async def update_run_totals(self, run_id: uuid.UUID, processed: int, failed: int, totals: RunTotals) -> None:
        ...

    async def update_run_status(self, run_id: uuid.UUID, status: RunStatus) -> None:
        ...

    async def create_detail(self, record: PayrollDetailRecord) -> uuid.UUID:
        ...

    async def create_gratuity_accrual(self, record: GratuityAccrualRecord) -> uuid.UUID:
        ...

    def employee_scope(self) -> Any:
        """Async context manager isolating one employee's writes."""
        ...

    async def commit(self) -> None:
        ...

    async def get_country_payroll_summary(self, period_id: uuid.UUID, country_code: str) -> Optional[Dict[str, Any]]:
        ...

    async def get_available_countries(self) -> List[Dict[str, Any]]:
        ...


# ===========================================
# SQLALCHEMY IMPLEMENTATION
# ===========================================

class SqlAlchemyPayrollRepository:
    """PayrollRepository backed by an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # READS
    # ===========================================

    async def get_period(self, period_id: uuid.UUID) -> Optional[PeriodInfo]:
        result = await self.db.execute(select(PayrollPeriod).where(PayrollPeriod.id == period_id))
        period = result.scalar_one_or_none()
        if period is None:
            return None
        return PeriodInfo(
            id=period.id,
            name=period.period_name,
            start_date=period.start_date,
            end_date=period.end_date,
            pay_date=period.pay_date,
            status=period.status.value,
        )

    async def get_active_country(self, country_code: str) -> Optional[CountryInfo]:
        result = await self.db.execute(
            select(Country).where(
                and_(
                    Country.country_code == country_code,
                    Country.is_active == True,
                )
            )
        )
        country = result.scalar_one_or_none()
        if country is None:
            return None
        return CountryInfo(
            code=country.country_code,
            name=country.country_name,
            currency_code=country.currency_code,
            currency_symbol=country.currency_symbol,
            currency_decimals=country.currency_decimals,
            wps_enabled=country.wps_enabled,
            is_active=country.is_active,
        )

    async def get_eligible_employees(
        self,
        period_id: uuid.UUID,
        country_code: str,
        employee_ids: Optional[Sequence[uuid.UUID]] = None,
    ) -> List[EmployeeProfile]:
        """
        Active employees of the country with no processed detail for the period.

        Only CANCELLED details leave an employee eligible again.
        """
        already_processed = (
            select(CountryPayrollDetail.id)
            .where(
                and_(
                    CountryPayrollDetail.employee_id == PayrollEmployee.id,
                    CountryPayrollDetail.period_id == period_id,
                    CountryPayrollDetail.status.in_(PROCESSED_DETAIL_STATUSES),
                )
            )
            .exists()
        )
        query = select(PayrollEmployee).where(
            and_(
                PayrollEmployee.status == EmployeeStatus.ACTIVE,
                PayrollEmployee.payroll_country == country_code,
                ~already_processed,
            )
        )
        if employee_ids:
            query = query.where(PayrollEmployee.id.in_(list(employee_ids)))
        query = query.order_by(PayrollEmployee.employee_code)

        result = await self.db.execute(query)
        return [self._to_profile(employee) for employee in result.scalars().all()]

    @staticmethod
    def _to_profile(employee: PayrollEmployee) -> EmployeeProfile:
        return EmployeeProfile(
            id=employee.id,
            code=employee.employee_code,
            country_code=employee.payroll_country,
            joining_date=employee.joining_date,
            nationality=employee.nationality,
            employee_type=employee.employee_type.value if employee.employee_type else "EXPATRIATE",
            air_ticket_eligible=bool(employee.air_ticket_eligible),
            ticket_segment=employee.ticket_segment.value if employee.ticket_segment else None,
            estimated_ticket_cost=employee.estimated_ticket_cost,
            basic_salary=employee.basic_salary or ZERO,
        )

    async def get_employee_compensation(self, employee_id: uuid.UUID, as_of: date) -> List[CompensationLine]:
        """Active components effective on `as_of`."""
        result = await self.db.execute(
            select(EmployeeCompensation)
            .where(
                and_(
                    EmployeeCompensation.employee_id == employee_id,
                    EmployeeCompensation.status == CompensationStatus.ACTIVE,
                    EmployeeCompensation.effective_date <= as_of,
                    or_(
                        EmployeeCompensation.end_date.is_(None),
                        EmployeeCompensation.end_date >= as_of,
                    ),
                )
            )
            .order_by(EmployeeCompensation.component_type, EmployeeCompensation.component_code)
        )
        return [
            CompensationLine(
                component_code=line.component_code,
                component_name=line.component_name,
                component_type=line.component_type.value,
                amount=line.amount,
                percentage=line.percentage,
                is_percentage=bool(line.is_percentage),
                calculation_base=line.calculation_base,
            )
            for line in result.scalars().all()
        ]

    async def get_attendance_summary(
        self, employee_id: uuid.UUID, start_date: date, end_date: date,
    ) -> AttendanceSummary:
        """Attendance for the period; a full month when nothing is recorded."""

        def days_with(status: AttendanceStatus):
            return func.sum(case((AttendanceRecord.status == status, 1), else_=0))

        result = await self.db.execute(
            select(
                func.count(AttendanceRecord.id),
                days_with(AttendanceStatus.PRESENT),
                days_with(AttendanceStatus.ABSENT),
                days_with(AttendanceStatus.LEAVE),
                func.coalesce(func.sum(AttendanceRecord.overtime_hours), 0),
            ).where(
                and_(
                    AttendanceRecord.employee_id == employee_id,
                    AttendanceRecord.attendance_date >= start_date,
                    AttendanceRecord.attendance_date <= end_date,
                )
            )
        )
        recorded, present, absent, leave, overtime = result.one()
        if not recorded:
            return AttendanceSummary()
        return AttendanceSummary(
            present_days=Decimal(present or 0),
            absent_days=Decimal(absent or 0),
            leave_days=Decimal(leave or 0),
            overtime_hours=Decimal(str(overtime or 0)),
        )

    async def load_country_policies(self, country_code: str) -> List[PolicyRule]:
        """
        Active policy rows effective today.

        Runs in its own savepoint: callers fall back to built-in policies
        on failure and keep using the session.
        """
        today = date.today()
        async with self.db.begin_nested():
            result = await self.db.execute(
                select(CountryPayrollPolicy).where(
                    and_(
                        CountryPayrollPolicy.country_code == country_code,
                        CountryPayrollPolicy.is_active == True,
                        CountryPayrollPolicy.effective_from <= today,
                        or_(
                            CountryPayrollPolicy.effective_to.is_(None),
                            CountryPayrollPolicy.effective_to >= today,
                        ),
                    )
                )
            )
            rows = result.scalars().all()
        return [PolicyRule.from_row(row) for row in rows]

    # ===========================================
    # WRITES
    # ===========================================

    async def create_run(
        self,
        period: PeriodInfo,
        country: CountryInfo,
        total_employees: int,
        created_by: Optional[uuid.UUID] = None,
    ) -> uuid.UUID:
        run = CountryPayrollRun(
            id=uuid.uuid4(),
            period_id=period.id,
            run_name=f"{country.name} Payroll - {period.name}",
            run_type="FULL",
            status=RunStatus.IN_PROGRESS,
            country_code=country.code,
            currency_code=country.currency_code,
            total_employees=total_employees,
            created_by_id=created_by,
        )
        self.db.add(run)
        await self.db.flush()
        return run.id

    async def update_run_totals(self, run_id: uuid.UUID, processed: int, failed: int, totals: RunTotals) -> None:
        await self.db.execute(
            update(CountryPayrollRun)
            .where(CountryPayrollRun.id == run_id)
            .values(
                total_employees_processed=processed,
                total_employees_failed=failed,
                total_gross_salary=totals.gross_salary,
                total_net_salary=totals.net_salary,
                total_statutory_deductions=totals.statutory_deductions,
                total_employer_contributions=totals.employer_contributions,
                total_gratuity_accrual=totals.gratuity_accrual,
                total_air_ticket_accrual=totals.air_ticket_accrual,
            )
        )

    async def update_run_status(self, run_id: uuid.UUID, status: RunStatus) -> None:
        values: Dict[str, Any] = {"status": status}
        if status != RunStatus.IN_PROGRESS:
            values["completed_at"] = datetime.now(timezone.utc)
        await self.db.execute(
            update(CountryPayrollRun).where(CountryPayrollRun.id == run_id).values(**values)
        )

    async def create_detail(self, record: PayrollDetailRecord) -> uuid.UUID:
        attendance = record.attendance
        detail = CountryPayrollDetail(
            id=uuid.uuid4(),
            period_id=record.period_id,
            employee_id=record.employee_id,
            run_id=record.run_id,
            payroll_country=record.payroll_country,
            basic_salary=record.basic_salary,
            gross_salary=record.gross_salary,
            total_earnings=record.total_earnings,
            overtime_hours=record.overtime_hours,
            overtime_amount=record.overtime_amount,
            overtime_rate=record.overtime_rate,
            total_deductions=record.total_deductions,
            total_taxes=ZERO,
            net_salary=record.net_salary,
            work_days=attendance.work_days,
            present_days=attendance.present_days,
            absent_days=attendance.absent_days,
            leave_days=attendance.leave_days,
            social_security_employee=record.social_security_employee,
            social_security_employer=record.social_security_employer,
            pension_employee=record.pension_employee,
            pension_employer=record.pension_employer,
            gratuity_accrual=record.gratuity_accrual,
            air_ticket_accrual=record.air_ticket_accrual,
            status=DetailStatus.CALCULATED,
            created_by_id=record.created_by,
        )
        self.db.add(detail)
        await self.db.flush()
        return detail.id

    async def create_gratuity_accrual(self, record: GratuityAccrualRecord) -> uuid.UUID:
        """
        Write the month's gratuity accrual.

        The running total carries forward from the latest earlier month. A
        row already present for the same month is overwritten.
        """
        previous_total = await self._previous_gratuity_total(
            record.employee_id, record.accrual_year, record.accrual_month,
        )
        result = await self.db.execute(
            select(GratuityAccrual).where(
                and_(
                    GratuityAccrual.employee_id == record.employee_id,
                    GratuityAccrual.accrual_year == record.accrual_year,
                    GratuityAccrual.accrual_month == record.accrual_month,
                )
            )
        )
        accrual = result.scalar_one_or_none()
        if accrual is None:
            accrual = GratuityAccrual(
                id=uuid.uuid4(),
                employee_id=record.employee_id,
                accrual_year=record.accrual_year,
                accrual_month=record.accrual_month,
            )
            self.db.add(accrual)
        else:
            logger.info(
                f"Replacing gratuity accrual {record.accrual_year}-{record.accrual_month:02d} "
                f"for employee {record.employee_id}"
            )

        accrual.service_years = record.service_years
        accrual.service_months = record.service_months
        accrual.monthly_accrual_amount = record.monthly_accrual_amount
        accrual.total_accrued_amount = previous_total + record.monthly_accrual_amount
        accrual.calculation_base_salary = record.calculation_base_salary
        accrual.gratuity_rate_days = record.gratuity_rate_days
        accrual.country_code = record.country_code
        accrual.payment_status = "ACCRUED"

        await self.db.flush()
        return accrual.id

    async def _previous_gratuity_total(self, employee_id: uuid.UUID, year: int, month: int) -> Decimal:
        result = await self.db.execute(
            select(GratuityAccrual.total_accrued_amount)
            .where(
                and_(
                    GratuityAccrual.employee_id == employee_id,
                    or_(
                        GratuityAccrual.accrual_year < year,
                        and_(
                            GratuityAccrual.accrual_year == year,
                            GratuityAccrual.accrual_month < month,
                        ),
                    ),
                )
            )
            .order_by(GratuityAccrual.accrual_year.desc(), GratuityAccrual.accrual_month.desc())
            .limit(1)
        )
        return result.scalar_one_or_none() or ZERO

    @asynccontextmanager
    async def employee_scope(self) -> AsyncIterator[None]:
        """Savepoint around one employee; rolled back if the body raises."""
        async with self.db.begin_nested():
            yield

    async def commit(self) -> None:
        await self.db.commit()

    # ===========================================
    # REPORTING
    # ===========================================

    async def get_country_payroll_summary(self, period_id: uuid.UUID, country_code: str) -> Optional[Dict[str, Any]]:
        """Aggregate of processed detail rows for one period and country."""
        result = await self.db.execute(
            select(
                func.count(CountryPayrollDetail.id),
                func.coalesce(func.sum(CountryPayrollDetail.gross_salary), 0),
                func.coalesce(func.sum(CountryPayrollDetail.net_salary), 0),
                func.coalesce(func.sum(CountryPayrollDetail.total_deductions), 0),
                func.coalesce(func.sum(CountryPayrollDetail.overtime_amount), 0),
                func.coalesce(func.sum(CountryPayrollDetail.social_security_employer), 0),
                func.coalesce(func.sum(CountryPayrollDetail.gratuity_accrual), 0),
                func.coalesce(func.sum(CountryPayrollDetail.air_ticket_accrual), 0),
                func.coalesce(func.avg(CountryPayrollDetail.gross_salary), 0),
            ).where(
                and_(
                    CountryPayrollDetail.period_id == period_id,
                    CountryPayrollDetail.payroll_country == country_code,
                    CountryPayrollDetail.status.in_(PROCESSED_DETAIL_STATUSES),
                )
            )
        )
        (
            employee_count, gross, net, deductions, overtime,
            employer_contributions, gratuity, air_ticket, average_gross,
        ) = result.one()
        if not employee_count:
            return None
        return {
            "employee_count": employee_count,
            "total_gross_salary": Decimal(str(gross)),
            "total_net_salary": Decimal(str(net)),
            "total_deductions": Decimal(str(deductions)),
            "total_overtime": Decimal(str(overtime)),
            "total_employer_contributions": Decimal(str(employer_contributions)),
            "total_gratuity_accrual": Decimal(str(gratuity)),
            "total_air_ticket_accrual": Decimal(str(air_ticket)),
            "average_gross_salary": Decimal(str(average_gross)),
        }

    async def get_available_countries(self) -> List[Dict[str, Any]]:
        """Active countries with their active employee headcount."""
        headcount = (
            select(func.count(PayrollEmployee.id))
            .where(
                and_(
                    PayrollEmployee.payroll_country == Country.country_code,
                    PayrollEmployee.status == EmployeeStatus.ACTIVE,
                )
            )
            .scalar_subquery()
        )
        result = await self.db.execute(
            select(Country, headcount.label("employee_count"))
            .where(Country.is_active == True)
            .order_by(Country.country_name)
        )
        return [
            {
                "code": country.country_code,
                "name": country.country_name,
                "currency": country.currency_code,
                "currency_symbol": country.currency_symbol,
                "currency_decimals": country.currency_decimals,
                "wps_enabled": country.wps_enabled,
                "employee_count": employee_count or 0,
            }
            for country, employee_count in result.all()
        ]
