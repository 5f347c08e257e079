"""
HRMS Multi-Country Payroll - Multi-Country Payroll Service

Runs payroll for one country and one period:
1. Validate the period (must be DRAFT) and the country (must be active)
2. Select eligible employees (active, not yet processed for the period)
3. Initialize the country calculator once for the whole batch
4. Create the run header, then process employees one by one, each in
   its own savepoint so a failure never disturbs the others
5. Persist the run totals and the final run status

Also provides the real-time CTC preview used by compensation screens,
which computes the same figures without touching the record store.
"""

import dataclasses
import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

from app.config import settings
from app.models.payroll import PeriodStatus, RunStatus
from app.services.payroll_calculators.contract import PayrollCalculator
from app.services.payroll_calculators.factory import PayrollCalculatorFactory
from app.services.payroll_calculators.helpers import (
    allowances_total,
    calculate_service_months,
    categorize_compensation,
    extract_basic_salary,
    fixed_earnings_total,
    round_money,
    to_decimal,
)
from app.services.payroll_calculators.types import (
    CompensationLine,
    CountryInfo,
    EmployeeProfile,
    PeriodInfo,
)
from app.services.payroll_repository import (
    GratuityAccrualRecord,
    PayrollDetailRecord,
    PayrollRepository,
    RunTotals,
)
from app.utils.error_handling import (
    NoEligibleEmployeesException,
    PeriodNotDraftException,
    PeriodNotFoundException,
    UnknownCountryException,
)

logger = logging.getLogger(__name__)


# ===========================================
# COUNTRY RATE TABLES
# ===========================================

# Overtime multiplier recorded on each payroll detail
OVERTIME_RATES: Dict[str, Decimal] = {
    "IND": Decimal("2.0"),
    "UAE": Decimal("1.25"),
    "SAU": Decimal("1.5"),
    "OMN": Decimal("1.25"),
    "BHR": Decimal("1.25"),
    "QAT": Decimal("1.25"),
    "EGY": Decimal("1.35"),
}
DEFAULT_OVERTIME_RATE = Decimal("1.5")


def get_overtime_rate(country_code: str) -> Decimal:
    return OVERTIME_RATES.get(country_code, DEFAULT_OVERTIME_RATE)


def get_gratuity_rate_days(country_code: str, service_months: int) -> int:
    """Gratuity days per service year recorded on the accrual row."""
    if country_code == "IND":
        return 15
    if country_code == "UAE":
        return 21 if service_months <= 60 else 30
    if country_code == "SAU":
        return 15 if service_months <= 60 else 30
    if country_code in ("OMN", "EGY"):
        return 30
    if country_code == "BHR":
        if service_months < 36:
            return 0
        return 15 if service_months <= 60 else 30
    if country_code == "QAT":
        return 21
    return 15


# ===========================================
# SERVICE
# ===========================================

class MultiCountryPayrollService:
    """
    Country payroll orchestration.

    The air ticket and statutory record collaborators share the
    repository's session, so their writes fall inside the same
    per-employee savepoint.
    """

    def __init__(
        self,
        repository: PayrollRepository,
        air_ticket_service: Any,
        statutory_service: Any,
        factory: Optional[PayrollCalculatorFactory] = None,
        today: Callable[[], date] = date.today,
        basic_ratio: Optional[Decimal] = None,
    ):
        self.repository = repository
        self.air_ticket_service = air_ticket_service
        self.statutory_service = statutory_service
        self.today = today
        if factory is None:
            policy_source = repository if settings.payroll_load_policy_table else None
            factory = PayrollCalculatorFactory(policy_source=policy_source, today=today)
        self.factory = factory
        self.basic_ratio = to_decimal(
            basic_ratio if basic_ratio is not None else settings.payroll_default_basic_ratio
        )

    # ===========================================
    # COUNTRY PAYROLL RUN
    # ===========================================

    async def process_country_payroll(
        self,
        period_id: uuid.UUID,
        country_code: str,
        employee_ids: Optional[Sequence[uuid.UUID]] = None,
        created_by: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        """
        Process payroll for every eligible employee of a country.

        Precondition failures raise before any run is created. Employee
        failures are logged and reported in `errors`; the run then ends
        COMPLETED_WITH_ERRORS.
        """
        country_code = (country_code or "").strip().upper()
        logger.info(f"Processing {country_code} payroll for period {period_id}")

        period, country = await self._validate_processing_inputs(period_id, country_code)

        employees = await self.repository.get_eligible_employees(period_id, country_code, employee_ids)
        if not employees:
            raise NoEligibleEmployeesException(country_code, period_id)

        calculator = self.factory.get_calculator(country_code)
        await calculator.initialize()

        run_id = await self.repository.create_run(period, country, len(employees), created_by)

        totals = RunTotals()
        results: Dict[str, Any] = {
            "country_code": country_code,
            "run_id": run_id,
            "period_id": period_id,
            "total_employees": len(employees),
            "processed_employees": 0,
            "failed_employees": 0,
            "totals": totals.to_dict(),
            "errors": [],
            "processing_details": [],
        }

        for employee in employees:
            try:
                async with self.repository.employee_scope():
                    outcome = await self._process_employee(
                        employee, period, run_id, country, calculator, created_by,
                    )
            except Exception as e:
                logger.exception(f"Error processing employee {employee.code} ({country_code}): {e}")
                results["failed_employees"] += 1
                results["errors"].append({
                    "employee_id": employee.id,
                    "employee_code": employee.code,
                    "error": str(e),
                })
                continue

            totals.gross_salary += outcome["gross_salary"]
            totals.net_salary += outcome["net_salary"]
            totals.statutory_deductions += outcome["statutory_deductions"]["employee"]
            totals.employer_contributions += outcome["employer_contributions"]
            totals.gratuity_accrual += outcome["gratuity_accrual"]
            totals.air_ticket_accrual += outcome["air_ticket_accrual"]

            results["processed_employees"] += 1
            results["processing_details"].append({
                "employee_id": employee.id,
                "employee_code": employee.code,
                "status": "SUCCESS",
                **outcome,
            })

        results["totals"] = totals.to_dict()
        await self.repository.update_run_totals(
            run_id, results["processed_employees"], results["failed_employees"], totals,
        )
        status = RunStatus.COMPLETED if results["failed_employees"] == 0 else RunStatus.COMPLETED_WITH_ERRORS
        await self.repository.update_run_status(run_id, status)
        await self.repository.commit()

        results["status"] = status.value
        logger.info(
            f"{country_code} payroll completed: {results['processed_employees']} success, "
            f"{results['failed_employees']} failed"
        )
        return results

    async def _validate_processing_inputs(self, period_id: uuid.UUID, country_code: str):
        period = await self.repository.get_period(period_id)
        if period is None:
            raise PeriodNotFoundException(period_id)
        if period.status != PeriodStatus.DRAFT.value:
            raise PeriodNotDraftException(period_id, period.status)

        country = await self.repository.get_active_country(country_code)
        if country is None:
            raise UnknownCountryException(country_code)
        return period, country

    async def _process_employee(
        self,
        employee: EmployeeProfile,
        period: PeriodInfo,
        run_id: uuid.UUID,
        country: CountryInfo,
        calculator: PayrollCalculator,
        created_by: Optional[uuid.UUID],
    ) -> Dict[str, Any]:
        logger.debug(f"Processing employee {employee.code} ({country.code})")
        decimals = calculator.currency_decimals

        compensation = await self.repository.get_employee_compensation(employee.id, self.today())
        attendance = await self.repository.get_attendance_summary(employee.id, period.start_date, period.end_date)
        employee = dataclasses.replace(employee, allowances=allowances_total(compensation))

        gross_salary = calculator.calculate_gross_salary(employee, compensation, attendance)
        basic_salary = extract_basic_salary(compensation, gross_salary, self.basic_ratio)

        statutory = calculator.calculate_statutory_deductions(employee, gross_salary, basic_salary)
        service_months = calculate_service_months(employee.joining_date, self.today())
        gratuity_accrual = calculator.calculate_gratuity_accrual(employee, basic_salary, service_months)
        air_ticket_accrual = calculator.calculate_air_ticket_accrual(employee)
        overtime_hours = to_decimal(attendance.overtime_hours)
        overtime_pay = calculator.calculate_overtime_pay(employee, overtime_hours, basic_salary)

        total_earnings = round_money(gross_salary + overtime_pay, decimals)
        total_deductions = statutory.employee_share
        net_salary = round_money(total_earnings - total_deductions, decimals)
        employer_contributions = statutory.employer_share

        payroll_id = await self.repository.create_detail(PayrollDetailRecord(
            period_id=period.id,
            employee_id=employee.id,
            run_id=run_id,
            payroll_country=country.code,
            basic_salary=basic_salary,
            gross_salary=total_earnings,
            total_earnings=total_earnings,
            overtime_hours=overtime_hours,
            overtime_amount=overtime_pay,
            overtime_rate=get_overtime_rate(country.code),
            total_deductions=total_deductions,
            net_salary=net_salary,
            attendance=attendance,
            social_security_employee=statutory.employee_share,
            social_security_employer=statutory.employer_share,
            pension_employee=statutory.pension_employee,
            pension_employer=statutory.pension_employer,
            gratuity_accrual=gratuity_accrual,
            air_ticket_accrual=air_ticket_accrual,
            created_by=created_by,
        ))

        if statutory.total > 0:
            await self.statutory_service.create_statutory_records(
                employee.id, period.id, country.code, statutory, gross_salary,
            )

        # Accrual rows belong to the month the period closes in
        accrual_year, accrual_month = period.end_date.year, period.end_date.month

        if gratuity_accrual > 0:
            await self.repository.create_gratuity_accrual(GratuityAccrualRecord(
                employee_id=employee.id,
                accrual_year=accrual_year,
                accrual_month=accrual_month,
                service_years=service_months // 12,
                service_months=service_months % 12,
                monthly_accrual_amount=gratuity_accrual,
                calculation_base_salary=basic_salary,
                gratuity_rate_days=Decimal(get_gratuity_rate_days(country.code, service_months)),
                country_code=country.code,
            ))

        if air_ticket_accrual > 0:
            await self.air_ticket_service.create_monthly_accrual(
                employee.id,
                accrual_year,
                accrual_month,
                air_ticket_accrual,
                employee.ticket_segment or "ECONOMY",
                employee.estimated_ticket_cost or Decimal("0"),
            )

        return {
            "payroll_id": payroll_id,
            "basic_salary": basic_salary,
            "gross_salary": total_earnings,
            "net_salary": net_salary,
            "overtime_pay": overtime_pay,
            "statutory_deductions": statutory.to_dict(),
            "employer_contributions": employer_contributions,
            "gratuity_accrual": gratuity_accrual,
            "air_ticket_accrual": air_ticket_accrual,
        }

    # ===========================================
    # REAL-TIME CTC
    # ===========================================

    async def calculate_real_time_ctc(
        self,
        employee: EmployeeProfile,
        compensation: List[CompensationLine],
    ) -> Dict[str, Any]:
        """
        Cost-to-company preview for a draft employee.

        Gross is the literal sum of fixed EARNING and ALLOWANCE amounts; no
        attendance, proration or overtime is applied and nothing is stored.
        """
        calculator = self.factory.get_calculator(employee.country_code)
        await calculator.initialize()
        info = self.factory.get_country_info(calculator.country_code)
        decimals = calculator.currency_decimals
        logger.info(f"Calculating real-time CTC for {calculator.country_code}")

        employee = dataclasses.replace(
            employee,
            country_code=calculator.country_code,
            allowances=allowances_total(compensation),
        )
        gross_salary = fixed_earnings_total(compensation)
        basic_salary = extract_basic_salary(compensation, gross_salary, self.basic_ratio)

        statutory = calculator.calculate_statutory_deductions(employee, gross_salary, basic_salary)
        service_months = calculate_service_months(employee.joining_date or self.today(), self.today())
        gratuity_accrual = calculator.calculate_gratuity_accrual(employee, basic_salary, service_months)
        air_ticket_accrual = calculator.calculate_air_ticket_accrual(employee)

        net_salary = round_money(gross_salary - statutory.employee_share, decimals)
        total_employer_costs = round_money(
            statutory.employer_share + gratuity_accrual + air_ticket_accrual, decimals,
        )
        monthly_ctc = round_money(gross_salary + total_employer_costs, decimals)

        return {
            "country_code": calculator.country_code,
            "currency": {
                "code": info.currency_code,
                "symbol": info.currency_symbol,
                "decimals": info.currency_decimals,
            },
            "earnings": {
                "gross": gross_salary,
                "basic": basic_salary,
                "allowances": gross_salary - basic_salary,
                "breakdown": categorize_compensation(compensation),
            },
            "deductions": {
                "employee": statutory.employee_share,
                "statutory": statutory.to_dict()["breakdown"],
                "net": net_salary,
            },
            "employer_costs": {
                "statutory": statutory.employer_share,
                "gratuity": gratuity_accrual,
                "air_ticket": air_ticket_accrual,
                "total": total_employer_costs,
            },
            "totals": {
                "monthly_gross": gross_salary,
                "monthly_net": net_salary,
                "monthly_employer_cost": total_employer_costs,
                "monthly_ctc": monthly_ctc,
                "annual_ctc": monthly_ctc * 12,
            },
            "service_info": {
                "joining_date": employee.joining_date,
                "service_months": service_months,
                "service_years": service_months // 12,
            },
            "calculated_at": datetime.now(timezone.utc).isoformat(),
        }

    # ===========================================
    # REPORTING
    # ===========================================

    async def get_country_payroll_summary(self, period_id: uuid.UUID, country_code: str) -> Optional[Dict[str, Any]]:
        """Totals over processed details; None when the period has none for the country."""
        code = self.factory.resolve_country(country_code).value
        summary = await self.repository.get_country_payroll_summary(period_id, code)
        if summary is None:
            return None
        info = self.factory.get_country_info(code)
        return {
            "country_code": code,
            "period_id": period_id,
            "currency_code": info.currency_code,
            "currency_symbol": info.currency_symbol,
            **summary,
        }

    async def get_available_countries(self) -> List[Dict[str, Any]]:
        return await self.repository.get_available_countries()


def create_payroll_service(db) -> MultiCountryPayrollService:
    """Service wired to SQLAlchemy-backed collaborators sharing one session."""
    from app.services.air_ticket_service import AirTicketService
    from app.services.payroll_repository import SqlAlchemyPayrollRepository
    from app.services.statutory_record_service import StatutoryRecordService

    return MultiCountryPayrollService(
        repository=SqlAlchemyPayrollRepository(db),
        air_ticket_service=AirTicketService(db),
        statutory_service=StatutoryRecordService(db),
    )
