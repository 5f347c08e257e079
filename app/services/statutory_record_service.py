"""
HRMS Multi-Country Payroll - Statutory Record Service

Persists the itemized statutory breakdown of an employee's payroll so each
scheme (PF, ESI, GOSI, PASI, ...) can be remitted and reported on its own.
"""

import logging
import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payroll import RemittanceStatus, StatutoryDeduction
from app.services.payroll_calculators.types import StatutoryDeductionResult

logger = logging.getLogger(__name__)


class StatutoryRecordService:
    """Writes one StatutoryDeduction row per contributing breakdown component."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_statutory_records(
        self,
        employee_id: uuid.UUID,
        period_id: Optional[uuid.UUID],
        country_code: str,
        deduction_result: StatutoryDeductionResult,
        gross_salary: Decimal,
    ) -> List[uuid.UUID]:
        """Exempt and zero-amount components are not persisted."""
        record_ids: List[uuid.UUID] = []

        for deduction_type, component in deduction_result.breakdown.items():
            if component.total <= 0:
                continue
            record = StatutoryDeduction(
                id=uuid.uuid4(),
                employee_id=employee_id,
                payroll_period_id=period_id,
                country_code=country_code,
                deduction_type=deduction_type,
                deduction_name=component.policy_tag or deduction_type.upper(),
                calculation_base=component.calculation_base,
                gross_salary=gross_salary,
                effective_rate=component.effective_rate or None,
                employee_amount=component.employee,
                employer_amount=component.employer,
                total_amount=component.total,
                payment_status=RemittanceStatus.PENDING,
            )
            self.db.add(record)
            record_ids.append(record.id)

        if record_ids:
            await self.db.flush()
        logger.debug(
            f"Stored {len(record_ids)} statutory records for employee {employee_id} ({country_code})"
        )
        return record_ids
