"""
HRMS Multi-Country Payroll - Air Ticket Accrual Service

Monthly accrual of the biennial air ticket entitlement. Each month adds one
row; accruals are consumed first-in, first-out when a ticket is utilized,
so every row carries its FIFO sequence.
"""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payroll import AirTicketAccrual, AirTicketAccrualStatus

logger = logging.getLogger(__name__)


class AirTicketService:
    """Writes air ticket accrual rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_monthly_accrual(
        self,
        employee_id: uuid.UUID,
        year: int,
        month: int,
        amount: Decimal,
        segment: Optional[str] = None,
        estimated_cost: Optional[Decimal] = None,
    ) -> uuid.UUID:
        """
        Record one month of air ticket accrual.

        The total carries forward from the latest earlier month, net of
        what that month records as utilized.
        Re-accruing an existing month overwrites that month's amount.
        """
        previous = await self.db.execute(
            select(AirTicketAccrual.total_accrued_amount, AirTicketAccrual.utilized_amount)
            .where(
                and_(
                    AirTicketAccrual.employee_id == employee_id,
                    or_(
                        AirTicketAccrual.accrual_year < year,
                        and_(
                            AirTicketAccrual.accrual_year == year,
                            AirTicketAccrual.accrual_month < month,
                        ),
                    ),
                )
            )
            .order_by(AirTicketAccrual.accrual_year.desc(), AirTicketAccrual.accrual_month.desc())
            .limit(1)
        )
        row = previous.first()
        previous_total = (row[0] - (row[1] or Decimal("0"))) if row else Decimal("0")

        existing = await self.db.execute(
            select(AirTicketAccrual).where(
                and_(
                    AirTicketAccrual.employee_id == employee_id,
                    AirTicketAccrual.accrual_year == year,
                    AirTicketAccrual.accrual_month == month,
                )
            )
        )
        accrual = existing.scalar_one_or_none()

        if accrual is None:
            count_result = await self.db.execute(
                select(func.count(AirTicketAccrual.id)).where(AirTicketAccrual.employee_id == employee_id)
            )
            accrual = AirTicketAccrual(
                id=uuid.uuid4(),
                employee_id=employee_id,
                accrual_year=year,
                accrual_month=month,
                utilized_amount=Decimal("0"),
                status=AirTicketAccrualStatus.ACCRUED,
                fifo_sequence=(count_result.scalar() or 0) + 1,
            )
            self.db.add(accrual)

        accrual.monthly_accrual_amount = amount
        accrual.total_accrued_amount = previous_total + amount
        accrual.ticket_segment = segment
        accrual.estimated_ticket_cost = estimated_cost

        await self.db.flush()
        logger.debug(f"Air ticket accrual {year}-{month:02d} for employee {employee_id}: {amount}")
        return accrual.id
