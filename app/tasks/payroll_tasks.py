"""
HRMS Multi-Country Payroll - Payroll Tasks

Background country payroll runs for large employee populations.
"""

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional

from celery import shared_task
from fastapi.encoders import jsonable_encoder

from app.celery_app import celery_app  # noqa: F401  configured app must be current for .delay()
from app.database import async_session_factory

logger = logging.getLogger(__name__)


def run_async(coro):
    """Helper to run async functions in Celery tasks."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@shared_task(name='app.tasks.payroll_tasks.process_country_payroll_task')
def process_country_payroll_task(
    period_id: str,
    country_code: str,
    employee_ids: Optional[List[str]] = None,
    created_by: Optional[str] = None,
) -> Dict[str, Any]:
    """Process one country's payroll for a period; returns the JSON-encoded run result."""
    return run_async(_process_country_payroll(period_id, country_code, employee_ids, created_by))


async def _process_country_payroll(
    period_id: str,
    country_code: str,
    employee_ids: Optional[List[str]],
    created_by: Optional[str],
) -> Dict[str, Any]:
    from app.services.multi_country_payroll_service import create_payroll_service

    async with async_session_factory() as db:
        service = create_payroll_service(db)
        result = await service.process_country_payroll(
            uuid.UUID(period_id),
            country_code,
            employee_ids=[uuid.UUID(e) for e in employee_ids] if employee_ids else None,
            created_by=uuid.UUID(created_by) if created_by else None,
        )

    logger.info(
        f"Background {country_code} payroll run {result['run_id']} finished: "
        f"{result['processed_employees']} processed, {result['failed_employees']} failed"
    )
    return jsonable_encoder(result)
