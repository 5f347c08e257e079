"""
HRMS Multi-Country Payroll - Background Tasks Package

Celery background tasks.
"""

from app.tasks.payroll_tasks import process_country_payroll_task

__all__ = [
    "process_country_payroll_task",
]
