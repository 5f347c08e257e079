"""
HRMS Multi-Country Payroll - Celery Configuration

Celery configuration for background payroll runs.
Uses Redis as the message broker and result backend.
"""

from celery import Celery

from app.config import settings


# Get Redis URL from settings or use default
redis_url = getattr(settings, 'redis_url', 'redis://localhost:6379/0')

# Create Celery app
celery_app = Celery(
    'hrms_payroll',
    broker=redis_url,
    backend=redis_url,
    include=['app.tasks.payroll_tasks'],
)

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',

    timezone='UTC',
    enable_utc=True,

    # A country run is one long task that always runs to completion:
    # no redelivery mid-way and no time limits
    task_acks_late=False,
    task_time_limit=None,
    task_soft_time_limit=None,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    # Result backend settings
    result_expires=86400,  # 24 hours
)


celery_app.conf.task_routes = {
    'app.tasks.payroll_tasks.*': {'queue': 'payroll'},
}
