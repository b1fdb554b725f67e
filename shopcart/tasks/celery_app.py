"""
Celery Application Configuration
"""

from celery import Celery
from celery.schedules import crontab

from ..api.config import get_settings

settings = get_settings()

app = Celery(
    "shopcart",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "shopcart.tasks.notifications",
        "shopcart.tasks.users",
        "shopcart.tasks.subscriptions",
    ],
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,  # 10 minutes
    task_soft_time_limit=8 * 60,  # 8 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

app.conf.beat_schedule = {
    # Remove duplicate newsletter subscriptions (daily at 3 AM)
    "cleanup-duplicate-subscriptions-daily": {
        "task": "tasks.cleanup_duplicate_subscriptions",
        "schedule": crontab(hour=3, minute=0),
    },
}

if __name__ == "__main__":
    app.start()
