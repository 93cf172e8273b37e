# app/core/celery.py
from celery import Celery
from celery.schedules import crontab

from app.core.config import settings

celery_app = Celery(
    "wallet_tasks",
    broker=settings.RABBITMQ_URL,
    backend=settings.REDIS_URL,
    include=["app.tasks.accrual_tasks"],
)


def beat_schedule() -> dict:
    """Both ticks are idempotent per day, cron times are UTC."""
    return {
        "daily-return-accrual": {
            "task": "app.tasks.accrual_tasks.run_accrual_tick_task",
            "schedule": crontab(hour=settings.ACCRUAL_CRON_HOUR, minute=settings.ACCRUAL_CRON_MINUTE),
        },
        "subscription-expiry": {
            "task": "app.tasks.accrual_tasks.expire_subscriptions_task",
            "schedule": crontab(hour=settings.EXPIRY_CRON_HOUR, minute=settings.EXPIRY_CRON_MINUTE),
        },
    }


def init_celery():
    celery_app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        broker_connection_retry_on_startup=True,
        task_track_started=True,
        task_acks_late=False,
        worker_prefetch_multiplier=1,
        beat_schedule=beat_schedule(),
    )


async def check_connection() -> bool:
    try:
        with celery_app.connection_or_acquire() as conn:
            conn.heartbeat_check()
            return True
    except Exception:
        return False


init_celery()
