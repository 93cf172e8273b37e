# app/tasks/accrual_tasks.py
from asgiref.sync import async_to_sync

from app.core.celery import celery_app
from app.core.config import settings
from app.core.redis import tick_guard
from app.domains.subscriptions import accrual
from app.shared.utils.logger import get_logger

logger = get_logger(__name__)


async def _guarded(name: str, job):
    async with tick_guard(name, settings.ACCRUAL_TICK_LOCK_TTL) as acquired:
        if not acquired:
            logger.info(f"{name} tick already running elsewhere, skipping")
            return {"skipped": True}
        result = await job()
        return result.to_dict()


@celery_app.task
def run_accrual_tick_task():
    return async_to_sync(_guarded)("daily-returns", accrual.run_accrual_tick)


@celery_app.task
def expire_subscriptions_task():
    return async_to_sync(_guarded)("subscription-expiry", accrual.expire_subscriptions)
