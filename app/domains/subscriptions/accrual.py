# app/domains/subscriptions/accrual.py
"""
Daily return accrual and subscription expiry.

Both jobs split their batch into one transaction per subscription. A unit that
fails is logged and counted without touching the others. The accrual idempotency
key (subscription_id, credited_for_date) makes re-running a tick for the same
day a no-op, so ticks can be retried blindly.
"""
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional

from app.core import database
from app.core.config import settings
from app.core.exceptions import DuplicateAccrual, LockTimeout
from app.domains.plans import repository as plan_repository
from app.domains.settings import service as settings_service
from app.domains.wallet.models import TransactionSource
from app.domains.wallet.service import wallet_service
from app.shared.utils.logger import get_logger
from app.shared.utils.money import percent_of, to_money
from app.shared.utils.retry import RetryConfig, retry_async

from . import repository, summary

logger = get_logger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def day_end(day: date) -> datetime:
    return day_start(day + timedelta(days=1))


def lock_retry_config() -> RetryConfig:
    return RetryConfig(
        max_attempts=settings.ACCRUAL_MAX_ATTEMPTS,
        base_delay=settings.ACCRUAL_RETRY_BASE_DELAY,
        retryable_exceptions=[LockTimeout],
    )


@dataclass
class AccrualTickResult:
    date: date
    processed: int = 0
    credited: int = 0
    skipped: int = 0
    failed: int = 0
    total_amount: Decimal = field(default_factory=lambda: Decimal("0.00"))

    def to_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        data["total_amount"] = str(self.total_amount)
        return data


@dataclass
class ExpiryResult:
    date: date
    processed: int = 0
    expired: int = 0
    skipped: int = 0
    failed: int = 0
    total_returned: Decimal = field(default_factory=lambda: Decimal("0.00"))

    def to_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        data["total_returned"] = str(self.total_returned)
        return data


async def accrue_subscription(subscription_id: str, for_date: date) -> Optional[Decimal]:
    """
    Credit one subscription's daily return for for_date in its own transaction.

    Returns the credited amount, None when there is nothing to pay (plan
    without a daily return, subscription not running on for_date). Raises
    DuplicateAccrual when the day was already logged.
    """
    async with database.transaction() as db:
        found = await repository.get_accruable(
            db, subscription_id, day_start(for_date), day_end(for_date)
        )
        if found is None:
            return None
        subscription, plan = found

        amount = to_money(plan.daily_return or 0)
        if amount <= 0:
            return None

        log_id = await repository.insert_log_if_absent(db, subscription, amount, for_date)
        if log_id is None:
            raise DuplicateAccrual(
                f"Subscription {subscription_id} already credited for {for_date}",
                {"subscription_id": subscription_id, "date": for_date.isoformat()},
            )

        txn = await wallet_service.credit(
            db, subscription.user_id, amount, TransactionSource.DAILY_RETURN, subscription.id
        )
        await repository.link_transaction(db, log_id, txn.id)
        await summary.record_credit(db, subscription.user_id, for_date, amount)
        return amount


async def run_accrual_tick(for_date: Optional[date] = None) -> AccrualTickResult:
    for_date = for_date or utc_today()
    result = AccrualTickResult(date=for_date)

    async with database.AsyncSessionLocal() as db:
        subscription_ids = await repository.list_accruable_ids(db, day_start(for_date), day_end(for_date))

    logger.info(f"Starting daily returns for {for_date}: {len(subscription_ids)} active subscriptions")
    retry_config = lock_retry_config()

    for subscription_id in subscription_ids:
        result.processed += 1
        try:
            amount = await retry_async(accrue_subscription, retry_config, subscription_id, for_date)
        except DuplicateAccrual:
            logger.debug(f"Daily return for {subscription_id} on {for_date} already credited")
            result.skipped += 1
            continue
        except Exception as e:
            logger.error(f"Failed to credit daily return for subscription {subscription_id}: {e}")
            result.failed += 1
            continue

        if amount is None:
            result.skipped += 1
        else:
            result.credited += 1
            result.total_amount += amount

    logger.info(
        f"Daily returns complete for {for_date}: credited={result.credited} "
        f"skipped={result.skipped} failed={result.failed} total={result.total_amount}"
    )
    return result


async def expire_subscription(
    subscription_id: str, for_date: date, principal_tax: Decimal
) -> Optional[Decimal]:
    """
    Deactivate one expired subscription and return its principal minus tax.

    The row is re-checked under lock, so a second run finds nothing to do and
    returns None.
    """
    async with database.transaction() as db:
        subscription = await repository.lock_expired(db, subscription_id, day_start(for_date))
        if subscription is None:
            return None

        plan = await plan_repository.get_plan(db, subscription.plan_id)
        price = to_money(plan.price) if plan else Decimal("0.00")
        tax = percent_of(price, principal_tax)
        returned = price - tax

        subscription.is_active = False
        if returned > 0:
            await wallet_service.credit(
                db, subscription.user_id, returned, TransactionSource.PRINCIPAL_RETURN, subscription.id
            )
        await db.flush()

        logger.info(f"Subscription {subscription_id} expired. Principal returned: {returned} (tax: {tax})")
        return returned


async def expire_subscriptions(for_date: Optional[date] = None) -> ExpiryResult:
    for_date = for_date or utc_today()
    result = ExpiryResult(date=for_date)

    async with database.AsyncSessionLocal() as db:
        subscription_ids = await repository.list_expired_ids(db, day_start(for_date))
        financial = await settings_service.get_financial_settings(db)

    if subscription_ids:
        logger.info(
            f"Found {len(subscription_ids)} subscriptions to expire. "
            f"Principal tax: {financial.principal_tax}%"
        )
    retry_config = lock_retry_config()

    for subscription_id in subscription_ids:
        result.processed += 1
        try:
            returned = await retry_async(
                expire_subscription, retry_config, subscription_id, for_date, financial.principal_tax
            )
        except Exception as e:
            logger.error(f"Failed to expire subscription {subscription_id}: {e}")
            result.failed += 1
            continue

        if returned is None:
            result.skipped += 1
        else:
            result.expired += 1
            result.total_returned += returned

    logger.info(
        f"Subscription expiry complete for {for_date}: expired={result.expired} "
        f"skipped={result.skipped} failed={result.failed} returned={result.total_returned}"
    )
    return result
