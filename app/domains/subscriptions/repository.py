import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.domains.plans.models import Plan
from app.shared.database.dialects import upsert_insert
from app.shared.schemas.pagination import PaginationParams

from .models import DailyReturnLog, Subscription


async def create_subscription(
    db: AsyncSession,
    user_id: str,
    plan_id: str,
    start_date: datetime,
    end_date: datetime,
    subscription_id: Optional[str] = None,
) -> Subscription:
    subscription = Subscription(
        id=subscription_id or str(uuid.uuid4()),
        user_id=user_id,
        plan_id=plan_id,
        start_date=start_date,
        end_date=end_date,
        is_active=True,
    )
    db.add(subscription)
    await db.flush()
    return subscription


async def list_user_subscriptions(
    db: AsyncSession, user_id: str, active_only: bool = False
) -> List[Tuple[Subscription, Plan]]:
    stmt = (
        select(Subscription, Plan)
        .join(Plan, Plan.id == Subscription.plan_id)
        .where(Subscription.user_id == user_id)
    )
    if active_only:
        stmt = stmt.where(Subscription.is_active.is_(True))
    result = await db.execute(stmt.order_by(Subscription.created_at.desc()))
    return [tuple(row) for row in result.all()]


async def list_accruable_ids(db: AsyncSession, day_start: datetime, day_end: datetime) -> List[str]:
    """Active subscriptions whose lifetime overlaps [day_start, day_end)."""
    result = await db.execute(
        select(Subscription.id)
        .where(
            Subscription.is_active.is_(True),
            Subscription.start_date < day_end,
            Subscription.end_date >= day_start,
        )
        .order_by(Subscription.id)
    )
    return list(result.scalars().all())


async def list_expired_ids(db: AsyncSession, day_start: datetime) -> List[str]:
    result = await db.execute(
        select(Subscription.id)
        .where(Subscription.is_active.is_(True), Subscription.end_date < day_start)
        .order_by(Subscription.id)
    )
    return list(result.scalars().all())


async def get_accruable(
    db: AsyncSession, subscription_id: str, day_start: datetime, day_end: datetime
) -> Optional[Tuple[Subscription, Plan]]:
    result = await db.execute(
        select(Subscription, Plan)
        .join(Plan, Plan.id == Subscription.plan_id)
        .where(
            Subscription.id == subscription_id,
            Subscription.is_active.is_(True),
            Subscription.start_date < day_end,
            Subscription.end_date >= day_start,
        )
    )
    row = result.first()
    return tuple(row) if row else None


async def lock_expired(
    db: AsyncSession, subscription_id: str, day_start: datetime
) -> Optional[Subscription]:
    """Row-lock a subscription that is still active but past its end date."""
    result = await db.execute(
        select(Subscription)
        .where(
            Subscription.id == subscription_id,
            Subscription.is_active.is_(True),
            Subscription.end_date < day_start,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def insert_log_if_absent(
    db: AsyncSession,
    subscription: Subscription,
    amount: Decimal,
    credited_for_date: date,
) -> Optional[str]:
    """
    INSERT ... ON CONFLICT (subscription_id, credited_for_date) DO NOTHING.

    Returns the new log id, or None when this subscription was already logged
    for the date.
    """
    table = DailyReturnLog.__table__
    stmt = (
        upsert_insert(db, table)
        .values(
            id=str(uuid.uuid4()),
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            plan_id=subscription.plan_id,
            amount=amount,
            credited_for_date=credited_for_date,
        )
        .on_conflict_do_nothing(index_elements=[table.c.subscription_id, table.c.credited_for_date])
        .returning(table.c.id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def link_transaction(db: AsyncSession, log_id: str, wallet_transaction_id: str):
    await db.execute(
        update(DailyReturnLog)
        .where(DailyReturnLog.id == log_id)
        .values(wallet_transaction_id=wallet_transaction_id)
    )


async def list_logs(db: AsyncSession, params: PaginationParams) -> Tuple[List[DailyReturnLog], int]:
    total = await db.scalar(select(func.count()).select_from(DailyReturnLog))
    result = await db.execute(
        select(DailyReturnLog)
        .order_by(DailyReturnLog.credited_for_date.desc(), DailyReturnLog.id)
        .offset(params.offset)
        .limit(params.limit)
    )
    return list(result.scalars().all()), int(total or 0)
