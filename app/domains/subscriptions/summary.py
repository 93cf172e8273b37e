# app/domains/subscriptions/summary.py
"""
Day/week/month rollups of daily returns.

Every credited DailyReturnLog adds its amount to three DailyReturnSummary rows
(one per period type) in the same transaction, so graph queries read a handful
of pre-aggregated rows instead of scanning the log.
"""
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domains.users import repository as user_repository
from app.shared.database.dialects import upsert_insert
from app.shared.utils.logger import get_logger
from app.shared.utils.money import to_money

from .models import DailyReturnLog, DailyReturnSummary, PeriodType

logger = get_logger(__name__)


def period_key(day: date, period_type: PeriodType) -> str:
    period_type = PeriodType(period_type)
    if period_type == PeriodType.DAY:
        return day.isoformat()
    if period_type == PeriodType.WEEK:
        # ISO week-numbering year: 2024-12-30 belongs to 2025-W01
        iso_year, iso_week, _ = day.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    return f"{day.year}-{day.month:02d}"


def period_start(key: str, period_type: PeriodType) -> date:
    """First calendar day of the period named by key."""
    period_type = PeriodType(period_type)
    if period_type == PeriodType.DAY:
        return date.fromisoformat(key)
    if period_type == PeriodType.WEEK:
        year, week = key.split("-W")
        return date.fromisocalendar(int(year), int(week), 1)
    year, month = key.split("-")
    return date(int(year), int(month), 1)


def period_keys(day: date) -> List[Tuple[PeriodType, str]]:
    return [(period_type, period_key(day, period_type)) for period_type in PeriodType]


async def upsert(
    db: AsyncSession,
    user_id: str,
    period_type: PeriodType,
    key: str,
    amount: Decimal,
    count: int = 1,
):
    table = DailyReturnSummary.__table__
    stmt = upsert_insert(db, table).values(
        id=str(uuid.uuid4()),
        user_id=user_id,
        period_type=PeriodType(period_type).value,
        period_key=key,
        total_amount=amount,
        count=count,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.user_id, table.c.period_type, table.c.period_key],
        set_={
            "total_amount": table.c.total_amount + stmt.excluded.total_amount,
            "count": table.c.count + stmt.excluded.count,
        },
    )
    await db.execute(stmt)


async def record_credit(db: AsyncSession, user_id: str, credited_for_date: date, amount: Decimal):
    for period_type, key in period_keys(credited_for_date):
        await upsert(db, user_id, period_type, key, amount)


async def rebuild(db: AsyncSession, user_id: Optional[str] = None) -> Dict[str, int]:
    """
    Recompute summaries from the raw log.

    Repair path only; the accrual engine never calls this. Deletes the affected
    summary rows and re-inserts exact totals inside the caller's transaction.

    The affected user rows are locked first. Every accrual credit holds the
    same user lock until its summary upsert commits, so no credit can land
    between the log read and the summary rewrite.
    """
    await user_repository.lock_users(db, user_id)

    logs = select(
        DailyReturnLog.user_id,
        DailyReturnLog.credited_for_date,
        func.sum(DailyReturnLog.amount),
        func.count(DailyReturnLog.id),
    ).group_by(DailyReturnLog.user_id, DailyReturnLog.credited_for_date)
    purge = delete(DailyReturnSummary)
    if user_id:
        logs = logs.where(DailyReturnLog.user_id == user_id)
        purge = purge.where(DailyReturnSummary.user_id == user_id)

    totals: Dict[Tuple[str, PeriodType, str], List] = defaultdict(lambda: [Decimal("0.00"), 0])
    processed = 0
    for uid, day, amount, count in (await db.execute(logs)).all():
        processed += count
        for period_type, key in period_keys(day):
            bucket = totals[(uid, period_type, key)]
            bucket[0] += to_money(amount)
            bucket[1] += count

    await db.execute(purge)
    db.add_all(
        DailyReturnSummary(
            id=str(uuid.uuid4()),
            user_id=uid,
            period_type=period_type.value,
            period_key=key,
            total_amount=total,
            count=count,
        )
        for (uid, period_type, key), (total, count) in totals.items()
    )
    await db.flush()

    logger.info(f"Summary rebuild complete: logs={processed} summaries={len(totals)} user={user_id or 'all'}")
    return {"processed": processed, "upserted": len(totals)}


@dataclass
class PeriodTotal:
    period_key: str
    period_start: date
    total_amount: Decimal
    count: int


async def query(
    db: AsyncSession,
    user_id: str,
    period_type: PeriodType,
    since: Optional[date] = None,
) -> List[PeriodTotal]:
    """Summary rows for one user and period type, ordered by period key."""
    stmt = select(DailyReturnSummary).where(
        DailyReturnSummary.user_id == user_id,
        DailyReturnSummary.period_type == PeriodType(period_type).value,
    )
    if since:
        # keys sort lexicographically in time order within one period type
        stmt = stmt.where(DailyReturnSummary.period_key >= period_key(since, period_type))
    rows = (await db.execute(stmt.order_by(DailyReturnSummary.period_key))).scalars().all()
    return [
        PeriodTotal(
            period_key=row.period_key,
            period_start=period_start(row.period_key, period_type),
            total_amount=to_money(row.total_amount),
            count=row.count,
        )
        for row in rows
    ]


async def query_logs(db: AsyncSession, user_id: str, since: Optional[date] = None) -> List[PeriodTotal]:
    """Raw per-log rows in the same shape as query(), one entry per credited day and subscription."""
    stmt = select(DailyReturnLog).where(DailyReturnLog.user_id == user_id)
    if since:
        stmt = stmt.where(DailyReturnLog.credited_for_date >= since)
    stmt = stmt.order_by(DailyReturnLog.credited_for_date, DailyReturnLog.id)
    rows = (await db.execute(stmt)).scalars().all()
    return [
        PeriodTotal(
            period_key=row.credited_for_date.isoformat(),
            period_start=row.credited_for_date,
            total_amount=to_money(row.amount),
            count=1,
        )
        for row in rows
    ]
