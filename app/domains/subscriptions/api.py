from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.domains.auth.dependencies import CurrentUser, get_current_user, require_admin
from app.shared.schemas.pagination import PaginatedResponse, PaginationParams, pagination_params
from app.shared.utils.logger import get_logger

from . import accrual, repository, summary
from .models import PeriodType
from .schemas import (AccrualTickResponse, DailyReturnLogResponse, DailyReturnPoint,
                      DailyReturnsResponse, DailyReturnTotals, ExpiryResponse,
                      RebuildResponse, SubscriptionResponse)
from .service import subscription_service

logger = get_logger(__name__)
router = APIRouter()


def _past_or_today(for_date: Optional[date]) -> Optional[date]:
    if for_date and for_date > accrual.utc_today():
        raise HTTPException(status_code=422, detail=f"Cannot run for a future date: {for_date}")
    return for_date


def _subscription_response(subscription, plan) -> SubscriptionResponse:
    return SubscriptionResponse(
        id=subscription.id,
        plan_id=subscription.plan_id,
        plan_name=plan.name,
        daily_return=plan.daily_return,
        start_date=subscription.start_date,
        end_date=subscription.end_date,
        is_active=subscription.is_active,
    )


@router.post("/buy/{plan_id}", response_model=SubscriptionResponse, status_code=201)
async def buy_plan(
    plan_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    subscription = await subscription_service.purchase(db, user.id, plan_id)
    return SubscriptionResponse.model_validate(subscription)


@router.get("/me", response_model=List[SubscriptionResponse])
async def my_subscriptions(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await subscription_service.get_my_subscriptions(db, user.id, active_only=True)
    return [_subscription_response(sub, plan) for sub, plan in rows]


@router.get("/history", response_model=List[SubscriptionResponse])
async def subscription_history(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await subscription_service.get_my_subscriptions(db, user.id, active_only=False)
    return [_subscription_response(sub, plan) for sub, plan in rows]


@router.get("/daily-returns/my", response_model=DailyReturnsResponse)
async def my_daily_returns(
    since: Optional[date] = Query(None),
    group_by: Optional[PeriodType] = Query(None, alias="groupBy"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Daily return history for graphs.

    With groupBy the pre-aggregated summary table is read; without it the raw
    logs are returned, one entry per credited log.
    """
    if group_by:
        points = await summary.query(db, user.id, group_by, since)
    else:
        points = await summary.query_logs(db, user.id, since)

    return DailyReturnsResponse(
        data=[DailyReturnPoint.model_validate(p) for p in points],
        summary=DailyReturnTotals(
            total_profit=sum((p.total_amount for p in points), Decimal("0.00")),
            count=sum(p.count for p in points),
        ),
    )


@router.get("/daily-returns", response_model=PaginatedResponse[DailyReturnLogResponse])
async def list_daily_returns(
    params: PaginationParams = Depends(pagination_params),
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    logs, total = await repository.list_logs(db, params)
    return PaginatedResponse[DailyReturnLogResponse].create(
        [DailyReturnLogResponse.model_validate(log) for log in logs], total, params
    )


@router.post("/daily-returns/trigger", response_model=AccrualTickResponse)
async def trigger_daily_returns(
    for_date: Optional[date] = Query(None, alias="date"),
    admin: CurrentUser = Depends(require_admin),
):
    logger.info(f"Daily returns triggered manually by admin {admin.id}")
    result = await accrual.run_accrual_tick(_past_or_today(for_date))
    return AccrualTickResponse.model_validate(result)


@router.post("/expiry/trigger", response_model=ExpiryResponse)
async def trigger_expiry(
    for_date: Optional[date] = Query(None, alias="date"),
    admin: CurrentUser = Depends(require_admin),
):
    logger.info(f"Subscription expiry triggered manually by admin {admin.id}")
    result = await accrual.expire_subscriptions(_past_or_today(for_date))
    return ExpiryResponse.model_validate(result)


@router.post("/daily-returns/summaries/rebuild", response_model=RebuildResponse)
async def rebuild_summaries(
    user_id: Optional[str] = Query(None, alias="userId"),
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return RebuildResponse(**await summary.rebuild(db, user_id))
