import uuid
from typing import List, Optional, Tuple

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.shared.schemas.pagination import PaginationParams, SortOrder

from .models import RechargeRequest, RechargeStatus


async def get_by_transaction_id(db: AsyncSession, transaction_id: str) -> Optional[RechargeRequest]:
    result = await db.execute(
        select(RechargeRequest).where(RechargeRequest.transaction_id == transaction_id)
    )
    return result.scalar_one_or_none()


async def get_for_update(db: AsyncSession, request_id: str) -> Optional[RechargeRequest]:
    result = await db.execute(
        select(RechargeRequest)
        .where(RechargeRequest.id == request_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def new_request(**fields) -> RechargeRequest:
    return RechargeRequest(id=str(uuid.uuid4()), status=RechargeStatus.PENDING.value, **fields)


async def list_requests(
    db: AsyncSession,
    params: PaginationParams,
    user_id: Optional[str] = None,
    status: Optional[RechargeStatus] = None,
) -> Tuple[List[RechargeRequest], int]:
    filters = []
    if user_id:
        filters.append(RechargeRequest.user_id == user_id)
    if status:
        filters.append(RechargeRequest.status == status.value)

    total = await db.scalar(select(func.count()).select_from(RechargeRequest).where(*filters))

    column = getattr(RechargeRequest, params.sort_column)
    order = desc(column) if params.sort_order == SortOrder.DESC else asc(column)
    result = await db.execute(
        select(RechargeRequest)
        .where(*filters)
        .order_by(order, RechargeRequest.id)
        .offset(params.offset)
        .limit(params.limit)
    )
    return list(result.scalars().all()), int(total or 0)
