import uuid
from typing import List, Optional, Tuple

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.shared.schemas.pagination import PaginationParams, SortOrder

from .models import WithdrawalRequest, WithdrawalStatus


async def add_request(db: AsyncSession, **fields) -> WithdrawalRequest:
    withdrawal = WithdrawalRequest(
        id=str(uuid.uuid4()), status=WithdrawalStatus.PENDING.value, **fields
    )
    db.add(withdrawal)
    await db.flush()
    return withdrawal


async def get_for_update(db: AsyncSession, request_id: str) -> Optional[WithdrawalRequest]:
    result = await db.execute(
        select(WithdrawalRequest)
        .where(WithdrawalRequest.id == request_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_requests(
    db: AsyncSession,
    params: PaginationParams,
    user_id: Optional[str] = None,
    status: Optional[WithdrawalStatus] = None,
) -> Tuple[List[WithdrawalRequest], int]:
    filters = []
    if user_id:
        filters.append(WithdrawalRequest.user_id == user_id)
    if status:
        filters.append(WithdrawalRequest.status == status.value)

    total = await db.scalar(select(func.count()).select_from(WithdrawalRequest).where(*filters))

    column = getattr(WithdrawalRequest, params.sort_column)
    order = desc(column) if params.sort_order == SortOrder.DESC else asc(column)
    result = await db.execute(
        select(WithdrawalRequest)
        .where(*filters)
        .order_by(order, WithdrawalRequest.id)
        .offset(params.offset)
        .limit(params.limit)
    )
    return list(result.scalars().all()), int(total or 0)
