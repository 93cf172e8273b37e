import uuid
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import asc, case, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.shared.schemas.pagination import PaginationParams, SortOrder

from .models import TransactionStatus, TransactionType, WalletTransaction


async def insert_transaction(
    db: AsyncSession,
    user_id: str,
    type: TransactionType,
    amount: Decimal,
    source: str,
    reference_id: Optional[str],
    balance_after: Decimal,
) -> WalletTransaction:
    txn = WalletTransaction(
        id=str(uuid.uuid4()),
        user_id=user_id,
        type=type.value,
        amount=amount,
        source=source,
        reference_id=reference_id,
        status=TransactionStatus.SUCCESS.value,
        balance_after=balance_after,
    )
    db.add(txn)
    await db.flush()
    return txn


async def list_transactions(
    db: AsyncSession, user_id: str, params: PaginationParams
) -> Tuple[List[WalletTransaction], int]:
    total = await db.scalar(
        select(func.count()).select_from(WalletTransaction).where(WalletTransaction.user_id == user_id)
    )

    column = getattr(WalletTransaction, params.sort_column)
    order = desc(column) if params.sort_order == SortOrder.DESC else asc(column)
    result = await db.execute(
        select(WalletTransaction)
        .where(WalletTransaction.user_id == user_id)
        # id breaks ties so pages never overlap
        .order_by(order, WalletTransaction.id)
        .offset(params.offset)
        .limit(params.limit)
    )
    return list(result.scalars().all()), int(total or 0)


async def ledger_sum(db: AsyncSession, user_id: str) -> Decimal:
    """Σ SUCCESS CREDIT − Σ SUCCESS DEBIT for a user."""
    signed = case(
        (WalletTransaction.type == TransactionType.CREDIT.value, WalletTransaction.amount),
        else_=-WalletTransaction.amount,
    )
    total = await db.scalar(
        select(func.coalesce(func.sum(signed), 0)).where(
            WalletTransaction.user_id == user_id,
            WalletTransaction.status == TransactionStatus.SUCCESS.value,
        )
    )
    return Decimal(str(total)).quantize(Decimal("0.01"))


async def list_by_reference(
    db: AsyncSession, reference_id: str, source: Optional[str] = None
) -> List[WalletTransaction]:
    query = select(WalletTransaction).where(WalletTransaction.reference_id == reference_id)
    if source:
        query = query.where(WalletTransaction.source == source)
    result = await db.execute(query.order_by(WalletTransaction.created_at))
    return list(result.scalars().all())
