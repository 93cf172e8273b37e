from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.domains.auth.dependencies import CurrentUser, get_current_user, require_admin
from app.shared.schemas.pagination import PaginatedResponse, PaginationParams, pagination_params

from .schemas import BalanceResponse, ReconcileResponse, TransactionResponse
from .service import wallet_service

router = APIRouter()


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    balance = await wallet_service.get_balance(db, user.id)
    return BalanceResponse(user_id=user.id, balance=balance)


@router.get("/transactions", response_model=PaginatedResponse[TransactionResponse])
async def get_transactions(
    params: PaginationParams = Depends(pagination_params),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await wallet_service.get_ledger(db, user.id, params)
    return PaginatedResponse[TransactionResponse].create(
        [TransactionResponse.model_validate(t) for t in items], total, params
    )


@router.get("/reconcile", response_model=ReconcileResponse)
async def reconcile(
    user_id: str = Query(..., alias="userId"),
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await wallet_service.reconcile(db, user_id)
    return ReconcileResponse(
        user_id=result.user_id,
        cached_balance=result.cached_balance,
        ledger_balance=result.ledger_balance,
        consistent=result.consistent,
    )
