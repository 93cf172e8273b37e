from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.domains.auth.dependencies import CurrentUser, get_current_user, require_admin
from app.shared.schemas.pagination import PaginatedResponse, PaginationParams, request_pagination_params

from . import repository
from .models import WithdrawalStatus
from .schemas import WithdrawalCreate, WithdrawalDecision, WithdrawalResponse
from .service import withdrawal_service

router = APIRouter()


@router.post("", response_model=WithdrawalResponse, status_code=201)
async def create_withdrawal(
    body: WithdrawalCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await withdrawal_service.create(
        db,
        user_id=user.id,
        amount=body.amount,
        chain_name=body.chain_name,
        blockchain_address=body.blockchain_address,
    )


@router.get("/me", response_model=PaginatedResponse[WithdrawalResponse])
async def my_withdrawals(
    params: PaginationParams = Depends(request_pagination_params),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await repository.list_requests(db, params, user_id=user.id)
    return PaginatedResponse[WithdrawalResponse].create(
        [WithdrawalResponse.model_validate(r) for r in items], total, params
    )


@router.get("/pending", response_model=PaginatedResponse[WithdrawalResponse])
async def pending_withdrawals(
    params: PaginationParams = Depends(request_pagination_params),
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    items, total = await repository.list_requests(db, params, status=WithdrawalStatus.PENDING)
    return PaginatedResponse[WithdrawalResponse].create(
        [WithdrawalResponse.model_validate(r) for r in items], total, params
    )


@router.patch("/{request_id}/decision", response_model=WithdrawalResponse)
async def decide_withdrawal(
    request_id: str,
    body: WithdrawalDecision,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await withdrawal_service.decide(
        db, request_id, WithdrawalStatus(body.status), admin_id=admin.id, admin_remark=body.admin_remark
    )
