from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.domains.auth.dependencies import CurrentUser, get_current_user, require_admin
from app.shared.schemas.pagination import PaginatedResponse, PaginationParams, request_pagination_params

from . import repository
from .models import RechargeStatus
from .schemas import RechargeCreate, RechargeDecision, RechargeResponse
from .service import recharge_service

router = APIRouter()


@router.post("", response_model=RechargeResponse, status_code=201)
async def create_recharge(
    body: RechargeCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await recharge_service.create(
        db,
        user_id=user.id,
        amount=body.amount,
        chain_name=body.chain_name,
        blockchain_address=body.blockchain_address,
        transaction_id=body.transaction_id,
        proof_key=body.proof_key,
    )


@router.get("/me", response_model=PaginatedResponse[RechargeResponse])
async def my_recharges(
    params: PaginationParams = Depends(request_pagination_params),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await repository.list_requests(db, params, user_id=user.id)
    return PaginatedResponse[RechargeResponse].create(
        [RechargeResponse.model_validate(r) for r in items], total, params
    )


@router.get("/pending", response_model=PaginatedResponse[RechargeResponse])
async def pending_recharges(
    params: PaginationParams = Depends(request_pagination_params),
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    items, total = await repository.list_requests(db, params, status=RechargeStatus.PENDING)
    return PaginatedResponse[RechargeResponse].create(
        [RechargeResponse.model_validate(r) for r in items], total, params
    )


@router.patch("/{request_id}/decision", response_model=RechargeResponse)
async def decide_recharge(
    request_id: str,
    body: RechargeDecision,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await recharge_service.decide(
        db, request_id, RechargeStatus(body.status), admin_id=admin.id, admin_remark=body.admin_remark
    )
