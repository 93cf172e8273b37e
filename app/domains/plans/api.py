from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import PlanNotFound
from app.domains.auth.dependencies import CurrentUser, require_admin

from . import repository
from .models import PlanStatus
from .schemas import PlanCreate, PlanResponse

router = APIRouter()


@router.get("", response_model=List[PlanResponse])
async def list_plans(db: AsyncSession = Depends(get_db)):
    return await repository.list_active_plans(db)


@router.get("/{plan_id}", response_model=PlanResponse)
async def get_plan(plan_id: str, db: AsyncSession = Depends(get_db)):
    plan = await repository.get_plan(db, plan_id)
    if plan is None:
        raise PlanNotFound(f"Plan {plan_id} not found")
    return plan


@router.post("", response_model=PlanResponse, status_code=201)
async def create_plan(
    body: PlanCreate,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await repository.create_plan(
        db,
        name=body.name,
        description=body.description,
        price=body.price,
        validity=body.validity,
        daily_return=body.daily_return,
    )


@router.patch("/{plan_id}/activate", response_model=PlanResponse)
async def activate_plan(
    plan_id: str,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _set_status(db, plan_id, PlanStatus.ACTIVE)


@router.patch("/{plan_id}/deactivate", response_model=PlanResponse)
async def deactivate_plan(
    plan_id: str,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _set_status(db, plan_id, PlanStatus.INACTIVE)


async def _set_status(db: AsyncSession, plan_id: str, status: PlanStatus):
    plan = await repository.get_plan(db, plan_id)
    if plan is None:
        raise PlanNotFound(f"Plan {plan_id} not found")
    return await repository.set_status(db, plan, status)
