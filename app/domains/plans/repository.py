import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Plan, PlanStatus


async def get_plan(db: AsyncSession, plan_id: str) -> Optional[Plan]:
    return await db.get(Plan, plan_id)


async def list_active_plans(db: AsyncSession) -> List[Plan]:
    result = await db.execute(
        select(Plan).where(Plan.status == PlanStatus.ACTIVE.value).order_by(Plan.price)
    )
    return list(result.scalars().all())


async def create_plan(
    db: AsyncSession,
    name: str,
    price: Decimal,
    validity: int,
    daily_return: Decimal,
    description: Optional[str] = None,
    status: PlanStatus = PlanStatus.ACTIVE,
) -> Plan:
    plan = Plan(
        id=str(uuid.uuid4()),
        name=name,
        description=description,
        price=price,
        validity=validity,
        daily_return=daily_return,
        status=status.value,
    )
    db.add(plan)
    await db.flush()
    return plan


async def set_status(db: AsyncSession, plan: Plan, status: PlanStatus) -> Plan:
    plan.status = status.value
    await db.flush()
    return plan
