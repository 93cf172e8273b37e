import secrets
import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import User


def generate_referral_code() -> str:
    return secrets.token_hex(4).upper()


async def get_user(db: AsyncSession, user_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_for_update(db: AsyncSession, user_id: str) -> Optional[User]:
    """Row-locks the user (SELECT ... FOR UPDATE) and re-reads it from the database."""
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_referrer_id(db: AsyncSession, user_id: str) -> Optional[str]:
    return await db.scalar(select(User.referred_by).where(User.id == user_id))


async def create_user(
    db: AsyncSession,
    name: Optional[str] = None,
    referred_by: Optional[str] = None,
    role: str = "user",
    user_id: Optional[str] = None,
) -> User:
    user = User(
        id=user_id or str(uuid.uuid4()),
        name=name,
        role=role,
        wallet_balance=Decimal("0.00"),
        referral_code=generate_referral_code(),
        referred_by=referred_by,
    )
    db.add(user)
    await db.flush()
    return user


async def lock_users(db: AsyncSession, user_id: Optional[str] = None) -> List[str]:
    """Row-lock one user, or every user in id order, and return the locked ids."""
    stmt = select(User.id).order_by(User.id).with_for_update()
    if user_id:
        stmt = stmt.where(User.id == user_id)
    return list((await db.execute(stmt)).scalars().all())
