# app/domains/settings/service.py
"""
Typed access to the SystemSetting key/value rows.

Only seed_defaults() writes; everything else reads and validates.
"""
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.shared.utils.logger import get_logger

from .models import SystemSetting
from .schemas import FinancialSettings, ReferralSettings

logger = get_logger(__name__)

FINANCIAL_SETTINGS = "FINANCIAL_SETTINGS"
REFERRAL_SETTINGS = "REFERRAL_SETTINGS"

M = TypeVar("M", bound=BaseModel)


def default_financial_settings() -> FinancialSettings:
    return FinancialSettings(
        withdrawal_fee=settings.DEFAULT_WITHDRAWAL_FEE,
        min_withdrawal=settings.DEFAULT_MIN_WITHDRAWAL,
        min_recharge=settings.DEFAULT_MIN_RECHARGE,
        principal_tax=settings.DEFAULT_PRINCIPAL_TAX,
    )


def _defaults():
    return [
        {
            "key": REFERRAL_SETTINGS,
            "value": ReferralSettings().model_dump(mode="json", by_alias=True),
            "description": "Multi-level referral reward configuration",
            "is_public": False,
        },
        {
            "key": FINANCIAL_SETTINGS,
            "value": default_financial_settings().model_dump(mode="json", by_alias=True),
            "description": "Global financial settings (fees, limits, taxes)",
            "is_public": True,
        },
    ]


async def seed_defaults(db: AsyncSession) -> int:
    """Insert missing setting rows. Existing rows are left untouched."""
    created = 0
    for item in _defaults():
        if await db.get(SystemSetting, item["key"]) is None:
            logger.info(f"Seeding default setting: {item['key']}")
            db.add(SystemSetting(**item))
            created += 1
    await db.flush()
    return created


async def get_setting(db: AsyncSession, key: str, public_only: bool = False) -> Optional[SystemSetting]:
    query = select(SystemSetting).where(SystemSetting.key == key)
    if public_only:
        query = query.where(SystemSetting.is_public.is_(True))
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def _load(db: AsyncSession, key: str, model: Type[M], fallback: M) -> M:
    row = await get_setting(db, key)
    if row is None:
        logger.warning(f"Setting {key} missing, using defaults")
        return fallback
    try:
        return model.model_validate(row.value)
    except ValidationError as e:
        logger.error(f"Setting {key} is malformed: {e}")
        raise


async def get_financial_settings(db: AsyncSession) -> FinancialSettings:
    return await _load(db, FINANCIAL_SETTINGS, FinancialSettings, default_financial_settings())


async def get_referral_settings(db: AsyncSession) -> ReferralSettings:
    return await _load(db, REFERRAL_SETTINGS, ReferralSettings, ReferralSettings())
