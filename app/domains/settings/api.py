from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db

from . import service
from .schemas import FinancialSettings

router = APIRouter()


@router.get("/financial", response_model=FinancialSettings, response_model_by_alias=True)
async def get_financial_settings(db: AsyncSession = Depends(get_db)):
    row = await service.get_setting(db, service.FINANCIAL_SETTINGS, public_only=True)
    if row is None:
        raise HTTPException(status_code=404, detail="Setting not found")
    return FinancialSettings.model_validate(row.value)
