from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from app.shared.schemas.base import CamelModel


class PlanCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(gt=0, max_digits=18, decimal_places=2)
    validity: int = Field(gt=0, description="Days")
    daily_return: Decimal = Field(ge=0, max_digits=18, decimal_places=2)


class PlanResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    validity: int
    daily_return: Decimal
    status: str
    created_at: datetime
