from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from app.shared.schemas.base import CamelModel


class SubscriptionResponse(CamelModel):
    id: str
    plan_id: str
    plan_name: Optional[str] = None
    daily_return: Optional[Decimal] = None
    start_date: datetime
    end_date: datetime
    is_active: bool


class DailyReturnPoint(CamelModel):
    period_key: str
    period_start: date
    total_amount: Decimal
    count: int


class DailyReturnTotals(CamelModel):
    total_profit: Decimal
    count: int


class DailyReturnsResponse(CamelModel):
    data: List[DailyReturnPoint]
    summary: DailyReturnTotals


class DailyReturnLogResponse(CamelModel):
    id: str
    subscription_id: str
    user_id: str
    plan_id: str
    amount: Decimal
    credited_for_date: date
    wallet_transaction_id: Optional[str] = None


class AccrualTickResponse(CamelModel):
    date: date
    processed: int
    credited: int
    skipped: int
    failed: int
    total_amount: Decimal


class ExpiryResponse(CamelModel):
    date: date
    processed: int
    expired: int
    skipped: int
    failed: int
    total_returned: Decimal


class RebuildResponse(CamelModel):
    processed: int
    upserted: int
