from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.shared.schemas.base import CamelModel


class BalanceResponse(CamelModel):
    user_id: str
    balance: Decimal


class TransactionResponse(CamelModel):
    id: str
    type: str
    amount: Decimal
    source: str
    reference_id: Optional[str] = None
    status: str
    balance_after: Optional[Decimal] = None
    created_at: datetime


class ReconcileResponse(CamelModel):
    user_id: str
    cached_balance: Decimal
    ledger_balance: Decimal
    consistent: bool
