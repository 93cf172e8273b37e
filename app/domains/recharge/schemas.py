from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import Field

from app.shared.schemas.base import CamelModel


class RechargeCreate(CamelModel):
    amount: Decimal = Field(gt=0, max_digits=18, decimal_places=2)
    chain_name: str = Field(min_length=1, max_length=50)
    blockchain_address: Optional[str] = Field(default=None, max_length=255)
    transaction_id: str = Field(min_length=1, max_length=255)
    proof_key: Optional[str] = Field(default=None, max_length=512)


class RechargeDecision(CamelModel):
    status: Literal["APPROVED", "REJECTED"]
    admin_remark: Optional[str] = Field(default=None, max_length=1000)


class RechargeResponse(CamelModel):
    id: str
    user_id: str
    amount: Decimal
    chain_name: str
    blockchain_address: Optional[str] = None
    transaction_id: str
    proof_key: Optional[str] = None
    status: str
    approved_by_id: Optional[str] = None
    admin_remark: Optional[str] = None
    created_at: datetime
