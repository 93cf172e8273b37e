# app/domains/recharge/models.py
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.shared.database.mixins import TimestampMixin
from app.shared.models.base import Base


class RechargeStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RechargeRequest(Base, TimestampMixin):
    __tablename__ = "recharge_requests"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_recharge_requests_amount_positive"),
        Index("ix_recharge_requests_status_created", "status", "created_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    chain_name: Mapped[str] = mapped_column(String, nullable=False)
    blockchain_address: Mapped[str] = mapped_column(String, nullable=True)
    # On-chain transfer hash; one deposit can back only one request
    transaction_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    proof_key: Mapped[str] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), default=RechargeStatus.PENDING.value, nullable=False
    )
    approved_by_id: Mapped[str] = mapped_column(String, nullable=True)
    admin_remark: Mapped[str] = mapped_column(Text, nullable=True)
