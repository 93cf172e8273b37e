# app/domains/withdrawals/models.py
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.shared.database.mixins import TimestampMixin
from app.shared.models.base import Base


class WithdrawalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class WithdrawalRequest(Base, TimestampMixin):
    __tablename__ = "withdrawal_requests"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_withdrawal_requests_amount_positive"),
        CheckConstraint("fee >= 0", name="ck_withdrawal_requests_fee_non_negative"),
        CheckConstraint("net_amount >= 0", name="ck_withdrawal_requests_net_non_negative"),
        Index("ix_withdrawal_requests_status_created", "status", "created_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    # fixed once at creation, never recomputed
    fee: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    chain_name: Mapped[str] = mapped_column(String, nullable=False)
    blockchain_address: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), default=WithdrawalStatus.PENDING.value, nullable=False
    )
    approved_by_id: Mapped[str] = mapped_column(String, nullable=True)
    admin_remark: Mapped[str] = mapped_column(Text, nullable=True)
