# app/domains/wallet/models.py
"""
Append-only ledger of wallet mutations.
"""
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.shared.database.mixins import TimestampMixin
from app.shared.models.base import Base


class TransactionType(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class TransactionSource(str, Enum):
    RECHARGE = "RECHARGE"
    PURCHASE = "PURCHASE"
    WITHDRAW = "WITHDRAW"
    REFERRAL_BONUS = "REFERRAL_BONUS"
    DAILY_RETURN = "DAILY_RETURN"
    PRINCIPAL_RETURN = "PRINCIPAL_RETURN"
    REWARD = "REWARD"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class WalletTransaction(Base, TimestampMixin):
    __tablename__ = "wallet_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_wallet_transactions_amount_positive"),
        Index("ix_wallet_transactions_user_created", "user_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, index=True, nullable=False)

    type: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    reference_id: Mapped[str] = mapped_column(String, nullable=True, index=True)
    status: Mapped[str] = mapped_column(
        String(16), default=TransactionStatus.SUCCESS.value, nullable=False
    )
    balance_after: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=True)
