# app/domains/users/models.py
from decimal import Decimal

from sqlalchemy import Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.shared.database.mixins import TimestampMixin
from app.shared.models.base import Base


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=True)
    role: Mapped[str] = mapped_column(String, default="user")

    # Cached balance; always equal to the signed sum of SUCCESS ledger rows
    wallet_balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), default=Decimal("0.00"), nullable=False
    )

    referral_code: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    # Referrer's user id. Plain string, no FK: deleting a referrer never cascades
    referred_by: Mapped[str] = mapped_column(String, nullable=True, index=True)
