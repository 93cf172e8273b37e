# app/domains/plans/models.py
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.shared.database.mixins import TimestampMixin
from app.shared.models.base import Base


class PlanStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Plan(Base, TimestampMixin):
    __tablename__ = "plans"
    __table_args__ = (
        CheckConstraint("price > 0", name="ck_plans_price_positive"),
        CheckConstraint("validity > 0", name="ck_plans_validity_positive"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    # days
    validity: Mapped[int] = mapped_column(Integer, nullable=False)
    # credited to the subscriber once per day
    daily_return: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), default=Decimal("0.00"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(16), default=PlanStatus.ACTIVE.value, index=True, nullable=False
    )
