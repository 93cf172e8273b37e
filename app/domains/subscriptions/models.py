# app/domains/subscriptions/models.py
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (Boolean, Date, DateTime, Index, Integer, Numeric, String,
                        UniqueConstraint)
from sqlalchemy.orm import Mapped, mapped_column

from app.shared.database.mixins import TimestampMixin
from app.shared.models.base import Base


class PeriodType(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class Subscription(Base, TimestampMixin):
    __tablename__ = "subscriptions"
    __table_args__ = (
        Index("ix_subscriptions_user_active", "user_id", "is_active"),
        Index("ix_subscriptions_end_active", "end_date", "is_active"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    plan_id: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class DailyReturnLog(Base, TimestampMixin):
    __tablename__ = "daily_return_logs"
    __table_args__ = (
        # idempotency key of the accrual engine
        UniqueConstraint(
            "subscription_id", "credited_for_date", name="uq_daily_return_subscription_date"
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    subscription_id: Mapped[str] = mapped_column(String, nullable=False)
    user_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    plan_id: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    credited_for_date: Mapped[date] = mapped_column(Date, index=True, nullable=False)
    wallet_transaction_id: Mapped[str] = mapped_column(String, nullable=True)


class DailyReturnSummary(Base, TimestampMixin):
    """Per-user day/week/month rollup of DailyReturnLog, maintained by upsert."""

    __tablename__ = "daily_return_summaries"
    __table_args__ = (
        UniqueConstraint("user_id", "period_type", "period_key", name="uq_summary_user_period"),
        Index("ix_summary_user_period_type", "user_id", "period_type"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    period_type: Mapped[str] = mapped_column(String(8), nullable=False)
    # day: 2026-01-20, week: 2026-W03, month: 2026-01
    period_key: Mapped[str] = mapped_column(String(20), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), default=Decimal("0.00"), nullable=False
    )
    count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
