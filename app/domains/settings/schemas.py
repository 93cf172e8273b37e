from decimal import Decimal
from typing import List

from pydantic import Field, field_validator

from app.shared.schemas.base import CamelModel


class FinancialSettings(CamelModel):
    withdrawal_fee: Decimal = Field(ge=0)
    min_withdrawal: Decimal = Field(ge=0)
    min_recharge: Decimal = Field(ge=0)
    # percent of the plan price withheld on principal return
    principal_tax: Decimal = Field(ge=0, le=100)


class ReferralLevel(CamelModel):
    level: int = Field(ge=1)
    percentage: Decimal = Field(ge=0, le=100)


class ReferralSettings(CamelModel):
    levels: List[ReferralLevel] = Field(default_factory=list)

    @field_validator("levels")
    @classmethod
    def _sort_levels(cls, v: List[ReferralLevel]) -> List[ReferralLevel]:
        levels = sorted(v, key=lambda lvl: lvl.level)
        if len({lvl.level for lvl in levels}) != len(levels):
            raise ValueError("Referral levels must be unique")
        return levels
