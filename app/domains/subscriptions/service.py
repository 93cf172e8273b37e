# app/domains/subscriptions/service.py
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PlanNotFound, PlanUnavailable
from app.domains.plans import repository as plan_repository
from app.domains.plans.models import PlanStatus
from app.domains.settings import service as settings_service
from app.domains.users import repository as user_repository
from app.domains.wallet.models import TransactionSource
from app.domains.wallet.service import wallet_service
from app.shared.utils.logger import get_logger
from app.shared.utils.money import percent_of, to_money

from . import repository
from .models import Subscription

logger = get_logger(__name__)


class SubscriptionService:
    async def purchase(self, db: AsyncSession, user_id: str, plan_id: str) -> Subscription:
        """
        Buy a plan: debit the price, open the subscription, pay referral bonuses.

        Runs in the caller's transaction. Bonus failures are contained in a
        savepoint and never undo the purchase.
        """
        plan = await plan_repository.get_plan(db, plan_id)
        if plan is None:
            raise PlanNotFound(f"Plan {plan_id} not found")
        if plan.status != PlanStatus.ACTIVE.value:
            raise PlanUnavailable("Plan not available")

        subscription_id = str(uuid.uuid4())
        await wallet_service.debit(db, user_id, plan.price, TransactionSource.PURCHASE, subscription_id)

        start = datetime.now(timezone.utc)
        subscription = await repository.create_subscription(
            db,
            user_id=user_id,
            plan_id=plan.id,
            start_date=start,
            end_date=start + timedelta(days=plan.validity),
            subscription_id=subscription_id,
        )
        logger.info(f"Subscription {subscription.id} purchased: user={user_id} plan={plan.id}")

        await self.distribute_referral_bonuses(db, user_id, plan.price, subscription.id)
        return subscription

    async def referral_ancestors(self, db: AsyncSession, user_id: str, max_level: int) -> List[Tuple[str, int]]:
        """(ancestor_id, level) pairs walking referred_by upward, stopping on cycles."""
        ancestors = []
        visited = {user_id}
        current = user_id
        for level in range(1, max_level + 1):
            parent = await user_repository.get_referrer_id(db, current)
            if not parent or parent in visited:
                break
            ancestors.append((parent, level))
            visited.add(parent)
            current = parent
        return ancestors

    async def distribute_referral_bonuses(self, db: AsyncSession, user_id: str, price, subscription_id: str) -> int:
        referral = await settings_service.get_referral_settings(db)
        if not referral.levels:
            return 0

        percentages = {lvl.level: lvl.percentage for lvl in referral.levels}
        paid = 0
        try:
            async with db.begin_nested():
                ancestors = await self.referral_ancestors(db, user_id, max(percentages))
                for ancestor_id, level in ancestors:
                    bonus = percent_of(to_money(price), percentages.get(level, 0))
                    if bonus <= 0:
                        continue
                    await wallet_service.credit(
                        db, ancestor_id, bonus, TransactionSource.REFERRAL_BONUS, subscription_id
                    )
                    paid += 1
        except Exception as e:
            logger.error(f"Failed to distribute referral bonuses for user {user_id}: {e}")
            return 0

        if paid:
            logger.info(f"Referral bonuses distributed: {paid} beneficiaries triggered by user={user_id}")
        return paid

    async def get_my_subscriptions(self, db: AsyncSession, user_id: str, active_only: bool = True):
        return await repository.list_user_subscriptions(db, user_id, active_only=active_only)


subscription_service = SubscriptionService()
