import asyncio
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core import database
from app.core.exceptions import DuplicateAccrual, LockTimeout
from app.domains.settings.models import SystemSetting
from app.domains.settings.service import FINANCIAL_SETTINGS, seed_defaults
from app.domains.subscriptions import accrual
from app.domains.subscriptions import repository as subscription_repository
from app.domains.subscriptions.models import DailyReturnLog, Subscription
from app.domains.wallet.models import TransactionSource
from app.domains.wallet.service import wallet_service

TODAY = date(2026, 5, 10)


async def _subscribe(user_id, plan_id, end: datetime, active: bool = True) -> str:
    async with database.transaction() as db:
        sub = await subscription_repository.create_subscription(
            db, user_id=user_id, plan_id=plan_id, start_date=end - timedelta(days=30), end_date=end
        )
        sub.is_active = active
        return sub.id


def _at(day: date, hour: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc)


async def _logs(session_factory, subscription_id):
    async with session_factory() as db:
        result = await db.execute(
            select(DailyReturnLog).where(DailyReturnLog.subscription_id == subscription_id)
        )
        return list(result.scalars().all())


async def test_running_tick_twice_credits_once(make_user, make_plan, balance_of, ledger_of, session_factory):
    user_id = await make_user()
    plan_id = await make_plan(daily_return="3.50")
    sub_id = await _subscribe(user_id, plan_id, _at(TODAY + timedelta(days=5)))

    first = await accrual.run_accrual_tick(TODAY)
    second = await accrual.run_accrual_tick(TODAY)

    assert (first.credited, first.skipped, first.total_amount) == (1, 0, Decimal("3.50"))
    assert (second.credited, second.skipped, second.total_amount) == (0, 1, Decimal("0.00"))

    logs = await _logs(session_factory, sub_id)
    assert len(logs) == 1
    assert logs[0].amount == Decimal("3.50")
    assert logs[0].credited_for_date == TODAY

    credits = await ledger_of(user_id, TransactionSource.DAILY_RETURN)
    assert len(credits) == 1
    assert credits[0].amount == Decimal("3.50")
    assert credits[0].reference_id == sub_id
    assert logs[0].wallet_transaction_id == credits[0].id
    assert await balance_of(user_id) == Decimal("3.50")


async def test_next_day_credits_again(make_user, make_plan, balance_of):
    user_id = await make_user()
    plan_id = await make_plan(daily_return="3.50")
    await _subscribe(user_id, plan_id, _at(TODAY + timedelta(days=5)))

    await accrual.run_accrual_tick(TODAY)
    await accrual.run_accrual_tick(TODAY + timedelta(days=1))

    assert await balance_of(user_id) == Decimal("7.00")


async def test_duplicate_accrual_is_raised_for_a_single_unit(make_user, make_plan):
    user_id = await make_user()
    plan_id = await make_plan()
    sub_id = await _subscribe(user_id, plan_id, _at(TODAY + timedelta(days=5)))

    assert await accrual.accrue_subscription(sub_id, TODAY) == Decimal("3.50")
    with pytest.raises(DuplicateAccrual) as exc_info:
        await accrual.accrue_subscription(sub_id, TODAY)
    assert exc_info.value.context["subscription_id"] == sub_id


async def test_inactive_expired_and_zero_return_subscriptions_are_not_paid(make_user, make_plan, balance_of):
    user_id = await make_user()
    paying = await make_plan(daily_return="2.00")
    zero = await make_plan(daily_return="0")

    await _subscribe(user_id, paying, _at(TODAY + timedelta(days=3)), active=False)
    await _subscribe(user_id, paying, _at(TODAY - timedelta(days=1), hour=23))
    await _subscribe(user_id, zero, _at(TODAY + timedelta(days=3)))
    # ends later today, still due for today
    await _subscribe(user_id, paying, _at(TODAY, hour=12))

    result = await accrual.run_accrual_tick(TODAY)

    assert result.processed == 2
    assert result.credited == 1
    assert result.skipped == 1
    assert await balance_of(user_id) == Decimal("2.00")


async def test_one_failing_subscription_does_not_stop_the_batch(
    make_user, make_plan, balance_of, session_factory, monkeypatch
):
    good_user = await make_user()
    bad_user = await make_user()
    plan_id = await make_plan(daily_return="3.50")
    await _subscribe(good_user, plan_id, _at(TODAY + timedelta(days=5)))
    bad_sub = await _subscribe(bad_user, plan_id, _at(TODAY + timedelta(days=5)))

    original_credit = wallet_service.credit

    async def flaky_credit(db, user_id, amount, source, reference_id=None):
        if user_id == bad_user:
            raise RuntimeError("boom")
        return await original_credit(db, user_id, amount, source, reference_id)

    monkeypatch.setattr(wallet_service, "credit", flaky_credit)
    result = await accrual.run_accrual_tick(TODAY)

    assert (result.credited, result.failed) == (1, 1)
    assert await balance_of(good_user) == Decimal("3.50")
    assert await balance_of(bad_user) == Decimal("0.00")
    # the failed unit rolled back its log row, so a retry can pay it
    assert await _logs(session_factory, bad_sub) == []

    monkeypatch.setattr(wallet_service, "credit", original_credit)
    retry = await accrual.run_accrual_tick(TODAY)

    assert (retry.credited, retry.skipped, retry.failed) == (1, 1, 0)
    assert await balance_of(bad_user) == Decimal("3.50")
    assert await balance_of(good_user) == Decimal("3.50")


async def test_lock_timeout_is_retried(make_user, make_plan, balance_of, monkeypatch):
    user_id = await make_user()
    plan_id = await make_plan(daily_return="3.50")
    await _subscribe(user_id, plan_id, _at(TODAY + timedelta(days=5)))

    monkeypatch.setattr(accrual.settings, "ACCRUAL_RETRY_BASE_DELAY", 0.0)
    original = accrual.accrue_subscription
    calls = []

    async def contended(subscription_id, for_date):
        calls.append(subscription_id)
        if len(calls) == 1:
            raise LockTimeout("busy")
        return await original(subscription_id, for_date)

    monkeypatch.setattr(accrual, "accrue_subscription", contended)
    result = await accrual.run_accrual_tick(TODAY)

    assert len(calls) == 2
    assert result.credited == 1
    assert await balance_of(user_id) == Decimal("3.50")


async def test_expiry_returns_principal_minus_tax_once(make_user, make_plan, balance_of, ledger_of, session_factory):
    async with database.transaction() as db:
        await seed_defaults(db)

    user_id = await make_user()
    plan_id = await make_plan(price="100.00", daily_return="3.50")
    sub_id = await _subscribe(user_id, plan_id, _at(TODAY - timedelta(days=1), hour=18))

    first = await accrual.expire_subscriptions(TODAY)
    second = await accrual.expire_subscriptions(TODAY)

    assert (first.expired, first.total_returned) == (1, Decimal("95.00"))
    assert second.processed == 0
    assert await balance_of(user_id) == Decimal("95.00")

    returns = await ledger_of(user_id, TransactionSource.PRINCIPAL_RETURN)
    assert [(t.amount, t.reference_id) for t in returns] == [(Decimal("95.00"), sub_id)]

    async with session_factory() as db:
        assert (await db.get(Subscription, sub_id)).is_active is False

    # no accrual for a deactivated subscription
    tick = await accrual.run_accrual_tick(TODAY)
    assert tick.processed == 0


async def test_expiry_uses_configured_tax(make_user, make_plan, balance_of):
    async with database.transaction() as db:
        db.add(SystemSetting(
            key=FINANCIAL_SETTINGS,
            value={"withdrawalFee": 4, "minWithdrawal": 100, "minRecharge": 500, "principalTax": 12.5},
            is_public=True,
        ))

    user_id = await make_user()
    plan_id = await make_plan(price="99.99")
    await _subscribe(user_id, plan_id, _at(TODAY - timedelta(days=2)))

    result = await accrual.expire_subscriptions(TODAY)

    # 99.99 * 12.5% = 12.49875 -> 12.50
    assert result.total_returned == Decimal("87.49")
    assert await balance_of(user_id) == Decimal("87.49")


async def test_subscription_still_running_is_not_expired(make_user, make_plan):
    user_id = await make_user()
    plan_id = await make_plan()
    await _subscribe(user_id, plan_id, _at(TODAY, hour=6))

    result = await accrual.expire_subscriptions(TODAY)
    assert result.processed == 0


async def test_days_before_the_subscription_started_are_not_paid(make_user, make_plan, balance_of, session_factory):
    user_id = await make_user()
    plan_id = await make_plan(daily_return="3.50")
    async with database.transaction() as db:
        sub = await subscription_repository.create_subscription(
            db,
            user_id=user_id,
            plan_id=plan_id,
            start_date=_at(TODAY, hour=12),
            end_date=_at(TODAY + timedelta(days=30), hour=12),
        )
        sub_id = sub.id

    for offset in range(5, 0, -1):
        result = await accrual.run_accrual_tick(TODAY - timedelta(days=offset))
        assert result.processed == 0
    assert await accrual.accrue_subscription(sub_id, TODAY - timedelta(days=1)) is None
    assert await balance_of(user_id) == Decimal("0.00")

    # bought at noon, the purchase day itself is part of its life
    await accrual.run_accrual_tick(TODAY)
    assert await balance_of(user_id) == Decimal("3.50")
    assert [log.credited_for_date for log in await _logs(session_factory, sub_id)] == [TODAY]


async def test_concurrent_ticks_for_the_same_day_credit_once(
    make_user, make_plan, balance_of, ledger_of, session_factory
):
    user_id = await make_user()
    plan_id = await make_plan(daily_return="3.50")
    sub_id = await _subscribe(user_id, plan_id, _at(TODAY + timedelta(days=5)))

    first, second = await asyncio.gather(
        accrual.run_accrual_tick(TODAY), accrual.run_accrual_tick(TODAY)
    )

    assert first.credited + second.credited == 1
    assert first.skipped + second.skipped == 1
    assert first.failed + second.failed == 0
    assert len(await _logs(session_factory, sub_id)) == 1
    assert len(await ledger_of(user_id, TransactionSource.DAILY_RETURN)) == 1
    assert await balance_of(user_id) == Decimal("3.50")
