import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.exc import DBAPIError

from app.core import database
from app.core.exceptions import InsufficientFunds, InvalidAmount, LockTimeout, UserNotFound
from app.domains.wallet.models import TransactionSource, TransactionStatus, TransactionType
from app.domains.wallet.service import WalletService, is_lock_timeout, wallet_service


async def test_credit_updates_balance_and_appends_ledger_row(make_user, balance_of, ledger_of):
    user_id = await make_user()

    async with database.transaction() as db:
        txn = await wallet_service.credit(db, user_id, Decimal("25.50"), TransactionSource.RECHARGE, "r-1")

    assert txn.type == TransactionType.CREDIT.value
    assert txn.status == TransactionStatus.SUCCESS.value
    assert txn.balance_after == Decimal("25.50")
    assert await balance_of(user_id) == Decimal("25.50")

    rows = await ledger_of(user_id)
    assert len(rows) == 1
    assert rows[0].reference_id == "r-1"
    assert rows[0].source == "RECHARGE"


async def test_debit_reduces_balance(make_user, balance_of):
    user_id = await make_user(balance="100")

    async with database.transaction() as db:
        await wallet_service.debit(db, user_id, Decimal("40"), TransactionSource.PURCHASE, "sub-1")

    assert await balance_of(user_id) == Decimal("60.00")


async def test_debit_more_than_balance_is_rejected_without_side_effects(make_user, balance_of, ledger_of):
    user_id = await make_user(balance="10")

    with pytest.raises(InsufficientFunds):
        async with database.transaction() as db:
            await wallet_service.debit(db, user_id, Decimal("10.01"), TransactionSource.PURCHASE)

    assert await balance_of(user_id) == Decimal("10.00")
    assert len(await ledger_of(user_id)) == 1


async def test_debit_of_entire_balance_reaches_zero(make_user, balance_of):
    user_id = await make_user(balance="10")

    async with database.transaction() as db:
        await wallet_service.debit(db, user_id, Decimal("10.00"), TransactionSource.PURCHASE)

    assert await balance_of(user_id) == Decimal("0.00")


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), "abc", None, float("nan")])
async def test_non_positive_or_invalid_amounts_are_rejected(make_user, amount):
    user_id = await make_user(balance="10")

    async with database.transaction() as db:
        with pytest.raises(InvalidAmount):
            await wallet_service.credit(db, user_id, amount, TransactionSource.REWARD)
        with pytest.raises(InvalidAmount):
            await wallet_service.debit(db, user_id, amount, TransactionSource.PURCHASE)


async def test_unknown_user(session_factory):
    async with database.transaction() as db:
        with pytest.raises(UserNotFound):
            await wallet_service.credit(db, "missing", Decimal("1"), TransactionSource.REWARD)


async def test_balance_matches_ledger_after_mixed_operations(make_user):
    user_id = await make_user(balance="100")
    operations = [
        ("credit", "12.34"),
        ("debit", "50.00"),
        ("credit", "0.01"),
        ("debit", "62.35"),
        ("credit", "7.77"),
    ]
    for op, amount in operations:
        async with database.transaction() as db:
            await getattr(wallet_service, op)(db, user_id, Decimal(amount), TransactionSource.REWARD)

    async with database.AsyncSessionLocal() as db:
        result = await wallet_service.reconcile(db, user_id)

    assert result.consistent
    assert result.cached_balance == Decimal("7.77")
    assert result.ledger_balance == Decimal("7.77")


async def test_reconcile_reports_drift(make_user, session_factory):
    from app.domains.users.models import User

    user_id = await make_user(balance="20")
    async with database.transaction() as db:
        user = await db.get(User, user_id)
        user.wallet_balance = Decimal("25.00")

    async with session_factory() as db:
        result = await wallet_service.reconcile(db, user_id)

    assert not result.consistent
    assert result.ledger_balance == Decimal("20.00")


class _PgError(Exception):
    def __init__(self, sqlstate):
        super().__init__(sqlstate)
        self.sqlstate = sqlstate


def test_lock_timeout_detection():
    assert is_lock_timeout(DBAPIError("SELECT", {}, _PgError("55P03")))
    assert not is_lock_timeout(DBAPIError("SELECT", {}, _PgError("23505")))


async def test_lock_timeout_is_translated(make_user, monkeypatch):
    from app.domains.users import repository as user_repository

    user_id = await make_user()

    async def locked(db, uid):
        raise DBAPIError("SELECT ... FOR UPDATE", {}, _PgError("55P03"))

    monkeypatch.setattr(user_repository, "get_user_for_update", locked)

    async with database.transaction() as db:
        with pytest.raises(LockTimeout) as exc:
            await WalletService(lock_timeout_ms=10).credit(db, user_id, Decimal("1"), TransactionSource.REWARD)
    assert exc.value.retryable


async def test_transactions_endpoint_paginates(client, make_user, auth_headers):
    user_id = await make_user(balance="1")
    for amount in ("2", "3", "4", "5"):
        async with database.transaction() as db:
            await wallet_service.credit(db, user_id, Decimal(amount), TransactionSource.DAILY_RETURN)

    response = await client.get(
        "/api/wallet/transactions",
        params={"page": 2, "limit": 2, "sortBy": "amount", "sortOrder": "ASC"},
        headers=auth_headers(user_id),
    )

    assert response.status_code == 200
    body = response.json()
    assert [Decimal(t["amount"]) for t in body["data"]] == [Decimal("3.00"), Decimal("4.00")]
    assert body["meta"] == {
        "page": 2,
        "limit": 2,
        "totalItems": 5,
        "totalPages": 3,
        "hasNextPage": True,
        "hasPreviousPage": True,
    }


async def test_transactions_endpoint_rejects_unknown_sort_field(client, make_user, auth_headers):
    user_id = await make_user()
    response = await client.get(
        "/api/wallet/transactions", params={"sortBy": "user_id"}, headers=auth_headers(user_id)
    )
    assert response.status_code == 422


async def test_transactions_endpoint_limit_bounds(client, make_user, auth_headers):
    user_id = await make_user()
    response = await client.get("/api/wallet/transactions", params={"limit": 101}, headers=auth_headers(user_id))
    assert response.status_code == 422


async def test_balance_endpoint_requires_token(client):
    response = await client.get("/api/wallet/balance")
    assert response.status_code == 401


async def test_reconcile_endpoint_is_admin_only(client, make_user, auth_headers):
    user_id = await make_user(balance="5")

    forbidden = await client.get("/api/wallet/reconcile", params={"userId": user_id}, headers=auth_headers(user_id))
    assert forbidden.status_code == 403

    response = await client.get(
        "/api/wallet/reconcile", params={"userId": user_id}, headers=auth_headers("admin-1", "admin")
    )
    assert response.status_code == 200
    assert response.json()["consistent"] is True


async def test_concurrent_debits_never_overdraw(make_user, balance_of, ledger_of):
    user_id = await make_user(balance="100")

    async def withdraw(amount):
        async with database.transaction() as db:
            return await wallet_service.debit(db, user_id, Decimal(amount), TransactionSource.PURCHASE)

    async def top_up(amount):
        async with database.transaction() as db:
            return await wallet_service.credit(db, user_id, Decimal(amount), TransactionSource.REWARD)

    results = await asyncio.gather(
        *(withdraw("30") for _ in range(6)), top_up("5"), return_exceptions=True
    )

    debits = [r for r in results[:6] if not isinstance(r, Exception)]
    refused = [r for r in results[:6] if isinstance(r, Exception)]
    assert not isinstance(results[6], Exception)
    assert all(isinstance(e, InsufficientFunds) for e in refused)
    # 105 covers three debits of 30 whatever the order, never a fourth
    assert len(debits) == 3
    assert await balance_of(user_id) == Decimal("15.00")

    history = await ledger_of(user_id)
    assert all(row.balance_after >= 0 for row in history)

    async with database.AsyncSessionLocal() as db:
        assert (await wallet_service.reconcile(db, user_id)).consistent
