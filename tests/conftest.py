import os

# must be set before app.core.config is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.setdefault("ENVIRONMENT", "local")

from decimal import Decimal
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app import Base
from app.core import database
from app.main import app
from app.domains.plans import repository as plan_repository
from app.domains.settings.models import SystemSetting
from app.domains.settings.service import FINANCIAL_SETTINGS, default_financial_settings
from app.domains.users import repository as user_repository
from app.domains.users.models import User
from app.domains.wallet.models import TransactionSource, WalletTransaction
from app.domains.wallet.service import wallet_service
from app.shared.utils.security import create_access_token


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'wallet.db'}", poolclass=NullPool)

    # SQLAlchemy emits BEGIN itself so SAVEPOINT works on sqlite. IMMEDIATE takes
    # the write lock up front, so concurrent transactions queue on the busy
    # timeout like row locks instead of failing on lock upgrade.
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(engine, monkeypatch):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(database, "AsyncSessionLocal", factory)
    return factory


@pytest.fixture
async def client(session_factory):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    def _headers(user_id: str, role: str = "user") -> dict:
        token = create_access_token({"sub": user_id, "role": role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_user(session_factory):
    async def _make(balance="0", referred_by: Optional[str] = None, role: str = "user", name: str = None):
        async with database.transaction() as db:
            user = await user_repository.create_user(db, name=name, referred_by=referred_by, role=role)
            if Decimal(str(balance)) > 0:
                await wallet_service.credit(db, user.id, Decimal(str(balance)), TransactionSource.REWARD)
            return user.id

    return _make


@pytest.fixture
def make_plan(session_factory):
    async def _make(price="100.00", validity=30, daily_return="3.50", **kwargs):
        async with database.transaction() as db:
            plan = await plan_repository.create_plan(
                db,
                name=kwargs.pop("name", "Plan"),
                price=Decimal(price),
                validity=validity,
                daily_return=Decimal(daily_return),
                **kwargs,
            )
            return plan.id

    return _make


@pytest.fixture
def balance_of(session_factory):
    async def _balance(user_id: str) -> Decimal:
        async with session_factory() as db:
            user = await db.get(User, user_id)
            return user.wallet_balance

    return _balance


@pytest.fixture
def ledger_of(session_factory):
    async def _ledger(user_id: str, source: Optional[TransactionSource] = None):
        async with session_factory() as db:
            query = select(WalletTransaction).where(WalletTransaction.user_id == user_id)
            if source:
                query = query.where(WalletTransaction.source == source.value)
            result = await db.execute(query.order_by(WalletTransaction.created_at))
            return list(result.scalars().all())

    return _ledger


@pytest.fixture
def financial_settings(session_factory):
    """Write a FINANCIAL_SETTINGS row; unspecified fields keep the configured defaults."""

    async def _write(**overrides):
        value = default_financial_settings().model_copy(
            update={k: Decimal(str(v)) for k, v in overrides.items()}
        )
        async with database.transaction() as db:
            row = await db.get(SystemSetting, FINANCIAL_SETTINGS)
            payload = value.model_dump(mode="json", by_alias=True)
            if row is None:
                db.add(SystemSetting(key=FINANCIAL_SETTINGS, value=payload, is_public=True))
            else:
                row.value = payload
        return value

    return _write
