# app/domains/wallet/service.py
"""
Wallet mutator.

Every balance change goes through WalletService.credit/debit, inside the
caller's transaction. Each call row-locks the user, re-reads the balance,
validates, writes the new balance and appends one SUCCESS ledger row, so the
cached balance always equals the signed ledger sum.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import InsufficientFunds, InvalidAmount, LockTimeout, UserNotFound
from app.domains.users import repository as user_repository
from app.shared.schemas.pagination import PaginationParams
from app.shared.utils.logger import get_logger
from app.shared.utils.money import parse_money, to_money

from . import repository
from .models import TransactionSource, TransactionType, WalletTransaction

logger = get_logger(__name__)

LOCK_NOT_AVAILABLE = "55P03"


def is_lock_timeout(exc: DBAPIError) -> bool:
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code == LOCK_NOT_AVAILABLE:
            return True
    return False


@dataclass
class ReconcileResult:
    user_id: str
    cached_balance: Decimal
    ledger_balance: Decimal

    @property
    def consistent(self) -> bool:
        return self.cached_balance == self.ledger_balance


class WalletService:
    def __init__(self, lock_timeout_ms: Optional[int] = None):
        self.lock_timeout_ms = lock_timeout_ms or settings.WALLET_LOCK_TIMEOUT_MS

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount,
        source: TransactionSource,
        reference_id: Optional[str] = None,
    ) -> WalletTransaction:
        return await self._mutate(db, user_id, amount, TransactionType.CREDIT, source, reference_id)

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        amount,
        source: TransactionSource,
        reference_id: Optional[str] = None,
    ) -> WalletTransaction:
        return await self._mutate(db, user_id, amount, TransactionType.DEBIT, source, reference_id)

    async def _mutate(
        self,
        db: AsyncSession,
        user_id: str,
        amount,
        type: TransactionType,
        source: TransactionSource,
        reference_id: Optional[str],
    ) -> WalletTransaction:
        value = parse_money(amount)
        if value is None or value <= 0:
            raise InvalidAmount(f"Amount must be a positive number, got {amount!r}")

        try:
            await self._apply_lock_timeout(db)
            user = await user_repository.get_user_for_update(db, user_id)
            if user is None:
                raise UserNotFound(f"User {user_id} not found")

            balance = to_money(user.wallet_balance)
            if type == TransactionType.DEBIT:
                if value > balance:
                    raise InsufficientFunds(
                        "Insufficient balance",
                        {"balance": str(balance), "requested": str(value)},
                    )
                new_balance = balance - value
            else:
                new_balance = balance + value

            user.wallet_balance = new_balance
            txn = await repository.insert_transaction(
                db,
                user_id=user_id,
                type=type,
                amount=value,
                source=TransactionSource(source).value,
                reference_id=reference_id,
                balance_after=new_balance,
            )
        except DBAPIError as e:
            if is_lock_timeout(e):
                raise LockTimeout(f"Timed out waiting for wallet lock of user {user_id}") from e
            logger.error(f"Storage error during {type.value} for user {user_id}: {e}")
            raise

        logger.info(
            f"{type.value} user={user_id} amount={value} source={txn.source} "
            f"ref={reference_id} balance={new_balance}"
        )
        return txn

    async def _apply_lock_timeout(self, db: AsyncSession):
        if db.get_bind().dialect.name != "postgresql":
            return
        # SET does not accept bind parameters
        await db.execute(text(f"SET LOCAL lock_timeout = '{int(self.lock_timeout_ms)}ms'"))

    async def get_balance(self, db: AsyncSession, user_id: str) -> Decimal:
        user = await user_repository.get_user(db, user_id)
        if user is None:
            raise UserNotFound(f"User {user_id} not found")
        return to_money(user.wallet_balance)

    async def get_ledger(
        self, db: AsyncSession, user_id: str, params: PaginationParams
    ) -> Tuple[List[WalletTransaction], int]:
        return await repository.list_transactions(db, user_id, params)

    async def reconcile(self, db: AsyncSession, user_id: str) -> ReconcileResult:
        """Compare the cached balance with the signed sum of the user's SUCCESS ledger rows."""
        cached = await self.get_balance(db, user_id)
        ledger = await repository.ledger_sum(db, user_id)
        result = ReconcileResult(user_id=user_id, cached_balance=cached, ledger_balance=ledger)
        if not result.consistent:
            logger.error(f"Balance mismatch for user {user_id}: cached={cached} ledger={ledger}")
        return result


wallet_service = WalletService()
