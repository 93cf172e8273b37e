# app/domains/withdrawals/service.py
"""
Withdrawal requests with reservation at creation.

Creating a request debits the full amount (WITHDRAW) in the same transaction
as the request row, so pending requests can never exceed the balance.
REJECTED credits the amount back; APPROVED only changes the status, the net
amount is paid out off-ledger.
"""
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (BelowMinimum, InvalidAmount, InvalidTransition,
                                 RequestNotFound)
from app.domains.settings import service as settings_service
from app.domains.wallet.models import TransactionSource
from app.domains.wallet.service import wallet_service
from app.shared.utils.logger import get_logger
from app.shared.utils.money import parse_money, to_money

from . import repository
from .models import WithdrawalRequest, WithdrawalStatus

logger = get_logger(__name__)


class WithdrawalService:
    async def create(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        chain_name: str,
        blockchain_address: str,
    ) -> WithdrawalRequest:
        value = parse_money(amount)
        if value is None or value <= 0:
            raise InvalidAmount(f"Amount must be a positive number, got {amount!r}")

        financial = await settings_service.get_financial_settings(db)
        if value < financial.min_withdrawal:
            raise BelowMinimum(f"Minimum withdrawal amount is {financial.min_withdrawal}")

        fee = to_money(financial.withdrawal_fee)
        if value <= fee:
            raise BelowMinimum(f"Amount must be greater than the withdrawal fee of {fee}")

        withdrawal = await repository.add_request(
            db,
            user_id=user_id,
            amount=value,
            fee=fee,
            net_amount=value - fee,
            chain_name=chain_name,
            blockchain_address=blockchain_address,
        )
        # raises InsufficientFunds and rolls the request back with the caller's transaction
        await wallet_service.debit(db, user_id, value, TransactionSource.WITHDRAW, withdrawal.id)

        logger.info(
            f"Withdrawal requested: id={withdrawal.id} user={user_id} "
            f"amount={value} fee={fee} net={withdrawal.net_amount}"
        )
        return withdrawal

    async def decide(
        self,
        db: AsyncSession,
        request_id: str,
        status: WithdrawalStatus,
        admin_id: Optional[str] = None,
        admin_remark: Optional[str] = None,
    ) -> WithdrawalRequest:
        status = WithdrawalStatus(status)
        if status == WithdrawalStatus.PENDING:
            raise InvalidTransition("A withdrawal can only be approved or rejected")

        withdrawal = await repository.get_for_update(db, request_id)
        if withdrawal is None:
            raise RequestNotFound(f"Withdrawal {request_id} not found")
        if withdrawal.status != WithdrawalStatus.PENDING.value:
            raise InvalidTransition(
                f"Withdrawal already processed with status: {withdrawal.status}",
                {"request_id": request_id, "status": withdrawal.status},
            )

        withdrawal.status = status.value
        withdrawal.approved_by_id = admin_id
        if admin_remark:
            withdrawal.admin_remark = admin_remark

        if status == WithdrawalStatus.REJECTED:
            await wallet_service.credit(
                db, withdrawal.user_id, withdrawal.amount, TransactionSource.WITHDRAW, withdrawal.id
            )
            logger.info(
                f"Withdrawal rejected, {withdrawal.amount} returned: id={withdrawal.id} "
                f"user={withdrawal.user_id} reason={admin_remark}"
            )
        else:
            logger.info(
                f"Withdrawal approved: id={withdrawal.id} user={withdrawal.user_id} "
                f"net={withdrawal.net_amount} to {withdrawal.blockchain_address}"
            )

        await db.flush()
        return withdrawal


withdrawal_service = WithdrawalService()
