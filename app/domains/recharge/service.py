# app/domains/recharge/service.py
"""
Recharge (deposit) requests: PENDING -> APPROVED | REJECTED.

The wallet is credited only on approval, in the same transaction as the
status change. Rejection never touches money.
"""
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (BelowMinimum, DuplicateProof, InvalidAmount,
                                 InvalidTransition, RequestNotFound)
from app.domains.settings import service as settings_service
from app.domains.wallet.models import TransactionSource
from app.domains.wallet.service import wallet_service
from app.shared.utils.logger import get_logger
from app.shared.utils.money import parse_money

from . import repository
from .models import RechargeRequest, RechargeStatus

logger = get_logger(__name__)


class RechargeService:
    async def create(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        chain_name: str,
        transaction_id: str,
        blockchain_address: Optional[str] = None,
        proof_key: Optional[str] = None,
    ) -> RechargeRequest:
        value = parse_money(amount)
        if value is None or value <= 0:
            raise InvalidAmount(f"Amount must be a positive number, got {amount!r}")

        financial = await settings_service.get_financial_settings(db)
        if value < financial.min_recharge:
            raise BelowMinimum(f"Minimum recharge amount is {financial.min_recharge}")

        if await repository.get_by_transaction_id(db, transaction_id):
            raise DuplicateProof(f"Transaction ID {transaction_id} already used")

        recharge = repository.new_request(
            user_id=user_id,
            amount=value,
            chain_name=chain_name,
            blockchain_address=blockchain_address,
            transaction_id=transaction_id,
            proof_key=proof_key,
        )
        # a concurrent submission of the same proof can still pass the pre-check
        try:
            async with db.begin_nested():
                db.add(recharge)
                await db.flush()
        except IntegrityError as e:
            raise DuplicateProof(f"Transaction ID {transaction_id} already used") from e

        logger.info(f"Recharge requested: id={recharge.id} user={user_id} amount={value}")
        return recharge

    async def decide(
        self,
        db: AsyncSession,
        request_id: str,
        status: RechargeStatus,
        admin_id: Optional[str] = None,
        admin_remark: Optional[str] = None,
    ) -> RechargeRequest:
        status = RechargeStatus(status)
        if status == RechargeStatus.PENDING:
            raise InvalidTransition("A recharge can only be approved or rejected")

        recharge = await repository.get_for_update(db, request_id)
        if recharge is None:
            raise RequestNotFound(f"Recharge {request_id} not found")
        if recharge.status != RechargeStatus.PENDING.value:
            raise InvalidTransition(
                f"Recharge already processed with status: {recharge.status}",
                {"request_id": request_id, "status": recharge.status},
            )

        recharge.status = status.value
        recharge.approved_by_id = admin_id
        if admin_remark:
            recharge.admin_remark = admin_remark

        if status == RechargeStatus.APPROVED:
            await wallet_service.credit(
                db, recharge.user_id, recharge.amount, TransactionSource.RECHARGE, recharge.id
            )
            logger.info(
                f"Recharge approved: id={recharge.id} user={recharge.user_id} "
                f"amount={recharge.amount} tx={recharge.transaction_id}"
            )
        else:
            logger.info(f"Recharge rejected: id={recharge.id} user={recharge.user_id} reason={admin_remark}")

        await db.flush()
        return recharge


recharge_service = RechargeService()
