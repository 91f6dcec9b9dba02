"""SQLAlchemy implementation of CreditTransactionRepository

Status transitions are compare-and-set updates keyed on the current
status, which is what makes a refund apply at most once.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import func, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import (
    CreditTransaction,
    TransactionStatus,
    SETTLED_STATUSES,
)


class SqlAlchemyCreditTransactionRepository(CreditTransactionRepository):
    """
    SQLAlchemy implementation of CreditTransactionRepository

    Features:
    - Append-mostly rows with guarded status transitions
    - Aggregates used by ledger reconciliation
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, transaction: CreditTransaction) -> CreditTransaction:
        self.session.add(transaction)
        await self.session.flush()
        await self.session.refresh(transaction)
        return transaction

    async def get_by_id(self, transaction_id: str, for_update: bool = False) -> Optional[CreditTransaction]:
        stmt = (
            select(CreditTransaction)
            .where(CreditTransaction.id == transaction_id)
            .execution_options(populate_existing=True)
        )

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _transition(
        self,
        transaction_id: str,
        from_status: TransactionStatus,
        values: Dict[Any, Any],
    ) -> bool:
        stmt = (
            update(CreditTransaction)
            .where(CreditTransaction.id == transaction_id)
            .where(CreditTransaction.status == from_status)
            .values({**values, CreditTransaction.updated_at: datetime.utcnow()})
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def mark_completed(self, transaction_id: str) -> bool:
        return await self._transition(
            transaction_id,
            TransactionStatus.PENDING,
            {CreditTransaction.status: TransactionStatus.COMPLETED},
        )

    async def mark_refunded(self, transaction_id: str, metadata: Dict[str, Any]) -> bool:
        return await self._transition(
            transaction_id,
            TransactionStatus.COMPLETED,
            {
                CreditTransaction.status: TransactionStatus.REFUNDED,
                CreditTransaction.metadata_: metadata,
            },
        )

    async def get_by_operation(self, operation: str, operation_id: str) -> Optional[CreditTransaction]:
        stmt = (
            select(CreditTransaction)
            .where(CreditTransaction.operation == operation)
            .where(CreditTransaction.operation_id == operation_id)
            .order_by(CreditTransaction.created_at)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_user(self, user_id: str, limit: int = 50, offset: int = 0) -> List[CreditTransaction]:
        stmt = (
            select(CreditTransaction)
            .where(CreditTransaction.user_id == user_id)
            .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_user(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(CreditTransaction).where(
            CreditTransaction.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def get_settled_sum_by_user(self, user_id: str) -> int:
        stmt = select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
            CreditTransaction.user_id == user_id,
            CreditTransaction.status.in_(SETTLED_STATUSES),
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def get_pending_older_than(self, cutoff: datetime) -> List[CreditTransaction]:
        stmt = (
            select(CreditTransaction)
            .where(CreditTransaction.status == TransactionStatus.PENDING)
            .where(CreditTransaction.created_at < cutoff)
            .order_by(CreditTransaction.created_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
