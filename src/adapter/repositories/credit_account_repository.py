"""SQLAlchemy implementation of CreditAccountRepository

Provides persistence for CreditAccount entities. Balance changes are
compare-and-set UPDATE statements, and reads can take a row lock to
serialise concurrent credit operations for one user.
"""

from typing import List, Optional
from datetime import datetime
from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.domain.credit_account import CreditAccount


class SqlAlchemyCreditAccountRepository(CreditAccountRepository):
    """
    SQLAlchemy implementation of CreditAccountRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE (ignored by SQLite, which
      serialises writers with its database write lock)
    - Conditional balance updates that never drive the balance negative
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user_id(self, user_id: str, for_update: bool = False) -> Optional[CreditAccount]:
        """
        Retrieve account by user ID with optional row-level locking

        The identity map is refreshed so balances changed by a previous
        conditional UPDATE in this session are never read stale.
        """
        stmt = (
            select(CreditAccount)
            .where(CreditAccount.user_id == user_id)
            .execution_options(populate_existing=True)
        )

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, account: CreditAccount) -> CreditAccount:
        self.session.add(account)
        await self.session.flush()
        await self.session.refresh(account)
        return account

    async def decrement_balance(self, user_id: str, amount: int) -> bool:
        """
        UPDATE ... SET balance = balance - :amount WHERE balance >= :amount

        The sufficiency check is re-evaluated by the store at write time, so
        a balance read earlier in the request is never trusted.
        """
        stmt = (
            update(CreditAccount)
            .where(CreditAccount.user_id == user_id)
            .where(CreditAccount.balance >= amount)
            .values({
                CreditAccount.balance: CreditAccount.balance - amount,
                CreditAccount.updated_at: datetime.utcnow(),
            })
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def increment_balance(self, user_id: str, amount: int) -> bool:
        stmt = (
            update(CreditAccount)
            .where(CreditAccount.user_id == user_id)
            .values({
                CreditAccount.balance: CreditAccount.balance + amount,
                CreditAccount.updated_at: datetime.utcnow(),
            })
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def get_all(self) -> List[CreditAccount]:
        stmt = select(CreditAccount).order_by(CreditAccount.user_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
