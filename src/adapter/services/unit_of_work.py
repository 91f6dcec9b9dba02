from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.services.unit_of_work import UnitOfWork
from src.adapter.repositories.credit_account_repository import SqlAlchemyCreditAccountRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.adapter.repositories.credit_config_repository import SqlAlchemyCreditConfigRepository
from src.adapter.repositories.generated_ad_repository import SqlAlchemyGeneratedAdRepository


class SqlAlchemyUnitOfWork(UnitOfWork):
    """One session, one transaction boundary, and the repositories bound to it"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.accounts = SqlAlchemyCreditAccountRepository(session)
        self.transactions = SqlAlchemyCreditTransactionRepository(session)
        self.configs = SqlAlchemyCreditConfigRepository(session)
        self.ads = SqlAlchemyGeneratedAdRepository(session)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
