"""SQLAlchemy implementation of CreditConfigRepository"""

from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_config_repository import CreditConfigRepository
from src.domain.credit_config import CreditConfig


class SqlAlchemyCreditConfigRepository(CreditConfigRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_operation(self, operation: str) -> Optional[CreditConfig]:
        stmt = select(CreditConfig).where(CreditConfig.operation == operation)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
