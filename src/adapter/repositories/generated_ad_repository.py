"""SQLAlchemy implementation of GeneratedAdRepository"""

from typing import List, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.generated_ad_repository import GeneratedAdRepository
from src.domain.credit_transaction import CreditTransaction, TransactionStatus
from src.domain.generated_ad import GeneratedAd, AdStatus


class SqlAlchemyGeneratedAdRepository(GeneratedAdRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ad: GeneratedAd) -> GeneratedAd:
        self.session.add(ad)
        await self.session.flush()
        await self.session.refresh(ad)
        return ad

    async def get_by_id(self, ad_id: str) -> Optional[GeneratedAd]:
        stmt = (
            select(GeneratedAd)
            .where(GeneratedAd.id == ad_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update(self, ad: GeneratedAd) -> GeneratedAd:
        self.session.add(ad)
        await self.session.flush()
        return ad

    async def list_failed_with_completed_charge(self) -> List[GeneratedAd]:
        stmt = (
            select(GeneratedAd)
            .join(CreditTransaction, CreditTransaction.id == GeneratedAd.credit_transaction_id)
            .where(GeneratedAd.status == AdStatus.FAILED)
            .where(CreditTransaction.status == TransactionStatus.COMPLETED)
            .order_by(GeneratedAd.created_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
