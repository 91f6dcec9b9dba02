"""GeneratedAd-backed BusinessRecordStore

Each call commits on its own so the record's state is durable before the
next saga step runs.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional
from src.app.services.business_record_store import BusinessRecordStore
from src.app.services.ad_image_generator import AdGenerationResult
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.generated_ad_repository import GeneratedAdRepository
from src.domain.generated_ad import GeneratedAd, AdStatus, RefundStatus

logger = logging.getLogger(__name__)


class AdRecordNotFound(LookupError):
    pass


class GeneratedAdRecordStore(BusinessRecordStore):

    def __init__(self, uow: UnitOfWork, ad_repo: GeneratedAdRepository):
        self.uow = uow
        self.ad_repo = ad_repo

    async def create(
        self,
        user_id: str,
        credits_reserved: int,
        transaction_id: Optional[str],
        fields: Dict[str, Any],
    ) -> str:
        try:
            ad = await self.ad_repo.create(
                GeneratedAd(
                    user_id=user_id,
                    brand_id=fields.get("brand_id"),
                    name=fields.get("name") or "Untitled Ad",
                    prompt=fields["prompt"],
                    ad_type=fields.get("ad_type") or "standard",
                    status=AdStatus.PENDING,
                    credits_used=credits_reserved,
                    credit_transaction_id=transaction_id,
                    metadata_=dict(fields.get("metadata") or {}),
                )
            )
            await self.uow.commit()
        except Exception:
            await self.uow.rollback()
            raise
        return ad.id

    async def _load(self, record_id: str) -> GeneratedAd:
        ad = await self.ad_repo.get_by_id(record_id)
        if ad is None:
            raise AdRecordNotFound(f"Generated ad {record_id} not found")
        return ad

    async def _save(self, ad: GeneratedAd) -> None:
        try:
            await self.ad_repo.update(ad)
            await self.uow.commit()
        except Exception:
            await self.uow.rollback()
            raise

    async def mark_completed(self, record_id: str, result: Any) -> None:
        ad = await self._load(record_id)
        if isinstance(result, AdGenerationResult):
            ad.original_image_urls = list(result.original_image_urls)
            ad.result_urls = list(result.result_urls)
        ad.status = AdStatus.COMPLETED
        ad.completed_at = datetime.utcnow()
        await self._save(ad)

    async def mark_failed(self, record_id: str, error_message: str) -> None:
        ad = await self._load(record_id)
        ad.status = AdStatus.FAILED
        ad.error_message = error_message
        await self._save(ad)

    async def mark_refunded(self, record_id: str) -> None:
        ad = await self._load(record_id)
        ad.refund_status = RefundStatus.REFUNDED
        await self._save(ad)

    async def flag_unrefunded(self, record_id: str, reason: str) -> None:
        ad = await self._load(record_id)
        ad.refund_status = RefundStatus.UNREFUNDED
        ad.metadata_ = {**(ad.metadata_ or {}), "refund_failure": reason}
        await self._save(ad)
