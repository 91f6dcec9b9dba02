"""Generated Ad Repository Interface"""

from abc import ABC, abstractmethod
from typing import List, Optional
from src.domain.generated_ad import GeneratedAd


class GeneratedAdRepository(ABC):

    @abstractmethod
    async def create(self, ad: GeneratedAd) -> GeneratedAd:
        pass

    @abstractmethod
    async def get_by_id(self, ad_id: str) -> Optional[GeneratedAd]:
        pass

    @abstractmethod
    async def update(self, ad: GeneratedAd) -> GeneratedAd:
        pass

    @abstractmethod
    async def list_failed_with_completed_charge(self) -> List[GeneratedAd]:
        """
        Failed ads whose deduction is still `completed`

        These are charges that were never compensated.
        """
        pass
