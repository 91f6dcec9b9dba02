"""Credit Config Repository Interface"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.credit_config import CreditConfig


class CreditConfigRepository(ABC):
    """Read-only access to the operation price table"""

    @abstractmethod
    async def get_by_operation(self, operation: str) -> Optional[CreditConfig]:
        pass
