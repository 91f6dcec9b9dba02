"""Business Record Store Interface

The record a credit reservation is held against (e.g. a generated ad).
The credit saga creates it once funds are reserved and finalises it when
the unit of work succeeds or fails.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class BusinessRecordStore(ABC):

    @abstractmethod
    async def create(
        self,
        user_id: str,
        credits_reserved: int,
        transaction_id: Optional[str],
        fields: Dict[str, Any],
    ) -> str:
        """
        Create a `pending` record tagged with the reserved amount

        Returns:
            The new record id
        """
        pass

    @abstractmethod
    async def mark_completed(self, record_id: str, result: Any) -> None:
        pass

    @abstractmethod
    async def mark_failed(self, record_id: str, error_message: str) -> None:
        pass

    @abstractmethod
    async def mark_refunded(self, record_id: str) -> None:
        """Record that the charge for a failed record was compensated"""
        pass

    @abstractmethod
    async def flag_unrefunded(self, record_id: str, reason: str) -> None:
        """Flag a failed record whose charge could not be refunded"""
        pass
