"""Credit Transaction Repository Interface

Defines the contract for credit transaction persistence operations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional
from src.domain.credit_transaction import CreditTransaction, TransactionStatus


class CreditTransactionRepository(ABC):
    """
    Repository interface for CreditTransaction persistence

    Rows are append-mostly: only the status transitions
    pending -> completed and completed -> refunded are allowed.
    """

    @abstractmethod
    async def create(self, transaction: CreditTransaction) -> CreditTransaction:
        """
        Create a new credit transaction

        Args:
            transaction: CreditTransaction entity to persist

        Returns:
            Created CreditTransaction
        """
        pass

    @abstractmethod
    async def get_by_id(self, transaction_id: str, for_update: bool = False) -> Optional[CreditTransaction]:
        """
        Retrieve transaction by ID

        Args:
            transaction_id: Transaction ID
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            CreditTransaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def mark_completed(self, transaction_id: str) -> bool:
        """
        Advance a pending transaction to completed

        Returns:
            True if the row was pending and is now completed
        """
        pass

    @abstractmethod
    async def mark_refunded(self, transaction_id: str, metadata: Dict[str, Any]) -> bool:
        """
        Compare-and-set completed -> refunded, replacing metadata

        Returns:
            True if this call performed the transition, False if the row was
            not in completed state (already refunded, or never completed)
        """
        pass

    @abstractmethod
    async def get_by_operation(self, operation: str, operation_id: str) -> Optional[CreditTransaction]:
        """Retrieve the first transaction recorded for an operation/correlation id pair"""
        pass

    @abstractmethod
    async def list_by_user(self, user_id: str, limit: int = 50, offset: int = 0) -> List[CreditTransaction]:
        """List a user's transactions, newest first"""
        pass

    @abstractmethod
    async def count_by_user(self, user_id: str) -> int:
        """Count a user's transactions"""
        pass

    @abstractmethod
    async def get_settled_sum_by_user(self, user_id: str) -> int:
        """
        Sum of amounts over the user's settled (completed or refunded) transactions

        This is the balance the account must hold.
        """
        pass

    @abstractmethod
    async def get_pending_older_than(self, cutoff: datetime) -> List[CreditTransaction]:
        """Pending transactions created before `cutoff` (interrupted deductions)"""
        pass
