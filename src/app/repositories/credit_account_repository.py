"""Credit Account Repository Interface

Defines the contract for credit account persistence operations.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from src.domain.credit_account import CreditAccount


class CreditAccountRepository(ABC):
    """
    Repository interface for CreditAccount persistence

    Balance changes are expressed as single-row compare-and-set updates so
    that concurrent debits for one user cannot lose updates, whatever the
    isolation level of the underlying store.
    """

    @abstractmethod
    async def get_by_user_id(self, user_id: str, for_update: bool = False) -> Optional[CreditAccount]:
        """
        Retrieve account by user ID

        Args:
            user_id: User identifier
            for_update: If True, lock the row with SELECT FOR UPDATE (pessimistic lock)

        Returns:
            CreditAccount if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, account: CreditAccount) -> CreditAccount:
        """
        Create a new credit account

        Args:
            account: CreditAccount entity to persist

        Returns:
            Created CreditAccount
        """
        pass

    @abstractmethod
    async def decrement_balance(self, user_id: str, amount: int) -> bool:
        """
        Atomically subtract `amount` if the balance covers it

        Args:
            user_id: User identifier
            amount: Positive number of credits to subtract

        Returns:
            True if the balance was decremented, False if it was insufficient
            (or the account does not exist)
        """
        pass

    @abstractmethod
    async def increment_balance(self, user_id: str, amount: int) -> bool:
        """
        Atomically add `amount` to the balance

        Returns:
            True if the account exists and was updated, False otherwise
        """
        pass

    @abstractmethod
    async def get_all(self) -> List[CreditAccount]:
        """Retrieve every account (used by reconciliation)"""
        pass
