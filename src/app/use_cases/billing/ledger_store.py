"""Ledger Store

Facade over the ledger use cases for callers that need the plain balance
operations (the credit saga, workers).
"""

from typing import Any, Dict, Optional
from libs.result import Result
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from .get_balance import GetBalance
from .debit_credits import DebitCredits
from .add_credits import AddCredits
from .refund_credit import RefundCredit
from .dtos import (
    AddCreditsCommandDTO,
    BalanceResponseDTO,
    CreditTransactionResponseDTO,
    DebitCommandDTO,
    RefundCommandDTO,
)


class LedgerStore:
    """
    Per-user credit balances with an auditable transaction log

    Every operation is linearizable per user and returns a Result; none of
    them raises for expected failures.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: CreditAccountRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self._get_balance = GetBalance(account_repo)
        self._debit = DebitCredits(uow, account_repo, transaction_repo)
        self._credit = AddCredits(uow, account_repo, transaction_repo)
        self._refund = RefundCredit(uow, account_repo, transaction_repo)

    async def get_balance(self, user_id: str) -> Result[BalanceResponseDTO]:
        return await self._get_balance.execute(user_id)

    async def debit(
        self,
        user_id: str,
        amount: int,
        operation: str,
        metadata: Optional[Dict[str, Any]] = None,
        operation_id: Optional[str] = None,
    ) -> Result[CreditTransactionResponseDTO]:
        return await self._debit.execute(
            DebitCommandDTO(
                user_id=user_id,
                amount=amount,
                operation=operation,
                operation_id=operation_id,
                metadata=metadata,
            )
        )

    async def credit(
        self,
        user_id: str,
        amount: int,
        source: str = "manual_addition",
        operation_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Result[CreditTransactionResponseDTO]:
        return await self._credit.execute(
            AddCreditsCommandDTO(
                user_id=user_id,
                amount=amount,
                source=source,
                operation_id=operation_id,
                metadata=metadata,
            )
        )

    async def refund(self, transaction_id: str, reason: str = "Operation failed") -> Result[CreditTransactionResponseDTO]:
        return await self._refund.execute(
            RefundCommandDTO(transaction_id=transaction_id, reason=reason)
        )
