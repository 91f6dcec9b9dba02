"""
List Transactions Use Case

Retrieves credit transaction history for a user with pagination.
"""
from libs.result import Result, Return
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from .dtos import ListTransactionsResponseDTO, TransactionDTO


class ListTransactions:
    """
    Use case: View Credit Transactions

    Transactions are ordered by created_at DESC (most recent first).
    """

    def __init__(self, transaction_repo: CreditTransactionRepository):
        self.transaction_repo = transaction_repo

    async def execute(
        self, user_id: str, limit: int = 20, offset: int = 0
    ) -> Result[ListTransactionsResponseDTO]:
        """
        List transactions for a user with pagination.

        Args:
            user_id: User identifier
            limit: Maximum number of transactions to return (default 20)
            offset: Number of transactions to skip (default 0)
        """
        transactions = await self.transaction_repo.list_by_user(
            user_id=user_id,
            limit=limit,
            offset=offset,
        )
        total = await self.transaction_repo.count_by_user(user_id)

        transaction_dtos = [
            TransactionDTO(
                id=txn.id,
                amount=txn.amount,
                operation=txn.operation,
                operation_id=txn.operation_id,
                status=txn.status.value if hasattr(txn.status, "value") else txn.status,
                metadata=dict(txn.metadata_ or {}),
                created_at=txn.created_at,
            )
            for txn in transactions
        ]

        return Return.ok(
            ListTransactionsResponseDTO(
                user_id=user_id,
                transactions=transaction_dtos,
                total=total,
                limit=limit,
                offset=offset,
            )
        )
