"""DebitCredits Use Case

Reserves credits from a user's balance before paid work starts, writing an
auditable deduction transaction.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import CreditTransaction, TransactionStatus
from .dtos import DebitCommandDTO, CreditTransactionResponseDTO

logger = logging.getLogger(__name__)


class DebitCredits:
    """
    Use Case: Deduct credits from a user balance

    Business Rules:
    1. The user must have an account (no implicit account creation)
    2. Sufficient balance: balance >= amount, re-checked by the store at
       write time (compare-and-set), never trusted from an earlier read
    3. Insufficient balance writes no transaction row
    4. pending row, balance decrement and completion are one database
       transaction: they commit together or not at all

    Flow:
    1. Get account with lock (SELECT FOR UPDATE)
    2. Validate sufficient balance
    3. Insert transaction (amount = -amount, status = pending)
    4. Decrement balance (conditional UPDATE)
    5. Mark transaction completed
    6. Commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: CreditAccountRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo

    async def execute(self, command: DebitCommandDTO) -> Result[CreditTransactionResponseDTO]:
        """
        Execute credit deduction

        Args:
            command: DebitCommandDTO with user_id, amount, operation

        Returns:
            Result[CreditTransactionResponseDTO]: Success with transaction details or error

        Errors:
            ACCOUNT_NOT_FOUND: User has no credit account
            INSUFFICIENT_CREDIT: Balance does not cover the amount
            DEBIT_CREDIT_FAILED: Persistence failure (nothing applied)
        """
        try:
            # Step 1: Get account with pessimistic lock
            account = await self.account_repo.get_by_user_id(
                command.user_id, for_update=True
            )

            if not account:
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="ACCOUNT_NOT_FOUND",
                        message=f"Credit account not found for user {command.user_id}",
                        reason="User has no credit record",
                    )
                )

            # Step 2: Validate sufficient balance
            available = account.balance
            if available < command.amount:
                await self.uow.rollback()
                return self._insufficient(command.amount, available)

            # Step 3: Insert pending deduction
            transaction = CreditTransaction(
                user_id=command.user_id,
                amount=-command.amount,
                operation=command.operation,
                operation_id=command.operation_id,
                status=TransactionStatus.PENDING,
                metadata_=dict(command.metadata or {}),
            )
            created_transaction = await self.transaction_repo.create(transaction)

            # Step 4: Decrement balance; the store re-checks sufficiency
            if not await self.account_repo.decrement_balance(command.user_id, command.amount):
                current = await self.account_repo.get_by_user_id(command.user_id)
                available = current.balance if current else 0
                await self.uow.rollback()
                return self._insufficient(command.amount, available)

            # Step 5: Mark transaction completed
            if not await self.transaction_repo.mark_completed(created_transaction.id):
                raise RuntimeError(
                    f"Transaction {created_transaction.id} left pending after balance decrement"
                )

            updated_account = await self.account_repo.get_by_user_id(command.user_id)
            balance_after = updated_account.balance if updated_account else None

            # Step 6: Commit
            await self.uow.commit()

            logger.info(
                f"Debited {command.amount} credits from user {command.user_id} "
                f"for {command.operation} (transaction={created_transaction.id})"
            )

            return Return.ok(
                CreditTransactionResponseDTO.from_transaction(
                    created_transaction,
                    balance_after=balance_after,
                    status=TransactionStatus.COMPLETED,
                )
            )

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Debit of {command.amount} credits for user {command.user_id} failed: {e}")
            return Return.err(
                Error(
                    code="DEBIT_CREDIT_FAILED",
                    message="Failed to debit credits",
                    reason=str(e),
                )
            )

    @staticmethod
    def _insufficient(required: int, available: int) -> Result:
        return Return.err(
            Error(
                code="INSUFFICIENT_CREDIT",
                message=f"Insufficient credits. Required: {required}, Available: {available}",
                reason=f"balance={available}, required={required}",
                details={"required": required, "available": available},
            )
        )
