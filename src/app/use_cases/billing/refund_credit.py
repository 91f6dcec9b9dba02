"""RefundCredit Use Case

Compensates a completed deduction: returns its credits to the user and
records a refund transaction pointing back at the original.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import (
    CreditTransaction,
    TransactionStatus,
    REFUND_OPERATION,
)
from .dtos import RefundCommandDTO, CreditTransactionResponseDTO

logger = logging.getLogger(__name__)


class RefundCredit:
    """
    Use Case: Refund a completed deduction

    Business Rules:
    1. Only `completed` deductions can be refunded; a refunded or pending
       transaction fails with INVALID_TRANSACTION_STATE
    2. At most once: the completed -> refunded flip is a compare-and-set,
       so a concurrent second refund finds nothing to flip
    3. The original keeps its amount; the refund is a new completed row
       with operation="refund" and operation_id=<original id>
    4. Flip, balance increment and refund row commit together

    Flow:
    1. Load original transaction with lock
    2. Validate state (completed deduction)
    3. Flip original to refunded, stamping metadata.refund_reason
    4. Increment balance by abs(amount)
    5. Insert refund transaction
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

    async def execute(self, command: RefundCommandDTO) -> Result[CreditTransactionResponseDTO]:
        """
        Execute credit refund

        Returns:
            Result[CreditTransactionResponseDTO]: the new refund transaction, or error

        Errors:
            TRANSACTION_NOT_FOUND: No transaction with this id
            INVALID_TRANSACTION_STATE: Not a completed deduction
            ACCOUNT_NOT_FOUND: The transaction's user has no account
            REFUND_CREDIT_FAILED: Persistence failure (nothing applied)
        """
        try:
            # Step 1: Load original with lock
            original = await self.transaction_repo.get_by_id(
                command.transaction_id, for_update=True
            )

            if not original:
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="TRANSACTION_NOT_FOUND",
                        message=f"Transaction {command.transaction_id} not found",
                    )
                )

            user_id = original.user_id
            status = getattr(original.status, "value", original.status)

            # Step 2: Only completed deductions are refundable
            if status != TransactionStatus.COMPLETED.value:
                await self.uow.rollback()
                return self._invalid_state(
                    command.transaction_id,
                    f"Transaction in {status} state, cannot refund",
                )

            if not original.is_deduction:
                await self.uow.rollback()
                return self._invalid_state(
                    command.transaction_id,
                    "Transaction is not a deduction, cannot refund",
                )

            refund_amount = abs(original.amount)

            # Step 3: Flip completed -> refunded (at most once)
            flipped = await self.transaction_repo.mark_refunded(
                original.id,
                {**(original.metadata_ or {}), "refund_reason": command.reason},
            )
            if not flipped:
                await self.uow.rollback()
                return self._invalid_state(
                    command.transaction_id,
                    "Transaction was refunded concurrently, cannot refund",
                )

            # Step 4: Return the credits
            if not await self.account_repo.increment_balance(user_id, refund_amount):
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="ACCOUNT_NOT_FOUND",
                        message=f"Credit account not found for user {user_id}",
                    )
                )

            # Step 5: Record the refund
            refund_transaction = await self.transaction_repo.create(
                CreditTransaction(
                    user_id=original.user_id,
                    amount=refund_amount,
                    operation=REFUND_OPERATION,
                    operation_id=original.id,
                    status=TransactionStatus.COMPLETED,
                    metadata_={
                        "original_transaction": original.id,
                        "reason": command.reason,
                    },
                )
            )

            account = await self.account_repo.get_by_user_id(original.user_id)
            balance_after = account.balance if account else None

            # Step 6: Commit
            await self.uow.commit()

            logger.info(
                f"Refunded {refund_amount} credits to user {original.user_id} "
                f"for transaction {original.id}: {command.reason}"
            )

            return Return.ok(
                CreditTransactionResponseDTO.from_transaction(
                    refund_transaction, balance_after=balance_after
                )
            )

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Refund of transaction {command.transaction_id} failed: {e}")
            return Return.err(
                Error(
                    code="REFUND_CREDIT_FAILED",
                    message="Failed to refund credit",
                    reason=str(e),
                )
            )

    @staticmethod
    def _invalid_state(transaction_id: str, message: str) -> Result:
        return Return.err(
            Error(
                code="INVALID_TRANSACTION_STATE",
                message=message,
                reason=f"transaction_id={transaction_id}",
            )
        )
