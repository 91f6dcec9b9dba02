"""AddCredits Use Case

Adds credits to a user's balance (purchases, grants, manual additions).
Creates the account on first addition.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import CreditTransaction, TransactionStatus
from src.domain.credit_account import CreditAccount
from .dtos import AddCreditsCommandDTO, CreditTransactionResponseDTO

logger = logging.getLogger(__name__)


class AddCredits:
    """
    Use Case: Add credits to user balance

    Business Rules:
    1. Amount must be > 0
    2. Account creation: if no account exists, create one holding the amount
    3. Atomic updates: balance and completed transaction in one commit
    4. No deduplication at this layer; callers that need idempotency
       (e.g. PurchaseCredits) check operation_id first

    Flow:
    1. Validate amount
    2. Get account with lock, or create it
    3. Increment balance (existing accounts)
    4. Insert completed transaction with positive amount
    5. Commit
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

    async def execute(self, command: AddCreditsCommandDTO) -> Result[CreditTransactionResponseDTO]:
        """
        Execute credit addition

        Returns:
            Result[CreditTransactionResponseDTO]: Success with transaction details or error

        Errors:
            INVALID_AMOUNT: amount <= 0
            ADD_CREDIT_FAILED: Persistence failure (nothing applied)
        """
        if command.amount <= 0:
            return Return.err(
                Error(
                    code="INVALID_AMOUNT",
                    message="Amount must be positive",
                    reason=f"amount={command.amount}",
                )
            )

        try:
            # Step 2: Get account with pessimistic lock, create if not exists
            account = await self.account_repo.get_by_user_id(
                command.user_id, for_update=True
            )

            if not account:
                account = await self.account_repo.create(
                    CreditAccount(user_id=command.user_id, balance=command.amount)
                )
                balance_after = account.balance
            else:
                # Step 3: Increment balance
                await self.account_repo.increment_balance(command.user_id, command.amount)
                updated_account = await self.account_repo.get_by_user_id(command.user_id)
                balance_after = updated_account.balance

            # Step 4: Insert completed transaction
            created_transaction = await self.transaction_repo.create(
                CreditTransaction(
                    user_id=command.user_id,
                    amount=command.amount,
                    operation=command.source,
                    operation_id=command.operation_id,
                    status=TransactionStatus.COMPLETED,
                    metadata_=dict(command.metadata or {}),
                )
            )

            # Step 5: Commit
            await self.uow.commit()

            logger.info(
                f"Added {command.amount} credits to user {command.user_id} "
                f"from {command.source} (transaction={created_transaction.id})"
            )

            return Return.ok(
                CreditTransactionResponseDTO.from_transaction(
                    created_transaction, balance_after=balance_after
                )
            )

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Adding {command.amount} credits to user {command.user_id} failed: {e}")
            return Return.err(
                Error(
                    code="ADD_CREDIT_FAILED",
                    message="Failed to add credits",
                    reason=str(e),
                )
            )
