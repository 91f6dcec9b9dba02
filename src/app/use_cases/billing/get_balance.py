"""Get Balance Use Case

Retrieves a user's current credit balance.
"""

from libs.result import Result, Return, Error
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.use_cases.billing.dtos import BalanceResponseDTO


class GetBalance:
    """
    Get Balance Use Case

    Read-only operation that retrieves the current credit balance
    for a given user.
    """

    def __init__(self, account_repo: CreditAccountRepository):
        self.account_repo = account_repo

    async def execute(self, user_id: str) -> Result[BalanceResponseDTO]:
        """
        Execute get balance operation

        Args:
            user_id: The user identifier

        Returns:
            Result[BalanceResponseDTO]: Success with balance data or error

        Errors:
            ACCOUNT_NOT_FOUND: User has no credit account
        """
        account = await self.account_repo.get_by_user_id(user_id)

        if not account:
            return Return.err(
                Error(
                    code="ACCOUNT_NOT_FOUND",
                    message=f"No credit account found for user {user_id}",
                )
            )

        return Return.ok(
            BalanceResponseDTO(
                user_id=account.user_id,
                balance=account.balance,
                last_updated=account.updated_at,
            )
        )
