"""PurchaseCredits Use Case

Grants the credits of a paid plan once per payment.
"""

import logging
from typing import Mapping
from libs.result import Result, Return, Error
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from .add_credits import AddCredits
from .dtos import AddCreditsCommandDTO, CreditTransactionResponseDTO, PurchaseCreditsCommandDTO

logger = logging.getLogger(__name__)


PURCHASE_OPERATION = "purchase"


class PurchaseCredits:
    """
    Use Case: Credit a completed payment

    Business Rules:
    1. The plan must be known: credits come from the plan table, never
       from the caller
    2. A payment id is credited at most once; the ledger row carries
       operation="purchase" and operation_id=<payment id>
    """

    def __init__(
        self,
        add_credits: AddCredits,
        transaction_repo: CreditTransactionRepository,
        credit_plans: Mapping[str, int],
    ):
        self.add_credits = add_credits
        self.transaction_repo = transaction_repo
        self.credit_plans = credit_plans

    async def execute(self, command: PurchaseCreditsCommandDTO) -> Result[CreditTransactionResponseDTO]:
        """
        Errors:
            UNKNOWN_PLAN: plan_id is not in the plan table
            PAYMENT_ALREADY_PROCESSED: payment_id was credited before
            ADD_CREDIT_FAILED: Persistence failure (nothing applied)
        """
        credits = self.credit_plans.get(command.plan_id)
        if not credits:
            logger.warning(f"Payment {command.payment_id} for unknown plan {command.plan_id}")
            return Return.err(
                Error(
                    code="UNKNOWN_PLAN",
                    message=f"Unknown credit plan {command.plan_id}",
                )
            )

        existing = await self.transaction_repo.get_by_operation(PURCHASE_OPERATION, command.payment_id)
        if existing:
            return self._already_processed(command.payment_id, existing.id)

        result = await self.add_credits.execute(
            AddCreditsCommandDTO(
                user_id=command.user_id,
                amount=credits,
                source=PURCHASE_OPERATION,
                operation_id=command.payment_id,
                metadata={"plan_id": command.plan_id},
            )
        )

        # A concurrent delivery of the same payment loses on the unique
        # (operation, operation_id) constraint
        if result.is_err() and result.error.code == "ADD_CREDIT_FAILED":
            existing = await self.transaction_repo.get_by_operation(PURCHASE_OPERATION, command.payment_id)
            if existing:
                return self._already_processed(command.payment_id, existing.id)

        return result

    @staticmethod
    def _already_processed(payment_id: str, transaction_id: str) -> Result:
        logger.info(f"Payment {payment_id} already credited (transaction={transaction_id})")
        return Return.err(
            Error(
                code="PAYMENT_ALREADY_PROCESSED",
                message=f"Payment {payment_id} was already credited",
                details={"transaction_id": transaction_id},
            )
        )
