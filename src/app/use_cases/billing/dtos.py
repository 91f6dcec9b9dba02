"""Data Transfer Objects for Billing Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field


class DebitCommandDTO(BaseModel):
    """
    Command DTO for reserving (debiting) credits

    Used as input to DebitCredits use case.
    """

    user_id: str = Field(
        ...,
        description="User identifier"
    )

    amount: int = Field(
        ...,
        ge=0,
        description="Credits to deduct"
    )

    operation: str = Field(
        ...,
        description="Operation being paid for (e.g., 'generate_ad')"
    )

    operation_id: Optional[str] = Field(
        default=None,
        description="Optional correlation id of the business operation"
    )

    metadata: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Optional metadata for audit trail"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "user_xyz789",
                "amount": 6,
                "operation": "generate_ad",
                "metadata": {"params": {"quality": "high", "numSamples": 3}}
            }
        }


class AddCreditsCommandDTO(BaseModel):
    """
    Command DTO for adding credits

    The amount is validated by the use case (must be > 0) so a bad amount
    comes back as an INVALID_AMOUNT result rather than a validation error.
    """

    user_id: str = Field(..., description="User identifier")

    amount: int = Field(..., description="Credits to add (must be > 0)")

    source: str = Field(
        default="manual_addition",
        description="Operation tag recorded on the transaction (e.g., 'purchase')"
    )

    operation_id: Optional[str] = Field(
        default=None,
        description="Optional correlation id (e.g., payment id)"
    )

    metadata: Optional[Dict[str, Any]] = Field(default=None)


class RefundCommandDTO(BaseModel):
    """
    Command DTO for refunding a completed deduction

    Used as input to RefundCredit use case.
    """

    transaction_id: str = Field(
        ...,
        description="Deduction transaction to refund"
    )

    reason: str = Field(
        default="Operation failed",
        description="Why the deduction is being refunded"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "transaction_id": "0c1a6a6e-8a0c-4df3-9a2c-5f8f7b2d1e11",
                "reason": "Processing error: upstream timeout"
            }
        }


class CreditTransactionResponseDTO(BaseModel):
    """
    Response DTO for credit transaction operations

    Returned by DebitCredits, AddCredits, RefundCredit.
    """

    transaction_id: str = Field(..., description="Transaction ID")

    user_id: str = Field(..., description="User identifier")

    amount: int = Field(..., description="Signed credit amount")

    operation: str = Field(..., description="Operation tag")

    operation_id: Optional[str] = Field(default=None, description="Correlation id")

    status: str = Field(..., description="Transaction status")

    balance_after: Optional[int] = Field(
        default=None,
        description="Account balance after the transaction"
    )

    metadata: Dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(..., description="Transaction timestamp")

    @classmethod
    def from_transaction(
        cls,
        transaction,
        balance_after: Optional[int] = None,
        status: Optional[str] = None,
    ) -> "CreditTransactionResponseDTO":
        """
        Build the response from a CreditTransaction entity

        `status` overrides the entity's status when the row was advanced by a
        conditional UPDATE the loaded entity has not seen.
        """
        current_status = status or transaction.status
        return cls(
            transaction_id=transaction.id,
            user_id=transaction.user_id,
            amount=transaction.amount,
            operation=transaction.operation,
            operation_id=transaction.operation_id,
            status=getattr(current_status, "value", current_status),
            balance_after=balance_after,
            metadata=dict(transaction.metadata_ or {}),
            created_at=transaction.created_at,
        )


class BalanceResponseDTO(BaseModel):
    """
    Response DTO for get balance operation

    Returned by GetBalance use case.
    """

    user_id: str = Field(..., description="User identifier")

    balance: int = Field(..., description="Current credit balance")

    last_updated: datetime = Field(..., description="Timestamp of last balance update")


class EstimateCommandDTO(BaseModel):
    """Command DTO for pricing an operation"""

    operation: str = Field(..., description="Operation name")

    params: Dict[str, Any] = Field(
        default_factory=dict,
        description="Cost-relevant request parameters"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "operation": "generate_ad",
                "params": {"quality": "high", "numSamples": 3}
            }
        }


class EstimateResponseDTO(BaseModel):
    """Response DTO for cost estimation"""

    operation: str

    estimated_credits: int = Field(..., description="Total credit cost")

    breakdown: Dict[str, int] = Field(
        default_factory=dict,
        description="Cost per component ('base' plus each billed parameter)"
    )

    used_fallback: bool = Field(
        default=False,
        description="True when no price config was available"
    )


class TransactionDTO(BaseModel):
    """Single transaction in a history listing"""

    id: str
    amount: int
    operation: str
    operation_id: Optional[str] = None
    status: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class ListTransactionsResponseDTO(BaseModel):
    """Paginated transaction history"""

    user_id: str
    transactions: List[TransactionDTO]
    total: int
    limit: int
    offset: int


class PurchaseCreditsCommandDTO(BaseModel):
    """Command DTO for granting the credits of a paid plan"""

    user_id: str = Field(..., description="User identifier")

    payment_id: str = Field(..., description="Payment provider's payment id")

    plan_id: str = Field(..., description="Purchased product / plan id")


class LedgerDiscrepancyDTO(BaseModel):
    """Account whose balance differs from its settled transaction sum"""

    user_id: str
    account_balance: int
    calculated_balance: int
    discrepancy: int


class OrphanedTransactionDTO(BaseModel):
    """Deduction left in pending state"""

    transaction_id: str
    user_id: str
    amount: int
    operation: str
    created_at: datetime


class UnrefundedChargeDTO(BaseModel):
    """Failed business record whose charge was never refunded"""

    record_id: str
    user_id: str
    transaction_id: str
    credits_used: int
    error_message: Optional[str] = None


class ReconciliationResultDTO(BaseModel):
    """Outcome of a ledger reconciliation sweep"""

    total_accounts_checked: int
    discrepancies_found: int
    discrepancies: List[LedgerDiscrepancyDTO] = Field(default_factory=list)
    orphaned_pending: List[OrphanedTransactionDTO] = Field(default_factory=list)
    unrefunded_charges: List[UnrefundedChargeDTO] = Field(default_factory=list)
    reconciliation_time: datetime
    execution_time_ms: int

    @property
    def has_findings(self) -> bool:
        return bool(self.discrepancies or self.orphaned_pending or self.unrefunded_charges)
